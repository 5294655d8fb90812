"""Centralized configuration for the deployment sequencer.

Uses pydantic-settings for environment variable loading and validation.
All settings can be overridden via environment variables with appropriate prefixes.
"""

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class SequencerSettings(BaseSettings):
    """Settings for logging and tracing.

    Environment variables:
        SEQUENCER_LOG_LEVEL: Logging level
        SEQUENCER_LOG_JSON: Enable JSON log format
        SEQUENCER_LOG_FILE: Optional JSON log file
        SEQUENCER_OTEL_ENABLED: Enable OpenTelemetry
        SEQUENCER_OTEL_ENDPOINT: OTLP collector endpoint
        SEQUENCER_OTEL_PROTOCOL: OTLP protocol (grpc/http)
        SEQUENCER_OTEL_SERVICE_NAME: Service name for traces
    """

    model_config = SettingsConfigDict(
        env_prefix="SEQUENCER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    log_json: bool = Field(
        default=False,
        description="Enable JSON log format",
    )
    log_file: str | None = Field(
        default=None,
        description="Optional path to a JSON log file",
    )

    otel_enabled: bool = Field(
        default=False,
        description="Enable OpenTelemetry tracing",
    )
    otel_endpoint: str | None = Field(
        default=None,
        description="OTLP collector endpoint (console exporter when unset)",
    )
    otel_protocol: str = Field(
        default="grpc",
        description="OTLP protocol (grpc/http)",
    )
    otel_service_name: str = Field(
        default="contract-sequencer",
        description="Service name for traces",
    )


class DeploymentSettings(BaseSettings):
    """Settings for contract deployment.

    Environment variables:
        DEPLOY_STATE_DIR: Directory holding the persisted address registry
        DEPLOY_ARTIFACTS_DIR: Directory with compiled contract artifacts
        DEPLOY_PRIVATE_KEY: Hex private key of the deploying account
        DEPLOY_RPC_URL: RPC endpoint overriding the manifest's network URL
        DEPLOY_ACCOUNTS: JSON mapping of named accounts overriding the manifest
        DEPLOY_GAS_PRICE_GWEI: Fixed legacy gas price in gwei
        DEPLOY_CONFIRMATION_TIMEOUT: Seconds to wait for a receipt
        DEPLOY_POLL_LATENCY: Seconds between receipt polls
    """

    model_config = SettingsConfigDict(
        env_prefix="DEPLOY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    state_dir: str = Field(
        default="deployments/.state",
        description="Directory holding the persisted address registry",
    )
    artifacts_dir: str = Field(
        default="artifacts",
        description="Directory with compiled contract artifacts",
    )
    private_key: SecretStr | None = Field(
        default=None,
        description="Hex private key of the deploying account",
    )
    rpc_url: str | None = Field(
        default=None,
        description="RPC endpoint overriding the manifest's network URL",
    )
    accounts: dict[str, str] = Field(
        default_factory=dict,
        description="Named accounts merged over the manifest's accounts",
    )
    gas_price_gwei: float | None = Field(
        default=None,
        description="Fixed legacy gas price in gwei (node default when unset)",
    )
    confirmation_timeout: float = Field(
        default=120.0,
        description="Seconds to wait for a construction receipt",
    )
    poll_latency: float = Field(
        default=0.5,
        description="Seconds between receipt polls",
    )


# Global settings instances - import these directly
settings = SequencerSettings()
deploy_settings = DeploymentSettings()
