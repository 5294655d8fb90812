"""Shared pytest fixtures for the test suite.

Provides a scripted deployer, networks, registries and manifests.
"""

import sys
from collections.abc import Generator
from pathlib import Path

import pytest
import yaml

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sequencer.deployment.deployer import ContractDeployer
from sequencer.deployment.models import (
    ConstructionReceipt,
    ConstructionRequest,
    NetworkConfig,
)
from sequencer.deployment.registry import AddressRegistry

DEPLOYER = "0x1111111111111111111111111111111111111111"
DAO = "0x2222222222222222222222222222222222222222"
DEV = "0x3333333333333333333333333333333333333333"


class ScriptedDeployer(ContractDeployer):
    """Deployer double that returns preset addresses and records requests."""

    def __init__(
        self,
        addresses: dict[str, str] | None = None,
        failures: dict[str, Exception] | None = None,
        sender: str = DEPLOYER,
    ):
        self.addresses = addresses or {}
        self.failures = failures or {}
        self._sender = sender
        self.requests: list[ConstructionRequest] = []
        self.prepared = 0

    @property
    def sender(self) -> str:
        return self._sender

    async def prepare(self, network: NetworkConfig) -> None:
        self.prepared += 1

    async def deploy(self, request: ConstructionRequest) -> ConstructionReceipt:
        self.requests.append(request)
        if request.name in self.failures:
            raise self.failures[request.name]
        address = self.addresses.get(request.name, f"0x{request.name}")
        return ConstructionReceipt(
            address=address,
            transaction_hash=f"0xtx{len(self.requests)}",
            block_number=len(self.requests),
        )

    @property
    def deployed_names(self) -> list[str]:
        return [r.name for r in self.requests]


@pytest.fixture
def network() -> NetworkConfig:
    """Test network with named accounts."""
    return NetworkConfig(
        name="testnet",
        chain_id=31337,
        rpc_url="http://127.0.0.1:8545",
        accounts={"deployer": DEPLOYER, "dao": DAO, "dev": DEV},
    )


@pytest.fixture
def deployer() -> ScriptedDeployer:
    return ScriptedDeployer()


@pytest.fixture
def registry(tmp_path: Path) -> AddressRegistry:
    """Registry persisted in a temporary directory."""
    return AddressRegistry.in_state_dir(tmp_path / "state")


def make_manifest(units: list[dict] | None = None, **overrides) -> dict:
    """Create a minimal valid manifest document."""
    data = {
        "project": {"name": "test", "version": "1.0.0", "description": "Test manifest"},
        "constants": {"genesis_time": 1641135600},
        "networks": {
            "testnet": {
                "chain_id": 31337,
                "rpc_url": "http://127.0.0.1:8545",
                "accounts": {"deployer": DEPLOYER, "dao": DAO, "dev": DEV},
            }
        },
        "units": units
        if units is not None
        else [
            {"name": "Token", "args": [{"const": "genesis_time"}, "@dao", "@dev"]},
            {"name": "RewardPool", "args": ["$Token", {"const": "genesis_time"}]},
        ],
    }
    data.update(overrides)
    return data


def write_yaml(path: Path, data: dict) -> None:
    """Helper to write YAML files."""
    with open(path, "w") as f:
        yaml.dump(data, f)


@pytest.fixture
def manifest_file(tmp_path: Path) -> Generator[Path, None, None]:
    """Temporary manifest with a token and a reward pool."""
    path = tmp_path / "manifest.yaml"
    write_yaml(path, make_manifest())
    yield path


@pytest.fixture
def project_root() -> Path:
    return Path(__file__).parent.parent


@pytest.fixture
def bundled_manifest(project_root: Path) -> Path:
    """The Dibs manifest shipped with the project."""
    return project_root / "deployments" / "dibs.yaml"


@pytest.fixture
def make_deployer() -> type[ScriptedDeployer]:
    """Factory for deployers with preset addresses or failures."""
    return ScriptedDeployer
