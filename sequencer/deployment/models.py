"""Pydantic models for deployment manifests, plans and results."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from eth_utils import is_address
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..core.exceptions import ConfigurationError


# ============================================================================
# Constructor Arguments
# ============================================================================

class ArgumentDescriptor(BaseModel):
    """One constructor argument of a deployment unit.

    ``constant`` values are passed to the constructor verbatim,
    ``reference`` values name another unit whose deployed address is
    substituted, ``account`` values name an account of the target network.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["constant", "reference", "account"] = Field(
        ..., description="Argument kind"
    )
    value: Any = Field(..., description="Literal, unit name or account name")
    source: Optional[str] = Field(
        None, description="Constant expression a derived literal was computed from"
    )

    @classmethod
    def constant(cls, value: Any, source: Optional[str] = None) -> "ArgumentDescriptor":
        return cls(kind="constant", value=value, source=source)

    @classmethod
    def reference(cls, unit_name: str) -> "ArgumentDescriptor":
        return cls(kind="reference", value=unit_name)

    @classmethod
    def account(cls, account_name: str) -> "ArgumentDescriptor":
        return cls(kind="account", value=account_name)

    @property
    def is_reference(self) -> bool:
        return self.kind == "reference"

    def describe(self) -> str:
        """Render the argument the way it is written in a manifest."""
        if self.kind == "reference":
            return f"${self.value}"
        if self.kind == "account":
            return f"@{self.value}"
        if self.source:
            return f"{self.value} ({self.source})"
        return str(self.value)


def parse_argument(raw: Any, constants: Optional[Dict[str, Any]] = None) -> ArgumentDescriptor:
    """Parse a manifest argument into a descriptor.

    Accepted forms:
        ``"$Unit"`` or ``{ref: Unit}``: address of a deployed unit
        ``"@name"`` or ``{account: name}``: named account of the network
        ``{const: key, offset: n}``: manifest constant plus an integer offset
        ``{value: literal}``: explicit literal (escapes ``$``/``@`` strings)
        anything else: literal constant

    Args:
        raw: Value as read from YAML
        constants: Manifest constants available to ``const`` expressions

    Returns:
        Parsed argument descriptor

    Raises:
        ValueError: If the argument is malformed or names an undefined constant
    """
    if isinstance(raw, ArgumentDescriptor):
        return raw

    constants = constants or {}

    if isinstance(raw, str):
        if raw.startswith("$") and len(raw) > 1:
            return ArgumentDescriptor.reference(raw[1:])
        if raw.startswith("@") and len(raw) > 1:
            return ArgumentDescriptor.account(raw[1:])
        return ArgumentDescriptor.constant(raw)

    if isinstance(raw, dict):
        if "kind" in raw:
            return ArgumentDescriptor(**raw)
        if "ref" in raw:
            return ArgumentDescriptor.reference(str(raw["ref"]))
        if "account" in raw:
            return ArgumentDescriptor.account(str(raw["account"]))
        if "value" in raw:
            return ArgumentDescriptor.constant(raw["value"])
        if "const" in raw:
            return _derive_constant(raw, constants)
        raise ValueError(f"Unrecognised argument mapping: {raw}")

    return ArgumentDescriptor.constant(raw)


def _derive_constant(raw: Dict[str, Any], constants: Dict[str, Any]) -> ArgumentDescriptor:
    key = raw["const"]
    if key not in constants:
        raise ValueError(f"Undefined constant '{key}'")

    base = constants[key]
    offset = raw.get("offset", 0)
    if not isinstance(offset, int) or isinstance(offset, bool):
        raise ValueError(f"Offset for constant '{key}' must be an integer, got {offset!r}")

    if offset == 0:
        return ArgumentDescriptor.constant(base, source=key)

    if not isinstance(base, int) or isinstance(base, bool):
        raise ValueError(f"Constant '{key}' is not an integer; cannot apply an offset")

    return ArgumentDescriptor.constant(base + offset, source=f"{key} {offset:+d}")


# ============================================================================
# Deployment Units
# ============================================================================

class DeploymentUnit(BaseModel):
    """One named contract instantiation. Immutable once declared."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Unique unit name, also the registry key")
    contract: Optional[str] = Field(
        None, description="Artifact name (defaults to the unit name)"
    )
    args: tuple[ArgumentDescriptor, ...] = Field(
        default=(), description="Ordered constructor arguments"
    )
    tags: frozenset[str] = Field(
        default=frozenset(), description="Tags for selective invocation"
    )
    depends_on: tuple[str, ...] = Field(
        default=(), description="Units that must deploy first without being referenced"
    )
    gas_limit: Optional[int] = Field(None, description="Explicit gas limit")

    @model_validator(mode="before")
    @classmethod
    def default_tags(cls, data: Any) -> Any:
        """A unit without tags is tagged with its own name."""
        if isinstance(data, dict) and not data.get("tags") and data.get("name"):
            return {**data, "tags": [data["name"]]}
        return data

    @field_validator("args", mode="before")
    @classmethod
    def parse_args(cls, v: Any) -> Any:
        if v is None:
            return ()
        return tuple(parse_argument(item) for item in v)

    @property
    def artifact(self) -> str:
        return self.contract or self.name

    @property
    def references(self) -> List[str]:
        """Unit names referenced by constructor arguments, in argument order."""
        names: List[str] = []
        for arg in self.args:
            if arg.is_reference and arg.value not in names:
                names.append(arg.value)
        return names

    @property
    def dependencies(self) -> List[str]:
        """All units that must be deployed before this one."""
        names = self.references
        for name in self.depends_on:
            if name not in names:
                names.append(name)
        return names


# ============================================================================
# Networks and Manifest
# ============================================================================

class ProjectMetadata(BaseModel):
    """Manifest metadata."""

    name: str = Field(..., description="Project identifier")
    version: str = Field("0.1.0", description="Manifest version")
    description: str = Field("", description="Human-readable description")


class NetworkConfig(BaseModel):
    """Target network and its named accounts."""

    name: str = Field(..., description="Network name, part of the registry key")
    chain_id: int = Field(..., description="EIP-155 chain id")
    rpc_url: Optional[str] = Field(None, description="JSON-RPC endpoint")
    accounts: Dict[str, str] = Field(
        default_factory=dict, description="Named accounts (deployer, dao, dev, ...)"
    )

    @field_validator("accounts")
    @classmethod
    def validate_accounts(cls, v: Dict[str, str]) -> Dict[str, str]:
        for name, address in v.items():
            if not is_address(address):
                raise ValueError(f"Account '{name}' is not a valid address: {address}")
        return v

    def account(self, name: str) -> str:
        """Look up a named account.

        Raises:
            ConfigurationError: If the account is not configured
        """
        if name not in self.accounts:
            raise ConfigurationError(
                f"Named account '{name}' is not configured for network '{self.name}'"
            )
        return self.accounts[name]


class DeploymentManifest(BaseModel):
    """Complete manifest: constants, networks and units."""

    project: ProjectMetadata = Field(..., description="Project metadata")
    constants: Dict[str, Any] = Field(
        default_factory=dict, description="Named literals shared by units"
    )
    networks: Dict[str, NetworkConfig] = Field(
        default_factory=dict, description="Target networks by name"
    )
    units: List[DeploymentUnit] = Field(..., description="Deployment units")

    @model_validator(mode="before")
    @classmethod
    def expand_document(cls, data: Any) -> Any:
        """Expand ``const`` arguments and name networks after their keys."""
        if not isinstance(data, dict):
            return data

        constants = data.get("constants") or {}

        units = []
        for raw in data.get("units") or []:
            if isinstance(raw, dict) and raw.get("args"):
                raw = {**raw, "args": [parse_argument(a, constants) for a in raw["args"]]}
            units.append(raw)

        networks = {}
        for name, cfg in (data.get("networks") or {}).items():
            if isinstance(cfg, dict) and "name" not in cfg:
                cfg = {**cfg, "name": name}
            networks[name] = cfg

        return {**data, "constants": constants, "units": units, "networks": networks}

    @field_validator("units")
    @classmethod
    def validate_unique_names(cls, v: List[DeploymentUnit]) -> List[DeploymentUnit]:
        names = [unit.name for unit in v]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Unit names must be unique: {', '.join(duplicates)}")
        return v

    def get_unit(self, name: str) -> Optional[DeploymentUnit]:
        for unit in self.units:
            if unit.name == name:
                return unit
        return None

    def get_unit_names(self) -> set[str]:
        return {unit.name for unit in self.units}

    def get_network(self, name: str) -> NetworkConfig:
        """Get a network by name.

        Raises:
            ConfigurationError: If the manifest does not declare it
        """
        if name not in self.networks:
            known = ", ".join(sorted(self.networks)) or "none"
            raise ConfigurationError(f"Unknown network '{name}' (declared: {known})")
        return self.networks[name]


# ============================================================================
# Plan (output of DependencyResolver)
# ============================================================================

class DeploymentPlan(BaseModel):
    """Deployment order generated by DependencyResolver."""

    order: List[str] = Field(..., description="Units in deployment order")
    stages: List[List[str]] = Field(
        ..., description="Groups of mutually independent units"
    )
    dependencies: Dict[str, List[str]] = Field(
        ..., description="Dependencies of each unit"
    )


# ============================================================================
# Deploy Mechanism I/O
# ============================================================================

class ConstructionRequest(BaseModel):
    """What the sequencer asks the deploy mechanism to construct."""

    name: str
    contract: str
    sender: str
    args: List[Any] = Field(default_factory=list)
    gas_limit: Optional[int] = None


class ConstructionReceipt(BaseModel):
    """Confirmation returned by the deploy mechanism."""

    address: str
    transaction_hash: Optional[str] = None
    block_number: Optional[int] = None
    gas_used: Optional[int] = None


# ============================================================================
# Registry Records and Run Results
# ============================================================================

class DeploymentRecord(BaseModel):
    """Persisted deployment of one unit on one network."""

    name: str
    contract: str
    address: str
    args: List[Any] = Field(default_factory=list)
    transaction_hash: Optional[str] = None
    block_number: Optional[int] = None
    deployed_at: str = Field(default_factory=lambda: datetime.now().isoformat())


class UnitStatus(str, Enum):
    PENDING = "pending"
    RESOLVING = "resolving"
    DEPLOYED = "deployed"
    FAILED = "failed"


class UnitResult(BaseModel):
    """Outcome of one unit within a run."""

    name: str
    status: UnitStatus
    address: Optional[str] = None
    reused: bool = Field(False, description="Address came from the registry")


class DeploymentReport(BaseModel):
    """Result of a sequencer run."""

    run_id: str
    network: str
    results: List[UnitResult] = Field(default_factory=list)
    addresses: Dict[str, str] = Field(default_factory=dict)

    @property
    def deployed(self) -> List[str]:
        """Units constructed during this run."""
        return [r.name for r in self.results if r.status == UnitStatus.DEPLOYED and not r.reused]

    @property
    def reused(self) -> List[str]:
        """Units skipped because they were already deployed."""
        return [r.name for r in self.results if r.reused]
