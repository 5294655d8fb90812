"""Deployment system: manifests, dependency ordering and the sequencer."""

from .deployer import ContractDeployer, SimulatedDeployer, Web3ContractDeployer
from .loader import ManifestLoader, ManifestLoadError
from .models import (
    ArgumentDescriptor,
    ConstructionReceipt,
    ConstructionRequest,
    DeploymentManifest,
    DeploymentPlan,
    DeploymentRecord,
    DeploymentReport,
    DeploymentUnit,
    NetworkConfig,
    UnitResult,
    UnitStatus,
)
from .registry import AddressRegistry
from .resolver import DependencyResolver
from .sequencer import DeploymentSequencer

__all__ = [
    "AddressRegistry",
    "ArgumentDescriptor",
    "ConstructionReceipt",
    "ConstructionRequest",
    "ContractDeployer",
    "DependencyResolver",
    "DeploymentManifest",
    "DeploymentPlan",
    "DeploymentRecord",
    "DeploymentReport",
    "DeploymentSequencer",
    "DeploymentUnit",
    "ManifestLoadError",
    "ManifestLoader",
    "NetworkConfig",
    "SimulatedDeployer",
    "UnitResult",
    "UnitStatus",
    "Web3ContractDeployer",
]
