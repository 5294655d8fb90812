"""Contract deployment sequencer."""

from .config import deploy_settings, settings
from .core import (
    ConfigurationError,
    ConstructionFailed,
    CyclicDependency,
    DependencyUnresolved,
    RegistryError,
    SequencerError,
    UnknownTag,
    UnknownUnit,
    UnresolvedDependency,
)

__all__ = [
    # Configuration
    "settings",
    "deploy_settings",
    # Exceptions
    "ConfigurationError",
    "ConstructionFailed",
    "CyclicDependency",
    "DependencyUnresolved",
    "RegistryError",
    "SequencerError",
    "UnknownTag",
    "UnknownUnit",
    "UnresolvedDependency",
]
