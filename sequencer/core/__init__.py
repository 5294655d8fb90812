"""Core exceptions shared across the sequencer."""

from .exceptions import (
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
