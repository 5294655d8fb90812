"""Custom exception hierarchy for the deployment sequencer.

Provides structured exceptions with error codes and recovery hints.
"""


class SequencerError(Exception):
    """Base exception for sequencer errors.

    Attributes:
        message: Human-readable error message.
        code: Machine-readable error code.
        recoverable: Whether re-running the sequencer can succeed.
    """

    def __init__(
        self,
        message: str,
        code: str,
        recoverable: bool = True,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.recoverable = recoverable

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def to_dict(self) -> dict[str, str | bool]:
        """Convert exception to dictionary for JSON serialization.

        Returns:
            Dictionary with error details.
        """
        return {
            "error": self.code,
            "message": self.message,
            "recoverable": self.recoverable,
        }


class UnresolvedDependency(SequencerError):
    """A unit referenced another unit that has not been deployed yet.

    This is an ordering error: the referencing unit was scheduled before
    the unit it needs.
    """

    def __init__(self, dependency: str, unit: str | None = None) -> None:
        if unit:
            message = f"Unit '{unit}' references '{dependency}', which is not deployed"
        else:
            message = f"Unit '{dependency}' is not deployed"
        super().__init__(message, "UNRESOLVED_DEPENDENCY", recoverable=False)
        self.dependency = dependency
        self.unit = unit


DependencyUnresolved = UnresolvedDependency


class CyclicDependency(SequencerError):
    """The dependency graph has no valid topological order."""

    def __init__(self, cycle: list[str]) -> None:
        message = "Dependency cycle detected: " + " -> ".join(cycle)
        super().__init__(message, "CYCLIC_DEPENDENCY", recoverable=False)
        self.cycle = cycle


class ConstructionFailed(SequencerError):
    """The external deploy mechanism failed to construct a contract.

    Raised for network failures, reverted constructors, insufficient funds
    and confirmation timeouts. Already recorded units are unaffected.
    """

    def __init__(
        self,
        unit: str,
        message: str,
        cause: Exception | None = None,
    ) -> None:
        full_message = f"Construction of '{unit}' failed: {message}"
        if cause:
            full_message += f": {cause}"
        super().__init__(full_message, "CONSTRUCTION_FAILED", recoverable=True)
        self.unit = unit
        self.cause = cause


class UnknownUnit(SequencerError):
    """An explicit deployment order named a unit that was not declared."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown deployment unit '{name}'", "UNKNOWN_UNIT", recoverable=False)
        self.name = name


class UnknownTag(SequencerError):
    """A tag selection matched no declared unit."""

    def __init__(self, tag: str) -> None:
        super().__init__(f"No deployment unit is tagged '{tag}'", "UNKNOWN_TAG", recoverable=False)
        self.tag = tag


class RegistryError(SequencerError):
    """Conflicting write to the address registry."""

    def __init__(self, network: str, name: str, existing: str, new: str) -> None:
        message = (
            f"'{name}' on {network} is already recorded at {existing}; "
            f"refusing to overwrite with {new}"
        )
        super().__init__(message, "REGISTRY", recoverable=False)
        self.network = network
        self.name = name


class ConfigurationError(SequencerError):
    """Invalid configuration.

    Raised when configuration is invalid or missing required values.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message, "CONFIG", recoverable=False)
