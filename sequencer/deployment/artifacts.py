"""Compiled contract artifacts (ABI + bytecode)."""

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from ..core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class ContractArtifact(BaseModel):
    """The parts of a hardhat artifact needed to construct a contract."""

    contract_name: str = Field(..., alias="contractName")
    abi: list[dict[str, Any]]
    bytecode: str

    @property
    def constructor_inputs(self) -> list[dict[str, Any]]:
        for entry in self.abi:
            if entry.get("type") == "constructor":
                return entry.get("inputs", [])
        return []


class ArtifactStore:
    """Find artifacts under a hardhat-style ``artifacts/`` directory.

    Artifacts are looked up as ``**/<Contract>.json``; hardhat's
    ``.dbg.json`` companions are ignored.
    """

    def __init__(self, root: Path | str):
        self.root = Path(root)
        self._cache: dict[str, ContractArtifact] = {}

    def load(self, contract: str) -> ContractArtifact:
        """Load the artifact of a contract.

        Args:
            contract: Contract name

        Returns:
            Parsed artifact

        Raises:
            ConfigurationError: If the artifact is missing, ambiguous or malformed
        """
        if contract in self._cache:
            return self._cache[contract]

        if not self.root.is_dir():
            raise ConfigurationError(f"Artifacts directory not found: {self.root}")

        matches = sorted(self.root.rglob(f"{contract}.json"))
        if not matches:
            raise ConfigurationError(f"No artifact for contract '{contract}' under {self.root}")
        if len(matches) > 1:
            found = ", ".join(str(p.relative_to(self.root)) for p in matches)
            raise ConfigurationError(f"Ambiguous artifact for '{contract}': {found}")

        path = matches[0]
        try:
            data = json.loads(path.read_text())
            data.setdefault("contractName", contract)
            artifact = ContractArtifact(**data)
        except (json.JSONDecodeError, ValidationError) as e:
            raise ConfigurationError(f"Malformed artifact {path}: {e}") from e

        if artifact.bytecode in ("", "0x"):
            raise ConfigurationError(
                f"Artifact {path} has no bytecode (abstract contract or interface?)"
            )

        logger.debug(f"Loaded artifact for {contract} from {path}")
        self._cache[contract] = artifact
        return artifact
