"""Address registry for deployed units.

Persists the address of every deployed unit per network, so later runs
skip units that already exist and other tooling can read the addresses.
"""

import copy
import json
import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Any

from ..core.exceptions import ConfigurationError, RegistryError
from .models import DeploymentRecord

logger = logging.getLogger(__name__)

REGISTRY_FILENAME = "addresses.json"


class AddressRegistry:
    """Write-once registry keyed by (network, unit name).

    Stores records in a JSON file when ``state_file`` is given, otherwise
    keeps them in memory only.
    """

    def __init__(self, state_file: Path | str | None = None):
        """Initialize the registry.

        Args:
            state_file: JSON file to load from and save to. None keeps the
                registry in memory.
        """
        self.state_file = Path(state_file) if state_file else None
        self._networks: dict[str, dict[str, dict[str, Any]]] = {}
        self._load()

    @classmethod
    def in_state_dir(cls, state_dir: Path | str) -> "AddressRegistry":
        """Open the registry stored in a state directory, creating the directory."""
        state_dir = Path(state_dir)
        state_dir.mkdir(parents=True, exist_ok=True)
        return cls(state_dir / REGISTRY_FILENAME)

    def _load(self) -> None:
        if self.state_file is None or not self.state_file.exists():
            self._networks = {}
            return

        try:
            data = json.loads(self.state_file.read_text())
        except json.JSONDecodeError as e:
            # Dropping the state would redeploy everything; refuse instead.
            raise ConfigurationError(
                f"Address registry {self.state_file} is not valid JSON: {e}"
            ) from e

        networks = data.get("networks", {}) if isinstance(data, dict) else None
        if not isinstance(networks, dict) or not all(
            isinstance(entries, dict) for entries in networks.values()
        ):
            raise ConfigurationError(
                f"Address registry {self.state_file} is not a registry file "
                "(expected an object with a 'networks' mapping)"
            )

        self._networks = networks
        logger.debug(
            f"Loaded {sum(len(v) for v in self._networks.values())} "
            f"deployments from {self.state_file}"
        )

    def _save(self) -> None:
        if self.state_file is None:
            return

        data = {
            "version": "1.0",
            "updated_at": datetime.now().isoformat(),
            "networks": self._networks,
        }
        self.state_file.parent.mkdir(parents=True, exist_ok=True)
        tmp_file = self.state_file.with_suffix(self.state_file.suffix + ".tmp")
        tmp_file.write_text(json.dumps(data, indent=2, default=str))
        os.replace(tmp_file, self.state_file)

    def get(self, network: str, name: str) -> DeploymentRecord | None:
        """Get the deployment record of a unit, if deployed."""
        entry = self._networks.get(network, {}).get(name)
        if entry is None:
            return None
        return DeploymentRecord(**entry)

    def address(self, network: str, name: str) -> str | None:
        """Get the address of a unit, if deployed."""
        entry = self._networks.get(network, {}).get(name)
        return entry["address"] if entry else None

    def has(self, network: str, name: str) -> bool:
        return name in self._networks.get(network, {})

    def record(self, network: str, record: DeploymentRecord) -> None:
        """Record a deployed unit.

        Recording the same address again is a no-op.

        Args:
            network: Network name
            record: Deployment record

        Raises:
            RegistryError: If the unit is already recorded at another address
        """
        existing = self.address(network, record.name)
        if existing is not None:
            if existing.lower() == record.address.lower():
                return
            raise RegistryError(network, record.name, existing, record.address)

        self._networks.setdefault(network, {})[record.name] = record.model_dump()
        self._save()
        logger.info(f"Recorded {record.name} on {network} at {record.address}")

    def addresses(self, network: str) -> dict[str, str]:
        """Map of unit name to address for a network."""
        return {
            name: entry["address"]
            for name, entry in self._networks.get(network, {}).items()
        }

    def records(self, network: str) -> list[DeploymentRecord]:
        return [DeploymentRecord(**entry) for entry in self._networks.get(network, {}).values()]

    def networks(self) -> list[str]:
        return sorted(self._networks)

    def reset(self, network: str) -> int:
        """Forget every deployment on a network.

        Returns:
            Number of records removed.
        """
        removed = len(self._networks.pop(network, {}))
        if removed:
            self._save()
            logger.info(f"Reset {removed} deployments on {network}")
        return removed

    def snapshot(self) -> "AddressRegistry":
        """In-memory copy of the registry, for dry runs."""
        clone = AddressRegistry()
        clone._networks = copy.deepcopy(self._networks)
        return clone
