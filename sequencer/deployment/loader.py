"""Manifest loader - Parse and validate deployment manifests."""

import logging
from pathlib import Path

import yaml
from eth_utils import is_hex_address
from pydantic import ValidationError

from .models import DeploymentManifest

logger = logging.getLogger(__name__)


class ManifestLoadError(Exception):
    """Error loading or validating a deployment manifest."""

    pass


class ManifestLoader:
    """Load and validate deployment manifests from YAML files."""

    def load(self, yaml_path: str | Path) -> DeploymentManifest:
        """Load a manifest from a YAML file.

        Args:
            yaml_path: Path to manifest YAML file

        Returns:
            Validated DeploymentManifest

        Raises:
            ManifestLoadError: If loading or validation fails
        """
        yaml_path = Path(yaml_path)

        if not yaml_path.exists():
            raise ManifestLoadError(f"Manifest file not found: {yaml_path}")

        # 1. Parse YAML
        try:
            with open(yaml_path) as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ManifestLoadError(f"Invalid YAML: {e}") from e

        if not isinstance(data, dict):
            raise ManifestLoadError("Manifest file must contain a dictionary")

        # 2. Pydantic validation (schema, argument expansion)
        try:
            manifest = DeploymentManifest(**data)
        except ValidationError as e:
            raise ManifestLoadError(f"Validation error:\n{e}") from e

        # 3. Validate unit references
        self._validate_references(manifest)

        # 4. Flag literal addresses that are reused under different names
        self._warn_duplicate_addresses(manifest)

        return manifest

    def _validate_references(self, manifest: DeploymentManifest) -> None:
        """Check that references and depends_on name declared units.

        Raises:
            ManifestLoadError: If a unit names an unknown unit
        """
        names = manifest.get_unit_names()

        for unit in manifest.units:
            for ref in unit.references:
                if ref not in names:
                    raise ManifestLoadError(
                        f"Unit '{unit.name}' references unknown unit '{ref}'"
                    )
            for dep in unit.depends_on:
                if dep not in names:
                    raise ManifestLoadError(
                        f"Unit '{unit.name}' depends on unknown unit '{dep}'"
                    )

    def _warn_duplicate_addresses(self, manifest: DeploymentManifest) -> None:
        """Log a warning when several constants hold the same address."""
        by_address: dict[str, list[str]] = {}
        for key, value in manifest.constants.items():
            if isinstance(value, str) and is_hex_address(value):
                by_address.setdefault(value.lower(), []).append(key)

        for address, keys in by_address.items():
            if len(keys) > 1:
                logger.warning(
                    "Constants %s share address %s; check the reuse is intended",
                    ", ".join(keys),
                    address,
                )

    def validate_only(self, yaml_path: str | Path) -> str | None:
        """Validate manifest file and return error message if invalid.

        Args:
            yaml_path: Path to manifest YAML file

        Returns:
            Error message if validation fails, None if valid
        """
        try:
            self.load(yaml_path)
            return None
        except ManifestLoadError as e:
            return str(e)
