"""Tests for the address registry (sequencer/deployment/registry.py).

Tests cover:
- Persistence and reload
- Write-once semantics
- Per-network scoping
- Snapshots and resets
"""

import json
from pathlib import Path

import pytest

from sequencer.core.exceptions import ConfigurationError, RegistryError
from sequencer.deployment.models import DeploymentRecord
from sequencer.deployment.registry import REGISTRY_FILENAME, AddressRegistry

TOKEN = "0x" + "ab" * 20
POOL = "0x" + "cd" * 20


def make_record(name: str = "Token", address: str = TOKEN, **kwargs) -> DeploymentRecord:
    return DeploymentRecord(name=name, contract=name, address=address, **kwargs)


class TestAddressRegistry:
    """Tests for AddressRegistry."""

    def test_in_state_dir_creates_directory(self, tmp_path: Path) -> None:
        state_dir = tmp_path / "new_dir"
        assert not state_dir.exists()

        registry = AddressRegistry.in_state_dir(state_dir)

        assert state_dir.exists()
        assert registry.state_file == state_dir / REGISTRY_FILENAME

    def test_absent_until_recorded(self, registry: AddressRegistry) -> None:
        assert registry.address("bsc", "Token") is None
        assert registry.get("bsc", "Token") is None
        assert not registry.has("bsc", "Token")

    def test_record_and_lookup(self, registry: AddressRegistry) -> None:
        registry.record("bsc", make_record(args=[1641135600], block_number=7))

        assert registry.address("bsc", "Token") == TOKEN
        assert registry.has("bsc", "Token")
        record = registry.get("bsc", "Token")
        assert record.args == [1641135600]
        assert record.block_number == 7

    def test_persisted_across_instances(self, tmp_path: Path) -> None:
        AddressRegistry.in_state_dir(tmp_path).record("bsc", make_record())

        reloaded = AddressRegistry.in_state_dir(tmp_path)

        assert reloaded.address("bsc", "Token") == TOKEN

    def test_file_layout(self, tmp_path: Path) -> None:
        registry = AddressRegistry.in_state_dir(tmp_path)
        registry.record("bsc", make_record())

        data = json.loads((tmp_path / REGISTRY_FILENAME).read_text())

        assert data["version"] == "1.0"
        assert data["networks"]["bsc"]["Token"]["address"] == TOKEN

    def test_same_address_is_noop(self, registry: AddressRegistry) -> None:
        registry.record("bsc", make_record())
        registry.record("bsc", make_record(address=TOKEN.upper().replace("0X", "0x")))

        assert registry.address("bsc", "Token") == TOKEN

    def test_conflicting_address_rejected(self, registry: AddressRegistry) -> None:
        registry.record("bsc", make_record())

        with pytest.raises(RegistryError):
            registry.record("bsc", make_record(address=POOL))

        assert registry.address("bsc", "Token") == TOKEN

    def test_networks_are_scoped(self, registry: AddressRegistry) -> None:
        registry.record("bsc", make_record())
        registry.record("bscTestnet", make_record(address=POOL))

        assert registry.address("bsc", "Token") == TOKEN
        assert registry.address("bscTestnet", "Token") == POOL
        assert registry.networks() == ["bsc", "bscTestnet"]

    def test_addresses_and_records(self, registry: AddressRegistry) -> None:
        registry.record("bsc", make_record())
        registry.record("bsc", make_record("Pool", POOL))

        assert registry.addresses("bsc") == {"Token": TOKEN, "Pool": POOL}
        assert [r.name for r in registry.records("bsc")] == ["Token", "Pool"]
        assert registry.addresses("other") == {}

    def test_reset(self, tmp_path: Path) -> None:
        registry = AddressRegistry.in_state_dir(tmp_path)
        registry.record("bsc", make_record())
        registry.record("bscTestnet", make_record())

        assert registry.reset("bsc") == 1
        assert registry.reset("bsc") == 0

        reloaded = AddressRegistry.in_state_dir(tmp_path)
        assert reloaded.addresses("bsc") == {}
        assert reloaded.address("bscTestnet", "Token") == TOKEN

    def test_snapshot_is_detached(self, tmp_path: Path) -> None:
        registry = AddressRegistry.in_state_dir(tmp_path)
        registry.record("bsc", make_record())

        snapshot = registry.snapshot()
        snapshot.record("bsc", make_record("Pool", POOL))

        assert snapshot.state_file is None
        assert snapshot.address("bsc", "Token") == TOKEN
        assert registry.address("bsc", "Pool") is None
        assert AddressRegistry.in_state_dir(tmp_path).address("bsc", "Pool") is None

    def test_in_memory_registry(self) -> None:
        registry = AddressRegistry()
        registry.record("bsc", make_record())
        assert registry.address("bsc", "Token") == TOKEN

    def test_corrupt_file_refused(self, tmp_path: Path) -> None:
        (tmp_path / REGISTRY_FILENAME).write_text("{not json")

        with pytest.raises(ConfigurationError, match="not valid JSON"):
            AddressRegistry.in_state_dir(tmp_path)

    @pytest.mark.parametrize(
        "content",
        ["[]", '"addresses"', '{"networks": []}', '{"networks": {"bsc": ["Token"]}}'],
    )
    def test_wrong_shape_refused(self, tmp_path: Path, content: str) -> None:
        (tmp_path / REGISTRY_FILENAME).write_text(content)

        with pytest.raises(ConfigurationError, match="not a registry file"):
            AddressRegistry.in_state_dir(tmp_path)
