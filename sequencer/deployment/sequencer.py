"""Deployment sequencer - deploy units in dependency order, exactly once."""

import logging
import uuid
from collections.abc import Sequence
from typing import Any

from ..core.exceptions import ConstructionFailed, SequencerError, UnknownUnit, UnresolvedDependency
from ..observability import LoggerAdapter, add_span_attribute, record_exception, traced_operation
from .deployer import ContractDeployer
from .models import (
    ConstructionRequest,
    DeploymentRecord,
    DeploymentReport,
    DeploymentUnit,
    NetworkConfig,
    UnitResult,
    UnitStatus,
)
from .registry import AddressRegistry
from .resolver import DependencyResolver

logger = logging.getLogger(__name__)


class DeploymentSequencer:
    """Deploy units on one network, feeding addresses to later units.

    The registry is the only shared state: a unit already recorded there
    is never constructed again, which makes runs resumable after a failure
    or interruption.
    """

    def __init__(
        self,
        deployer: ContractDeployer,
        registry: AddressRegistry,
        network: NetworkConfig,
        resolver: DependencyResolver | None = None,
    ):
        """Initialize sequencer.

        Args:
            deployer: Mechanism that constructs contracts
            registry: Address registry (read and written)
            network: Target network
            resolver: Dependency resolver
        """
        self.deployer = deployer
        self.registry = registry
        self.network = network
        self.resolver = resolver or DependencyResolver()
        self.run_id = uuid.uuid4().hex[:12]
        self.log = LoggerAdapter(logger, self.run_id, network.name)
        self.status: dict[str, UnitStatus] = {}
        # Outcomes since the start of the current run (or of this instance)
        self.results: list[UnitResult] = []

    def resolve(self, unit_name: str) -> str:
        """Get the deployed address of a unit.

        Raises:
            UnresolvedDependency: If the unit has not been deployed on this network
        """
        address = self.registry.address(self.network.name, unit_name)
        if address is None:
            raise UnresolvedDependency(unit_name)
        return address

    def resolve_args(self, unit: DeploymentUnit) -> list[Any]:
        """Build the final constructor argument list of a unit.

        Raises:
            UnresolvedDependency: If a referenced unit is not deployed
            ConfigurationError: If a named account is not configured
        """
        args: list[Any] = []
        for arg in unit.args:
            if arg.kind == "reference":
                try:
                    args.append(self.resolve(arg.value))
                except UnresolvedDependency as e:
                    raise UnresolvedDependency(arg.value, unit=unit.name) from e
            elif arg.kind == "account":
                args.append(self._account(arg.value))
            else:
                args.append(arg.value)
        return args

    def _account(self, name: str) -> str:
        if name == "deployer" and "deployer" not in self.network.accounts:
            return self.deployer.sender
        return self.network.account(name)

    async def deploy(self, unit: DeploymentUnit) -> str:
        """Deploy a unit unless it is already recorded.

        Args:
            unit: Unit to deploy

        Returns:
            Address of the unit

        Raises:
            UnresolvedDependency: If a referenced unit is not deployed
            ConfigurationError: If an account, artifact or key is missing
            ConstructionFailed: If the deploy mechanism fails
        """
        existing = self.registry.address(self.network.name, unit.name)
        if existing is not None:
            self.log.info(f"Reusing {unit.name} at {existing}", extra={"unit": unit.name})
            self._finish(unit.name, UnitStatus.DEPLOYED, existing, reused=True)
            return existing

        self.status[unit.name] = UnitStatus.RESOLVING

        with traced_operation(
            "deploy_unit",
            {"unit.name": unit.name, "unit.contract": unit.artifact, "network": self.network.name},
        ):
            try:
                args = self.resolve_args(unit)
                request = ConstructionRequest(
                    name=unit.name,
                    contract=unit.artifact,
                    sender=self.deployer.sender,
                    args=args,
                    gas_limit=unit.gas_limit,
                )
                self.log.info(f"Deploying {unit.name} ({unit.artifact}) with args {args}")

                try:
                    receipt = await self.deployer.deploy(request)
                except SequencerError:
                    raise
                except Exception as e:
                    raise ConstructionFailed(unit.name, "deployer error", cause=e) from e

                self.registry.record(
                    self.network.name,
                    DeploymentRecord(
                        name=unit.name,
                        contract=unit.artifact,
                        address=receipt.address,
                        args=args,
                        transaction_hash=receipt.transaction_hash,
                        block_number=receipt.block_number,
                    ),
                )
                add_span_attribute("unit.address", receipt.address)
                if receipt.transaction_hash:
                    add_span_attribute("unit.transaction_hash", receipt.transaction_hash)
            except SequencerError as e:
                self.log.error(f"Failed to deploy {unit.name}: {e}", extra={"unit": unit.name})
                record_exception(e)
                self._finish(unit.name, UnitStatus.FAILED)
                raise

        self.log.info(f"Deployed {unit.name} at {receipt.address}", extra={"unit": unit.name})
        self._finish(unit.name, UnitStatus.DEPLOYED, receipt.address)
        return receipt.address

    async def run(
        self,
        units: Sequence[DeploymentUnit],
        order: Sequence[str] | None = None,
    ) -> DeploymentReport:
        """Deploy a set of units.

        The whole set is checked for cycles before anything is deployed.

        Args:
            units: Units to deploy
            order: Explicit order of unit names; topological order when None

        Returns:
            Report of every unit and the network's final address set

        Raises:
            CyclicDependency: If the units contain a cycle
            UnknownUnit: If the explicit order names an undeclared unit
            UnresolvedDependency: If a unit is reached before a unit it references
            ConstructionFailed: If a construction fails (earlier units stay recorded)
        """
        by_name = {unit.name: unit for unit in units}
        # The report covers this run only
        self.results = []

        if order is None:
            order = self.resolver.order(units)
        else:
            self.resolver.check_acyclic(units)
            for name in order:
                if name not in by_name:
                    raise UnknownUnit(name)

        for name in order:
            self.status.setdefault(name, UnitStatus.PENDING)

        self.log.info(f"Run {self.run_id} on {self.network.name}: {len(order)} units")
        await self.deployer.prepare(self.network)

        for name in order:
            await self.deploy(by_name[name])

        report = DeploymentReport(
            run_id=self.run_id,
            network=self.network.name,
            results=list(self.results),
            addresses=self.registry.addresses(self.network.name),
        )
        self.log.info(
            f"Run {self.run_id} complete: {len(report.deployed)} deployed, "
            f"{len(report.reused)} already deployed"
        )
        return report

    def _finish(
        self, name: str, status: UnitStatus, address: str | None = None, reused: bool = False
    ) -> None:
        self.status[name] = status
        self.results.append(UnitResult(name=name, status=status, address=address, reused=reused))
