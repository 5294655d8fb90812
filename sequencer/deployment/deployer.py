"""Contract deployers - the mechanism that actually constructs contracts."""

import logging
from abc import ABC, abstractmethod

from eth_account import Account
from eth_account.signers.local import LocalAccount
from eth_utils import keccak, to_checksum_address
from web3 import AsyncHTTPProvider, AsyncWeb3, Web3
from web3.exceptions import TimeExhausted

from ..config import DeploymentSettings
from ..core.exceptions import ConfigurationError, ConstructionFailed
from .artifacts import ArtifactStore
from .models import ConstructionReceipt, ConstructionRequest, NetworkConfig

logger = logging.getLogger(__name__)

# Hardhat's first default account, used as the simulated sender.
DEFAULT_SIMULATED_SENDER = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"


# ============================================================================
# Base Deployer Interface
# ============================================================================


class ContractDeployer(ABC):
    """Base class for contract deployers."""

    @property
    @abstractmethod
    def sender(self) -> str:
        """Address of the account that sends construction transactions."""
        pass

    async def prepare(self, network: NetworkConfig) -> None:
        """Check the deployer can reach the network before a run.

        Args:
            network: Target network
        """
        return None

    @abstractmethod
    async def deploy(self, request: ConstructionRequest) -> ConstructionReceipt:
        """Construct a contract and wait for confirmation.

        Args:
            request: Contract, sender and resolved constructor arguments

        Returns:
            Receipt with the deployed address

        Raises:
            ConstructionFailed: If construction fails
        """
        pass


# ============================================================================
# Web3 Deployer
# ============================================================================


class Web3ContractDeployer(ContractDeployer):
    """Deploy through a JSON-RPC node, signing locally."""

    def __init__(
        self,
        w3: AsyncWeb3,
        account: LocalAccount,
        artifacts: ArtifactStore,
        gas_price_gwei: float | None = None,
        timeout: float = 120.0,
        poll_latency: float = 0.5,
    ):
        """Initialize web3 deployer.

        Args:
            w3: Async web3 client
            account: Signing account
            artifacts: Where to find contract ABIs and bytecode
            gas_price_gwei: Fixed legacy gas price; node default when None
            timeout: Seconds to wait for a receipt
            poll_latency: Seconds between receipt polls
        """
        self.w3 = w3
        self.account = account
        self.artifacts = artifacts
        self.gas_price_gwei = gas_price_gwei
        self.timeout = timeout
        self.poll_latency = poll_latency

    @classmethod
    def from_settings(
        cls, network: NetworkConfig, settings: DeploymentSettings
    ) -> "Web3ContractDeployer":
        """Build a deployer from DEPLOY_* settings.

        Raises:
            ConfigurationError: If no private key or RPC URL is available
        """
        if settings.private_key is None:
            raise ConfigurationError(
                "DEPLOY_PRIVATE_KEY is required to deploy (use --dry-run to simulate)"
            )

        rpc_url = settings.rpc_url or network.rpc_url
        if not rpc_url:
            raise ConfigurationError(
                f"No RPC URL for network '{network.name}' (set rpc_url or DEPLOY_RPC_URL)"
            )

        account = Account.from_key(settings.private_key.get_secret_value())
        w3 = AsyncWeb3(AsyncHTTPProvider(rpc_url))

        return cls(
            w3,
            account,
            ArtifactStore(settings.artifacts_dir),
            gas_price_gwei=settings.gas_price_gwei,
            timeout=settings.confirmation_timeout,
            poll_latency=settings.poll_latency,
        )

    @property
    def sender(self) -> str:
        return self.account.address

    async def prepare(self, network: NetworkConfig) -> None:
        """Verify the node is reachable and serves the expected chain.

        Raises:
            ConfigurationError: If the node is down or on another chain
        """
        if not await self.w3.is_connected():
            raise ConfigurationError(f"Cannot reach RPC endpoint for network '{network.name}'")

        chain_id = await self.w3.eth.chain_id
        if chain_id != network.chain_id:
            raise ConfigurationError(
                f"Network '{network.name}' expects chain id {network.chain_id}, "
                f"node reports {chain_id}"
            )

        logger.info(f"Connected to {network.name} (chain {chain_id}) as {self.sender}")

    async def deploy(self, request: ConstructionRequest) -> ConstructionReceipt:
        """Build, sign and send the construction transaction, then wait for it.

        Args:
            request: Construction request

        Returns:
            Receipt with the deployed address

        Raises:
            ConfigurationError: If the artifact is missing or the argument count is wrong
            ConstructionFailed: If sending fails, times out or the constructor reverts
        """
        artifact = self.artifacts.load(request.contract)

        expected = len(artifact.constructor_inputs)
        if expected != len(request.args):
            raise ConfigurationError(
                f"{request.contract} constructor takes {expected} arguments, "
                f"{len(request.args)} given for unit '{request.name}'"
            )

        factory = self.w3.eth.contract(abi=artifact.abi, bytecode=artifact.bytecode)

        try:
            tx_params = {
                "from": self.sender,
                "nonce": await self.w3.eth.get_transaction_count(self.sender, "pending"),
            }
            if request.gas_limit:
                tx_params["gas"] = request.gas_limit
            if self.gas_price_gwei is not None:
                tx_params["gasPrice"] = Web3.to_wei(self.gas_price_gwei, "gwei")

            tx = await factory.constructor(*request.args).build_transaction(tx_params)
            signed = self.account.sign_transaction(tx)
            tx_hash = await self.w3.eth.send_raw_transaction(signed.raw_transaction)
            logger.info(f"Sent construction of {request.name}: {Web3.to_hex(tx_hash)}")

            receipt = await self.w3.eth.wait_for_transaction_receipt(
                tx_hash, timeout=self.timeout, poll_latency=self.poll_latency
            )
        except TimeExhausted as e:
            raise ConstructionFailed(
                request.name, f"no receipt within {self.timeout}s", cause=e
            ) from e
        except Exception as e:
            raise ConstructionFailed(request.name, "transaction error", cause=e) from e

        tx_hex = Web3.to_hex(tx_hash)
        if receipt["status"] != 1 or not receipt.get("contractAddress"):
            raise ConstructionFailed(request.name, f"constructor reverted in {tx_hex}")

        return ConstructionReceipt(
            address=receipt["contractAddress"],
            transaction_hash=tx_hex,
            block_number=receipt["blockNumber"],
            gas_used=receipt["gasUsed"],
        )


# ============================================================================
# Simulated Deployer (dry runs)
# ============================================================================


class SimulatedDeployer(ContractDeployer):
    """Pretend to deploy, deriving stable addresses from the request.

    The same (chain id, sender, unit name) always yields the same address.
    """

    def __init__(self, chain_id: int = 31337, sender: str = DEFAULT_SIMULATED_SENDER):
        self.chain_id = chain_id
        self._sender = to_checksum_address(sender)
        self.requests: list[ConstructionRequest] = []

    @property
    def sender(self) -> str:
        return self._sender

    async def deploy(self, request: ConstructionRequest) -> ConstructionReceipt:
        self.requests.append(request)

        seed = f"{self.chain_id}:{request.sender}:{request.name}"
        address = to_checksum_address(keccak(text=seed)[12:])
        tx_hash = Web3.to_hex(keccak(text=f"{seed}:tx"))

        logger.debug(f"Simulated construction of {request.name} at {address}")
        return ConstructionReceipt(
            address=address,
            transaction_hash=tx_hash,
            block_number=len(self.requests),
            gas_used=0,
        )
