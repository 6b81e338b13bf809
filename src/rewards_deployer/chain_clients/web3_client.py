"""
rewards_deployer.chain_clients.web3_client

web3.py implementation of the chain client boundary.

Responsibilities:
- Connect to the configured node (HTTP or WebSocket) and check the chain id.
- Build, sign (eth-account, local key) and submit transactions.
- Wait for the receipt with a finite timeout, then for the confirmation depth.
- Translate web3/provider exceptions into the deployment error taxonomy.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import Any

from eth_account import Account
from web3 import AsyncHTTPProvider, AsyncWeb3, WebSocketProvider
from web3.exceptions import (
    ContractLogicError,
    ProviderConnectionError,
    TimeExhausted,
    Web3Exception,
)
from web3.providers.persistent import PersistentConnectionProvider

from rewards_deployer.chain_clients.artifacts import ERC20_ABI, ContractArtifact
from rewards_deployer.models import TxReceipt
from rewards_deployer.observability.logging import get_logger
from rewards_deployer.orchestrator.clock import AsyncioClock, Clock
from rewards_deployer.orchestrator.errors import (
    CallReverted,
    ChainUnavailable,
    ConfirmationTimeout,
    DeploymentError,
    InsufficientBalance,
    TransactionRejected,
)
from rewards_deployer.settings import NetworkConfig

log = get_logger(__name__)

# Revert reasons used by OpenZeppelin-style ERC-20s when the sender is short.
_BALANCE_REVERT_MARKERS = ("exceeds balance", "insufficient balance")


def build_provider(rpc_url: str) -> Any:
    if rpc_url.startswith(("ws://", "wss://")):
        return WebSocketProvider(rpc_url)
    return AsyncHTTPProvider(rpc_url)


@contextmanager
def translate_errors(
    action: str, *, reverted: type[DeploymentError] = TransactionRejected
) -> Iterator[None]:
    try:
        yield
    except DeploymentError:
        raise
    except TimeExhausted as e:
        raise ConfirmationTimeout(f"{action}: confirmation not observed ({e})") from e
    except ContractLogicError as e:
        raise reverted(f"{action} reverted: {e}") from e
    except (ProviderConnectionError, OSError) as e:
        # OSError covers aiohttp/websocket connection failures and asyncio timeouts.
        raise ChainUnavailable(f"{action}: node unreachable ({e})") from e
    except Web3Exception as e:
        raise TransactionRejected(f"{action} rejected by node: {e}") from e


def _find_abi_entry(abi: Sequence[dict[str, Any]], kind: str, name: str | None, arity: int) -> dict[str, Any]:
    for entry in abi:
        if entry.get("type") != kind:
            continue
        if name is not None and entry.get("name") != name:
            continue
        if len(entry.get("inputs", [])) == arity:
            return entry
    return {}


def _label_outputs(entry: dict[str, Any], result: Any) -> Any:
    outputs = entry.get("outputs", [])
    if len(outputs) == 1 and outputs[0].get("type") == "tuple":
        outputs = outputs[0].get("components", [])
    elif len(outputs) <= 1:
        return result
    names = [o.get("name") for o in outputs]
    if all(names) and isinstance(result, (list, tuple)) and len(result) == len(names):
        return dict(zip(names, result))
    return result


class Web3ChainClient:
    """
    Signs with a single local key. One instance serves one run; nonces are read
    from the node's pending count before each transaction.
    """

    def __init__(
        self,
        *,
        network: NetworkConfig,
        private_key: str,
        clock: Clock | None = None,
        w3: AsyncWeb3 | None = None,
    ) -> None:
        self._network = network
        self._account = Account.from_key(private_key)
        self._clock = clock or AsyncioClock()
        self._w3 = w3 or AsyncWeb3(build_provider(network.rpc_url))

    @property
    def account_address(self) -> str:
        return self._account.address

    async def __aenter__(self) -> Web3ChainClient:
        await self.connect()
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    async def connect(self) -> None:
        with translate_errors("connect"):
            provider = self._w3.provider
            if isinstance(provider, PersistentConnectionProvider):
                await provider.connect()
            if not await self._w3.is_connected():
                raise ChainUnavailable(f"cannot reach node at {self._network.rpc_url}")
            chain_id = await self._w3.eth.chain_id
        if chain_id != self._network.chain_id:
            raise ChainUnavailable(
                f"node reports chain id {chain_id}, expected {self._network.chain_id}"
            )
        log.info("chain_connected", chain_id=chain_id, account=self.account_address)

    async def close(self) -> None:
        provider = self._w3.provider
        if isinstance(provider, PersistentConnectionProvider):
            await provider.disconnect()

    def _checksum_args(self, inputs: Sequence[dict[str, Any]], args: Sequence[Any]) -> list[Any]:
        out: list[Any] = []
        for param, value in zip(inputs, args):
            if param.get("type") == "address" and isinstance(value, str):
                value = self._w3.to_checksum_address(value)
            out.append(value)
        # Arity mismatches are left for web3 to report.
        out.extend(args[len(out):])
        return out

    async def deploy(
        self, artifact: ContractArtifact, constructor_args: Sequence[Any]
    ) -> tuple[str, TxReceipt]:
        action = f"deploy {artifact.contract_name}"
        entry = _find_abi_entry(artifact.abi, "constructor", None, len(constructor_args))
        args = self._checksum_args(entry.get("inputs", []), constructor_args)
        with translate_errors(action):
            contract = self._w3.eth.contract(abi=artifact.abi, bytecode=artifact.bytecode)
            receipt = await self._transact(action, contract.constructor(*args))
        if not receipt.contract_address:
            raise TransactionRejected(f"{action}: receipt has no contract address")
        return receipt.contract_address, receipt

    async def call(
        self, address: str, abi: list[dict[str, Any]], method: str, args: Sequence[Any] = ()
    ) -> Any:
        entry = _find_abi_entry(abi, "function", method, len(args))
        with translate_errors(f"call {method}", reverted=CallReverted):
            fn = self._bind(address, abi, method, entry, args)
            result = await fn.call()
        return _label_outputs(entry, result)

    async def send(
        self, address: str, abi: list[dict[str, Any]], method: str, args: Sequence[Any] = ()
    ) -> TxReceipt:
        entry = _find_abi_entry(abi, "function", method, len(args))
        with translate_errors(f"send {method}"):
            fn = self._bind(address, abi, method, entry, args)
            return await self._transact(method, fn)

    async def get_token_balance(self, token: str, owner: str) -> int:
        return int(await self.call(token, ERC20_ABI, "balanceOf", [owner]))

    async def transfer_token(self, token: str, to: str, amount: int) -> TxReceipt:
        try:
            return await self.send(token, ERC20_ABI, "transfer", [to, amount])
        except TransactionRejected as e:
            if any(marker in str(e).lower() for marker in _BALANCE_REVERT_MARKERS):
                raise InsufficientBalance(str(e), required=amount) from e
            raise

    def _bind(
        self,
        address: str,
        abi: list[dict[str, Any]],
        method: str,
        entry: dict[str, Any],
        args: Sequence[Any],
    ) -> Any:
        contract = self._w3.eth.contract(address=self._w3.to_checksum_address(address), abi=abi)
        return getattr(contract.functions, method)(*self._checksum_args(entry.get("inputs", []), args))

    async def _transact(self, action: str, fn: Any) -> TxReceipt:
        net = self._network
        params: dict[str, Any] = {
            "from": self.account_address,
            "nonce": await self._w3.eth.get_transaction_count(self.account_address, "pending"),
            "chainId": net.chain_id,
        }
        if net.gas_price_gwei is not None:
            params["gasPrice"] = self._w3.to_wei(net.gas_price_gwei, "gwei")

        # build_transaction estimates gas; a revert here means the call would fail on-chain.
        tx = await fn.build_transaction(params)
        signed = self._account.sign_transaction(tx)
        tx_hash = await self._w3.eth.send_raw_transaction(signed.raw_transaction)
        tx_hex = self._w3.to_hex(tx_hash)
        log.info("tx_submitted", action=action, tx_hash=tx_hex, nonce=params["nonce"])

        deadline = self._clock.monotonic() + net.confirmation_timeout_s
        raw = await self._w3.eth.wait_for_transaction_receipt(
            tx_hash, timeout=net.confirmation_timeout_s, poll_latency=net.poll_latency_s
        )
        receipt = TxReceipt(
            tx_hash=tx_hex,
            block_number=raw.get("blockNumber"),
            status=int(raw.get("status", 0)),
            contract_address=raw.get("contractAddress"),
            gas_used=raw.get("gasUsed"),
        )
        if receipt.status != 1:
            raise TransactionRejected(f"{action}: transaction {tx_hex} reverted on-chain")

        await self._wait_for_depth(action, receipt, deadline)
        log.info("tx_confirmed", action=action, tx_hash=tx_hex, block=receipt.block_number)
        return receipt

    async def _wait_for_depth(self, action: str, receipt: TxReceipt, deadline: float) -> None:
        if receipt.block_number is None:
            return
        while True:
            head = await self._w3.eth.block_number
            if head - receipt.block_number + 1 >= self._network.confirmations:
                return
            if self._clock.monotonic() >= deadline:
                raise ConfirmationTimeout(
                    f"{action}: {receipt.tx_hash} mined in block {receipt.block_number} "
                    f"but only {head - receipt.block_number + 1}/{self._network.confirmations} "
                    "confirmations observed"
                )
            await self._clock.sleep(self._network.poll_latency_s)


# --- Module Notes -----------------------------------------------------------
# A Timeout here is ambiguous: the transaction may still be mined. The orchestrator records
# it and requires operator confirmation before the step is ever re-sent.
