from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence

from eth_abi import encode
from eth_account import Account
from eth_utils import to_checksum_address, to_hex

from .artifacts import ContractArtifact, constructor_types
from .rpc import RpcClient

log = logging.getLogger(__name__)


def encode_constructor_args(artifact: ContractArtifact, args: Sequence[Any]) -> str:
    """ABI-encodes constructor args; hex without 0x, the form explorers expect."""
    types = constructor_types(artifact.abi)
    if len(types) != len(args):
        raise RuntimeError(
            f"{artifact.contract_name} constructor takes {len(types)} "
            f"argument(s) ({', '.join(types) or 'none'}), got {len(args)}"
        )
    return encode(types, list(args)).hex()


@dataclass(frozen=True)
class Deployment:
    tx_hash: str
    deployer: str
    encoded_args: str  # hex, no 0x prefix (explorer format)


@dataclass(frozen=True)
class DeployedContract:
    address: str
    tx_hash: str
    block_number: int
    deployer: str
    encoded_args: str
    gas_used: int


class ContractFactory:
    def __init__(self, artifact: ContractArtifact, rpc: RpcClient) -> None:
        if artifact.link_references:
            raise RuntimeError(
                f"{artifact.contract_name} needs linked libraries "
                f"({', '.join(artifact.link_references)}); linking is not supported."
            )
        self.artifact = artifact
        self.rpc = rpc

    def encode_constructor_args(self, args: Sequence[Any]) -> str:
        return encode_constructor_args(self.artifact, args)

    def deploy(
        self,
        args: Sequence[Any],
        private_key: Optional[str] = None,
        gas_limit: Optional[int] = None,
    ) -> Deployment:
        encoded_args = self.encode_constructor_args(args)
        data = self.artifact.bytecode + encoded_args

        if private_key:
            account = Account.from_key(private_key)
            sender = account.address
        else:
            accounts = self.rpc.accounts()
            if not accounts:
                raise RuntimeError("No account key configured and the node exposes no accounts.")
            account = None
            sender = to_checksum_address(accounts[0])

        gas = gas_limit
        if gas is None:
            gas = self.rpc.estimate_gas({"from": sender, "data": data})
        log.debug("Gas limit: %d (%s)", gas, "override" if gas_limit else "estimated")

        if account is None:
            tx_hash = self.rpc.send_transaction(
                {"from": sender, "data": data, "gas": hex(gas)}
            )
        else:
            tx: Dict[str, Any] = {
                "nonce": self.rpc.get_transaction_count(sender),
                "gasPrice": self.rpc.gas_price(),
                "gas": gas,
                "value": 0,
                "data": data,
                "chainId": self.rpc.chain_id(),
            }
            signed = account.sign_transaction(tx)
            tx_hash = self.rpc.send_raw_transaction(to_hex(signed.raw_transaction))

        log.info("Deployment tx sent: %s (from %s)", tx_hash, sender)
        return Deployment(tx_hash=tx_hash, deployer=sender, encoded_args=encoded_args)


def wait_for_receipt(
    rpc: RpcClient,
    tx_hash: str,
    poll_interval_s: float = 2.0,
    timeout_s: float = 600.0,
    sleep: Callable[[float], None] = time.sleep,
) -> Dict[str, Any]:
    deadline = time.monotonic() + timeout_s
    while True:
        receipt = rpc.get_transaction_receipt(tx_hash)
        if receipt is not None:
            break
        if time.monotonic() >= deadline:
            raise RuntimeError(f"Transaction {tx_hash} not mined after {timeout_s:.0f}s")
        sleep(poll_interval_s)

    if int(receipt.get("status", "0x1"), 16) != 1:
        raise RuntimeError(f"Deployment transaction {tx_hash} reverted.")
    if not receipt.get("contractAddress"):
        raise RuntimeError(f"Receipt for {tx_hash} has no contractAddress.")
    return receipt


def wait_for_confirmations(
    rpc: RpcClient,
    receipt_block: int,
    confirmations: int,
    poll_interval_s: float = 2.0,
    timeout_s: float = 600.0,
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    """
    Blocks until `confirmations` blocks sit on top of (and including) receipt_block.
    The mining block is confirmation #1. Returns the head seen last.
    """
    if confirmations <= 1:
        return receipt_block

    target = receipt_block + confirmations - 1
    deadline = time.monotonic() + timeout_s
    while True:
        head = rpc.block_number()
        if head >= target:
            return head
        log.debug("Confirmations: %d/%d", head - receipt_block + 1, confirmations)
        if time.monotonic() >= deadline:
            raise RuntimeError(
                f"Only {head - receipt_block + 1}/{confirmations} confirmations "
                f"after {timeout_s:.0f}s"
            )
        sleep(poll_interval_s)


def deploy_and_wait(
    factory: ContractFactory,
    args: List[Any],
    confirmations: int,
    private_key: Optional[str] = None,
    gas_limit: Optional[int] = None,
    poll_interval_s: float = 2.0,
    timeout_s: float = 600.0,
    sleep: Callable[[float], None] = time.sleep,
) -> DeployedContract:
    deployment = factory.deploy(args, private_key=private_key, gas_limit=gas_limit)
    receipt = wait_for_receipt(
        factory.rpc, deployment.tx_hash, poll_interval_s, timeout_s, sleep
    )
    address = to_checksum_address(receipt["contractAddress"])
    block = int(receipt["blockNumber"], 16)
    log.info("Contract deployed to: %s (block %d)", address, block)

    log.info("Waiting for %d confirmations...", confirmations)
    wait_for_confirmations(
        factory.rpc, block, confirmations, poll_interval_s, timeout_s, sleep
    )

    return DeployedContract(
        address=address,
        tx_hash=deployment.tx_hash,
        block_number=block,
        deployer=deployment.deployer,
        encoded_args=deployment.encoded_args,
        gas_used=int(receipt.get("gasUsed", "0x0"), 16),
    )
