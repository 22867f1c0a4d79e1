"""Shared test fixtures."""

import json
from pathlib import Path
from urllib.parse import parse_qs

import httpx
import pytest

# Hardhat/anvil development account #0; public, never holds real funds.
DEV_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
DEV_ADDRESS = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"

CONTRACT_ADDRESS = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
TX_HASH = "0x" + "ab" * 32

# ABI-encoded (WBTC, price feed, 7776000)
ENCODED_ARGS = (
    "0000000000000000000000001bfd67037b42cf73acf2047067bd4f2c47d9bfd6"
    "000000000000000000000000c907e116054ad103354f2d350fd2514433d57f6f"
    "000000000000000000000000000000000000000000000000000000000076a700"
)

CONSTRUCTOR_ABI = {
    "type": "constructor",
    "stateMutability": "nonpayable",
    "inputs": [
        {"name": "_token", "type": "address", "internalType": "address"},
        {"name": "_priceFeed", "type": "address", "internalType": "address"},
        {"name": "_duration", "type": "uint256", "internalType": "uint256"},
    ],
}


def write_artifacts(
    root: Path,
    solc_version: str = "0.8.17",
    runs: int = 1,
    via_ir: bool = False,
    bytecode: str = "0x6080604052348015600f57600080fd5b50",
    deployed_bytecode: str = "0x6080604052600080fd",
) -> Path:
    """Lays out Hardhat-style artifacts + build-info for BetOnBalaji under root."""
    contract_dir = root / "contracts" / "BetOnBalaji.sol"
    contract_dir.mkdir(parents=True)
    build_dir = root / "build-info"
    build_dir.mkdir()

    artifact = {
        "_format": "hh-sol-artifact-1",
        "contractName": "BetOnBalaji",
        "sourceName": "contracts/BetOnBalaji.sol",
        "abi": [CONSTRUCTOR_ABI],
        "bytecode": bytecode,
        "deployedBytecode": deployed_bytecode,
        "linkReferences": {},
        "deployedLinkReferences": {},
    }
    (contract_dir / "BetOnBalaji.json").write_text(json.dumps(artifact), encoding="utf-8")
    (contract_dir / "BetOnBalaji.dbg.json").write_text(
        json.dumps({"_format": "hh-sol-dbg-1", "buildInfo": "../../build-info/f00d.json"}),
        encoding="utf-8",
    )

    settings = {"optimizer": {"enabled": True, "runs": runs}}
    if via_ir:
        settings["viaIR"] = True
    build_info = {
        "_format": "hh-sol-build-info-1",
        "id": "f00d",
        "solcVersion": solc_version,
        "solcLongVersion": f"{solc_version}+commit.8df45f5f",
        "input": {
            "language": "Solidity",
            "sources": {"contracts/BetOnBalaji.sol": {"content": "contract BetOnBalaji {}"}},
            "settings": settings,
        },
        "output": {},
    }
    (build_dir / "f00d.json").write_text(json.dumps(build_info), encoding="utf-8")
    return root


class FakeChain:
    """JSON-RPC node double: mines the deployment at `deploy_block`, head advances per poll."""

    def __init__(
        self,
        chain_id: int = 137,
        deploy_block: int = 100,
        pending_polls: int = 1,
        status: str = "0x1",
        accounts=None,
        contract_address=CONTRACT_ADDRESS.lower(),
    ) -> None:
        self.chain_id = chain_id
        self.contract_address = contract_address
        self.deploy_block = deploy_block
        self.head = deploy_block
        self.pending_polls = pending_polls
        self.status = status
        self.accounts = accounts or []
        self.calls = []

    def params_of(self, method):
        return [params for m, params in self.calls if m == method]

    def _result(self, method, params):
        if method == "eth_chainId":
            return hex(self.chain_id)
        if method == "eth_blockNumber":
            self.head += 1
            return hex(self.head)
        if method == "eth_gasPrice":
            return hex(30_000_000_000)
        if method == "eth_getTransactionCount":
            return "0x7"
        if method == "eth_estimateGas":
            return hex(1_500_000)
        if method == "eth_accounts":
            return self.accounts
        if method in ("eth_sendRawTransaction", "eth_sendTransaction"):
            return TX_HASH
        if method == "eth_getTransactionReceipt":
            if self.pending_polls > 0:
                self.pending_polls -= 1
                return None
            return {
                "transactionHash": TX_HASH,
                "contractAddress": self.contract_address,
                "blockNumber": hex(self.deploy_block),
                "gasUsed": hex(1_234_567),
                "status": self.status,
            }
        raise AssertionError(f"unexpected RPC method {method}")

    def handler(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        method, params = body["method"], body.get("params", [])
        self.calls.append((method, params))
        return httpx.Response(
            200, json={"jsonrpc": "2.0", "id": body["id"], "result": self._result(method, params)}
        )

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


class FakeExplorer:
    """Etherscan-style API double."""

    def __init__(self, verified=False, submit_result=None, statuses=None) -> None:
        self.verified = verified
        self.submit_result = submit_result or {"status": "1", "message": "OK", "result": "guid-123"}
        self.statuses = list(statuses or ["Pending in queue", "Pass - Verified"])
        self.submissions = []
        self.requests = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.method == "POST":
            form = {k: v[0] for k, v in parse_qs(request.content.decode()).items()}
            self.submissions.append(form)
            return httpx.Response(200, json=self.submit_result)

        action = request.url.params["action"]
        if action == "getsourcecode":
            source = "contract BetOnBalaji {}" if self.verified else ""
            return httpx.Response(
                200, json={"status": "1", "message": "OK", "result": [{"SourceCode": source}]}
            )
        if action == "checkverifystatus":
            status = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
            ok = "1" if status.startswith("Pass") else "0"
            return httpx.Response(200, json={"status": ok, "message": "", "result": status})
        raise AssertionError(f"unexpected explorer action {action}")

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def artifacts_dir(tmp_path: Path) -> Path:
    return write_artifacts(tmp_path / "artifacts")


@pytest.fixture
def chain() -> FakeChain:
    return FakeChain()


@pytest.fixture
def explorer() -> FakeExplorer:
    return FakeExplorer()


@pytest.fixture
def clean_env(monkeypatch):
    for name in (
        "POLYGON_URL",
        "ACCOUNT_KEY",
        "POLYGONSCAN_API",
        "LOCAL_ACCOUNT_KEY",
        "COMPILER_PROFILE",
        "ARTIFACTS_DIR",
    ):
        monkeypatch.delenv(name, raising=False)
    # Keep a developer .env from leaking into tests.
    monkeypatch.setattr("bet_deploy.config.load_dotenv", lambda *a, **k: False)
    return monkeypatch
