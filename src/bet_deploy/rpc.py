from __future__ import annotations

import itertools
from typing import Any, Dict, List, Optional

import httpx


def _to_int(value: str) -> int:
    return int(value, 16)


class RpcClient:
    def __init__(
        self,
        rpc_url: str,
        timeout_s: float = 60.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.rpc_url = rpc_url
        self.client = httpx.Client(timeout=timeout_s, transport=transport)
        self._ids = itertools.count(1)

    def close(self) -> None:
        self.client.close()

    def _post(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        resp = self.client.post(self.rpc_url, json=payload)
        resp.raise_for_status()
        data = resp.json()
        if "error" in data:
            raise RuntimeError(f"RPC error: {data['error']}")
        return data

    def call(self, method: str, params: Optional[List[Any]] = None) -> Any:
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params or [],
        }
        return self._post(payload).get("result")

    def _call_int(self, method: str, params: Optional[List[Any]] = None) -> int:
        result = self.call(method, params)
        if result is None:
            raise RuntimeError(f"{method} returned no result")
        return _to_int(result)

    def chain_id(self) -> int:
        return self._call_int("eth_chainId")

    def block_number(self) -> int:
        return self._call_int("eth_blockNumber")

    def gas_price(self) -> int:
        return self._call_int("eth_gasPrice")

    def get_transaction_count(self, address: str, block: str = "pending") -> int:
        return self._call_int("eth_getTransactionCount", [address, block])

    def estimate_gas(self, tx: Dict[str, Any]) -> int:
        return self._call_int("eth_estimateGas", [tx])

    def accounts(self) -> List[str]:
        return list(self.call("eth_accounts") or [])

    def send_raw_transaction(self, raw_tx: str) -> str:
        return self.call("eth_sendRawTransaction", [raw_tx])

    def send_transaction(self, tx: Dict[str, Any]) -> str:
        """Sends through an account the node holds unlocked (dev nodes only)."""
        return self.call("eth_sendTransaction", [tx])

    def get_transaction_receipt(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        """Returns None while the transaction is still pending."""
        return self.call("eth_getTransactionReceipt", [tx_hash])
