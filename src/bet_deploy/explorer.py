from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import httpx

from .artifacts import BuildInfo

log = logging.getLogger(__name__)

PENDING = "Pending in queue"
VERIFIED = "Pass - Verified"
ALREADY_VERIFIED = "Already Verified"


class VerificationError(RuntimeError):
    pass


@dataclass(frozen=True)
class VerificationResult:
    address: str
    guid: Optional[str]
    status: str
    explorer_url: Optional[str] = None


class ExplorerClient:
    """Etherscan-compatible contract verification API (v2, chain selected by chainid)."""

    def __init__(
        self,
        api_url: str,
        api_key: str,
        chain_id: int,
        browser_url: str | None = None,
        timeout_s: float = 60.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.api_url = api_url
        self.api_key = api_key
        self.chain_id = chain_id
        self.browser_url = browser_url
        self.client = httpx.Client(timeout=timeout_s, transport=transport)

    def close(self) -> None:
        self.client.close()

    def _params(self, **extra: Any) -> Dict[str, Any]:
        params: Dict[str, Any] = {"chainid": self.chain_id, "apikey": self.api_key}
        params.update(extra)
        return params

    def _get(self, **params: Any) -> Dict[str, Any]:
        resp = self.client.get(self.api_url, params=self._params(**params))
        resp.raise_for_status()
        return resp.json()

    def contract_url(self, address: str) -> Optional[str]:
        if not self.browser_url:
            return None
        return f"{self.browser_url}/address/{address}#code"

    def is_verified(self, address: str) -> bool:
        data = self._get(module="contract", action="getsourcecode", address=address)
        result = data.get("result")
        if data.get("status") != "1" or not isinstance(result, list) or not result:
            return False
        return bool(result[0].get("SourceCode"))

    def submit_verification(
        self,
        address: str,
        source_name: str,
        contract_name: str,
        build_info: BuildInfo,
        encoded_args: str,
    ) -> Optional[str]:
        """Returns the GUID to poll, or None if the explorer already has the source."""
        form = {
            "module": "contract",
            "action": "verifysourcecode",
            "contractaddress": address,
            "sourceCode": json.dumps(build_info.input),
            "codeformat": "solidity-standard-json-input",
            "contractname": f"{source_name}:{contract_name}",
            "compilerversion": f"v{build_info.solc_long_version}",
            # Explorer's own spelling of the field.
            "constructorArguements": encoded_args.removeprefix("0x"),
        }
        resp = self.client.post(
            self.api_url,
            params={"chainid": self.chain_id},
            data={**form, "apikey": self.api_key},
        )
        resp.raise_for_status()
        data = resp.json()
        result = str(data.get("result", ""))

        if data.get("status") == "1":
            return result
        if "already verified" in result.lower():
            return None
        raise VerificationError(f"Explorer rejected verification of {address}: {result}")

    def check_status(self, guid: str) -> str:
        data = self._get(module="contract", action="checkverifystatus", guid=guid)
        return str(data.get("result", ""))

    def wait_for_verification(
        self,
        guid: str,
        poll_interval_s: float = 3.0,
        timeout_s: float = 300.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> str:
        deadline = time.monotonic() + timeout_s
        while True:
            status = self.check_status(guid)
            if status != PENDING:
                break
            if time.monotonic() >= deadline:
                raise VerificationError(f"Verification {guid} still pending after {timeout_s:.0f}s")
            sleep(poll_interval_s)

        if status in (VERIFIED, ALREADY_VERIFIED):
            return status
        raise VerificationError(f"Verification {guid} failed: {status}")

    def verify_contract(
        self,
        address: str,
        source_name: str,
        contract_name: str,
        build_info: BuildInfo,
        encoded_args: str,
        poll_interval_s: float = 3.0,
        timeout_s: float = 300.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> VerificationResult:
        url = self.contract_url(address)
        if self.is_verified(address):
            log.info("%s is already verified", address)
            return VerificationResult(address, None, ALREADY_VERIFIED, url)

        guid = self.submit_verification(
            address, source_name, contract_name, build_info, encoded_args
        )
        if guid is None:
            log.info("%s is already verified", address)
            return VerificationResult(address, None, ALREADY_VERIFIED, url)

        log.info("Verification submitted (guid %s)", guid)
        status = self.wait_for_verification(guid, poll_interval_s, timeout_s, sleep)
        log.info("Verification status: %s", status)
        return VerificationResult(address, guid, status, url)
