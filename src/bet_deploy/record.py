from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from . import __version__
from .config import Settings
from .deploy import DeployedContract
from .explorer import VerificationResult

REQUIRED_KEYS = ("network", "chain_id", "contract", "deployment", "constructor")


def build_record(
    settings: Settings,
    chain_id: int,
    contract_name: str,
    source_name: str,
    deployed: DeployedContract,
    constructor_args: List[Any],
    confirmations: int,
    verification: Optional[VerificationResult] = None,
) -> Dict[str, Any]:
    # Never store rpc_url / keys: URLs often embed provider API keys.
    return {
        "metadata": {
            "tool": "bet-deploy",
            "version": __version__,
            "generated_at_utc": datetime.now(timezone.utc).isoformat(),
            "rpc_url_redacted": "(set via env/cli; not embedded)",
        },
        "network": settings.network.name,
        "chain_id": chain_id,
        "contract": {
            "name": contract_name,
            "source": source_name,
            "compiler_profile": settings.compiler_profile,
            "compiler_version": settings.compiler.version,
        },
        "deployment": {
            "address": deployed.address,
            "tx_hash": deployed.tx_hash,
            "block_number": deployed.block_number,
            "deployer": deployed.deployer,
            "gas_used": deployed.gas_used,
            "confirmations": confirmations,
        },
        "constructor": {
            # uint256 may exceed JSON's safe integer range; store as strings.
            "args": [str(a) for a in constructor_args],
            "encoded": deployed.encoded_args,
        },
        "verification": _verification_block(verification),
    }


def _verification_block(verification: Optional[VerificationResult]) -> Dict[str, Any]:
    if verification is None:
        return {"status": "skipped"}
    return {
        "status": verification.status,
        "guid": verification.guid,
        "explorer_url": verification.explorer_url,
    }


def write_record(path: str, record: Dict[str, Any]) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(record, f, indent=2)


def load_record(path: str) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        record = json.load(f)

    for key in REQUIRED_KEYS:
        if key not in record:
            raise RuntimeError(f"Deployment record {path} is missing {key!r}")
    if "address" not in record["deployment"]:
        raise RuntimeError(f"Deployment record {path} has no deployment address")
    if "encoded" not in record["constructor"]:
        raise RuntimeError(f"Deployment record {path} has no encoded constructor args")
    return record


def record_constructor_args(record: Dict[str, Any]) -> List[Any]:
    """Args as written, ints restored (addresses stay strings)."""
    out: List[Any] = []
    for a in record["constructor"].get("args", []):
        s = str(a)
        out.append(int(s) if s.isdigit() else s)
    return out


def update_verification(record: Dict[str, Any], verification: VerificationResult) -> Dict[str, Any]:
    record["verification"] = _verification_block(verification)
    return record


def set_verification_status(
    record: Dict[str, Any], status: str, error: Optional[str] = None
) -> Dict[str, Any]:
    """Marks an attempt that has no explorer result: "pending" or "failed"."""
    block: Dict[str, Any] = {"status": status}
    if error is not None:
        block["error"] = error
    record["verification"] = block
    return record
