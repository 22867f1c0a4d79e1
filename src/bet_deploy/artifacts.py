from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List

from .networks import CompilerConfig


@dataclass(frozen=True)
class ContractArtifact:
    contract_name: str
    source_name: str
    abi: List[Dict[str, Any]]
    bytecode: str
    deployed_bytecode: str
    link_references: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class BuildInfo:
    solc_version: str
    solc_long_version: str
    input: Dict[str, Any]

    @property
    def settings(self) -> Dict[str, Any]:
        return self.input.get("settings", {})


def _artifact_path(artifacts_dir: str, source_name: str, contract_name: str) -> str:
    # Hardhat layout: artifacts/contracts/Foo.sol/Foo.json
    return os.path.join(artifacts_dir, source_name, f"{contract_name}.json")


def _read_json(path: str, what: str) -> Dict[str, Any]:
    if not os.path.exists(path):
        raise RuntimeError(f"{what} not found: {path}. Compile the contracts first.")
    with open(path, "r", encoding="utf-8") as f:
        try:
            return json.load(f)
        except json.JSONDecodeError as e:
            raise RuntimeError(f"{what} is not valid JSON ({path}): {e}") from e


def load_artifact(
    artifacts_dir: str, source_name: str, contract_name: str
) -> ContractArtifact:
    path = _artifact_path(artifacts_dir, source_name, contract_name)
    data = _read_json(path, "Artifact")

    abi = data.get("abi")
    if not isinstance(abi, list):
        raise RuntimeError(f"ABI not found in artifact {path}")

    bytecode = data.get("bytecode") or ""
    if isinstance(bytecode, dict):
        # Foundry nests it as {"object": "0x..."}
        bytecode = bytecode.get("object") or ""
    if bytecode in ("", "0x"):
        raise RuntimeError(
            f"{contract_name} has no creation bytecode (abstract contract or interface?)"
        )
    if not bytecode.startswith("0x"):
        bytecode = "0x" + bytecode

    deployed = data.get("deployedBytecode") or "0x"
    if isinstance(deployed, dict):
        deployed = deployed.get("object") or "0x"
    if not deployed.startswith("0x"):
        deployed = "0x" + deployed

    return ContractArtifact(
        contract_name=data.get("contractName", contract_name),
        source_name=data.get("sourceName", source_name),
        abi=abi,
        bytecode=bytecode,
        deployed_bytecode=deployed,
        link_references=data.get("linkReferences") or {},
    )


def load_build_info(artifacts_dir: str, source_name: str, contract_name: str) -> BuildInfo:
    """
    Follows <Contract>.dbg.json to the build-info file that produced the artifact.
    The build-info carries the exact solc standard JSON input the explorer needs.
    """
    artifact_path = _artifact_path(artifacts_dir, source_name, contract_name)
    dbg_path = artifact_path[: -len(".json")] + ".dbg.json"
    dbg = _read_json(dbg_path, "Debug file")

    rel = dbg.get("buildInfo")
    if not isinstance(rel, str):
        raise RuntimeError(f"No buildInfo pointer in {dbg_path}")
    build_info_path = os.path.normpath(os.path.join(os.path.dirname(dbg_path), rel))
    data = _read_json(build_info_path, "Build info")

    try:
        return BuildInfo(
            solc_version=data["solcVersion"],
            solc_long_version=data["solcLongVersion"],
            input=data["input"],
        )
    except KeyError as e:
        raise RuntimeError(f"Build info {build_info_path} is missing {e}") from e


def check_compiler_settings(build_info: BuildInfo, compiler: CompilerConfig) -> List[str]:
    """Returns human-readable mismatches between build-info and the selected profile."""
    problems: List[str] = []
    settings = build_info.settings
    optimizer = settings.get("optimizer", {})

    if build_info.solc_version != compiler.version:
        problems.append(
            f"solc version: artifacts={build_info.solc_version} config={compiler.version}"
        )
    if bool(optimizer.get("enabled", False)) != compiler.optimizer_enabled:
        problems.append(
            f"optimizer enabled: artifacts={bool(optimizer.get('enabled', False))} "
            f"config={compiler.optimizer_enabled}"
        )
    # solc defaults to 200 runs when unset
    runs = int(optimizer.get("runs", 200))
    if compiler.optimizer_enabled and runs != compiler.optimizer_runs:
        problems.append(f"optimizer runs: artifacts={runs} config={compiler.optimizer_runs}")
    via_ir = bool(settings.get("viaIR", False))
    if via_ir != compiler.via_ir:
        problems.append(f"viaIR: artifacts={via_ir} config={compiler.via_ir}")
    return problems


def constructor_types(abi: List[Dict[str, Any]]) -> List[str]:
    for item in abi:
        if item.get("type") == "constructor":
            return [inp["type"] for inp in item.get("inputs", [])]
    # No explicit constructor means no arguments.
    return []
