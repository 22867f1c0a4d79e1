from __future__ import annotations

from dataclasses import dataclass

from .artifacts import ContractArtifact

# EIP-170 / EIP-3860
MAX_RUNTIME_BYTES = 24576
MAX_INITCODE_BYTES = 2 * MAX_RUNTIME_BYTES


def _hex_len(code: str) -> int:
    body = code[2:] if code.startswith("0x") else code
    return len(body) // 2


@dataclass(frozen=True)
class ContractSize:
    name: str
    deployed_bytes: int
    initcode_bytes: int

    @property
    def deployed_kib(self) -> float:
        return round(self.deployed_bytes / 1024, 3)

    @property
    def initcode_kib(self) -> float:
        return round(self.initcode_bytes / 1024, 3)

    @property
    def over_limit(self) -> bool:
        return (
            self.deployed_bytes > MAX_RUNTIME_BYTES
            or self.initcode_bytes > MAX_INITCODE_BYTES
        )


def contract_size(artifact: ContractArtifact) -> ContractSize:
    return ContractSize(
        name=artifact.contract_name,
        deployed_bytes=_hex_len(artifact.deployed_bytecode),
        initcode_bytes=_hex_len(artifact.bytecode),
    )
