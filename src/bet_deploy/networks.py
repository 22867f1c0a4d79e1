from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional


@dataclass(frozen=True)
class CompilerConfig:
    version: str
    optimizer_enabled: bool
    optimizer_runs: int
    via_ir: bool = False


@dataclass(frozen=True)
class NetworkConfig:
    name: str
    chain_id: int
    default_rpc_url: Optional[str] = None
    rpc_url_env: Optional[str] = None
    account_key_env: Optional[str] = None
    explorer_api_key_env: Optional[str] = None
    explorer_api_url: Optional[str] = None
    explorer_browser_url: Optional[str] = None
    gas_limit: Optional[int] = None
    # Local dev nodes sign for their own unlocked accounts.
    require_account: bool = True

    @property
    def has_explorer(self) -> bool:
        return bool(self.explorer_api_url)


# Two build profiles exist; artifacts must be compiled with the one selected.
COMPILERS: Dict[str, CompilerConfig] = {
    "default": CompilerConfig(version="0.8.17", optimizer_enabled=True, optimizer_runs=1),
    "via-ir": CompilerConfig(
        version="0.8.20", optimizer_enabled=True, optimizer_runs=200, via_ir=True
    ),
}

NETWORKS: Dict[str, NetworkConfig] = {
    "hardhat": NetworkConfig(
        name="hardhat",
        chain_id=31337,
        default_rpc_url="http://127.0.0.1:8545",
        account_key_env="LOCAL_ACCOUNT_KEY",
        gas_limit=205000,
        require_account=False,
    ),
    "polygon": NetworkConfig(
        name="polygon",
        chain_id=137,
        rpc_url_env="POLYGON_URL",
        account_key_env="ACCOUNT_KEY",
        explorer_api_key_env="POLYGONSCAN_API",
        explorer_api_url="https://api.etherscan.io/v2/api",
        explorer_browser_url="https://polygonscan.com",
    ),
}

DEFAULT_COMPILER_PROFILE = "default"


def get_network(name: str) -> NetworkConfig:
    try:
        return NETWORKS[name]
    except KeyError:
        raise RuntimeError(
            f"Unknown network {name!r}. Known networks: {', '.join(sorted(NETWORKS))}"
        ) from None


def get_compiler(profile: str) -> CompilerConfig:
    try:
        return COMPILERS[profile]
    except KeyError:
        raise RuntimeError(
            f"Unknown compiler profile {profile!r}. "
            f"Known profiles: {', '.join(sorted(COMPILERS))}"
        ) from None
