from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import find_dotenv, load_dotenv

from .networks import (
    DEFAULT_COMPILER_PROFILE,
    CompilerConfig,
    NetworkConfig,
    get_compiler,
    get_network,
)


def _load_env() -> None:
    # .env is looked up from the working directory, where the CLI is run.
    load_dotenv(find_dotenv(usecwd=True))


def _env(name: Optional[str]) -> str:
    if not name:
        return ""
    return os.getenv(name, "").strip()


@dataclass(frozen=True)
class Settings:
    network: NetworkConfig
    rpc_url: str
    compiler_profile: str
    compiler: CompilerConfig
    artifacts_dir: str = "artifacts"
    private_key: Optional[str] = None
    explorer_api_key: Optional[str] = None

    @staticmethod
    def from_env(
        network: str,
        rpc_url_override: str | None = None,
        compiler_profile: str | None = None,
        artifacts_dir: str | None = None,
    ) -> "Settings":
        _load_env()
        net = get_network(network)

        # --rpc-url wins, then the network's env var, then its built-in URL.
        rpc_url = (rpc_url_override or "").strip() or _env(net.rpc_url_env)
        if not rpc_url:
            rpc_url = net.default_rpc_url or ""
        if not rpc_url:
            raise RuntimeError(
                f"Missing {net.rpc_url_env} for network {net.name!r}. "
                "Put it in .env, export it, or pass --rpc-url."
            )

        private_key = _env(net.account_key_env) or None
        if net.require_account and not private_key:
            raise RuntimeError(
                f"Missing {net.account_key_env} for network {net.name!r}. "
                "Put it in .env or export it."
            )

        profile = (
            compiler_profile
            or _env("COMPILER_PROFILE")
            or DEFAULT_COMPILER_PROFILE
        )

        return Settings(
            network=net,
            rpc_url=rpc_url,
            compiler_profile=profile,
            compiler=get_compiler(profile),
            artifacts_dir=resolve_artifacts_dir(artifacts_dir),
            private_key=private_key,
            explorer_api_key=_env(net.explorer_api_key_env) or None,
        )

    def require_explorer_api_key(self) -> str:
        if not self.explorer_api_key:
            raise RuntimeError(
                f"Missing {self.network.explorer_api_key_env} for verification on "
                f"{self.network.name!r}. Put it in .env or export it."
            )
        return self.explorer_api_key


def resolve_artifacts_dir(override: str | None = None) -> str:
    """--artifacts-dir, else ARTIFACTS_DIR from env/.env, else ./artifacts."""
    if override:
        return override
    _load_env()
    return _env("ARTIFACTS_DIR") or "artifacts"
