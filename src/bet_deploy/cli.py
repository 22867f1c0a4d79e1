from __future__ import annotations

import argparse
import logging
from typing import Any, Dict, Optional

import httpx

from .artifacts import check_compiler_settings, load_artifact, load_build_info
from .config import Settings, resolve_artifacts_dir
from .deploy import ContractFactory, deploy_and_wait, encode_constructor_args
from .explorer import ExplorerClient, VerificationResult
from .networks import COMPILERS, NETWORKS
from .project_constants import (
    CONFIRMATIONS,
    CONSTRUCTOR_ARGS,
    CONTRACT_NAME,
    CONTRACT_SOURCE,
)
from .record import (
    build_record,
    load_record,
    record_constructor_args,
    set_verification_status,
    update_verification,
    write_record,
)
from .rpc import RpcClient
from .sizer import MAX_INITCODE_BYTES, MAX_RUNTIME_BYTES, contract_size


def setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")


def _settings(args: argparse.Namespace) -> Settings:
    return Settings.from_env(
        network=args.network,
        rpc_url_override=args.rpc_url,
        compiler_profile=args.compiler_profile,
        artifacts_dir=args.artifacts_dir,
    )


def _checked_build_info(settings: Settings):
    build_info = load_build_info(settings.artifacts_dir, CONTRACT_SOURCE, CONTRACT_NAME)
    problems = check_compiler_settings(build_info, settings.compiler)
    if problems:
        raise SystemExit(
            f"Artifacts were not built with compiler profile {settings.compiler_profile!r}:\n  "
            + "\n  ".join(problems)
            + "\nRecompile or pass the matching --compiler-profile."
        )
    return build_info


def _verify(
    settings: Settings,
    args: argparse.Namespace,
    address: str,
    build_info,
    encoded_args: str,
) -> VerificationResult:
    net = settings.network
    explorer = ExplorerClient(
        api_url=net.explorer_api_url,
        api_key=settings.require_explorer_api_key(),
        chain_id=net.chain_id,
        browser_url=net.explorer_browser_url,
        timeout_s=args.timeout,
    )
    try:
        return explorer.verify_contract(
            address,
            CONTRACT_SOURCE,
            CONTRACT_NAME,
            build_info,
            encoded_args,
            poll_interval_s=args.poll_interval,
        )
    finally:
        explorer.close()


def _verify_into_record(
    settings: Settings,
    args: argparse.Namespace,
    record: Dict[str, Any],
    path: str,
    build_info,
) -> VerificationResult:
    write_record(path, set_verification_status(record, "pending"))
    try:
        result = _verify(
            settings,
            args,
            record["deployment"]["address"],
            build_info,
            record["constructor"]["encoded"],
        )
    except (RuntimeError, httpx.HTTPError) as e:
        write_record(path, set_verification_status(record, "failed", error=str(e)))
        raise
    write_record(path, update_verification(record, result))
    return result


def cmd_deploy(args: argparse.Namespace) -> int:
    settings = _settings(args)
    log = logging.getLogger("deploy")

    artifact = load_artifact(settings.artifacts_dir, CONTRACT_SOURCE, CONTRACT_NAME)
    build_info = _checked_build_info(settings)

    verify = not args.no_verify and settings.network.has_explorer
    if verify:
        # Fail before spending gas, not after.
        settings.require_explorer_api_key()
    elif not args.no_verify:
        log.warning("Network %r has no explorer; skipping verification.", settings.network.name)

    rpc = RpcClient(settings.rpc_url, timeout_s=args.timeout)
    try:
        chain_id = rpc.chain_id()
        if chain_id != settings.network.chain_id:
            raise RuntimeError(
                f"RPC endpoint is on chain {chain_id}, "
                f"network {settings.network.name!r} expects {settings.network.chain_id}"
            )
        factory = ContractFactory(artifact, rpc)
        deployed = deploy_and_wait(
            factory,
            CONSTRUCTOR_ARGS,
            confirmations=args.confirmations,
            private_key=settings.private_key,
            gas_limit=settings.network.gas_limit,
            poll_interval_s=args.poll_interval,
            timeout_s=args.wait_timeout,
        )
    finally:
        rpc.close()

    print(f"Contract deployed to: {deployed.address}")

    record = build_record(
        settings,
        chain_id=chain_id,
        contract_name=CONTRACT_NAME,
        source_name=CONTRACT_SOURCE,
        deployed=deployed,
        constructor_args=CONSTRUCTOR_ARGS,
        confirmations=args.confirmations,
    )
    # Written before verification so a rejected verify can be retried from it.
    write_record(args.out, record)

    verification: Optional[VerificationResult] = None
    if verify:
        verification = _verify_into_record(settings, args, record, args.out, build_info)

    print("========================================")
    print(f"{CONTRACT_NAME} DEPLOYMENT")
    print("========================================")
    print(f"Network       : {settings.network.name} (chain {chain_id})")
    print(f"Address       : {deployed.address}")
    print(f"Tx hash       : {deployed.tx_hash}")
    print(f"Block         : {deployed.block_number}")
    print(f"Deployer      : {deployed.deployer}")
    print(f"Gas used      : {deployed.gas_used}")
    print(f"Constructor   : {', '.join(str(a) for a in CONSTRUCTOR_ARGS)}")
    print("----------------------------------------")
    if verification is None:
        print("Verification  : skipped")
    else:
        print(f"Verification  : {verification.status}")
        if verification.explorer_url:
            print(f"Explorer      : {verification.explorer_url}")
    print(f"Wrote record  : {args.out}")
    return 0


def cmd_verify(args: argparse.Namespace) -> int:
    settings = _settings(args)
    if not settings.network.has_explorer:
        raise SystemExit(f"Network {settings.network.name!r} has no explorer to verify on.")

    build_info = _checked_build_info(settings)

    if args.deployment:
        record = load_record(args.deployment)
        if record["network"] != settings.network.name:
            raise SystemExit(
                f"Record is for network {record['network']!r}, not {settings.network.name!r}"
            )
        logging.getLogger("verify").info(
            "Constructor args from record: %s", record_constructor_args(record)
        )
        result = _verify_into_record(settings, args, record, args.deployment, build_info)
    else:
        artifact = load_artifact(settings.artifacts_dir, CONTRACT_SOURCE, CONTRACT_NAME)
        encoded_args = encode_constructor_args(artifact, CONSTRUCTOR_ARGS)
        result = _verify(settings, args, args.address, build_info, encoded_args)

    print(f"Verification  : {result.status}")
    print(f"Address       : {result.address}")
    if result.explorer_url:
        print(f"Explorer      : {result.explorer_url}")
    return 0


def cmd_size(args: argparse.Namespace) -> int:
    artifacts_dir = resolve_artifacts_dir(args.artifacts_dir)
    artifact = load_artifact(artifacts_dir, CONTRACT_SOURCE, CONTRACT_NAME)
    size = contract_size(artifact)

    print(f"{'Contract':<20} {'Deployed (KiB)':>15} {'Initcode (KiB)':>15}")
    print(f"{size.name:<20} {size.deployed_kib:>15.3f} {size.initcode_kib:>15.3f}")
    if size.over_limit:
        print(
            f"Warning: exceeds limit (runtime {MAX_RUNTIME_BYTES} B, "
            f"initcode {MAX_INITCODE_BYTES} B); mainnet deployment will fail."
        )
        return 1
    return 0


def cmd_networks(args: argparse.Namespace) -> int:
    print("Networks:")
    for net in NETWORKS.values():
        url = net.rpc_url_env and f"${net.rpc_url_env}" or net.default_rpc_url
        extras = []
        if net.gas_limit:
            extras.append(f"gasLimit={net.gas_limit}")
        if net.has_explorer:
            extras.append(f"explorer key=${net.explorer_api_key_env}")
        print(f"  {net.name:<10} chain={net.chain_id:<6} rpc={url} {' '.join(extras)}".rstrip())
    print("Compiler profiles:")
    for name, c in COMPILERS.items():
        print(
            f"  {name:<10} solc={c.version} optimizer={'on' if c.optimizer_enabled else 'off'} "
            f"runs={c.optimizer_runs} viaIR={str(c.via_ir).lower()}"
        )
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="bet-deploy",
        description=f"Deploy {CONTRACT_NAME} and verify it on the block explorer.",
    )
    p.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    p.add_argument(
        "--network", default="polygon", choices=sorted(NETWORKS), help="Target network."
    )
    p.add_argument("--rpc-url", default=None, help="Override RPC URL (else use env).")
    p.add_argument("--timeout", type=float, default=60.0, help="HTTP timeout seconds.")
    p.add_argument(
        "--compiler-profile",
        default=None,
        choices=sorted(COMPILERS),
        help="Compiler settings the artifacts were built with (else $COMPILER_PROFILE).",
    )
    p.add_argument(
        "--artifacts-dir", default=None, help="Compiler artifacts dir (else $ARTIFACTS_DIR)."
    )
    p.add_argument(
        "--poll-interval", type=float, default=2.0, help="Seconds between status polls."
    )

    sub = p.add_subparsers(dest="cmd", required=True)

    d = sub.add_parser("deploy", help="Deploy, wait for confirmations, then verify.")
    d.add_argument(
        "--confirmations",
        type=int,
        default=CONFIRMATIONS,
        help=f"Blocks to wait before verifying (default {CONFIRMATIONS}).",
    )
    d.add_argument(
        "--wait-timeout", type=float, default=600.0, help="Max seconds to wait for blocks."
    )
    d.add_argument("--no-verify", action="store_true", help="Skip explorer verification.")
    d.add_argument("--out", default="deployment.json", help="Deployment record JSON path.")
    d.set_defaults(func=cmd_deploy)

    v = sub.add_parser("verify", help="Verify an already deployed contract.")
    src = v.add_mutually_exclusive_group(required=True)
    src.add_argument("--deployment", help="Path to deployment.json.")
    src.add_argument("--address", help="Contract address (uses the built-in constructor args).")
    v.set_defaults(func=cmd_verify)

    s = sub.add_parser("size", help="Report contract bytecode size against EVM limits.")
    s.set_defaults(func=cmd_size)

    n = sub.add_parser("networks", help="List networks and compiler profiles.")
    n.set_defaults(func=cmd_networks)

    return p


def main(argv: Optional[list] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)
    raise SystemExit(args.func(args))
