#!/usr/bin/env python3
"""Agent-facing JSON CLI for Obol Validator Manager (OVM) contracts."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Callable

# Local imports for script execution (python3 scripts/ovm_cli.py ...)
SCRIPT_DIR = Path(__file__).resolve().parent
if str(SCRIPT_DIR) not in sys.path:
    sys.path.insert(0, str(SCRIPT_DIR))

import operations  # noqa: E402
from chain_config import default_network, load_registry  # noqa: E402
from envelopes import build_error_payload, build_ok_payload, error_payload_from_exception  # noqa: E402
from error_map import ERR_INVALID_REQUEST, EXIT_INVALID, EXIT_OK, OvmError  # noqa: E402
from logs_engine import MAX_BLOCK_RANGE  # noqa: E402
from ovm_registry import DEFAULT_PRINCIPAL_THRESHOLD_GWEI  # noqa: E402
from privileges import ROLE_NAMES  # noqa: E402
from rpc_transport import DEFAULT_RETRIES, DEFAULT_TIMEOUT_SECONDS  # noqa: E402

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _json_dump(payload: Any, pretty: bool = True) -> str:
    return json.dumps(payload, indent=2 if pretty else None, sort_keys=False)


def _print_selected_value(value: Any, *, compact: bool) -> None:
    if isinstance(value, (dict, list)):
        print(_json_dump(value, pretty=not compact))
        return
    if value is None:
        print("null")
        return
    if isinstance(value, bool):
        print("true" if value else "false")
        return
    print(str(value))


def _render_output(*, payload: dict[str, Any], compact: bool, result_only: bool) -> None:
    if result_only and bool(payload.get("ok", False)):
        _print_selected_value(payload.get("result"), compact=compact)
        return
    print(_json_dump(payload, pretty=not compact))


def _execute(args: argparse.Namespace, method: str, fn: Callable[[], Any]) -> int:
    try:
        result = fn()
    except OvmError as err:
        exit_code, payload = error_payload_from_exception(method, err)
    except ValueError as err:
        exit_code = EXIT_INVALID
        payload = build_error_payload(method=method, code=ERR_INVALID_REQUEST, message=str(err))
    else:
        exit_code = EXIT_OK
        payload = build_ok_payload(method=method, result=result)
    _render_output(payload=payload, compact=bool(args.compact), result_only=bool(args.result_only))
    return int(exit_code)


def _client(args: argparse.Namespace) -> Any:
    _, client = operations.connect(
        args.network,
        rpc_url=args.rpc_url,
        timeout_seconds=args.timeout_seconds,
        retries=args.retries,
    )
    return client


def _split_list(values: list[str] | None) -> list[str]:
    out: list[str] = []
    for value in values or []:
        out.extend(part.strip() for part in value.split(",") if part.strip())
    return out


def cmd_networks(args: argparse.Namespace) -> int:
    def run() -> dict[str, Any]:
        registry = load_registry()
        return {
            "default": default_network(),
            "networks": [
                {
                    "key": cfg.key,
                    "name": cfg.name,
                    "chainId": cfg.chain_id,
                    "factoryAddress": cfg.factory_address,
                    "deploymentBlock": cfg.deployment_block,
                }
                for cfg in registry.values()
            ],
        }

    return _execute(args, "networks", run)


def cmd_query(args: argparse.Namespace) -> int:
    return _execute(
        args,
        "query",
        lambda: operations.query_contract(
            args.address,
            args.network,
            args.target,
            rpc_url=args.rpc_url,
            client=_client(args),
            window=args.window,
        ),
    )


def cmd_check(args: argparse.Namespace) -> int:
    def run() -> dict[str, Any]:
        membership = operations.is_deployed_by_factory(
            args.address, args.network, rpc_url=args.rpc_url, client=_client(args), window=args.window
        )
        result: dict[str, Any] = {
            "address": args.address,
            "network": args.network.lower(),
            "isOVM": membership.is_member,
            "deploymentBlock": membership.deployment_block,
        }
        if membership.indeterminate:
            result["indeterminate"] = True
            result["error"] = membership.error
        return result

    return _execute(args, "check", run)


def cmd_list(args: argparse.Namespace) -> int:
    def run() -> dict[str, Any]:
        deployments = operations.list_deployments(
            args.network, rpc_url=args.rpc_url, client=_client(args), window=args.window
        )
        return {
            "network": args.network.lower(),
            "count": len(deployments),
            "deployments": [operations.deployment_to_dict(item) for item in deployments],
        }

    return _execute(args, "list", run)


def cmd_roles(args: argparse.Namespace) -> int:
    def run() -> dict[str, Any]:
        records = operations.get_privileges(
            args.address,
            args.network,
            args.target,
            rpc_url=args.rpc_url,
            client=_client(args),
            window=args.window,
        )
        return {
            "address": args.address,
            "network": args.network.lower(),
            "roles": [operations.privilege_record_to_dict(record) for record in records],
        }

    return _execute(args, "roles", run)


def cmd_state(args: argparse.Namespace) -> int:
    def run() -> dict[str, Any]:
        state = operations.read_state(args.address, args.network, rpc_url=args.rpc_url, client=_client(args))
        return {"address": args.address, "network": args.network.lower(), **state.to_display()}

    return _execute(args, "state", run)


def cmd_deploy(args: argparse.Namespace) -> int:
    return _execute(
        args,
        "deploy",
        lambda: operations.prepare_deploy(
            args.network,
            owner=args.owner,
            principal_recipient=args.principal_recipient,
            reward_recipient=args.reward_recipient,
            principal_threshold_gwei=args.principal_threshold,
            rpc_url=args.rpc_url,
        ),
    )


def cmd_grant_roles(args: argparse.Namespace) -> int:
    return _execute(
        args,
        "grant-roles",
        lambda: operations.prepare_grant_roles(
            args.address,
            args.network,
            target_address=args.target,
            roles=_split_list(args.roles),
            rpc_url=args.rpc_url,
            client=_client(args),
            window=args.window,
        ),
    )


def cmd_revoke_roles(args: argparse.Namespace) -> int:
    return _execute(
        args,
        "revoke-roles",
        lambda: operations.prepare_revoke_roles(
            args.address,
            args.network,
            target_address=args.target,
            roles=_split_list(args.roles),
            rpc_url=args.rpc_url,
            client=_client(args),
            window=args.window,
        ),
    )


def cmd_distribute(args: argparse.Namespace) -> int:
    return _execute(
        args,
        "distribute",
        lambda: operations.prepare_distribute(
            args.address, args.network, rpc_url=args.rpc_url, client=_client(args), window=args.window
        ),
    )


def cmd_set_beneficiary(args: argparse.Namespace) -> int:
    return _execute(
        args,
        "set-beneficiary",
        lambda: operations.prepare_set_beneficiary(
            args.address,
            args.network,
            new_beneficiary=args.beneficiary,
            rpc_url=args.rpc_url,
            client=_client(args),
            window=args.window,
        ),
    )


def cmd_set_reward_recipient(args: argparse.Namespace) -> int:
    return _execute(
        args,
        "set-reward-recipient",
        lambda: operations.prepare_set_reward_recipient(
            args.address,
            args.network,
            new_reward_recipient=args.reward_recipient,
            rpc_url=args.rpc_url,
            client=_client(args),
            window=args.window,
        ),
    )


def cmd_withdraw(args: argparse.Namespace) -> int:
    return _execute(
        args,
        "withdraw",
        lambda: operations.prepare_withdraw(
            args.address,
            args.network,
            pubkeys=_split_list(args.pubkeys),
            amounts_gwei=_split_list(args.amounts),
            max_fee_per_withdrawal=args.max_fee,
            excess_fee_recipient=args.excess_fee_recipient,
            rpc_url=args.rpc_url,
            client=_client(args),
            window=args.window,
        ),
    )


def _add_output_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--compact", action="store_true", help="compact JSON output")
    parser.add_argument("--result-only", action="store_true", help="print only result field")
    parser.add_argument("--verbose", action="store_true", help="debug logging on stderr")


def _add_network_args(parser: argparse.ArgumentParser, *, scans: bool = True) -> None:
    parser.add_argument("--network", default=default_network(), help="network key from the registry")
    parser.add_argument("--rpc-url", help="override the RPC endpoint (else ETH_RPC_URL, else registry)")
    parser.add_argument("--timeout-seconds", type=float, default=DEFAULT_TIMEOUT_SECONDS)
    parser.add_argument("--retries", type=int, default=DEFAULT_RETRIES)
    if scans:
        parser.add_argument("--window", type=int, default=MAX_BLOCK_RANGE, help="max blocks per eth_getLogs")
    _add_output_args(parser)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__)
    sub = parser.add_subparsers(dest="command", required=True)

    networks_parser = sub.add_parser("networks", help="List configured networks")
    _add_output_args(networks_parser)
    networks_parser.set_defaults(func=cmd_networks)

    query_parser = sub.add_parser("query", help="Membership, state and role holders of an address")
    query_parser.add_argument("address")
    query_parser.add_argument("--target", help="only report roles of this address")
    _add_network_args(query_parser)
    query_parser.set_defaults(func=cmd_query)

    check_parser = sub.add_parser("check", help="Check whether an address was deployed by the factory")
    check_parser.add_argument("address")
    _add_network_args(check_parser)
    check_parser.set_defaults(func=cmd_check)

    list_parser = sub.add_parser("list", help="List every OVM deployed by the factory")
    _add_network_args(list_parser)
    list_parser.set_defaults(func=cmd_list)

    roles_parser = sub.add_parser("roles", help="Current role holders of an OVM")
    roles_parser.add_argument("address")
    roles_parser.add_argument("--target", help="only report roles of this address")
    _add_network_args(roles_parser)
    roles_parser.set_defaults(func=cmd_roles)

    state_parser = sub.add_parser("state", help="Read OVM state fields and balance")
    state_parser.add_argument("address")
    _add_network_args(state_parser, scans=False)
    state_parser.set_defaults(func=cmd_state)

    deploy_parser = sub.add_parser("deploy", help="Build a factory deployment transaction")
    deploy_parser.add_argument("--owner", required=True)
    deploy_parser.add_argument("--principal-recipient", required=True)
    deploy_parser.add_argument("--reward-recipient", required=True)
    deploy_parser.add_argument(
        "--principal-threshold",
        default=str(DEFAULT_PRINCIPAL_THRESHOLD_GWEI),
        help="principal threshold in gwei (default 16 ETH)",
    )
    _add_network_args(deploy_parser, scans=False)
    deploy_parser.set_defaults(func=cmd_deploy)

    for name, func, verb in (
        ("grant-roles", cmd_grant_roles, "grant"),
        ("revoke-roles", cmd_revoke_roles, "revoke"),
    ):
        roles_change = sub.add_parser(name, help=f"Build a {verb}Roles transaction")
        roles_change.add_argument("address")
        roles_change.add_argument("--target", required=True, help="account whose roles change")
        roles_change.add_argument(
            "--roles", nargs="+", required=True, help=f"role names: {', '.join(ROLE_NAMES)}"
        )
        _add_network_args(roles_change)
        roles_change.set_defaults(func=func)

    distribute_parser = sub.add_parser("distribute", help="Build a distributeFunds transaction")
    distribute_parser.add_argument("address")
    _add_network_args(distribute_parser)
    distribute_parser.set_defaults(func=cmd_distribute)

    beneficiary_parser = sub.add_parser("set-beneficiary", help="Build a setBeneficiary transaction")
    beneficiary_parser.add_argument("address")
    beneficiary_parser.add_argument("--beneficiary", required=True)
    _add_network_args(beneficiary_parser)
    beneficiary_parser.set_defaults(func=cmd_set_beneficiary)

    reward_parser = sub.add_parser("set-reward-recipient", help="Build a setRewardRecipient transaction")
    reward_parser.add_argument("address")
    reward_parser.add_argument("--reward-recipient", required=True)
    _add_network_args(reward_parser)
    reward_parser.set_defaults(func=cmd_set_reward_recipient)

    withdraw_parser = sub.add_parser("withdraw", help="Build an EIP-7002 withdrawal transaction")
    withdraw_parser.add_argument("address")
    withdraw_parser.add_argument("--pubkeys", nargs="+", required=True, help="48-byte validator pubkeys")
    withdraw_parser.add_argument("--amounts", nargs="+", required=True, help="amounts in gwei, one per pubkey")
    withdraw_parser.add_argument("--max-fee", required=True, help="max fee per withdrawal in wei")
    withdraw_parser.add_argument("--excess-fee-recipient", required=True)
    _add_network_args(withdraw_parser)
    withdraw_parser.set_defaults(func=cmd_withdraw)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format=LOG_FORMAT,
        stream=sys.stderr,
    )
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
