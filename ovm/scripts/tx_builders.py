"""Calldata and `cast send` command builders for OVM write operations.

Nothing here signs or broadcasts. Each builder returns the transaction fields
an external signer needs plus an equivalent Foundry ``cast send`` command with
a ``$PRIVATE_KEY`` placeholder.
"""

from __future__ import annotations

from typing import Any, Sequence

from abi_codec import encode_call
from ovm_registry import (
    CREATE_OVM_SIG,
    DISTRIBUTE_FUNDS_SIG,
    GRANT_ROLES_SIG,
    REVOKE_ROLES_SIG,
    SET_BENEFICIARY_SIG,
    SET_REWARD_RECIPIENT_SIG,
    WITHDRAW_SIG,
)
from privileges import encode_privileges

CAST_LINE_JOIN = " \\\n  "


def _cast_arg(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        return f'"[{",".join(str(item) for item in value)}]"'
    return str(value)


def format_cast_send(
    to: str,
    signature: str,
    args: Sequence[Any],
    *,
    rpc_url: str,
    value: int = 0,
) -> str:
    lines = [f"cast send {to}", f'"{signature}"']
    if args:
        lines.append(" ".join(_cast_arg(arg) for arg in args))
    if value:
        lines.append(f"--value {value}")
    lines.append(f"--rpc-url {rpc_url}")
    lines.append("--private-key $PRIVATE_KEY")
    return CAST_LINE_JOIN.join(lines)


def wallet_instructions(to: str, data: str, value_wei: int, *, extra: Sequence[str] = ()) -> str:
    amount = f"{value_wei} Wei" if value_wei else "0 ETH"
    steps = [
        "Open your wallet and start a new 'Send'",
        f"To: {to}",
        f"Amount: {amount}",
        "Open the hex data field",
        f"Paste: {data}",
        "Confirm transaction",
        *extra,
    ]
    return "\n".join(f"{idx}. {step}" for idx, step in enumerate(steps, start=1))


def _build(
    *,
    operation: str,
    to: str,
    signature: str,
    args: list[Any],
    rpc_url: str,
    description: str,
    message: str,
    value: int = 0,
    fields: dict[str, Any] | None = None,
    extra_instructions: Sequence[str] = (),
) -> dict[str, Any]:
    call = encode_call(signature, args)
    payload: dict[str, Any] = {"operation": operation}
    payload.update(fields or {})
    payload["transactionData"] = {
        "to": to,
        "data": call["calldata"],
        "value": str(value),
        "description": description,
    }
    payload["castCommand"] = format_cast_send(to, call["signature"], args, rpc_url=rpc_url, value=value)
    payload["walletInstructions"] = wallet_instructions(to, call["calldata"], value, extra=extra_instructions)
    payload["message"] = message
    return payload


def build_deploy(
    *,
    factory_address: str,
    owner: str,
    principal_recipient: str,
    reward_recipient: str,
    principal_threshold_gwei: int,
    rpc_url: str,
    network: str,
) -> dict[str, Any]:
    return _build(
        operation="deploy",
        to=factory_address,
        signature=CREATE_OVM_SIG,
        args=[owner, principal_recipient, reward_recipient, principal_threshold_gwei],
        rpc_url=rpc_url,
        description=f"Deploy new OVM with owner {owner}",
        message="Ready to deploy. Use the cast command or wallet instructions above.",
        fields={
            "network": network,
            "factoryAddress": factory_address,
            "parameters": {
                "owner": owner,
                "principalRecipient": principal_recipient,
                "rewardRecipient": reward_recipient,
                "principalThresholdGwei": principal_threshold_gwei,
            },
        },
        extra_instructions=["The new OVM address will be in the transaction receipt logs"],
    )


def _build_roles_change(
    *,
    operation: str,
    signature: str,
    verb: str,
    ovm_address: str,
    target_address: str,
    roles: list[str],
    rpc_url: str,
) -> dict[str, Any]:
    roles_value = encode_privileges(roles)
    return _build(
        operation=operation,
        to=ovm_address,
        signature=signature,
        args=[target_address, roles_value],
        rpc_url=rpc_url,
        description=f"{verb} roles {', '.join(roles)} {'to' if verb == 'Grant' else 'from'} {target_address}",
        message="Ready to execute. Requires owner permissions on the OVM.",
        fields={
            "ovmAddress": ovm_address,
            "targetAddress": target_address,
            "roles": roles,
            "rolesValue": roles_value,
        },
    )


def build_grant_roles(*, ovm_address: str, target_address: str, roles: list[str], rpc_url: str) -> dict[str, Any]:
    return _build_roles_change(
        operation="grantRoles",
        signature=GRANT_ROLES_SIG,
        verb="Grant",
        ovm_address=ovm_address,
        target_address=target_address,
        roles=roles,
        rpc_url=rpc_url,
    )


def build_revoke_roles(*, ovm_address: str, target_address: str, roles: list[str], rpc_url: str) -> dict[str, Any]:
    return _build_roles_change(
        operation="revokeRoles",
        signature=REVOKE_ROLES_SIG,
        verb="Revoke",
        ovm_address=ovm_address,
        target_address=target_address,
        roles=roles,
        rpc_url=rpc_url,
    )


def build_distribute(*, ovm_address: str, rpc_url: str, current_state: dict[str, Any] | None = None) -> dict[str, Any]:
    fields: dict[str, Any] = {"ovmAddress": ovm_address}
    if current_state is not None:
        fields["currentState"] = current_state
    return _build(
        operation="distributeFunds",
        to=ovm_address,
        signature=DISTRIBUTE_FUNDS_SIG,
        args=[],
        rpc_url=rpc_url,
        description="Distribute accumulated funds to principal and reward recipients",
        message="Ready to distribute. Anyone can call this function.",
        fields=fields,
    )


def build_set_beneficiary(*, ovm_address: str, new_beneficiary: str, rpc_url: str) -> dict[str, Any]:
    return _build(
        operation="setBeneficiary",
        to=ovm_address,
        signature=SET_BENEFICIARY_SIG,
        args=[new_beneficiary],
        rpc_url=rpc_url,
        description=f"Set beneficiary to {new_beneficiary}",
        message="Ready to execute. Requires SET_BENEFICIARY_ROLE.",
        fields={"ovmAddress": ovm_address, "newBeneficiary": new_beneficiary},
    )


def build_set_reward_recipient(*, ovm_address: str, new_reward_recipient: str, rpc_url: str) -> dict[str, Any]:
    return _build(
        operation="setRewardRecipient",
        to=ovm_address,
        signature=SET_REWARD_RECIPIENT_SIG,
        args=[new_reward_recipient],
        rpc_url=rpc_url,
        description=f"Set reward recipient to {new_reward_recipient}",
        message="Ready to execute. Requires SET_REWARD_ROLE.",
        fields={"ovmAddress": ovm_address, "newRewardRecipient": new_reward_recipient},
    )


def build_withdraw(
    *,
    ovm_address: str,
    pubkeys: list[str],
    amounts_gwei: list[int],
    max_fee_per_withdrawal: int,
    excess_fee_recipient: str,
    rpc_url: str,
) -> dict[str, Any]:
    """EIP-7002 withdrawal request; ``value`` covers the worst-case fee per key."""
    total_fee = max_fee_per_withdrawal * len(pubkeys)
    return _build(
        operation="withdraw",
        to=ovm_address,
        signature=WITHDRAW_SIG,
        args=[pubkeys, amounts_gwei, max_fee_per_withdrawal, excess_fee_recipient],
        rpc_url=rpc_url,
        value=total_fee,
        description=f"Request withdrawal for {len(pubkeys)} validator(s)",
        message="Ready to execute. Requires WITHDRAWAL_ROLE and ETH for fees.",
        fields={
            "ovmAddress": ovm_address,
            "validatorCount": len(pubkeys),
            "pubkeys": pubkeys,
            "amounts": [str(amount) for amount in amounts_gwei],
            "maxFeePerWithdrawal": str(max_fee_per_withdrawal),
            "totalFeeRequired": str(total_fee),
            "excessFeeRecipient": excess_fee_recipient,
        },
    )
