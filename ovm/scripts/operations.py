"""Network-scoped OVM operations.

Every entry point takes an explicit network key. The network and all address
arguments are validated before any chain call, so bad input never reaches
the chain. A ``client`` may be injected; otherwise a ``ChainClient`` is built
for the resolved endpoint.
"""

from __future__ import annotations

import logging
from typing import Any, Sequence

import discovery
import privilege_aggregator
import state_reader
import tx_builders
from chain_client import ChainClient
from chain_config import NetworkConfig, get_network_config
from discovery import Deployment, MembershipResult
from error_map import ERR_NOT_OVM, TransportError, ValidationError
from logs_engine import MAX_BLOCK_RANGE
from ovm_registry import DEFAULT_PRINCIPAL_THRESHOLD_GWEI
from preflight import (
    UINT64_MAX,
    normalize_pubkeys,
    parse_uint,
    validate_address,
    validate_role_names,
    validate_withdrawal_amounts,
)
from privilege_aggregator import PrivilegeRecord
from privileges import privilege_names
from rpc_transport import DEFAULT_RETRIES, DEFAULT_TIMEOUT_SECONDS
from state_reader import OvmState

logger = logging.getLogger(__name__)


def connect(
    network: str,
    *,
    rpc_url: str | None = None,
    client: Any = None,
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    retries: int = DEFAULT_RETRIES,
) -> tuple[NetworkConfig, Any]:
    config = get_network_config(network, rpc_url=rpc_url)
    if client is None:
        client = ChainClient(config.rpc_url, timeout_seconds=timeout_seconds, retries=retries)
    logger.debug("network=%s endpoint source=%s", config.key, config.rpc_endpoint_source)
    return config, client


def deployment_to_dict(deployment: Deployment) -> dict[str, Any]:
    return {
        "address": deployment.contract_address,
        "owner": deployment.owner_address,
        "deployedAt": f"Block {deployment.block_number}",
    }


def privilege_record_to_dict(record: PrivilegeRecord) -> dict[str, Any]:
    return {
        "address": record.address,
        "roles": privilege_names(record.privileges),
        "rolesValue": record.raw_value,
    }


def is_deployed_by_factory(
    address: str,
    network: str,
    *,
    rpc_url: str | None = None,
    client: Any = None,
    window: int = MAX_BLOCK_RANGE,
) -> MembershipResult:
    candidate = validate_address(address)
    config, client = connect(network, rpc_url=rpc_url, client=client)
    return discovery.check_membership(
        client,
        config.factory_address,
        candidate,
        start_block=config.deployment_block,
        window=window,
    )


def list_deployments(
    network: str,
    *,
    rpc_url: str | None = None,
    client: Any = None,
    window: int = MAX_BLOCK_RANGE,
) -> list[Deployment]:
    config, client = connect(network, rpc_url=rpc_url, client=client)
    return discovery.list_deployments(
        client,
        config.factory_address,
        start_block=config.deployment_block,
        window=window,
    )


def get_privileges(
    contract_address: str,
    network: str,
    target_address: str | None = None,
    *,
    rpc_url: str | None = None,
    client: Any = None,
    window: int = MAX_BLOCK_RANGE,
) -> list[PrivilegeRecord]:
    contract = validate_address(contract_address, field="contract_address")
    target = validate_address(target_address, field="target_address") if target_address else None
    _, client = connect(network, rpc_url=rpc_url, client=client)
    return privilege_aggregator.collect_privileges(client, contract, target, window=window)


def read_state(
    contract_address: str,
    network: str,
    *,
    rpc_url: str | None = None,
    client: Any = None,
) -> OvmState:
    contract = validate_address(contract_address, field="contract_address")
    _, client = connect(network, rpc_url=rpc_url, client=client)
    return state_reader.read_state(client, contract)


def query_contract(
    address: str,
    network: str,
    target_address: str | None = None,
    *,
    rpc_url: str | None = None,
    client: Any = None,
    window: int = MAX_BLOCK_RANGE,
) -> dict[str, Any]:
    """Membership, live state and role holders of one address in a single call."""
    contract = validate_address(address)
    target = validate_address(target_address, field="target_address") if target_address else None
    config, client = connect(network, rpc_url=rpc_url, client=client)

    membership = discovery.check_membership(
        client,
        config.factory_address,
        contract,
        start_block=config.deployment_block,
        window=window,
    )
    result: dict[str, Any] = {
        "address": contract,
        "network": config.key,
        "isOVM": membership.is_member,
    }
    if not membership.is_member:
        result["message"] = f"{contract} is not an OVM deployed by the {config.key} factory"
        if membership.error:
            result["error"] = membership.error
        return result

    state = state_reader.read_state(client, contract)
    records = privilege_aggregator.collect_privileges(client, contract, target, window=window)
    result["deployedAt"] = f"Block {membership.deployment_block}"
    result["state"] = state.to_display()
    result["roles"] = [privilege_record_to_dict(record) for record in records]
    result["launchpadUrl"] = config.launchpad_link(contract)
    return result


def _require_ovm(client: Any, config: NetworkConfig, contract: str, window: int) -> None:
    membership = discovery.check_membership(
        client,
        config.factory_address,
        contract,
        start_block=config.deployment_block,
        window=window,
    )
    if membership.indeterminate:
        raise TransportError(f"could not confirm {contract} is an OVM: {membership.error}")
    if not membership.is_member:
        raise ValidationError(
            f"{contract} is not an OVM deployed by the {config.key} factory",
            code=ERR_NOT_OVM,
        )


def prepare_deploy(
    network: str,
    *,
    owner: str,
    principal_recipient: str,
    reward_recipient: str,
    principal_threshold_gwei: Any = DEFAULT_PRINCIPAL_THRESHOLD_GWEI,
    rpc_url: str | None = None,
) -> dict[str, Any]:
    owner_addr = validate_address(owner, field="owner")
    principal = validate_address(principal_recipient, field="principal_recipient")
    reward = validate_address(reward_recipient, field="reward_recipient")
    threshold = parse_uint(principal_threshold_gwei, field="principal_threshold", max_value=UINT64_MAX)
    config = get_network_config(network, rpc_url=rpc_url)
    return tx_builders.build_deploy(
        factory_address=config.factory_address,
        owner=owner_addr,
        principal_recipient=principal,
        reward_recipient=reward,
        principal_threshold_gwei=threshold,
        rpc_url=config.rpc_url,
        network=config.key,
    )


def _prepare_roles_change(
    builder: Any,
    contract_address: str,
    network: str,
    *,
    target_address: str,
    roles: Sequence[str],
    rpc_url: str | None,
    client: Any,
    window: int,
) -> dict[str, Any]:
    contract = validate_address(contract_address, field="contract_address")
    target = validate_address(target_address, field="target_address")
    names = validate_role_names(roles)
    config, client = connect(network, rpc_url=rpc_url, client=client)
    _require_ovm(client, config, contract, window)
    return builder(ovm_address=contract, target_address=target, roles=names, rpc_url=config.rpc_url)


def prepare_grant_roles(
    contract_address: str,
    network: str,
    *,
    target_address: str,
    roles: Sequence[str],
    rpc_url: str | None = None,
    client: Any = None,
    window: int = MAX_BLOCK_RANGE,
) -> dict[str, Any]:
    return _prepare_roles_change(
        tx_builders.build_grant_roles,
        contract_address,
        network,
        target_address=target_address,
        roles=roles,
        rpc_url=rpc_url,
        client=client,
        window=window,
    )


def prepare_revoke_roles(
    contract_address: str,
    network: str,
    *,
    target_address: str,
    roles: Sequence[str],
    rpc_url: str | None = None,
    client: Any = None,
    window: int = MAX_BLOCK_RANGE,
) -> dict[str, Any]:
    return _prepare_roles_change(
        tx_builders.build_revoke_roles,
        contract_address,
        network,
        target_address=target_address,
        roles=roles,
        rpc_url=rpc_url,
        client=client,
        window=window,
    )


def prepare_distribute(
    contract_address: str,
    network: str,
    *,
    rpc_url: str | None = None,
    client: Any = None,
    window: int = MAX_BLOCK_RANGE,
) -> dict[str, Any]:
    contract = validate_address(contract_address, field="contract_address")
    config, client = connect(network, rpc_url=rpc_url, client=client)
    _require_ovm(client, config, contract, window)
    state = state_reader.read_state(client, contract).to_display()
    current = {key: state[key] for key in ("balance", "fundsPendingWithdrawal", "principalThreshold")}
    return tx_builders.build_distribute(ovm_address=contract, rpc_url=config.rpc_url, current_state=current)


def prepare_set_beneficiary(
    contract_address: str,
    network: str,
    *,
    new_beneficiary: str,
    rpc_url: str | None = None,
    client: Any = None,
    window: int = MAX_BLOCK_RANGE,
) -> dict[str, Any]:
    contract = validate_address(contract_address, field="contract_address")
    beneficiary = validate_address(new_beneficiary, field="new_beneficiary")
    config, client = connect(network, rpc_url=rpc_url, client=client)
    _require_ovm(client, config, contract, window)
    return tx_builders.build_set_beneficiary(
        ovm_address=contract, new_beneficiary=beneficiary, rpc_url=config.rpc_url
    )


def prepare_set_reward_recipient(
    contract_address: str,
    network: str,
    *,
    new_reward_recipient: str,
    rpc_url: str | None = None,
    client: Any = None,
    window: int = MAX_BLOCK_RANGE,
) -> dict[str, Any]:
    contract = validate_address(contract_address, field="contract_address")
    recipient = validate_address(new_reward_recipient, field="new_reward_recipient")
    config, client = connect(network, rpc_url=rpc_url, client=client)
    _require_ovm(client, config, contract, window)
    return tx_builders.build_set_reward_recipient(
        ovm_address=contract, new_reward_recipient=recipient, rpc_url=config.rpc_url
    )


def prepare_withdraw(
    contract_address: str,
    network: str,
    *,
    pubkeys: Sequence[str],
    amounts_gwei: Sequence[Any],
    max_fee_per_withdrawal: Any,
    excess_fee_recipient: str,
    rpc_url: str | None = None,
    client: Any = None,
    window: int = MAX_BLOCK_RANGE,
) -> dict[str, Any]:
    contract = validate_address(contract_address, field="contract_address")
    keys = normalize_pubkeys(pubkeys)
    amounts = validate_withdrawal_amounts(keys, amounts_gwei)
    max_fee = parse_uint(max_fee_per_withdrawal, field="max_fee_per_withdrawal")
    refund_to = validate_address(excess_fee_recipient, field="excess_fee_recipient")
    config, client = connect(network, rpc_url=rpc_url, client=client)
    _require_ovm(client, config, contract, window)
    return tx_builders.build_withdraw(
        ovm_address=contract,
        pubkeys=keys,
        amounts_gwei=amounts,
        max_fee_per_withdrawal=max_fee,
        excess_fee_recipient=refund_to,
        rpc_url=config.rpc_url,
    )
