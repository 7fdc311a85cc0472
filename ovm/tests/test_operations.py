from __future__ import annotations

import pytest

import operations
from error_map import (
    ERR_INVALID_ADDRESS,
    ERR_NOT_OVM,
    ERR_UNKNOWN_NETWORK,
    ERR_UNKNOWN_ROLE,
    ConfigError,
    TransportError,
    ValidationError,
)
from privileges import FULL_PRIVILEGES

from ._ovm_helpers import (
    MAINNET_DEPLOYMENT_BLOCK,
    MAINNET_FACTORY,
    OPERATOR,
    OVM_A,
    OVM_B,
    OWNER,
    PUBKEY,
    RECIPIENT,
    FakeChainClient,
    create_event,
    roles_event,
)

ETH = 10**18
DEPLOYED_AT = MAINNET_DEPLOYMENT_BLOCK + 5


@pytest.fixture(autouse=True)
def _no_env_endpoint(monkeypatch):
    monkeypatch.delenv("ETH_RPC_URL", raising=False)
    monkeypatch.delenv("OVM_NETWORKS_FILE", raising=False)


def _client() -> FakeChainClient:
    client = FakeChainClient(latest=MAINNET_DEPLOYMENT_BLOCK + 100)
    client.add_event(MAINNET_FACTORY, create_event(OVM_A, OWNER, DEPLOYED_AT))
    client.set_field(OVM_A, "owner()", OWNER)
    client.set_field(OVM_A, "principalRecipient()", RECIPIENT)
    client.set_field(OVM_A, "rewardRecipient()", RECIPIENT)
    client.set_field(OVM_A, "principalThreshold()", 16 * 10**9)
    client.set_field(OVM_A, "fundsPendingWithdrawal()", 0)
    client.set_field(OVM_A, "amountOfPrincipalStake()", 32 * ETH)
    client.set_field(OVM_A, "version()", "1.0.0")
    client.balances[OVM_A.lower()] = 2 * ETH
    return client


def test_membership_scans_from_network_deployment_block():
    client = _client()
    result = operations.is_deployed_by_factory(OVM_A, "mainnet", client=client)
    assert result.is_member is True
    assert result.deployment_block == DEPLOYED_AT
    assert client.log_calls[0] == (MAINNET_FACTORY.lower(), MAINNET_DEPLOYMENT_BLOCK, MAINNET_DEPLOYMENT_BLOCK + 100)


def test_unknown_network_fails_before_any_call():
    client = _client()
    with pytest.raises(ConfigError) as excinfo:
        operations.is_deployed_by_factory(OVM_A, "goerli", client=client)
    assert excinfo.value.code == ERR_UNKNOWN_NETWORK
    assert client.latest_calls == 0


def test_malformed_address_fails_before_any_call():
    client = _client()
    with pytest.raises(ValidationError) as excinfo:
        operations.read_state("0x1234", "mainnet", client=client)
    assert excinfo.value.code == ERR_INVALID_ADDRESS
    assert client.read_calls == []


def test_bad_checksum_is_rejected():
    client = _client()
    with pytest.raises(ValidationError, match="checksum") as excinfo:
        operations.is_deployed_by_factory(MAINNET_FACTORY.replace("c", "C", 1), "mainnet", client=client)
    assert excinfo.value.code == ERR_INVALID_ADDRESS
    assert client.latest_calls == 0
    assert client.log_calls == []


def test_single_case_addresses_skip_checksum():
    result = operations.is_deployed_by_factory(MAINNET_FACTORY.lower(), "mainnet", client=_client())
    assert result.is_member is False
    upper = "0x" + MAINNET_FACTORY[2:].upper()
    assert operations.is_deployed_by_factory(upper, "mainnet", client=_client()).is_member is False


def test_list_deployments_for_network():
    client = _client()
    client.add_event(MAINNET_FACTORY, create_event(OVM_B, OPERATOR, DEPLOYED_AT + 1))
    deployments = operations.list_deployments("mainnet", client=client)
    assert [operations.deployment_to_dict(item) for item in deployments] == [
        {"address": OVM_A, "owner": OWNER, "deployedAt": f"Block {DEPLOYED_AT}"},
        {"address": OVM_B, "owner": OPERATOR, "deployedAt": f"Block {DEPLOYED_AT + 1}"},
    ]


def test_get_privileges_merges_owner():
    client = _client()
    client.add_event(OVM_A, roles_event(OVM_A, OPERATOR, 0x01, 10))
    client.set_field(OVM_A, "rolesOf(address)", 0x01, (OPERATOR,))
    records = operations.get_privileges(OVM_A, "mainnet", client=client)
    assert [operations.privilege_record_to_dict(record) for record in records] == [
        {"address": OWNER, "roles": list(records[0].privileges.names()), "rolesValue": FULL_PRIVILEGES},
        {"address": OPERATOR, "roles": ["WITHDRAWAL_ROLE"], "rolesValue": 1},
    ]


def test_query_contract_combines_everything():
    result = operations.query_contract(OVM_A, "mainnet", client=_client())
    assert result["isOVM"] is True
    assert result["deployedAt"] == f"Block {DEPLOYED_AT}"
    assert result["state"]["balance"] == "2 ETH"
    assert result["roles"][0]["address"] == OWNER
    assert result["launchpadUrl"] == f"https://launchpad.obol.org/cluster/list?search={OVM_A}"


def test_query_contract_for_non_member_skips_reads():
    client = _client()
    result = operations.query_contract(OVM_B, "mainnet", client=client)
    assert result["isOVM"] is False
    assert "not an OVM" in result["message"]
    assert client.read_calls == []


def test_prepare_deploy_defaults_threshold_to_16_eth():
    op = operations.prepare_deploy("hoodi", owner=OWNER, principal_recipient=RECIPIENT, reward_recipient=RECIPIENT)
    assert op["transactionData"]["to"] == "0x5754C8665B7e7BF15E83fCdF6d9636684B782b12"
    assert op["parameters"]["principalThresholdGwei"] == 16 * 10**9
    assert "--rpc-url https://ethereum-hoodi-rpc.publicnode.com" in op["castCommand"]


def test_prepare_deploy_uses_explicit_rpc_url_in_command():
    op = operations.prepare_deploy(
        "mainnet",
        owner=OWNER,
        principal_recipient=RECIPIENT,
        reward_recipient=RECIPIENT,
        principal_threshold_gwei="32000000000",
        rpc_url="http://my-node:8545",
    )
    assert "--rpc-url http://my-node:8545" in op["castCommand"]
    assert op["parameters"]["principalThresholdGwei"] == 32 * 10**9


def test_write_builders_require_membership():
    with pytest.raises(ValidationError) as excinfo:
        operations.prepare_distribute(OVM_B, "mainnet", client=_client())
    assert excinfo.value.code == ERR_NOT_OVM


def test_write_builders_surface_failed_membership_scan():
    client = _client()
    client.log_errors[(MAINNET_DEPLOYMENT_BLOCK, MAINNET_DEPLOYMENT_BLOCK + 100)] = TransportError("http error 500")
    with pytest.raises(TransportError, match="could not confirm"):
        operations.prepare_set_beneficiary(OVM_A, "mainnet", new_beneficiary=OWNER, client=client)


def test_prepare_grant_roles_rejects_unknown_role_names():
    client = _client()
    with pytest.raises(ValidationError) as excinfo:
        operations.prepare_grant_roles(OVM_A, "mainnet", target_address=OPERATOR, roles=["ADMIN"], client=client)
    assert excinfo.value.code == ERR_UNKNOWN_ROLE
    assert client.log_calls == []


def test_prepare_grant_roles():
    op = operations.prepare_grant_roles(
        OVM_A, "mainnet", target_address=OPERATOR, roles=["WITHDRAWAL_ROLE", "SET_REWARD_ROLE"], client=_client()
    )
    assert op["rolesValue"] == 0x11
    assert op["transactionData"]["to"] == OVM_A


def test_prepare_distribute_includes_current_state():
    op = operations.prepare_distribute(OVM_A, "mainnet", client=_client())
    assert op["currentState"] == {
        "balance": "2 ETH",
        "fundsPendingWithdrawal": "0 ETH",
        "principalThreshold": "16 ETH",
    }


def test_prepare_withdraw_normalizes_pubkeys():
    op = operations.prepare_withdraw(
        OVM_A,
        "mainnet",
        pubkeys=[PUBKEY[2:].upper()],
        amounts_gwei=["1000000000"],
        max_fee_per_withdrawal="0x10",
        excess_fee_recipient=OWNER,
        client=_client(),
    )
    assert op["pubkeys"] == [PUBKEY]
    assert op["transactionData"]["value"] == "16"


@pytest.mark.parametrize(
    "pubkeys,amounts,message",
    [
        ([], [], "at least one validator pubkey"),
        (["0x1234"], ["1"], "48 bytes"),
        ([PUBKEY], ["1", "2"], "must match amounts length"),
        ([PUBKEY], [str(1 << 64)], "exceeds"),
    ],
)
def test_prepare_withdraw_validation(pubkeys, amounts, message):
    client = _client()
    with pytest.raises(ValidationError, match=message):
        operations.prepare_withdraw(
            OVM_A,
            "mainnet",
            pubkeys=pubkeys,
            amounts_gwei=amounts,
            max_fee_per_withdrawal=1,
            excess_fee_recipient=OWNER,
            client=client,
        )
    assert client.log_calls == []


def test_prepare_recipient_updates():
    beneficiary = operations.prepare_set_beneficiary(OVM_A, "mainnet", new_beneficiary=OPERATOR, client=_client())
    assert beneficiary["newBeneficiary"] == OPERATOR
    assert beneficiary["transactionData"]["data"].startswith(
        operations.tx_builders.encode_call("setBeneficiary(address)", [OPERATOR])["selector"]
    )

    reward = operations.prepare_set_reward_recipient(OVM_A, "mainnet", new_reward_recipient=OPERATOR, client=_client())
    assert reward["operation"] == "setRewardRecipient"
    assert "Requires SET_REWARD_ROLE" in reward["message"]


def test_prepare_revoke_roles():
    op = operations.prepare_revoke_roles(
        OVM_A, "mainnet", target_address=OPERATOR, roles=["DEPOSIT_ROLE"], client=_client()
    )
    assert op["operation"] == "revokeRoles"
    assert op["rolesValue"] == 0x20
