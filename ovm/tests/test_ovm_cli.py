from __future__ import annotations

import json

from ._ovm_helpers import (
    OPERATOR,
    OVM_A,
    OVM_B,
    OWNER,
    PUBKEY,
    RECIPIENT,
    FakeChain,
    _methods_called,
    _RPCHandler,
    _run_cmd,
    _serve,
    _stop,
)

HOODI_FACTORY = "0x5754C8665B7e7BF15E83fCdF6d9636684B782b12"
ETH = 10**18


def _hoodi_chain() -> FakeChain:
    chain = FakeChain(latest=120_000)
    chain.add_create_log(OVM_A, OWNER, 110_000, factory=HOODI_FACTORY)
    chain.add_roles_log(OVM_A, OPERATOR, 0x01, 110_500)
    chain.set_call(OVM_A, "owner()", "address", OWNER)
    chain.set_call(OVM_A, "principalRecipient()", "address", RECIPIENT)
    chain.set_call(OVM_A, "rewardRecipient()", "address", RECIPIENT)
    chain.set_call(OVM_A, "principalThreshold()", "uint64", 16 * 10**9)
    chain.set_call(OVM_A, "fundsPendingWithdrawal()", "uint128", 0)
    chain.set_call(OVM_A, "amountOfPrincipalStake()", "uint256", 32 * ETH)
    chain.set_call(OVM_A, "version()", "string", "1.0.0")
    chain.set_call(OVM_A, "rolesOf(address)", "uint256", 0x01, [OPERATOR])
    chain.balances[OVM_A.lower()] = 32 * ETH
    return chain


def _hoodi(url: str, *extra: str) -> list[str]:
    return ["--network", "hoodi", "--rpc-url", url, *extra]


def test_networks_lists_registry():
    proc = _run_cmd("networks", [])
    assert proc.returncode == 0, proc.stdout + proc.stderr
    payload = json.loads(proc.stdout)
    assert payload["ok"] is True
    assert payload["method"] == "networks"
    assert payload["result"]["default"] == "mainnet"
    assert [item["key"] for item in payload["result"]["networks"]] == ["mainnet", "hoodi", "sepolia"]


def test_check_scans_factory_in_windows():
    server, url = _serve(_hoodi_chain())
    try:
        proc = _run_cmd("check", [OVM_A, *_hoodi(url)])
        assert proc.returncode == 0, proc.stdout + proc.stderr
        payload = json.loads(proc.stdout)
        assert payload["result"]["isOVM"] is True
        assert payload["result"]["deploymentBlock"] == 110_000
        windows = [
            (call["params"][0]["fromBlock"], call["params"][0]["toBlock"])
            for call in _RPCHandler.calls
            if call["method"] == "eth_getLogs"
        ]
        assert windows == [("0x0", hex(50_000)), (hex(50_001), hex(100_000)), (hex(100_001), hex(120_000))]
    finally:
        _stop(server)


def test_check_reports_indeterminate_on_scan_failure():
    chain = _hoodi_chain()
    chain.errors["eth_getLogs"] = {"code": -32005, "message": "query returned more than 10000 results"}
    server, url = _serve(chain)
    try:
        proc = _run_cmd("check", [OVM_A, *_hoodi(url)])
        assert proc.returncode == 0, proc.stdout + proc.stderr
        result = json.loads(proc.stdout)["result"]
        assert result["isOVM"] is False
        assert result["indeterminate"] is True
        assert "10000 results" in result["error"]
    finally:
        _stop(server)


def test_unknown_network_exits_2_without_rpc():
    server, url = _serve(_hoodi_chain())
    try:
        proc = _run_cmd("check", [OVM_A, "--network", "goerli", "--rpc-url", url])
        assert proc.returncode == 2
        payload = json.loads(proc.stdout)
        assert payload["ok"] is False
        assert payload["error_code"] == "UNKNOWN_NETWORK"
        assert "Supported: hoodi, mainnet, sepolia" in payload["error_message"]
        assert _RPCHandler.calls == []
    finally:
        _stop(server)


def test_invalid_address_exits_2():
    proc = _run_cmd("state", ["0xnot-an-address", "--network", "hoodi", "--rpc-url", "http://127.0.0.1:1"])
    assert proc.returncode == 2
    assert json.loads(proc.stdout)["error_code"] == "INVALID_ADDRESS"


def test_list_deployments():
    chain = _hoodi_chain()
    chain.add_create_log(OVM_B, OPERATOR, 115_000, factory=HOODI_FACTORY)
    server, url = _serve(chain)
    try:
        proc = _run_cmd("list", _hoodi(url))
        assert proc.returncode == 0, proc.stdout + proc.stderr
        result = json.loads(proc.stdout)["result"]
        assert result["count"] == 2
        assert result["deployments"][1] == {"address": OVM_B, "owner": OPERATOR, "deployedAt": "Block 115000"}
    finally:
        _stop(server)


def test_remote_failure_exits_1():
    chain = _hoodi_chain()
    chain.errors["eth_blockNumber"] = {"code": -32000, "message": "header not found"}
    server, url = _serve(chain)
    try:
        proc = _run_cmd("list", _hoodi(url))
        assert proc.returncode == 1
        payload = json.loads(proc.stdout)
        assert payload["error_code"] == "RPC_REMOTE_ERROR"
        assert "header not found" in payload["error_message"]
    finally:
        _stop(server)


def test_non_utf8_response_exits_1():
    chain = _hoodi_chain()
    chain.raw_body = b"\xff\xfe\xfa"
    server, url = _serve(chain)
    try:
        proc = _run_cmd("list", _hoodi(url, "--retries", "0"))
        assert proc.returncode == 1, proc.stdout + proc.stderr
        payload = json.loads(proc.stdout)
        assert payload["error_code"] == "RPC_TRANSPORT_ERROR"
        assert "non-json" in payload["error_message"]
    finally:
        _stop(server)


def test_roles_merges_owner_with_event_subjects():
    server, url = _serve(_hoodi_chain())
    try:
        proc = _run_cmd("roles", [OVM_A, *_hoodi(url), "--result-only"])
        assert proc.returncode == 0, proc.stdout + proc.stderr
        result = json.loads(proc.stdout)
        assert [entry["address"] for entry in result["roles"]] == [OWNER, OPERATOR]
        assert result["roles"][0]["rolesValue"] == 63
        assert result["roles"][1]["roles"] == ["WITHDRAWAL_ROLE"]
    finally:
        _stop(server)


def test_state_reads_fields_concurrently():
    server, url = _serve(_hoodi_chain())
    try:
        proc = _run_cmd("state", [OVM_A, *_hoodi(url)])
        assert proc.returncode == 0, proc.stdout + proc.stderr
        result = json.loads(proc.stdout)["result"]
        assert result["principalThreshold"] == "16 ETH"
        assert result["amountOfPrincipalStake"] == "32 ETH"
        assert result["version"] == "1.0.0"
        assert _methods_called().count("eth_call") == 7
    finally:
        _stop(server)


def test_query_combines_membership_state_and_roles():
    server, url = _serve(_hoodi_chain())
    try:
        proc = _run_cmd("query", [OVM_A, *_hoodi(url), "--compact"])
        assert proc.returncode == 0, proc.stdout + proc.stderr
        assert len(proc.stdout.strip().splitlines()) == 1
        result = json.loads(proc.stdout)["result"]
        assert result["isOVM"] is True
        assert result["deployedAt"] == "Block 110000"
        assert result["launchpadUrl"].endswith(f"/cluster/list?search={OVM_A}")
        assert len(result["roles"]) == 2
    finally:
        _stop(server)


def test_rpc_url_from_environment():
    server, url = _serve(_hoodi_chain())
    try:
        proc = _run_cmd("check", [OVM_B, "--network", "hoodi"], {"ETH_RPC_URL": url})
        assert proc.returncode == 0, proc.stdout + proc.stderr
        assert json.loads(proc.stdout)["result"]["isOVM"] is False
        assert "eth_blockNumber" in _methods_called()
    finally:
        _stop(server)


def test_deploy_needs_no_rpc():
    proc = _run_cmd(
        "deploy",
        [
            "--network",
            "sepolia",
            "--owner",
            OWNER,
            "--principal-recipient",
            RECIPIENT,
            "--reward-recipient",
            RECIPIENT,
            "--result-only",
        ],
    )
    assert proc.returncode == 0, proc.stdout + proc.stderr
    result = json.loads(proc.stdout)
    assert result["transactionData"]["to"] == "0xF32F8B563d8369d40C45D5d667C2B26937F2A3d3"
    assert result["castCommand"].endswith("--private-key $PRIVATE_KEY")


def test_grant_roles_requires_ovm_membership():
    server, url = _serve(_hoodi_chain())
    try:
        proc = _run_cmd("grant-roles", [OVM_B, "--target", OPERATOR, "--roles", "WITHDRAWAL_ROLE", *_hoodi(url)])
        assert proc.returncode == 2
        assert json.loads(proc.stdout)["error_code"] == "NOT_OVM"
    finally:
        _stop(server)


def test_grant_roles_accepts_comma_separated_roles():
    server, url = _serve(_hoodi_chain())
    try:
        proc = _run_cmd(
            "grant-roles",
            [OVM_A, "--target", OPERATOR, "--roles", "WITHDRAWAL_ROLE,DEPOSIT_ROLE", *_hoodi(url)],
        )
        assert proc.returncode == 0, proc.stdout + proc.stderr
        result = json.loads(proc.stdout)["result"]
        assert result["roles"] == ["WITHDRAWAL_ROLE", "DEPOSIT_ROLE"]
        assert result["rolesValue"] == 0x21
        assert f"--rpc-url {url}" in result["castCommand"]
    finally:
        _stop(server)


def test_withdraw_builds_payable_call():
    server, url = _serve(_hoodi_chain())
    try:
        proc = _run_cmd(
            "withdraw",
            [
                OVM_A,
                "--pubkeys",
                PUBKEY,
                PUBKEY,
                "--amounts",
                "1000000000",
                "0",
                "--max-fee",
                "500",
                "--excess-fee-recipient",
                OWNER,
                *_hoodi(url),
            ],
        )
        assert proc.returncode == 0, proc.stdout + proc.stderr
        result = json.loads(proc.stdout)["result"]
        assert result["transactionData"]["value"] == "1000"
        assert "--value 1000" in result["castCommand"]
    finally:
        _stop(server)


def test_verbose_logs_to_stderr_only():
    server, url = _serve(_hoodi_chain())
    try:
        proc = _run_cmd("check", [OVM_A, *_hoodi(url), "--verbose"])
        assert proc.returncode == 0, proc.stdout + proc.stderr
        json.loads(proc.stdout)
        assert "eth_getLogs window [0, 50000]" in proc.stderr
    finally:
        _stop(server)
