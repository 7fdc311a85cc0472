"""Concurrent point reads of an OVM's public state."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any

from eth_utils import to_checksum_address

from ovm_registry import (
    AMOUNT_OF_PRINCIPAL_STAKE_READ,
    FUNDS_PENDING_WITHDRAWAL_READ,
    OWNER_READ,
    PRINCIPAL_RECIPIENT_READ,
    PRINCIPAL_THRESHOLD_READ,
    REWARD_RECIPIENT_READ,
    VERSION_READ,
)
from quantity import gwei_to_eth, wei_to_eth

FIELD_READS = {
    "owner": OWNER_READ,
    "principal_recipient": PRINCIPAL_RECIPIENT_READ,
    "reward_recipient": REWARD_RECIPIENT_READ,
    "principal_threshold": PRINCIPAL_THRESHOLD_READ,
    "funds_pending_withdrawal": FUNDS_PENDING_WITHDRAWAL_READ,
    "amount_of_principal_stake": AMOUNT_OF_PRINCIPAL_STAKE_READ,
    "version": VERSION_READ,
}


@dataclass(frozen=True)
class OvmState:
    owner: str
    principal_recipient: str
    reward_recipient: str
    principal_threshold: int  # gwei
    funds_pending_withdrawal: int  # wei
    amount_of_principal_stake: int  # wei
    balance: int  # wei
    version: str

    def to_display(self) -> dict[str, Any]:
        return {
            "owner": self.owner,
            "principalRecipient": self.principal_recipient,
            "rewardRecipient": self.reward_recipient,
            "principalThreshold": f"{gwei_to_eth(self.principal_threshold)} ETH",
            "fundsPendingWithdrawal": f"{wei_to_eth(self.funds_pending_withdrawal)} ETH",
            "amountOfPrincipalStake": f"{wei_to_eth(self.amount_of_principal_stake)} ETH",
            "balance": f"{wei_to_eth(self.balance)} ETH",
            "version": self.version,
        }


def read_state(client: Any, contract_address: str) -> OvmState:
    with ThreadPoolExecutor(max_workers=len(FIELD_READS) + 1) as executor:
        futures = {
            name: executor.submit(client.read_field, contract_address, signature, output_type)
            for name, (signature, output_type) in FIELD_READS.items()
        }
        balance_future = executor.submit(client.get_balance, contract_address)
        values = {name: future.result() for name, future in futures.items()}
        balance = balance_future.result()

    return OvmState(
        owner=to_checksum_address(values["owner"]),
        principal_recipient=to_checksum_address(values["principal_recipient"]),
        reward_recipient=to_checksum_address(values["reward_recipient"]),
        principal_threshold=values["principal_threshold"],
        funds_pending_withdrawal=values["funds_pending_withdrawal"],
        amount_of_principal_stake=values["amount_of_principal_stake"],
        balance=balance,
        version=values["version"],
    )
