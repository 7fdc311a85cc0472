"""Collect current role holders of an OVM from RolesUpdated history."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any

from eth_utils import to_checksum_address

from logs_engine import MAX_BLOCK_RANGE, contract_log_fetcher, iter_logs
from ovm_registry import OWNER_READ, ROLES_OF_READ, ROLES_UPDATED_EVENT
from privileges import FULL_PRIVILEGES, PrivilegeSet, decode_privileges

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 8


@dataclass(frozen=True)
class PrivilegeRecord:
    address: str
    privileges: PrivilegeSet
    raw_value: int


def read_privileges(client: Any, contract_address: str, address: str) -> PrivilegeRecord:
    signature, output_type = ROLES_OF_READ
    raw_value = client.read_field(contract_address, signature, output_type, [address])
    return PrivilegeRecord(
        address=to_checksum_address(address),
        privileges=decode_privileges(raw_value),
        raw_value=raw_value,
    )


def discover_role_subjects(
    client: Any,
    contract_address: str,
    *,
    window: int = MAX_BLOCK_RANGE,
) -> list[str]:
    """Return every address ever named by a RolesUpdated event, once each."""
    seen: dict[str, str] = {}
    events = iter_logs(
        latest_block_fn=client.get_latest_block_number,
        fetch_logs=contract_log_fetcher(client, contract_address, ROLES_UPDATED_EVENT),
        # No per-instance deployment height is tracked, so scan from genesis.
        start_block=0,
        window=window,
    )
    for event in events:
        user = event.args.get("user")
        if isinstance(user, str):
            seen.setdefault(user.lower(), user)
    return list(seen.values())


def collect_privileges(
    client: Any,
    contract_address: str,
    target_address: str | None = None,
    *,
    window: int = MAX_BLOCK_RANGE,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> list[PrivilegeRecord]:
    """Return the live role state for one address, or for every known holder.

    With ``target_address`` a single ``rolesOf`` read is made. Otherwise event
    history only nominates candidates; each one's roles come from a live read,
    and the owner is prepended with every role when no event ever named it.
    Any failed read fails the whole call.
    """
    if target_address:
        return [read_privileges(client, contract_address, target_address)]

    subjects = discover_role_subjects(client, contract_address, window=window)
    logger.debug("%s: %d role subjects found in event history", contract_address, len(subjects))

    records: list[PrivilegeRecord] = []
    if subjects:
        with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(subjects)))) as executor:
            records = list(executor.map(lambda addr: read_privileges(client, contract_address, addr), subjects))

    signature, output_type = OWNER_READ
    owner = client.read_field(contract_address, signature, output_type)
    owner_key = str(owner).lower()
    if not any(record.address.lower() == owner_key for record in records):
        records.insert(
            0,
            PrivilegeRecord(
                address=to_checksum_address(owner),
                privileges=decode_privileges(FULL_PRIVILEGES),
                raw_value=FULL_PRIVILEGES,
            ),
        )
    return records
