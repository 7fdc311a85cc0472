"""Factory deployment discovery from CreateObolValidatorManager events."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from eth_utils import to_checksum_address

from error_map import TransportError
from logs_engine import MAX_BLOCK_RANGE, contract_log_fetcher, iter_logs
from ovm_registry import FACTORY_CREATE_EVENT

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Deployment:
    contract_address: str
    owner_address: str
    block_number: int


@dataclass(frozen=True)
class MembershipResult:
    is_member: bool
    deployment_block: int | None = None
    # Set when the scan failed and is_member only means "could not confirm".
    error: str | None = None

    @property
    def indeterminate(self) -> bool:
        return self.error is not None


def _factory_events(client: Any, factory_address: str, start_block: int, window: int):
    return iter_logs(
        latest_block_fn=client.get_latest_block_number,
        fetch_logs=contract_log_fetcher(client, factory_address, FACTORY_CREATE_EVENT),
        start_block=start_block,
        window=window,
    )


def check_membership(
    client: Any,
    factory_address: str,
    candidate_address: str,
    *,
    start_block: int,
    window: int = MAX_BLOCK_RANGE,
) -> MembershipResult:
    """Report whether ``candidate_address`` was created by the factory.

    Stops at the first matching creation event. A failed scan is logged and
    reported as not a member, with the failure kept on ``error``.
    """
    wanted = candidate_address.lower()
    try:
        for event in _factory_events(client, factory_address, start_block, window):
            deployed = event.args.get("ovm")
            if isinstance(deployed, str) and deployed.lower() == wanted:
                return MembershipResult(is_member=True, deployment_block=event.block_number)
    except TransportError as err:
        logger.error("error querying factory logs for %s: %s", candidate_address, err)
        return MembershipResult(is_member=False, error=str(err))
    return MembershipResult(is_member=False)


def list_deployments(
    client: Any,
    factory_address: str,
    *,
    start_block: int,
    window: int = MAX_BLOCK_RANGE,
) -> list[Deployment]:
    deployments: list[Deployment] = []
    for event in _factory_events(client, factory_address, start_block, window):
        deployed = event.args.get("ovm")
        owner = event.args.get("owner")
        if not deployed or not owner:
            continue
        deployments.append(
            Deployment(
                contract_address=to_checksum_address(deployed),
                owner_address=to_checksum_address(owner),
                block_number=event.block_number,
            )
        )
    logger.debug("factory %s has %d deployments", factory_address, len(deployments))
    return deployments
