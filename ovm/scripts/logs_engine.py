"""Chunked eth_getLogs scanning over an inclusive block range."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator

logger = logging.getLogger(__name__)

# Providers cap eth_getLogs spans; stay at or below the smallest cap expected.
MAX_BLOCK_RANGE = 50_000


@dataclass(frozen=True)
class BlockRange:
    from_block: int
    to_block: int

    @property
    def size(self) -> int:
        return self.to_block - self.from_block + 1


@dataclass(frozen=True)
class LogEvent:
    address: str
    block_number: int
    log_index: int
    transaction_hash: str | None
    args: dict[str, Any] = field(default_factory=dict)


LatestBlockFn = Callable[[], int]
FetchLogsFn = Callable[[BlockRange], list[LogEvent]]


def iter_block_ranges(start_block: int, latest_block: int, window: int = MAX_BLOCK_RANGE) -> Iterator[BlockRange]:
    """Yield inclusive windows covering ``[start_block, latest_block]``.

    Windows end on multiples of ``window`` (or on ``latest_block``) and the
    next one starts right after, so a scan from block 0 with a 50000 window
    yields ``[0, 50000]``, ``[50001, 100000]``, ... Nothing is yielded when
    ``start_block > latest_block``.
    """
    if start_block < 0:
        raise ValueError("start_block must be >= 0")
    if window < 1:
        raise ValueError("window must be >= 1")

    cursor = start_block
    while cursor <= latest_block:
        chunk_end = min((cursor // window + 1) * window, latest_block)
        yield BlockRange(cursor, chunk_end)
        cursor = chunk_end + 1


def iter_logs(
    *,
    latest_block_fn: LatestBlockFn,
    fetch_logs: FetchLogsFn,
    start_block: int,
    window: int = MAX_BLOCK_RANGE,
) -> Iterator[LogEvent]:
    """Lazily scan ``[start_block, latest]`` one window at a time.

    The latest block is resolved once when iteration starts, so events mined
    during the scan are not included. Windows are fetched strictly in order and
    a failing window propagates its error; nothing is retried or split here.
    Stopping iteration early skips the remaining windows.
    """
    latest_block = latest_block_fn()
    logger.debug("scanning logs from block %d to %d (window=%d)", start_block, latest_block, window)

    windows = 0
    events = 0
    for block_range in iter_block_ranges(start_block, latest_block, window):
        logger.debug("eth_getLogs window [%d, %d]", block_range.from_block, block_range.to_block)
        chunk = fetch_logs(block_range)
        windows += 1
        for event in chunk:
            events += 1
            yield event

    logger.debug("log scan finished: %d windows, %d events", windows, events)


def scan_logs(
    *,
    latest_block_fn: LatestBlockFn,
    fetch_logs: FetchLogsFn,
    start_block: int,
    window: int = MAX_BLOCK_RANGE,
) -> list[LogEvent]:
    return list(
        iter_logs(
            latest_block_fn=latest_block_fn,
            fetch_logs=fetch_logs,
            start_block=start_block,
            window=window,
        )
    )


def contract_log_fetcher(client: Any, address: str, event_declaration: str) -> FetchLogsFn:
    """Bind a chain client's ``get_logs`` to one emitter and event."""

    def fetch(block_range: BlockRange) -> list[LogEvent]:
        return client.get_logs(address, event_declaration, block_range.from_block, block_range.to_block)

    return fetch
