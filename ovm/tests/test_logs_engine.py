from __future__ import annotations

import logging

import pytest

from error_map import RangeTooLargeError
from logs_engine import BlockRange, LogEvent, iter_block_ranges, iter_logs, scan_logs


def _event(block: int) -> LogEvent:
    return LogEvent(address="0x1", block_number=block, log_index=0, transaction_hash=None)


def test_three_window_scan_of_120000_blocks():
    ranges = list(iter_block_ranges(0, 120_000, 50_000))
    assert ranges == [
        BlockRange(0, 50_000),
        BlockRange(50_001, 100_000),
        BlockRange(100_001, 120_000),
    ]


@pytest.mark.parametrize(
    "start,latest,window",
    [(0, 0, 1), (0, 10, 1), (5, 17, 4), (0, 99, 10), (1000, 1234, 50_000), (7, 8, 3)],
)
def test_windows_are_complete_and_disjoint(start, latest, window):
    ranges = list(iter_block_ranges(start, latest, window))
    covered = [block for r in ranges for block in range(r.from_block, r.to_block + 1)]
    assert covered == list(range(start, latest + 1))
    for earlier, later in zip(ranges, ranges[1:]):
        assert later.from_block == earlier.to_block + 1
    for r in ranges:
        assert r.to_block - r.from_block <= window
        if r.from_block % window:
            assert r.to_block - r.from_block + 1 <= window


def test_windows_align_to_multiples_of_window():
    assert list(iter_block_ranges(5, 17, 4)) == [BlockRange(5, 8), BlockRange(9, 12), BlockRange(13, 16), BlockRange(17, 17)]
    assert list(iter_block_ranges(50_000, 100_000, 50_000)) == [BlockRange(50_000, 100_000)]


def test_start_after_latest_yields_nothing():
    assert list(iter_block_ranges(101, 100, 10)) == []


def test_empty_range_makes_no_log_queries():
    fetched: list[BlockRange] = []

    def fetch(block_range: BlockRange) -> list[LogEvent]:
        fetched.append(block_range)
        return []

    assert scan_logs(latest_block_fn=lambda: 100, fetch_logs=fetch, start_block=200) == []
    assert fetched == []


@pytest.mark.parametrize("start,window", [(-1, 10), (0, 0)])
def test_invalid_arguments_raise(start, window):
    with pytest.raises(ValueError):
        list(iter_block_ranges(start, 10, window))


def test_scan_concatenates_windows_in_order():
    events = {0: [_event(3)], 11: [_event(12), _event(15)], 21: []}

    def fetch(block_range: BlockRange) -> list[LogEvent]:
        return events[block_range.from_block]

    result = scan_logs(latest_block_fn=lambda: 25, fetch_logs=fetch, start_block=0, window=10)
    assert [event.block_number for event in result] == [3, 12, 15]


def test_latest_block_is_resolved_once():
    calls = []

    def latest() -> int:
        calls.append(1)
        return 30

    scan_logs(latest_block_fn=latest, fetch_logs=lambda r: [], start_block=0, window=5)
    assert len(calls) == 1


def test_window_failure_propagates_and_stops_scan():
    fetched: list[int] = []

    def fetch(block_range: BlockRange) -> list[LogEvent]:
        fetched.append(block_range.from_block)
        if block_range.from_block == 11:
            raise RangeTooLargeError("query returned more than 10000 results")
        return [_event(block_range.from_block)]

    with pytest.raises(RangeTooLargeError):
        scan_logs(latest_block_fn=lambda: 40, fetch_logs=fetch, start_block=0, window=10)
    assert fetched == [0, 11]


def test_early_stop_skips_remaining_windows():
    fetched: list[int] = []

    def fetch(block_range: BlockRange) -> list[LogEvent]:
        fetched.append(block_range.from_block)
        return [_event(block_range.from_block)]

    stream = iter_logs(latest_block_fn=lambda: 1000, fetch_logs=fetch, start_block=0, window=10)
    first = next(stream)
    stream.close()
    assert first.block_number == 0
    assert fetched == [0]


def test_windows_are_logged_at_debug(caplog):
    caplog.set_level(logging.DEBUG, logger="logs_engine")
    scan_logs(latest_block_fn=lambda: 15, fetch_logs=lambda r: [], start_block=0, window=10)
    messages = [record.getMessage() for record in caplog.records]
    assert "eth_getLogs window [0, 10]" in messages
    assert "eth_getLogs window [11, 15]" in messages
