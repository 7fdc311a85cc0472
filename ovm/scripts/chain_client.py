"""JSON-RPC chain client used as the injected read capability."""

from __future__ import annotations

import itertools
import logging
from typing import Any, Sequence

from abi_codec import decode_log, decode_output, encode_call, event_topic0
from error_map import (
    ERR_RPC_MALFORMED,
    ERR_RPC_REMOTE,
    ContractRevertError,
    RangeTooLargeError,
    TransportError,
)
from logs_engine import LogEvent
from quantity import parse_quantity
from rpc_transport import DEFAULT_RETRIES, DEFAULT_TIMEOUT_SECONDS, invoke_rpc

logger = logging.getLogger(__name__)

RANGE_ERROR_PATTERNS = (
    "query returned more than",
    "too many results",
    "response size exceeded",
    "block range",
    "range too wide",
    "range is too large",
    "exceed maximum block range",
)
REVERT_ERROR_PATTERNS = ("execution reverted", "revert")


def _remote_message(error_obj: Any) -> str:
    if isinstance(error_obj, dict):
        return str(error_obj.get("message", ""))
    return str(error_obj)


class ChainClient:
    """Thin wrapper over ``invoke_rpc`` that raises typed errors.

    Instances hold only immutable configuration and are safe to share between
    the worker threads of a single operation.
    """

    def __init__(
        self,
        rpc_url: str,
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        retries: int = DEFAULT_RETRIES,
    ) -> None:
        self.rpc_url = rpc_url
        self.timeout_seconds = timeout_seconds
        self.retries = retries
        self._ids = itertools.count(1)

    def request(self, method: str, params: list[Any]) -> Any:
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        transport = invoke_rpc(
            rpc_url=self.rpc_url,
            payload=payload,
            timeout_seconds=self.timeout_seconds,
            retries=self.retries,
        )
        if not transport["ok"]:
            raise TransportError(
                f"{method}: {transport['error_message']}",
                code=transport["error_code"],
                details={"rpc_response": transport.get("rpc_response")},
            )

        rpc_response = transport["rpc_response"]
        if not isinstance(rpc_response, dict):
            raise TransportError(f"{method}: rpc response is not an object", code=ERR_RPC_MALFORMED)

        if "error" in rpc_response:
            message = _remote_message(rpc_response["error"])
            lowered = message.lower()
            details = {"rpc_error": rpc_response["error"]}
            if method == "eth_getLogs" and any(p in lowered for p in RANGE_ERROR_PATTERNS):
                raise RangeTooLargeError(f"{method}: {message}", details=details)
            if method == "eth_call" and any(p in lowered for p in REVERT_ERROR_PATTERNS):
                raise ContractRevertError(f"{method}: {message}", details=details)
            raise TransportError(f"{method}: {message}", code=ERR_RPC_REMOTE, details=details)

        if "result" not in rpc_response:
            raise TransportError(f"{method}: rpc response has no result", code=ERR_RPC_MALFORMED)
        return rpc_response["result"]

    def _quantity(self, method: str, value: Any) -> int:
        try:
            return parse_quantity(value, field=f"{method} result")
        except ValueError as err:
            raise TransportError(str(err), code=ERR_RPC_MALFORMED) from err

    def get_latest_block_number(self) -> int:
        return self._quantity("eth_blockNumber", self.request("eth_blockNumber", []))

    def get_balance(self, address: str, block_tag: str = "latest") -> int:
        return self._quantity("eth_getBalance", self.request("eth_getBalance", [address, block_tag]))

    def get_logs(self, address: str, event_declaration: str, from_block: int, to_block: int) -> list[LogEvent]:
        log_filter = {
            "address": address,
            "topics": [event_topic0(event_declaration)],
            "fromBlock": hex(from_block),
            "toBlock": hex(to_block),
        }
        result = self.request("eth_getLogs", [log_filter])
        if not isinstance(result, list):
            raise TransportError("eth_getLogs returned a non-array result", code=ERR_RPC_MALFORMED)

        events: list[LogEvent] = []
        for raw in result:
            try:
                decoded = decode_log(event_declaration, raw.get("topics", []), raw.get("data", "0x"))
                events.append(
                    LogEvent(
                        address=str(raw.get("address", address)),
                        block_number=parse_quantity(raw.get("blockNumber"), field="blockNumber"),
                        log_index=parse_quantity(raw.get("logIndex", "0x0"), field="logIndex"),
                        transaction_hash=raw.get("transactionHash"),
                        args=decoded["args"],
                    )
                )
            except (AttributeError, ValueError) as err:
                raise TransportError(f"eth_getLogs returned an undecodable log: {err}", code=ERR_RPC_MALFORMED) from err
        return events

    def read_field(
        self,
        address: str,
        signature: str,
        output_type: str,
        args: Sequence[Any] = (),
        block_tag: str = "latest",
    ) -> Any:
        call = encode_call(signature, list(args))
        result = self.request("eth_call", [{"to": address, "data": call["calldata"]}, block_tag])
        if result in (None, "0x"):
            raise ContractRevertError(f"{call['signature']} returned no data from {address}")
        try:
            return decode_output([output_type], result)[0]
        except ValueError as err:
            raise TransportError(
                f"{call['signature']} returned undecodable data: {err}", code=ERR_RPC_MALFORMED
            ) from err
