"""Error codes and exception types shared by the OVM helpers."""

from __future__ import annotations

ERR_INTERNAL = "INTERNAL_ERROR"
ERR_CONFIG = "CONFIG_ERROR"
ERR_INVALID_REQUEST = "INVALID_REQUEST"
ERR_INVALID_ADDRESS = "INVALID_ADDRESS"
ERR_UNKNOWN_NETWORK = "UNKNOWN_NETWORK"
ERR_UNKNOWN_ROLE = "UNKNOWN_ROLE"
ERR_NOT_OVM = "NOT_OVM"
ERR_RPC_TRANSPORT = "RPC_TRANSPORT_ERROR"
ERR_RPC_TIMEOUT = "RPC_TIMEOUT"
ERR_RPC_REMOTE = "RPC_REMOTE_ERROR"
ERR_RPC_MALFORMED = "RPC_MALFORMED_RESPONSE"
ERR_LOGS_RANGE_TOO_LARGE = "LOGS_RANGE_TOO_LARGE"
ERR_CONTRACT_REVERT = "CONTRACT_REVERT"

EXIT_OK = 0
EXIT_TRANSPORT = 1
EXIT_INVALID = 2


class OvmError(Exception):
    """Base error carrying a stable machine-readable code."""

    code = ERR_INTERNAL
    exit_code = EXIT_TRANSPORT

    def __init__(self, message: str, *, code: str | None = None, details: dict | None = None) -> None:
        super().__init__(message)
        if code is not None:
            self.code = code
        self.details = details or {}

    @property
    def message(self) -> str:
        return str(self)


class ConfigError(OvmError):
    code = ERR_CONFIG
    exit_code = EXIT_INVALID


class ValidationError(OvmError):
    code = ERR_INVALID_REQUEST
    exit_code = EXIT_INVALID


class TransportError(OvmError):
    code = ERR_RPC_TRANSPORT
    exit_code = EXIT_TRANSPORT


class RangeTooLargeError(TransportError):
    """Provider refused a log query span; never split automatically."""

    code = ERR_LOGS_RANGE_TOO_LARGE


class ContractRevertError(TransportError):
    code = ERR_CONTRACT_REVERT
