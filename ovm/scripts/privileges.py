"""Role bit-field codec for OVM contracts."""

from __future__ import annotations

import operator
from dataclasses import dataclass
from enum import Enum
from functools import reduce
from typing import Iterable


class PrivilegeFlag(Enum):
    WITHDRAWAL_ROLE = 0x01
    CONSOLIDATION_ROLE = 0x02
    SET_BENEFICIARY_ROLE = 0x04
    RECOVER_FUNDS_ROLE = 0x08
    SET_REWARD_ROLE = 0x10
    DEPOSIT_ROLE = 0x20

    @property
    def bit(self) -> int:
        return int(self.value)


# The owner implicitly holds every role.
FULL_PRIVILEGES = reduce(operator.or_, (flag.bit for flag in PrivilegeFlag), 0)

ROLE_NAMES = tuple(flag.name for flag in PrivilegeFlag)


@dataclass(frozen=True)
class PrivilegeSet:
    flags: dict[PrivilegeFlag, bool]
    raw_value: int

    def has(self, flag: PrivilegeFlag) -> bool:
        return self.flags.get(flag, False)

    def names(self) -> list[str]:
        return [flag.name for flag in PrivilegeFlag if self.flags.get(flag, False)]

    def as_mapping(self) -> dict[str, bool]:
        return {flag.name: self.flags.get(flag, False) for flag in PrivilegeFlag}


def decode_privileges(raw: int) -> PrivilegeSet:
    """Decode a packed roles value. Bits outside the known set are ignored."""
    if isinstance(raw, bool) or not isinstance(raw, int) or raw < 0:
        raise ValueError("packed roles value must be a non-negative integer")
    return PrivilegeSet(
        flags={flag: (raw & flag.bit) == flag.bit for flag in PrivilegeFlag},
        raw_value=raw,
    )


def encode_privileges(names: Iterable[str]) -> int:
    """OR together the bits of every recognised role name; others are skipped."""
    encoded = 0
    for name in names:
        flag = PrivilegeFlag.__members__.get(str(name))
        if flag is not None:
            encoded |= flag.bit
    return encoded


def unknown_privilege_names(names: Iterable[str]) -> list[str]:
    return [str(name) for name in names if str(name) not in PrivilegeFlag.__members__]


def privilege_names(privileges: PrivilegeSet) -> list[str]:
    """Held role names in bit order."""
    return privileges.names()
