from __future__ import annotations
from dataclasses import dataclass
from enum import IntEnum
from typing import Optional
from libra.rustlib import format_str


class StatusCode(IntEnum):
    UNKNOWN_INVARIANT_VIOLATION = 0
    STRONG_OVER_RELEASE = 1
    WEAK_OVER_RELEASE = 2
    NULL_DEREFERENCE = 3
    RELEASED_HANDLE = 4


@dataclass
class RcStatus:
    major_status: StatusCode
    message: Optional[str] = None

    def with_message(self, message: str) -> RcStatus:
        self.message = message
        return self

    def __str__(self):
        if self.message is None:
            return self.major_status.name
        return f"{self.major_status.name}: {self.message}"


# All errors here are contract violations by the caller. They are raised where the misuse
# happens and are never retried.
@dataclass
class RcException(Exception):
    status: RcStatus

    def __init__(self, status: RcStatus):
        super().__init__(str(status))
        self.status = status

    @property
    def major_status(self) -> StatusCode:
        return self.status.major_status

    def __str__(self):
        return str(self.status)


def over_release_error(label: str) -> RcException:
    return RcException(RcStatus(StatusCode.STRONG_OVER_RELEASE).with_message(
        format_str("release() on {} with strong_count == 0", label)))


def weak_over_release_error(label: str) -> RcException:
    return RcException(RcStatus(StatusCode.WEAK_OVER_RELEASE).with_message(
        format_str("release_weak() on {} with weak_count == 0", label)))


def null_dereference_error() -> RcException:
    return RcException(RcStatus(StatusCode.NULL_DEREFERENCE).with_message(
        "dereference of an empty Strong handle"))


def released_handle_error(op: str) -> RcException:
    return RcException(RcStatus(StatusCode.RELEASED_HANDLE).with_message(
        format_str("{}() on a released handle", op)))
