"""
Error types raised by the accumulator.

Hierarchy
---------
AccumulatorError
 ├─ OversizedDeposit  : deposit amount exceeds the pool denomination
 ├─ InvalidDeposit    : non-positive amount, malformed commitment or
                        height below the last processed one
 ├─ EmptyQueue        : peek/pop on an empty queue (control-flow bug)
 ├─ SinkRejected      : the payout sink refused the payout; invocation rolled back
 ├─ MisconfiguredSink : sink reports a non-positive denomination
 └─ ReentrantCall     : deposit entered while another deposit is in flight

Every error aborts the current invocation and leaves persisted state untouched.
"""

from __future__ import annotations


class AccumulatorError(Exception):
    """Base class for accumulator errors."""

    code: str = "AccumulatorError"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__

    def __str__(self) -> str:
        return self.message


class OversizedDeposit(AccumulatorError):
    code: str = "OversizedDeposit"

    def __init__(self, amount: int, denomination: int) -> None:
        super().__init__(
            f"deposit of {amount} exceeds pool denomination {denomination}"
        )
        self.amount = amount
        self.denomination = denomination


class InvalidDeposit(AccumulatorError):
    code: str = "InvalidDeposit"


class EmptyQueue(AccumulatorError):
    code: str = "EmptyQueue"

    def __init__(self, message: str = "queue is empty") -> None:
        super().__init__(message)


class SinkRejected(AccumulatorError):
    """The payout sink raised; `__cause__` holds the sink's exception."""

    code: str = "SinkRejected"


class MisconfiguredSink(AccumulatorError):
    code: str = "MisconfiguredSink"


class ReentrantCall(AccumulatorError):
    code: str = "ReentrantCall"

    def __init__(self, message: str = "deposit is not reentrant") -> None:
        super().__init__(message)
