"""
Payout sinks.

The accumulator only needs two things from the pool it pays into:

- denomination() -> int
    The fixed deposit size. Read at construction and at every invocation.

- deposit(commitment: bytes, amount: int) -> None
    Accept one deposit of exactly `denomination()`. Raise to refuse it; the
    accumulator then rolls the whole invocation back.

`FixedDenominationPool` is the in-process pool used by the CLI and the tests.
It enforces the same rules a fixed-denomination privacy pool does: the exact
denomination must be attached and a commitment can only be submitted once.
"""

from __future__ import annotations

from typing import Any, Dict, List, Protocol


class PayoutSink(Protocol):
    def denomination(self) -> int: ...

    def deposit(self, commitment: bytes, amount: int) -> None: ...


class FixedDenominationPool:
    def __init__(self, address: str, denomination: int) -> None:
        self.address = address
        self._denomination = denomination
        self.commitments: List[bytes] = []

    def denomination(self) -> int:
        return self._denomination

    def deposit(self, commitment: bytes, amount: int) -> None:
        if amount != self._denomination:
            raise RuntimeError(
                f"Pool {self.address}: expected {self._denomination}, got {amount}"
            )
        if commitment in self.commitments:
            raise RuntimeError(
                f"Pool {self.address}: commitment {commitment.hex()} already submitted"
            )
        self.commitments.append(commitment)

    @property
    def balance(self) -> int:
        return self._denomination * len(self.commitments)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "denomination": self._denomination,
            "commitments": [c.hex() for c in self.commitments],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FixedDenominationPool":
        pool = cls(address=data["address"], denomination=int(data["denomination"]))
        pool.commitments = [bytes.fromhex(c) for c in data.get("commitments", [])]
        return pool
