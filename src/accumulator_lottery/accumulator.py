from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Tuple

from .draw import evaluate, is_eligible
from .entry_queue import Entry, EntryQueue
from .errors import (
    InvalidDeposit,
    MisconfiguredSink,
    OversizedDeposit,
    ReentrantCall,
    SinkRejected,
)
from .project_constants import COMMITMENT_SIZE, GENESIS_RANDOM_STATE
from .sink import PayoutSink

log = logging.getLogger("accumulator")


class BlockHashSource(Protocol):
    def previous_unpredictable_value(self, height: int) -> bytes:
        """Hash of block `height - 1`."""
        ...


@dataclass(frozen=True)
class Notification:
    kind: str  # "Win" or "Lose"
    commitment: bytes


@dataclass(frozen=True)
class Receipt:
    """Outcome of one successful deposit invocation."""

    height: int
    amount: int
    commitment: bytes
    previous_block_hash: Optional[bytes]
    losers: Tuple[bytes, ...]
    winner: Optional[bytes]
    winner_amount: Optional[int]
    random_state: bytes

    def to_dict(self) -> Dict[str, Any]:
        return {
            "height": self.height,
            "amount": self.amount,
            "commitment": self.commitment.hex(),
            "previous_block_hash": (
                self.previous_block_hash.hex() if self.previous_block_hash else None
            ),
            "losers": [c.hex() for c in self.losers],
            "winner": self.winner.hex() if self.winner is not None else None,
            "winner_amount": self.winner_amount,
            "random_state": self.random_state.hex(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Receipt":
        prev = data.get("previous_block_hash")
        winner = data.get("winner")
        return cls(
            height=int(data["height"]),
            amount=int(data["amount"]),
            commitment=bytes.fromhex(data["commitment"]),
            previous_block_hash=bytes.fromhex(prev) if prev else None,
            losers=tuple(bytes.fromhex(c) for c in data.get("losers", [])),
            winner=bytes.fromhex(winner) if winner is not None else None,
            winner_amount=data.get("winner_amount"),
            random_state=bytes.fromhex(data["random_state"]),
        )


@dataclass
class _Checkpoint:
    queue: Tuple[int, int, Dict[int, Entry]]
    random_state: bytes
    balance: int
    denomination: int
    last_height: int
    notifications: int = 0


class Accumulator:
    """
    Collects sub-denomination deposits and pays one full denomination into
    the sink whenever enough value is held.

    Each call to `deposit` is one atomic invocation: either it completes, or
    the queue, rolling state, balance and notifications are exactly as they
    were before the call.
    """

    def __init__(
        self,
        sink: PayoutSink,
        source: BlockHashSource,
        random_state: bytes = GENESIS_RANDOM_STATE,
        queue: Optional[EntryQueue] = None,
        balance: int = 0,
        last_height: int = 0,
    ) -> None:
        self.sink = sink
        self.source = source
        self.denomination = self._read_denomination()
        self.random_state = random_state
        self.queue = queue if queue is not None else EntryQueue()
        self.balance = balance
        self.last_height = last_height
        self.notifications: List[Notification] = []
        self._entered = False

    def _read_denomination(self) -> int:
        denomination = self.sink.denomination()
        if (
            isinstance(denomination, bool)
            or not isinstance(denomination, int)
            or denomination <= 0
        ):
            raise MisconfiguredSink(
                f"sink denomination must be a positive int, got {denomination!r}"
            )
        return denomination

    def deposit(self, amount: int, commitment: bytes, height: int) -> Receipt:
        if self._entered:
            raise ReentrantCall()
        self._entered = True
        try:
            return self._deposit(amount, commitment, height)
        finally:
            self._entered = False

    def _deposit(self, amount: int, commitment: bytes, height: int) -> Receipt:
        denomination = self._read_denomination()
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise InvalidDeposit(f"deposit amount must be positive, got {amount!r}")
        if not isinstance(commitment, (bytes, bytearray)) or len(commitment) != COMMITMENT_SIZE:
            raise InvalidDeposit(f"commitment must be {COMMITMENT_SIZE} bytes")
        if amount > denomination:
            raise OversizedDeposit(amount, denomination)
        if height < self.last_height:
            raise InvalidDeposit(
                f"height {height} is below last processed height {self.last_height}"
            )

        checkpoint = self._checkpoint()
        try:
            self.denomination = denomination
            return self._run(amount, bytes(commitment), height)
        except Exception:
            self._restore(checkpoint)
            log.warning("Invocation at height %d rolled back", height)
            raise

    def _run(self, amount: int, commitment: bytes, height: int) -> Receipt:
        denomination = self.denomination
        self.last_height = height
        self.queue.push_tail(amount, commitment, height)
        self.balance += amount
        log.info(
            "Accepted deposit %d at height %d (held %d / %d)",
            amount,
            height,
            self.balance,
            denomination,
        )

        losers: List[bytes] = []
        winner: Optional[Entry] = None
        prev_hash: Optional[bytes] = None

        if self.balance >= denomination:
            state = self.random_state
            while not self.queue.is_empty():
                candidate = self.queue.peek_head()
                if not is_eligible(candidate, height):
                    log.debug(
                        "Head recorded at %d not eligible at %d",
                        candidate.recorded_height,
                        height,
                    )
                    break
                if prev_hash is None:
                    prev_hash = self.source.previous_unpredictable_value(height)
                self.queue.pop_head()
                result = evaluate(candidate, state, prev_hash, denomination)
                state = result.random_state
                log.debug(
                    "Candidate amount=%d ticket=%d won=%s",
                    candidate.amount,
                    result.ticket,
                    result.won,
                )
                if result.won:
                    winner = candidate
                    break
                losers.append(candidate.commitment)
                self._notify("Lose", candidate.commitment)
            self.random_state = state

        if winner is not None:
            self.balance -= denomination
            try:
                self.sink.deposit(winner.commitment, denomination)
            except Exception as e:
                raise SinkRejected(f"payout sink refused deposit: {e}") from e
            self._notify("Win", winner.commitment)
            log.info("Paid %d for commitment %s", denomination, winner.commitment.hex())

        return Receipt(
            height=height,
            amount=amount,
            commitment=commitment,
            previous_block_hash=prev_hash,
            losers=tuple(losers),
            winner=winner.commitment if winner is not None else None,
            winner_amount=winner.amount if winner is not None else None,
            random_state=self.random_state,
        )

    def _notify(self, kind: str, commitment: bytes) -> None:
        self.notifications.append(Notification(kind, commitment))

    def _checkpoint(self) -> _Checkpoint:
        return _Checkpoint(
            queue=self.queue.snapshot(),
            random_state=self.random_state,
            balance=self.balance,
            denomination=self.denomination,
            last_height=self.last_height,
            notifications=len(self.notifications),
        )

    def _restore(self, cp: _Checkpoint) -> None:
        self.queue.restore(cp.queue)
        self.random_state = cp.random_state
        self.balance = cp.balance
        self.denomination = cp.denomination
        self.last_height = cp.last_height
        del self.notifications[cp.notifications :]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "denomination": self.denomination,
            "balance": self.balance,
            "last_height": self.last_height,
            "random_state": self.random_state.hex(),
            "sink_address": getattr(self.sink, "address", None),
            "queue": self.queue.to_dict(),
        }
