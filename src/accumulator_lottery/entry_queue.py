from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterator, Tuple

from .errors import EmptyQueue


@dataclass(frozen=True)
class Entry:
    amount: int
    commitment: bytes
    recorded_height: int


class EntryQueue:
    """
    FIFO of pending deposits.

    Entries live in a sparse index -> Entry mapping addressed by two cursors.
    `head` points at the oldest entry and `tail` at the newest; `head > tail`
    means empty. Popping advances `head` and drops the slot, so an index is
    never reused and nothing is shifted.
    """

    def __init__(self) -> None:
        self.head = 1
        self.tail = 0
        self._entries: Dict[int, Entry] = {}

    def __len__(self) -> int:
        return self.tail - self.head + 1

    def __iter__(self) -> Iterator[Entry]:
        for idx in range(self.head, self.tail + 1):
            yield self._entries[idx]

    def is_empty(self) -> bool:
        return self.head > self.tail

    def peek_head(self) -> Entry:
        if self.is_empty():
            raise EmptyQueue("peek on empty queue")
        return self._entries[self.head]

    def pop_head(self) -> None:
        if self.is_empty():
            raise EmptyQueue("pop on empty queue")
        del self._entries[self.head]
        self.head += 1

    def push_tail(self, amount: int, commitment: bytes, recorded_height: int) -> int:
        self.tail += 1
        self._entries[self.tail] = Entry(amount, commitment, recorded_height)
        return self.tail

    def total_amount(self) -> int:
        return sum(e.amount for e in self)

    # Checkpointing. Entries are immutable so a shallow copy of the map suffices.
    def snapshot(self) -> Tuple[int, int, Dict[int, Entry]]:
        return self.head, self.tail, dict(self._entries)

    def restore(self, snap: Tuple[int, int, Dict[int, Entry]]) -> None:
        self.head, self.tail, entries = snap
        self._entries = dict(entries)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "head": self.head,
            "tail": self.tail,
            "entries": {
                str(idx): {
                    "amount": e.amount,
                    "commitment": e.commitment.hex(),
                    "recorded_height": e.recorded_height,
                }
                for idx, e in self._entries.items()
            },
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EntryQueue":
        q = cls()
        q.head = int(data["head"])
        q.tail = int(data["tail"])
        for key, e in data["entries"].items():
            q._entries[int(key)] = Entry(
                amount=int(e["amount"]),
                commitment=bytes.fromhex(e["commitment"]),
                recorded_height=int(e["recorded_height"]),
            )
        if len(q._entries) != max(q.tail - q.head + 1, 0):
            raise RuntimeError(
                f"Queue state corrupt: head={q.head} tail={q.tail} "
                f"but {len(q._entries)} stored entries"
            )
        return q
