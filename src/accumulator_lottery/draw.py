from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Tuple

from .entry_queue import Entry
from .project_constants import ELIGIBILITY_DELAY, GENESIS_RANDOM_STATE


@dataclass(frozen=True)
class Evaluation:
    won: bool
    ticket: int
    random_state: bytes


def is_eligible(entry: Entry, current_height: int) -> bool:
    # Heights are unbounded ints: h <= current - 2 with no wraparound near zero.
    return entry.recorded_height + ELIGIBILITY_DELAY <= current_height


def advance_state(random_state: bytes, previous_block_hash: bytes) -> bytes:
    """
    Roll the selection state forward once.

    The previous block hash is the same for every candidate of one invocation;
    chaining through the old state keeps each candidate's value distinct.
    """
    return hashlib.sha256(random_state + previous_block_hash).digest()


def compute_ticket(random_state: bytes, denomination: int) -> int:
    # Plain modulo over a 256-bit value. The bias against any realistic
    # denomination is ~denomination / 2**256, so no rejection sampling.
    return int.from_bytes(random_state, "big") % denomination


def evaluate(
    entry: Entry,
    random_state: bytes,
    previous_block_hash: bytes,
    denomination: int,
) -> Evaluation:
    """Draw for one eligible entry. Wins with probability amount / denomination."""
    new_state = advance_state(random_state, previous_block_hash)
    ticket = compute_ticket(new_state, denomination)
    return Evaluation(won=entry.amount >= ticket, ticket=ticket, random_state=new_state)


def simulated_block_hash(seed: bytes, height: int) -> bytes:
    return hashlib.sha256(seed + b"|block|" + height.to_bytes(8, "big")).digest()


def estimate_win_probability(
    amount: int,
    denomination: int,
    trials: int,
    seed: bytes = b"",
) -> Tuple[float, int]:
    """
    Monte-Carlo win rate of a single eligible entry.

    Every trial uses a fresh simulated block hash and rolls one shared state,
    the same way consecutive invocations would. Returns (rate, wins).
    """
    if trials <= 0:
        raise ValueError("trials must be positive")
    entry = Entry(amount=amount, commitment=b"", recorded_height=0)
    state = GENESIS_RANDOM_STATE
    wins = 0
    for i in range(trials):
        result = evaluate(entry, state, simulated_block_hash(seed, i), denomination)
        state = result.random_state
        if result.won:
            wins += 1
    return wins / trials, wins
