from __future__ import annotations

from typing import List

import pytest

from accumulator_lottery.accumulator import Accumulator
from accumulator_lottery.draw import simulated_block_hash
from accumulator_lottery.sink import FixedDenominationPool


def commitment(n: int) -> bytes:
    return n.to_bytes(32, "big")


class HashFeed:
    """Deterministic stand-in for the chain: hash of block h-1 derived from a seed."""

    def __init__(self, seed: bytes = b"tests") -> None:
        self.seed = seed
        self.calls: List[int] = []

    def previous_unpredictable_value(self, height: int) -> bytes:
        self.calls.append(height)
        return simulated_block_hash(self.seed, height - 1)


@pytest.fixture
def feed() -> HashFeed:
    return HashFeed()


@pytest.fixture
def pool() -> FixedDenominationPool:
    return FixedDenominationPool(address="pool", denomination=100)


@pytest.fixture
def acc(pool: FixedDenominationPool, feed: HashFeed) -> Accumulator:
    return Accumulator(pool, feed)
