import hashlib

import pytest

from accumulator_lottery.draw import (
    advance_state,
    compute_ticket,
    estimate_win_probability,
    evaluate,
    is_eligible,
    simulated_block_hash,
)
from accumulator_lottery.entry_queue import Entry
from accumulator_lottery.project_constants import GENESIS_RANDOM_STATE

from conftest import commitment


@pytest.mark.parametrize(
    "recorded,current,expected",
    [
        (10, 12, True),
        (10, 11, False),
        (10, 10, False),
        (10, 100, True),
        (0, 1, False),
        (0, 2, True),
    ],
)
def test_eligibility_needs_two_blocks(recorded, current, expected):
    entry = Entry(1, commitment(1), recorded)
    assert is_eligible(entry, current) is expected


def test_advance_state_is_sha256_of_state_and_hash():
    prev = b"\x07" * 32
    assert advance_state(GENESIS_RANDOM_STATE, prev) == hashlib.sha256(
        GENESIS_RANDOM_STATE + prev
    ).digest()


def test_same_block_hash_gives_fresh_values_per_candidate():
    prev = simulated_block_hash(b"x", 5)
    s1 = advance_state(GENESIS_RANDOM_STATE, prev)
    s2 = advance_state(s1, prev)
    s3 = advance_state(s2, prev)
    assert len({s1, s2, s3}) == 3


def test_ticket_is_below_denomination():
    state = GENESIS_RANDOM_STATE
    for i in range(200):
        state = advance_state(state, simulated_block_hash(b"t", i))
        assert 0 <= compute_ticket(state, 97) < 97


def test_full_denomination_always_wins():
    entry = Entry(100, commitment(1), 0)
    state = GENESIS_RANDOM_STATE
    for i in range(500):
        result = evaluate(entry, state, simulated_block_hash(b"full", i), 100)
        assert result.won
        state = result.random_state


def test_evaluate_compares_amount_against_ticket():
    prev = b"\x01" * 32
    new_state = advance_state(GENESIS_RANDOM_STATE, prev)
    ticket = compute_ticket(new_state, 1000)

    at_ticket = evaluate(Entry(ticket, commitment(1), 0), GENESIS_RANDOM_STATE, prev, 1000)
    assert at_ticket.won
    assert at_ticket.ticket == ticket
    assert at_ticket.random_state == new_state

    if ticket > 0:
        below = evaluate(Entry(ticket - 1, commitment(1), 0), GENESIS_RANDOM_STATE, prev, 1000)
        assert not below.won


@pytest.mark.parametrize("amount", [100_000, 250_000, 750_000])
def test_win_rate_converges_to_share_of_denomination(amount):
    denomination = 1_000_000
    rate, wins = estimate_win_probability(amount, denomination, 20_000, seed=b"mc")
    assert abs(rate - amount / denomination) < 0.02
    assert 0 < wins < 20_000


def test_simulation_is_reproducible():
    assert estimate_win_probability(30, 100, 1000, seed=b"a") == estimate_win_probability(
        30, 100, 1000, seed=b"a"
    )


def test_simulation_rejects_zero_trials():
    with pytest.raises(ValueError):
        estimate_win_probability(1, 100, 0)
