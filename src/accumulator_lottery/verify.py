from __future__ import annotations

from typing import Any, Dict, List

from .accumulator import Accumulator, Receipt
from .rpc import StaticBlockHashSource
from .sink import FixedDenominationPool
from .state import LedgerState


def _source_from_journal(journal: List[Receipt]) -> StaticBlockHashSource:
    hashes: Dict[int, bytes] = {}
    for r in journal:
        if r.previous_block_hash is None:
            continue
        known = hashes.setdefault(r.height, r.previous_block_hash)
        if known != r.previous_block_hash:
            raise RuntimeError(
                f"Journal uses two different previous block hashes at height {r.height}"
            )
    return StaticBlockHashSource(hashes)


def replay_journal(genesis: Dict[str, Any], journal: List[Receipt]) -> Accumulator:
    """Rebuild an accumulator from genesis and re-run every journaled deposit."""
    pool = FixedDenominationPool(
        address=genesis["pool_address"], denomination=int(genesis["denomination"])
    )
    acc = Accumulator(
        pool,
        _source_from_journal(journal),
        random_state=bytes.fromhex(genesis["random_state"]),
    )

    for i, expected in enumerate(journal):
        got = acc.deposit(expected.amount, expected.commitment, expected.height)
        if got.losers != expected.losers:
            raise RuntimeError(
                f"Journal entry {i}: losers mismatch: "
                f"journal={[c.hex() for c in expected.losers]} "
                f"recomputed={[c.hex() for c in got.losers]}"
            )
        if got.winner != expected.winner:
            raise RuntimeError(
                f"Journal entry {i}: winner mismatch: journal={expected.winner!r} "
                f"recomputed={got.winner!r}"
            )
        if got.random_state != expected.random_state:
            raise RuntimeError(
                f"Journal entry {i}: random state mismatch: "
                f"journal={expected.random_state.hex()} recomputed={got.random_state.hex()}"
            )
    return acc


def verify_journal(state: LedgerState) -> Dict[str, Any]:
    replayed = replay_journal(state.genesis, state.journal)
    live = state.accumulator

    if replayed.random_state != live.random_state:
        raise RuntimeError(
            f"Final random state mismatch: state={live.random_state.hex()} "
            f"recomputed={replayed.random_state.hex()}"
        )
    if replayed.balance != live.balance:
        raise RuntimeError(
            f"Held balance mismatch: state={live.balance} recomputed={replayed.balance}"
        )
    if replayed.queue.to_dict() != live.queue.to_dict():
        raise RuntimeError("Queue mismatch between state and replayed journal.")
    if replayed.sink.commitments != state.pool.commitments:
        raise RuntimeError("Pool commitments mismatch between state and replayed journal.")

    deposited = sum(r.amount for r in state.journal)
    if deposited != live.balance + state.pool.balance:
        raise RuntimeError(
            f"Value not conserved: deposited={deposited} held={live.balance} "
            f"paid={state.pool.balance}"
        )

    return {
        "ok": True,
        "deposits": len(state.journal),
        "payouts": len(state.pool.commitments),
        "paid_out": state.pool.balance,
        "pending": len(live.queue),
        "random_state": live.random_state.hex(),
    }
