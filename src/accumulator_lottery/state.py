from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List

from .accumulator import Accumulator, BlockHashSource, Receipt
from .entry_queue import EntryQueue
from .project_constants import COMMITMENT_SIZE, RANDOM_STATE_SIZE
from .sink import FixedDenominationPool

STATE_VERSION = "1.0.0"


@dataclass
class LedgerState:
    """Everything that has to survive between two deposit invocations."""

    accumulator: Accumulator
    pool: FixedDenominationPool
    genesis: Dict[str, Any]
    journal: List[Receipt] = field(default_factory=list)

    def record(self, receipt: Receipt) -> None:
        self.journal.append(receipt)


def new_state(
    denomination: int,
    pool_address: str,
    random_state: bytes,
    source: BlockHashSource,
) -> LedgerState:
    if len(random_state) != RANDOM_STATE_SIZE:
        raise RuntimeError(f"Random state seed must be {RANDOM_STATE_SIZE} bytes.")
    pool = FixedDenominationPool(address=pool_address, denomination=denomination)
    acc = Accumulator(pool, source, random_state=random_state)
    genesis = {
        "denomination": denomination,
        "pool_address": pool_address,
        "random_state": random_state.hex(),
        "commitment_size": COMMITMENT_SIZE,
    }
    return LedgerState(accumulator=acc, pool=pool, genesis=genesis)


def save_state(state: LedgerState, path: str) -> None:
    doc: Dict[str, Any] = {
        "metadata": {
            "tool": "accumulator-lottery",
            "version": STATE_VERSION,
            "updated_at_utc": datetime.now(timezone.utc).isoformat(),
        },
        "genesis": state.genesis,
        "accumulator": state.accumulator.to_dict(),
        "pool": state.pool.to_dict(),
        "journal": [r.to_dict() for r in state.journal],
    }
    with open(path, "w", encoding="utf-8") as f:
        json.dump(doc, f, indent=2)


def load_state(path: str, source: BlockHashSource) -> LedgerState:
    with open(path, "r", encoding="utf-8") as f:
        doc = json.load(f)

    pool = FixedDenominationPool.from_dict(doc["pool"])
    acc_doc = doc["accumulator"]
    if acc_doc.get("sink_address") != pool.address:
        raise RuntimeError(
            f"Sink address mismatch: accumulator={acc_doc.get('sink_address')} "
            f"pool={pool.address}"
        )

    acc = Accumulator(
        pool,
        source,
        random_state=bytes.fromhex(acc_doc["random_state"]),
        queue=EntryQueue.from_dict(acc_doc["queue"]),
        balance=int(acc_doc["balance"]),
        last_height=int(acc_doc.get("last_height", 0)),
    )
    return LedgerState(
        accumulator=acc,
        pool=pool,
        genesis=doc["genesis"],
        journal=[Receipt.from_dict(r) for r in doc.get("journal", [])],
    )
