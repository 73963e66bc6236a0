from __future__ import annotations

import argparse
import logging
import os
from typing import Optional

from .config import Settings
from .draw import estimate_win_probability
from .errors import AccumulatorError
from .project_constants import (
    COMMITMENT_SIZE,
    DEFAULT_DENOMINATION,
    DEFAULT_POOL_ADDRESS,
    GENESIS_RANDOM_STATE,
)
from .rpc import (
    FeedFileBlockHashSource,
    RpcBlockHashSource,
    RpcClient,
    StaticBlockHashSource,
    decode_blockhash,
)
from .state import load_state, new_state, save_state
from .verify import verify_journal


def setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")


def parse_hex(value: str, name: str, size: Optional[int] = None) -> bytes:
    raw = value[2:] if value.startswith(("0x", "0X")) else value
    try:
        out = bytes.fromhex(raw)
    except ValueError:
        raise SystemExit(f"{name} is not valid hex: {value}")
    if size is not None and len(out) != size:
        raise SystemExit(f"{name} must be {size} bytes, got {len(out)}")
    return out


def cmd_init(args: argparse.Namespace) -> int:
    settings = Settings.from_env(state_file_override=args.state_file)
    if os.path.exists(settings.state_file) and not args.force:
        raise SystemExit(
            f"{settings.state_file} already exists. Use --force to overwrite."
        )

    seed = (
        parse_hex(args.seed, "--seed", size=len(GENESIS_RANDOM_STATE))
        if args.seed
        else GENESIS_RANDOM_STATE
    )
    try:
        state = new_state(
            denomination=args.denomination,
            pool_address=args.pool_address,
            random_state=seed,
            source=StaticBlockHashSource(),
        )
    except AccumulatorError as e:
        raise SystemExit(f"{e.code}: {e}")
    save_state(state, settings.state_file)

    print(f"Pool address  : {state.pool.address}")
    print(f"Denomination  : {state.accumulator.denomination}")
    print(f"Random state  : {state.accumulator.random_state.hex()}")
    print(f"🧾 Wrote state: {settings.state_file}")
    return 0


def cmd_deposit(args: argparse.Namespace) -> int:
    settings = Settings.from_env(
        rpc_url_override=args.rpc_url, state_file_override=args.state_file
    )
    log = logging.getLogger("deposit")
    commitment = parse_hex(args.commitment, "--commitment", size=COMMITMENT_SIZE)

    rpc: Optional[RpcClient] = None
    if args.height is None or (args.block_hash is None and args.block_feed_file is None):
        rpc = RpcClient(settings.require_rpc_url(), timeout_s=args.timeout)

    try:
        height = args.height if args.height is not None else rpc.get_slot()
        if args.block_hash:
            source = StaticBlockHashSource({height: decode_blockhash(args.block_hash)})
            source_desc = "cli:--block-hash"
        elif args.block_feed_file:
            source = FeedFileBlockHashSource(args.block_feed_file)
            source_desc = f"file:{args.block_feed_file}"
        else:
            source = RpcBlockHashSource(rpc)
            source_desc = "rpc:getBlock"
        log.info("Height           : %d", height)
        log.info("Block hash source: %s", source_desc)

        state = load_state(settings.state_file, source)
        try:
            receipt = state.accumulator.deposit(args.amount, commitment, height)
        except AccumulatorError as e:
            raise SystemExit(f"❌ {e.code}: {e}")
    finally:
        if rpc is not None:
            rpc.close()

    state.record(receipt)
    save_state(state, settings.state_file)

    print("========================================")
    print("DEPOSIT ACCEPTED")
    print("========================================")
    print(f"Height        : {receipt.height}")
    print(f"Amount        : {receipt.amount}")
    print(f"Commitment    : {receipt.commitment.hex()}")
    print(f"Held balance  : {state.accumulator.balance}")
    if receipt.previous_block_hash is not None:
        print(f"Prev blockhash: {receipt.previous_block_hash.hex()}")
    for c in receipt.losers:
        print(f"Lose          : {c.hex()}")
    if receipt.winner is not None:
        print("----------------------------------------")
        print("🏆 WIN")
        print(f"Commitment    : {receipt.winner.hex()}")
        print(f"Contributed   : {receipt.winner_amount}")
        print(f"Paid          : {state.accumulator.denomination}")
    print("----------------------------------------")
    print(f"🧾 Wrote state: {settings.state_file}")
    return 0


def cmd_status(args: argparse.Namespace) -> int:
    settings = Settings.from_env(state_file_override=args.state_file)
    state = load_state(settings.state_file, StaticBlockHashSource())
    acc = state.accumulator

    print(f"Pool address  : {state.pool.address}")
    print(f"Denomination  : {acc.denomination}")
    print(f"Held balance  : {acc.balance}")
    print(f"Random state  : {acc.random_state.hex()}")
    print(f"Payouts       : {len(state.pool.commitments)}")
    print(f"Paid out      : {state.pool.balance}")
    print(f"Pending       : {len(acc.queue)}")
    print(f"Queued value  : {acc.queue.total_amount()}")
    for entry in acc.queue:
        print(
            f"  h={entry.recorded_height:<12} amount={entry.amount:<12} "
            f"{entry.commitment.hex()}"
        )
    return 0


def cmd_verify(args: argparse.Namespace) -> int:
    settings = Settings.from_env(state_file_override=args.state_file)
    result = verify_journal(load_state(settings.state_file, StaticBlockHashSource()))
    print("✅ JOURNAL VERIFIED")
    print(f"Deposits      : {result['deposits']}")
    print(f"Payouts       : {result['payouts']}")
    print(f"Paid out      : {result['paid_out']}")
    print(f"Pending       : {result['pending']}")
    print(f"Random state  : {result['random_state']}")
    return 0


def cmd_simulate(args: argparse.Namespace) -> int:
    if not 0 < args.amount <= args.denomination:
        raise SystemExit("--amount must be in (0, denomination].")
    rate, wins = estimate_win_probability(
        args.amount, args.denomination, args.trials, seed=args.seed.encode("utf-8")
    )
    print(f"Trials        : {args.trials}")
    print(f"Wins          : {wins}")
    print(f"Observed rate : {rate:.6f}")
    print(f"Expected rate : {args.amount / args.denomination:.6f}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="accumulator-lottery",
        description=(
            "Accumulate small deposits and pay full pool denominations "
            "to amount-weighted random winners."
        ),
    )
    p.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    p.add_argument("--rpc-url", default=None, help="Override RPC URL (else use env).")
    p.add_argument("--timeout", type=float, default=60.0, help="RPC timeout seconds.")
    p.add_argument(
        "--state-file", default=None, help="State JSON path (else use env/default)."
    )

    sub = p.add_subparsers(dest="cmd", required=True)

    i = sub.add_parser("init", help="Create a fresh state file.")
    i.add_argument(
        "--denomination",
        type=int,
        default=DEFAULT_DENOMINATION,
        help="Pool denomination (payout threshold) in raw units.",
    )
    i.add_argument("--pool-address", default=DEFAULT_POOL_ADDRESS)
    i.add_argument("--seed", default=None, help="Initial 32-byte random state (hex).")
    i.add_argument("--force", action="store_true", help="Overwrite existing state.")
    i.set_defaults(func=cmd_init)

    d = sub.add_parser("deposit", help="Queue a deposit and run the draw.")
    d.add_argument("--amount", required=True, type=int, help="Raw units.")
    d.add_argument("--commitment", required=True, help="32-byte commitment (hex).")
    d.add_argument(
        "--height", type=int, default=None, help="Current slot (else ask RPC)."
    )
    d.add_argument(
        "--block-hash",
        default=None,
        help="Hash of block height-1 (base58 or 0x-hex).",
    )
    d.add_argument(
        "--block-feed-file",
        default=None,
        help=(
            "Path to a block feed file to source the previous blockhash. "
            "Can be raw string or JSON containing blockhash."
        ),
    )
    d.set_defaults(func=cmd_deposit)

    s = sub.add_parser("status", help="Show queue, balance and random state.")
    s.set_defaults(func=cmd_status)

    v = sub.add_parser("verify", help="Replay the journal deterministically.")
    v.set_defaults(func=cmd_verify)

    m = sub.add_parser("simulate", help="Estimate the win rate of one entry.")
    m.add_argument("--amount", required=True, type=int)
    m.add_argument("--denomination", type=int, default=DEFAULT_DENOMINATION)
    m.add_argument("--trials", type=int, default=100_000)
    m.add_argument("--seed", default="simulate")
    m.set_defaults(func=cmd_simulate)

    return p


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()
    setup_logging(args.verbose)
    raise SystemExit(args.func(args))
