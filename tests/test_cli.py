import json

import pytest

from accumulator_lottery.cli import build_parser

from conftest import commitment

BLOCK_HASH = "0x" + "11" * 32


def run(args, capsys):
    parsed = build_parser().parse_args(args)
    code = parsed.func(parsed)
    return code, capsys.readouterr().out


@pytest.fixture
def state_file(tmp_path, monkeypatch):
    for name in ("RPC_URL", "HELIUS_API_KEY", "ACCUMULATOR_STATE_FILE"):
        monkeypatch.delenv(name, raising=False)
    return str(tmp_path / "state.json")


def deposit_args(state_file, amount, n, height):
    return [
        "--state-file", state_file,
        "deposit",
        "--amount", str(amount),
        "--commitment", "0x" + commitment(n).hex(),
        "--height", str(height),
        "--block-hash", BLOCK_HASH,
    ]


def test_init_deposit_status_verify(state_file, capsys):
    code, out = run(["--state-file", state_file, "init", "--denomination", "100"], capsys)
    assert code == 0
    assert "Denomination  : 100" in out

    run(deposit_args(state_file, 100, 1, 10), capsys)
    run(deposit_args(state_file, 5, 2, 11), capsys)
    code, out = run(deposit_args(state_file, 5, 3, 12), capsys)
    assert code == 0
    assert "WIN" in out
    assert commitment(1).hex() in out

    code, out = run(["--state-file", state_file, "status"], capsys)
    assert "Payouts       : 1" in out
    assert "Pending       : 2" in out
    assert "Paid out      : 100" in out
    assert "Queued value  : 10" in out

    code, out = run(["--state-file", state_file, "verify"], capsys)
    assert code == 0
    assert "JOURNAL VERIFIED" in out

    doc = json.loads(open(state_file, encoding="utf-8").read())
    assert len(doc["journal"]) == 3
    assert doc["pool"]["commitments"] == [commitment(1).hex()]


def test_deposit_below_last_height_exits_and_keeps_state(state_file, capsys):
    run(["--state-file", state_file, "init", "--denomination", "100"], capsys)
    run(deposit_args(state_file, 5, 1, 12), capsys)
    before = open(state_file, encoding="utf-8").read()
    with pytest.raises(SystemExit, match="InvalidDeposit"):
        run(deposit_args(state_file, 5, 2, 11), capsys)
    assert open(state_file, encoding="utf-8").read() == before


def test_init_refuses_to_overwrite(state_file, capsys):
    run(["--state-file", state_file, "init"], capsys)
    with pytest.raises(SystemExit):
        run(["--state-file", state_file, "init"], capsys)
    code, _ = run(["--state-file", state_file, "init", "--force"], capsys)
    assert code == 0


def test_init_rejects_zero_denomination(state_file, capsys):
    with pytest.raises(SystemExit, match="MisconfiguredSink"):
        run(["--state-file", state_file, "init", "--denomination", "0"], capsys)


def test_oversized_deposit_exits_and_keeps_state(state_file, capsys):
    run(["--state-file", state_file, "init", "--denomination", "100"], capsys)
    before = open(state_file, encoding="utf-8").read()
    with pytest.raises(SystemExit, match="OversizedDeposit"):
        run(deposit_args(state_file, 101, 1, 10), capsys)
    assert open(state_file, encoding="utf-8").read() == before


def test_bad_commitment_length(state_file, capsys):
    run(["--state-file", state_file, "init"], capsys)
    args = deposit_args(state_file, 1, 1, 1)
    args[args.index("--commitment") + 1] = "0xabcd"
    with pytest.raises(SystemExit, match="32 bytes"):
        run(args, capsys)


def test_deposit_without_height_needs_rpc(state_file, capsys):
    run(["--state-file", state_file, "init"], capsys)
    with pytest.raises(RuntimeError, match="HELIUS_API_KEY"):
        run(
            ["--state-file", state_file, "deposit", "--amount", "1",
             "--commitment", commitment(1).hex()],
            capsys,
        )


def test_simulate(capsys):
    code, out = run(
        ["simulate", "--amount", "50", "--denomination", "100", "--trials", "2000"], capsys
    )
    assert code == 0
    assert "Expected rate : 0.500000" in out
