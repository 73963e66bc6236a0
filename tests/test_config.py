import pytest

from accumulator_lottery.config import Settings
from accumulator_lottery.project_constants import DEFAULT_STATE_FILE


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("RPC_URL", "HELIUS_API_KEY", "ACCUMULATOR_STATE_FILE"):
        monkeypatch.delenv(name, raising=False)


def test_defaults_without_env():
    settings = Settings.from_env()
    assert settings.state_file == DEFAULT_STATE_FILE
    assert settings.rpc_url is None
    with pytest.raises(RuntimeError, match="HELIUS_API_KEY"):
        settings.require_rpc_url()


def test_override_wins_over_env(monkeypatch):
    monkeypatch.setenv("RPC_URL", "https://env.example")
    settings = Settings.from_env(rpc_url_override="https://cli.example")
    assert settings.rpc_url == "https://cli.example"


def test_rpc_url_from_env(monkeypatch):
    monkeypatch.setenv("RPC_URL", " https://env.example ")
    monkeypatch.setenv("ACCUMULATOR_STATE_FILE", "custom.json")
    settings = Settings.from_env()
    assert settings.rpc_url == "https://env.example"
    assert settings.state_file == "custom.json"


def test_helius_key_builds_url(monkeypatch):
    monkeypatch.setenv("HELIUS_API_KEY", "abc")
    assert Settings.from_env().require_rpc_url() == "https://mainnet.helius-rpc.com/?api-key=abc"


def test_state_file_override(monkeypatch):
    monkeypatch.setenv("ACCUMULATOR_STATE_FILE", "env.json")
    assert Settings.from_env(state_file_override="cli.json").state_file == "cli.json"
