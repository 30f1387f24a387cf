import pytest

RELAY_ENV_VARS = ("REQ_URL", "RCPT_URL", "ENS_NAME", "RPC_URL", "PORT", "LOG_LEVEL")


@pytest.fixture(autouse=True)
def isolated_relay_env(monkeypatch):
    """Keep the host environment from leaking into Settings()."""
    for name in RELAY_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
