import logging

import pytest

from aicli.utils.schema import OSInfo


@pytest.fixture
def linux() -> OSInfo:
    return OSInfo(platform="linux", arch="x86_64", shell="bash")


@pytest.fixture
def windows() -> OSInfo:
    return OSInfo(platform="windows", arch="amd64", shell="powershell")


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path):
    # keep real keys and the user's ~/.ai-cli out of every test
    for name in (
        "GEMINI_API_KEY", "OPENAI_API_KEY", "ANTHROPIC_API_KEY", "AIC_PROVIDER", "AIC_CONFIG",
        "AIC_CACHE_PATH", "AIC_VAULT_PATH", "AIC_PLUGIN_DIR", "AIC_LOG_PATH", "AIC_AI_TIMEOUT",
        "AIC_LOG_LEVEL", "AIC_GEMINI_MODEL", "AIC_OPENAI_MODEL", "AIC_ANTHROPIC_MODEL", "AIC_LOCAL_MODEL",
        "OLLAMA_HOST",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.setenv("USERPROFILE", str(tmp_path / "home"))
    # setup_logging() turns propagation off; caplog needs it on
    logging.getLogger("aicli").propagate = True
