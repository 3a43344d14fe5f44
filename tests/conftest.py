import os

import pytest
from loguru import logger


@pytest.fixture
def clean_environment(monkeypatch):
    """Ensure tests run with a clean environment.

    - Unset PAPERCONTEXT_* variables that can alter retrieval tunables.
    - Unset common embedding API keys to avoid accidental network init.
    """
    to_clear = [k for k in os.environ.keys() if k.startswith("PAPERCONTEXT_")]
    to_clear += [
        "OPENAI_API_KEY",
        "OPENAI_BASE_URL",
    ]
    for k in to_clear:
        monkeypatch.delenv(k, raising=False)
    yield


@pytest.fixture
def captured_logs():
    """Collect loguru messages emitted during a test."""
    messages: list[str] = []
    handler_id = logger.add(messages.append, level="DEBUG", format="{level}|{message}")
    yield messages
    logger.remove(handler_id)
