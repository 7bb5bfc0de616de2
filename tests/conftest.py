"""Pytest configuration and shared fixtures for all tests."""

import os
import sys
from pathlib import Path

# Добавить корень проекта в PYTHONPATH
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from unittest.mock import MagicMock

import pytest

from civic_anchor.config.settings import ChainSettings
from tests.factories import (
    BACKUP_URL,
    PRIMARY_URL,
    TEST_CHAIN_ID,
    TEST_PRIVATE_KEY,
    build_rpc_client,
    make_receipt,
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep real SHARDEUM_* variables out of tests."""
    for name in list(os.environ):
        if name.upper().startswith("SHARDEUM_"):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture
def settings():
    """Writable settings with fast confirmation polling."""
    return ChainSettings(
        _env_file=None,
        enabled=True,
        event_logging=True,
        private_key=TEST_PRIVATE_KEY,
        rpc_url=PRIMARY_URL,
        fallback_rpc_urls=BACKUP_URL,
        chain_id=TEST_CHAIN_ID,
        receipt_poll_interval=0.01,
        receipt_timeout=0.2,
    )


@pytest.fixture
def rpc_client():
    """Default mock client: receipt confirmed after two empty polls."""
    return build_rpc_client(receipt=make_receipt(), polls_before_receipt=2)


@pytest.fixture
def client_factory(rpc_client):
    """Client factory returning the shared mock client for any endpoint."""
    return MagicMock(return_value=rpc_client)
