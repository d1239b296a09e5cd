"""Pytest configuration for deckhub tests."""

import logging
import os

import instrukt_ai_logging
import pytest

# Keep the developer's ~/.deckhub and .env out of test runs
os.environ.setdefault("DECKHUB_CONFIG_PATH", os.devnull)
os.environ.setdefault("DECKHUB_ENV_PATH", os.devnull)


def _noop_configure_logging(*_args, **_kwargs):  # type: ignore[no-untyped-def]
    return None


instrukt_ai_logging.configure_logging = _noop_configure_logging  # type: ignore[assignment]
logging.getLogger("deckhub").handlers.clear()
logging.getLogger().handlers.clear()


def pytest_collection_modifyitems(config, items):
    """Set per-marker timeouts: unit=1s, integration=5s."""
    for item in items:
        if "unit" in item.keywords:
            item.add_marker(pytest.mark.timeout(1))
        elif "integration" in item.keywords:
            item.add_marker(pytest.mark.timeout(5))
