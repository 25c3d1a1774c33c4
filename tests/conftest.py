"""Shared fixtures."""

import logging

import pytest


@pytest.fixture(autouse=True)
def raidcue_debug_logs(caplog):
    """Capture raidcue logs at DEBUG so tests can assert on them."""
    caplog.set_level(logging.DEBUG, logger="raidcue")
    yield caplog
