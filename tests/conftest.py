"""Pytest configuration and fixtures for varexport tests."""

import sys

import pytest

from varexport import default_registry


class FakeClock:
    """Millisecond clock driven by the test."""

    def __init__(self, now: int = 0):
        self.now = now

    def __call__(self) -> int:
        return self.now


@pytest.fixture(autouse=True)
def reset_registries():
    """
    Clear the process-wide exporter registry around every test.

    Namespaces, parents and the start time all live in the registry, so
    clearing it prevents one test's exports from leaking into another.
    """
    default_registry.clear()
    yield
    default_registry.clear()
    # Remove any test packages created by discovery tests
    to_remove = [key for key in sys.modules.keys() if 'test_pkg' in key]
    for key in to_remove:
        del sys.modules[key]


@pytest.fixture
def clock():
    return FakeClock()
