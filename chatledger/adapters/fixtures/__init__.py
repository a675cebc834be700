"""
Fixtures Adapter - Canned provider executors for demos and tests.
"""

from .data import FIXTURE_PAYLOADS
from .executor import FixtureExecutor, FixtureVerifier, build_fixture_registry

__all__ = [
    "FIXTURE_PAYLOADS",
    "FixtureExecutor",
    "FixtureVerifier",
    "build_fixture_registry",
]
