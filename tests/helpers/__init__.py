"""Test helpers for KidsDefis integration tests.

- setup.py: Declarative test setup via the config flow and YAML scenarios
"""

from tests.helpers.setup import (
    SetupResult,
    make_challenge,
    setup_from_yaml,
    setup_scenario,
)

__all__ = ["SetupResult", "make_challenge", "setup_from_yaml", "setup_scenario"]
