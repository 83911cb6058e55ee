"""
Shared pytest fixtures for policykit tests.

Provides reference clock management and isolation of policykit environment
variables.
"""

import os
from datetime import date
from typing import Generator

import pytest

from policykit.models.base import REFERENCE_DATE_ENV
from policykit.yaml_config.loader import POLICY_FILE_ENV

# Reference date used by the time-window tests
FIXED_REFERENCE_DATE = date(2025, 1, 10)


@pytest.fixture
def fixed_reference_date() -> Generator[date, None, None]:
    """
    Fixture that pins POLICYKIT_REFERENCE_DATE for the test duration.

    Restores the original value after the test completes.
    """
    original = os.environ.get(REFERENCE_DATE_ENV)
    os.environ[REFERENCE_DATE_ENV] = FIXED_REFERENCE_DATE.isoformat()
    yield FIXED_REFERENCE_DATE
    if original is not None:
        os.environ[REFERENCE_DATE_ENV] = original
    elif REFERENCE_DATE_ENV in os.environ:
        del os.environ[REFERENCE_DATE_ENV]


@pytest.fixture(autouse=True)
def reset_environment() -> Generator[None, None, None]:
    """
    Autouse fixture that ensures tests start without policykit variables set.

    This prevents environment bleed between tests.
    """
    saved = {name: os.environ.pop(name, None) for name in (REFERENCE_DATE_ENV, POLICY_FILE_ENV)}
    yield
    for name, value in saved.items():
        if value is not None:
            os.environ[name] = value
        elif name in os.environ:
            del os.environ[name]
