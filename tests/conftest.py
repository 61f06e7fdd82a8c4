"""
Shared pytest fixtures for rowspine tests.

This module provides:
- Schema registry cleanup for test isolation
- Recording executors pre-loaded with the test tables' DESCRIBE output
- Records over ``members`` (single auto-increment key) and
  ``member_addresses`` (two-column key)
"""

from collections.abc import Generator
from pathlib import Path

import pytest

from rowspine.core.schema import default_registry

from tests._support.describes import (
    MEMBER_ADDRESSES_DESCRIBE,
    MEMBERS_DESCRIBE,
    WHITE_HOUSE_BILLING,
)
from tests._support.executors import RecordingExecutor
from tests._support.records import Member, MemberAddress


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-mark tests based on their location."""
    for item in items:
        test_path = Path(item.fspath).relative_to(Path(__file__).parent)
        if "adapters" in test_path.parts:
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Registry Cleanup Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def clean_schema_registry() -> Generator[None, None, None]:
    """Clear the process-wide schema registry before and after each test."""
    default_registry().clear()
    yield
    default_registry().clear()


# =============================================================================
# Executors and Records
# =============================================================================


@pytest.fixture
def executor() -> RecordingExecutor:
    return RecordingExecutor(
        {"members": MEMBERS_DESCRIBE, "member_addresses": MEMBER_ADDRESSES_DESCRIBE},
        insert_id=101,
    )


@pytest.fixture
def member(executor: RecordingExecutor) -> Member:
    return Member(executor)


@pytest.fixture
def address(executor: RecordingExecutor) -> MemberAddress:
    """Billing address for member 36, existence unknown."""
    return MemberAddress(executor, fields=WHITE_HOUSE_BILLING)
