"""Tests for the top-level package surface."""

import rowspine
from rowspine.core import __all__ as core_exports


def test_version():
    assert rowspine.__version__ == "0.1.0"


def test_core_exports_reexported():
    for name in core_exports:
        assert hasattr(rowspine, name), name


def test_record_available():
    assert rowspine.Record is rowspine.core.record.Record
