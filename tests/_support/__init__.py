"""Shared test doubles and fixture data for the rowspine test-suite."""
