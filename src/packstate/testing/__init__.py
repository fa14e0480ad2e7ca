"""Deterministic keys and clocks for tests."""
