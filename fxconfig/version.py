"""Checking namespace versions."""

from __future__ import annotations


def validate_version(v: int) -> int:
    """Return ``v`` if it is -1 (create) or 0 and above (update); raise ValueError otherwise."""
    if v < -1:
        raise ValueError("invalid version: must be -1 (create) or >= 0 (update)")
    return v