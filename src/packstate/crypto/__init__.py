"""Signature oracle for the reference host (Ed25519 over canonical instruction bytes)."""

from __future__ import annotations

__all__ = ["sig"]
