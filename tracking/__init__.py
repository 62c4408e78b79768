"""Lightweight runtime function usage tracking."""

from .runtime import configure, reset, snapshot, t

__all__ = ["t", "snapshot", "reset", "configure"]
