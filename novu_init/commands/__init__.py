"""CLI command modules."""

from . import completion, start, sync, tunnel

__all__ = [
    "completion",
    "start",
    "sync",
    "tunnel",
]
