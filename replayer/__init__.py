"""Replay recorded HTTP accesses at their original (optionally shifted) time."""

__version__ = "0.1.0"
