"""Incremental, resumable mailbox extraction into a keyed store."""

__version__ = "0.1.0"
