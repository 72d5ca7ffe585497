"""Peer-review workflow backend for an academic journal."""

__version__ = "1.0.0"
