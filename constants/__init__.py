"""Shared session-state key names."""
