"""Helpers for Discord limits, rendering and component tokens."""
