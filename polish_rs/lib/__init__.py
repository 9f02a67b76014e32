"""Shared helpers for the fix and review scripts."""
