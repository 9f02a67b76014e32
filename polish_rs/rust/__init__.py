"""Rust source scripts."""
