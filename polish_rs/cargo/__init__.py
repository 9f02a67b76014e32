"""Cargo.toml scripts."""
