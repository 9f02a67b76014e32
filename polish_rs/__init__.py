"""Rust source polishing: declaration grouping, dependency sorting, cargo fmt/clippy."""

from polish_rs.rust.group_declarations import group_declarations
from polish_rs.cargo.fix_dependency_order import organize_toml

__version__ = "0.1.0"
