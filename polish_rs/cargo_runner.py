"""Run cargo fmt and cargo clippy on a set of workspace members."""

import subprocess
from pathlib import Path
from typing import Iterable, List


def build_cargo_command(subcommand: str, members: Iterable[str], extra_args=()) -> List[str]:
    cmd = ['cargo', subcommand]
    # Sorted so the command line does not depend on set ordering
    for member in sorted(members):
        cmd.extend(['-p', member])
    cmd.extend(extra_args)
    return cmd


def run_cargo(cmd: List[str], git_root: Path, failure: str):
    print(f"Running {' '.join(cmd)}", flush=True)
    result = subprocess.run(cmd, cwd=git_root)
    if result.returncode != 0:
        raise RuntimeError(failure)


def run_cargo_fmt(git_root: Path, members: Iterable[str]):
    run_cargo(build_cargo_command('fmt', members), git_root, "cargo fmt failed")


def run_cargo_clippy(git_root: Path, members: Iterable[str]):
    cmd = build_cargo_command(
        'clippy', members, ['--all-targets', '--', '-D', 'warnings']
    )
    run_cargo(cmd, git_root, "cargo clippy found warnings")
