from __future__ import annotations

import importlib.metadata
import os
import subprocess
from pathlib import Path
from typing import NamedTuple, Optional


class BuildInfo(NamedTuple):
    version: Optional[str]
    commit: Optional[str]
    dirty: bool


def _run_git(args: list[str], cwd: Optional[str] = None) -> Optional[str]:
    try:
        out = subprocess.check_output(["git", *args], cwd=cwd or os.getcwd(),
                                      stderr=subprocess.DEVNULL)
        return out.decode().strip() or None
    except (OSError, subprocess.CalledProcessError):
        return None


def _installed_version() -> Optional[str]:
    try:
        return importlib.metadata.version("mdr")
    except importlib.metadata.PackageNotFoundError:
        return None


def _from_git_checkout() -> tuple[Optional[str], bool]:
    here = Path(__file__).resolve().parent
    root = _run_git(["rev-parse", "--show-toplevel"], cwd=str(here))
    if not root:
        return None, False
    commit = _run_git(["rev-parse", "HEAD"], cwd=root)
    status = _run_git(["status", "--porcelain"], cwd=root)
    return commit, bool(status)


def get_build_info() -> BuildInfo:
    commit, dirty = _from_git_checkout()
    return BuildInfo(version=_installed_version(), commit=commit, dirty=dirty)


def get_version_string() -> str:
    info = get_build_info()
    version = info.version or "unknown"
    if not info.commit:
        return f"mdr {version}"
    # Use short (7-character) git hashes
    dirty_suffix = "-dirty" if info.dirty else ""
    return f"mdr {version} ({info.commit[:7]}{dirty_suffix})"
