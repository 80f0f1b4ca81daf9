"""
Configuration for pypst.

Environment defaults live here; the command line resolves them together with
its flags into a single ``Config`` that the core reads.
"""

import os
from dataclasses import dataclass

from pypst.matcher import MatchPolicy

# ── Environment defaults ────────────────────────────────────────
PROC_ROOT = os.environ.get("PYPST_PROC_ROOT", "/proc")
TRACE_FILE = os.environ.get("PYPST_TRACE_FILE", "pypst.trace.log")
LOG_LEVEL = os.environ.get("PYPST_LOG_LEVEL", "WARNING").upper()

# ── Rendering ───────────────────────────────────────────────────
INDENT = "  "


@dataclass(slots=True, frozen=True)
class Config:
    """
    Resolved options for one invocation.

    ``show_uid``, ``show_gid``, ``show_basic_fds`` and ``show_process_groups``
    are accepted but have no effect yet; output is identical with or without
    them.

    ``show_main_thread`` defaults to False: the thread whose id equals the
    process id is left out of thread listings unless asked for.
    """

    full_match: bool = False
    show_threads: bool = False
    show_main_thread: bool = False
    show_workdir: bool = False
    show_uid: bool = False
    show_gid: bool = False
    show_basic_fds: bool = False
    show_process_groups: bool = False
    truncate: int = 0  # 0 disables truncation
    trace: bool = False
    trace_file: str = TRACE_FILE
    sort: bool = False

    def __post_init__(self) -> None:
        if self.truncate < 0:
            raise ValueError(f"truncate must be non-negative, got {self.truncate}")

    @property
    def policy(self) -> MatchPolicy:
        """Get the match policy selected by ``full_match``."""
        return MatchPolicy.FULL_LINE if self.full_match else MatchPolicy.TOKEN
