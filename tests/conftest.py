"""Shared fixtures for pypst tests."""

import logging
import os
from pathlib import Path

import pytest

from pypst.models import ProcessRecord, ThreadRecord


class FakeProcRoot:
    """Builds a /proc-like directory tree under a temporary path."""

    def __init__(self, root: Path) -> None:
        self.root = root

    def add(
        self,
        pid: int,
        ppid: int | str | None,
        cmdline: list[str] | None = None,
        name: str = "proc",
        cwd: str | None = None,
        threads: dict[int, str] | None = None,
    ) -> Path:
        """Add a process directory with cmdline, status and optional cwd/task."""
        pdir = self.root / str(pid)
        pdir.mkdir()

        raw = b"".join(a.encode() + b"\0" for a in (cmdline or []))
        (pdir / "cmdline").write_bytes(raw)

        lines = [f"Name:\t{name}", "Umask:\t0022", "State:\tS (sleeping)", f"Pid:\t{pid}"]
        if ppid is not None:
            lines.append(f"PPid:\t{ppid}")
        (pdir / "status").write_text("\n".join(lines) + "\n")

        if cwd is not None:
            os.symlink(cwd, pdir / "cwd")

        task = pdir / "task"
        task.mkdir()
        for tid, tname in (threads or {pid: name}).items():
            tdir = task / str(tid)
            tdir.mkdir()
            (tdir / "status").write_text(f"Name:\t{tname}\nPid:\t{tid}\n")

        return pdir


@pytest.fixture
def fake_proc(tmp_path: Path) -> FakeProcRoot:
    """An empty fake process-information root."""
    root = tmp_path / "proc"
    root.mkdir()
    # Non-numeric entries live next to the pid directories in a real /proc
    (root / "self").mkdir()
    (root / "meminfo").write_text("MemTotal: 1 kB\n")
    return FakeProcRoot(root)


def make_record(
    pid: int,
    ppid: int,
    name: str = "proc",
    args: tuple[str, ...] = (),
    workdir: str | None = None,
    threads: tuple[ThreadRecord, ...] = (),
) -> ProcessRecord:
    """Create a ProcessRecord for tests that do not touch the filesystem."""
    return ProcessRecord(id=pid, parent_id=ppid, name=name, args=args, workdir=workdir, threads=threads)


@pytest.fixture
def sample_records() -> list[ProcessRecord]:
    """
    A small system:

        1 init
        ├── 100 sshd -D
        │   └── 200 bash
        │       └── 300 vim notes.txt
        └── 400 cron -f
            └── 500 backup.sh --full
        2 *kthreadd*
        └── 3 *kworker/0:1*
    """
    return [
        make_record(1, 0, "/sbin/init"),
        make_record(100, 1, "sshd", ("-D",)),
        make_record(200, 100, "bash"),
        make_record(300, 200, "vim", ("notes.txt",)),
        make_record(400, 1, "cron", ("-f",)),
        make_record(500, 400, "backup.sh", ("--full",)),
        make_record(2, 0, "*kthreadd*"),
        make_record(3, 2, "*kworker/0:1*"),
    ]


class ListHandler(logging.Handler):
    """Keeps formatted log messages in memory."""

    def __init__(self) -> None:
        super().__init__(logging.DEBUG)
        self.messages: list[str] = []

    def emit(self, record: logging.LogRecord) -> None:
        """Keep the message text."""
        self.messages.append(record.getMessage())


@pytest.fixture
def trace_messages():
    """Messages sent to the trace logger while the test runs."""
    trace_logger = logging.getLogger("pypst.trace")
    handler = ListHandler()
    level = trace_logger.level
    trace_logger.addHandler(handler)
    trace_logger.setLevel(logging.DEBUG)
    yield handler.messages
    trace_logger.removeHandler(handler)
    trace_logger.setLevel(level)
