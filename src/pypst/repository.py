"""Process repository reading a /proc-style process-information root."""

import logging
import os
from types import MappingProxyType
from typing import Iterator

from pypst.config import PROC_ROOT, Config
from pypst.errors import MalformedRecordError, ScanError
from pypst.models import ProcessRecord, ThreadRecord

logger = logging.getLogger(__name__)

# A process or thread that exits between listing and reading shows up as one of these
VANISHED = (FileNotFoundError, ProcessLookupError)


def iter_pid_dir(path: str) -> Iterator[int]:
    """
    Yield the positive integer entry names of ``path``.

    Non-numeric entries are skipped. The directory handle is closed before
    the generator finishes, including when the caller stops early.
    """
    with os.scandir(path) as entries:
        for entry in entries:
            try:
                pid = int(entry.name)
            except ValueError:
                continue
            if pid > 0:
                yield pid


def read_cmdline(path: str) -> list[str]:
    """Read a NUL-separated command line; empty for kernel-owned processes."""
    with open(path, "rb") as f:
        raw = f.read()

    if not raw:
        return []
    if raw.endswith(b"\0"):
        raw = raw[:-1]
    return [token.decode("utf-8", errors="replace") for token in raw.split(b"\0")]


def read_attrs(path: str) -> dict[str, str]:
    """
    Parse a status file into a key/value table.

    Each line is split on its first colon and the value is left-trimmed of
    spaces and tabs; lines without a colon are skipped.
    """
    attrs: dict[str, str] = {}
    with open(path, "r", encoding="utf-8", errors="replace") as f:
        for line in f:
            key, sep, value = line.rstrip("\n").partition(":")
            if not sep:
                continue
            attrs[key] = value.lstrip(" \t")
    return attrs


class ProcfsRepository:
    """
    Collects one ``ProcessRecord`` per live process from a procfs root.

    Processes that vanish mid-scan are dropped; every other read failure
    raises ``ScanError`` and no partial result is returned.
    """

    def __init__(self, root: str = PROC_ROOT, self_pid: int | None = None) -> None:
        """
        Initialize the repository.

        Args:
            root: Process-information root to read from. Default /proc.
            self_pid: Process id excluded from the result. Defaults to the
                id of the running interpreter.
        """
        self._root = root
        self._self_pid = os.getpid() if self_pid is None else self_pid

    @property
    def root(self) -> str:
        """Get the process-information root."""
        return self._root

    def enumerate(self, cfg: Config) -> list[ProcessRecord]:
        """Collect records for every process under the root except ourselves."""
        records: list[ProcessRecord] = []

        for pid in self._list(self._root):
            if pid == self._self_pid:
                continue

            try:
                records.append(self._read_process(pid, cfg))
            except VANISHED:
                logger.debug("process %d vanished during scan", pid)
            except OSError as e:
                raise ScanError(
                    f"cannot read process {pid}: {e}", path=e.filename, pid=pid
                ) from e

        logger.debug("collected %d processes from %s", len(records), self._root)
        return records

    def _list(self, path: str) -> list[int]:
        """List the pids under ``path``, failing the scan if it cannot be read."""
        try:
            return list(iter_pid_dir(path))
        except OSError as e:
            raise ScanError(f"open({path}): {e.strerror or e}", path=path) from e

    def _path(self, *parts: object) -> str:
        """Join ``parts`` below the root."""
        return os.path.join(self._root, *(str(p) for p in parts))

    def _read_process(self, pid: int, cfg: Config) -> ProcessRecord:
        """Read the record of one process; OSErrors propagate to the caller."""
        cmdline = read_cmdline(self._path(pid, "cmdline"))
        attrs = read_attrs(self._path(pid, "status"))

        if cmdline:
            name = cmdline[0]
        elif "Name" in attrs:
            name = f"*{attrs['Name']}*"
        else:
            name = ""

        try:
            ppid = int(attrs["PPid"])
        except (KeyError, ValueError) as e:
            raise MalformedRecordError(
                f"invalid PPid for pid {pid}: {attrs.get('PPid')!r}",
                path=self._path(pid, "status"),
                pid=pid,
            ) from e

        workdir = self._read_workdir(pid) if cfg.show_workdir else None
        threads = self._read_threads(pid, cfg) if cfg.show_threads else ()

        return ProcessRecord(
            id=pid,
            parent_id=ppid,
            name=name,
            args=tuple(cmdline[1:]),
            workdir=workdir,
            threads=threads,
            attrs=MappingProxyType(attrs),
        )

    def _read_workdir(self, pid: int) -> str:
        """Resolve the working directory, or a '!' marker on failure."""
        try:
            return os.readlink(self._path(pid, "cwd"))
        except OSError as e:
            return f"!{e.strerror or e}"

    def _read_threads(self, pid: int, cfg: Config) -> tuple[ThreadRecord, ...]:
        """List the threads of ``pid`` from its task directory."""
        task_dir = self._path(pid, "task")
        threads: list[ThreadRecord] = []

        # A missing task directory means the process itself is gone
        for tid in list(iter_pid_dir(task_dir)):
            if tid == pid and not cfg.show_main_thread:
                continue

            try:
                attrs = read_attrs(os.path.join(task_dir, str(tid), "status"))
            except VANISHED:
                logger.debug("thread %d of process %d vanished during scan", tid, pid)
                continue

            threads.append(ThreadRecord(id=tid, name=attrs.get("Name", "")))

        return tuple(threads)

