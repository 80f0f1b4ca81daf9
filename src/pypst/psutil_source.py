"""Portable process repository built on psutil."""

import logging
import os
from types import MappingProxyType

import psutil

from pypst.config import Config
from pypst.errors import ScanError
from pypst.models import ProcessRecord, ThreadRecord

logger = logging.getLogger(__name__)


class PsutilRepository:
    """
    Collects process records through psutil.

    Used on hosts without a procfs root. Produces the same records as
    ``ProcfsRepository``: NoSuchProcess is a transient absence, AccessDenied
    on the working directory is recorded in-band, and AccessDenied on the
    command line or parent id aborts the scan.
    """

    def __init__(self, self_pid: int | None = None) -> None:
        """Initialize the repository, excluding ``self_pid`` (default: our own pid)."""
        self._self_pid = os.getpid() if self_pid is None else self_pid

    def enumerate(self, cfg: Config) -> list[ProcessRecord]:
        """Collect records for every visible process except ourselves."""
        records: list[ProcessRecord] = []

        for proc in psutil.process_iter():
            if proc.pid == self._self_pid:
                continue

            try:
                # Use oneshot() to read the process attributes in one pass
                with proc.oneshot():
                    records.append(self._read_process(proc, cfg))
            except psutil.NoSuchProcess:
                logger.debug("process %d vanished during scan", proc.pid)
            except psutil.AccessDenied as e:
                raise ScanError(f"cannot read process {proc.pid}: {e}", pid=proc.pid) from e

        logger.debug("collected %d processes through psutil", len(records))
        return records

    def _read_process(self, proc: psutil.Process, cfg: Config) -> ProcessRecord:
        """Build one record from a process inside oneshot()."""
        try:
            cmdline = proc.cmdline()
        except psutil.ZombieProcess:
            cmdline = []

        status_name = proc.name()
        name = cmdline[0] if cmdline else f"*{status_name}*"

        # psutil parses PPid itself and always hands back an int
        ppid = proc.ppid()

        workdir = None
        if cfg.show_workdir:
            try:
                workdir = proc.cwd()
            except (psutil.AccessDenied, psutil.ZombieProcess) as e:
                workdir = f"!{e.msg or type(e).__name__}"

        threads: tuple[ThreadRecord, ...] = ()
        if cfg.show_threads:
            threads = self._read_threads(proc, cfg)

        return ProcessRecord(
            id=proc.pid,
            parent_id=ppid,
            name=name,
            args=tuple(cmdline[1:]),
            workdir=workdir,
            threads=threads,
            attrs=MappingProxyType({"Name": status_name, "PPid": str(ppid)}),
        )

    def _read_threads(self, proc: psutil.Process, cfg: Config) -> tuple[ThreadRecord, ...]:
        """List the threads of ``proc`` with their names."""
        threads: list[ThreadRecord] = []

        for thread in proc.threads():
            if thread.id == proc.pid and not cfg.show_main_thread:
                continue

            try:
                # On Linux a thread id is addressable like a process id
                name = psutil.Process(thread.id).name()
            except psutil.NoSuchProcess:
                logger.debug("thread %d of process %d vanished during scan", thread.id, proc.pid)
                continue
            except psutil.AccessDenied:
                name = ""

            threads.append(ThreadRecord(id=thread.id, name=name))

        return tuple(threads)
