"""Exceptions raised while collecting a process snapshot."""


class PstError(Exception):
    """Base class for pypst errors."""


class ScanError(PstError):
    """
    The process snapshot could not be collected.

    Raised for any read failure other than a process vanishing mid-scan.
    Collection is all-or-nothing, so nothing is rendered after this.
    """

    def __init__(self, message: str, path: str | None = None, pid: int | None = None) -> None:
        super().__init__(message)
        self.path = path
        self.pid = pid


class MalformedRecordError(ScanError):
    """A mandatory status attribute (PPid) could not be parsed."""
