"""Data models for pypst."""

import json
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping


@dataclass(slots=True, frozen=True)
class ThreadRecord:
    """Immutable view of a single thread of a process."""

    id: int
    name: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-ready dictionary."""
        return {"id": self.id, "name": self.name}


@dataclass(slots=True, frozen=True)
class ProcessRecord:
    """
    Immutable snapshot of one process.

    Only ``children`` changes after construction; it is filled by the tree
    assembler and every record is attached to at most one parent.
    """

    id: int
    parent_id: int  # < 1 means no known parent
    name: str
    args: tuple[str, ...] = ()
    workdir: str | None = None  # '!'-prefixed when it could not be resolved
    threads: tuple[ThreadRecord, ...] = ()
    attrs: Mapping[str, str] = field(
        default_factory=lambda: MappingProxyType({}), repr=False, hash=False
    )
    children: list["ProcessRecord"] = field(default_factory=list, repr=False, compare=False)

    @property
    def command_line(self) -> str:
        """
        Render the command line.

        Arguments are space-joined unless one of them is empty or holds
        whitespace, in which case the whole line becomes a compact JSON array.
        """
        if not self.args:
            return self.name

        argv = [self.name, *self.args]
        if not any(a == "" or " " in a or "\t" in a for a in argv):
            return " ".join(argv)

        return json.dumps(argv, ensure_ascii=False, separators=(",", ":"))

    @property
    def is_root(self) -> bool:
        """Check if the record claims no parent."""
        return self.parent_id < 1
