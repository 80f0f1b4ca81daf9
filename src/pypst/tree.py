"""Assemble flat process records into a parent-linked forest."""

import logging
from typing import Iterable

from pypst.models import ProcessRecord

logger = logging.getLogger(__name__)


def assemble(records: Iterable[ProcessRecord], sort: bool = False) -> list[ProcessRecord]:
    """
    Attach every record to its parent and return the roots.

    Only the ``children`` lists are written, and they are rebuilt from
    scratch, so assembling the same records again gives the same forest.

    A record becomes a root when it claims no parent (``parent_id < 1``),
    names itself as parent, or its parent is not in the snapshot (the parent
    exited during the scan). Orphans are promoted, never dropped.

    Args:
        records: Records in enumeration order, unique by id.
        sort: Order roots and siblings by id instead of enumeration order.

    Returns:
        The forest roots.
    """
    by_id: dict[int, ProcessRecord] = {}
    for record in records:
        by_id[record.id] = record

    # Children from an earlier assembly of the same records are dropped
    for record in by_id.values():
        record.children.clear()

    roots: list[ProcessRecord] = []
    for record in by_id.values():
        parent = by_id.get(record.parent_id) if not record.is_root else None

        if parent is None or parent is record:
            if not record.is_root:
                logger.debug("process %d has no parent %d in snapshot", record.id, record.parent_id)
            roots.append(record)
        else:
            parent.children.append(record)

    _break_cycles(by_id, roots)

    if sort:
        roots.sort(key=lambda r: r.id)
        for record in by_id.values():
            record.children.sort(key=lambda r: r.id)

    return roots


def _break_cycles(by_id: dict[int, ProcessRecord], roots: list[ProcessRecord]) -> None:
    """
    Promote records caught in a parent cycle.

    Pid reuse during a scan can make two records name each other as parent;
    such records are unreachable from any root. One record of each cycle is
    detached from its parent and becomes a root.
    """
    reachable = {r.id for r in walk(roots)}
    for pid in sorted(by_id):
        if pid in reachable:
            continue

        # Follow parents until one repeats; that record sits on the cycle
        record, seen = by_id[pid], set()
        while record.id not in seen:
            seen.add(record.id)
            record = by_id[record.parent_id]

        logger.debug("process %d is part of a parent cycle", record.id)
        by_id[record.parent_id].children.remove(record)
        roots.append(record)
        reachable.update(r.id for r in walk([record]))


def walk(forest: Iterable[ProcessRecord]) -> Iterable[ProcessRecord]:
    """Yield every record of the forest in depth-first pre-order."""
    stack = list(reversed(list(forest)))
    while stack:
        record = stack.pop()
        yield record
        stack.extend(reversed(record.children))
