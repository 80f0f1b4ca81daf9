"""Match engine: which processes, or which of their descendants, match a pattern."""

import logging
from enum import Enum
from typing import Callable, Iterable

from pypst.models import ProcessRecord

trace_logger = logging.getLogger("pypst.trace")

Predicate = Callable[[ProcessRecord], bool]


class MatchPolicy(Enum):
    """How a process is tested against the pattern."""

    TOKEN = "token"  # pid, name or any single argument contains the pattern
    FULL_LINE = "full-line"  # the rendered command line contains the pattern


def make_predicate(pattern: str, policy: MatchPolicy) -> Predicate:
    """Resolve a policy into a pure predicate over a process record."""
    if policy is MatchPolicy.FULL_LINE:

        def full_line(p: ProcessRecord) -> bool:
            return pattern in p.command_line

        return full_line

    def token(p: ProcessRecord) -> bool:
        return any(pattern in a for a in (str(p.id), p.name, *p.args))

    return token


class MatchAnnotation:
    """
    Per-scan match tables keyed by process id.

    ``matched_directly`` and ``matched_by_descendant`` are each computed at
    most once per process; every further query is a cache hit. An instance
    belongs to exactly one render pass, since process ids are not stable
    across snapshots.
    """

    def __init__(self, predicate: Predicate, trace: bool = False) -> None:
        """Start with empty tables; ``trace`` logs each fresh decision."""
        self._predicate = predicate
        self._trace = trace
        self._direct: dict[int, bool] = {}
        self._descendant: dict[int, bool] = {}
        self.evaluations = 0
        self.cache_hits = 0

    def matched_directly(self, p: ProcessRecord) -> bool:
        """Check if the process itself matches."""
        matched = self._direct.get(p.id)
        if matched is not None:
            self.cache_hits += 1
            return matched

        matched = self._predicate(p)
        self.evaluations += 1
        self._direct[p.id] = matched

        if self._trace:
            trace_logger.debug("(%s) dir: [%d] %s", matched, p.id, p.command_line)

        return matched

    def matched_by_descendant(self, p: ProcessRecord) -> bool:
        """Check if any process below ``p`` matches directly."""
        matched = self._descendant.get(p.id)
        if matched is not None:
            self.cache_hits += 1
            return matched

        matched = any(self.matched_directly(c) or self.matched_by_descendant(c) for c in p.children)
        self._descendant[p.id] = matched

        if self._trace:
            trace_logger.debug("(%s) child: [%d] %s", matched, p.id, p.command_line)

        return matched

    def is_included(self, p: ProcessRecord, forced: bool = False) -> bool:
        """Check if ``p`` belongs in the output given its ancestors' state."""
        return forced or self.matched_directly(p) or self.matched_by_descendant(p)

    def fill(self, forest: Iterable[ProcessRecord]) -> None:
        """
        Evaluate both tables for every process, children before parents.

        Uses an explicit stack, so chains of any depth are fine; once the
        children are filled a parent's descendant query looks one level down.
        """
        stack = [(p, False) for p in reversed(list(forest))]
        while stack:
            p, children_done = stack.pop()
            if children_done:
                self.matched_directly(p)
                self.matched_by_descendant(p)
                continue

            stack.append((p, True))
            stack.extend((c, False) for c in reversed(p.children))

    def log_summary(self) -> None:
        """Log the cache-hit total when tracing."""
        if self._trace:
            trace_logger.debug("Match cache hits: %d", self.cache_hits)


def annotate(
    forest: Iterable[ProcessRecord],
    pattern: str,
    policy: MatchPolicy = MatchPolicy.TOKEN,
    trace: bool = False,
) -> MatchAnnotation:
    """
    Build the match annotation for a forest.

    Walks every tree once in post-order so both tables are complete before
    rendering starts.
    """
    annotation = MatchAnnotation(make_predicate(pattern, policy), trace=trace)
    annotation.fill(forest)
    return annotation
