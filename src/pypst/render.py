"""Render the matching branches of a process forest."""

import json
import sys
from typing import Any, Iterable, Iterator, TextIO

from pypst.config import INDENT, Config
from pypst.matcher import MatchAnnotation
from pypst.models import ProcessRecord, ThreadRecord


def format_process(p: ProcessRecord, cfg: Config) -> str:
    """Format one process line (without indentation), truncated if configured."""
    workdir = f"({p.workdir}) " if cfg.show_workdir and p.workdir is not None else ""
    line = f"[{p.id}]{workdir}{p.command_line}"

    if cfg.truncate > 0:
        line = line[: cfg.truncate]
    return line


def format_thread(t: ThreadRecord) -> str:
    """Format one thread line as [tid]{name}."""
    return f"[{t.id}]{{{t.name}}}"


def render_lines(
    forest: Iterable[ProcessRecord],
    annotation: MatchAnnotation,
    cfg: Config,
) -> Iterator[str]:
    """
    Yield the output lines for every included process.

    A process is included when it matches, when a descendant matches, or
    when an ancestor matched directly. In the last case the whole subtree is
    printed so the match keeps its context.
    """
    # Pre-order walk on an explicit stack of (record, level, forced)
    stack = [(p, 0, False) for p in reversed(list(forest))]
    while stack:
        p, level, forced = stack.pop()
        forced = annotation.matched_directly(p) or forced
        if not annotation.is_included(p, forced):
            continue

        indent = INDENT * level
        yield indent + format_process(p, cfg)

        if cfg.show_threads:
            for t in p.threads:
                yield indent + INDENT + format_thread(t)

        stack.extend((c, level + 1, forced) for c in reversed(p.children))


def render(
    forest: Iterable[ProcessRecord],
    annotation: MatchAnnotation,
    cfg: Config,
    out: TextIO | None = None,
) -> None:
    """Write the rendered lines to ``out`` (stdout by default)."""
    out = sys.stdout if out is None else out
    for line in render_lines(forest, annotation, cfg):
        out.write(line + "\n")
    annotation.log_summary()


def included_tree(
    forest: Iterable[ProcessRecord],
    annotation: MatchAnnotation,
    cfg: Config,
) -> list[dict[str, Any]]:
    """Build the JSON shape of the included subtrees."""
    nodes: list[dict[str, Any]] = []

    # Each entry carries the list its node is appended to
    stack = [(p, False, nodes) for p in reversed(list(forest))]
    while stack:
        p, forced, siblings = stack.pop()
        forced = annotation.matched_directly(p) or forced
        if not annotation.is_included(p, forced):
            continue

        node: dict[str, Any] = {
            "id": p.id,
            "parentId": p.parent_id,
            "name": p.name,
            "args": list(p.args),
            "matched": annotation.matched_directly(p),
        }
        if cfg.show_workdir and p.workdir is not None:
            node["workdir"] = p.workdir
        if cfg.show_threads:
            node["threads"] = [t.to_dict() for t in p.threads]
        node["children"] = []
        siblings.append(node)
        stack.extend((c, forced, node["children"]) for c in reversed(p.children))

    return nodes


def render_json(
    forest: Iterable[ProcessRecord],
    annotation: MatchAnnotation,
    cfg: Config,
    out: TextIO | None = None,
) -> None:
    """Write the included subtrees as a JSON array."""
    out = sys.stdout if out is None else out
    json.dump(included_tree(forest, annotation, cfg), out, indent=2, ensure_ascii=False)
    out.write("\n")
    annotation.log_summary()
