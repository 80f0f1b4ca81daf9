"""Command line entry point for pypst."""

import logging

import click

from pypst import __version__
from pypst.config import LOG_LEVEL, PROC_ROOT, TRACE_FILE, Config
from pypst.errors import PstError
from pypst.logging_config import configure_logging, open_trace
from pypst.matcher import annotate
from pypst.render import render, render_json
from pypst.tree import assemble

logger = logging.getLogger(__name__)

SOURCES = ("procfs", "psutil")


def make_repository(source: str, proc_root: str):
    """Pick the record source named on the command line."""
    if source == "psutil":
        from pypst.psutil_source import PsutilRepository

        return PsutilRepository()

    from pypst.repository import ProcfsRepository

    return ProcfsRepository(root=proc_root)


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("pattern")
@click.option("-f", "--full-match", is_flag=True, help="Match against the whole rendered command line.")
@click.option("-T", "--show-threads", is_flag=True, help="List the threads of each printed process.")
@click.option("--show-main-thread", is_flag=True, help="Include the main thread in thread listings.")
@click.option("-w", "--show-workdir", is_flag=True, help="Show each process's working directory.")
@click.option("-u", "--show-uid", is_flag=True, help="Reserved; no effect yet.")
@click.option("-g", "--show-gid", is_flag=True, help="Reserved; no effect yet.")
@click.option("-F", "--show-basic-fds", is_flag=True, help="Reserved; no effect yet.")
@click.option("-G", "--show-process-groups", is_flag=True, help="Reserved; no effect yet.")
@click.option(
    "-t",
    "--truncate",
    type=click.IntRange(min=0),
    default=0,
    show_default=True,
    help="Truncate lines longer than this many characters (0 disables).",
)
@click.option("--enable-trace", "trace", is_flag=True, help="Log match decisions and cache hits.")
@click.option(
    "--trace-file",
    type=click.Path(dir_okay=False),
    default=TRACE_FILE,
    show_default=True,
    help="Where the trace goes; stderr if it cannot be opened.",
)
@click.option("--sort", is_flag=True, help="Order sibling processes by pid.")
@click.option("--json", "as_json", is_flag=True, help="Print the matched tree as JSON.")
@click.option(
    "--source",
    type=click.Choice(SOURCES),
    default="procfs",
    show_default=True,
    help="Where process records are read from.",
)
@click.option(
    "--proc-root",
    type=click.Path(file_okay=False),
    default=PROC_ROOT,
    show_default=True,
    help="Process-information root for the procfs source.",
)
@click.option("-i", "--interactive", is_flag=True, help="Browse the matched tree interactively.")
@click.option("-v", "--verbose", is_flag=True, help="Log debug messages to stderr.")
@click.version_option(__version__, prog_name="pypst")
def main(
    pattern: str,
    full_match: bool,
    show_threads: bool,
    show_main_thread: bool,
    show_workdir: bool,
    show_uid: bool,
    show_gid: bool,
    show_basic_fds: bool,
    show_process_groups: bool,
    truncate: int,
    trace: bool,
    trace_file: str,
    sort: bool,
    as_json: bool,
    source: str,
    proc_root: str,
    interactive: bool,
    verbose: bool,
) -> None:
    """Print the branches of the process tree that match PATTERN."""
    configure_logging("DEBUG" if verbose else LOG_LEVEL)

    cfg = Config(
        full_match=full_match,
        show_threads=show_threads,
        show_main_thread=show_main_thread,
        show_workdir=show_workdir,
        show_uid=show_uid,
        show_gid=show_gid,
        show_basic_fds=show_basic_fds,
        show_process_groups=show_process_groups,
        truncate=truncate,
        trace=trace,
        trace_file=trace_file,
        sort=sort,
    )

    try:
        records = make_repository(source, proc_root).enumerate(cfg)
    except PstError as e:
        raise click.ClickException(str(e)) from e

    forest = assemble(records, sort=cfg.sort)
    logger.debug("assembled %d processes into %d trees", len(records), len(forest))

    close_trace = open_trace(cfg.trace_file) if cfg.trace else None
    try:
        annotation = annotate(forest, pattern, cfg.policy, trace=cfg.trace)

        if interactive:
            from pypst.app import PstApp

            PstApp(forest, annotation, cfg, pattern=pattern).run()
            annotation.log_summary()
        elif as_json:
            render_json(forest, annotation, cfg)
        else:
            render(forest, annotation, cfg)
    finally:
        if close_trace is not None:
            close_trace()


if __name__ == "__main__":
    main()
