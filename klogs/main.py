from __future__ import annotations

import asyncio
import logging
from typing import List, Optional

import typer
import urllib3
from pydantic import ValidationError

from klogs.core.models.config import Config
from klogs.core.runner import Runner
from klogs.utils.version import get_version

app = typer.Typer(
    pretty_exceptions_show_locals=False,
    pretty_exceptions_short=True,
    help="Tail the logs of every matching pod, across namespaces and contexts.",
)

# NOTE: Disable insecure request warnings, as it might be expected to use self-signed certificates inside the cluster
urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

logger = logging.getLogger("klogs")


def version_callback(value: bool) -> None:
    if value:
        typer.echo(get_version())
        raise typer.Exit()


@app.command()
def run_klogs(
    pod_name: Optional[str] = typer.Argument(
        None,
        help="Only log pods whose name contains this text (case insensitive).",
        show_default=False,
    ),
    labels: List[str] = typer.Option(
        None,
        "--labels",
        "-l",
        help="Only log pods having this value as a label key or a label value. Can be repeated, all must match.",
        rich_help_panel="Filter Settings",
    ),
    all_namespaces: bool = typer.Option(
        False,
        "--all-namespaces",
        "-A",
        "-an",
        "-allNamespaces",
        help="Watch pods in every namespace instead of the context's namespace.",
        rich_help_panel="Kubernetes Settings",
    ),
    all_contexts: bool = typer.Option(
        False,
        "--all-contexts",
        "-ac",
        "-allContexts",
        help="Watch pods in every context of the kubeconfig instead of the current one.",
        rich_help_panel="Kubernetes Settings",
    ),
    kubeconfig: Optional[str] = typer.Option(
        None,
        "--kubeconfig",
        "-k",
        help="Path to kubeconfig file. If not provided, will attempt to find it.",
        rich_help_panel="Kubernetes Settings",
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable verbose mode", rich_help_panel="Logging Settings"
    ),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Enable quiet mode", rich_help_panel="Logging Settings"),
    log_to_stderr: bool = typer.Option(
        False, "--logtostderr", help="Pass logs to stderr", rich_help_panel="Logging Settings"
    ),
    width: Optional[int] = typer.Option(
        None,
        "--width",
        help="Width of the output. Will use console width by default.",
        rich_help_panel="Logging Settings",
    ),
    version: Optional[bool] = typer.Option(
        None, "--version", callback=version_callback, is_eager=True, help="Show the version and exit."
    ),
) -> None:
    """Stream the logs of running pods matching POD_NAME and --labels, one color per pod."""

    try:
        config = Config(
            pod_name=pod_name,
            labels=labels,
            all_namespaces=all_namespaces,
            all_contexts=all_contexts,
            kubeconfig=kubeconfig,
            verbose=verbose,
            quiet=quiet,
            log_to_stderr=log_to_stderr,
            width=width,
        )
        Config.set_config(config)
    except ValidationError:
        logger.exception("Error occured while parsing arguments")
        raise typer.Exit(code=2)

    runner = Runner()
    try:
        exit_code = asyncio.run(runner.run())
    except KeyboardInterrupt:
        exit_code = 0
    raise typer.Exit(code=exit_code)


def run() -> None:
    app()


if __name__ == "__main__":
    run()
