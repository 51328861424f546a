"""
Command-line interface for libvirt-vm-helper.

Exactly one selector flag is honoured per invocation; when several are
given, the first one in priority order runs (see ``commands.PRIORITY``).
Results go to stdout, diagnostics go to stderr.
"""

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from typing_extensions import Annotated

from .audit import AuditLogger
from .commands import CommandRequest, check_arguments, run_command, select_command
from .config import Config, LoggingConfig
from .exceptions import ConfigurationError, LibvirtConnectionError
from .libvirt_client import LibvirtClient
from .logging import configure_logging, get_logger
from .models import OutputFormat
from .reporter import report

app = typer.Typer(
    name="libvirt-vm-helper",
    help="Run lifecycle operations on libvirt domains and report the result as JSON.",
    add_completion=False,
)

# Diagnostics only; stdout is reserved for results
err_console = Console(stderr=True)


def version_callback(value: bool):
    """Show version and exit."""
    if value:
        from . import __version__
        err_console.print(f"[bold green]libvirt-vm-helper[/bold green] version [bold blue]{__version__}[/bold blue]")
        raise typer.Exit()


@app.command()
def main(
    state: Annotated[bool, typer.Option("--state", help="Returns result with a current machine state")] = False,
    soft_reboot: Annotated[bool, typer.Option(
        "--soft-reboot", help="Reboots a machine gracefully, as chosen by hypervisor")] = False,
    hard_reboot: Annotated[bool, typer.Option(
        "--hard-reboot", help="Sends a VM into hard-reset mode. Damaging to ongoing file operations")] = False,
    shutdown: Annotated[bool, typer.Option("--shutdown", help="Gracefully shuts down the VM")] = False,
    shutoff: Annotated[bool, typer.Option(
        "--shutoff", help="Kills running VM. Equivalent to pulling the plug")] = False,
    start: Annotated[bool, typer.Option("--start", help="Starts up a VM")] = False,
    pause: Annotated[bool, typer.Option(
        "--pause", help="Stops execution of the VM. CPU is not used, memory stays occupied")] = False,
    resume: Annotated[bool, typer.Option("--resume", help="Resumes a paused VM")] = False,
    create: Annotated[bool, typer.Option(
        "--create", help="Defines a new machine. Requires --xml-template")] = False,
    delete: Annotated[bool, typer.Option("--delete", help="Deletes an existing machine")] = False,
    ips: Annotated[bool, typer.Option("--ips", help="Show IP addresses of running VMs on host")] = False,
    show_all: Annotated[bool, typer.Option("--show-all", help="Show state of all VMs on host")] = False,
    vm: Annotated[Optional[str], typer.Option("--vm", help="Name of the machine to work with")] = None,
    xml_template: Annotated[Optional[Path], typer.Option(
        "--xml-template",
        help="Path to an XML template file that describes a machine",
        dir_okay=False,
    )] = None,
    output_format: Annotated[OutputFormat, typer.Option(
        "--format", "-f", help="Presentation of --ips and --show-all", case_sensitive=False)] = OutputFormat.TEXT,
    sort: Annotated[bool, typer.Option("--sort", help="Sort --ips and --show-all output by name")] = False,
    config: Annotated[Optional[Path], typer.Option(
        "--config", "-c",
        help="Configuration file (YAML)",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    )] = None,
    log_level: Annotated[Optional[str], typer.Option("--log-level", "-l", help="Log level")] = None,
    version: Annotated[Optional[bool], typer.Option(
        "--version", "-V", callback=version_callback, is_eager=True, help="Show version and exit")] = None,
):
    """Run one lifecycle operation against a libvirt domain."""
    selectors = {
        "state": state,
        "soft-reboot": soft_reboot,
        "hard-reboot": hard_reboot,
        "shutdown": shutdown,
        "shutoff": shutoff,
        "start": start,
        "pause": pause,
        "resume": resume,
        "create": create,
        "delete": delete,
        "ips": ips,
        "show-all": show_all,
    }
    request = CommandRequest(
        flags={flag for flag, selected in selectors.items() if selected},
        vm=vm,
        xml_template=xml_template,
        output_format=output_format,
        sort=sort,
    )

    command = select_command(request)
    if command is None:
        raise typer.Exit(code=0)

    try:
        app_config = _load_config(config, log_level)
    except ConfigurationError as e:
        err_console.print(f"[red]Configuration error: {e.message}[/red]")
        raise typer.Exit(code=1)

    logging_manager = configure_logging(app_config)
    logger = get_logger(__name__)
    try:
        if len(request.flags) > 1:
            logger.warning(f"Several selector flags given, running --{command.flag} only")

        failure = check_arguments(command, request)
        if failure is not None:
            raise typer.Exit(code=report(failure, app_config))

        client = LibvirtClient(app_config)
        try:
            with client:
                result = run_command(command, request, client, AuditLogger(app_config))
        except LibvirtConnectionError as e:
            logger.critical(e.message)
            err_console.print(f"[red]{e.message}[/red]")
            raise typer.Exit(code=1)

        raise typer.Exit(code=report(result, app_config))
    finally:
        logging_manager.cleanup()


def _load_config(config_file: Optional[Path], log_level: Optional[str]) -> Config:
    """Load configuration and apply command-line overrides."""
    app_config = Config.load(str(config_file) if config_file else None)

    if log_level:
        try:
            app_config.logging = LoggingConfig.model_validate({
                **app_config.logging.model_dump(),
                "level": log_level,
            })
        except ValueError as e:
            raise ConfigurationError(f"Invalid log level: {e}")

    return app_config


def main_cli():
    """Console script entry point."""
    app()


if __name__ == '__main__':
    main_cli()
