"""
Lifecycle command handlers and the dispatcher that selects one of them.

Every handler takes the client and the parsed request, performs exactly
one libvirt call and returns an ``OperationResult``. Handlers never print
and never exit; the CLI reports the result.
"""

import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Optional, Set

from pydantic import BaseModel, Field

from .audit import AuditLogger
from .exceptions import LibvirtVMHelperError, TemplateReadError
from .libvirt_client import LibvirtClient
from .listing import show_all, show_ips
from .logging import get_logger
from .models import OperationResult, OutputFormat


logger = get_logger(__name__)


class CommandRequest(BaseModel):
    """Selector flags and arguments of one invocation."""

    flags: Set[str] = Field(default_factory=set, description="Names of the selector flags that were set")
    vm: Optional[str] = Field(default=None, description="Domain name")
    xml_template: Optional[Path] = Field(default=None, description="Domain XML file")
    output_format: OutputFormat = Field(default=OutputFormat.TEXT)
    sort: bool = Field(default=False, description="Sort listings by name")


Handler = Callable[[LibvirtClient, CommandRequest], OperationResult]


@dataclass(frozen=True)
class Command:
    flag: str
    operation: str
    handler: Handler
    requires: Optional[str] = None
    mutating: bool = False


def read_template(path: Path) -> str:
    """Read a domain XML template."""
    try:
        return Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise TemplateReadError(f"Failed to read XML template {path}: {e}", {"path": str(path)})


def vm_state(client: LibvirtClient, request: CommandRequest) -> OperationResult:
    return OperationResult.data(client.get_state(request.vm))


def vm_soft_reboot(client: LibvirtClient, request: CommandRequest) -> OperationResult:
    client.soft_reboot(request.vm)
    return OperationResult.ok(f"{request.vm} was soft-rebooted successfully")


def vm_hard_reboot(client: LibvirtClient, request: CommandRequest) -> OperationResult:
    client.hard_reboot(request.vm)
    return OperationResult.ok(f"{request.vm} was hard-rebooted successfully")


def vm_shutdown(client: LibvirtClient, request: CommandRequest) -> OperationResult:
    client.shutdown(request.vm)
    return OperationResult.ok(f"{request.vm} was shutdown successfully")


def vm_shutoff(client: LibvirtClient, request: CommandRequest) -> OperationResult:
    client.shutoff(request.vm)
    return OperationResult.ok(f"{request.vm} was shutoff successfully")


def vm_start(client: LibvirtClient, request: CommandRequest) -> OperationResult:
    client.start(request.vm)
    return OperationResult.ok(f"{request.vm} was started")


def vm_pause(client: LibvirtClient, request: CommandRequest) -> OperationResult:
    client.pause(request.vm)
    return OperationResult.ok(f"{request.vm} is paused")


def vm_resume(client: LibvirtClient, request: CommandRequest) -> OperationResult:
    client.resume(request.vm)
    return OperationResult.ok(f"{request.vm} was resumed")


def vm_create(client: LibvirtClient, request: CommandRequest) -> OperationResult:
    xml = read_template(request.xml_template)
    return OperationResult.data(client.define_from_xml(xml))


def vm_delete(client: LibvirtClient, request: CommandRequest) -> OperationResult:
    client.delete(request.vm)
    return OperationResult.ok(f"{request.vm} was deleted")


# Dispatch priority is the insertion order
COMMANDS: Dict[str, Command] = {
    command.flag: command
    for command in (
        Command("state", "domain.state", vm_state, requires="vm"),
        Command("soft-reboot", "domain.soft_reboot", vm_soft_reboot, requires="vm", mutating=True),
        Command("hard-reboot", "domain.hard_reboot", vm_hard_reboot, requires="vm", mutating=True),
        Command("shutdown", "domain.shutdown", vm_shutdown, requires="vm", mutating=True),
        Command("shutoff", "domain.shutoff", vm_shutoff, requires="vm", mutating=True),
        Command("start", "domain.start", vm_start, requires="vm", mutating=True),
        Command("pause", "domain.pause", vm_pause, requires="vm", mutating=True),
        Command("resume", "domain.resume", vm_resume, requires="vm", mutating=True),
        Command("create", "domain.create", vm_create, requires="xml_template", mutating=True),
        Command("delete", "domain.delete", vm_delete, requires="vm", mutating=True),
        Command("ips", "domain.addresses", show_ips),
        Command("show-all", "domain.list", show_all),
    )
}

PRIORITY = tuple(COMMANDS)


def select_command(request: CommandRequest) -> Optional[Command]:
    """Return the first set flag in priority order, or None."""
    for flag in PRIORITY:
        if flag in request.flags:
            return COMMANDS[flag]
    return None


def check_arguments(command: Command, request: CommandRequest) -> Optional[OperationResult]:
    """Fail early when the companion argument of a command is missing."""
    if command.requires == "vm" and not request.vm:
        return OperationResult.failure(f"--vm is required for --{command.flag}")
    if command.requires == "xml_template" and not request.xml_template:
        return OperationResult.failure(f"--xml-template is required for --{command.flag}")
    return None


def run_command(
    command: Command,
    request: CommandRequest,
    client: LibvirtClient,
    audit: Optional[AuditLogger] = None,
) -> OperationResult:
    """Run one command and convert library errors into a failed result."""
    target = request.vm if command.requires == "vm" else (
        str(request.xml_template) if request.xml_template else None
    )
    start_time = time.perf_counter()

    try:
        result = command.handler(client, request)
    except LibvirtVMHelperError as e:
        logger.bind(details=e.details).warning(f"--{command.flag} failed: {e.message}")
        result = OperationResult.failure(e.message)

    if command.mutating and audit is not None:
        audit.log_operation(
            command.operation,
            target,
            result.success,
            time.perf_counter() - start_time,
            message=result.message,
            parameters={
                "vm": request.vm,
                "xml_template": str(request.xml_template) if request.xml_template else None,
            },
        )
    return result
