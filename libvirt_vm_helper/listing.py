"""
Enumeration of domains: running domains with guest addresses, and all
domains with their state.

Collection returns structured models; rendering to text or a rich table
is a separate step so the same data can also be emitted as JSON.
"""

from typing import TYPE_CHECKING, List

from rich import box
from rich.console import Console
from rich.table import Table

from .exceptions import LibvirtOperationError
from .libvirt_client import LibvirtClient
from .logging import get_logger
from .models import (
    DomainAddresses,
    DomainListing,
    DomainStateRow,
    OperationResult,
    OutputFormat,
)

if TYPE_CHECKING:
    from .commands import CommandRequest


logger = get_logger(__name__)

NAME_WIDTH = 30
STATE_WIDTH = 15


def list_running_with_addresses(client: LibvirtClient, sort: bool = False) -> List[DomainAddresses]:
    """
    Collect guest-agent interface addresses of every running domain.

    A domain whose addresses cannot be read (no guest agent, for example)
    keeps its entry with ``error`` set; the remaining domains are still
    collected.
    """
    result = []
    for domain in client.list_running_domains():
        name = client.domain_name(domain)
        try:
            result.append(DomainAddresses(name=name, interfaces=client.interface_addresses(domain)))
        except LibvirtOperationError as e:
            logger.warning(f"Could not read addresses of {name}: {e.message}")
            result.append(DomainAddresses(name=name, error=e.message))

    if sort:
        result.sort(key=lambda entry: entry.name)
    return result


def _state_rows(client: LibvirtClient, domains, sort: bool) -> List[DomainStateRow]:
    rows = []
    for domain in domains:
        try:
            rows.append(DomainStateRow(name=client.domain_name(domain), state=client.domain_state(domain).state))
        except LibvirtOperationError as e:
            # undefined or stopped after enumeration
            logger.warning(f"Skipping domain that disappeared during listing: {e.message}")
    if sort:
        rows.sort(key=lambda row: row.name)
    return rows


def list_all_with_state(client: LibvirtClient, sort: bool = False) -> DomainListing:
    """Collect active and inactive domains with their translated state."""
    active = client.list_active_domains()
    inactive = client.list_inactive_domains()

    listing = DomainListing(
        active=_state_rows(client, active, sort),
        inactive=_state_rows(client, inactive, sort),
    )
    logger.info(f"Listed {listing.total} domains")
    return listing


def render_addresses(domains: List[DomainAddresses]) -> str:
    """Render running domains and their addresses as indented text."""
    lines = [f"There are {len(domains)} running domains:"]
    for domain in domains:
        lines.append(f"Domain - {domain.name}:")
        if domain.error:
            lines.append(f"error - {domain.error}")
        for interface in domain.interfaces:
            addresses = "".join(f"{address} " for address in interface.addresses)
            lines.append(f"interface - {interface.name}, address - {addresses}")
    return "\n".join(lines) + "\n"


def render_listing(listing: DomainListing) -> str:
    """Render a summary line followed by a fixed-width name/state table."""
    lines = [
        f"There are {listing.total} domains: "
        f"{len(listing.active)} active and {len(listing.inactive)} inactive"
    ]
    for row in listing.active + listing.inactive:
        lines.append(f"{row.name:<{NAME_WIDTH}} {row.state.value:<{STATE_WIDTH}}")
    return "\n".join(lines) + "\n"


def render_listing_table(listing: DomainListing) -> str:
    """Render the listing as a rich table."""
    table = Table(
        title=f"{listing.total} domains: {len(listing.active)} active, {len(listing.inactive)} inactive",
        box=box.SIMPLE,
        show_header=True,
        header_style="bold",
    )
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("State")
    table.add_column("Active", justify="center")

    for row in listing.active:
        table.add_row(row.name, row.state.value, "yes")
    for row in listing.inactive:
        table.add_row(row.name, row.state.value, "no")

    console = Console(width=80, color_system=None)
    with console.capture() as capture:
        console.print(table)
    return capture.get()


def show_ips(client: LibvirtClient, request: "CommandRequest") -> OperationResult:
    domains = list_running_with_addresses(client, sort=request.sort)
    if request.output_format == OutputFormat.JSON:
        return OperationResult.data([domain.model_dump(mode="json") for domain in domains])
    return OperationResult.text(render_addresses(domains))


def show_all(client: LibvirtClient, request: "CommandRequest") -> OperationResult:
    listing = list_all_with_state(client, sort=request.sort)
    if request.output_format == OutputFormat.JSON:
        return OperationResult.data(listing.model_dump(mode="json"))
    if request.output_format == OutputFormat.TABLE:
        return OperationResult.text(render_listing_table(listing))
    return OperationResult.text(render_listing(listing))
