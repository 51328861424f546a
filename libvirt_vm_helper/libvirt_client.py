"""
Libvirt client wrapper for lifecycle operations on domains.

This module provides a thin synchronous layer over the libvirt Python
bindings: one connection per client, one lookup per operation, and every
``libvirtError`` translated into an exception from ``exceptions``.
"""

from typing import Callable, Dict, List, Optional, TypeVar

import libvirt
from libvirt import libvirtError

from .config import Config
from .exceptions import (
    LibvirtConnectionError,
    LibvirtOperationError,
    LibvirtPermissionError,
    LibvirtResourceNotFoundError,
)
from .logging import get_logger
from .models import (
    DomainReference,
    InterfaceAddresses,
    VirtualMachineStateInfo,
)


logger = get_logger(__name__)

T = TypeVar("T")


class LibvirtClient:
    """
    Libvirt client owning a single connection.

    The connection is opened by ``connect()`` and released by ``close()``;
    using the client as a context manager guarantees the release on every
    exit path.
    """

    def __init__(self, config: Config):
        """Initialize libvirt client with configuration."""
        self.config = config
        self._connection: Optional[libvirt.virConnect] = None

        # Keep libvirt from printing errors to stderr on its own
        libvirt.registerErrorHandler(self._libvirt_error_handler, None)

    def _libvirt_error_handler(self, ctx, err):
        logger.debug(f"Libvirt error: {err}")

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    @property
    def connected(self) -> bool:
        return self._connection is not None

    def connect(self) -> None:
        """Establish connection to libvirt."""
        if self._connection is not None:
            return

        uri = self.config.libvirt.uri
        try:
            if self.config.libvirt.readonly:
                self._connection = libvirt.openReadOnly(uri)
            else:
                self._connection = libvirt.open(uri)
        except libvirtError as e:
            logger.error(f"Failed to connect to libvirt: {e}")
            raise LibvirtConnectionError(f"failed to connect: {e}", {"uri": uri})

        if self._connection is None:
            raise LibvirtConnectionError(f"failed to connect: {uri}", {"uri": uri})

        logger.info(f"Connected to libvirt: {uri}")

    def close(self) -> None:
        """Close connection to libvirt."""
        if self._connection is None:
            return
        try:
            self._connection.close()
            logger.info("Disconnected from libvirt")
        except libvirtError as e:
            logger.warning(f"Error closing libvirt connection: {e}")
        finally:
            self._connection = None

    def _ensure_connected(self) -> libvirt.virConnect:
        if self._connection is None:
            raise LibvirtConnectionError("Not connected to libvirt")
        return self._connection

    def _check_operation_allowed(self, operation: str) -> None:
        if not self.config.is_operation_allowed(operation):
            raise LibvirtPermissionError(f"Operation not allowed: {operation}")

    def _lookup(self, domain_name: str) -> libvirt.virDomain:
        conn = self._ensure_connected()
        try:
            return conn.lookupByName(domain_name)
        except libvirtError as e:
            if e.get_error_code() == libvirt.VIR_ERR_NO_DOMAIN:
                raise LibvirtResourceNotFoundError(f"Domain not found: {domain_name}")
            logger.error(f"Failed to look up domain {domain_name}: {e}")
            raise LibvirtOperationError(f"Failed to look up domain: {e}")

    def _run_domain_operation(
        self,
        operation: str,
        domain_name: str,
        action: Callable[[libvirt.virDomain], T],
    ) -> T:
        """Look up ``domain_name`` once and apply ``action`` to it."""
        self._check_operation_allowed(operation)
        domain = self._lookup(domain_name)

        try:
            result = action(domain)
        except libvirtError as e:
            logger.error(f"{operation} failed for {domain_name}: {e}")
            raise LibvirtOperationError(str(e), {"operation": operation, "domain": domain_name})

        logger.info(f"{operation} succeeded for {domain_name}")
        return result

    def get_state(self, domain_name: str) -> VirtualMachineStateInfo:
        """Get a state snapshot of a domain."""
        return self._run_domain_operation(
            "domain.state",
            domain_name,
            lambda domain: VirtualMachineStateInfo.from_domain_info(domain.info()),
        )

    def start(self, domain_name: str) -> None:
        """Start a defined domain."""
        self._run_domain_operation("domain.start", domain_name, lambda domain: domain.create())

    def shutoff(self, domain_name: str) -> None:
        """Kill a running domain immediately."""
        self._run_domain_operation("domain.shutoff", domain_name, lambda domain: domain.destroy())

    def shutdown(self, domain_name: str) -> None:
        """Ask a running domain to shut down gracefully."""
        self._run_domain_operation("domain.shutdown", domain_name, lambda domain: domain.shutdown())

    def soft_reboot(self, domain_name: str) -> None:
        """Reboot a domain using the method chosen by the hypervisor."""
        self._run_domain_operation(
            "domain.soft_reboot",
            domain_name,
            lambda domain: domain.reboot(libvirt.VIR_DOMAIN_REBOOT_DEFAULT),
        )

    def hard_reboot(self, domain_name: str) -> None:
        """Reset a domain, like pressing the reset button."""
        self._run_domain_operation("domain.hard_reboot", domain_name, lambda domain: domain.reset(0))

    def pause(self, domain_name: str) -> None:
        """Suspend execution of a domain; its memory stays allocated."""
        self._run_domain_operation("domain.pause", domain_name, lambda domain: domain.suspend())

    def resume(self, domain_name: str) -> None:
        """Resume a paused domain."""
        self._run_domain_operation("domain.resume", domain_name, lambda domain: domain.resume())

    def delete(self, domain_name: str) -> None:
        """Undefine a domain, keeping its NVRAM file."""
        self._run_domain_operation(
            "domain.delete",
            domain_name,
            lambda domain: domain.undefineFlags(libvirt.VIR_DOMAIN_UNDEFINE_KEEP_NVRAM),
        )

    def define_from_xml(self, xml: str) -> DomainReference:
        """Define a persistent domain from XML configuration."""
        self._check_operation_allowed("domain.create")
        conn = self._ensure_connected()

        try:
            domain = conn.defineXML(xml)
            reference = DomainReference(name=domain.name(), uuid=domain.UUIDString())
        except libvirtError as e:
            logger.error(f"Failed to define domain: {e}")
            raise LibvirtOperationError(str(e), {"operation": "domain.create"})

        logger.info(f"Defined persistent domain: {reference.name}")
        return reference

    def list_domains(self, flags: int) -> List[libvirt.virDomain]:
        """List domains matching ``VIR_CONNECT_LIST_DOMAINS_*`` flags."""
        self._check_operation_allowed("domain.list")
        conn = self._ensure_connected()

        try:
            domains = conn.listAllDomains(flags)
        except libvirtError as e:
            logger.error(f"Failed to list domains: {e}")
            raise LibvirtOperationError(f"Failed to list domains: {e}")

        logger.debug(f"Listed {len(domains)} domains with flags {flags}")
        return domains

    def list_running_domains(self) -> List[libvirt.virDomain]:
        return self.list_domains(libvirt.VIR_CONNECT_LIST_DOMAINS_RUNNING)

    def list_active_domains(self) -> List[libvirt.virDomain]:
        return self.list_domains(libvirt.VIR_CONNECT_LIST_DOMAINS_ACTIVE)

    def list_inactive_domains(self) -> List[libvirt.virDomain]:
        return self.list_domains(libvirt.VIR_CONNECT_LIST_DOMAINS_INACTIVE)

    def domain_name(self, domain: libvirt.virDomain) -> str:
        try:
            return domain.name()
        except libvirtError as e:
            raise LibvirtOperationError(f"Failed to get domain name: {e}")

    def domain_state(self, domain: libvirt.virDomain) -> VirtualMachineStateInfo:
        """State snapshot of an already enumerated domain, without a new lookup."""
        try:
            return VirtualMachineStateInfo.from_domain_info(domain.info())
        except libvirtError as e:
            raise LibvirtOperationError(f"Failed to get domain info: {e}")

    def interface_addresses(self, domain: libvirt.virDomain) -> List[InterfaceAddresses]:
        """Interfaces and addresses reported by the domain's guest agent."""
        self._check_operation_allowed("domain.addresses")

        try:
            raw: Dict[str, dict] = domain.interfaceAddresses(
                libvirt.VIR_DOMAIN_INTERFACE_ADDRESSES_SRC_AGENT
            )
        except libvirtError as e:
            logger.debug(f"Failed to get interface addresses: {e}")
            raise LibvirtOperationError(str(e), {"operation": "domain.addresses"})

        interfaces = []
        for if_name, if_data in (raw or {}).items():
            addrs = if_data.get("addrs") or []
            interfaces.append(InterfaceAddresses(
                name=if_name,
                hwaddr=if_data.get("hwaddr"),
                addresses=[addr.get("addr", "") for addr in addrs],
            ))
        return interfaces
