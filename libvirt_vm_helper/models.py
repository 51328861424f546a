"""
Data models for libvirt-vm-helper.

This module defines Pydantic models for domain state snapshots, listing
results and the tagged result every command handler returns.
"""

from enum import Enum
from typing import Any, List, Optional, Tuple

import libvirt
from pydantic import BaseModel, ConfigDict, Field


KIB = 1024


class VirtualMachineStatus(str, Enum):
    """Virtual machine states as reported to callers."""

    PENDING = "pending"
    RUNNING = "running"
    BLOCKED = "blocked"
    PAUSED = "paused"
    SHUTDOWN = "shutdown"
    SHUTOFF = "shutoff"
    CRASHED = "crashed"
    HIBERNATING = "hibernating"
    UNKNOWN = "unknown"


_STATE_MAP = {
    libvirt.VIR_DOMAIN_NOSTATE: VirtualMachineStatus.PENDING,
    libvirt.VIR_DOMAIN_RUNNING: VirtualMachineStatus.RUNNING,
    libvirt.VIR_DOMAIN_BLOCKED: VirtualMachineStatus.BLOCKED,
    libvirt.VIR_DOMAIN_PAUSED: VirtualMachineStatus.PAUSED,
    libvirt.VIR_DOMAIN_SHUTDOWN: VirtualMachineStatus.SHUTDOWN,
    libvirt.VIR_DOMAIN_SHUTOFF: VirtualMachineStatus.SHUTOFF,
    libvirt.VIR_DOMAIN_CRASHED: VirtualMachineStatus.CRASHED,
    libvirt.VIR_DOMAIN_PMSUSPENDED: VirtualMachineStatus.HIBERNATING,
}


def translate_state(state: int) -> VirtualMachineStatus:
    """Convert a libvirt domain state code to our enum."""
    return _STATE_MAP.get(state, VirtualMachineStatus.UNKNOWN)


class VirtualMachineStateInfo(BaseModel):
    """Snapshot of a domain's state and resource accounting."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    state: VirtualMachineStatus = Field(alias="State", description="Current domain state")
    max_memory_bytes: int = Field(alias="MaxMemoryBytes", ge=0, description="Maximum memory in bytes")
    memory_bytes: int = Field(alias="MemoryBytes", ge=0, description="Current memory in bytes")
    cpu_time: int = Field(alias="CpuTime", ge=0, description="CPU time used in nanoseconds")
    cpu_count: int = Field(alias="CpuCount", ge=0, description="Number of virtual CPUs")

    @classmethod
    def from_domain_info(cls, info: Tuple[int, int, int, int, int]) -> "VirtualMachineStateInfo":
        """Build a snapshot from the tuple returned by ``virDomain.info()``.

        libvirt reports memory in KiB; the snapshot carries bytes.
        """
        state, max_mem, memory, vcpus, cpu_time = info
        return cls(
            state=translate_state(state),
            max_memory_bytes=max_mem * KIB,
            memory_bytes=memory * KIB,
            cpu_time=cpu_time,
            cpu_count=vcpus,
        )


class DomainReference(BaseModel):
    """A defined domain, identified by name and UUID."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(alias="Name", description="Domain name")
    uuid: str = Field(alias="UUID", description="Domain UUID")


class DomainStateRow(BaseModel):
    """One line of the all-domains listing."""

    name: str = Field(description="Domain name")
    state: VirtualMachineStatus = Field(description="Current domain state")


class DomainListing(BaseModel):
    """Active and inactive domains with their states."""

    active: List[DomainStateRow] = Field(default_factory=list)
    inactive: List[DomainStateRow] = Field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.active) + len(self.inactive)


class InterfaceAddresses(BaseModel):
    """Addresses reported by the guest agent for one interface."""

    name: str = Field(description="Interface name inside the guest")
    hwaddr: Optional[str] = Field(default=None, description="Hardware address")
    addresses: List[str] = Field(default_factory=list, description="IP addresses")


class DomainAddresses(BaseModel):
    """Guest interfaces of one running domain."""

    name: str = Field(description="Domain name")
    interfaces: List[InterfaceAddresses] = Field(default_factory=list)
    error: Optional[str] = Field(default=None, description="Why the addresses could not be read")


class OutputFormat(str, Enum):
    """Presentation of enumeration results."""

    TEXT = "text"
    JSON = "json"
    TABLE = "table"


class ResultKind(str, Enum):
    """How a successful result is written out."""

    OK = "ok"
    DATA = "data"
    TEXT = "text"


class OperationResult(BaseModel):
    """Result of a command handler."""

    success: bool = Field(description="Whether operation succeeded")
    message: str = Field(default="", description="Confirmation or failure reason")
    kind: ResultKind = Field(default=ResultKind.OK, description="Output kind for a success")
    payload: Optional[Any] = Field(default=None, description="Data for DATA and TEXT results")

    @classmethod
    def ok(cls, message: str) -> "OperationResult":
        return cls(success=True, message=message, kind=ResultKind.OK)

    @classmethod
    def data(cls, payload: Any) -> "OperationResult":
        return cls(success=True, kind=ResultKind.DATA, payload=payload)

    @classmethod
    def text(cls, text: str) -> "OperationResult":
        return cls(success=True, kind=ResultKind.TEXT, payload=text)

    @classmethod
    def failure(cls, message: str) -> "OperationResult":
        return cls(success=False, message=message)
