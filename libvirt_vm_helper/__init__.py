"""
libvirt-vm-helper - lifecycle operations on libvirt domains from the command line.

Each invocation runs one operation (state, start, shutoff, shutdown,
soft/hard reboot, pause, resume, create, delete, or a domain listing)
and reports the result on stdout.
"""

__version__ = "1.0.0"
__description__ = "Command-line lifecycle operations for libvirt virtual machines"

from .config import Config
from .libvirt_client import LibvirtClient
from .models import OperationResult, VirtualMachineStateInfo, VirtualMachineStatus
from .exceptions import (
    LibvirtConnectionError,
    LibvirtOperationError,
    LibvirtPermissionError,
    LibvirtResourceNotFoundError,
    LibvirtVMHelperError,
    TemplateReadError,
    ConfigurationError,
)

__all__ = [
    "__version__",
    "__description__",
    "Config",
    "LibvirtClient",
    "OperationResult",
    "VirtualMachineStateInfo",
    "VirtualMachineStatus",
    "LibvirtConnectionError",
    "LibvirtOperationError",
    "LibvirtPermissionError",
    "LibvirtResourceNotFoundError",
    "LibvirtVMHelperError",
    "TemplateReadError",
    "ConfigurationError",
]
