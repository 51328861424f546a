"""
Custom exceptions for libvirt-vm-helper.

This module defines specific exception classes for the different ways a
lifecycle operation can fail: connecting, looking up a domain, running
the operation itself, reading a template or loading configuration.
"""


class LibvirtVMHelperError(Exception):
    """Base exception for all libvirt-vm-helper errors."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class LibvirtConnectionError(LibvirtVMHelperError):
    """Raised when the libvirt connection cannot be established or is lost."""
    pass


class LibvirtOperationError(LibvirtVMHelperError):
    """Raised when a libvirt operation fails."""
    pass


class LibvirtPermissionError(LibvirtVMHelperError):
    """Raised when an operation is not allowed by configuration."""
    pass


class LibvirtResourceNotFoundError(LibvirtVMHelperError):
    """Raised when a requested domain does not exist."""
    pass


class TemplateReadError(LibvirtVMHelperError):
    """Raised when a domain XML template cannot be read."""
    pass


class ConfigurationError(LibvirtVMHelperError):
    """Raised when configuration is invalid or missing."""
    pass
