"""
Configuration management for libvirt-vm-helper.

This module handles loading and validating configuration from a YAML file,
environment variables and defaults. Command-line options are applied on top
by the CLI.
"""

import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from .exceptions import ConfigurationError


ALL_OPERATIONS = [
    "domain.state",
    "domain.start",
    "domain.shutoff",
    "domain.shutdown",
    "domain.soft_reboot",
    "domain.hard_reboot",
    "domain.pause",
    "domain.resume",
    "domain.create",
    "domain.delete",
    "domain.list",
    "domain.addresses",
]

# Operations that only read from the hypervisor
READ_OPERATIONS = {"domain.state", "domain.list", "domain.addresses"}


class LibvirtConfig(BaseModel):
    """Libvirt connection configuration."""

    uri: str = Field(default="qemu:///system", description="Libvirt connection URI")
    readonly: bool = Field(default=False, description="Use read-only connection")


class OutputConfig(BaseModel):
    """Result output configuration."""

    json_errors: bool = Field(
        default=False,
        description="Report failures as {\"error\": ...} instead of a plain text line"
    )
    error_exit_code: int = Field(
        default=1, ge=0, le=255, description="Process exit code for a failed operation"
    )


class SecurityConfig(BaseModel):
    """Access control and audit configuration."""

    allowed_operations: List[str] = Field(
        default_factory=lambda: list(ALL_OPERATIONS),
        description="List of allowed operations"
    )
    audit_log: bool = Field(default=False, description="Enable audit logging")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="WARNING", description="Log level")
    file: Optional[str] = Field(default=None, description="Log file path")
    rotation: str = Field(default="10 MB", description="Log file rotation size")
    retention: str = Field(default="30 days", description="Log file retention")

    @field_validator('level')
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ['TRACE', 'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v.upper()


class Config(BaseModel):
    """Main configuration class."""

    libvirt: LibvirtConfig = Field(default_factory=LibvirtConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    security: SecurityConfig = Field(default_factory=SecurityConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @staticmethod
    def _read_yaml(file_path: str) -> Dict[str, Any]:
        path = Path(file_path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {file_path}")

        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)

        return data or {}

    @staticmethod
    def _env_overrides() -> Dict[str, Dict[str, Any]]:
        config_data: Dict[str, Dict[str, Any]] = {}

        # Libvirt configuration
        if uri := os.getenv("LIBVIRT_URI"):
            config_data.setdefault("libvirt", {})["uri"] = uri
        if readonly := os.getenv("LIBVIRT_READONLY"):
            config_data.setdefault("libvirt", {})["readonly"] = readonly.lower() == "true"

        # Output configuration
        if json_errors := os.getenv("VM_HELPER_JSON_ERRORS"):
            config_data.setdefault("output", {})["json_errors"] = json_errors.lower() == "true"
        if exit_code := os.getenv("VM_HELPER_ERROR_EXIT_CODE"):
            config_data.setdefault("output", {})["error_exit_code"] = int(exit_code)

        # Security configuration
        if audit := os.getenv("VM_HELPER_AUDIT_LOG"):
            config_data.setdefault("security", {})["audit_log"] = audit.lower() == "true"

        # Logging configuration
        if log_level := os.getenv("VM_HELPER_LOG_LEVEL"):
            config_data.setdefault("logging", {})["level"] = log_level
        if log_file := os.getenv("VM_HELPER_LOG_FILE"):
            config_data.setdefault("logging", {})["file"] = log_file

        return config_data

    @classmethod
    def from_yaml_file(cls, file_path: str) -> "Config":
        """Load configuration from YAML file."""
        data = cls._read_yaml(file_path)
        return cls(**{section: values or {} for section, values in data.items()})

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables."""
        return cls(**cls._env_overrides())

    @classmethod
    def load(cls, config_file: Optional[str] = None) -> "Config":
        """
        Load configuration from multiple sources with precedence:
        1. Environment variables
        2. YAML file (if provided)
        3. Default values
        """
        data: Dict[str, Dict[str, Any]] = {}

        try:
            if config_file:
                data = cls.from_yaml_file(config_file).model_dump(exclude_unset=True)

            for section, values in cls.from_env().model_dump(exclude_unset=True).items():
                data.setdefault(section, {}).update(values)

            return cls(**data)
        except FileNotFoundError as e:
            raise ConfigurationError(str(e))
        except (ValidationError, ValueError, TypeError, AttributeError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Invalid configuration: {e}")

    def is_operation_allowed(self, operation: str) -> bool:
        """Check an operation against the allow-list and the read-only flag."""
        if operation not in self.security.allowed_operations:
            return False
        if self.libvirt.readonly and operation not in READ_OPERATIONS:
            return False
        return True
