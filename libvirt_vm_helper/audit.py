"""
Audit logging for state-changing operations.

Each lifecycle operation that changes a domain is recorded as one
structured loguru record bound to the ``audit`` channel.
"""

import getpass
import time
from typing import Any, Dict, Optional

from .config import Config
from .logging import get_logger


class AuditLogger:
    """Records which operation ran against which domain, and how it ended."""

    def __init__(self, config: Config):
        self.config = config
        self.logger = get_logger("libvirt_vm_helper.audit").bind(audit=True)

    @property
    def enabled(self) -> bool:
        return self.config.security.audit_log

    def log_operation(
        self,
        operation: str,
        target: Optional[str],
        success: bool,
        execution_time: float,
        message: str = "",
        parameters: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Log an operation with its outcome and the command-line arguments it ran with."""
        if not self.enabled:
            return

        self.logger.bind(
            operation=operation,
            target=target,
            user=_current_user(),
            parameters=dict(parameters or {}),
            success=success,
            execution_time=round(execution_time, 6),
            timestamp=time.time(),
        ).info("operation_executed: {} {} ({})", operation, target, message or "ok")


def _current_user() -> str:
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return "unknown"
