"""Logging setup for the Staffline backend."""

import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_configured = False


def configure_logging(level: str = "INFO") -> None:
    """Install one stream handler on the root logger. Safe to call twice."""
    global _configured
    root = logging.getLogger()
    root.setLevel(level.upper())
    if _configured:
        return
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
    _configured = True


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


_auth_logger = logging.getLogger("staffline.auth")
_admin_logger = logging.getLogger("staffline.admin")


def log_auth_event(event: str, user_id: str | None, success: bool, reason: str | None = None) -> None:
    """Log an authentication event."""
    outcome = "ok" if success else "failed"
    message = f"auth {event} | user={user_id} | {outcome}"
    if reason:
        message += f" | {reason}"
    if success:
        _auth_logger.info(message)
    else:
        _auth_logger.warning(message)


def log_admin_event(action: str, admin_id: str, target: str, **details) -> None:
    """Log an admin action alongside the database audit trail."""
    extra = " ".join(f"{k}={v}" for k, v in details.items())
    _admin_logger.info(f"admin {action} | admin={admin_id} | target={target} {extra}".rstrip())
