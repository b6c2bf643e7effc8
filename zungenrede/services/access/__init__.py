"""
Access Gate

Allowlist check for principals (Telegram user ids).
"""

from zungenrede.services.access.gate import (
    AccessGate,
    parse_allowed_users,
)
from zungenrede.core.exceptions import AccessDenied

__all__ = [
    "AccessGate",
    "AccessDenied",
    "parse_allowed_users",
]
