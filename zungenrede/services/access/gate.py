"""
Access Gate

Evaluates a principal against the allowlist loaded at startup.

Policy:
- Non-empty allowlist → only listed principals are authorized
- Empty allowlist → everyone is authorized (ALLOWED_USERS="" in deployment)
- A principal of None (update without a sender) is only authorized when the
  allowlist is empty

No aiogram imports, no I/O.
"""
import re
from typing import FrozenSet, Iterable, Optional

from zungenrede.core.exceptions import AccessDenied, ConfigurationError

_SEPARATORS = re.compile(r"[\s,;]+")


def parse_allowed_users(raw: Optional[str]) -> FrozenSet[int]:
    """
    Parse ALLOWED_USERS.

    Items are separated by commas, semicolons or whitespace. Absent or blank
    input means an empty allowlist.

    Raises:
        ConfigurationError: If an item is not an integer user id
    """
    if not raw:
        return frozenset()
    users = set()
    for item in _SEPARATORS.split(raw.strip()):
        if not item:
            continue
        try:
            users.add(int(item))
        except ValueError:
            raise ConfigurationError(f"ALLOWED_USERS contains a non-numeric user id: {item!r}") from None
    return frozenset(users)


class AccessGate:
    """Immutable allowlist check."""

    def __init__(self, allowed_users: Iterable[int] = ()):
        self._allowed_users: FrozenSet[int] = frozenset(allowed_users)

    @property
    def allowed_users(self) -> FrozenSet[int]:
        return self._allowed_users

    @property
    def allows_everyone(self) -> bool:
        """True when the allowlist is empty."""
        return not self._allowed_users

    def is_authorized(self, principal: Optional[int]) -> bool:
        if self.allows_everyone:
            return True
        return principal is not None and principal in self._allowed_users

    def authorize(self, principal: Optional[int]) -> None:
        """
        Raises:
            AccessDenied: If the principal is not authorized
        """
        if not self.is_authorized(principal):
            raise AccessDenied(principal)

    def __repr__(self) -> str:
        if self.allows_everyone:
            return "AccessGate(allows_everyone)"
        return f"AccessGate(users={len(self._allowed_users)})"
