"""
teleport/core/auth.py

Injected access control ("wards").

Each controller receives its own AccessControl at construction. There is
no process-wide registry. Roles map to sets of caller identities:

    admin   may change ceilings, oracle sets, thresholds, cage, rely/deny
    relay   the remote-settlement relay allowed to call host release()
"""

import logging
import threading
from typing import Dict, FrozenSet, Iterable, Mapping, Optional, Set

from teleport.core.exceptions import AuthorizationError

logger = logging.getLogger(__name__)

ADMIN = "admin"
RELAY = "relay"


class AccessControl:
    """Role → identity allow-list. Membership checks are synchronous preconditions."""

    def __init__(self, roles: Optional[Mapping[str, Iterable[str]]] = None) -> None:
        self._lock = threading.Lock()
        self._roles: Dict[str, Set[str]] = {
            role: set(members) for role, members in (roles or {}).items()
        }

    @classmethod
    def with_admin(cls, admin: str) -> "AccessControl":
        return cls({ADMIN: [admin]})

    def has_role(self, identity: str, role: str = ADMIN) -> bool:
        with self._lock:
            return identity in self._roles.get(role, ())

    def members(self, role: str = ADMIN) -> FrozenSet[str]:
        with self._lock:
            return frozenset(self._roles.get(role, ()))

    def require(self, caller: str, role: str = ADMIN) -> None:
        """Raise AuthorizationError unless caller holds role."""
        if not self.has_role(caller, role):
            logger.warning("Rejected caller %s: missing role %s", caller, role)
            raise AuthorizationError(
                f"Caller is not authorized for role '{role}'",
                {"caller": caller, "role": role},
            )

    def rely(self, caller: str, identity: str, role: str = ADMIN) -> None:
        """Grant role to identity. Caller must be an admin."""
        self.require(caller, ADMIN)
        with self._lock:
            self._roles.setdefault(role, set()).add(identity)
        logger.info("Rely %s as %s (by %s)", identity, role, caller)

    def deny(self, caller: str, identity: str, role: str = ADMIN) -> None:
        """Revoke role from identity. Caller must be an admin."""
        self.require(caller, ADMIN)
        with self._lock:
            self._roles.get(role, set()).discard(identity)
        logger.info("Deny %s as %s (by %s)", identity, role, caller)
