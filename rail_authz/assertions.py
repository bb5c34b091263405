"""
Per-permission assertions.

An assertion is a callable ``(identity, context) -> bool`` attached to a
permission. It runs only after the role check has granted the permission and
can veto it, e.g. to restrict ``post.delete`` to the post's author.
"""

import logging
import threading
from typing import Any, Callable, Mapping, Optional

logger = logging.getLogger(__name__)

Assertion = Callable[[Any, Any], bool]


class AssertionRegistry:
    """Thread-safe mapping of permission -> assertion."""

    def __init__(self, assertions: Optional[Mapping[str, Assertion]] = None):
        self._assertions: dict[str, Assertion] = {}
        self._lock = threading.Lock()
        self._version = 0
        for permission, assertion in (assertions or {}).items():
            self.register(permission, assertion)

    def register(self, permission: str, assertion: Assertion) -> None:
        """Attach an assertion to a permission, replacing any previous one."""
        if not callable(assertion):
            raise TypeError(f"Assertion for '{permission}' must be callable")
        with self._lock:
            self._assertions[permission] = assertion
            self._version += 1
        logger.debug("Assertion registered for permission '%s'", permission)

    def unregister(self, permission: str) -> None:
        with self._lock:
            if self._assertions.pop(permission, None) is not None:
                self._version += 1

    def get(self, permission: str) -> Optional[Assertion]:
        return self._assertions.get(permission)

    @property
    def version(self) -> int:
        return self._version

    def __contains__(self, permission: object) -> bool:
        return permission in self._assertions

    def __len__(self) -> int:
        return len(self._assertions)


__all__ = ["Assertion", "AssertionRegistry"]
