from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Iterable, Optional

from signal_edge.core.auth.state import AuthEvent, AuthStateManager


logger = logging.getLogger(__name__)


class GuardState(str, Enum):
    UNKNOWN = "UNKNOWN"
    SIGNED_OUT = "SIGNED_OUT"
    SIGNED_IN = "SIGNED_IN"


class AuthGuard:
    """Finite-state route guard with a single intended-destination slot.

    - ``check(path)`` on a protected path while not signed in remembers ``path`` and
      returns the sign-in path to redirect to.
    - ``handle_sign_in(current_path)`` consumes the slot: it returns the remembered
      destination only if it differs from ``current_path``, and the slot is cleared
      either way. This is what prevents reload loops.
    """

    LISTENER_ID = "auth_guard"

    def __init__(
        self,
        *,
        sign_in_path: str = "/login",
        protected_prefixes: Iterable[str] = ("/app",),
    ) -> None:
        self.sign_in_path = sign_in_path
        self.protected_prefixes = tuple(protected_prefixes)
        self.state = GuardState.UNKNOWN
        self._intended_destination: Optional[str] = None

    @property
    def intended_destination(self) -> Optional[str]:
        return self._intended_destination

    def is_protected(self, path: str) -> bool:
        return any(path == p or path.startswith(p.rstrip("/") + "/") for p in self.protected_prefixes)

    def check(self, path: str) -> Optional[str]:
        if self.state is GuardState.SIGNED_IN or not self.is_protected(path):
            return None
        if path != self.sign_in_path:
            self._intended_destination = path
        return self.sign_in_path

    def handle_sign_in(self, current_path: str) -> Optional[str]:
        self.state = GuardState.SIGNED_IN
        destination = self._intended_destination
        self._intended_destination = None
        if destination and destination != current_path:
            logger.debug("auth_guard.redirect destination=%s", destination)
            return destination
        return None

    def handle_sign_out(self) -> None:
        self.state = GuardState.SIGNED_OUT
        self._intended_destination = None

    def _on_auth_event(self, event: AuthEvent, session: Optional[dict[str, Any]]) -> None:
        if event is AuthEvent.SIGNED_OUT:
            self.handle_sign_out()
        elif event is AuthEvent.SIGNED_IN:
            # Redirect decisions need the current path; only the state is tracked here.
            self.state = GuardState.SIGNED_IN

    def attach(self, manager: AuthStateManager) -> str:
        """Subscribe to auth-state changes. Safe to call repeatedly."""
        return manager.add_listener(
            self._on_auth_event,
            listener_id=self.LISTENER_ID,
            events=(AuthEvent.SIGNED_IN, AuthEvent.SIGNED_OUT),
        )

    def detach(self, manager: AuthStateManager) -> bool:
        return manager.remove_listener(self.LISTENER_ID)
