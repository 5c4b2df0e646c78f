from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Iterable, Optional


logger = logging.getLogger(__name__)


class AuthEvent(str, Enum):
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"
    USER_UPDATED = "USER_UPDATED"


Listener = Callable[[AuthEvent, Optional[dict[str, Any]]], None]


@dataclass
class _Registration:
    listener_id: str
    callback: Listener
    events: frozenset[AuthEvent]


class AuthStateManager:
    """Publish/subscribe hub for auth-state changes.

    Replaces fixed-interval polling: interested parties register once and are called
    on every change. Registration is keyed by ``listener_id``, so registering the
    same id twice replaces the earlier callback instead of adding a duplicate.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._listeners: dict[str, _Registration] = {}
        self._session: Optional[dict[str, Any]] = None
        self._last_event: Optional[AuthEvent] = None

    @property
    def session(self) -> Optional[dict[str, Any]]:
        return self._session

    @property
    def last_event(self) -> Optional[AuthEvent]:
        return self._last_event

    def add_listener(
        self,
        callback: Listener,
        *,
        listener_id: Optional[str] = None,
        events: Optional[Iterable[AuthEvent]] = None,
    ) -> str:
        lid = listener_id or uuid.uuid4().hex
        wanted = frozenset(events) if events is not None else frozenset(AuthEvent)
        with self._lock:
            replaced = lid in self._listeners
            self._listeners[lid] = _Registration(listener_id=lid, callback=callback, events=wanted)
        if replaced:
            logger.debug("auth_state.listener_replaced id=%s", lid)
        return lid

    def remove_listener(self, listener_id: str) -> bool:
        with self._lock:
            return self._listeners.pop(listener_id, None) is not None

    def has_listener(self, listener_id: str) -> bool:
        with self._lock:
            return listener_id in self._listeners

    def __len__(self) -> int:
        with self._lock:
            return len(self._listeners)

    def notify(self, event: AuthEvent | str, session: Optional[dict[str, Any]] = None) -> int:
        """Deliver ``event`` to matching listeners; returns how many were called.

        A failing listener is logged and does not stop delivery to the others.
        """
        evt = AuthEvent(event)
        with self._lock:
            self._last_event = evt
            self._session = None if evt is AuthEvent.SIGNED_OUT else session
            targets = [r for r in self._listeners.values() if evt in r.events]

        delivered = 0
        for reg in targets:
            try:
                reg.callback(evt, session)
            except Exception:
                logger.exception("auth_state.listener_failed id=%s event=%s", reg.listener_id, evt.value)
                continue
            delivered += 1
        return delivered
