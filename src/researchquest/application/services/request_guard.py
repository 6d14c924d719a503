"""Double-submit protection for user-triggered mutations."""

from __future__ import annotations

import hashlib
import threading
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, Optional, Set

from researchquest.application.ports.entity_store_port import EntityStorePort
from researchquest.application.services.session_context import SessionContext
from researchquest.domain.errors import OperationInProgressError

REQUESTS = "requests"


class InFlightGate:
    """Rejects a second concurrent run of the same keyed action."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._active: Set[str] = set()

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._lock:
            if key in self._active:
                raise OperationInProgressError(key)
            self._active.add(key)
        try:
            yield
        finally:
            with self._lock:
                self._active.discard(key)

    def is_active(self, key: str) -> bool:
        with self._lock:
            return key in self._active


class RequestGuard:
    """
    Replays the recorded result of a client request id instead of running
    the action a second time.

    The result must be JSON-serializable. Calls without a request id always
    execute.
    """

    def __init__(self, store: EntityStorePort, gate: Optional[InFlightGate] = None):
        self._store = store
        self._gate = gate or InFlightGate()

    @staticmethod
    def _record_id(user_id: str, scope: str, request_id: str) -> str:
        raw = f"{user_id}:{scope}:{request_id}".encode("utf-8")
        return hashlib.sha256(raw).hexdigest()[:48]

    def run(
        self,
        session: SessionContext,
        *,
        scope: str,
        request_id: Optional[str],
        action: Callable[[], Dict[str, Any]],
    ) -> Dict[str, Any]:
        if not request_id:
            return action()

        user = session.require_user()
        record_id = self._record_id(user.id, scope, request_id)
        with self._gate.hold(record_id):
            existing = self._store.get(REQUESTS, record_id)
            if existing is not None:
                return dict(existing.get("result") or {})
            result = action()
            self._store.create(
                REQUESTS,
                {"owner_id": user.id, "scope": scope, "request_id": request_id, "result": result},
                record_id=record_id,
            )
            return result
