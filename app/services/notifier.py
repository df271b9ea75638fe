"""Realtime fan-out of session events to WebSocket listeners."""
import asyncio
import logging
from collections import defaultdict
from typing import Any, Dict, Set

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class RealtimeNotifier:
    """Best-effort publisher keyed by session id.

    ``publish`` never raises and never waits for delivery: sends run as
    background tasks, nothing is stored for listeners that join later.
    """

    def __init__(self):
        self._listeners: Dict[str, Set[WebSocket]] = defaultdict(set)
        self._pending: Set[asyncio.Task] = set()

    def subscribe(self, session_id: str, websocket: WebSocket):
        self._listeners[session_id].add(websocket)
        logger.debug("Listener joined session %s (%s total)", session_id, len(self._listeners[session_id]))

    def unsubscribe(self, session_id: str, websocket: WebSocket):
        listeners = self._listeners.get(session_id)
        if not listeners:
            return
        listeners.discard(websocket)
        if not listeners:
            del self._listeners[session_id]

    def listener_count(self, session_id: str) -> int:
        return len(self._listeners.get(session_id, ()))

    def publish(self, session_id: str, event: str, payload: Any):
        listeners = list(self._listeners.get(session_id, ()))
        if not listeners:
            return
        try:
            task = asyncio.get_running_loop().create_task(
                self._fan_out(session_id, listeners, {"event": event, "data": payload})
            )
        except RuntimeError:
            logger.debug("No running loop, dropping %s for session %s", event, session_id)
            return
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def drain(self):
        """Wait for in-flight deliveries. Used on shutdown and in tests."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def _fan_out(self, session_id: str, listeners, message: Dict[str, Any]):
        for websocket in listeners:
            try:
                await websocket.send_json(message)
            except Exception as e:
                logger.info("Dropping listener on session %s: %s", session_id, e)
                self.unsubscribe(session_id, websocket)
