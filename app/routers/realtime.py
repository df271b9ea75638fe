"""WebSocket endpoint for live interview events."""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, WebSocket, WebSocketDisconnect, status
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.database import get_db
from app.models.user import to_object_id
from app.utils.dependencies import user_from_token

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Realtime"])


@router.websocket("/ws/interviews/{session_id}")
async def interview_events(
    websocket: WebSocket,
    session_id: str,
    token: Optional[str] = None,
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """Stream ``interview:*`` events for one session to its owner.

    Authenticate with ``?token=<access token>``. Messages sent by the client
    are ignored; the socket only carries server events.
    """
    if not token:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason="Authentication token required")
        return
    try:
        user = user_from_token(token)
    except HTTPException:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason="Invalid authentication token")
        return

    oid = to_object_id(session_id)
    owned = oid is not None and await db.interview_sessions.find_one(
        {"_id": oid, "user_id": user.user_id}, {"_id": 1}
    )
    if not owned:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason="Interview session not found")
        return

    notifier = websocket.app.state.notifier
    await websocket.accept()
    notifier.subscribe(session_id, websocket)
    logger.info("User %s listening on interview %s", user.user_id, session_id)

    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        notifier.unsubscribe(session_id, websocket)
        logger.info("User %s left interview %s", user.user_id, session_id)
