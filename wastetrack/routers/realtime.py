# wastetrack/routers/realtime.py
"""
WebSocket channel for live container updates.

Clients connect to /ws with an access token (?token=... or Authorization
header), then send:
    {"event": "join:center",  "centerId": 12}
    {"event": "leave:center", "centerId": 12}
and receive {"event": "container.status.updated", "data": {...}} for every
declaration in the rooms they joined.
"""

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect, status
from sqlalchemy.orm import Session

from wastetrack.constants import JOIN_CENTER_EVENT, LEAVE_CENTER_EVENT
from wastetrack.database import get_db
from wastetrack.exceptions import AuthenticationError
from wastetrack.services.auth_service import extract_bearer_token, resolve_user, verify_access_token
from wastetrack.services.broadcaster import broadcaster
from wastetrack.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


def _authenticate(websocket: WebSocket, db: Session):
    token = websocket.query_params.get("token") or extract_bearer_token(
        websocket.headers.get("authorization"))
    if not token:
        raise AuthenticationError("Missing token")
    claims = verify_access_token(token)
    try:
        return resolve_user(db, claims)
    finally:
        # release the connection, the socket may stay open for hours
        db.close()


def _center_id(message):
    center_id = message.get("centerId")
    if isinstance(center_id, bool) or not isinstance(center_id, (int, str)) or str(center_id).strip() == "":
        return None
    try:
        return int(center_id)
    except ValueError:
        return None


@router.websocket("/ws")
async def realtime_channel(websocket: WebSocket, db: Session = Depends(get_db)):
    try:
        user = _authenticate(websocket, db)
    except AuthenticationError as e:
        logger.warning(f"🔒 WebSocket rejected: {e.message}")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    logger.info(f"🔌 WebSocket connected: user {user.id}")
    try:
        while True:
            try:
                message = await websocket.receive_json()
            except ValueError:
                await websocket.send_json({"event": "error", "message": "Messages must be JSON"})
                continue
            if not isinstance(message, dict):
                await websocket.send_json({"event": "error", "message": "Messages must be JSON objects"})
                continue

            event = message.get("event")
            if event not in (JOIN_CENTER_EVENT, LEAVE_CENTER_EVENT):
                await websocket.send_json({"event": "error", "message": f"Unknown event: {event}"})
                continue
            center_id = _center_id(message)
            if center_id is None:
                await websocket.send_json({"event": "error", "message": "centerId is required"})
                continue

            if event == JOIN_CENTER_EVENT:
                room = await broadcaster.subscribe(websocket, center_id)
            else:
                room = await broadcaster.unsubscribe(websocket, center_id)
            await websocket.send_json({"event": f"{event}:ok", "room": room})
    except WebSocketDisconnect:
        logger.info(f"🔌 WebSocket disconnected: user {user.id}")
    finally:
        await broadcaster.disconnect(websocket)
