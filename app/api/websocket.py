"""
WebSocket chat relay.

Clients authenticate with their bearer token, join a project room and
exchange messages. Messages are persisted through MarketplaceStorage and
fanned out best-effort to whoever is connected to this process.
"""
import json
import logging
from dataclasses import dataclass
from typing import Dict, Optional

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from pydantic import ValidationError
from sqlalchemy.orm import Session

from app.core.auth import decode_access_token
from app.database import get_db
from app.models.schemas import MessageCreate, MessageResponse
from app.services.storage import MarketplaceStorage

logger = logging.getLogger(__name__)
router = APIRouter()


@dataclass
class ConnectedUser:
    user_id: int
    websocket: WebSocket
    project_id: Optional[int] = None


class ChatServer:
    """Tracks authenticated sockets (one per user) and routes chat envelopes"""

    def __init__(self):
        self.connected_users: Dict[int, ConnectedUser] = {}

    async def send(self, websocket: WebSocket, payload: dict) -> bool:
        try:
            await websocket.send_json(payload)
            return True
        except Exception as e:
            logger.warning(f"Dropping chat payload for a closed socket: {e}")
            return False

    async def send_to_user(self, user_id: int, payload: dict):
        user = self.connected_users.get(user_id)
        if user and not await self.send(user.websocket, payload):
            self.connected_users.pop(user_id, None)

    async def broadcast_to_project(self, project_id: int, payload: dict, exclude_user_id: Optional[int] = None):
        for user_id, user in list(self.connected_users.items()):
            if user.project_id == project_id and user_id != exclude_user_id:
                if not await self.send(user.websocket, payload):
                    self.connected_users.pop(user_id, None)

    async def send_notification(self, user_id: int, notification: dict):
        await self.send_to_user(user_id, {"type": "notification", **notification})

    def remove(self, websocket: WebSocket):
        for user_id, user in list(self.connected_users.items()):
            if user.websocket is websocket:
                del self.connected_users[user_id]
                logger.info(f"User {user_id} disconnected from chat")

    def user_for(self, websocket: WebSocket) -> Optional[ConnectedUser]:
        for user in self.connected_users.values():
            if user.websocket is websocket:
                return user
        return None

    # ========== ENVELOPES ==========

    async def handle(self, websocket: WebSocket, message: dict, storage: MarketplaceStorage):
        kind = message.get("type")

        if kind == "auth":
            await self.handle_auth(websocket, message)
            return

        handlers = {
            "join_project": self.handle_join_project,
            "send_message": self.handle_send_message,
            "typing": self.handle_typing,
            "read_messages": self.handle_read_messages,
        }
        handler = handlers.get(kind) if isinstance(kind, str) else None
        if handler is None:
            await self.send(websocket, {"type": "error", "message": "Unknown message type"})
            return

        user = self.user_for(websocket)
        if user is None:
            await self.send(websocket, {"type": "error", "message": "Not authenticated"})
            return

        await handler(user, message, storage)

    async def handle_auth(self, websocket: WebSocket, message: dict):
        token = message.get("token")
        user_id = decode_access_token(token) if isinstance(token, str) else None
        if user_id is None:
            await self.send(websocket, {"type": "error", "message": "Invalid token"})
            return

        self.remove(websocket)
        self.connected_users[user_id] = ConnectedUser(user_id=user_id, websocket=websocket)
        await self.send(websocket, {"type": "auth_success", "user_id": user_id})
        logger.info(f"User {user_id} authenticated on chat")

    async def handle_join_project(self, user: ConnectedUser, message: dict, storage: MarketplaceStorage):
        project_id = message.get("project_id")
        if not isinstance(project_id, int) or storage.get_project(project_id) is None:
            await self.send(user.websocket, {"type": "error", "message": "Project not found"})
            return

        user.project_id = project_id
        await self.send(user.websocket, {"type": "joined_project", "project_id": project_id})
        logger.info(f"User {user.user_id} joined project {project_id}")

    async def handle_send_message(self, user: ConnectedUser, message: dict, storage: MarketplaceStorage):
        try:
            data = MessageCreate(**message)
            saved = storage.create_message(
                project_id=data.project_id,
                sender_id=user.user_id,
                receiver_id=data.receiver_id,
                content=data.content,
            )
        except (ValidationError, LookupError, ValueError) as e:
            await self.send(user.websocket, {"type": "error", "message": f"Message not sent: {e}"})
            return

        chat_message = MessageResponse.model_validate(saved).model_dump(mode="json")

        await self.send(user.websocket, {"type": "message_sent", "message": chat_message})
        await self.send_to_user(saved.receiver_id, {"type": "new_message", "message": chat_message})
        await self.broadcast_to_project(
            saved.project_id,
            {"type": "project_message", "message": chat_message},
            exclude_user_id=user.user_id,
        )

    async def handle_typing(self, user: ConnectedUser, message: dict, storage: MarketplaceStorage):
        receiver_id = message.get("receiver_id")
        if not isinstance(receiver_id, int):
            await self.send(user.websocket, {"type": "error", "message": "receiver_id is required"})
            return
        await self.send_to_user(receiver_id, {
            "type": "typing_indicator",
            "sender_id": user.user_id,
            "project_id": message.get("project_id"),
            "is_typing": bool(message.get("is_typing")),
        })

    async def handle_read_messages(self, user: ConnectedUser, message: dict, storage: MarketplaceStorage):
        project_id = message.get("project_id")
        if not isinstance(project_id, int):
            await self.send(user.websocket, {"type": "error", "message": "project_id is required"})
            return

        storage.mark_messages_read(project_id, user.user_id)
        await self.broadcast_to_project(
            project_id,
            {"type": "messages_read", "user_id": user.user_id, "project_id": project_id},
            exclude_user_id=user.user_id,
        )


chat_server = ChatServer()


@router.websocket("/ws")
async def chat_socket(websocket: WebSocket, db: Session = Depends(get_db)):
    await websocket.accept()
    storage = MarketplaceStorage(db)
    try:
        while True:
            data = await websocket.receive_text()
            try:
                message = json.loads(data)
            except json.JSONDecodeError:
                await chat_server.send(websocket, {"type": "error", "message": "Invalid message format"})
                continue
            if not isinstance(message, dict):
                await chat_server.send(websocket, {"type": "error", "message": "Invalid message format"})
                continue

            await chat_server.handle(websocket, message, storage)
    except WebSocketDisconnect:
        logger.debug("Chat socket closed by client")
    finally:
        chat_server.remove(websocket)
