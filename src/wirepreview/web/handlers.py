"""WebSocket 消息处理器"""

import json
from dataclasses import dataclass

from fastapi import WebSocket

from ..models import Theme
from ..preview import SessionManager
from ..telemetry import format_session_log, get_logger

logger = get_logger(__name__)


@dataclass
class MessageHandler:
    """WebSocket 消息处理器

    消息格式（JSON）:
        {"action": "edit", "text": "..."}
        {"action": "focus", "identity": "/path/app.wire", "text": "..."}
        {"action": "theme", "theme": "light" | "dark" | "toggle"}
        {"action": "select_view", "view": "Dashboard"}
        {"action": "zoom", "zoom": "in" | "out" | "reset" | 1.25}
    """

    manager: SessionManager
    session_id: str

    async def handle(self, websocket: WebSocket, data: str):
        """处理 WebSocket 消息"""
        try:
            msg = json.loads(data)
        except json.JSONDecodeError:
            await self._reply_error(websocket, "Invalid message")
            return
        if not isinstance(msg, dict):
            await self._reply_error(websocket, "Invalid message")
            return

        action = msg.get("action")
        try:
            if action == "edit":
                self.manager.on_edit(self.session_id, str(msg.get("text", "")))
            elif action == "focus":
                await self._handle_focus(msg)
            elif action == "theme":
                await self._handle_theme(msg)
            elif action == "select_view":
                await self.manager.on_view_select(self.session_id, str(msg.get("view", "")))
            elif action == "zoom":
                zoom = self.manager.on_zoom(self.session_id, msg.get("zoom", "reset"))
                await websocket.send_json({"type": "zoom", "session_id": self.session_id, "zoom": zoom})
            else:
                await self._reply_error(websocket, f"Unknown action: {action}")
        except (TypeError, ValueError) as e:
            await self._reply_error(websocket, str(e))

    async def _handle_focus(self, msg: dict):
        """处理文档切换（立即渲染）"""
        identity = str(msg.get("identity") or self.session_id)
        await self.manager.on_focus_change(self.session_id, identity, str(msg.get("text", "")))

    async def _handle_theme(self, msg: dict):
        """处理主题切换（"toggle" 在当前主题上翻转）"""
        value = msg.get("theme", "toggle")
        if value == "toggle":
            session = self.manager.get_session(self.session_id)
            theme = session.theme.toggled() if session else Theme.DARK
        else:
            theme = Theme.resolve(value)
        await self.manager.on_theme_toggle(self.session_id, theme)

    async def _reply_error(self, websocket: WebSocket, message: str):
        logger.debug(format_session_log("Handler", self.session_id, message))
        await websocket.send_json({"type": "error", "session_id": self.session_id, "message": message})
