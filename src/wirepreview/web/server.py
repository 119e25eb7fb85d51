"""Web 服务器"""

import uuid
from pathlib import Path

from fastapi import FastAPI, HTTPException, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates
from pydantic import BaseModel

from .. import config
from ..errors import ExportError, PreviewError, UnsupportedFormatError
from ..export import get_available_formats
from ..models import VisualOutput
from ..preview import SessionManager
from ..telemetry import get_logger, metrics
from .handlers import MessageHandler

logger = get_logger(__name__)

WAITING_MESSAGE = f"Open a {config.SOURCE_EXTENSION} file to see the preview"


class ExportRequestModel(BaseModel):
    session_id: str
    format: str
    destination: str | None = None


class ArtifactModel(BaseModel):
    path: str
    view: str
    size: int


class FailureModel(BaseModel):
    view: str
    error: str
    message: str


class ExportResponseModel(BaseModel):
    ok: bool
    message: str
    artifacts: list[ArtifactModel] = []
    failures: list[FailureModel] = []


class PreviewServer:
    """预览服务器

    每个 WebSocket 连接对应一个预览会话（session_id 由页面生成）。
    渲染结果通过 SessionManager 回调推送到对应连接。
    """

    def __init__(self, manager: SessionManager | None = None):
        self.app = FastAPI(title="Wire Preview")
        self.manager = manager or SessionManager()
        self.clients: dict[str, WebSocket] = {}

        templates_dir = Path(__file__).parent.parent / "templates"
        self.templates = Jinja2Templates(directory=str(templates_dir))

        self.manager.set_render_callbacks(self._on_render_success, self._on_render_error)
        self._setup_routes()

    # === 渲染回调 ===

    async def _on_render_success(
        self,
        session_id: str,
        output: VisualOutput,
        view_names: list[str],
        selected_view: str,
    ):
        session = self.manager.get_session(session_id)
        await self.send(session_id, {
            "type": "render_success",
            "session_id": session_id,
            **output.to_dict(),
            "views": view_names,
            "selected_view": selected_view,
            "zoom": session.zoom if session else 1.0,
        })

    async def _on_render_error(self, session_id: str, message: str):
        await self.send(session_id, {
            "type": "render_error",
            "session_id": session_id,
            "message": message,
        })

    async def send(self, session_id: str, data: dict):
        """发送消息给会话对应的客户端"""
        client = self.clients.get(session_id)
        if client is None:
            return
        try:
            await client.send_json(data)
        except (RuntimeError, WebSocketDisconnect) as e:
            logger.debug(f"[PreviewServer] Send to {session_id} failed: {e}")

    # === 路由 ===

    def _setup_routes(self):
        @self.app.get("/", response_class=HTMLResponse)
        async def index(request: Request):
            return self.templates.TemplateResponse(request, "preview.html", {
                "session_id": uuid.uuid4().hex,
                "zoom_step": config.ZOOM_STEP,
                "waiting_message": WAITING_MESSAGE,
                "formats": [fmt.to_dict() for fmt in get_available_formats()],
            })

        @self.app.websocket("/ws/{session_id}")
        async def websocket_endpoint(websocket: WebSocket, session_id: str):
            await websocket.accept()
            self.clients[session_id] = websocket
            self.manager.open_session(session_id)
            handler = MessageHandler(manager=self.manager, session_id=session_id)
            try:
                await websocket.send_json({
                    "type": "waiting",
                    "session_id": session_id,
                    "message": WAITING_MESSAGE,
                })
                while True:
                    data = await websocket.receive_text()
                    await handler.handle(websocket, data)
            except WebSocketDisconnect:
                logger.info(f"[PreviewServer] Client disconnected: {session_id}")
            finally:
                self.clients.pop(session_id, None)
                self.manager.close_session(session_id)

        @self.app.get("/api/metrics")
        async def get_metrics():
            return metrics.snapshot()

        @self.app.get("/api/formats")
        async def list_formats():
            return {"formats": [fmt.to_dict() for fmt in get_available_formats()]}

        @self.app.get("/api/export/default-path")
        async def default_path(filename: str, format: str):
            try:
                path = self.manager.orchestrator.resolver.default_path(filename, format)
            except UnsupportedFormatError as e:
                raise HTTPException(status_code=400, detail=str(e)) from e
            return {"path": str(path)}

        @self.app.post("/api/export", response_model=ExportResponseModel)
        async def export(req: ExportRequestModel):
            if self.manager.get(req.session_id) is None:
                raise HTTPException(status_code=404, detail=f"Unknown preview session: {req.session_id}")

            try:
                artifacts = await self.manager.export_session(req.session_id, req.format, req.destination)
            except ExportError as e:
                logger.warning(f"[PreviewServer] {e.summary()}")
                return ExportResponseModel(
                    ok=False,
                    message=e.summary(),
                    artifacts=[ArtifactModel(**a.to_dict()) for a in e.artifacts],
                    failures=[FailureModel(**f.to_dict()) for f in e.failures],
                )
            except PreviewError as e:
                raise HTTPException(status_code=400, detail=str(e)) from e

            names = ", ".join(a.path.name for a in artifacts)
            return ExportResponseModel(
                ok=True,
                message=f"Exported {names}",
                artifacts=[ArtifactModel(**a.to_dict()) for a in artifacts],
            )
