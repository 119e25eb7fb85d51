"""SessionManager - 预览会话管理器

宿主 UI 的统一入口：
- 创建/销毁 PreviewSession + PreviewCoordinator
- 按 session_id 路由 edit / theme / view / focus / zoom 事件
- 转发渲染结果回调（on_render_success / on_render_error）
- 导出当前会话的文档（缓存缺失时重新解析）
"""

import inspect
from pathlib import Path
from typing import TYPE_CHECKING

from ..config import DEFAULT_THEME, METRICS_ENABLED
from ..engine import EngineGateway, get_gateway
from ..errors import PreviewError
from ..models import Layout, ParsedDocument, Theme
from ..telemetry import get_logger, metrics
from ..timer import Timer
from .coordinator import PreviewCoordinator, RenderErrorCallback, RenderSuccessCallback
from .session import PreviewSession

if TYPE_CHECKING:
    from ..export import ExportedArtifact, ExportOrchestrator

logger = get_logger(__name__)


class SessionManager:
    """预览会话管理器

    Attributes:
        timer: 所有会话共享的 Timer
        coordinators: {session_id: PreviewCoordinator}
    """

    def __init__(
        self,
        gateway: EngineGateway | None = None,
        timer: Timer | None = None,
        orchestrator: "ExportOrchestrator | None" = None,
        debounce: float | None = None,
        default_theme: "Theme | str | None" = None,
    ):
        """初始化

        Args:
            gateway: Engine 网关，默认使用进程级单例
            timer: Timer 实例，默认新建
            orchestrator: 导出编排器，默认新建
            debounce: 防抖时间（秒）
            default_theme: 新会话主题，None 使用配置 DEFAULT_THEME
        """
        self._gateway = gateway or get_gateway()
        self.timer = timer or Timer()
        self._orchestrator = orchestrator
        self._debounce = debounce
        self._default_theme = Theme.resolve(default_theme or DEFAULT_THEME)
        self.coordinators: dict[str, PreviewCoordinator] = {}

        self._on_success: RenderSuccessCallback | None = None
        self._on_error: RenderErrorCallback | None = None

    # === 配置 ===

    def set_render_callbacks(
        self,
        on_success: RenderSuccessCallback | None,
        on_error: RenderErrorCallback | None,
    ) -> None:
        """设置渲染结果回调

        Args:
            on_success: (session_id, output, view_names, selected_view) -> None
            on_error: (session_id, message) -> None
        """
        self._on_success = on_success
        self._on_error = on_error

    @property
    def orchestrator(self) -> "ExportOrchestrator":
        if self._orchestrator is None:
            from ..export import ExportOrchestrator

            self._orchestrator = ExportOrchestrator(self._gateway)
        return self._orchestrator

    # === 生命周期 ===

    def open_session(self, session_id: str, theme: "Theme | str | None" = None) -> PreviewCoordinator:
        """打开（或返回已存在的）预览会话"""
        coordinator = self.coordinators.get(session_id)
        if coordinator is not None:
            return coordinator

        session = PreviewSession(
            session_id,
            theme=Theme.resolve(theme, host_theme=self._default_theme),
        )
        coordinator = PreviewCoordinator(
            session,
            gateway=self._gateway,
            timer=self.timer,
            on_success=self._dispatch_success,
            on_error=self._dispatch_error,
            debounce=self._debounce,
        )
        self.coordinators[session_id] = coordinator
        if METRICS_ENABLED:
            metrics.gauge("preview.sessions", len(self.coordinators))
        logger.info(f"[SessionManager] 打开会话: {session_id}")
        return coordinator

    def close_session(self, session_id: str) -> bool:
        """关闭会话，释放定时器和回调"""
        coordinator = self.coordinators.pop(session_id, None)
        if coordinator is None:
            return False
        coordinator.close()
        if METRICS_ENABLED:
            metrics.gauge("preview.sessions", len(self.coordinators))
        logger.info(f"[SessionManager] 关闭会话: {session_id}")
        return True

    def close_all(self) -> None:
        for session_id in list(self.coordinators.keys()):
            self.close_session(session_id)
        self.timer.stop()

    def get(self, session_id: str) -> PreviewCoordinator | None:
        return self.coordinators.get(session_id)

    def get_session(self, session_id: str) -> PreviewSession | None:
        coordinator = self.coordinators.get(session_id)
        return coordinator.session if coordinator else None

    # === 事件路由 ===

    def on_edit(self, session_id: str, text: str) -> None:
        self._require(session_id).on_edit(text)

    async def on_theme_toggle(self, session_id: str, theme: "Theme | str") -> None:
        await self._require(session_id).on_theme_toggle(theme)

    async def on_view_select(self, session_id: str, view_name: str) -> None:
        await self._require(session_id).on_view_select(view_name)

    async def on_focus_change(self, session_id: str, identity: str, text: str) -> None:
        await self._require(session_id).on_focus_change(identity, text)

    def on_zoom(self, session_id: str, action: "str | float") -> float:
        return self._require(session_id).on_zoom(action)

    def _require(self, session_id: str) -> PreviewCoordinator:
        coordinator = self.coordinators.get(session_id)
        if coordinator is None:
            raise KeyError(f"Unknown preview session: {session_id}")
        return coordinator

    # === 回调转发 ===

    async def _dispatch_success(self, session_id, output, view_names, selected_view) -> None:
        if self._on_success is not None:
            await _maybe_await(self._on_success(session_id, output, view_names, selected_view))

    async def _dispatch_error(self, session_id: str, message: str) -> None:
        if self._on_error is not None:
            await _maybe_await(self._on_error(session_id, message))

    # === 导出 ===

    async def request_export(
        self,
        identity: str,
        parsed: ParsedDocument,
        layout: Layout,
        theme: "Theme | str",
        fmt: str,
        destination: "str | Path | None" = None,
    ) -> list["ExportedArtifact"]:
        """导出给定的解析结果"""
        return await self.orchestrator.export_document(
            source_filename=Path(identity).name,
            parsed=parsed,
            layout=layout,
            theme=Theme.resolve(theme),
            fmt=fmt,
            destination=destination,
        )

    async def export_session(
        self,
        session_id: str,
        fmt: str,
        destination: "str | Path | None" = None,
    ) -> list["ExportedArtifact"]:
        """导出会话当前文档

        会话缓存对应最新文档时直接复用，否则重新解析。

        Raises:
            PreviewError: 没有文档或导出失败
        """
        session = self._require(session_id).session
        document = session.document
        if document is None:
            raise PreviewError("No active Wire DSL document")

        snapshot = session.snapshot
        if (
            snapshot is not None
            and snapshot.identity == document.identity
            and snapshot.revision == document.revision
        ):
            parsed, layout = snapshot.parsed, snapshot.layout
        else:
            parsed = self._gateway.parse(document.text)
            layout = self._gateway.compute_layout(parsed)

        return await self.request_export(
            document.identity, parsed, layout, session.theme, fmt, destination
        )


async def _maybe_await(result) -> None:
    if inspect.iscoroutine(result):
        await result
