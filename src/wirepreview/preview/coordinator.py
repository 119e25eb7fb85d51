"""PreviewCoordinator - 预览更新协调器

每个 PreviewSession 一个协调器，决定何时、以何种方式调用 Engine：

- 编辑事件：防抖（同名 delay 任务重新注册即重新计时），到期后完整流水线
  parse → layout → render，始终使用触发时刻的最新文本
- 主题 / View 切换：跳过防抖，只用缓存的解析结果和布局重新 render，
  不影响正在计时的防抖任务
- Focus 切换：替换文档并立即执行完整流水线（首次绘制不延迟）

状态流转：
    WAITING/IDLE/ERROR --edit--> PENDING_DEBOUNCE --fire--> RENDERING
    RENDERING --ok--> IDLE
    RENDERING --fail--> ERROR（缓存保持不变）
    RENDERING 期间的编辑在渲染结束后立即开始新一轮防抖
"""

import inspect
from typing import Any, Callable

from ..config import DEBOUNCE_SECONDS, METRICS_ENABLED, PREVIEW_HEIGHT, PREVIEW_WIDTH
from ..engine import EngineGateway
from ..errors import EngineLoadError, PreviewError
from ..models import Document, Layout, ParsedDocument, Theme, View, VisualOutput
from ..telemetry import format_session_log, get_logger, metrics
from ..timer import Timer
from .session import PreviewSession
from .types import PreviewEvent, PreviewStatus, RenderSnapshot

logger = get_logger(__name__)

# 回调类型
RenderSuccessCallback = Callable[[str, VisualOutput, list[str], str], Any]
RenderErrorCallback = Callable[[str, str], Any]


class PreviewCoordinator:
    """预览更新协调器

    使用示例:
        timer = Timer()
        coordinator = PreviewCoordinator(
            PreviewSession("panel-1"),
            gateway=get_gateway(),
            timer=timer,
            on_success=push_svg,
            on_error=push_error,
        )

        coordinator.on_edit(text)                 # 300ms 后渲染
        await coordinator.on_theme_toggle("light")  # 立即重新 render
        await coordinator.on_focus_change("/path/a.wire", text)
    """

    def __init__(
        self,
        session: PreviewSession,
        gateway: EngineGateway,
        timer: Timer,
        on_success: RenderSuccessCallback | None = None,
        on_error: RenderErrorCallback | None = None,
        debounce: float | None = None,
    ):
        """初始化

        Args:
            session: 预览状态
            gateway: Engine 网关
            timer: 延迟任务服务（可多个协调器共享）
            on_success: 渲染成功回调 (session_id, output, view_names, selected_view)
            on_error: 渲染失败回调 (session_id, message)
            debounce: 防抖时间（秒），None 使用配置默认值
        """
        self.session = session
        self._gateway = gateway
        self._timer = timer
        self._on_success = on_success
        self._on_error = on_error
        self._debounce = DEBOUNCE_SECONDS if debounce is None else debounce
        self._fatal: EngineLoadError | None = None
        self._closed = False

    # === 属性 ===

    @property
    def session_id(self) -> str:
        return self.session.session_id

    @property
    def timer_name(self) -> str:
        return f"debounce:{self.session_id}"

    @property
    def is_pending(self) -> bool:
        """是否有正在计时的防抖任务"""
        return self._timer.has_delay(self.timer_name)

    @property
    def is_closed(self) -> bool:
        return self._closed

    def _log(self, msg: str) -> str:
        return format_session_log("Coordinator", self.session_id, msg)

    # === 事件入口 ===

    def on_edit(self, text: str) -> Document | None:
        """编辑事件

        只保留最新文本；重新开始防抖计时。渲染进行中时只记录，
        渲染结束后立即开始新一轮防抖。

        Returns:
            记录下的文档快照（已关闭时返回 None）
        """
        if self._closed:
            return None

        document = self.session.record_edit(text)

        if self._fatal is not None:
            logger.debug(self._log("Engine unavailable, edit recorded only"))
            return document

        if not self.session.status.accepts_edit:
            logger.debug(self._log(f"Edit during render, deferred (rev={document.revision})"))
            return document

        self._schedule(f"rev={document.revision}")
        return document

    async def on_theme_toggle(self, theme: "Theme | str") -> None:
        """主题切换：不解析，只重新 render"""
        if self._closed:
            return
        self.session.theme = Theme.resolve(theme)
        await self._rerender(PreviewEvent.THEME)

    async def on_view_select(self, view_name: str) -> None:
        """选中 View 切换：不解析，只重新 render

        未知 View 名通过 on_error 回调报告，选中项保持不变。
        """
        if self._closed:
            return

        snapshot = self.session.snapshot
        if snapshot is not None and not snapshot.parsed.has_view(view_name):
            await self._emit_error(f"Unknown view: {view_name}")
            return

        self.session.select_view(view_name)
        await self._rerender(PreviewEvent.VIEW_SELECT)

    async def on_focus_change(self, identity: str, text: str) -> None:
        """切换到另一个文档：立即执行完整流水线，跳过防抖"""
        if self._closed:
            return

        self._timer.cancel_delay(self.timer_name)
        document = self.session.replace_document(identity, text)
        logger.info(self._log(f"Focus → {identity}"))
        await self._run_pipeline(document, PreviewEvent.FOCUS)

    def on_zoom(self, action: "str | float") -> float:
        """缩放：in / out / reset / 显式系数

        Raises:
            ValueError: 未知的缩放动作
        """
        if isinstance(action, (int, float)):
            return self.session.set_zoom(action)
        if action == "in":
            return self.session.zoom_in()
        if action == "out":
            return self.session.zoom_out()
        if action == "reset":
            return self.session.reset_zoom()
        try:
            value = float(action)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Unknown zoom action: {action!r}") from e
        return self.session.set_zoom(value)

    def close(self) -> None:
        """释放定时器和回调"""
        if self._closed:
            return
        self._closed = True
        self._timer.cancel_delay(self.timer_name)
        self._on_success = None
        self._on_error = None
        self.session.transition(PreviewEvent.CLOSE, PreviewStatus.WAITING)
        logger.info(self._log("Closed"))

    # === 调度 ===

    def _schedule(self, description: str = "") -> None:
        self.session.transition(PreviewEvent.EDIT, PreviewStatus.PENDING_DEBOUNCE, description)
        self._timer.register_delay(self.timer_name, self._debounce, self._on_debounce_fired)

    async def _on_debounce_fired(self) -> None:
        if self._closed:
            return
        document = self.session.take_pending()
        if document is None:
            return
        await self._run_pipeline(document, PreviewEvent.DEBOUNCE_FIRED)

    def _after_render(self) -> None:
        """渲染结束后的收尾

        - 仍有防抖任务在计时（主题切换打断了编辑）：回到 PENDING_DEBOUNCE
        - 渲染期间有新编辑：立即开始新一轮防抖
        """
        if self._timer.has_delay(self.timer_name):
            self.session.transition(
                PreviewEvent.EDIT, PreviewStatus.PENDING_DEBOUNCE, "debounce still pending"
            )
        elif self.session.pending is not None:
            self._schedule(f"deferred rev={self.session.pending.revision}")

    # === 渲染 ===

    async def _run_pipeline(self, document: Document, event: PreviewEvent) -> None:
        """完整流水线：parse → layout → render"""
        if self._fatal is not None:
            await self._emit_error(str(self._fatal))
            return

        self.session.transition(event, PreviewStatus.RENDERING, f"rev={document.revision}")
        try:
            parsed = self._gateway.parse(document.text)
            layout = self._gateway.compute_layout(parsed)
            output = self._render(parsed, layout, self.session.resolve_view(parsed))
        except PreviewError as e:
            await self._fail(e)
            return

        # 解析结果和布局整体替换
        snapshot = RenderSnapshot(parsed, layout, document.identity, document.revision)
        self.session.apply_snapshot(snapshot, output)
        await self._succeed(output, f"rev={document.revision}")

    async def _rerender(self, event: PreviewEvent) -> None:
        """只重新 render（使用缓存的解析结果和布局）

        没有缓存时只记录新参数。处于 ERROR 且错误来自比缓存更新的文本
        （parse/layout 失败）时同样只记录，等下一次成功的完整渲染生效；
        缓存仍对应当前文档（只是 render 失败）时照常重新渲染。
        """
        if self._fatal is not None:
            return

        snapshot = self.session.snapshot
        if snapshot is None or (self.session.status is PreviewStatus.ERROR and self._is_stale(snapshot)):
            logger.debug(self._log(f"{event.value} recorded, no render"))
            return

        self.session.transition(event, PreviewStatus.RENDERING)
        try:
            view = self.session.resolve_view(snapshot.parsed)
            output = self._render(snapshot.parsed, snapshot.layout, view)
        except PreviewError as e:
            await self._fail(e)
            return

        self.session.apply_output(output)
        await self._succeed(output, event.value)

    def _is_stale(self, snapshot: RenderSnapshot) -> bool:
        """缓存是否落后于当前文档"""
        document = self.session.document
        if document is None:
            return False
        return (snapshot.identity, snapshot.revision) != (document.identity, document.revision)

    def _render(self, parsed: ParsedDocument, layout: Layout, view: View | None) -> VisualOutput:
        if view is None:
            return self._gateway.render_view(
                parsed,
                layout,
                view=None,
                theme=self.session.theme,
                width=PREVIEW_WIDTH,
                height=PREVIEW_HEIGHT,
            )
        return self._gateway.render_view(
            parsed,
            layout,
            view=view.name,
            theme=self.session.theme,
            width=view.width,
            height=view.height,
        )

    async def _succeed(self, output: VisualOutput, description: str) -> None:
        self.session.transition(PreviewEvent.RENDER_OK, PreviewStatus.IDLE, description)
        if METRICS_ENABLED:
            metrics.inc("preview.renders")
        logger.debug(self._log(f"Rendered view={output.view or '-'} theme={output.theme.value}"))
        self._after_render()
        await self._emit_success(output)

    async def _fail(self, error: PreviewError) -> None:
        message = str(error)
        self.session.record_error(message)
        self.session.transition(PreviewEvent.RENDER_FAILED, PreviewStatus.ERROR, message)
        if METRICS_ENABLED:
            metrics.inc("preview.errors", {"kind": type(error).__name__})

        if isinstance(error, EngineLoadError):
            self._fatal = error
            self._timer.cancel_delay(self.timer_name)
            logger.error(self._log(f"Engine unavailable: {message}"))
        else:
            logger.warning(self._log(f"Render failed: {message}"))
            self._after_render()

        await self._emit_error(message)

    # === 回调 ===

    async def _emit_success(self, output: VisualOutput) -> None:
        await self._invoke(
            self._on_success,
            self.session_id,
            output,
            self.session.view_names,
            self.session.selected_view,
        )

    async def _emit_error(self, message: str) -> None:
        await self._invoke(self._on_error, self.session_id, message)

    async def _invoke(self, callback: Callable | None, *args) -> None:
        """执行回调（带异常隔离）"""
        if callback is None:
            return
        try:
            result = callback(*args)
            if inspect.iscoroutine(result):
                await result
        except Exception as e:
            logger.error(self._log(f"Callback error: {e}"))
