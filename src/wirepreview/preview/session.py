"""PreviewSession - 每个预览面板的状态

职责：
- 保存最新文档快照、主题、选中 View、缩放
- 保存最近一次成功的 RenderSnapshot（解析结果 + 布局）
- 维护协调器状态和历史（环形队列）

不负责：
- 调度和调用 Engine（由 PreviewCoordinator 负责）
"""

from collections import deque

from ..config import (
    FIT_PADDING,
    PREVIEW_HEIGHT,
    PREVIEW_WIDTH,
    STATE_HISTORY_MAX_LENGTH,
    ZOOM_MAX,
    ZOOM_MIN,
    ZOOM_STEP,
)
from ..models import Document, ParsedDocument, Theme, View, VisualOutput
from ..telemetry import format_session_log, get_logger
from .types import PreviewEvent, PreviewStatus, RenderSnapshot, StateHistoryEntry

logger = get_logger(__name__)


def clamp_zoom(value: float) -> float:
    """把缩放限制在 [ZOOM_MIN, ZOOM_MAX]，保留两位小数"""
    return round(max(ZOOM_MIN, min(float(value), ZOOM_MAX)), 2)


def fit_zoom(
    view_width: float,
    view_height: float,
    viewport_width: float = PREVIEW_WIDTH,
    viewport_height: float = PREVIEW_HEIGHT,
    padding: float = FIT_PADDING,
) -> float:
    """计算让 View 完整放入视口的缩放（不超过 1.0）"""
    if view_width <= 0 or view_height <= 0:
        return 1.0
    available_w = max(viewport_width - padding, 1)
    available_h = max(viewport_height - padding, 1)
    fit = min(available_w / view_width, available_h / view_height)
    return clamp_zoom(min(fit, 1.0))


class PreviewSession:
    """单个预览面板的状态

    Attributes:
        session_id: 预览面板标识
        document: 当前跟踪的文档（最近一次收到的快照）
        theme: 当前主题
        selected_view: 当前选中的 View 名（空字符串表示尚未确定）
        zoom: 当前缩放系数
        snapshot: 最近一次成功的 RenderSnapshot
        status: 协调器状态
    """

    def __init__(self, session_id: str, theme: Theme = Theme.DARK):
        self.session_id = session_id
        self._document: Document | None = None
        self._pending: Document | None = None
        self._theme = theme
        self._selected_view = ""
        self._zoom = 1.0
        self._fit_zoom = 1.0
        self._snapshot: RenderSnapshot | None = None
        self._status = PreviewStatus.WAITING
        self._last_output: VisualOutput | None = None
        self._last_error: str | None = None

        # 环形历史队列
        self._history: deque[StateHistoryEntry] = deque(maxlen=STATE_HISTORY_MAX_LENGTH)

    # === 属性 ===

    @property
    def document(self) -> Document | None:
        return self._document

    @property
    def pending(self) -> Document | None:
        return self._pending

    @property
    def theme(self) -> Theme:
        return self._theme

    @theme.setter
    def theme(self, value: Theme) -> None:
        self._theme = value

    @property
    def selected_view(self) -> str:
        return self._selected_view

    @property
    def zoom(self) -> float:
        return self._zoom

    @property
    def snapshot(self) -> RenderSnapshot | None:
        return self._snapshot

    @property
    def status(self) -> PreviewStatus:
        return self._status

    @property
    def last_output(self) -> VisualOutput | None:
        return self._last_output

    @property
    def last_error(self) -> str | None:
        return self._last_error

    @property
    def view_names(self) -> list[str]:
        if self._snapshot is None:
            return []
        return self._snapshot.view_names

    @property
    def history(self) -> list[StateHistoryEntry]:
        return list(self._history)

    # === 状态 ===

    def transition(self, event: PreviewEvent, to_status: PreviewStatus, description: str = "") -> None:
        """切换状态并记录历史"""
        from_status = self._status
        self._status = to_status
        self._history.append(
            StateHistoryEntry(
                event=event,
                from_status=from_status,
                to_status=to_status,
                description=description,
            )
        )
        if from_status is not to_status:
            logger.debug(
                format_session_log(
                    "Session",
                    self.session_id,
                    f"{from_status.value} → {to_status.value} | event={event.value}",
                )
            )

    # === 文档 ===

    def record_edit(self, text: str) -> Document:
        """记录一次编辑，放入唯一的待渲染槽位（覆盖旧值）"""
        base = self._pending or self._document
        if base is None:
            document = Document(identity=self.session_id, text=text)
        else:
            document = base.next(text)
        self._document = document
        self._pending = document
        return document

    def replace_document(self, identity: str, text: str) -> Document:
        """切换到另一个文档（focus 变化）"""
        if self._document is not None and self._document.identity == identity:
            document = self._document.next(text)
        else:
            document = Document(identity=identity, text=text)
        self._document = document
        self._pending = None
        return document

    def take_pending(self) -> Document | None:
        """取出待渲染文档（槽位清空）"""
        document = self._pending
        self._pending = None
        return document

    # === 渲染结果 ===

    def resolve_view(self, parsed: ParsedDocument) -> View | None:
        """确定要渲染的 View

        选中的 View 不存在（被重命名/删除）时回退到第一个 View。
        """
        view = parsed.get_view(self._selected_view) if self._selected_view else None
        if view is None and parsed.views:
            view = parsed.views[0]
        return view

    def apply_snapshot(self, snapshot: RenderSnapshot, output: VisualOutput) -> None:
        """整体替换缓存的解析结果和布局

        首次成功渲染时缩放初始化为 fit zoom。
        """
        first_paint = self._snapshot is None
        self._snapshot = snapshot
        self._apply_output(output)
        self._fit_zoom = fit_zoom(output.width, output.height)
        if first_paint:
            self._zoom = self._fit_zoom

    def apply_output(self, output: VisualOutput) -> None:
        """只更新渲染输出（主题/View 切换）"""
        self._apply_output(output)

    def _apply_output(self, output: VisualOutput) -> None:
        self._last_output = output
        self._selected_view = output.view
        self._last_error = None

    def record_error(self, message: str) -> None:
        self._last_error = message

    def select_view(self, name: str) -> None:
        self._selected_view = name

    # === 缩放 ===

    @property
    def fit(self) -> float:
        return self._fit_zoom

    def set_zoom(self, value: float) -> float:
        self._zoom = clamp_zoom(value)
        return self._zoom

    def zoom_in(self) -> float:
        return self.set_zoom(self._zoom + ZOOM_STEP)

    def zoom_out(self) -> float:
        return self.set_zoom(self._zoom - ZOOM_STEP)

    def reset_zoom(self) -> float:
        return self.set_zoom(self._fit_zoom)

    # === 序列化 ===

    def to_dict(self) -> dict:
        """序列化为字典（用于前端和调试）"""
        return {
            "session_id": self.session_id,
            "document": self._document.identity if self._document else None,
            "revision": self._document.revision if self._document else 0,
            "status": self._status.value,
            "theme": self._theme.value,
            "selected_view": self._selected_view,
            "views": self.view_names,
            "zoom": self._zoom,
            "error": self._last_error,
        }
