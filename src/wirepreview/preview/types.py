"""Preview 模块数据类型定义

包含：
- PreviewStatus: 协调器状态
- PreviewEvent: 事件类型
- RenderSnapshot: 解析结果 + 布局（整体替换）
- StateHistoryEntry: 历史记录条目
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from ..models import Layout, ParsedDocument


class PreviewStatus(Enum):
    """协调器状态枚举

    状态设计（5 个）：
    - WAITING: 尚无文档
    - IDLE: 最近一次渲染成功
    - PENDING_DEBOUNCE: 编辑后等待防抖计时
    - RENDERING: 正在调用 Engine
    - ERROR: 最近一次渲染失败
    """
    WAITING = "waiting"
    IDLE = "idle"
    PENDING_DEBOUNCE = "pending_debounce"
    RENDERING = "rendering"
    ERROR = "error"

    @property
    def accepts_edit(self) -> bool:
        """编辑事件可以直接进入 PENDING_DEBOUNCE"""
        return self is not PreviewStatus.RENDERING


class PreviewEvent(Enum):
    """触发状态变化的事件"""
    EDIT = "edit"
    DEBOUNCE_FIRED = "debounce_fired"
    THEME = "theme"
    VIEW_SELECT = "view_select"
    FOCUS = "focus"
    RENDER_OK = "render_ok"
    RENDER_FAILED = "render_failed"
    CLOSE = "close"


@dataclass(frozen=True)
class RenderSnapshot:
    """一次成功解析的产物

    ParsedDocument 与 Layout 总是一起替换，避免旧布局搭配新文档。
    """
    parsed: ParsedDocument
    layout: Layout
    identity: str = ""
    revision: int = 0

    @property
    def view_names(self) -> list[str]:
        return self.parsed.view_names


@dataclass
class StateHistoryEntry:
    """状态变化历史条目"""
    event: PreviewEvent
    from_status: PreviewStatus
    to_status: PreviewStatus
    description: str = ""
    timestamp: float = field(default_factory=lambda: datetime.now().timestamp())

    def __str__(self) -> str:
        ts = datetime.fromtimestamp(self.timestamp).strftime("%H:%M:%S")
        return f"{ts} | {self.event.value}: {self.from_status.value} → {self.to_status.value}"

    def to_dict(self) -> dict:
        """转换为可序列化的字典"""
        return {
            "event": self.event.value,
            "from_status": self.from_status.value,
            "to_status": self.to_status.value,
            "description": self.description,
            "timestamp": self.timestamp,
        }
