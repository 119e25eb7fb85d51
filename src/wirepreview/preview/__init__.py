"""Preview 模块

提供实时预览的状态与调度：
- PreviewSession: 单个预览面板的状态
- PreviewCoordinator: 防抖 + 渲染调度
- SessionManager: 多会话路由（宿主 UI 入口）
"""

from .coordinator import PreviewCoordinator, RenderErrorCallback, RenderSuccessCallback
from .manager import SessionManager
from .session import PreviewSession, clamp_zoom, fit_zoom
from .types import PreviewEvent, PreviewStatus, RenderSnapshot, StateHistoryEntry

__all__ = [
    "PreviewCoordinator",
    "RenderSuccessCallback",
    "RenderErrorCallback",
    "SessionManager",
    "PreviewSession",
    "clamp_zoom",
    "fit_zoom",
    "PreviewEvent",
    "PreviewStatus",
    "RenderSnapshot",
    "StateHistoryEntry",
]
