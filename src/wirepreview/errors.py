"""错误类型

预览和导出流程对外只抛出这里定义的异常。Engine 的原始异常在
EngineGateway 边界被翻译成 ParseError / LayoutError / RenderError。

- EngineLoadError: Engine 不可用（session 级致命错误，不重试）
- ParseError / LayoutError / RenderError: 文档级错误，下一次编辑后自动重试
- NoViewsError / UnsupportedFormatError: 导出输入错误，立即上报
- WriteError: 文件系统错误
- ExportError: 导出部分或全部失败的汇总
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .export.types import ExportedArtifact, ExportFailure


class PreviewError(Exception):
    """所有 wirepreview 错误的基类"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class EngineLoadError(PreviewError):
    """Engine 模块无法加载或缺少必需的导出函数"""


class ParseError(PreviewError):
    """文档文本不是合法输入"""

    def __init__(self, message: str, line: int | None = None):
        super().__init__(message)
        self.line = line

    def __str__(self) -> str:
        if self.line is not None:
            return f"line {self.line}: {self.message}"
        return self.message


class LayoutError(PreviewError):
    """Engine 布局计算失败"""


class RenderError(PreviewError):
    """Engine 渲染失败，或输出转换（PNG/PDF）失败"""

    def __init__(self, message: str, view: str | None = None):
        super().__init__(message)
        self.view = view


class NoViewsError(PreviewError):
    """待导出的文档不包含任何 View"""

    def __init__(self, message: str = "No views found in document"):
        super().__init__(message)


class UnsupportedFormatError(PreviewError):
    """未知的导出格式标识"""

    def __init__(self, format_id: str):
        super().__init__(f"Unsupported format: {format_id}")
        self.format_id = format_id


class WriteError(PreviewError):
    """写入导出文件失败（权限、磁盘满、非法路径等）"""

    def __init__(self, message: str, path: Path | None = None):
        super().__init__(message)
        self.path = path


class ExportError(PreviewError):
    """导出未完全成功

    已写入的文件不回滚，artifacts 列出成功的部分，failures 列出失败的 View。
    """

    def __init__(self, artifacts: list[ExportedArtifact], failures: list[ExportFailure]):
        self.artifacts = list(artifacts)
        self.failures = list(failures)
        super().__init__(self.summary())

    def summary(self) -> str:
        """汇总通知文本：哪些成功，哪些失败"""
        failed = "; ".join(f"{f.view}: {f.error}" for f in self.failures)
        if not self.artifacts:
            return f"Export failed: {failed}"
        written = ", ".join(a.path.name for a in self.artifacts)
        return f"Export partially failed. Written: {written}. Failed: {failed}"
