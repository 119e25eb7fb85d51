"""导出数据类型"""

from dataclasses import dataclass, field
from pathlib import Path

from ..errors import PreviewError
from ..models import Layout, ParsedDocument, Theme
from .formats import ExportFormat

# 分页文档产物对应的 View 名
ALL_VIEWS = "all views"


@dataclass
class ExportRequest:
    """一次导出请求（不持久化，导出完成后丢弃）

    Attributes:
        source_filename: 源文件名（用于默认命名）
        parsed: 待导出的解析结果
        layout: 对应的布局
        format: 目标格式（ExportFormat 或格式标识）
        theme: 主题
        destination: 目标路径或目录，None 使用默认路径
    """
    source_filename: str
    parsed: ParsedDocument
    layout: Layout
    format: "ExportFormat | str"
    theme: Theme = Theme.DARK
    destination: Path | None = None


@dataclass
class ExportedArtifact:
    """一个已写入的文件"""
    path: Path
    payload: bytes | str = field(repr=False)
    view: str

    @property
    def size(self) -> int:
        if isinstance(self.payload, str):
            return len(self.payload.encode("utf-8"))
        return len(self.payload)

    def to_dict(self) -> dict:
        return {"path": str(self.path), "view": self.view, "size": self.size}


@dataclass
class ExportFailure:
    """一个失败的 View（或整个分页导出）"""
    view: str
    error: PreviewError

    def to_dict(self) -> dict:
        return {
            "view": self.view,
            "error": type(self.error).__name__,
            "message": str(self.error),
        }
