"""导出格式与文件命名"""

import re
from enum import Enum

from ..errors import UnsupportedFormatError

_WHITESPACE_RE = re.compile(r"\s+")
_INVALID_NAME_CHARS_RE = re.compile(r"[^a-z0-9-]")


class ExportFormat(Enum):
    """支持的导出格式

    每个成员携带 (format id, file id, label, extension)：
    format id 是逻辑类别，file id 是具体文件类型。
    """

    VECTOR = ("vector", "svg", "SVG (Vector)", ".svg")
    PAGINATED = ("paginated-document", "pdf", "PDF (Document)", ".pdf")
    RASTER = ("raster", "png", "PNG (Image)", ".png")

    def __init__(self, format_id: str, file_id: str, label: str, extension: str):
        self.format_id = format_id
        self.file_id = file_id
        self.label = label
        self.extension = extension

    @property
    def fans_out(self) -> bool:
        """多 View 文档是否每个 View 输出一个文件"""
        return self is not ExportFormat.PAGINATED

    @classmethod
    def parse(cls, value: "str | ExportFormat") -> "ExportFormat":
        """按 format id / file id / 扩展名查找格式

        Raises:
            UnsupportedFormatError: 未知的格式标识
        """
        if isinstance(value, ExportFormat):
            return value
        key = str(value).strip().lower()
        for fmt in cls:
            if key in (fmt.format_id, fmt.file_id, fmt.extension):
                return fmt
        raise UnsupportedFormatError(str(value))

    def to_dict(self) -> dict:
        return {
            "id": self.format_id,
            "file_id": self.file_id,
            "label": self.label,
            "extension": self.extension,
        }


def get_available_formats() -> list[ExportFormat]:
    return [ExportFormat.VECTOR, ExportFormat.PAGINATED, ExportFormat.RASTER]


def sanitize_view_name(name: str) -> str:
    """View 名转为文件名后缀

    转小写，连续空白变为一个连字符，去掉 [a-z0-9-] 以外的字符。

        >>> sanitize_view_name("Main Dashboard!")
        'main-dashboard'
    """
    lowered = _WHITESPACE_RE.sub("-", name.strip().lower())
    return _INVALID_NAME_CHARS_RE.sub("", lowered)
