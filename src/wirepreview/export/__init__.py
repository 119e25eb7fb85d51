"""导出模块

- ExportFormat: SVG / PDF / PNG 三种格式
- DestinationResolver: 默认路径与最后导出目录
- ExportOrchestrator: 按格式扇出 View，写文件
"""

from .codecs import PdfPage, svg_to_drawing, svg_to_png, svgs_to_pdf
from .destination import DestinationResolver
from .formats import ExportFormat, get_available_formats, sanitize_view_name
from .orchestrator import ExportOrchestrator
from .types import ALL_VIEWS, ExportedArtifact, ExportFailure, ExportRequest

__all__ = [
    "ALL_VIEWS",
    "DestinationResolver",
    "ExportFailure",
    "ExportFormat",
    "ExportOrchestrator",
    "ExportRequest",
    "ExportedArtifact",
    "PdfPage",
    "get_available_formats",
    "sanitize_view_name",
    "svg_to_drawing",
    "svg_to_png",
    "svgs_to_pdf",
]
