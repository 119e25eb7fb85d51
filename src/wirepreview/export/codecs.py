"""SVG → PNG / PDF 转换

Engine 输出的 SVG 先经 svglib 转为 reportlab Drawing，再交给 reportlab：
PNG 使用 renderPM，PDF 使用 pdfgen canvas（每个 View 一页，页面尺寸取该 View 尺寸）。
"""

from dataclasses import dataclass
from io import BytesIO

from reportlab.graphics import renderPDF, renderPM
from reportlab.pdfgen import canvas
from svglib.svglib import svg2rlg

from ..errors import RenderError
from ..telemetry import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class PdfPage:
    """分页导出中的一页"""

    svg: str
    width: float
    height: float
    name: str


def svg_to_drawing(svg: str, width: float, height: float, name: str | None = None):
    """解析 SVG，返回尺寸恰为 width x height 的 Drawing

    svglib 对截断的标记也可能返回 0x0 的空 Drawing，同样视为无效。

    Raises:
        RenderError: SVG 无法解析
    """
    try:
        drawing = svg2rlg(BytesIO(svg.encode("utf-8")))
    except Exception as e:
        raise RenderError(f"Invalid SVG: {e}", view=name) from e
    if drawing is None or not drawing.width or not drawing.height:
        raise RenderError("Invalid SVG: could not be parsed", view=name)

    if (drawing.width, drawing.height) != (width, height):
        drawing.scale(width / drawing.width, height / drawing.height)
        drawing.width = width
        drawing.height = height
    return drawing


def svg_to_png(svg: str, width: float, height: float, name: str | None = None) -> bytes:
    """SVG 栅格化为 PNG"""
    drawing = svg_to_drawing(svg, width, height, name)
    try:
        return renderPM.drawToString(drawing, fmt="PNG", dpi=72)
    except Exception as e:
        raise RenderError(f"PNG export failed: {e}", view=name) from e


def svgs_to_pdf(pages: list[PdfPage], title: str | None = None) -> bytes:
    """按顺序把多页 SVG 合成一个 PDF

    Args:
        pages: 每页的 SVG 及尺寸
        title: PDF 元数据标题

    Raises:
        RenderError: 没有页面，或某一页转换失败（view 指向该页）
    """
    if not pages:
        raise RenderError("PDF export failed: no pages")

    buffer = BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=(pages[0].width, pages[0].height))
    if title:
        pdf.setTitle(title)

    for page in pages:
        drawing = svg_to_drawing(page.svg, page.width, page.height, page.name)
        pdf.setPageSize((page.width, page.height))
        try:
            renderPDF.draw(drawing, pdf, 0, 0)
        except Exception as e:
            raise RenderError(f"PDF export failed: {e}", view=page.name) from e
        pdf.showPage()

    pdf.save()
    logger.debug(f"[Codecs] Assembled PDF with {len(pages)} pages")
    return buffer.getvalue()
