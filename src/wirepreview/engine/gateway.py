"""Engine Gateway - Engine 网关

每个进程只延迟加载一次外部 Engine，向预览协调器和导出编排器提供
parse → IR → layout → render 四个步骤。Engine 抛出的异常统一在这里
转换为 wirepreview 的错误类型。
"""

import re
import threading
from typing import Any

from wirepreview import config
from wirepreview.errors import EngineLoadError, LayoutError, ParseError, RenderError
from wirepreview.models import Layout, ParsedDocument, Theme, View, VisualOutput
from wirepreview.telemetry import get_logger, metrics

from .base import Engine, ModuleEngine

logger = get_logger(__name__)

_SVG_OPEN_TAG_RE = re.compile(r"<svg\b([^>]*?)(/?)>", re.IGNORECASE)


def _read(obj: Any, key: str) -> Any:
    """从 dict 或属性对象中读取 key"""
    if obj is None:
        return None
    if isinstance(obj, dict):
        return obj.get(key)
    return getattr(obj, key, None)


def _format_number(value: float) -> str:
    return f"{value:g}"


def ensure_svg_dimensions(svg: str, width: float, height: float) -> str:
    """根 <svg> 标签缺少 width/height 时补上

    Args:
        svg: SVG 文本
        width: 补充的宽度
        height: 补充的高度

    Returns:
        根标签同时声明了 width 和 height 的 SVG
    """
    match = _SVG_OPEN_TAG_RE.search(svg)
    if match is None:
        return svg

    attrs, self_closing = match.group(1), match.group(2)
    extra = ""
    if not re.search(r"\swidth\s*=", attrs):
        extra += f' width="{_format_number(width)}"'
    if not re.search(r"\sheight\s*=", attrs):
        extra += f' height="{_format_number(height)}"'
    if not extra:
        return svg

    tag = f"<svg{attrs}{extra}{self_closing}>"
    return svg[: match.start()] + tag + svg[match.end():]


def extract_views(ir: Any) -> tuple[View, ...]:
    """从 Engine IR 中按声明顺序读取 View 列表

    未声明尺寸的 View 继承第一个 View 的尺寸，第一个也没有时
    使用 DEFAULT_VIEW_WIDTH x DEFAULT_VIEW_HEIGHT。

    Raises:
        ParseError: View 名为空
    """
    raw_views = _read(ir, "views")
    if raw_views is None:
        raw_views = _read(ir, "screens")
    if raw_views is None:
        return ()
    if isinstance(raw_views, dict):
        raw_views = [
            {"name": key, **value} if isinstance(value, dict) else value
            for key, value in raw_views.items()
        ]

    base_width: float = config.DEFAULT_VIEW_WIDTH
    base_height: float = config.DEFAULT_VIEW_HEIGHT
    views: list[View] = []

    for index, raw in enumerate(raw_views):
        name = _read(raw, "name")
        if not name or not str(name).strip():
            raise ParseError(f"View #{index + 1} has an empty name")

        viewport = _read(raw, "viewport")
        width = _read(raw, "width") or _read(viewport, "width")
        height = _read(raw, "height") or _read(viewport, "height")

        if index == 0:
            base_width = float(width or base_width)
            base_height = float(height or base_height)

        views.append(
            View(
                name=str(name),
                width=float(width or base_width),
                height=float(height or base_height),
            )
        )

    return tuple(views)


def _error_line(exc: BaseException) -> int | None:
    for attr in ("line", "lineno"):
        value = getattr(exc, attr, None)
        if isinstance(value, int):
            return value
    return None


class EngineGateway:
    """Engine 网关

    使用示例:
        gateway = EngineGateway()
        parsed = gateway.parse(text)
        layout = gateway.compute_layout(parsed)
        output = gateway.render_view(parsed, layout, view="Login",
                                     theme=Theme.DARK, width=1280, height=720)
    """

    def __init__(self, engine: Engine | None = None, module_name: str | None = None):
        """初始化

        Args:
            engine: 已构造好的 Engine（跳过模块加载）
            module_name: 首次使用时导入的 Engine 模块
        """
        self._engine = engine
        self._module_name = module_name or config.ENGINE_MODULE
        self._load_error: EngineLoadError | None = None
        self._lock = threading.Lock()

    @property
    def is_loaded(self) -> bool:
        return self._engine is not None

    def ensure_loaded(self) -> Engine:
        """加载并缓存 Engine

        并发的首次调用只加载一次；加载失败同样被缓存，之后每次调用都重新抛出。

        Raises:
            EngineLoadError: Engine 模块不可用
        """
        engine = self._engine
        if engine is not None:
            return engine

        with self._lock:
            if self._engine is None and self._load_error is None:
                try:
                    self._engine = ModuleEngine.load(
                        self._module_name, config.ENGINE_REQUIRED_EXPORTS
                    )
                    logger.info(f"[Engine] Loaded engine module: {self._module_name}")
                except EngineLoadError as e:
                    logger.error(f"[Engine] {e}")
                    self._load_error = e
            if self._load_error is not None:
                raise self._load_error
            return self._engine

    def parse(self, text: str) -> ParsedDocument:
        """解析 DSL 文本并生成 IR

        Raises:
            EngineLoadError: Engine 不可用
            ParseError: 文本无效
        """
        engine = self.ensure_loaded()
        if config.METRICS_ENABLED:
            metrics.inc("engine.parse_calls")
        try:
            ast = engine.parse(text)
        except Exception as e:
            raise ParseError(f"Parse error: {e}", line=_error_line(e)) from e
        return self.build_ir(ast)

    def build_ir(self, ast: Any) -> ParsedDocument:
        """由 AST 生成 IR"""
        engine = self.ensure_loaded()
        try:
            ir = engine.build_ir(ast)
        except Exception as e:
            raise ParseError(f"Parse error: {e}", line=_error_line(e)) from e
        return ParsedDocument(views=extract_views(ir), ir=ir)

    def compute_layout(self, parsed: ParsedDocument) -> Layout:
        """计算布局

        Raises:
            LayoutError: Engine 内部错误
        """
        engine = self.ensure_loaded()
        if config.METRICS_ENABLED:
            metrics.inc("engine.layout_calls")
        try:
            return engine.build_layout(parsed.ir)
        except Exception as e:
            raise LayoutError(f"Layout error: {e}") from e

    def render_view(
        self,
        parsed: ParsedDocument,
        layout: Layout,
        *,
        view: str | None,
        theme: Theme,
        width: float,
        height: float,
    ) -> VisualOutput:
        """渲染单个 View 为独立的 SVG

        Raises:
            RenderError: Engine 渲染失败或返回的不是 SVG 文本
        """
        engine = self.ensure_loaded()
        if config.METRICS_ENABLED:
            metrics.inc("engine.render_calls")
        try:
            svg = engine.render(
                parsed.ir,
                layout,
                view=view,
                theme=theme.value,
                width=width,
                height=height,
            )
        except Exception as e:
            raise RenderError(f"Render error: {e}", view=view) from e

        if not svg or not isinstance(svg, str):
            raise RenderError("SVG renderer returned invalid output", view=view)

        return VisualOutput(
            svg=ensure_svg_dimensions(svg, width, height),
            view=view or "",
            theme=theme,
            width=width,
            height=height,
        )


# 进程级单例
_gateway: EngineGateway | None = None
_gateway_lock = threading.Lock()


def get_gateway() -> EngineGateway:
    """获取进程级网关（首次使用时创建）"""
    global _gateway
    if _gateway is None:
        with _gateway_lock:
            if _gateway is None:
                _gateway = EngineGateway()
    return _gateway


def set_gateway(gateway: EngineGateway | None) -> None:
    """替换进程级网关（传 None 恢复延迟创建，用于测试）"""
    global _gateway
    with _gateway_lock:
        _gateway = gateway
