"""Export Orchestrator - 导出编排

把解析结果和目标格式转为一个或多个文件：

- vector / raster，单个 View：直接写到目标路径
- vector / raster，多个 View：每个 View 一个文件，与目标路径同目录，
  命名为 ``<stem>-<清洗后的 View 名><ext>``
- paginated document：只写一个 PDF，按声明顺序每个 View 一页

后续 View 失败时已写出的文件不回滚，失败连同成功部分一起通过 ExportError 报告。
"""

import asyncio
from pathlib import Path
from typing import Callable

from ..config import METRICS_ENABLED
from ..engine import EngineGateway, get_gateway
from ..errors import ExportError, NoViewsError, PreviewError, RenderError, WriteError
from ..models import Layout, ParsedDocument, Theme, View
from ..telemetry import get_logger, metrics
from . import codecs
from .destination import DestinationResolver
from .formats import ExportFormat, sanitize_view_name
from .types import ALL_VIEWS, ExportedArtifact, ExportFailure, ExportRequest

logger = get_logger(__name__)

# (svg, width, height, view name) -> png bytes
Rasterizer = Callable[[str, float, float, str | None], bytes]
# (pages, title) -> pdf bytes
Paginator = Callable[[list[codecs.PdfPage], str | None], bytes]


def _write_file(path: Path, payload: bytes | str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(payload, str):
        path.write_text(payload, encoding="utf-8")
    else:
        path.write_bytes(payload)


def _base_name(path: Path) -> str:
    """目标文件名去掉扩展名（扩展名不一定与导出格式一致）"""
    return path.stem


class ExportOrchestrator:
    """导出编排器

    使用示例:
        orchestrator = ExportOrchestrator(get_gateway())
        artifacts = await orchestrator.export(ExportRequest(
            source_filename="app.wire",
            parsed=parsed,
            layout=layout,
            format="raster",
            destination=Path("out.png"),
        ))
    """

    def __init__(
        self,
        gateway: EngineGateway | None = None,
        resolver: DestinationResolver | None = None,
        rasterizer: Rasterizer | None = None,
        paginator: Paginator | None = None,
    ):
        """初始化

        Args:
            gateway: Engine 网关，用于逐个 View 渲染
            resolver: 目标路径解析（记住上次导出目录）
            rasterizer: SVG → PNG 转换器
            paginator: 多页 SVG → PDF 转换器
        """
        self._gateway = gateway or get_gateway()
        self._resolver = resolver or DestinationResolver()
        self._rasterizer = rasterizer or codecs.svg_to_png
        self._paginator = paginator or codecs.svgs_to_pdf

    @property
    def resolver(self) -> DestinationResolver:
        return self._resolver

    async def export_document(
        self,
        source_filename: str,
        parsed: ParsedDocument,
        layout: Layout,
        theme: Theme,
        fmt: "ExportFormat | str",
        destination: "str | Path | None" = None,
    ) -> list[ExportedArtifact]:
        """构造 ExportRequest 并执行"""
        request = ExportRequest(
            source_filename=source_filename,
            parsed=parsed,
            layout=layout,
            format=fmt,
            theme=theme,
            destination=Path(destination) if destination else None,
        )
        return await self.export(request)

    async def export(self, request: ExportRequest) -> list[ExportedArtifact]:
        """执行一次导出

        Returns:
            已写出的文件列表

        Raises:
            UnsupportedFormatError: 未知的格式标识
            NoViewsError: 文档没有 View
            ExportError: 有 View 渲染或写入失败
        """
        fmt = ExportFormat.parse(request.format)
        if not request.parsed.views:
            raise NoViewsError()

        destination = self._resolver.resolve(request.destination, request.source_filename, fmt)
        logger.info(
            f"[Export] {fmt.file_id.upper()} export of {len(request.parsed.views)} view(s) "
            f"→ {destination}"
        )

        if fmt.fans_out:
            artifacts = await self._export_per_view(request, fmt, destination)
        else:
            artifacts = await self._export_paginated(request, destination)

        self._resolver.remember(destination)
        if METRICS_ENABLED:
            metrics.inc("export.artifacts", {"format": fmt.file_id}, value=len(artifacts))
        logger.info(f"[Export] ✓ Exported {', '.join(a.path.name for a in artifacts)}")
        return artifacts

    # === fan-out ===

    def _targets(self, views: tuple[View, ...], fmt: ExportFormat, destination: Path) -> list[tuple[View, Path]]:
        if len(views) == 1:
            return [(views[0], destination)]

        base = _base_name(destination)
        targets: list[tuple[View, Path]] = []
        used: set[str] = set()
        for index, view in enumerate(views, start=1):
            suffix = sanitize_view_name(view.name) or f"view{index}"
            candidate, n = suffix, 2
            while candidate in used:
                candidate = f"{suffix}-{n}"
                n += 1
            used.add(candidate)
            targets.append((view, destination.parent / f"{base}-{candidate}{fmt.extension}"))
        return targets

    async def _export_per_view(
        self,
        request: ExportRequest,
        fmt: ExportFormat,
        destination: Path,
    ) -> list[ExportedArtifact]:
        artifacts: list[ExportedArtifact] = []
        failures: list[ExportFailure] = []

        for view, path in self._targets(request.parsed.views, fmt, destination):
            try:
                payload = self._encode_view(request, fmt, view)
                await self._write(path, payload)
            except PreviewError as e:
                logger.warning(f"[Export] View '{view.name}' failed: {e}")
                failures.append(ExportFailure(view=view.name, error=e))
                continue
            artifacts.append(ExportedArtifact(path=path, payload=payload, view=view.name))

        if failures:
            self._record_failures(failures)
            raise ExportError(artifacts, failures)
        return artifacts

    def _encode_view(self, request: ExportRequest, fmt: ExportFormat, view: View) -> bytes | str:
        output = self._gateway.render_view(
            request.parsed,
            request.layout,
            view=view.name,
            theme=request.theme,
            width=view.width,
            height=view.height,
        )
        if fmt is ExportFormat.VECTOR:
            return output.svg
        return self._convert(self._rasterizer, output.svg, view.width, view.height, view.name)

    # === paginated ===

    async def _export_paginated(self, request: ExportRequest, destination: Path) -> list[ExportedArtifact]:
        try:
            pages = [
                codecs.PdfPage(
                    svg=self._gateway.render_view(
                        request.parsed,
                        request.layout,
                        view=view.name,
                        theme=request.theme,
                        width=view.width,
                        height=view.height,
                    ).svg,
                    width=view.width,
                    height=view.height,
                    name=view.name,
                )
                for view in request.parsed.views
            ]
            payload = self._convert(self._paginator, pages, Path(request.source_filename).stem)
            await self._write(destination, payload)
        except PreviewError as e:
            failures = [ExportFailure(view=getattr(e, "view", None) or ALL_VIEWS, error=e)]
            self._record_failures(failures)
            raise ExportError([], failures) from e

        return [ExportedArtifact(path=destination, payload=payload, view=ALL_VIEWS)]

    # === helpers ===

    @staticmethod
    def _convert(converter: Callable, *args):
        """执行转换，非预期异常转为 RenderError"""
        try:
            return converter(*args)
        except PreviewError:
            raise
        except Exception as e:
            raise RenderError(f"Conversion failed: {e}") from e

    async def _write(self, path: Path, payload: bytes | str) -> None:
        """在线程中写文件并等待完成

        Raises:
            WriteError: 文件系统错误
        """
        try:
            await asyncio.to_thread(_write_file, path, payload)
        except OSError as e:
            raise WriteError(f"Failed to write {path}: {e.strerror or e}", path=path) from e

    @staticmethod
    def _record_failures(failures: list[ExportFailure]) -> None:
        if METRICS_ENABLED:
            for failure in failures:
                metrics.inc("export.failures", {"error": type(failure.error).__name__})
