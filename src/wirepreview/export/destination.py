"""DestinationResolver - 导出路径计算

- 记住最后一次成功导出的目录（last-write-wins，不保留历史）
- 根据源文件名和格式计算默认文件名
"""

from pathlib import Path

from ..config import LAST_DIRECTORY_KEY
from ..settings import SettingsStore
from ..telemetry import get_logger
from .formats import ExportFormat

logger = get_logger(__name__)


class DestinationResolver:
    """导出路径计算

    使用示例:
        resolver = DestinationResolver(SettingsStore())
        path = resolver.default_path("login.wire", ExportFormat.PAGINATED)
        # -> <last dir>/login.pdf 或 login.pdf
        resolver.remember(Path("/tmp/out/login.pdf"))
    """

    def __init__(self, settings: SettingsStore | None = None):
        self._settings = settings or SettingsStore()

    @property
    def last_directory(self) -> Path | None:
        value = self._settings.get(LAST_DIRECTORY_KEY)
        return Path(value) if value else None

    def default_path(self, source_filename: str, fmt: "ExportFormat | str") -> Path:
        """默认导出路径

        去掉源文件扩展名，加上格式扩展名；有最后导出目录时拼在该目录下，
        否则只返回文件名（调用方相对合适的目录解析）。
        """
        fmt = ExportFormat.parse(fmt)
        stem = Path(source_filename).stem or "export"
        filename = f"{stem}{fmt.extension}"

        last_dir = self.last_directory
        if last_dir is not None:
            return last_dir / filename
        return Path(filename)

    def resolve(
        self,
        destination: "str | Path | None",
        source_filename: str,
        fmt: "ExportFormat | str",
    ) -> Path:
        """把用户给出的目标解析为具体文件路径

        - None: 默认路径
        - 已存在的目录: 目录下的默认文件名
        - 没有扩展名的路径: 补上格式扩展名
        """
        fmt = ExportFormat.parse(fmt)
        if destination is None or str(destination) == "":
            return self.default_path(source_filename, fmt)

        path = Path(destination).expanduser()
        if path.is_dir():
            return path / self.default_path(source_filename, fmt).name
        if not path.suffix:
            return path.with_name(path.name + fmt.extension)
        return path

    def remember(self, path: "str | Path") -> None:
        """记录导出文件所在目录为最后导出目录"""
        directory = Path(path).expanduser().resolve().parent
        self._settings.set(LAST_DIRECTORY_KEY, str(directory))
        logger.debug(f"[Destination] Remembered export directory: {directory}")
