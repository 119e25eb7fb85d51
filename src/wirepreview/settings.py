"""设置存储

宿主提供的 key/value 配置的本地实现：
- JSON 文件存储
- 原子写入（temp + rename）
- 损坏文件跳过告警（按空配置处理）
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any

from .config import METRICS_ENABLED, SETTINGS_FILE
from .telemetry import get_logger, metrics

logger = get_logger(__name__)


class SettingsStore:
    """JSON key/value 设置存储

    使用示例:
        store = SettingsStore()
        store.set("wire.export.lastDirectory", "/tmp/out")
        store.get("wire.export.lastDirectory")
    """

    def __init__(self, path: Path | None = None):
        self.path = Path(path) if path is not None else SETTINGS_FILE
        self._data: dict[str, Any] | None = None

    def get(self, key: str, default: Any = None) -> Any:
        return self._load().get(key, default)

    def set(self, key: str, value: Any) -> None:
        """写入一个 key（立即持久化）

        Raises:
            OSError: 写入失败
        """
        data = dict(self._load())
        data[key] = value
        self._save(data)
        self._data = data

    def delete(self, key: str) -> bool:
        data = dict(self._load())
        if key not in data:
            return False
        del data[key]
        self._save(data)
        self._data = data
        return True

    def _load(self) -> dict[str, Any]:
        if self._data is not None:
            return self._data

        self._data = {}
        if not self.path.exists():
            logger.debug(f"[Settings] File not found: {self.path}")
            return self._data

        try:
            loaded = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"[Settings] Ignoring unreadable settings file {self.path}: {e}")
            if METRICS_ENABLED:
                metrics.inc("settings.error", {"op": "load"})
            return self._data

        if isinstance(loaded, dict):
            self._data = loaded
        else:
            logger.warning(f"[Settings] Ignoring non-object settings file {self.path}")
        return self._data

    def _save(self, data: dict[str, Any]) -> None:
        json_bytes = json.dumps(data, ensure_ascii=False, indent=2).encode("utf-8")
        self.path.parent.mkdir(parents=True, exist_ok=True)

        # 原子写入：先写临时文件，再 rename
        fd, temp_path = tempfile.mkstemp(
            prefix="wirepreview_settings_",
            suffix=".tmp",
            dir=self.path.parent,
        )
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(json_bytes)
            os.replace(temp_path, self.path)
        except Exception:
            # 清理临时文件
            if os.path.exists(temp_path):
                os.unlink(temp_path)
            if METRICS_ENABLED:
                metrics.inc("settings.error", {"op": "save"})
            raise

        logger.debug(f"[Settings] Saved {len(data)} keys to {self.path}")
