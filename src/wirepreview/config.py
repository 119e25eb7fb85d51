"""wirepreview 配置

配置分为以下几类：
- 预览配置：防抖、缩放、默认尺寸
- Engine 配置：外部渲染引擎模块
- 导出配置：持久化设置文件、最后导出目录 key
- 服务配置：host / port
- 日志与指标配置
"""

import os
from pathlib import Path

# === 预览配置 ===
DEBOUNCE_SECONDS = 0.3  # 编辑防抖时间（秒）
PREVIEW_WIDTH = 1300  # 预览视口宽度（用于计算 fit zoom）
PREVIEW_HEIGHT = 700  # 预览视口高度
FIT_PADDING = 40  # fit zoom 计算时的留白（像素）

# === 缩放配置 ===
ZOOM_MIN = 0.1
ZOOM_MAX = 3.0
ZOOM_STEP = 0.1

# === 主题配置 ===
# "light" | "dark" | "default"（跟随宿主主题，宿主未提供时使用 dark）
DEFAULT_THEME = os.environ.get("WIREPREVIEW_THEME", "default")

# === View 配置 ===
DEFAULT_VIEW_WIDTH = 1280  # View 未声明尺寸且无参考 View 时的默认宽度
DEFAULT_VIEW_HEIGHT = 720

# === Engine 配置 ===
ENGINE_MODULE = os.environ.get("WIREPREVIEW_ENGINE", "wire_dsl")  # Engine 模块名
ENGINE_REQUIRED_EXPORTS = ("parse", "build_ir", "build_layout", "render")

# === 源文件配置 ===
SOURCE_EXTENSION = ".wire"

# === 导出 / 设置配置 ===
SETTINGS_DIR = Path(os.environ.get("WIREPREVIEW_HOME", Path.home() / ".wirepreview"))
SETTINGS_FILE = Path(os.environ.get("WIREPREVIEW_SETTINGS_FILE", SETTINGS_DIR / "settings.json"))
LAST_DIRECTORY_KEY = "wire.export.lastDirectory"  # 最后导出目录（稳定 key）

# === 状态机配置 ===
STATE_HISTORY_MAX_LENGTH = 30  # 内存中历史记录最大长度

# === 服务配置 ===
SERVER_HOST = os.environ.get("WIREPREVIEW_HOST", "127.0.0.1")
SERVER_PORT = int(os.environ.get("WIREPREVIEW_PORT", "8766"))

# === 日志配置 ===
LOG_LEVEL = os.environ.get("WIREPREVIEW_LOG_LEVEL", "INFO")  # 日志级别

# === 指标配置 ===
METRICS_ENABLED = True  # 是否启用指标收集
