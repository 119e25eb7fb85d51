"""Engine 模块

提供外部渲染引擎的接口和网关：
- Engine: 引擎接口
- ModuleEngine: 模块包装
- EngineGateway: 懒加载网关（进程级单例）
"""

from .base import Engine, ModuleEngine
from .gateway import (
    EngineGateway,
    ensure_svg_dimensions,
    extract_views,
    get_gateway,
    set_gateway,
)

__all__ = [
    "Engine",
    "ModuleEngine",
    "EngineGateway",
    "ensure_svg_dimensions",
    "extract_views",
    "get_gateway",
    "set_gateway",
]
