"""Engine 抽象接口

Engine 是外部的 Wire DSL 解析 / 布局 / 渲染库。核心只通过这里定义的
四个操作使用它：

    parse(text) -> ast
    build_ir(ast) -> ir
    build_layout(ir) -> layout
    render(ir, layout, *, view, theme, width, height) -> svg 字符串

设计原则：
1. 最小接口：只定义核心用到的操作
2. 产物不透明：ir / layout 原样传回 Engine，核心只读取 ir 中的 View 列表
3. 同步调用：从协调器角度看，Engine 调用是阻塞的
"""

import importlib
from abc import ABC, abstractmethod
from types import ModuleType
from typing import Any

from ..errors import EngineLoadError


class Engine(ABC):
    """Engine 抽象接口

    测试和嵌入场景可以直接实现此接口；生产环境通过 ModuleEngine
    包装一个提供同名函数的 Python 模块。
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Engine 名称（用于日志）"""
        pass

    @abstractmethod
    def parse(self, text: str) -> Any:
        """解析 DSL 文本为 AST"""
        pass

    @abstractmethod
    def build_ir(self, ast: Any) -> Any:
        """由 AST 生成 IR

        IR 需通过属性或 key 暴露 `views`（或 `screens`）列表，
        每个 View 提供 `name`，可选 `width` / `height`（或 `viewport`）。
        """
        pass

    @abstractmethod
    def build_layout(self, ir: Any) -> Any:
        """计算布局"""
        pass

    @abstractmethod
    def render(
        self,
        ir: Any,
        layout: Any,
        *,
        view: str | None,
        theme: str,
        width: float,
        height: float,
    ) -> str:
        """渲染单个 View 为 SVG"""
        pass


class ModuleEngine(Engine):
    """把一个 Python 模块包装成 Engine"""

    def __init__(self, module: ModuleType, required: tuple[str, ...]):
        missing = [attr for attr in required if not callable(getattr(module, attr, None))]
        if missing:
            raise EngineLoadError(
                f"Engine module '{module.__name__}' is missing required exports: "
                f"{', '.join(missing)}"
            )
        self._module = module

    @classmethod
    def load(cls, module_name: str, required: tuple[str, ...]) -> "ModuleEngine":
        """导入模块并校验导出

        Raises:
            EngineLoadError: 模块无法导入或缺少必需函数
        """
        try:
            module = importlib.import_module(module_name)
        except Exception as e:
            raise EngineLoadError(f"Failed to load engine '{module_name}': {e}") from e
        return cls(module, required)

    @property
    def name(self) -> str:
        return self._module.__name__

    def parse(self, text: str) -> Any:
        return self._module.parse(text)

    def build_ir(self, ast: Any) -> Any:
        return self._module.build_ir(ast)

    def build_layout(self, ir: Any) -> Any:
        return self._module.build_layout(ir)

    def render(self, ir, layout, *, view, theme, width, height) -> str:
        return self._module.render(
            ir, layout, view=view, theme=theme, width=width, height=height
        )
