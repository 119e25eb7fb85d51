"""数据模型

预览与导出共用的值对象。Engine 产物（IR、Layout）对核心逻辑不透明，
ParsedDocument 只暴露有序的 View 列表。
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

# Layout 完全不透明，仅作为 Engine 的输入传回
Layout = Any


class Theme(str, Enum):
    """预览 / 导出主题"""
    LIGHT = "light"
    DARK = "dark"

    @classmethod
    def resolve(cls, value: "str | Theme | None", host_theme: "Theme | None" = None) -> "Theme":
        """解析主题设置

        "default" 或 None 跟随宿主主题，宿主未提供时使用 DARK。

        Raises:
            ValueError: 未知主题值
        """
        if isinstance(value, Theme):
            return value
        if value is None or value == "default":
            return host_theme or cls.DARK
        return cls(value)

    def toggled(self) -> "Theme":
        return Theme.LIGHT if self is Theme.DARK else Theme.DARK


@dataclass(frozen=True)
class Document:
    """文档快照

    每次编辑生成新的快照，替换（而不是修改）旧快照。

    Attributes:
        identity: 文档标识（路径或 session id）
        text: 原始文本
        revision: 修订号（同一 identity 内递增）
    """
    identity: str
    text: str
    revision: int = 1

    def next(self, text: str) -> "Document":
        """基于新文本生成下一修订"""
        return Document(identity=self.identity, text=text, revision=self.revision + 1)


@dataclass(frozen=True)
class View:
    """文档中的一个逻辑子屏幕"""
    name: str
    width: float
    height: float


@dataclass(frozen=True)
class ParsedDocument:
    """Engine 解析结果

    Attributes:
        views: 按声明顺序排列的 View
        ir: Engine 的原始 IR（不透明）
    """
    views: tuple[View, ...]
    ir: Any = field(default=None, compare=False, repr=False)

    @property
    def view_names(self) -> list[str]:
        return [view.name for view in self.views]

    def get_view(self, name: str) -> View | None:
        for view in self.views:
            if view.name == name:
                return view
        return None

    def has_view(self, name: str) -> bool:
        return self.get_view(name) is not None


@dataclass(frozen=True)
class VisualOutput:
    """单个 View 的渲染结果（自包含 SVG，带显式 width/height）"""
    svg: str
    view: str
    theme: Theme
    width: float
    height: float

    def to_dict(self) -> dict:
        return {
            "svg": self.svg,
            "view": self.view,
            "theme": self.theme.value,
            "width": self.width,
            "height": self.height,
        }
