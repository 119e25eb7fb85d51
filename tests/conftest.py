"""Pytest 配置"""

import re

import pytest

from wirepreview.engine import Engine, EngineGateway
from wirepreview.settings import SettingsStore
from wirepreview.telemetry import metrics

LOGIN_DASHBOARD = "view Login 400x300\nview Dashboard 800x600\n"

_SIZE_RE = re.compile(r"^(\d+(?:\.\d+)?)x(\d+(?:\.\d+)?)$")


class FakeParseError(Exception):
    def __init__(self, message: str, line: int):
        super().__init__(message)
        self.line = line


class FakeEngine(Engine):
    """测试用 Engine

    文本格式：每行 `view <Name> [WxH]`。包含 `!!` 的行解析失败，
    名字以 `Broken` 开头的 View 渲染失败。
    """

    def __init__(self):
        self.parse_calls = 0
        self.layout_calls = 0
        self.render_calls = 0
        self.renders: list[tuple[str | None, str, float, float]] = []
        self.on_render = None

    @property
    def name(self) -> str:
        return "fake"

    def parse(self, text: str):
        self.parse_calls += 1
        screens = []
        for lineno, line in enumerate(text.splitlines(), start=1):
            if "!!" in line:
                raise FakeParseError("unexpected token '!!'", line=lineno)
            tokens = line.split()
            if not tokens or tokens[0] != "view":
                continue
            screen = {}
            size = _SIZE_RE.match(tokens[-1]) if len(tokens) > 2 else None
            if size:
                screen["width"] = float(size.group(1))
                screen["height"] = float(size.group(2))
                tokens = tokens[:-1]
            screen["name"] = " ".join(tokens[1:])
            screens.append(screen)
        return {"screens": screens}

    def build_ir(self, ast):
        return {"views": ast["screens"]}

    def build_layout(self, ir):
        self.layout_calls += 1
        return {"boxes": len(ir["views"])}

    def render(self, ir, layout, *, view, theme, width, height) -> str:
        self.render_calls += 1
        self.renders.append((view, theme, width, height))
        if self.on_render is not None:
            self.on_render(view)
        if view and view.startswith("Broken"):
            raise RuntimeError(f"cannot draw {view}")
        fill = "#ffffff" if theme == "light" else "#1e1e1e"
        return (
            f'<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 {width:g} {height:g}">'
            f'<rect x="0" y="0" width="{width:g}" height="{height:g}" fill="{fill}"/>'
            f'<text x="10" y="20">{view or "empty"}</text>'
            f"</svg>"
        )


@pytest.fixture
def anyio_backend():
    """指定 anyio 只使用 asyncio backend"""
    return "asyncio"


@pytest.fixture(autouse=True)
def reset_metrics():
    """每次测试前重置指标"""
    metrics.reset()
    yield
    metrics.reset()


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """默认设置文件指向临时目录"""
    path = tmp_path / "settings.json"
    monkeypatch.setattr("wirepreview.settings.SETTINGS_FILE", path)
    return path


@pytest.fixture
def engine():
    return FakeEngine()


@pytest.fixture
def gateway(engine):
    return EngineGateway(engine=engine)


@pytest.fixture
def settings(tmp_path):
    return SettingsStore(tmp_path / "store" / "settings.json")


@pytest.fixture
def login_dashboard():
    """两个 View 的文档：Login 400x300, Dashboard 800x600"""
    return LOGIN_DASHBOARD
