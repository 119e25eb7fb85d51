"""EngineGateway 测试"""

import sys
import threading
import types

import pytest

from wirepreview.engine import (
    EngineGateway,
    ModuleEngine,
    ensure_svg_dimensions,
    extract_views,
    get_gateway,
    set_gateway,
)
from wirepreview.errors import EngineLoadError, LayoutError, ParseError, RenderError
from wirepreview.models import Theme, View
from wirepreview.telemetry import metrics


class TestEnsureSvgDimensions:

    def test_injects_missing_size(self):
        svg = '<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 10 10"></svg>'
        result = ensure_svg_dimensions(svg, 1300, 700)
        assert result.startswith(
            '<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 10 10" width="1300" height="700">'
        )

    def test_keeps_declared_size(self):
        svg = '<svg width="50" height="60"></svg>'
        assert ensure_svg_dimensions(svg, 1300, 700) == svg

    def test_injects_only_missing_attribute(self):
        result = ensure_svg_dimensions('<svg width="50"></svg>', 100, 12.5)
        assert result == '<svg width="50" height="12.5"></svg>'

    def test_ignores_xml_prolog_and_self_closing(self):
        svg = '<?xml version="1.0"?><svg/>'
        assert ensure_svg_dimensions(svg, 10, 20) == '<?xml version="1.0"?><svg width="10" height="20"/>'

    def test_not_svg(self):
        assert ensure_svg_dimensions("<div></div>", 10, 20) == "<div></div>"


class TestExtractViews:

    def test_declaration_order(self):
        ir = {"views": [{"name": "Login", "width": 400, "height": 300}, {"name": "Dashboard"}]}
        views = extract_views(ir)
        assert [v.name for v in views] == ["Login", "Dashboard"]

    def test_missing_size_inherits_first_view(self):
        ir = {"views": [{"name": "A", "width": 400, "height": 300}, {"name": "B"}]}
        assert extract_views(ir)[1] == View("B", 400.0, 300.0)

    def test_missing_size_defaults(self):
        assert extract_views({"views": [{"name": "A"}]}) == (View("A", 1280.0, 720.0),)

    def test_viewport_and_attribute_objects(self):
        screen = types.SimpleNamespace(name="Home", viewport={"width": 375, "height": 812})
        ir = types.SimpleNamespace(screens=[screen])
        assert extract_views(ir) == (View("Home", 375.0, 812.0),)

    def test_dict_of_views(self):
        ir = {"views": {"Login": {"width": 10, "height": 20}}}
        assert extract_views(ir) == (View("Login", 10.0, 20.0),)

    def test_no_views(self):
        assert extract_views({}) == ()
        assert extract_views({"views": []}) == ()

    def test_empty_name(self):
        with pytest.raises(ParseError):
            extract_views({"views": [{"name": "  "}]})


class TestEngineGateway:

    def test_parse_builds_views(self, gateway, engine, login_dashboard):
        parsed = gateway.parse(login_dashboard)
        assert parsed.view_names == ["Login", "Dashboard"]
        assert parsed.get_view("Dashboard") == View("Dashboard", 800.0, 600.0)
        assert engine.parse_calls == 1
        assert metrics.get_counter("engine.parse_calls") == 1

    def test_parse_error_translated(self, gateway):
        """测试 Engine 异常被翻译为 ParseError，保留行号"""
        with pytest.raises(ParseError) as exc_info:
            gateway.parse("view A\nview B !!\n")
        assert exc_info.value.line == 2
        assert str(exc_info.value).startswith("line 2: Parse error:")

    def test_layout_error_translated(self, gateway, engine):
        parsed = gateway.parse("view A")

        def broken_layout(ir):
            raise ValueError("overlap")

        engine.build_layout = broken_layout
        with pytest.raises(LayoutError, match="Layout error: overlap"):
            gateway.compute_layout(parsed)

    def test_render_view(self, gateway, engine, login_dashboard):
        parsed = gateway.parse(login_dashboard)
        layout = gateway.compute_layout(parsed)

        output = gateway.render_view(
            parsed, layout, view="Login", theme=Theme.LIGHT, width=400, height=300
        )
        assert output.view == "Login"
        assert output.theme is Theme.LIGHT
        assert 'width="400"' in output.svg and 'height="300"' in output.svg
        assert engine.renders == [("Login", "light", 400, 300)]

    def test_render_is_idempotent(self, gateway, login_dashboard):
        """测试相同输入重复 render 得到相同输出"""
        parsed = gateway.parse(login_dashboard)
        layout = gateway.compute_layout(parsed)
        kwargs = dict(view="Dashboard", theme=Theme.DARK, width=800, height=600)
        assert gateway.render_view(parsed, layout, **kwargs) == gateway.render_view(parsed, layout, **kwargs)

    def test_render_error_translated(self, gateway):
        parsed = gateway.parse("view Broken 10x10")
        with pytest.raises(RenderError) as exc_info:
            gateway.render_view(parsed, None, view="Broken", theme=Theme.DARK, width=10, height=10)
        assert exc_info.value.view == "Broken"

    def test_render_invalid_output(self, gateway, engine):
        parsed = gateway.parse("view A")
        engine.render = lambda *args, **kwargs: b"<svg/>"
        with pytest.raises(RenderError, match="invalid output"):
            gateway.render_view(parsed, None, view="A", theme=Theme.DARK, width=1, height=1)


class TestEngineLoading:

    def test_missing_module(self):
        """测试模块不存在：EngineLoadError，且失败被记住"""
        gateway = EngineGateway(module_name="wirepreview_no_such_engine")
        with pytest.raises(EngineLoadError) as first:
            gateway.parse("view A")
        with pytest.raises(EngineLoadError) as second:
            gateway.parse("view A")
        assert first.value is second.value
        assert gateway.is_loaded is False

    def test_module_missing_exports(self, monkeypatch):
        module = types.ModuleType("partial_engine")
        module.parse = lambda text: text
        monkeypatch.setitem(sys.modules, "partial_engine", module)

        with pytest.raises(EngineLoadError, match="build_ir, build_layout, render"):
            EngineGateway(module_name="partial_engine").ensure_loaded()

    def test_module_engine(self, monkeypatch):
        module = types.ModuleType("tiny_engine")
        module.parse = lambda text: {"views": [{"name": "Only"}]}
        module.build_ir = lambda ast: ast
        module.build_layout = lambda ir: None
        module.render = lambda ir, layout, *, view, theme, width, height: "<svg></svg>"
        monkeypatch.setitem(sys.modules, "tiny_engine", module)

        gateway = EngineGateway(module_name="tiny_engine")
        parsed = gateway.parse("anything")
        assert isinstance(gateway.ensure_loaded(), ModuleEngine)
        assert gateway.ensure_loaded().name == "tiny_engine"
        assert parsed.view_names == ["Only"]

    def test_concurrent_first_use_loads_once(self, monkeypatch):
        """测试并发首次使用只解析一次模块"""
        calls = []
        real_load = ModuleEngine.load

        def counting_load(name, required):
            calls.append(name)
            return real_load(name, required)

        module = types.ModuleType("shared_engine")
        module.parse = module.build_ir = module.build_layout = lambda *a: None
        module.render = lambda *a, **k: "<svg/>"
        monkeypatch.setitem(sys.modules, "shared_engine", module)
        monkeypatch.setattr(ModuleEngine, "load", staticmethod(counting_load))

        gateway = EngineGateway(module_name="shared_engine")
        engines = []
        threads = [threading.Thread(target=lambda: engines.append(gateway.ensure_loaded())) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert calls == ["shared_engine"]
        assert len({id(e) for e in engines}) == 1


class TestGatewaySingleton:

    def test_get_and_set(self, gateway):
        set_gateway(gateway)
        try:
            assert get_gateway() is gateway
        finally:
            set_gateway(None)
        assert get_gateway() is not gateway
        set_gateway(None)
