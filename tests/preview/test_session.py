"""PreviewSession 测试"""

import pytest

from wirepreview.config import STATE_HISTORY_MAX_LENGTH
from wirepreview.models import ParsedDocument, Theme, View, VisualOutput
from wirepreview.preview import (
    PreviewEvent,
    PreviewSession,
    PreviewStatus,
    RenderSnapshot,
    clamp_zoom,
    fit_zoom,
)

LOGIN = View("Login", 400, 300)
DASHBOARD = View("Dashboard", 1920, 1080)


def _output(view: View, theme: Theme = Theme.DARK) -> VisualOutput:
    return VisualOutput(svg="<svg/>", view=view.name, theme=theme, width=view.width, height=view.height)


@pytest.fixture
def session():
    return PreviewSession("panel-1")


class TestZoomHelpers:

    @pytest.mark.parametrize("value,expected", [(0.01, 0.1), (5, 3.0), (1.234, 1.23)])
    def test_clamp(self, value, expected):
        assert clamp_zoom(value) == expected

    def test_fit_small_view_is_one(self):
        """测试小于视口的 View 不放大"""
        assert fit_zoom(400, 300) == 1.0

    def test_fit_large_view(self):
        # (1300 - 40) / 1920 = 0.656, (700 - 40) / 1080 = 0.611
        assert fit_zoom(1920, 1080) == 0.61

    def test_fit_degenerate(self):
        assert fit_zoom(0, 100) == 1.0


class TestDocumentSlot:

    def test_initial_state(self, session):
        assert session.status is PreviewStatus.WAITING
        assert session.document is None
        assert session.view_names == []
        assert session.theme is Theme.DARK

    def test_record_edit_uses_session_identity(self, session):
        document = session.record_edit("view A")
        assert document.identity == "panel-1"
        assert document.revision == 1
        assert session.pending is document

    def test_latest_edit_overwrites_slot(self, session):
        """测试待渲染槽位只保留最新编辑"""
        session.record_edit("one")
        session.record_edit("two")
        latest = session.record_edit("three")

        assert latest.revision == 3
        assert session.take_pending() is latest
        assert session.take_pending() is None
        assert session.document is latest

    def test_replace_document(self, session):
        session.record_edit("draft")
        document = session.replace_document("/tmp/b.wire", "view B")

        assert document.identity == "/tmp/b.wire"
        assert document.revision == 1
        assert session.pending is None

    def test_replace_same_identity_bumps_revision(self, session):
        session.replace_document("/tmp/a.wire", "v1")
        assert session.replace_document("/tmp/a.wire", "v2").revision == 2


class TestRenderResults:

    def test_resolve_view_falls_back_to_first(self, session):
        """测试选中的 View 不存在时回退到第一个"""
        parsed = ParsedDocument(views=(LOGIN, DASHBOARD))
        assert session.resolve_view(parsed) == LOGIN

        session.select_view("Dashboard")
        assert session.resolve_view(parsed) == DASHBOARD

        session.select_view("Renamed")
        assert session.resolve_view(parsed) == LOGIN

    def test_resolve_view_without_views(self, session):
        assert session.resolve_view(ParsedDocument(views=())) is None

    def test_first_snapshot_sets_fit_zoom(self, session):
        """测试首次成功渲染时缩放初始化为 fit"""
        parsed = ParsedDocument(views=(DASHBOARD,))
        session.apply_snapshot(RenderSnapshot(parsed, None, "panel-1", 1), _output(DASHBOARD))

        assert session.zoom == 0.61
        assert session.selected_view == "Dashboard"
        assert session.view_names == ["Dashboard"]

        # 之后的渲染不覆盖用户缩放
        session.zoom_in()
        session.apply_snapshot(RenderSnapshot(parsed, None, "panel-1", 2), _output(DASHBOARD))
        assert session.zoom == 0.71

    def test_output_clears_error(self, session):
        session.record_error("line 1: bad")
        session.apply_output(_output(LOGIN))
        assert session.last_error is None
        assert session.last_output.view == "Login"


class TestZoom:

    def test_step_and_reset(self, session):
        assert session.zoom_in() == 1.1
        assert session.zoom_out() == 1.0
        assert session.set_zoom(10) == 3.0
        assert session.reset_zoom() == session.fit

    def test_lower_bound(self, session):
        session.set_zoom(0.1)
        assert session.zoom_out() == 0.1


class TestHistory:

    def test_transition_recorded(self, session):
        session.transition(PreviewEvent.EDIT, PreviewStatus.PENDING_DEBOUNCE, "rev=1")

        entry = session.history[-1]
        assert entry.from_status is PreviewStatus.WAITING
        assert entry.to_status is PreviewStatus.PENDING_DEBOUNCE
        assert entry.to_dict()["event"] == "edit"
        assert "waiting → pending_debounce" in str(entry)

    def test_history_bounded(self, session):
        for _ in range(STATE_HISTORY_MAX_LENGTH + 5):
            session.transition(PreviewEvent.EDIT, PreviewStatus.PENDING_DEBOUNCE)
        assert len(session.history) == STATE_HISTORY_MAX_LENGTH

    def test_to_dict(self, session):
        session.record_edit("view A")
        data = session.to_dict()
        assert data["document"] == "panel-1"
        assert data["revision"] == 1
        assert data["status"] == "waiting"
