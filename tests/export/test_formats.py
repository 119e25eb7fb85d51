"""ExportFormat 测试"""

import pytest

from wirepreview.errors import UnsupportedFormatError
from wirepreview.export import ExportFormat, get_available_formats, sanitize_view_name


class TestExportFormat:

    @pytest.mark.parametrize("value", ["paginated-document", "pdf", ".pdf", " PDF "])
    def test_parse_identifiers(self, value):
        assert ExportFormat.parse(value) is ExportFormat.PAGINATED

    def test_parse_member(self):
        assert ExportFormat.parse(ExportFormat.RASTER) is ExportFormat.RASTER

    def test_unsupported(self):
        with pytest.raises(UnsupportedFormatError) as exc_info:
            ExportFormat.parse("gif")
        assert str(exc_info.value) == "Unsupported format: gif"

    def test_fan_out(self):
        assert ExportFormat.VECTOR.fans_out
        assert ExportFormat.RASTER.fans_out
        assert not ExportFormat.PAGINATED.fans_out

    def test_available_formats(self):
        labels = [fmt.label for fmt in get_available_formats()]
        assert labels == ["SVG (Vector)", "PDF (Document)", "PNG (Image)"]
        assert ExportFormat.RASTER.to_dict() == {
            "id": "raster",
            "file_id": "png",
            "label": "PNG (Image)",
            "extension": ".png",
        }


class TestSanitizeViewName:

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("Login", "login"),
            ("Main Dashboard!", "main-dashboard"),
            ("  User   Settings ", "user-settings"),
            ("Étape 2", "tape-2"),
            ("already-ok", "already-ok"),
            ("***", ""),
        ],
    )
    def test_sanitize(self, name, expected):
        assert sanitize_view_name(name) == expected
