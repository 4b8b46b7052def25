"""Tests for connector color resolution."""

import pytest

from bankdash.cache.colors import (
    darken_color,
    generate_color_from_id,
    is_color_too_light,
    parse_color,
    relative_luminance,
    resolve_connector_color,
)


class TestParseColor:
    @pytest.mark.unit
    @pytest.mark.parametrize(
        ("color", "expected"),
        [
            ("#fff", (255, 255, 255)),
            ("#00A651", (0, 166, 81)),
            ("rgb(1, 2, 3)", (1, 2, 3)),
            ("rgb(10,20,30)", (10, 20, 30)),
        ],
    )
    def test_supported_formats(
        self, color: str, expected: tuple[int, int, int]
    ) -> None:
        assert parse_color(color) == expected

    @pytest.mark.unit
    @pytest.mark.parametrize("color", ["#12345", "#zzzzzz", "hsl(10, 65%, 30%)", "red"])
    def test_unsupported_formats(self, color: str) -> None:
        assert parse_color(color) is None


class TestLuminance:
    @pytest.mark.unit
    def test_extremes(self) -> None:
        assert relative_luminance(255, 255, 255) == pytest.approx(1.0)
        assert relative_luminance(0, 0, 0) == 0.0

    @pytest.mark.unit
    def test_too_light(self) -> None:
        assert is_color_too_light("#ffffff")
        assert is_color_too_light("#FFFF00")
        assert not is_color_too_light("#003366")
        assert not is_color_too_light("#FF6900")

    @pytest.mark.unit
    def test_unparseable_colors_are_not_too_light(self) -> None:
        assert not is_color_too_light("hsl(0, 0%, 100%)")


class TestDarkenColor:
    @pytest.mark.unit
    def test_scales_channels_by_thirty_percent(self) -> None:
        assert darken_color("#ffffff") == "#b2b2b2"
        assert darken_color("#FFFF00") == "#b2b200"

    @pytest.mark.unit
    def test_unparseable_color_is_returned_unchanged(self) -> None:
        assert darken_color("transparent") == "transparent"


class TestGeneratedColors:
    @pytest.mark.unit
    def test_golden_angle_hue(self) -> None:
        assert generate_color_from_id(1) == "hsl(137, 65%, 30%)"
        assert generate_color_from_id(3) == "hsl(52, 65%, 30%)"

    @pytest.mark.unit
    def test_stable_and_distinct_for_small_ids(self) -> None:
        colors = [generate_color_from_id(i) for i in range(1, 11)]
        assert colors == [generate_color_from_id(i) for i in range(1, 11)]
        assert len(set(colors)) == 10


class TestResolveConnectorColor:
    @pytest.mark.unit
    def test_missing_color_uses_fallback(self) -> None:
        assert resolve_connector_color(1, None) == "hsl(137, 65%, 30%)"
        assert resolve_connector_color(1, "") == "hsl(137, 65%, 30%)"

    @pytest.mark.unit
    def test_adds_missing_hash(self) -> None:
        assert resolve_connector_color(5, "FF6900") == "#FF6900"

    @pytest.mark.unit
    def test_dark_color_kept(self) -> None:
        assert resolve_connector_color(5, "#003366") == "#003366"

    @pytest.mark.unit
    def test_light_color_darkened(self) -> None:
        assert resolve_connector_color(5, "ffff00") == "#b2b200"
