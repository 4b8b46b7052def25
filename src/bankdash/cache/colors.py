"""Connector color resolution.

Brand colors are displayed behind white text, so colors that are too light
(WCAG relative luminance above 0.5) are darkened. Connectors without a color
get a deterministic hue derived from their ID.
"""

import math
import re

DARKEN_AMOUNT = 0.3
LUMINANCE_THRESHOLD = 0.5
GOLDEN_ANGLE = 137.508

_RGB_PATTERN = re.compile(r"rgb\((\d+),\s*(\d+),\s*(\d+)\)")


def parse_color(color: str) -> tuple[int, int, int] | None:
    """Parse ``#rgb``, ``#rrggbb`` or ``rgb(r, g, b)`` into channels.

    Returns:
        The (r, g, b) channels, or None for any other format.
    """
    if color.startswith("#"):
        hex_digits = color[1:]
        if len(hex_digits) == 3:
            hex_digits = "".join(c * 2 for c in hex_digits)
        if len(hex_digits) != 6:
            return None
        try:
            return (
                int(hex_digits[0:2], 16),
                int(hex_digits[2:4], 16),
                int(hex_digits[4:6], 16),
            )
        except ValueError:
            return None

    if color.startswith("rgb("):
        match = _RGB_PATTERN.match(color)
        if not match:
            return None
        r, g, b = (int(match.group(i)) for i in range(1, 4))
        return r, g, b

    return None


def relative_luminance(r: int, g: int, b: int) -> float:
    """WCAG 2.x relative luminance of an sRGB color."""

    def to_linear(channel: int) -> float:
        c = channel / 255
        return c / 12.92 if c <= 0.03928 else ((c + 0.055) / 1.055) ** 2.4

    return 0.2126 * to_linear(r) + 0.7152 * to_linear(g) + 0.0722 * to_linear(b)


def is_color_too_light(color: str) -> bool:
    """True if white text on this color would have poor contrast.

    Unparseable colors are assumed to be fine.
    """
    channels = parse_color(color)
    if channels is None:
        return False
    return relative_luminance(*channels) > LUMINANCE_THRESHOLD


def darken_color(color: str, amount: float = DARKEN_AMOUNT) -> str:
    """Scale every channel by ``1 - amount`` and render as ``#rrggbb``.

    Unparseable colors are returned untouched.
    """
    channels = parse_color(color)
    if channels is None:
        return color
    r, g, b = (max(0, min(255, math.floor(c * (1 - amount)))) for c in channels)
    return f"#{r:02x}{g:02x}{b:02x}"


def generate_color_from_id(connector_id: int) -> str:
    """Stable fallback color spreading hues by the golden angle."""
    hue = (connector_id * GOLDEN_ANGLE) % 360
    return f"hsl({math.floor(hue)}, 65%, 30%)"


def resolve_connector_color(connector_id: int, raw_color: str | None) -> str:
    """Display color for a connector.

    Args:
        connector_id: Connector ID, used for the fallback color
        raw_color: Color as sent by the API (with or without ``#``)

    Returns:
        str: A CSS color with enough contrast for white text
    """
    if not raw_color:
        return generate_color_from_id(connector_id)

    color = raw_color if raw_color.startswith(("#", "rgb(")) else f"#{raw_color}"
    if is_color_too_light(color):
        return darken_color(color)
    return color
