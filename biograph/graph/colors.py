"""Colors that carry meaning in the network view.

Only data-driven colors live here: the tier palette, the mention-category
palette, the time gradient used for letter nodes and the epoch bands
used for correspondents.
"""

import datetime as dt
import re

CENTRAL_COLOR = "#6366f1"
CENTRAL_HIGHLIGHT = "#fbbf24"
CORRESPONDENT_COLOR = "#3b82f6"
LETTER_COLOR = "#8b5cf6"
DEFAULT_TIME_COLOR = "#6366f1"

PERSON_MENTION_BORDER = "#60a5fa"
PERSON_MENTION_FILL = "#dbeafe"
PLACE_MENTION_BORDER = "#10b981"
PLACE_MENTION_FILL = "#d1fae5"
ORG_MENTION_BORDER = "#f59e0b"
ORG_MENTION_FILL = "#fef3c7"

# Mention edge colors: (dark mode, light mode)
PERSON_MENTION_EDGE = ("#60a5fa", "#2563eb")
PLACE_MENTION_EDGE = ("#10b981", "#059669")
ORG_MENTION_EDGE = ("#f59e0b", "#d97706")

# Gradient endpoints for letters: deep blue (earliest) -> light cyan-green (latest)
HUE_START = 220.0
HUE_SPAN = 60.0
SATURATION = 80
LIGHTNESS_START = 35.0
LIGHTNESS_SPAN = 30.0

# Correspondent epochs by quarter of the span of average letter dates
EPOCH_COLORS = ("#3b82f6", "#10b981", "#f59e0b", "#ef4444")

_HSL = re.compile(r"hsl\((\d+),\s*(\d+)%,\s*(\d+)%\)")


def time_position(d: dt.date, min_date: dt.date, max_date: dt.date) -> float | None:
    """Position of ``d`` in [min_date, max_date] as a value clamped to [0, 1].

    None when the range is empty (min == max).
    """
    span = (max_date - min_date).days
    if span <= 0:
        return None
    position = (d - min_date).days / span
    return min(1.0, max(0.0, position))


def color_by_date(d: dt.date, min_date: dt.date, max_date: dt.date) -> str:
    """Color for a letter dated ``d`` within the corpus date range."""
    position = time_position(d, min_date, max_date)
    if position is None:
        return DEFAULT_TIME_COLOR
    hue = HUE_START - position * HUE_SPAN
    lightness = LIGHTNESS_START + position * LIGHTNESS_SPAN
    return f"hsl({round(hue)}, {SATURATION}%, {round(lightness)}%)"


def _hsl_to_rgb(h: int, s: float, l: float) -> tuple[int, int, int]:
    c = (1 - abs(2 * l - 1)) * s
    x = c * (1 - abs((h / 60) % 2 - 1))
    m = l - c / 2
    if h < 60:
        r, g, b = c, x, 0.0
    elif h < 120:
        r, g, b = x, c, 0.0
    elif h < 180:
        r, g, b = 0.0, c, x
    elif h < 240:
        r, g, b = 0.0, x, c
    elif h < 300:
        r, g, b = x, 0.0, c
    else:
        r, g, b = c, 0.0, x
    return round((r + m) * 255), round((g + m) * 255), round((b + m) * 255)


def _clamp_channel(value: int) -> int:
    return min(255, max(0, value))


def adjust_brightness(color: str, percent: float) -> str:
    """Lighten (positive) or darken (negative) a color by ``percent``.

    ``hsl(h, s%, l%)`` input comes back as ``rgb(r, g, b)``; ``#rrggbb``
    comes back as hex. Anything else is returned unchanged.
    """
    amount = round(2.55 * percent)
    match = _HSL.fullmatch(color.strip())
    if match:
        h, s, l = int(match.group(1)), int(match.group(2)) / 100, int(match.group(3)) / 100
        r, g, b = (_clamp_channel(v + amount) for v in _hsl_to_rgb(h, s, l))
        return f"rgb({r}, {g}, {b})"
    if color.startswith("#") and len(color) == 7:
        try:
            num = int(color[1:], 16)
        except ValueError:
            return color
        r = _clamp_channel((num >> 16) + amount)
        g = _clamp_channel(((num >> 8) & 0xFF) + amount)
        b = _clamp_channel((num & 0xFF) + amount)
        return f"#{r:02x}{g:02x}{b:02x}"
    return color


def intensity_rgb(intensity: float, low: tuple[int, int, int], high: tuple[int, int, int]) -> str:
    """Linear blend between two RGB colors for a metric intensity in [0, 1]."""
    t = min(1.0, max(0.0, intensity))
    r, g, b = (round(a + (z - a) * t) for a, z in zip(low, high))
    return f"rgb({r}, {g}, {b})"


def epoch_color(position: float) -> str:
    """Band color for a position in [0, 1]: blue, green, amber, then red."""
    if position < 0.25:
        return EPOCH_COLORS[0]
    if position < 0.5:
        return EPOCH_COLORS[1]
    if position < 0.75:
        return EPOCH_COLORS[2]
    return EPOCH_COLORS[3]
