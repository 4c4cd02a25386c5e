"""ColorMapND: map a normalized attribute vector to a perceptual color.

Each active attribute sits at an angle on the unit circle.  A record's
normalized values weight those unit vectors; the superposed vector's
direction gives the hue and its length the chroma, at constant luminance,
in CIE HCL (Cheng et al., 2018).  HCL is converted to sRGB with the same
D50 Lab conversion d3-color uses, so colors match the web views exactly.

Normalization is ``(value - min) / max(1, max - min)`` and is deliberately
left unclamped: out-of-range values push the vector past the unit disk.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass

from skylens.attributes import AttributeConfig, Record

# d3-color Lab constants (D50 white point).
_XN = 0.96422
_YN = 1.0
_ZN = 0.82521
_T0 = 4 / 29
_T1 = 6 / 29
_T2 = 3 * _T1 * _T1

MIN_TOTAL_NORM = 0.01
LUMINANCE = 60.0
BASE_CHROMA = 30.0
CHROMA_RANGE = 60.0


@dataclass(frozen=True)
class Color:
    """An 8-bit sRGB color."""

    r: int
    g: int
    b: int

    @classmethod
    def from_hex(cls, value: str) -> Color:
        value = value.lstrip("#")
        return cls(int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16))

    @property
    def hex(self) -> str:
        return f"#{self.r:02x}{self.g:02x}{self.b:02x}"

    def __str__(self) -> str:
        return f"rgb({self.r}, {self.g}, {self.b})"


def _lab_to_xyz(t: float) -> float:
    return t * t * t if t > _T1 else _T2 * (t - _T0)


def _linear_to_srgb(x: float) -> float:
    return 255 * (12.92 * x if x <= 0.0031308 else 1.055 * math.pow(x, 1 / 2.4) - 0.055)


def _clamp_channel(value: float) -> int:
    if math.isnan(value):
        return 0
    # JavaScript Math.round: halves round toward +inf.
    return max(0, min(255, math.floor(value + 0.5)))


def hcl_to_rgb(hue: float, chroma: float, luminance: float) -> Color:
    """Convert CIE HCL (hue in degrees) to 8-bit sRGB.

    Args:
        hue: Hue angle in degrees; NaN means achromatic.
        chroma: Chroma.
        luminance: Luminance, 0-100.

    Returns:
        The clamped ``Color``.
    """
    if math.isnan(hue):
        a = b = 0.0
    else:
        h = math.radians(hue)
        a = math.cos(h) * chroma
        b = math.sin(h) * chroma

    y = (luminance + 16) / 116
    x = y + a / 500
    z = y - b / 200
    x = _XN * _lab_to_xyz(x)
    y = _YN * _lab_to_xyz(y)
    z = _ZN * _lab_to_xyz(z)

    return Color(
        _clamp_channel(_linear_to_srgb(3.1338561 * x - 1.6168667 * y - 0.4906146 * z)),
        _clamp_channel(_linear_to_srgb(-0.9787684 * x + 1.9161415 * y + 0.0334540 * z)),
        _clamp_channel(_linear_to_srgb(0.0719453 * x - 0.2289914 * y + 1.4052427 * z)),
    )


# Returned when the superposed vector is too short for a stable hue.
FALLBACK_COLOR = hcl_to_rgb(0.0, 0.0, 30.0)
# Returned when no attribute is active.
EMPTY_COLOR = Color.from_hex("#475569")


def color_of(record: Record, attributes: Sequence[AttributeConfig]) -> Color:
    """Color for *record* under the active *attributes*.

    Pure function of the record's values and the attributes' bounds and
    angles.  Returns ``FALLBACK_COLOR`` when the summed normalized values
    fall below ``MIN_TOTAL_NORM`` and ``EMPTY_COLOR`` when *attributes* is
    empty.
    """
    if len(attributes) == 0:
        return EMPTY_COLOR

    x = 0.0
    y = 0.0
    total_norm = 0.0
    for attr in attributes:
        norm = (record.value(attr.key) - attr.min) / max(1.0, attr.max - attr.min)
        x += math.cos(attr.angle) * norm
        y += math.sin(attr.angle) * norm
        total_norm += norm

    if total_norm < MIN_TOTAL_NORM:
        return FALLBACK_COLOR

    hue = (math.atan2(y, x) * 180 / math.pi + 360) % 360
    strength = math.sqrt(x * x + y * y) / math.sqrt(len(attributes))
    chroma = BASE_CHROMA + strength * CHROMA_RANGE
    return hcl_to_rgb(hue, chroma, LUMINANCE)
