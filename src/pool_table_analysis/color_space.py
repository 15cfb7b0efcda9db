"""
sRGB <-> CIE-XYZ <-> CIE-LAB conversions.

The forward transform follows the classic D65 formulation:

1. Normalize each channel to [0, 1]
2. Gamma-expand (sRGB companding) and scale to [0, 100]
3. Multiply by the sRGB -> XYZ matrix
4. Divide by the D65 reference white
5. Apply the CIE nonlinearity
6. L = 116 * fY - 16, a = 500 * (fX - fY), b = 200 * (fY - fZ)

Both a scalar version for single colours and a vectorised numpy version for
whole images are provided; they use the same constants and branch points.
"""

import math
from dataclasses import dataclass
from typing import Tuple

import numpy as np
from numpy.typing import NDArray

from .exceptions import InvalidColorComponent
from .types import LabArray, Rgba

# sRGB companding
GAMMA_THRESHOLD = 0.04045
LINEAR_THRESHOLD = 0.0031308
GAMMA_EXPONENT = 2.4

# CIE nonlinearity
EPSILON = 0.008856
KAPPA_SLOPE = 7.787
OFFSET = 16.0 / 116.0

# D65 reference white
REFERENCE_WHITE = (95.047, 100.0, 108.883)

RGB_TO_XYZ = np.array([
    [0.412453, 0.357580, 0.180423],
    [0.212671, 0.715160, 0.072169],
    [0.019334, 0.119193, 0.950227],
], dtype=np.float64)
XYZ_TO_RGB = np.linalg.inv(RGB_TO_XYZ)
RGB_TO_XYZ.flags.writeable = False
XYZ_TO_RGB.flags.writeable = False

L_RANGE = (0.0, 100.0)
AB_RANGE = (-128.0, 128.0)


@dataclass(frozen=True)
class LabColor:
    """
    CIE-LAB colour.

    Attributes:
        l: Lightness, 0 (black) to 100 (white)
        a: Green (-) to red (+) axis
        b: Blue (-) to yellow (+) axis
        alpha: Alpha of the source pixel; not part of the colour model

    Raises:
        InvalidColorComponent: If a component is non-finite or outside its range
    """

    l: float
    a: float
    b: float
    alpha: int = 255

    def __post_init__(self) -> None:
        for name, value in (('l', self.l), ('a', self.a), ('b', self.b)):
            if not math.isfinite(value):
                raise InvalidColorComponent(f"{name} must be finite, got {value}")
        if not L_RANGE[0] <= self.l <= L_RANGE[1]:
            raise InvalidColorComponent(f"L* must be within 0 and 100, got {self.l}")
        if not AB_RANGE[0] <= self.a <= AB_RANGE[1] or not AB_RANGE[0] <= self.b <= AB_RANGE[1]:
            raise InvalidColorComponent(
                f"a*/b* must be within -128 and 128, got a*={self.a}, b*={self.b}"
            )
        if not 0 <= self.alpha <= 255:
            raise InvalidColorComponent(f"alpha must be within 0 and 255, got {self.alpha}")

    @property
    def chroma(self) -> float:
        return math.hypot(self.a, self.b)

    @classmethod
    def from_rgb(cls, red: int, green: int, blue: int, alpha: int = 255) -> "LabColor":
        return rgb_to_lab(red, green, blue, alpha)

    def to_rgb(self) -> Rgba:
        return lab_to_rgb(self)


def _gamma_expand(value: float) -> float:
    if value > GAMMA_THRESHOLD:
        return ((value + 0.055) / 1.055) ** GAMMA_EXPONENT
    return value / 12.92


def _gamma_compress(value: float) -> float:
    if value > LINEAR_THRESHOLD:
        return 1.055 * value ** (1.0 / GAMMA_EXPONENT) - 0.055
    return value * 12.92


def _f(t: float) -> float:
    if t > EPSILON:
        return t ** (1.0 / 3.0)
    return KAPPA_SLOPE * t + OFFSET


def _f_inverse(f: float) -> float:
    cube = f ** 3
    if cube > EPSILON:
        return cube
    return (f - OFFSET) / KAPPA_SLOPE


def _clamp(value: float, bounds: Tuple[float, float]) -> float:
    return min(max(value, bounds[0]), bounds[1])


def rgb_to_lab(red: int, green: int, blue: int, alpha: int = 255) -> LabColor:
    """
    Convert an 8-bit sRGB colour to CIE-LAB.

    The result is clamped into the LAB domain rather than rejected; near black
    the computed L* can dip slightly below zero.

    Args:
        red, green, blue: Channel values 0-255
        alpha: Carried through unchanged

    Returns:
        LabColor equivalent
    """
    expanded = [_gamma_expand(channel / 255.0) * 100.0 for channel in (red, green, blue)]
    x, y, z = (float(v) for v in RGB_TO_XYZ @ np.array(expanded))

    fx = _f(x / REFERENCE_WHITE[0])
    fy = _f(y / REFERENCE_WHITE[1])
    fz = _f(z / REFERENCE_WHITE[2])

    l_star = 116.0 * fy - 16.0
    a_star = 500.0 * (fx - fy)
    b_star = 200.0 * (fy - fz)

    return LabColor(_clamp(l_star, L_RANGE), _clamp(a_star, AB_RANGE), _clamp(b_star, AB_RANGE), int(alpha))


def lab_to_rgb(color: LabColor) -> Rgba:
    """
    Convert a CIE-LAB colour back to 8-bit sRGB.

    Colours outside the sRGB gamut are clipped per channel.

    Returns:
        (red, green, blue, alpha) tuple
    """
    fy = (color.l + 16.0) / 116.0
    fx = fy + color.a / 500.0
    fz = fy - color.b / 200.0

    xyz = np.array([
        _f_inverse(fx) * REFERENCE_WHITE[0],
        _f_inverse(fy) * REFERENCE_WHITE[1],
        _f_inverse(fz) * REFERENCE_WHITE[2],
    ])
    linear = XYZ_TO_RGB @ xyz / 100.0

    channels = []
    for value in linear:
        compressed = _gamma_compress(max(float(value), 0.0))
        channels.append(int(min(max(round(compressed * 255.0), 0), 255)))

    red, green, blue = channels
    return (red, green, blue, color.alpha)


def bgra_to_lab_array(pixels: NDArray[np.uint8]) -> LabArray:
    """
    Convert a BGRA (or BGR) image to per-pixel LAB values.

    Args:
        pixels: (H, W, 4) or (H, W, 3) uint8 array in BGR(A) order

    Returns:
        (H, W, 3) float64 array of L*, a*, b*
    """
    if pixels.ndim != 3 or pixels.shape[2] not in (3, 4):
        raise ValueError(f"Expected an (H, W, 3|4) array, got shape {pixels.shape}")

    rgb = pixels[..., 2::-1].astype(np.float64) / 255.0
    expanded = np.where(rgb > GAMMA_THRESHOLD,
                        ((rgb + 0.055) / 1.055) ** GAMMA_EXPONENT,
                        rgb / 12.92) * 100.0

    xyz = expanded @ RGB_TO_XYZ.T
    xyz /= np.array(REFERENCE_WHITE)
    f = np.where(xyz > EPSILON, np.cbrt(xyz), KAPPA_SLOPE * xyz + OFFSET)

    lab = np.empty_like(f)
    lab[..., 0] = np.clip(116.0 * f[..., 1] - 16.0, *L_RANGE)
    lab[..., 1] = np.clip(500.0 * (f[..., 0] - f[..., 1]), *AB_RANGE)
    lab[..., 2] = np.clip(200.0 * (f[..., 1] - f[..., 2]), *AB_RANGE)
    return lab
