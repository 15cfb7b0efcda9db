"""
CIE94 colour difference (Delta-E94).

Formula: http://www.brucelindbloom.com/index.html?Eqn_DeltaE_CIE94.html

The weighting functions SC and SH are computed from the chroma of the first
colour only, so delta_e94(x, y) and delta_e94(y, x) generally differ. The
first colour is the reference.
"""

import math
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Union

import numpy as np

from .color_space import LabColor
from .types import LabArray


class ApplicationType(Enum):
    """Application types that select the Delta-E94 weighting constants."""

    GRAPHIC_ARTS = "graphic_arts"
    TEXTILES = "textiles"


@dataclass(frozen=True)
class DeltaEConstants:
    """
    Weighting constants for Delta-E94.

    Attributes:
        kl: Lightness weight (1 for graphic arts, 2 for textiles)
        k1: Chroma scaling (0.045 graphic arts, 0.048 textiles)
        k2: Hue scaling (0.015 graphic arts, 0.014 textiles)
        kc: Chroma weight
        kh: Hue weight
    """

    kl: float
    k1: float
    k2: float
    kc: float = 1.0
    kh: float = 1.0


DELTA_E_CONSTANTS: Mapping[ApplicationType, DeltaEConstants] = MappingProxyType({
    ApplicationType.GRAPHIC_ARTS: DeltaEConstants(kl=1.0, k1=0.045, k2=0.015, kc=1.0, kh=1.0),
    ApplicationType.TEXTILES: DeltaEConstants(kl=2.0, k1=0.048, k2=0.014, kc=1.0, kh=1.0),
})

Profile = Union[ApplicationType, DeltaEConstants, str]


def get_constants(application_type: Profile = ApplicationType.GRAPHIC_ARTS) -> DeltaEConstants:
    """
    Look up the weighting constants for an application type.

    Args:
        application_type: ApplicationType, its string value, or explicit constants

    Raises:
        ValueError: If the application type is unknown
    """
    if isinstance(application_type, DeltaEConstants):
        return application_type
    if isinstance(application_type, str):
        try:
            application_type = ApplicationType(application_type.lower())
        except ValueError:
            valid = [t.value for t in ApplicationType]
            raise ValueError(f"Unsupported application type: {application_type}. Use one of: {valid}") from None
    return DELTA_E_CONSTANTS[application_type]


def delta_e94(color1: LabColor,
              color2: LabColor,
              application_type: Profile = ApplicationType.GRAPHIC_ARTS) -> float:
    """
    Delta-E94 between two LAB colours, color1 being the reference.

    Returns:
        Non-negative colour difference; 0 for identical colours
    """
    constants = get_constants(application_type)

    delta_l = color1.l - color2.l
    c1 = math.sqrt(color1.a ** 2 + color1.b ** 2)
    c2 = math.sqrt(color2.a ** 2 + color2.b ** 2)
    delta_c = c1 - c2
    delta_a = color1.a - color2.a
    delta_b = color1.b - color2.b

    # Theoretically >= 0 but rounding can push it slightly negative
    delta_h_radical = delta_a ** 2 + delta_b ** 2 - delta_c ** 2
    delta_h = math.sqrt(max(delta_h_radical, 0.0))

    sl = 1.0
    sc = 1.0 + constants.k1 * c1
    sh = 1.0 + constants.k2 * c1

    return math.sqrt(
        (delta_l / (constants.kl * sl)) ** 2
        + (delta_c / (constants.kc * sc)) ** 2
        + (delta_h / (constants.kh * sh)) ** 2
    )


def delta_e94_array(reference: LabColor,
                    lab_pixels: LabArray,
                    application_type: Profile = ApplicationType.GRAPHIC_ARTS) -> np.ndarray:
    """
    Delta-E94 of every pixel against a reference colour.

    Args:
        reference: Reference colour (color1 in delta_e94)
        lab_pixels: (..., 3) array of L*, a*, b*

    Returns:
        Array of distances with the leading shape of lab_pixels
    """
    constants = get_constants(application_type)
    lab_pixels = np.asarray(lab_pixels, dtype=np.float64)

    delta_l = reference.l - lab_pixels[..., 0]
    c1 = math.sqrt(reference.a ** 2 + reference.b ** 2)
    c2 = np.sqrt(lab_pixels[..., 1] ** 2 + lab_pixels[..., 2] ** 2)
    delta_c = c1 - c2
    delta_a = reference.a - lab_pixels[..., 1]
    delta_b = reference.b - lab_pixels[..., 2]

    delta_h = np.sqrt(np.maximum(delta_a ** 2 + delta_b ** 2 - delta_c ** 2, 0.0))

    sc = 1.0 + constants.k1 * c1
    sh = 1.0 + constants.k2 * c1

    return np.sqrt(
        (delta_l / constants.kl) ** 2
        + (delta_c / (constants.kc * sc)) ** 2
        + (delta_h / (constants.kh * sh)) ** 2
    )
