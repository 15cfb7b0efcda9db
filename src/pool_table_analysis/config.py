"""
Configuration for the table analyzer.

This module defines the configuration schema and default parameters used when
segmenting objects from the table cloth.
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional

from .delta_e import ApplicationType
from .types import CONNECTIVITY_OPTIONS, DEFAULT_CONNECTIVITY, DEFAULT_DELTA_E_THRESHOLD


@dataclass
class AnalyzerConfig:
    """Configuration schema for TableAnalyzer with default parameters."""

    # Pixels at least this far (Delta-E94) from the cloth colour are foreground
    delta_e_threshold: float = DEFAULT_DELTA_E_THRESHOLD
    application_type: ApplicationType = ApplicationType.GRAPHIC_ARTS

    # Connected component filtering
    min_object_area: int = 1
    max_object_area_fraction: Optional[float] = None  # drop components covering more of the image
    connectivity: int = DEFAULT_CONNECTIVITY

    # Bounding box size window as multiples of the ball diameter, None disables that bound
    min_ball_size_ratio: Optional[float] = 0.5
    max_ball_size_ratio: Optional[float] = 2.0

    # Square kernel size for opening the foreground mask, 0 disables
    morphology_kernel_size: int = 0

    @classmethod
    def create_default(cls) -> 'AnalyzerConfig':
        """Create a configuration with all default values."""
        return cls()

    @classmethod
    def create_for_textiles(cls) -> 'AnalyzerConfig':
        """Create a configuration using the textile Delta-E94 weighting."""
        return cls(application_type=ApplicationType.TEXTILES)

    @classmethod
    def create_without_size_filter(cls, **overrides: Any) -> 'AnalyzerConfig':
        """Create a configuration that keeps components of any physical size."""
        values: Dict[str, Any] = {'min_ball_size_ratio': None, 'max_ball_size_ratio': None}
        values.update(overrides)
        return cls(**values)

    @classmethod
    def from_dict(cls, values: Dict[str, Any]) -> 'AnalyzerConfig':
        """
        Create a configuration from a plain dictionary.

        Raises:
            ValueError: If a key is unknown or a value is invalid
        """
        known = set(cls.__dataclass_fields__)
        unknown = set(values) - known
        if unknown:
            raise ValueError(f"Unknown configuration keys: {sorted(unknown)}")

        values = dict(values)
        if 'application_type' in values and not isinstance(values['application_type'], ApplicationType):
            values['application_type'] = ApplicationType(str(values['application_type']).lower())

        config = cls(**values)
        config.validate()
        return config

    @classmethod
    def from_json_file(cls, path: str) -> 'AnalyzerConfig':
        with open(path, 'r') as f:
            return cls.from_dict(json.load(f))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'delta_e_threshold': self.delta_e_threshold,
            'application_type': self.application_type.value,
            'min_object_area': self.min_object_area,
            'max_object_area_fraction': self.max_object_area_fraction,
            'connectivity': self.connectivity,
            'min_ball_size_ratio': self.min_ball_size_ratio,
            'max_ball_size_ratio': self.max_ball_size_ratio,
            'morphology_kernel_size': self.morphology_kernel_size,
        }

    def validate(self) -> None:
        """
        Validate the configuration parameters.

        Raises:
            ValueError: If any configuration parameter is invalid
        """
        if self.delta_e_threshold <= 0:
            raise ValueError(f"Delta-E threshold must be positive, got {self.delta_e_threshold}")

        if not isinstance(self.application_type, ApplicationType):
            raise ValueError(f"Unsupported application type: {self.application_type}")

        if self.min_object_area < 1:
            raise ValueError(f"Minimum object area must be at least 1, got {self.min_object_area}")

        if self.max_object_area_fraction is not None and not 0 < self.max_object_area_fraction <= 1:
            raise ValueError(
                f"Maximum object area fraction must be in (0, 1], got {self.max_object_area_fraction}"
            )

        if self.connectivity not in CONNECTIVITY_OPTIONS:
            raise ValueError(f"Connectivity must be one of {CONNECTIVITY_OPTIONS}, got {self.connectivity}")

        for name in ('min_ball_size_ratio', 'max_ball_size_ratio'):
            ratio = getattr(self, name)
            if ratio is not None and ratio <= 0:
                raise ValueError(f"{name} must be positive, got {ratio}")
        if (self.min_ball_size_ratio is not None and self.max_ball_size_ratio is not None
                and self.min_ball_size_ratio > self.max_ball_size_ratio):
            raise ValueError(
                f"Ball size window is empty: {self.min_ball_size_ratio} > {self.max_ball_size_ratio}"
            )

        if self.morphology_kernel_size < 0:
            raise ValueError(f"Morphology kernel size must be non-negative, got {self.morphology_kernel_size}")
