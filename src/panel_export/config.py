"""
Module: config

Purpose:
    Configuration dataclasses for image export. All configuration is
    immutable and validated on construction, so an invalid config
    never reaches the staging step.

Key Classes:
    - Margins: Pixel margins around the exported content
    - SliceConfig: Tiling behaviour (height and overlap)
    - ExportConfig: Complete per-call export configuration

Dependencies:
    - dataclasses (std)

Used By:
    - panel_export.controller: Export orchestration
    - panel_export.staging.stager: Container padding
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Mapping, Optional, TYPE_CHECKING

from .errors import ConfigError

if TYPE_CHECKING:
    from .slicing.models import ContentMetrics


# Defaults carried over from the panel exporter's historical signature
DEFAULT_BACKGROUND_COLOR = "#ffffff"
DEFAULT_CONTENT_ID = "output"
DEFAULT_SCALE = 2.0
DEFAULT_SLICE_HEIGHT = 800
DEFAULT_REDUNDANCY_PERCENT = 5.0


@dataclass(frozen=True)
class Margins:
    """
    Margins around exported content (immutable).
    
    Attributes:
        top: Top margin in pixels (first tile only when slicing)
        right: Right margin in pixels
        bottom: Bottom margin in pixels (last tile only when slicing)
        left: Left margin in pixels
        
    Example:
        >>> Margins(top=20, right=20, bottom=100, left=20).horizontal
        40
    """
    
    top: int = 20
    right: int = 20
    bottom: int = 100
    left: int = 20
    
    def __post_init__(self) -> None:
        """Validate margins on construction."""
        for name in ("top", "right", "bottom", "left"):
            value = getattr(self, name)
            if value < 0:
                raise ConfigError(f"margin {name} must be non-negative: {value}")
    
    @property
    def horizontal(self) -> int:
        """Combined left and right margin."""
        return self.left + self.right
    
    @property
    def vertical(self) -> int:
        """Combined top and bottom margin."""
        return self.top + self.bottom
    
    @classmethod
    def uniform(cls, value: int) -> "Margins":
        """Same margin on all four sides."""
        return cls(top=value, right=value, bottom=value, left=value)


@dataclass(frozen=True)
class SliceConfig:
    """
    Tiling configuration (immutable).
    
    Attributes:
        enabled: Split content into tiles (False exports one image)
        slice_height: Nominal tile height in content pixels
        redundancy_percent: Overlap between consecutive tiles, as a
            percentage of slice_height, in [0, 100)
    """
    
    enabled: bool = True
    slice_height: float = DEFAULT_SLICE_HEIGHT
    redundancy_percent: float = DEFAULT_REDUNDANCY_PERCENT
    
    def __post_init__(self) -> None:
        """Validate configuration on construction."""
        validate_slice_params(self.slice_height, self.redundancy_percent)
    
    @property
    def overlap(self) -> float:
        """Overlap between consecutive tiles in pixels."""
        return self.slice_height * self.redundancy_percent / 100
    
    @property
    def effective_height(self) -> float:
        """Vertical advance from one tile to the next."""
        return self.slice_height - self.overlap


def validate_slice_params(slice_height: float, redundancy_percent: float) -> None:
    """
    Check slice height and redundancy.
    
    Raises:
        ConfigError: If slice_height <= 0 or redundancy_percent
            is outside [0, 100)
    """
    if slice_height <= 0:
        raise ConfigError(f"slice_height must be positive: {slice_height}")
    if redundancy_percent < 0:
        raise ConfigError(
            f"redundancy_percent must be non-negative: {redundancy_percent}"
        )
    if redundancy_percent >= 100:
        raise ConfigError(
            f"redundancy_percent must be below 100: {redundancy_percent}"
        )


@dataclass(frozen=True)
class ExportConfig:
    """
    Configuration for a single export call (immutable).
    
    Collapses every export option into one object passed by value;
    the orchestrator never mutates it.
    
    Attributes:
        background_color: Fill colour behind content and margins
        output_width: Total image width in CSS pixels, margins included.
            None derives it from the measured content width plus margins.
        scale: Pixel density multiplier (2 = retina output)
        margins: Margins around the content
        slice: Tiling configuration
        content_id: Id of the content node to export
        settle_delay: Seconds to wait after staging before capture
        slice_settle_delay: Seconds to wait before each tile capture
        
    Example:
        >>> config = ExportConfig(output_width=560, slice=SliceConfig(enabled=False))
        >>> config.content_width(ContentMetrics(800, 1200))
        520
    """
    
    background_color: str = DEFAULT_BACKGROUND_COLOR
    output_width: Optional[int] = None
    scale: float = DEFAULT_SCALE
    margins: Margins = field(default_factory=Margins)
    slice: SliceConfig = field(default_factory=SliceConfig)
    content_id: str = DEFAULT_CONTENT_ID
    settle_delay: float = 0.0
    slice_settle_delay: float = 0.0
    
    def __post_init__(self) -> None:
        """Validate configuration on construction."""
        if self.scale <= 0:
            raise ConfigError(f"scale must be positive: {self.scale}")
        if self.output_width is not None and self.output_width <= self.margins.horizontal:
            raise ConfigError(
                f"output_width {self.output_width} leaves no room for content "
                f"between margins ({self.margins.horizontal}px)"
            )
        if self.settle_delay < 0 or self.slice_settle_delay < 0:
            raise ConfigError("settle delays must be non-negative")
        if not self.content_id:
            raise ConfigError("content_id must not be empty")
        if self.slice.enabled and self.margins.top >= self.slice.effective_height:
            raise ConfigError(
                f"top margin {self.margins.top}px does not fit in a "
                f"{self.slice.slice_height}px tile with {self.slice.overlap}px overlap"
            )
    
    def resolve_output_width(self, metrics: ContentMetrics) -> int:
        """Output width, derived from the natural content width when unset."""
        if self.output_width is not None:
            return self.output_width
        return int(round(metrics.natural_width)) + self.margins.horizontal
    
    def content_width(self, metrics: ContentMetrics) -> int:
        """Width the staged content is laid out at."""
        width = self.resolve_output_width(metrics) - self.margins.horizontal
        if width <= 0:
            raise ConfigError(f"content width must be positive: {width}")
        return width
    
    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dictionary."""
        return asdict(self)
    
    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ExportConfig":
        """
        Build a config from a plain mapping.
        
        Nested "margins" and "slice" mappings are converted to their
        dataclasses; missing keys keep their defaults.
        
        Raises:
            ConfigError: On unknown keys or invalid values
        """
        known = set(cls.__dataclass_fields__)
        unknown = set(data) - known
        if unknown:
            raise ConfigError(f"Unknown export config keys: {sorted(unknown)}")
        
        kwargs = dict(data)
        if isinstance(kwargs.get("margins"), Mapping):
            kwargs["margins"] = _build(Margins, kwargs["margins"])
        if isinstance(kwargs.get("slice"), Mapping):
            kwargs["slice"] = _build(SliceConfig, kwargs["slice"])
        return cls(**kwargs)


def _build(model: type, data: Mapping[str, Any]) -> Any:
    """Construct a nested config dataclass, rejecting unknown keys."""
    unknown = set(data) - set(model.__dataclass_fields__)
    if unknown:
        raise ConfigError(f"Unknown {model.__name__} keys: {sorted(unknown)}")
    return model(**data)
