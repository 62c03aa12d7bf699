"""
Module: slicing.models

Purpose:
    Data models for tiling. Immutable dataclasses computed fresh per
    export and discarded afterwards.

Key Classes:
    - ContentMetrics: Natural content size
    - SliceDescriptor: Vertical window rendered by one tile

Dependencies:
    - dataclasses (std)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class ContentMetrics:
    """
    Natural size of content, measured after layout settles.
    
    Attributes:
        natural_width: Width of the content in CSS pixels
        natural_height: Full unrolled height of the content
    """
    
    natural_width: float
    natural_height: float
    
    def __post_init__(self) -> None:
        """Validate metrics on construction."""
        if self.natural_width < 0:
            raise ValueError(f"natural_width must be >= 0: {self.natural_width}")
        if self.natural_height < 0:
            raise ValueError(f"natural_height must be >= 0: {self.natural_height}")


@dataclass(frozen=True)
class SliceDescriptor:
    """
    Vertical window of content captured by one tile.
    
    Offsets are relative to the top of the full unrolled content.
    The window is [start_y, end_y]; for the last slice end_y may
    run past the content into the bottom margin.
    
    Attributes:
        index: Position in the tile sequence (0-indexed)
        start_y: Top of the window
        end_y: Bottom of the window
        is_last: Whether this is the final tile
        
    Invariants:
        - index >= 0
        - start_y >= 0
        - end_y > start_y
        
    Example:
        >>> s = SliceDescriptor(index=1, start_y=760, end_y=1560, is_last=False)
        >>> s.height
        800
    """
    
    index: int
    start_y: float
    end_y: float
    is_last: bool
    
    def __post_init__(self) -> None:
        """Validate descriptor on construction."""
        if self.index < 0:
            raise ValueError(f"index must be >= 0: {self.index}")
        if self.start_y < 0:
            raise ValueError(f"start_y must be >= 0: {self.start_y}")
        if self.end_y <= self.start_y:
            raise ValueError(
                f"end_y must be > start_y: {self.end_y} <= {self.start_y}"
            )
    
    @property
    def height(self) -> float:
        """Height of the window."""
        return self.end_y - self.start_y
    
    def overlap_with(self, following: "SliceDescriptor") -> float:
        """Rows shared with the next slice (negative means a gap)."""
        return self.end_y - following.start_y
    
    def to_dict(self) -> dict[str, Any]:
        """Serialize for diagnostics."""
        return {
            "index": self.index,
            "start_y": self.start_y,
            "end_y": self.end_y,
            "height": self.height,
            "is_last": self.is_last,
        }
