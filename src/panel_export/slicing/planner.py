"""
Module: slicing.planner

Purpose:
    Split tall content into overlapping tile windows. Pure functions,
    no side effects: identical inputs always give identical plans.

Key Functions:
    - plan_slices(): Main planning function
    - whole_content_slice(): Window used by the non-slicing path

Algorithm:
    1. overlap = slice_height * redundancy / 100
    2. Tiles advance by effective_height = slice_height - overlap
    3. Content no taller than one tile gets a single whole-content window
    4. Otherwise use the fewest fixed-height tiles that reach the content
       bottom; the first tile shows the top margin above its content
    5. Each window is capped at content height + overlap
    6. The last window also absorbs the bottom margin, up to the tile height

Dependencies:
    - panel_export.config: Slice parameter validation
    - panel_export.slicing.models: SliceDescriptor

Used By:
    - panel_export.controller: Export orchestration
"""

from __future__ import annotations

import logging
import math
from typing import List

from panel_export.config import DEFAULT_REDUNDANCY_PERCENT, validate_slice_params
from panel_export.errors import ConfigError

from .models import SliceDescriptor

logger = logging.getLogger(__name__)

# Absorbs float noise in the tile count (e.g. 2.0000000001 -> 2);
# plan_slices adds a tile back if this under-counts
_COUNT_EPSILON = 1e-9


def whole_content_slice(natural_height: float, bottom_margin: float = 0) -> SliceDescriptor:
    """
    Single window spanning all content plus the bottom margin.
    
    Args:
        natural_height: Full content height
        bottom_margin: Margin appended below the content
        
    Returns:
        SliceDescriptor [0, natural_height + bottom_margin], marked last
    """
    _validate_extent(natural_height, bottom_margin)
    return SliceDescriptor(
        index=0,
        start_y=0,
        end_y=natural_height + bottom_margin,
        is_last=True,
    )


def plan_slices(
    natural_height: float,
    slice_height: float,
    redundancy_percent: float = DEFAULT_REDUNDANCY_PERCENT,
    *,
    top_margin: float = 0,
    bottom_margin: float = 0,
) -> List[SliceDescriptor]:
    """
    Plan the tile windows for content of a given height.
    
    Consecutive windows share `overlap` rows so independently captured
    tiles can be reassembled without a seam. When the content needs more
    than one tile, every tile is exactly slice_height tall once its
    margins are added: the first window gives up `top_margin` rows to the
    top margin, and the last window absorbs as much of the bottom margin
    as fits, the rest of the tile being background.
    
    Args:
        natural_height: Full unrolled content height (> 0)
        slice_height: Tile height (> 0)
        redundancy_percent: Overlap as a percentage of slice_height, [0, 100)
        top_margin: Margin painted above the first tile's content
        bottom_margin: Extra height appended to the last window
        
    Returns:
        Descriptors in ascending index order. Exactly one descriptor,
        identical to whole_content_slice(), when the content fits in
        a single tile.
        
    Raises:
        ConfigError: If slice_height or redundancy_percent is invalid,
            or top_margin leaves the first tile no room to advance
        ValueError: If natural_height <= 0 or a margin is negative
        
    Example:
        >>> [(s.start_y, s.end_y) for s in plan_slices(2000, 800, 5)]
        [(0, 800), (760.0, 1560.0), (1520.0, 2040.0)]
    """
    validate_slice_params(slice_height, redundancy_percent)
    _validate_extent(natural_height, bottom_margin)
    if top_margin < 0:
        raise ValueError(f"top_margin must be non-negative: {top_margin}")
    
    if natural_height <= slice_height:
        return [whole_content_slice(natural_height, bottom_margin)]
    
    overlap = slice_height * redundancy_percent / 100
    effective_height = slice_height - overlap
    if top_margin >= effective_height:
        raise ConfigError(
            f"top margin {top_margin}px must be smaller than the tile advance "
            f"({effective_height}px)"
        )
    
    def start_of(i: int) -> float:
        return 0 if i == 0 else i * effective_height - top_margin
    
    slice_count = max(2, 1 + math.ceil(
        (natural_height + top_margin - slice_height) / effective_height - _COUNT_EPSILON
    ))
    # The epsilon may round down across a real boundary; add the missing tile
    while start_of(slice_count - 1) + slice_height < natural_height:
        slice_count += 1
    
    limit = natural_height + overlap
    slices: List[SliceDescriptor] = []
    for i in range(slice_count):
        is_last = i == slice_count - 1
        start_y = start_of(i)
        tile_end = start_y + slice_height - (top_margin if i == 0 else 0)
        end_y = min(tile_end, limit)
        if is_last:
            end_y = min(end_y + bottom_margin, tile_end)
        slices.append(SliceDescriptor(
            index=i,
            start_y=start_y,
            end_y=end_y,
            is_last=is_last,
        ))
    
    logger.debug(
        f"Planned {slice_count} slices for {natural_height}px "
        f"(slice {slice_height}px, overlap {overlap}px)"
    )
    return slices


def _validate_extent(natural_height: float, bottom_margin: float) -> None:
    if natural_height <= 0:
        raise ValueError(f"natural_height must be positive: {natural_height}")
    if bottom_margin < 0:
        raise ValueError(f"bottom_margin must be non-negative: {bottom_margin}")
