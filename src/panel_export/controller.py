"""
Module: controller

Purpose:
    Orchestrate a complete image export.
    Settle → Measure → Stage → Plan → Capture each slice → Release

Key Functions:
    - export_image(): Coroutine entry point
    - export_image_sync(): Blocking wrapper around export_image()

Key Classes:
    - ImageExporter: Export orchestrator with injected collaborators

Concurrency:
    One logical task. Slices are captured strictly one at a time in
    ascending index order because they share a single slice container.
    Callers must not run two exports against the same Document at once.

Dependencies:
    - panel_export.slicing: Slice planning
    - panel_export.staging: Off-screen copies
    - panel_export.output: Rasterization

Used By:
    - Host applications (download / clipboard / print triggers)
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import List, Optional, Union

from .config import ExportConfig
from .diagnostics import DiagnosticsSink, LoggingDiagnostics
from .errors import RenderError, StagingError
from .output.renderer import PillowRenderer, Renderer
from .slicing import SliceDescriptor, plan_slices
from .staging import ContentStager, Document, StagedHandle
from . import waits
from .waits import ResourceWait, StabilityWait, next_frame, settle_layout

logger = logging.getLogger(__name__)

# One encoded image (no slicing) or one per slice in index order
ExportResult = Union[bytes, List[bytes]]


class ImageExporter:
    """
    Export orchestrator.
    
    Collaborators are injected so hosts can swap in a browser-backed
    renderer or real layout/resource barriers.
    
    Attributes:
        document: Live document holding the content nodes
        renderer: Rasterization adapter (Pillow by default)
        
    Example:
        >>> exporter = ImageExporter(Document([ImageNode("output", img)]))
        >>> tiles = await exporter.export_image(ExportConfig())
        >>> len(tiles)
        3
    """
    
    def __init__(
        self,
        document: Document,
        renderer: Optional[Renderer] = None,
        *,
        wait_for_stable: Optional[StabilityWait] = None,
        wait_for_resources: Optional[ResourceWait] = None,
        diagnostics: Optional[DiagnosticsSink] = None,
    ) -> None:
        self.document = document
        self.renderer = renderer if renderer is not None else PillowRenderer()
        self._stager = ContentStager(document)
        self._wait_for_stable = wait_for_stable or settle_layout
        self._wait_for_resources = wait_for_resources or waits.wait_for_resources
        self._diagnostics = diagnostics if diagnostics is not None else LoggingDiagnostics()
    
    async def export_image(self, config: ExportConfig) -> ExportResult:
        """
        Export content to one image or an ordered list of tiles.
        
        Pipeline:
        1. Wait for content to be stable
        2. Measure natural content size
        3. Resolve output width
        4. Stage an off-screen copy at content width
        5. Plan slices (or one whole-content window)
        6. Capture each window sequentially
        7. Release staging resources, always
        
        Args:
            config: Export configuration (read-only)
            
        Returns:
            bytes when slicing is disabled, otherwise a list of
            bytes in ascending slice order
            
        Raises:
            StagingError: Content missing, not duplicable, or empty
            RenderError: A slice failed to rasterize; carries the
                slice index and total count. No partial result.
        """
        start_time = time.perf_counter()
        margins = config.margins
        
        await self._wait_for_stable()
        
        metrics = self._stager.measure(config.content_id)
        output_width = config.resolve_output_width(metrics)
        content_width = config.content_width(metrics)
        self._diagnostics.record(
            "measured",
            content_id=config.content_id,
            natural_width=metrics.natural_width,
            natural_height=metrics.natural_height,
            output_width=output_width,
        )
        
        handle = self._stager.stage(
            config.content_id,
            content_width,
            config.background_color,
            margins=margins,
        )
        try:
            await self._wait_for_resources(handle.container)
            if config.settle_delay:
                await asyncio.sleep(config.settle_delay)
            
            content_height = handle.content_height
            if content_height <= 0:
                raise StagingError(f"Content {config.content_id!r} has no height to export")
            self._diagnostics.record(
                "staged",
                container_width=handle.output_width,
                container_height=handle.container.height,
                content_height=content_height,
                resource_count=len(handle.container.pending_resources()),
            )
            
            if not config.slice.enabled:
                image = await self._capture(handle, None, config, slice_count=1)
                logger.info(
                    f"Exported {config.content_id!r} as single image "
                    f"in {time.perf_counter() - start_time:.2f}s"
                )
                return image
            
            slices = plan_slices(
                content_height,
                config.slice.slice_height,
                config.slice.redundancy_percent,
                top_margin=margins.top,
                bottom_margin=margins.bottom,
            )
            self._diagnostics.record(
                "planned",
                slice_count=len(slices),
                slices=[s.to_dict() for s in slices],
            )
            logger.info(f"Planned {len(slices)} slices for {content_height}px of content")
            
            results: List[bytes] = []
            for descriptor in slices:
                results.append(
                    await self._capture(handle, descriptor, config, slice_count=len(slices))
                )
            
            logger.info(
                f"Exported {config.content_id!r} as {len(results)} slices "
                f"in {time.perf_counter() - start_time:.2f}s"
            )
            return results
        finally:
            self._stager.release(handle)
            self._diagnostics.record("released", content_id=config.content_id)
    
    async def _capture(
        self,
        handle: StagedHandle,
        descriptor: Optional[SliceDescriptor],
        config: ExportConfig,
        *,
        slice_count: int,
    ) -> bytes:
        """Position, settle and rasterize one window."""
        index = descriptor.index if descriptor is not None else 0
        container = self._stager.position_for_capture(handle, descriptor)
        
        await self._wait_for_resources(container)
        await next_frame()
        if descriptor is not None and config.slice_settle_delay:
            await asyncio.sleep(config.slice_settle_delay)
        
        pixel_width = _device_pixels(container.width, config.scale)
        if slice_count > 1:
            # Tiles share one fixed height; spare rows are background
            pixel_height = _device_pixels(config.slice.slice_height, config.scale)
        else:
            pixel_height = _device_pixels(container.height, config.scale)
        try:
            data = await self.renderer.rasterize(
                container,
                pixel_width,
                pixel_height,
                config.scale,
                config.background_color,
            )
        except Exception as e:
            logger.error(f"Slice {index + 1}/{slice_count} failed to export: {e}")
            raise RenderError(
                f"Slice {index} of {slice_count} failed to render: {e}",
                slice_index=index,
                slice_count=slice_count,
                cause=e,
            ) from e
        
        self._diagnostics.record(
            "captured",
            index=index,
            pixel_width=pixel_width,
            pixel_height=pixel_height,
            byte_count=len(data),
        )
        logger.debug(f"Captured slice {index + 1}/{slice_count} ({pixel_width}x{pixel_height})")
        return data


def _device_pixels(css_pixels: float, scale: float) -> int:
    return max(1, int(round(css_pixels * scale)))


async def export_image(
    document: Document,
    config: Optional[ExportConfig] = None,
    *,
    renderer: Optional[Renderer] = None,
    wait_for_stable: Optional[StabilityWait] = None,
    wait_for_resources: Optional[ResourceWait] = None,
    diagnostics: Optional[DiagnosticsSink] = None,
) -> ExportResult:
    """
    Export content from a document.
    
    Args:
        document: Document holding the content node
        config: Export configuration (defaults to ExportConfig())
        renderer: Rasterization adapter
        wait_for_stable: Content-stability barrier
        wait_for_resources: Resource-ready barrier
        diagnostics: Event sink
        
    Returns:
        ExportResult (bytes or list of bytes)
    """
    exporter = ImageExporter(
        document,
        renderer,
        wait_for_stable=wait_for_stable,
        wait_for_resources=wait_for_resources,
        diagnostics=diagnostics,
    )
    return await exporter.export_image(config if config is not None else ExportConfig())


def export_image_sync(
    document: Document,
    config: Optional[ExportConfig] = None,
    **kwargs,
) -> ExportResult:
    """Blocking wrapper for callers without a running event loop."""
    return asyncio.run(export_image(document, config, **kwargs))
