"""
Module: staging.stager

Purpose:
    Produce detached, off-screen copies of content sized for export,
    position them for each capture, and tear them down afterwards.

Key Classes:
    - ContentStager: stage / position_for_capture / release
    - StagedHandle: Everything one export attached to the document

Lifecycle:
    stage() attaches the main container. The first sliced capture
    attaches a dedicated slice container. release() detaches both,
    exactly once per handle.

Dependencies:
    - panel_export.staging.document: Document, ContentNode
    - panel_export.staging.containers: StagedNode, StagedContainer

Used By:
    - panel_export.controller: Export orchestration
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from panel_export.config import Margins
from panel_export.errors import StagingError
from panel_export.slicing.models import ContentMetrics, SliceDescriptor

from .containers import StagedContainer, StagedNode
from .document import ContentNode, Document

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class StagedHandle:
    """
    Staging resources owned by one export call.
    
    Attributes:
        content_id: Id of the staged content node
        node: Laid-out clone of the content
        margins: Margins applied by the containers
        container: Main container (whole-content capture)
        slice_container: Per-slice container, created on first sliced capture
        released: True once release() has run
    """
    
    content_id: str
    node: StagedNode
    margins: Margins
    container: StagedContainer
    slice_container: Optional[StagedContainer] = None
    released: bool = False
    attached: List[StagedContainer] = field(default_factory=list)
    
    @property
    def output_width(self) -> int:
        return self.container.width
    
    @property
    def content_width(self) -> int:
        return self.node.width
    
    @property
    def content_height(self) -> int:
        """Laid-out height of the staged content."""
        return self.node.height


class ContentStager:
    """
    Stages content from a Document for capture.
    
    Example:
        >>> stager = ContentStager(document)
        >>> handle = stager.stage("output", 520, "#fff", margins=Margins())
        >>> try:
        ...     container = stager.position_for_capture(handle)
        ... finally:
        ...     stager.release(handle)
    """
    
    def __init__(self, document: Document) -> None:
        self._document = document
    
    @property
    def document(self) -> Document:
        return self._document
    
    def measure(self, content_id: str) -> ContentMetrics:
        """
        Measure the live content node.
        
        Raises:
            StagingError: If the node does not exist
        """
        return self._lookup(content_id).measure()
    
    def stage(
        self,
        content_id: str,
        width: int,
        background_color: str,
        *,
        margins: Optional[Margins] = None,
    ) -> StagedHandle:
        """
        Create an off-screen copy of content laid out at `width`.
        
        Args:
            content_id: Id of the node to copy
            width: Content width (output width minus horizontal margins)
            background_color: Container background
            margins: Container padding (defaults to no margins)
            
        Returns:
            StagedHandle that must be passed to release()
            
        Raises:
            StagingError: If the node is missing or cannot be duplicated.
                Nothing is left attached in that case.
        """
        margins = margins if margins is not None else Margins.uniform(0)
        source = self._lookup(content_id)
        
        try:
            clone = source.clone()
            image = clone.layout(width)
        except Exception as e:
            raise StagingError(f"Could not stage content {content_id!r}: {e}") from e
        
        node = StagedNode(source=clone, image=image)
        container = StagedContainer(
            width=width + margins.horizontal,
            background_color=background_color,
            padding=margins,
            child=node,
        )
        handle = StagedHandle(
            content_id=content_id,
            node=node,
            margins=margins,
            container=container,
        )
        self._attach(handle, container)
        
        logger.info(
            f"Staged {content_id!r}: {node.width}x{node.height} content "
            f"in {container.width}px container"
        )
        return handle
    
    def position_for_capture(
        self,
        handle: StagedHandle,
        descriptor: Optional[SliceDescriptor] = None,
    ) -> StagedContainer:
        """
        Position staged content for the next capture.
        
        Without a descriptor, the main container is brought on-screen with
        full margins. With a descriptor, a fresh clone is re-parented into
        the slice container and shifted up by its start_y so exactly
        [start_y, end_y] is visible. Only slice 0 carries the top margin;
        the bottom margin is already part of the last slice window.
        
        Args:
            handle: Handle returned by stage()
            descriptor: Window to capture, or None for the whole content
            
        Returns:
            The container to rasterize
            
        Raises:
            StagingError: If the handle was already released
        """
        if handle.released:
            raise StagingError(f"Staged content {handle.content_id!r} already released")
        
        if descriptor is None:
            container = handle.container
            container.translate_y = 0
            container.window_height = None
            container.offscreen = False
            return container
        
        if handle.slice_container is None:
            handle.slice_container = StagedContainer(
                width=handle.output_width,
                background_color=handle.container.background_color,
            )
            self._attach(handle, handle.slice_container)
        
        container = handle.slice_container
        start = int(round(descriptor.start_y))
        end = int(round(descriptor.end_y))
        container.padding = Margins(
            top=handle.margins.top if descriptor.index == 0 else 0,
            right=handle.margins.right,
            bottom=0,
            left=handle.margins.left,
        )
        container.replace_child(handle.node.clone())
        container.translate_y = start
        container.window_height = max(1, end - start)
        container.offscreen = False
        
        logger.debug(
            f"Positioned slice {descriptor.index} [{start}, {end}] "
            f"-> {container.width}x{container.height}"
        )
        return container
    
    def release(self, handle: StagedHandle) -> None:
        """
        Detach every container attached for this handle.
        
        Safe to call more than once; only the first call does work.
        """
        if handle.released:
            logger.warning(f"Staged content {handle.content_id!r} released twice")
            return
        
        for container in handle.attached:
            container.child = None
            self._document.detach(container)
        handle.attached.clear()
        handle.slice_container = None
        handle.released = True
        logger.debug(f"Released staged content {handle.content_id!r}")
    
    def _lookup(self, content_id: str) -> ContentNode:
        node = self._document.get(content_id)
        if node is None:
            raise StagingError(f"Content node not found: {content_id!r}")
        return node
    
    def _attach(self, handle: StagedHandle, container: StagedContainer) -> None:
        self._document.attach(container)
        handle.attached.append(container)
