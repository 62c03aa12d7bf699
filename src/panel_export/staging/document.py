"""
Module: staging.document

Purpose:
    Live-view model the exporter reads from. A Document holds content
    nodes by id and the staged containers currently attached to it.

Key Classes:
    - ContentNode: Abstract content that can be measured, laid out and cloned
    - ImageNode: Content backed by an already-rendered Pillow image
    - Document: Node registry plus attached staged containers

Dependencies:
    - PIL: Image layout
    - panel_export.slicing.models: ContentMetrics

Used By:
    - panel_export.staging.stager: Staging and release
    - panel_export.controller: Export entry point
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Sequence, TYPE_CHECKING

from PIL import Image

from panel_export.slicing.models import ContentMetrics

if TYPE_CHECKING:
    from .containers import StagedContainer

logger = logging.getLogger(__name__)

# Zero-arg coroutine factory that completes once an image/font has loaded
ResourceLoader = Callable[[], Awaitable[Any]]


class ContentNode(ABC):
    """
    Abstract content node.
    
    Implementations decide how content reflows to a width. The
    exporter only ever works on clones, never on the live node.
    """
    
    node_id: str
    
    @abstractmethod
    def measure(self) -> ContentMetrics:
        """
        Measure the natural size of the content.
        
        Returns:
            ContentMetrics with natural width and full height
        """
    
    @abstractmethod
    def layout(self, width: int) -> Image.Image:
        """
        Lay the content out at a target width.
        
        Args:
            width: Content width in pixels
            
        Returns:
            New image `width` pixels wide holding the full content
        """
    
    @abstractmethod
    def clone(self) -> "ContentNode":
        """Return a detached deep copy of this node."""
    
    def pending_resources(self) -> Sequence[ResourceLoader]:
        """Loaders for images/fonts this node references."""
        return ()


class ImageNode(ContentNode):
    """
    Content node backed by a pre-rendered image.
    
    Laying out at a different width scales the image proportionally,
    so the content height follows the width.
    
    Example:
        >>> node = ImageNode("output", Image.new("RGB", (400, 1000)))
        >>> node.layout(200).size
        (200, 500)
    """
    
    def __init__(
        self,
        node_id: str,
        image: Image.Image,
        resources: Iterable[ResourceLoader] = (),
    ) -> None:
        self.node_id = node_id
        self._image = image
        self._resources = tuple(resources)
    
    @property
    def image(self) -> Image.Image:
        return self._image
    
    def measure(self) -> ContentMetrics:
        return ContentMetrics(
            natural_width=self._image.width,
            natural_height=self._image.height,
        )
    
    def layout(self, width: int) -> Image.Image:
        if width <= 0:
            raise ValueError(f"layout width must be positive: {width}")
        if width == self._image.width:
            return self._image.copy()
        
        scale_factor = width / self._image.width
        new_height = max(1, int(round(self._image.height * scale_factor)))
        return self._image.resize((width, new_height), Image.Resampling.LANCZOS)
    
    def clone(self) -> "ImageNode":
        return ImageNode(self.node_id, self._image.copy(), self._resources)
    
    def pending_resources(self) -> Sequence[ResourceLoader]:
        return self._resources


class Document:
    """
    Live document: content nodes plus attached staged containers.
    
    Attached containers model off-screen nodes appended to the page
    body during an export. After every export call the staged list
    must be empty again.
    
    Example:
        >>> doc = Document([ImageNode("output", img)])
        >>> doc.get("output") is not None
        True
        >>> doc.staged_nodes
        ()
    """
    
    def __init__(self, nodes: Iterable[ContentNode] = ()) -> None:
        self._nodes: Dict[str, ContentNode] = {}
        self._staged: List[StagedContainer] = []
        for node in nodes:
            self.add(node)
    
    def add(self, node: ContentNode) -> None:
        """Register (or replace) a content node by its id."""
        self._nodes[node.node_id] = node
    
    def get(self, node_id: str) -> Optional[ContentNode]:
        """Look up a content node, None if absent."""
        return self._nodes.get(node_id)
    
    def remove(self, node_id: str) -> None:
        self._nodes.pop(node_id, None)
    
    @property
    def staged_nodes(self) -> tuple[StagedContainer, ...]:
        """Staged containers currently attached."""
        return tuple(self._staged)
    
    def attach(self, container: StagedContainer) -> None:
        """Append a staged container to the document body."""
        if container in self._staged:
            raise ValueError("Container already attached")
        self._staged.append(container)
    
    def detach(self, container: StagedContainer) -> None:
        """Remove a staged container. No-op if not attached."""
        if container in self._staged:
            self._staged.remove(container)
        else:
            logger.debug("Detach requested for container that is not attached")
