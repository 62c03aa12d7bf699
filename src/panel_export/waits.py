"""
Module: waits

Purpose:
    Default suspension points for the export pipeline. Each is a
    cooperative await on the running event loop, never a spin-loop.

Key Functions:
    - next_frame(): Yield to the loop once
    - settle_layout(): Content-stability barrier (two frames)
    - wait_for_resources(): Await every pending image/font loader

Used By:
    - panel_export.controller: Injected barrier defaults
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Protocol, Sequence

from .staging.document import ResourceLoader

logger = logging.getLogger(__name__)

StabilityWait = Callable[[], Awaitable[None]]


class HasResources(Protocol):
    def pending_resources(self) -> Sequence[ResourceLoader]:
        ...


ResourceWait = Callable[[HasResources], Awaitable[None]]


async def next_frame() -> None:
    """Yield control for one loop iteration."""
    await asyncio.sleep(0)


async def settle_layout(frames: int = 2) -> None:
    """Wait for pending layout work to flush."""
    for _ in range(frames):
        await next_frame()


async def wait_for_resources(node: HasResources) -> None:
    """
    Wait until every resource of `node` has finished loading.
    
    A loader that raises still counts as finished; the failure is
    logged and capture proceeds with whatever did load.
    """
    loaders = node.pending_resources()
    if not loaders:
        return
    
    results = await asyncio.gather(
        *(loader() for loader in loaders),
        return_exceptions=True,
    )
    failures = [r for r in results if isinstance(r, BaseException)]
    for failure in failures:
        logger.warning(f"Resource failed to load, continuing: {failure}")
    logger.debug(f"Resources settled: {len(results) - len(failures)}/{len(results)} loaded")
