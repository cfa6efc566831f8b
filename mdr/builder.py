"""Element builder: parsed lines to the flat content element sequence."""

import logging
import math
from dataclasses import dataclass
from typing import Callable, Optional

from .blocks import FENCE, fence_header
from .constants import ViewerConstants
from .inline import IMAGE
from .model import (
    ContentElement,
    ParsedKind,
    ParsedLine,
    Resolution,
    StyledLine,
    StyledRun,
    TextAttributes,
    image_label,
)
from .resolvers import DiagramRenderer, ImageResolver, Rasterizer

logger = logging.getLogger(__name__)

DIAGRAM = TextAttributes(color_class="diagram")


@dataclass
class Resolvers:
    """Collaborators handed to the builder. A None capability disables visuals."""
    image_resolver: Optional[ImageResolver] = None
    diagram_renderer: Optional[DiagramRenderer] = None
    rasterizer: Optional[Rasterizer] = None
    capability: Optional[str] = None


def block_row_height(width: int, height: int) -> Optional[int]:
    """Rows a visual occupies when scaled to the image column budget.

    Returns None for a zero-sized visual.
    """
    if width <= 0 or height <= 0:
        return None
    rows = ViewerConstants.IMAGE_COLUMNS * (height / width) / ViewerConstants.CELL_ASPECT
    rows = math.floor(rows + 0.5)
    return max(ViewerConstants.MIN_BLOCK_ROWS, min(ViewerConstants.MAX_BLOCK_ROWS, rows))


def _guarded(what: str, call: Callable[[], Resolution]) -> Resolution:
    try:
        result = call()
    except Exception as e:
        # Collaborators report faults as values; a crash must not abort a rebuild
        logger.warning(f"{what} raised {type(e).__name__}: {e}")
        return Resolution.failure(str(e) or type(e).__name__)
    if result is None:
        return Resolution.failure(f"{what} returned nothing")
    return result


def _block_from(resolution: Resolution) -> Optional[ContentElement]:
    image = resolution.value
    size = getattr(image, "size", None)
    if not size:
        return None
    rows = block_row_height(*size)
    if rows is None:
        return None
    return ContentElement.block(image, rows)


def boxed_source(source: str) -> list[ContentElement]:
    """Show diagram source as a framed listing when it cannot be drawn."""
    elements = [ContentElement.text(StyledLine.of(StyledRun(fence_header("mermaid"), FENCE)))]
    for line in source.split('\n'):
        elements.append(ContentElement.text(StyledLine.of(StyledRun(f"│ {line}", DIAGRAM))))
    elements.append(ContentElement.text(StyledLine.of(StyledRun(ViewerConstants.FENCE_FOOTER, FENCE))))
    elements.append(ContentElement.text(StyledLine()))
    return elements


def _image_elements(item: ParsedLine, resolvers: Resolvers) -> list[ContentElement]:
    placeholder = ContentElement.placeholder(StyledLine.plain(image_label(item.alt), IMAGE))
    if resolvers.capability is None or resolvers.image_resolver is None:
        return [placeholder]
    result = _guarded("image resolver", lambda: resolvers.image_resolver.resolve(item.url))
    if not result.ok:
        logger.debug(f"Image '{item.url}' not shown: {result.error}")
        return [placeholder]
    block = _block_from(result)
    if block is None:
        logger.debug(f"Image '{item.url}' has no usable size")
        return [placeholder]
    return [block]


def _diagram_elements(item: ParsedLine, resolvers: Resolvers) -> list[ContentElement]:
    if (resolvers.capability is None or resolvers.diagram_renderer is None
            or resolvers.rasterizer is None):
        return boxed_source(item.source)
    svg = _guarded("diagram renderer", lambda: resolvers.diagram_renderer.render(item.source))
    if not svg.ok:
        logger.debug(f"Diagram not rendered: {svg.error}")
        return boxed_source(item.source)
    raster = _guarded("rasterizer", lambda: resolvers.rasterizer.rasterize(svg.value))
    if not raster.ok:
        logger.debug(f"Diagram not rasterized: {raster.error}")
        return boxed_source(item.source)
    block = _block_from(raster)
    if block is None:
        return boxed_source(item.source)
    return [block]


def build_elements(parsed: list[ParsedLine], resolvers: Optional[Resolvers] = None) -> list[ContentElement]:
    """Resolve image and diagram references and flatten everything into elements."""
    resolvers = resolvers or Resolvers()
    elements: list[ContentElement] = []
    for item in parsed:
        if item.kind == ParsedKind.STYLED:
            elements.append(ContentElement.text(item.line))
        elif item.kind == ParsedKind.IMAGE_REF:
            elements.extend(_image_elements(item, resolvers))
        elif item.kind == ParsedKind.DIAGRAM_REF:
            elements.extend(_diagram_elements(item, resolvers))
    return elements
