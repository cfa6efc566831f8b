"""Narrow interfaces for the collaborators the element builder calls.

Every method returns a Resolution; implementations turn their own faults
into failure values instead of raising.
"""

from abc import ABC, abstractmethod

from .model import Resolution


class ImageResolver(ABC):
    """Turns an image reference (path, data URI or URL) into a decoded image."""

    @abstractmethod
    def resolve(self, ref: str) -> Resolution:
        pass


class DiagramRenderer(ABC):
    """Renders diagram source text to SVG text."""

    @abstractmethod
    def render(self, source: str) -> Resolution:
        pass


class Rasterizer(ABC):
    """Converts SVG text into a decoded raster image."""

    @abstractmethod
    def rasterize(self, svg: str) -> Resolution:
        pass
