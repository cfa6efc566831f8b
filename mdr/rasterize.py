"""SVG rasterization with a shared size limit and render cache."""

import hashlib
import logging
from collections import OrderedDict
from io import BytesIO
from typing import Optional

from PIL import Image

from .constants import ViewerConstants
from .model import Resolution
from .resolvers import Rasterizer

logger = logging.getLogger(__name__)


class RasterContext:
    """Size limit and rendered-image cache shared by the rasterizer and image loader.

    Created once by the viewer and passed to both.
    """

    def __init__(self, max_size: int = ViewerConstants.MAX_RASTER_SIZE,
                 cache_entries: int = ViewerConstants.RASTER_CACHE_MAX_ENTRIES):
        self.max_size = max_size
        self.cache_entries = cache_entries
        self._cache: OrderedDict[str, Image.Image] = OrderedDict()

    @staticmethod
    def key_for(svg: str) -> str:
        return hashlib.sha1(svg.encode('utf-8')).hexdigest()

    def get(self, key: str) -> Optional[Image.Image]:
        image = self._cache.get(key)
        if image is not None:
            self._cache.move_to_end(key)
        return image

    def put(self, key: str, image: Image.Image) -> None:
        self._cache[key] = image
        self._cache.move_to_end(key)
        while len(self._cache) > self.cache_entries:
            self._cache.popitem(last=False)

    def fit(self, image: Image.Image) -> Image.Image:
        """Scale down so neither side exceeds max_size."""
        width, height = image.size
        longest = max(width, height)
        if longest <= self.max_size:
            return image
        scale = self.max_size / longest
        size = (max(1, round(width * scale)), max(1, round(height * scale)))
        return image.resize(size, Image.Resampling.LANCZOS)


class CairoRasterizer(Rasterizer):
    """Rasterizes SVG text through cairosvg and decodes the PNG with Pillow."""

    def __init__(self, context: Optional[RasterContext] = None):
        self.context = context or RasterContext()

    def rasterize(self, svg: str) -> Resolution:
        key = self.context.key_for(svg)
        cached = self.context.get(key)
        if cached is not None:
            return Resolution.success(cached)
        try:
            # cairosvg loads the native cairo library on import
            import cairosvg
            png = cairosvg.svg2png(bytestring=svg.encode('utf-8'))
            image = Image.open(BytesIO(png))
            image.load()
        except Exception as e:
            # Malformed SVG surfaces as many exception types from cairosvg and its parsers
            logger.debug(f"SVG rasterization failed: {e}")
            return Resolution.failure(f"cannot rasterize SVG: {e}")
        if image.width == 0 or image.height == 0:
            return Resolution.failure("rasterized SVG has zero size")
        image = self.context.fit(image.convert("RGBA"))
        self.context.put(key, image)
        return Resolution.success(image)
