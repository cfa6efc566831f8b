"""Image loading from local paths, data URIs and http(s) URLs."""

import base64
import logging
from io import BytesIO
from pathlib import Path
from typing import Optional
from urllib.parse import unquote, unquote_to_bytes, urlparse

import httpx
from PIL import Image, UnidentifiedImageError

from .constants import ViewerConstants
from .model import Resolution
from .resolvers import ImageResolver, Rasterizer

logger = logging.getLogger(__name__)


def decode_data_uri(uri: str) -> bytes:
    """Payload of a ``data:`` URI, base64 or percent-encoded."""
    header, sep, payload = uri[len("data:"):].partition(',')
    if not sep:
        raise ValueError("data URI has no payload")
    if header.endswith(";base64"):
        return base64.b64decode(payload, validate=False)
    return unquote_to_bytes(payload)


def looks_like_svg(ref: str, data: bytes) -> bool:
    if ref.lower().split('?', 1)[0].endswith(".svg") or ref.startswith("data:image/svg"):
        return True
    head = data[:512].lstrip().lower()
    return head.startswith(b"<svg") or (head.startswith(b"<?xml") and b"<svg" in data[:2048].lower())


class ImageLoader(ImageResolver):
    """Resolves image references relative to the document directory."""

    def __init__(self, base_dir: Path, rasterizer: Optional[Rasterizer] = None,
                 timeout: float = ViewerConstants.FETCH_TIMEOUT):
        self.base_dir = Path(base_dir)
        self.rasterizer = rasterizer
        self.timeout = timeout

    def _local_path(self, ref: str) -> Path:
        if ref.startswith("file://"):
            return Path(unquote(urlparse(ref).path))
        path = Path(unquote(ref)).expanduser()
        if not path.is_absolute():
            path = self.base_dir / path
        return path

    def _fetch(self, url: str) -> bytes:
        response = httpx.get(url, timeout=self.timeout, follow_redirects=True)
        response.raise_for_status()
        return response.content

    def _read(self, ref: str) -> bytes:
        if ref.startswith("data:"):
            return decode_data_uri(ref)
        if ref.startswith(("http://", "https://")):
            return self._fetch(ref)
        return self._local_path(ref).read_bytes()

    def resolve(self, ref: str) -> Resolution:
        if not ref:
            return Resolution.failure("empty image reference")
        try:
            data = self._read(ref)
        except (OSError, ValueError, httpx.HTTPError) as e:
            logger.debug(f"Could not read image {ref[:80]}: {e}")
            return Resolution.failure(str(e))

        if looks_like_svg(ref, data):
            if self.rasterizer is None:
                return Resolution.failure("no SVG rasterizer available")
            return self.rasterizer.rasterize(data.decode('utf-8', errors='replace'))

        try:
            image = Image.open(BytesIO(data))
            image.load()
        except (UnidentifiedImageError, OSError, Image.DecompressionBombError) as e:
            logger.debug(f"Could not decode image {ref[:80]}: {e}")
            return Resolution.failure(str(e))
        if image.width == 0 or image.height == 0:
            return Resolution.failure("image has zero size")
        return Resolution.success(image)
