"""Terminal graphics capability detection and image encoders."""

import base64
import logging
from io import BytesIO
from typing import Mapping, Optional

from PIL import Image

logger = logging.getLogger(__name__)

IMAGE_MODES = ("auto", "kitty", "iterm2", "blocks", "off")

KITTY_CHUNK_SIZE = 4096
KITTY_CLEAR = "\x1b_Ga=d,q=2\x1b\\"
HALF_BLOCK = "▀"


def probe_capability(mode: str, env: Mapping[str, str], term=None) -> Optional[str]:
    """Pick how visual blocks are drawn: 'kitty', 'iterm2', 'blocks' or None.

    An explicit mode wins; 'auto' inspects the environment and the colour
    depth of ``term`` (a blessed Terminal).
    """
    if mode == "off":
        return None
    if mode in ("kitty", "iterm2", "blocks"):
        return mode

    term_name = env.get("TERM", "")
    program = env.get("TERM_PROGRAM", "")
    if env.get("KITTY_WINDOW_ID") or "kitty" in term_name or program in ("WezTerm", "ghostty"):
        return "kitty"
    if program == "iTerm.app":
        return "iterm2"
    colors = getattr(term, "number_of_colors", 0) if term is not None else 0
    if colors >= 256:
        return "blocks"
    logger.debug(f"No graphics capability detected (TERM={term_name!r}, colors={colors})")
    return None


def block_columns(image: Image.Image, rows: int, max_columns: int) -> int:
    """Columns that keep the image aspect ratio at the given row height."""
    width, height = image.size
    if height <= 0:
        return max(1, max_columns)
    columns = round(rows * 2 * width / height)
    return max(1, min(max_columns, columns))


def crop_rows(image: Image.Image, visible_rows: int, total_rows: int) -> Image.Image:
    """Keep the top visible_rows/total_rows of the image."""
    if visible_rows >= total_rows:
        return image
    width, height = image.size
    keep = max(1, round(height * visible_rows / total_rows))
    return image.crop((0, 0, width, keep))


def _png_base64(image: Image.Image) -> str:
    buffer = BytesIO()
    image.save(buffer, format="PNG")
    return base64.standard_b64encode(buffer.getvalue()).decode("ascii")


def encode_kitty(image: Image.Image, columns: int, rows: int) -> str:
    """Kitty graphics protocol escape placing the image over columns x rows cells."""
    payload = _png_base64(image)
    chunks = [payload[i:i + KITTY_CHUNK_SIZE] for i in range(0, len(payload), KITTY_CHUNK_SIZE)] or [""]
    parts = []
    for i, chunk in enumerate(chunks):
        more = 1 if i + 1 < len(chunks) else 0
        if i == 0:
            parts.append(f"\x1b_Gf=100,a=T,q=2,C=1,c={columns},r={rows},m={more};{chunk}\x1b\\")
        else:
            parts.append(f"\x1b_Gm={more};{chunk}\x1b\\")
    return "".join(parts)


def encode_iterm2(image: Image.Image, columns: int, rows: int) -> str:
    """iTerm2 inline image escape sized in cells."""
    payload = _png_base64(image)
    return (f"\x1b]1337;File=inline=1;width={columns};height={rows};"
            f"preserveAspectRatio=0:{payload}\x07")


def encode_blocks(image: Image.Image, columns: int, rows: int, term) -> list[str]:
    """One string per row of upper-half-block cells, two pixels per cell."""
    small = image.convert("RGBA").resize((columns, rows * 2), Image.Resampling.LANCZOS)
    # Flatten transparency onto black
    background = Image.new("RGBA", small.size, (0, 0, 0, 255))
    pixels = Image.alpha_composite(background, small).convert("RGB").load()
    lines = []
    for row in range(rows):
        cells = []
        for col in range(columns):
            top = pixels[col, row * 2]
            bottom = pixels[col, row * 2 + 1]
            cells.append(term.color_rgb(*top) + term.on_color_rgb(*bottom) + HALF_BLOCK)
        lines.append("".join(cells) + term.normal)
    return lines
