"""Deterministic placeholder icons for servers that send no favicon."""

from __future__ import annotations

import base64
import hashlib
import io
import logging
from typing import Optional, Tuple

from PIL import Image, ImageDraw

from .constants import IDENTICON_BORDER_PX, IDENTICON_CELL_PX, IDENTICON_GRID
from .models import ProtocolType

__all__ = ["identicon_seed", "make_base64_identicon", "render_identicon"]

logger = logging.getLogger(__name__)


def identicon_seed(protocol_type: ProtocolType, address: str) -> str:
    return f"{protocol_type.label}{address}"


def _foreground(digest: bytes) -> Tuple[int, int, int, int]:
    r, g, b = digest[0], digest[1], digest[2]
    # Keep the colour visible against both light and dark widget backgrounds.
    if max(r, g, b) < 64:
        r, g, b = r + 96, g + 96, b + 96
    return r, g, b, 255


def render_identicon(seed: str) -> Image.Image:
    """Draw a mirrored grid identicon on a transparent background.

    The background is left transparent so the host can paint it to match the
    system theme.
    """
    digest = hashlib.sha512(seed.encode("utf-8")).digest()
    color = _foreground(digest)
    half = (IDENTICON_GRID + 1) // 2
    side = IDENTICON_GRID * IDENTICON_CELL_PX + 2 * IDENTICON_BORDER_PX

    image = Image.new("RGBA", (side, side), (0, 0, 0, 0))
    draw = ImageDraw.Draw(image)

    for row in range(IDENTICON_GRID):
        for col in range(half):
            if digest[3 + row * half + col] & 1:
                continue
            for column in {col, IDENTICON_GRID - 1 - col}:
                x0 = IDENTICON_BORDER_PX + column * IDENTICON_CELL_PX
                y0 = IDENTICON_BORDER_PX + row * IDENTICON_CELL_PX
                draw.rectangle(
                    (x0, y0, x0 + IDENTICON_CELL_PX - 1, y0 + IDENTICON_CELL_PX - 1),
                    fill=color,
                )
    return image


def make_base64_identicon(protocol_type: ProtocolType, address: str) -> Optional[str]:
    """Return a base64-encoded PNG identicon for a server, or ``None``.

    The same ``(protocol_type, address)`` always yields the same image.
    """
    try:
        image = render_identicon(identicon_seed(protocol_type, address))
        buffer = io.BytesIO()
        image.save(buffer, format="PNG")
    except (OSError, ValueError) as exc:
        logger.warning("Failed to generate identicon for %s: %s", address, exc)
        return None
    return base64.b64encode(buffer.getvalue()).decode("ascii")
