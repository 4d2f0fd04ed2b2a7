from __future__ import annotations

import io

from PIL import Image, UnidentifiedImageError

from topdf.errors import ParseError

from .model import Document, ImageItem

# formats reportlab can embed without re-encoding
_PASSTHROUGH = {"PNG": "png", "JPEG": "jpeg"}


def read_image(data: bytes) -> Document:
    """Decode an image fully and wrap it in a single ImageItem.

    Doxygen:
    - @param data: PNG, JPEG or BMP bytes.
    - @return: Document holding one ImageItem with intrinsic width/height.
    - @throws ParseError: If the data is not a decodable image or is truncated.
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            fmt = (img.format or "").upper()
            width, height = img.size
            if width <= 0 or height <= 0:
                raise ValueError("image has no pixels")
            if fmt in _PASSTHROUGH:
                return Document(blocks=[ImageItem(data=data, width=width, height=height, fmt=_PASSTHROUGH[fmt])])
            if img.mode not in ("RGB", "RGBA", "L", "LA", "P"):
                img = img.convert("RGBA" if "A" in img.getbands() else "RGB")
            out = io.BytesIO()
            img.save(out, format="PNG")
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError, Image.DecompressionBombError) as exc:
        raise ParseError("Image", str(exc) or type(exc).__name__) from exc
    return Document(blocks=[ImageItem(data=out.getvalue(), width=width, height=height, fmt="png")])
