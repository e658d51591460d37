"""Raster image blocks for logos and footers.

Images are rendered onto a paper-wide white canvas, thresholded to 1 bit
and packed into a single ESC/POS ``GS v 0`` raster command.
"""

import logging
import os

from PIL import Image, ImageChops, ImageDraw, ImageEnhance, ImageFont, ImageOps

from . import config
from .encoder import RASTER_IMAGE
from .errors import ImageLoadError

WHITE = (255, 255, 255, 255)
BLACK = (0, 0, 0, 255)


def load_image(image_path):
    """Open and decode an image as RGBA.

    Raises:
        ImageLoadError: File missing, unreadable or not an image
    """
    try:
        with Image.open(image_path) as img:
            img.load()
            return img.convert("RGBA")
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        raise ImageLoadError(f"Cannot load image {image_path}: {e}") from e


def autocrop(img):
    """Crop borders that have the same colour as the top-left pixel."""
    background = Image.new(img.mode, img.size, img.getpixel((0, 0)))
    diff = ImageChops.difference(img, background)
    mask = diff.getchannel(0)
    for band in diff.split()[1:]:
        mask = ImageChops.lighter(mask, band)
    bbox = mask.getbbox()
    return img.crop(bbox) if bbox else img


def _load_font():
    try:
        return ImageFont.truetype(config.INLINE_FONT_PATH, config.INLINE_FONT_SIZE)
    except OSError:
        logging.warning("Could not load TTF font; falling back to default font")
        return ImageFont.load_default()


def render_inline_text(text, min_height):
    """Render text black on white, vertically centered in at least min_height px."""
    font = _load_font()
    probe = ImageDraw.Draw(Image.new("L", (1, 1)))
    bbox = probe.textbbox((0, 0), text, font=font)
    text_width, text_height = max(1, bbox[2]), max(1, bbox[3])

    text_img = Image.new("RGBA", (text_width, max(min_height, text_height)), WHITE)
    draw = ImageDraw.Draw(text_img)
    draw.text((0, max(0, (min_height - text_height) // 2)), text, font=font, fill=BLACK)
    return text_img


def to_monochrome(canvas):
    """Threshold an RGBA canvas to a mode '1' image where set bits are black.

    A pixel is black when it is opaque (alpha > 128) and dark (grey < 128
    after contrast and 2-level posterization).
    """
    grey = canvas.convert("L")
    grey = ImageEnhance.Contrast(grey).enhance(config.IMAGE_CONTRAST)
    grey = ImageOps.posterize(grey, 1)
    dark = grey.point(lambda v: 255 if v < 128 else 0)
    opaque = canvas.getchannel("A").point(lambda v: 255 if v > 128 else 0)
    return ImageChops.multiply(dark, opaque).convert("1", dither=Image.Dither.NONE)


def pack_raster(mono):
    """Prefix packed 1-bit rows with the GS v 0 header.

    Mode '1' images are stored 8 pixels per byte, MSB first, row-major,
    which is the layout the printer expects.
    """
    width_bytes = (mono.width + 7) // 8
    if mono.height > 0xFFFF or width_bytes > 0xFFFF:
        raise ImageLoadError(f"Image too large for a raster block: {mono.size}")
    header = RASTER_IMAGE + width_bytes.to_bytes(2, "little") + mono.height.to_bytes(2, "little")
    return header + mono.tobytes()


def _rasterize(image_path, paper_width_dots, exact_width, exact_height, inline_text):
    img = autocrop(load_image(image_path))

    if exact_width or exact_height:
        width, height = img.size
        new_width = exact_width or max(1, round(width * exact_height / height))
        new_height = exact_height or max(1, round(height * exact_width / width))
        img = img.resize((new_width, new_height), Image.LANCZOS)

    item_width, item_height = img.size
    text_img = None
    if inline_text:
        text_img = render_inline_text(inline_text, item_height)
        item_width += text_img.width + config.INLINE_TEXT_GAP_PX
        item_height = max(item_height, text_img.height)

    width_bytes = (paper_width_dots + 7) // 8
    padded_width = width_bytes * 8
    canvas = Image.new("RGBA", (padded_width, item_height), WHITE)

    start_x = (padded_width - item_width) // 2
    canvas.paste(img, (start_x, (item_height - img.height) // 2), img)
    if text_img is not None:
        canvas.paste(text_img, (start_x + img.width + config.INLINE_TEXT_GAP_PX, 0), text_img)

    return pack_raster(to_monochrome(canvas))


def rasterize(image_path, paper_width_dots=None, exact_width=None, exact_height=None, inline_text=None):
    """Convert an image file into an ESC/POS raster block.

    Args:
        image_path (str): Path of the image file
        paper_width_dots (int): Canvas width in dots (rounded up to a
            multiple of 8); defaults to PAPER_WIDTH_DOTS
        exact_width (int): Resize to this width (optional)
        exact_height (int): Resize to this height (optional); the unset
            axis keeps the aspect ratio
        inline_text (str): Text printed to the right of the image (optional)

    Returns:
        bytes: Raster block, or b"" when the image cannot be used
    """
    paper_width_dots = paper_width_dots or config.PAPER_WIDTH_DOTS
    try:
        return _rasterize(image_path, paper_width_dots, exact_width, exact_height, inline_text)
    except ImageLoadError as e:
        logging.warning("Image unavailable, printing without it: %s", e)
        return b""


def find_asset(name):
    """Locate an asset file in ASSETS_DIR, falling back to DEFAULT_ASSETS_DIR."""
    for directory in (config.ASSETS_DIR, config.DEFAULT_ASSETS_DIR):
        path = os.path.join(directory, name)
        if os.path.isfile(path):
            return path
    return None


def load_asset_image(name, **options):
    """Rasterize a named asset; b"" when it is missing or unreadable."""
    path = find_asset(name)
    if path is None:
        logging.debug("Asset %s not found in %s or %s", name, config.ASSETS_DIR, config.DEFAULT_ASSETS_DIR)
        return b""
    return rasterize(path, **options)
