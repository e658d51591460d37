"""Configuration module for the stampa receipt printer service.

Loads environment variables and sets up receipt geometry, network timeouts,
queue timing and asset locations.
"""

import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _optional_float(name):
    value = os.environ.get(name)
    return float(value) if value else None


# --- Order feed (ntfy) ---
DEFAULT_NTFY_HOST = os.environ.get("NTFY_HOST")
DEFAULT_NTFY_TOPIC = os.environ.get("NTFY_TOPIC")
ERROR_NTFY_TOPIC = os.environ.get("ERROR_NTFY_TOPIC")

# Full URL used for "job queued" notices; derived from host/topic when unset
ERROR_NTFY_URL = os.environ.get("ERROR_NTFY_URL")
if not ERROR_NTFY_URL and DEFAULT_NTFY_HOST and ERROR_NTFY_TOPIC:
    ERROR_NTFY_URL = f"{DEFAULT_NTFY_HOST.rstrip('/')}/{ERROR_NTFY_TOPIC}"

# --- Logging Configuration ---
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
LOG_FILE = os.environ.get("LOG_FILE", "")

# --- Printer directory ---
PRINTERS_FILE = os.environ.get("PRINTERS_FILE", "printers.json")

# --- Receipt text layout ---
RECEIPT_WIDTH = int(os.environ.get("RECEIPT_WIDTH", "48"))  # 80mm paper, font A
FEED_LINES = int(os.environ.get("FEED_LINES", "6"))
# Confirmation times are shown in this zone when set (e.g. Europe/Rome)
RECEIPT_TIMEZONE = os.environ.get("RECEIPT_TIMEZONE", "")

# --- Printer Geometry & DPI ---
PAPER_WIDTH_MM = float(os.environ.get("PAPER_WIDTH_MM", "80"))  # 80mm paper
PRINTER_DPI = int(os.environ.get("PRINTER_DPI", "203"))

# Safe print margins: 4mm on each side of 80mm paper = 72mm printable
SAFE_MARGIN_MM = 4.0

# 80mm paper = 639px total, 72mm printable = 575px usable width
PAPER_WIDTH_PX = int(round(PAPER_WIDTH_MM / 25.4 * PRINTER_DPI))
SAFE_MARGIN_PX = int(round(SAFE_MARGIN_MM / 25.4 * PRINTER_DPI))
MAX_PRINTABLE_WIDTH_PX = PAPER_WIDTH_PX - (2 * SAFE_MARGIN_PX)

# Raster canvas width; rounded up to a multiple of 8 by the rasterizer
PAPER_WIDTH_DOTS = int(os.environ.get("PAPER_WIDTH_DOTS", str(MAX_PRINTABLE_WIDTH_PX)))

# --- Image Processing ---
IMAGE_CONTRAST = float(os.environ.get("IMAGE_CONTRAST", "2.0"))
INLINE_FONT_PATH = os.environ.get("INLINE_FONT_PATH", "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf")
INLINE_FONT_SIZE = int(os.environ.get("INLINE_FONT_SIZE", "32"))
INLINE_TEXT_GAP_PX = 10

# --- Assets ---
ASSETS_DIR = os.environ.get("ASSETS_DIR", "assets")
DEFAULT_ASSETS_DIR = os.environ.get("DEFAULT_ASSETS_DIR", "default-assets")
LOGO_FILE = os.environ.get("LOGO_FILE", "logo.png")
FOOTER_FILE = os.environ.get("FOOTER_FILE", "footer.png")
LOGO_WIDTH_PX = int(os.environ.get("LOGO_WIDTH_PX", "0")) or None

# --- Network ---
STATUS_TIMEOUT = float(os.environ.get("STATUS_TIMEOUT", "3"))  # seconds
SEND_TIMEOUT = _optional_float("SEND_TIMEOUT")  # None = socket default

# --- Delivery queue ---
QUEUE_INTERVAL = float(os.environ.get("QUEUE_INTERVAL", "60"))  # seconds

# --- Payment method labels ---
PAYMENT_LABELS = {
    "CASH": "CONTANTI",
    "CARD": "PAGAMENTO ELETTRONICO",
}

# Common emoji to text mappings; the printer code page has no emoji glyphs
EMOJI_MAP = {
    "🍕": "[pizza]",
    "🍔": "[burger]",
    "☕": "[coffee]",
    "🍺": "[beer]",
    "🍷": "[wine]",
    "🌶️": "[piccante]",
    "🌱": "[veg]",
    "⚠️": "[!]",
    "❤️": "[heart]",
    "🔥": "[fire]",
}

STOP_EVENT = None  # Set at runtime


def setup():
    """Initialize configuration. Call after imports."""
    global STOP_EVENT
    import threading
    STOP_EVENT = threading.Event()
