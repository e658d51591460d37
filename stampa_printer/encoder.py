"""ESC/POS payload encoding.

A print payload is an ordered list of segments: ``str`` segments are receipt
text (possibly with embedded style markers) and ``bytes`` segments are opaque
blocks such as raster images. ``encode_payload`` turns the list into the
byte stream sent to the printer.
"""

import re

from escpos.constants import CODEPAGE_CHANGE, DLE, EOT, ESC, GS
from escpos.printer import Dummy

from . import config

CODEPAGE = "cp858"  # PC858: PC850 with the euro sign at 0xD5
CODEPAGE_CP858 = 19

SELECT_CP858 = CODEPAGE_CHANGE + bytes((CODEPAGE_CP858,))
FEED_AND_CUT = ESC + b"d" + bytes((config.FEED_LINES,)) + ESC + b"i"
STATUS_QUERY_PAPER = DLE + EOT + b"\x04"
RASTER_IMAGE = GS + b"v0\x00"

BOLD_ON = ESC + b"E\x01"
BOLD_OFF = ESC + b"E\x00"
SIZE_BIG = GS + b"!\x11"  # 2x width + 2x height
SIZE_NORMAL = GS + b"!\x00"

# The same sequences as text, so layout code can embed them in str segments.
# All bytes are 7-bit and therefore survive the code page transcoding as-is.
TXT_BOLD_ON = BOLD_ON.decode("ascii")
TXT_BOLD_OFF = BOLD_OFF.decode("ascii")
TXT_BIG = SIZE_BIG.decode("ascii")
TXT_NORMAL = SIZE_NORMAL.decode("ascii")

_MARKERS = re.compile("|".join(re.escape(m) for m in (TXT_BOLD_ON, TXT_BOLD_OFF, TXT_BIG, TXT_NORMAL)))


def strip_markers(text):
    """Remove embedded style markers, leaving printable text only."""
    return _MARKERS.sub("", text)


def encode_text(text):
    """Transcode receipt text to the printer code page.

    Characters missing from CP858 are replaced with '?' instead of
    failing the whole payload.
    """
    return text.encode(CODEPAGE, errors="replace")


def encode_payload(segments):
    """Build the byte stream for a receipt.

    Args:
        segments: list of str/bytes segments, or a single str/bytes

    Returns:
        bytes: code page preamble + segments in order + feed-and-cut trailer
    """
    if isinstance(segments, (str, bytes, bytearray)):
        segments = [segments]

    buffer = Dummy()
    buffer._raw(SELECT_CP858)
    for segment in segments:
        if isinstance(segment, (bytes, bytearray)):
            buffer._raw(bytes(segment))
        else:
            buffer._raw(encode_text(str(segment)))
    buffer._raw(FEED_AND_CUT)
    return buffer.output
