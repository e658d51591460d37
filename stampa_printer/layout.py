"""Fixed-width receipt layout.

Builds the kitchen receipt (items only, no prices), the cash receipt (items
with a right-aligned price column and totals) and the single-item tear-off
tickets. Everything here is pure string work; style changes are embedded as
ESC/POS markers from ``encoder``.
"""

from . import config
from .encoder import FEED_AND_CUT, TXT_BIG, TXT_BOLD_OFF, TXT_BOLD_ON, TXT_NORMAL, strip_markers
from .helpers import ZERO, clean_text, eur_col, format_timestamp


def wrap_text(text, max_width, indent=""):
    """Greedy word wrap.

    Words are packed into lines of at most ``max_width`` characters and
    continuation lines start with ``indent``. A word that does not fit on an
    empty line is hard-split at ``max_width - len(current_line)``, as many
    times as needed; its remainder then continues like any other word.

    Args:
        text (str): Text to wrap
        max_width (int): Maximum line length, indent included
        indent (str): Prefix for continuation lines

    Returns:
        list[str]: Wrapped lines (empty list for blank text)
    """
    if max_width <= 0:
        return [text] if text.strip() else []
    if len(indent) >= max_width:
        indent = ""

    lines = []
    current = ""
    has_words = False
    for word in text.split():
        while word:
            sep = " " if has_words else ""
            room = max_width - len(current) - len(sep)
            if len(word) <= room:
                current += sep + word
                has_words = True
                break
            if has_words and len(word) <= max_width - len(indent):
                # fits on a fresh continuation line
                lines.append(current)
                current, has_words = indent, False
                continue
            if room <= 0:
                lines.append(current)
                current, has_words = indent, False
                continue
            lines.append(current + sep + word[:room])
            word = word[room:]
            current, has_words = indent, False
    if has_words:
        lines.append(current)
    return lines


def rule(char="-", width=None):
    return char * (width or config.RECEIPT_WIDTH)


def cut(text, width=None):
    width = config.RECEIPT_WIDTH if width is None else width
    return text[:max(0, width)]


def lr(left, right, width=None):
    """Left text and right-aligned value on one line, one space apart."""
    width = width or config.RECEIPT_WIDTH
    left = left.rstrip()
    right = right.strip()
    left_width = max(0, width - len(right) - 1)
    return cut(left, left_width).ljust(left_width) + " " + right


def big(text):
    """A double width/height line, cut to the columns it can use."""
    return TXT_BIG + cut(text, config.RECEIPT_WIDTH // 2) + TXT_NORMAL


def big_lines(label, value):
    """Wrap a label/value pair into double width lines; the value is never cut."""
    width = config.RECEIPT_WIDTH // 2
    indent = " " * min(len(label) + 1, width // 2)
    return [big(part) for part in wrap_text(f"{label} {value}", width, indent)]


def bold(text):
    return TXT_BOLD_ON + text + TXT_BOLD_OFF


def payment_label(method):
    if not method:
        return ""
    return config.PAYMENT_LABELS.get(method.upper(), method.upper())


def _note_lines(notes, indent, width):
    notes = clean_text(notes)
    if not notes:
        return []
    return [indent + part for part in wrap_text(f"NOTE: {notes}", width - len(indent), " " * len("NOTE: "))]


def build_kitchen_receipt(context, lines, progress):
    """Build the text of a kitchen receipt.

    Args:
        context (ReceiptContext): Order metadata
        lines (list[ReceiptLine]): Items routed to this kitchen printer
        progress (int): Running receipt number for the printer

    Returns:
        str: Receipt text with embedded size markers
    """
    width = config.RECEIPT_WIDTH
    out = [cut("===== ORDINE CUCINA =====", width), rule("=", width)]

    out.extend(big_lines("TAVOLO:", clean_text(context.table) or "-"))
    out.extend(big_lines("CLIENTE:", clean_text(context.customer) or "-"))
    out.append(big(f"PROGR: {progress}"))
    out.append(rule("-", width))

    if context.display_code:
        out.append(cut(f"CODICE: {context.display_code}", width))
    confirmed = format_timestamp(context.confirmed_at)
    if confirmed:
        out.append(cut(f"ORA: {confirmed}", width))
    out.append(rule("-", width))

    for line in lines:
        name = clean_text(line.food_name) or "FOOD"
        prefix = f"{line.quantity}x "
        indent = " " * len(prefix)
        out.extend(wrap_text(prefix + name, width, indent))
        out.extend(_note_lines(line.notes, indent, width))
        out.append("")

    out.append(rule("-", width))
    return "\n".join(out) + "\n"


def receipt_totals(context, lines):
    """Compute (subtotal, extras, discount, total) for a cash receipt.

    The total is floored at zero: a discount larger than the order never
    produces a negative amount.
    """
    subtotal = sum((line.row_base for line in lines), ZERO)
    extras = sum((line.row_extra for line in lines), ZERO)
    discount = max(ZERO, context.discount)
    total = max(ZERO, subtotal + extras - discount)
    return subtotal, extras, discount, total


def build_cash_receipt(context, lines, single_tickets=None, logo=b"", footer=b""):
    """Build the segments of a cash receipt.

    Args:
        context (ReceiptContext): Order metadata
        lines (list[PricedReceiptLine]): Every item of the order
        single_tickets (list[SingleTicket]): Tear-off slips; defaults to
            the ones attached to the context
        logo (bytes): Raster block printed above the receipt (optional)
        footer (bytes): Raster block printed below the totals (optional)

    Returns:
        list: str/bytes segments in print order
    """
    width = config.RECEIPT_WIDTH
    out = [cut("===== SCONTRINO FISCALE =====", width)]

    if context.ticket_number:
        out.extend(bold(part) for part in big_lines("ORDINE N.", context.ticket_number))
    if context.display_code:
        out.append(cut(f"CODICE: {context.display_code}", width))
    out.append(cut(f"TAVOLO: {clean_text(context.table) or '-'}", width))
    out.append(cut(f"CLIENTE: {clean_text(context.customer) or '-'}", width))
    payment = payment_label(context.payment_method)
    if payment:
        out.append(cut(f"PAGAMENTO: {payment}", width))
    confirmed = format_timestamp(context.confirmed_at)
    if confirmed:
        out.append(cut(f"ORA: {confirmed}", width))
    out.append(rule("-", width))

    for line in lines:
        name = clean_text(line.food_name) or "FOOD NAME NOT FOUND"
        price = eur_col(line.row_total)
        prefix = f"{line.quantity}x "
        indent = " " * len(prefix)

        # name column stops one space before the price column
        wrapped = wrap_text(prefix + name, width - len(price) - 1, indent)
        out.append(lr(wrapped[0], price, width))
        out.extend(wrapped[1:])
        out.extend(_note_lines(line.notes, indent, width))
        if line.row_extra > 0:
            out.append(lr(indent + "EXTRA", eur_col(line.row_extra), width))
        out.append("")

    out.append(rule("-", width))

    subtotal, extras, discount, total = receipt_totals(context, lines)
    out.append(lr("SUBTOTALE", eur_col(subtotal), width))
    if extras > 0:
        out.append(lr("EXTRA TOTALI", eur_col(extras), width))
    if discount > 0:
        out.append(lr("SCONTO", "-" + eur_col(discount), width))
    out.append(rule("=", width))
    out.append(bold(lr("TOTALE", eur_col(total), width)))
    out.append(rule("=", width))

    segments = []
    if logo:
        segments.append(logo)
    segments.append("\n".join(out) + "\n")
    if footer:
        segments.append(footer)

    tickets = context.single_tickets if single_tickets is None else single_tickets
    for ticket in tickets:
        segments.append(FEED_AND_CUT)
        segments.append(build_single_ticket(context, ticket))
    return segments


def build_single_ticket(context, ticket):
    """Build the text of a single-item tear-off ticket."""
    width = config.RECEIPT_WIDTH
    out = [cut("===== TICKET =====", width), rule("=", width)]

    name = clean_text(ticket.food_name) or "FOOD"
    prefix = f"{ticket.quantity}x "
    for part in wrap_text(prefix + name, width // 2, " " * len(prefix)):
        out.append(big(part))
    out.append(rule("-", width))

    if context.ticket_number:
        out.append(cut(f"ORDINE N. {context.ticket_number}", width))
    if context.display_code:
        out.append(cut(f"CODICE: {context.display_code}", width))
    out.append(cut(f"TAVOLO: {clean_text(context.table) or '-'}", width))
    out.append(rule("=", width))
    return "\n".join(out) + "\n"


def render_text(segments):
    """Render a payload for the console: text without markers, blocks summarized."""
    if isinstance(segments, (str, bytes, bytearray)):
        segments = [segments]
    parts = []
    for segment in segments:
        if isinstance(segment, (bytes, bytearray)):
            if bytes(segment) == FEED_AND_CUT:
                parts.append("- " * (config.RECEIPT_WIDTH // 2) + "\n")
            elif segment:
                parts.append(f"[image: {len(segment)} bytes]\n")
        else:
            parts.append(strip_markers(segment))
    return "".join(parts)
