"""Receipt and printer models.

Order payloads arrive as camelCase dicts from the order API; the
``from_order``/``from_json`` constructors normalize them into the shapes
the layout engine and the transport work with.
"""

from .helpers import parse_port, parse_quantity, to_number, trim_str


class ReceiptLine:
    """One ordered item as shown on a kitchen receipt (no prices)."""

    def __init__(self, food_name, quantity=1, notes=None):
        self.food_name = trim_str(food_name)
        self.quantity = parse_quantity(quantity)
        self.notes = trim_str(notes) or None

    def __repr__(self):
        return f"<{type(self).__name__} {self.quantity}x {self.food_name!r}>"


class PricedReceiptLine(ReceiptLine):
    """An ordered item with its unit price and optional per-unit surcharge."""

    def __init__(self, food_name, quantity=1, notes=None, unit_price=0, surcharge=None):
        super().__init__(food_name, quantity, notes)
        self.unit_price = to_number(unit_price)
        self.surcharge = to_number(surcharge)

    @property
    def row_base(self):
        return self.unit_price * self.quantity

    @property
    def row_extra(self):
        return self.surcharge * self.quantity

    @property
    def row_total(self):
        return (self.unit_price + self.surcharge) * self.quantity


class SingleTicket:
    """A tear-off slip for a single item, handed out with the cash receipt."""

    def __init__(self, food_name, quantity=1):
        self.food_name = trim_str(food_name)
        self.quantity = parse_quantity(quantity)

    @classmethod
    def from_json(cls, data):
        if isinstance(data, str):
            return cls(data)
        if not isinstance(data, dict):
            return None
        food = data.get("food")
        if not isinstance(food, dict):
            food = {}
        return cls(data.get("foodName") or data.get("name") or food.get("name"), data.get("quantity"))


class ReceiptContext:
    """Order metadata printed in receipt headers and totals."""

    def __init__(self, display_code=None, table=None, customer=None, confirmed_at=None,
                 ticket_number=None, payment_method=None, discount=0, single_tickets=None):
        self.display_code = trim_str(display_code)
        self.table = trim_str(table)
        self.customer = trim_str(customer)
        self.confirmed_at = confirmed_at
        self.ticket_number = trim_str(ticket_number)
        self.payment_method = trim_str(payment_method).upper()
        self.discount = to_number(discount)
        self.single_tickets = list(single_tickets or [])

    @classmethod
    def from_order(cls, order):
        """Build a context from an order payload dict."""
        tickets = order.get("singleTickets")
        if not isinstance(tickets, list):
            tickets = []
        return cls(
            display_code=order.get("displayCode"),
            table=order.get("table"),
            customer=order.get("customer"),
            confirmed_at=order.get("confirmedAt"),
            ticket_number=order.get("ticketNumber"),
            payment_method=order.get("paymentMethod"),
            discount=order.get("discount"),
            single_tickets=[t for t in map(SingleTicket.from_json, tickets) if t is not None],
        )


class PrinterTarget:
    """A network printer: id plus the ip/port it listens on."""

    def __init__(self, id, ip, port, name=""):
        self.id = trim_str(id)
        self.ip = trim_str(ip)
        self.port = parse_port(port)
        self.name = trim_str(name)

    @classmethod
    def from_json(cls, data):
        return cls(data.get("id"), data.get("ip"), data.get("port"), data.get("name"))

    def __repr__(self):
        return f"<PrinterTarget {self.id} {self.ip}:{self.port}>"
