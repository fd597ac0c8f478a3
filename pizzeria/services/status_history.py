# pizzeria/services/status_history.py
import threading
import uuid
from collections import OrderedDict

from pizzeria.schemas.order import StatusChangeEvent

DEFAULT_MAX_ORDERS = 5000


class StatusHistory:
    """
    Per-process record of status change events, keyed by order.

    Lost on restart; the durable trail is the `order_status_changes` table.
    Safe to share between request threads and the sweep worker.

    At most `max_orders` orders are tracked; recording an event for a new
    order beyond that drops the order whose last event is oldest.
    """

    def __init__(self, max_orders: int = DEFAULT_MAX_ORDERS):
        if max_orders < 1:
            raise ValueError("max_orders must be at least 1")
        self.max_orders = max_orders
        self._events: OrderedDict[uuid.UUID, list[StatusChangeEvent]] = OrderedDict()
        self._lock = threading.Lock()

    def record(self, event: StatusChangeEvent) -> None:
        with self._lock:
            events = self._events.setdefault(event.order_id, [])
            events.append(event)
            self._events.move_to_end(event.order_id)
            while len(self._events) > self.max_orders:
                self._events.popitem(last=False)

    def query(self, order_id: uuid.UUID) -> list[StatusChangeEvent]:
        """Events for one order, oldest first."""
        with self._lock:
            return list(self._events.get(order_id, ()))

    def latest(self, order_id: uuid.UUID) -> StatusChangeEvent | None:
        with self._lock:
            events = self._events.get(order_id)
            return events[-1] if events else None

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)

    def clear(self) -> None:
        with self._lock:
            self._events.clear()
