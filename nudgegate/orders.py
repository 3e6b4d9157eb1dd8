"""Order storage collaborators.

JsonFileOrderStore keeps orders as one JSON array, rewritten atomically on
every append, so a crash mid-write leaves the previous list intact.
"""

import json
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Union

import structlog

from .errors import OrderPersistError, OrderStoreReadError
from .models import Order

logger = structlog.get_logger()


class OrderStore(ABC):
    @abstractmethod
    def append_order(self, order: Order) -> None:
        """Durably record an order.

        Raises:
            OrderPersistError: the order was not recorded.
        """
        pass

    @abstractmethod
    def list_orders(self, user_email: Optional[str] = None) -> list[Order]:
        pass


class InMemoryOrderStore(OrderStore):
    def __init__(self):
        self._orders: list[Order] = []
        self.fail_next = False

    def append_order(self, order: Order) -> None:
        if self.fail_next:
            self.fail_next = False
            raise OrderPersistError(order.id, RuntimeError("store unavailable"))
        self._orders.append(order)

    def list_orders(self, user_email: Optional[str] = None) -> list[Order]:
        if user_email is None:
            return list(self._orders)
        return [o for o in self._orders if o.user_email == user_email]


class JsonFileOrderStore(OrderStore):
    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._lock = threading.Lock()

    def _read(self) -> list[dict]:
        if not self.path.exists():
            return []
        with self.path.open("r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, list):
            raise ValueError(f"{self.path} does not hold an order list")
        return data

    def _write(self, records: list[dict]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=".orders-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(records, f, ensure_ascii=False, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    def append_order(self, order: Order) -> None:
        with self._lock:
            try:
                records = self._read()
                records.append(order.to_dict())
                self._write(records)
            except (OSError, ValueError) as e:
                logger.error("order_store_write_failed", path=str(self.path), order_id=order.id, error=str(e))
                raise OrderPersistError(order.id, e) from e
        logger.info("order_stored", path=str(self.path), order_id=order.id)

    def list_orders(self, user_email: Optional[str] = None) -> list[Order]:
        """Read back stored orders; an unreadable file raises OrderStoreReadError."""
        with self._lock:
            try:
                orders = [Order.from_dict(record) for record in self._read()]
            except (OSError, ValueError, KeyError, TypeError) as e:
                logger.error("order_store_read_failed", path=str(self.path), error=str(e))
                raise OrderStoreReadError(str(self.path), e) from e
        if user_email is None:
            return orders
        return [o for o in orders if o.user_email == user_email]
