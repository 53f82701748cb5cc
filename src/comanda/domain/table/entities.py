from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum

from comanda.domain.common.ids import TableId, TableOrderId


class TableStatus(str, Enum):
    AVAILABLE = "available"
    OCCUPIED = "occupied"
    REQUESTING_BILL = "requesting_bill"


@dataclass(frozen=True)
class Table:
    table_id: TableId
    number: int
    name: str | None
    capacity: int
    status: TableStatus
    current_order_id: TableOrderId | None

    def __post_init__(self) -> None:
        if self.number < 1:
            raise ValueError("table number must be >= 1")
        if self.capacity < 1:
            raise ValueError("capacity must be >= 1")

    @property
    def is_paired(self) -> bool:
        """A free table points at no tab; an occupied one points at exactly one."""
        return (self.status == TableStatus.AVAILABLE) == (self.current_order_id is None)

    @property
    def label(self) -> str:
        if self.name:
            return f"Mesa {self.number} - {self.name}"
        return f"Mesa {self.number}"

    def occupy(self, order_id: TableOrderId) -> Table:
        if self.status != TableStatus.AVAILABLE:
            raise TableOccupiedError(f"table {self.table_id} is {self.status.value}")
        return replace(self, status=TableStatus.OCCUPIED, current_order_id=order_id)

    def repoint(self, order_id: TableOrderId) -> Table:
        """Point an occupied table at a newer order, e.g. after a kitchen split."""
        if self.status == TableStatus.AVAILABLE:
            raise TableTransitionError(f"table {self.table_id} is not occupied")
        return replace(self, status=TableStatus.OCCUPIED, current_order_id=order_id)

    def request_bill(self) -> Table:
        if self.status == TableStatus.AVAILABLE:
            raise TableTransitionError(f"table {self.table_id} has no open order")
        return replace(self, status=TableStatus.REQUESTING_BILL)

    def resume_service(self) -> Table:
        if self.status == TableStatus.AVAILABLE:
            raise TableTransitionError(f"table {self.table_id} has no open order")
        return replace(self, status=TableStatus.OCCUPIED)

    def free(self) -> Table:
        return replace(self, status=TableStatus.AVAILABLE, current_order_id=None)


class TableTransitionError(Exception):
    pass


class TableOccupiedError(TableTransitionError):
    pass
