from __future__ import annotations

from typing import NewType

TableId = NewType("TableId", str)
TableOrderId = NewType("TableOrderId", str)
TableOrderItemId = NewType("TableOrderItemId", str)
OrderId = NewType("OrderId", str)
OrderItemId = NewType("OrderItemId", str)
ProductId = NewType("ProductId", str)
WaiterId = NewType("WaiterId", str)
