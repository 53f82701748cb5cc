from __future__ import annotations

from enum import Enum


class OrderKind(str, Enum):
    DELIVERY = "delivery"
    TABLE = "table"
