from __future__ import annotations

from typing import assert_never

from comanda.domain.board.unified import BoardStatus
from comanda.domain.common.kinds import OrderKind

# From ready onward delivery orders belong to the driver dispatch flow.
_DELIVERY_FLOW: dict[BoardStatus, BoardStatus] = {
    BoardStatus.PENDING: BoardStatus.PREPARING,
    BoardStatus.PREPARING: BoardStatus.READY,
}

_TABLE_FLOW: dict[BoardStatus, BoardStatus] = {
    BoardStatus.PENDING: BoardStatus.PREPARING,
    BoardStatus.PREPARING: BoardStatus.READY,
    BoardStatus.READY: BoardStatus.COMPLETED,
}

_LABELS: dict[BoardStatus, str] = {
    BoardStatus.PREPARING: "Aceitar",
    BoardStatus.READY: "Pronto",
    BoardStatus.COMPLETED: "Finalizar",
}


def _flow_for(kind: OrderKind) -> dict[BoardStatus, BoardStatus]:
    match kind:
        case OrderKind.DELIVERY:
            return _DELIVERY_FLOW
        case OrderKind.TABLE:
            return _TABLE_FLOW
        case _:
            assert_never(kind)


def next_status(kind: OrderKind, current: BoardStatus) -> BoardStatus | None:
    return _flow_for(kind).get(current)


def next_status_label(kind: OrderKind, current: BoardStatus) -> str | None:
    target = next_status(kind, current)
    if target is None:
        return None
    # Tabs have no accept step: a preparing write leaves them open.
    if kind == OrderKind.TABLE and target == BoardStatus.PREPARING:
        return None
    return _LABELS[target]
