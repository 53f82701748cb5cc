from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class TraceContext:
    trace_id: str | None
    request_id: str | None


@dataclass(frozen=True)
class StaffContext:
    """Who is acting; stamped onto tabs they open."""

    waiter_id: str | None = None
    waiter_name: str | None = None
