"""Shared sorting utilities for repository queries."""

from __future__ import annotations

from sqlalchemy import asc, desc
from sqlalchemy.orm import Query

from volunteerhub.core.database import Base


def apply_order_by(
    query: Query,  # type: ignore[type-arg]
    model: type[Base],
    order_by: str | None,
    allowed_fields: frozenset[str] | None = None,
    default_field: str = "created_at",
    default_direction: str = "desc",
) -> Query:  # type: ignore[type-arg]
    """Order a query by a client-supplied "field:direction" string.

    Unknown fields (or fields outside ``allowed_fields`` when given) fall back
    to ``default_field``; a bare field sorts ascending and an unknown
    direction falls back to ``default_direction``. The primary key is always appended as a tiebreaker
    so pagination is stable.
    """
    field = default_field
    direction = default_direction

    if order_by:
        candidate_field, sep, candidate_direction = order_by.partition(":")
        if not sep:
            candidate_direction = "asc"
        permitted = allowed_fields is None or candidate_field in allowed_fields
        if permitted and hasattr(model, candidate_field):
            field = candidate_field
            if candidate_direction in ("asc", "desc"):
                direction = candidate_direction

    order_func = asc if direction == "asc" else desc
    return query.order_by(order_func(getattr(model, field)), order_func(model.id))
