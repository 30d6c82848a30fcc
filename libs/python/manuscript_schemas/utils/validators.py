"""Reusable validation helpers."""

from __future__ import annotations

from typing import Iterable


class OrderingError(ValueError):
    """Raised when numbered items are not unique and dense from 1."""


def ensure_dense_numbering(values: Iterable[int], *, field_name: str) -> list[int]:
    """Validate that ``values`` form the sequence ``1..n`` once sorted.

    Args:
        values: Numbers to evaluate, in any order.
        field_name: Name used in the raised error message.

    Returns:
        The numbers sorted ascending when validation succeeds.

    Raises:
        OrderingError: If a number is duplicated or the sequence has gaps.
    """

    ordered = sorted(values)
    expected = list(range(1, len(ordered) + 1))
    if ordered != expected:
        raise OrderingError(
            f"{field_name} must be unique and contiguous starting at 1: {ordered}"
        )
    return ordered
