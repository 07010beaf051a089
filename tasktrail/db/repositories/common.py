from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Generic, TypeVar, cast

from sqlalchemy import func, select
from sqlalchemy.sql import Select
from sqlmodel import Session

T = TypeVar("T")

DEFAULT_PAGE = 1
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


def _coerce_positive_int(value: object, *, default: int) -> int:
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, int):
        parsed = value
    else:
        text = str(value).strip()
        try:
            parsed = int(text)
        except ValueError:
            try:
                parsed = int(float(text))
            except (ValueError, OverflowError):
                return default
    return parsed if parsed >= 1 else default


@dataclass(frozen=True, slots=True)
class Pagination:
    page: int = DEFAULT_PAGE
    page_size: int = DEFAULT_PAGE_SIZE

    def __post_init__(self) -> None:
        if self.page < 1:
            raise ValueError("page must be >= 1")
        if self.page_size < 1:
            raise ValueError("page_size must be >= 1")
        if self.page_size > MAX_PAGE_SIZE:
            raise ValueError(f"page_size must be <= {MAX_PAGE_SIZE}")

    @classmethod
    def from_raw(cls, page: object = None, page_size: object = None) -> Pagination:
        """Build pagination from untrusted query values.

        Non-numeric or non-positive values fall back to the defaults instead of
        failing; oversized pages are clamped.
        """
        return cls(
            page=_coerce_positive_int(page, default=DEFAULT_PAGE),
            page_size=min(
                _coerce_positive_int(page_size, default=DEFAULT_PAGE_SIZE),
                MAX_PAGE_SIZE,
            ),
        )

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


@dataclass(frozen=True, slots=True)
class Page(Generic[T]):
    items: list[T]
    total: int
    page: int
    page_size: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.page_size)


def paginate(session: Session, statement: Select[Any], *, pagination: Pagination) -> Page[T]:
    count_statement = select(func.count()).select_from(statement.order_by(None).subquery())
    total = int(session.scalar(count_statement) or 0)
    paged_statement = statement.offset(pagination.offset).limit(pagination.page_size)
    rows = cast(list[T], list(session.exec(cast(Any, paged_statement)).all()))
    return Page(items=rows, total=total, page=pagination.page, page_size=pagination.page_size)
