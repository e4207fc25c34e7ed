"""
Meganote Backend - Query Composer
==================================

What:  Turns untrusted list-endpoint parameters into filter/sort/window plans.
How:   Every value arrives as a raw query string. Pagination values that are
       missing, non-numeric or outside 1..MAX_INT silently fall back to the
       defaults; filter values that cannot be interpreted raise ValidationError.

Plan rules:
    - Only live (not soft-deleted) entities are listed
    - Text filters are case-insensitive substring matches (LIKE wildcards in
      the user's text are escaped)
    - Ordering: createdAt descending
    - Window:   OFFSET (page - 1) * limit, LIMIT limit
    - Output:   page rows, total `count`, `totalPage = ceil(count / limit)`
"""

import math
from dataclasses import dataclass, field
from typing import Any, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from meganote.exceptions import ValidationError
from meganote.models.account import Account
from meganote.models.record import Record

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10

# Largest value an INTEGER column or bind parameter holds on every backend
MAX_INT = 2**31 - 1


def _positive_int(raw: Optional[str], default: int) -> int:
    if raw is None:
        return default
    try:
        value = int(str(raw).strip())
    except ValueError:
        return default
    return value if 1 <= value <= MAX_INT else default


@dataclass(frozen=True)
class PageWindow:
    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    @classmethod
    def parse(cls, page: Optional[str] = None, limit: Optional[str] = None) -> "PageWindow":
        return cls(
            page=_positive_int(page, DEFAULT_PAGE),
            limit=_positive_int(limit, DEFAULT_LIMIT),
        )


def total_pages(count: int, limit: int) -> int:
    return math.ceil(count / limit) if count else 0


@dataclass
class QueryPlan:
    """WHERE clauses plus the page window; rendered by the owning service."""

    window: PageWindow
    conditions: List[Any] = field(default_factory=list)


def parse_bool(raw: str, name: str) -> bool:
    lowered = raw.strip().lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    raise ValidationError(message=f"Invalid {name} value '{raw}'", field=name)


def compose_account_query(
    page: Optional[str] = None,
    limit: Optional[str] = None,
    fullname: Optional[str] = None,
    role: Optional[str] = None,
    active: Optional[str] = None,
) -> QueryPlan:
    plan = QueryPlan(window=PageWindow.parse(page, limit), conditions=[Account.live()])
    if fullname:
        plan.conditions.append(Account.fullname.icontains(fullname, autoescape=True))
    if role:
        plan.conditions.append(Account.role.icontains(role, autoescape=True))
    if active:
        plan.conditions.append(Account.active.is_(parse_bool(active, "active")))
    return plan


async def compose_record_query(
    db: AsyncSession,
    page: Optional[str] = None,
    limit: Optional[str] = None,
    term: Optional[str] = None,
    status: Optional[str] = None,
    ticket: Optional[str] = None,
) -> QueryPlan:
    """
    Build the record plan. `term` needs a lookup: it is first matched
    against owner display names over ALL accounts (deleted ones included).
    When any owner matches the plan filters by those owners, otherwise it
    falls back to a title substring match. Never both.
    """
    plan = QueryPlan(window=PageWindow.parse(page, limit), conditions=[Record.live()])

    if term:
        result = await db.execute(
            select(Account.id).where(Account.fullname.icontains(term, autoescape=True))
        )
        owner_ids = list(result.scalars().all())
        if owner_ids:
            plan.conditions.append(Record.owner_id.in_(owner_ids))
        else:
            plan.conditions.append(Record.title.icontains(term, autoescape=True))

    if status:
        # Excludes the given status rather than selecting it. Clients rely on
        # this ("hide Completed"), so it stays.
        plan.conditions.append(Record.status != status)

    if ticket:
        try:
            ticket_number = int(ticket.strip())
        except ValueError:
            raise ValidationError(message=f"Invalid ticket number '{ticket}'", field="ticket")
        if not 1 <= ticket_number <= MAX_INT:
            raise ValidationError(message=f"Invalid ticket number '{ticket}'", field="ticket")
        plan.conditions.append(Record.ticket == ticket_number)

    return plan
