"""SQLAlchemy ORM models."""

from meganote.models.account import Account
from meganote.models.counter import Counter
from meganote.models.record import Record

__all__ = ["Account", "Counter", "Record"]
