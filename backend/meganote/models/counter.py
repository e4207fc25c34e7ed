"""ORM model for named monotonic sequences (one row per sequence)."""

from sqlalchemy import BigInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from meganote.database import Base


class Counter(Base):
    """
    A persisted sequence. `seq` holds the last value handed out.

    Rows are only ever advanced with a single UPDATE ... RETURNING so two
    writers can never observe the same value.
    """

    __tablename__ = "counters"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    seq: Mapped[int] = mapped_column(BigInteger, nullable=False)

    def __repr__(self) -> str:
        return f"<Counter(id='{self.id}', seq={self.seq})>"
