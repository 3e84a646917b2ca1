from decimal import Decimal

from sqlalchemy import Integer, String, Date, DateTime, Numeric, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column
from app.db.base import Base

class ExchangeRate(Base):
    __tablename__ = "exchange_rates"
    __table_args__ = (
        UniqueConstraint("currency", "reference_currency", "day", name="uq_exchange_rates_pair_day"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    currency: Mapped[str] = mapped_column(String(3), index=True)
    reference_currency: Mapped[str] = mapped_column(String(3), index=True)
    day: Mapped[Date] = mapped_column(Date, index=True)
    rate: Mapped[Decimal] = mapped_column(Numeric(14, 6))
    created_at: Mapped[DateTime] = mapped_column(DateTime, server_default=func.now())
