from datetime import datetime

from sqlalchemy import JSON, Column, Date, DateTime, Float, Index, Integer, String

from travelflow.database import Base


class UserDocument(Base):
    """One persisted trip document per user identity."""

    __tablename__ = "user_documents"

    user_id = Column(String(64), primary_key=True)
    document = Column(JSON, nullable=False)
    revision = Column(Integer, default=1, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class ExchangeRate(Base):
    """Cached conversion rate from a trip currency into the home currency."""

    __tablename__ = "exchange_rates"

    id = Column(Integer, primary_key=True, autoincrement=True)
    base_currency = Column(String(3), nullable=False)
    target_currency = Column(String(3), nullable=False)
    rate = Column(Float, nullable=False)
    rate_date = Column(Date, nullable=False)
    fetched_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (Index("ix_exchange_rates_pair", "base_currency", "target_currency", "fetched_at"),)
