"""
Periodmodell - Redovisningsperioder för moms och bokslut
"""
from datetime import date
from sqlalchemy import Column, Integer, String, Date, Enum
from sqlalchemy.orm import relationship
from rapportmotor.models.base import Base
from rapportmotor.config import PeriodType


class FinancialPeriod(Base):
    """
    Redovisningsperiod

    En period kan vara en månad eller ett kvartal (momsredovisning)
    eller ett räkenskapsår (årsredovisning och INK2).
    Sparade rapporter kopplas till perioden via period_id.
    """
    __tablename__ = "financial_periods"

    id = Column(Integer, primary_key=True, index=True)

    # Visningsnamn, t.ex. "Q1 2025" eller "2025"
    name = Column(String(50), nullable=False)

    period_type = Column(Enum(PeriodType), nullable=False, default=PeriodType.QUARTER)

    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)

    # Relationer
    reports = relationship("ReportRecord", back_populates="period", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<FinancialPeriod({self.name}: {self.start_date} - {self.end_date})>"

    @property
    def year(self) -> int:
        """Returnera huvudåret (baserat på slutdatum)"""
        return self.end_date.year

    def contains_date(self, check_date: date) -> bool:
        """Kontrollera om ett datum ligger inom perioden"""
        return self.start_date <= check_date <= self.end_date
