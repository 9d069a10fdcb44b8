"""
Rapportmodell - Sparade rapporter (moms, årsredovisning, INK2)
"""
from datetime import datetime
from sqlalchemy import Column, Integer, String, Date, DateTime, ForeignKey, JSON, Enum
from sqlalchemy.orm import relationship
from rapportmotor.models.base import Base
from rapportmotor.config import ReportStatus


class ReportRecord(Base):
    """
    Sparad rapport

    Lagrar beräknad rapport inklusive manuella ändringar som JSON.
    En inskickad rapport är en låst ögonblicksbild: den skrivs aldrig
    över, en ny rapport som ersätter den får en egen identitet och
    pekar på den gamla via supersedes_id.
    """
    __tablename__ = "reports"

    id = Column(Integer, primary_key=True, index=True)
    period_id = Column(Integer, ForeignKey("financial_periods.id"), nullable=False, index=True)

    # Typ av rapport: "vat", "annual_report", "ink2"
    report_type = Column(String(30), nullable=False)

    # Strukturerad data (JSON)
    data = Column(JSON, nullable=False, default=dict)

    # Status
    status = Column(Enum(ReportStatus), nullable=False, default=ReportStatus.DRAFT)

    period_start = Column(Date, nullable=False)
    period_end = Column(Date, nullable=False)

    # Ersätter tidigare inskickad rapport
    supersedes_id = Column(Integer, ForeignKey("reports.id"), nullable=True)

    # Tidsstämplar
    generated_at = Column(DateTime, default=datetime.now, nullable=False)
    submitted_at = Column(DateTime, nullable=True)

    # Relationer
    period = relationship("FinancialPeriod", back_populates="reports")

    def __repr__(self):
        return f"<ReportRecord(id={self.id}, type={self.report_type}, period={self.period_id}, status={self.status})>"

    @property
    def is_submitted(self) -> bool:
        return self.status == ReportStatus.SUBMITTED
