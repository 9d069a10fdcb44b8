"""
Verifikationsmodeller - Verifikationer och konteringsrader
"""
from datetime import date, datetime
from decimal import Decimal
from sqlalchemy import Column, Integer, String, Date, DateTime, ForeignKey, Numeric, CheckConstraint
from sqlalchemy.orm import relationship
from rapportmotor.models.base import Base


class Verification(Base):
    """
    Verifikation

    En verifikation representerar en affärshändelse med
    en eller flera konteringsrader (debet/kredit).
    Bokförda verifikationer ändras aldrig, rättelser görs
    med nya verifikationer.
    """
    __tablename__ = "verifications"

    id = Column(Integer, primary_key=True, index=True)

    # Serie (A, B, ... eller IB för ingående balanser)
    series = Column(String(10), nullable=False, default="A")

    # Verifikationsnummer (unikt inom serien)
    verification_number = Column(Integer, nullable=False)

    # Transaktionsdatum
    transaction_date = Column(Date, nullable=False, default=date.today, index=True)

    # Beskrivning
    description = Column(String(500), nullable=False)

    # Metadata
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationer
    lines = relationship("VerificationLine", back_populates="verification", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Verification({self.series}{self.verification_number}, date={self.transaction_date})>"

    @property
    def total_debit(self) -> Decimal:
        """Total debet för verifikationen"""
        return sum((line.debit or Decimal(0) for line in self.lines), Decimal(0))

    @property
    def total_credit(self) -> Decimal:
        """Total kredit för verifikationen"""
        return sum((line.credit or Decimal(0) for line in self.lines), Decimal(0))

    @property
    def is_balanced(self) -> bool:
        """Kontrollera att debet = kredit"""
        return self.total_debit == self.total_credit


class VerificationLine(Base):
    """
    Konteringsrad

    Kontot lagras som BAS-kontonummer (t.ex. "1930").
    Normalt är antingen debet eller kredit satt, men båda får förekomma.
    """
    __tablename__ = "verification_lines"

    id = Column(Integer, primary_key=True, index=True)
    verification_id = Column(Integer, ForeignKey("verifications.id"), nullable=False)

    # BAS-kontonummer
    account = Column(String(10), nullable=False, index=True)

    # Belopp
    debit = Column(Numeric(15, 2), nullable=False, default=Decimal(0))
    credit = Column(Numeric(15, 2), nullable=False, default=Decimal(0))

    # Valfri radkommentar
    description = Column(String(255))

    # Relationer
    verification = relationship("Verification", back_populates="lines")

    __table_args__ = (
        CheckConstraint("debit >= 0 AND credit >= 0", name="check_non_negative_amounts"),
    )

    def __repr__(self):
        return f"<VerificationLine(account={self.account}, debit={self.debit}, credit={self.credit})>"

    @property
    def amount(self) -> Decimal:
        """Nettobelopp (debet - kredit)"""
        return (self.debit or Decimal(0)) - (self.credit or Decimal(0))
