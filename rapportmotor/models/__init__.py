"""
Databasmodeller för rapportmotorn
"""
from rapportmotor.models.base import Base, engine, SessionLocal, get_db, init_db
from rapportmotor.models.ledger import Verification, VerificationLine
from rapportmotor.models.period import FinancialPeriod
from rapportmotor.models.report import ReportRecord

__all__ = [
    "Base",
    "engine",
    "SessionLocal",
    "get_db",
    "init_db",
    "Verification",
    "VerificationLine",
    "FinancialPeriod",
    "ReportRecord",
]
