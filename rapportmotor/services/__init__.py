"""
Tjänster för rapportmotorn
"""
from rapportmotor.services.ledger import LedgerService
from rapportmotor.services.sie_import import SIEParser, SIEImporter
from rapportmotor.services.report_generator import ReportGenerator, format_currency

__all__ = ["LedgerService", "SIEParser", "SIEImporter", "ReportGenerator", "format_currency"]
