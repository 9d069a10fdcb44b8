"""
Felklasser för rapportmotorn
"""


class ReportError(Exception):
    """Basklass för fel i rapportmotorn"""


class InputError(ReportError, ValueError):
    """Felaktig indata, t.ex. en konteringsrad utan konto eller datum"""


class ConflictError(ReportError):
    """Försök att skriva över en inskickad (låst) rapport"""

    def __init__(self, message: str, record_id: int = None):
        super().__init__(message)
        self.record_id = record_id


class ReportDataError(ReportError, ValueError):
    """Sparad rapportdata följer inte schemat"""


class ImbalanceWarning(UserWarning):
    """Balansräkningen balanserar inte (tillgångar != eget kapital och skulder)"""
