"""
Konfiguration för rapportmotorn
"""
import logging
import os
from decimal import Decimal
from enum import Enum
from pathlib import Path

# Projektrot
BASE_DIR = Path(__file__).resolve().parent.parent

# Databas
DATABASE_URL = os.environ.get(
    "RAPPORTMOTOR_DATABASE_URL",
    f"sqlite:///{BASE_DIR}/data/rapportmotor.db"
)

# Mallar för årsredovisning och momsrapport
TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"

# Loggnivå för skript som anropar setup_logging()
LOG_LEVEL = os.environ.get("RAPPORTMOTOR_LOG_LEVEL", "INFO")


class AccountType(str, Enum):
    """Kontotyper enligt BAS"""
    ASSET = "Tillgång"
    LIABILITY = "Skuld"
    EQUITY = "Eget kapital"
    REVENUE = "Intäkt"
    EXPENSE = "Kostnad"


class ReportType(str, Enum):
    """Rapporttyper som kan sparas"""
    VAT = "vat"                      # Momsdeklaration (SKV 4700)
    ANNUAL_REPORT = "annual_report"  # Årsredovisning (RR + BR)
    INK2 = "ink2"                    # Inkomstdeklaration 2 (aktiebolag)


class ReportStatus(str, Enum):
    """Livscykel för sparade rapporter"""
    DRAFT = "draft"
    SUBMITTED = "submitted"


class VatStatus(str, Enum):
    """Status för en momsperiod"""
    UPCOMING = "upcoming"
    OVERDUE = "overdue"
    SUBMITTED = "submitted"


class PeriodType(str, Enum):
    """Redovisningsperiodens längd"""
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"


# Momssatser i Sverige
VAT_RATES = {
    "standard": Decimal("0.25"),  # 25% - de flesta varor och tjänster
    "reduced": Decimal("0.12"),   # 12% - livsmedel, hotell, restaurang
    "low": Decimal("0.06"),       # 6% - böcker, tidningar, kultur, persontransport
    "exempt": Decimal("0"),       # 0% - momsfritt (t.ex. sjukvård, utbildning)
}

# Bolagsskatt
CORPORATE_TAX_RATE = Decimal("0.206")  # 20.6%

# Tillåten avvikelse (kr) mellan tillgångar och eget kapital + skulder
BALANCE_TOLERANCE = Decimal("1")

# BAS-kontoklasser
BAS_CLASSES = {
    1: "Tillgångar",
    2: "Eget kapital och skulder",
    3: "Rörelsens intäkter",
    4: "Rörelsens kostnader (varor)",
    5: "Övriga externa kostnader",
    6: "Övriga externa kostnader",
    7: "Personal",
    8: "Finansiella poster och skatter",
}


def account_type_for(number: str) -> AccountType:
    """Bestäm kontotyp baserat på BAS-kontonummer"""
    if not number:
        return AccountType.ASSET

    first_digit = number[0]
    if first_digit == '1':
        return AccountType.ASSET
    elif first_digit == '2':
        # 20xx-21xx är eget kapital och obeskattade reserver, resten skulder
        if number.startswith(('20', '21')):
            return AccountType.EQUITY
        return AccountType.LIABILITY
    elif first_digit == '3':
        return AccountType.REVENUE
    return AccountType.EXPENSE


def setup_logging(level: str = None):
    """Konfigurera loggning för skript och verktyg"""
    logging.basicConfig(
        level=getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
