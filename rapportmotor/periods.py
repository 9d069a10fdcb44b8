"""
Redovisningsperioder - tolkning av periodnamn och deklarationsdatum

Periodnamn som stöds:
- "Q1 2025" / "2025 Q1"  (kvartal)
- "2025-03"              (månad)
- "2025"                 (helår)
"""
import re
from dataclasses import dataclass
from datetime import date
from typing import Tuple, Union

from dateutil.relativedelta import relativedelta

from rapportmotor.config import PeriodType
from rapportmotor.exceptions import InputError

_QUARTER_FIRST = re.compile(r'^Q([1-4])\s+(\d{4})$', re.IGNORECASE)
_YEAR_FIRST = re.compile(r'^(\d{4})\s+Q([1-4])$', re.IGNORECASE)
_MONTH = re.compile(r'^(\d{4})-(\d{2})$')
_YEAR = re.compile(r'^(\d{4})$')


@dataclass(frozen=True)
class ReportingPeriod:
    """En redovisningsperiod med start- och slutdatum (inklusive)"""
    name: str
    period_type: PeriodType
    start_date: date
    end_date: date

    @property
    def year(self) -> int:
        return self.end_date.year

    def contains(self, check_date: date) -> bool:
        """Kontrollera om ett datum ligger inom perioden"""
        return self.start_date <= check_date <= self.end_date


def quarter_period(quarter: int, year: int) -> ReportingPeriod:
    """Skapa kvartalsperiod"""
    if not 1 <= quarter <= 4:
        raise InputError(f"Ogiltigt kvartal: {quarter}")
    start = date(year, 3 * quarter - 2, 1)
    end = start + relativedelta(months=3, days=-1)
    return ReportingPeriod(f"Q{quarter} {year}", PeriodType.QUARTER, start, end)


def month_period(month: int, year: int) -> ReportingPeriod:
    """Skapa månadsperiod"""
    if not 1 <= month <= 12:
        raise InputError(f"Ogiltig månad: {month}")
    start = date(year, month, 1)
    end = start + relativedelta(months=1, days=-1)
    return ReportingPeriod(f"{year}-{month:02d}", PeriodType.MONTH, start, end)


def year_period(year: int) -> ReportingPeriod:
    """Skapa helårsperiod (kalenderår)"""
    return ReportingPeriod(str(year), PeriodType.YEAR, date(year, 1, 1), date(year, 12, 31))


def parse_period(label: str) -> ReportingPeriod:
    """
    Tolka ett periodnamn

    Kastar InputError om namnet inte känns igen.
    """
    text = (label or "").strip()

    match = _QUARTER_FIRST.match(text)
    if match:
        return quarter_period(int(match.group(1)), int(match.group(2)))

    match = _YEAR_FIRST.match(text)
    if match:
        return quarter_period(int(match.group(2)), int(match.group(1)))

    match = _MONTH.match(text)
    if match:
        return month_period(int(match.group(2)), int(match.group(1)))

    match = _YEAR.match(text)
    if match:
        return year_period(int(match.group(1)))

    raise InputError(f"Okänd period: {label!r}")


def quarters(year: int) -> list[ReportingPeriod]:
    """Alla kvartal för ett år"""
    return [quarter_period(q, year) for q in range(1, 5)]


def vat_deadline(period: ReportingPeriod) -> date:
    """
    Sista dag för momsdeklaration

    Månad/kvartal: den 12:e i andra månaden efter periodens slut,
    utom när den månaden är augusti (då den 17:e).
    Helår: den 26:e i andra månaden efter årets slut.
    """
    if period.period_type == PeriodType.YEAR:
        return period.end_date + relativedelta(months=2, day=26)

    deadline = period.end_date + relativedelta(months=2, day=12)
    if deadline.month == 8:
        deadline = deadline.replace(day=17)
    return deadline


def period_bounds(fiscal_year: Union[int, object]) -> Tuple[date, date]:
    """
    Start- och slutdatum för ett räkenskapsår

    fiscal_year kan vara ett årtal (kalenderår) eller ett objekt
    med start_date och end_date (t.ex. FinancialPeriod).
    """
    if isinstance(fiscal_year, int):
        return date(fiscal_year, 1, 1), date(fiscal_year, 12, 31)
    return fiscal_year.start_date, fiscal_year.end_date
