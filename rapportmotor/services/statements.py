"""
Resultaträkning och balansräkning

Raderna byggs från fasta layouter där varje post hämtar sitt värde ur
ett eller flera kontointervall. Summarader räknas alltid ihop från
raderna ovanför, aldrig direkt ur huvudboken.

Resultaträkningen gäller räkenskapsåret. Balansräkningen är
ackumulerad: alla verifikationer fram till och med balansdagen.
"""
import logging
import warnings
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Iterable, Mapping, Optional, Tuple, Union

from rapportmotor.config import BALANCE_TOLERANCE
from rapportmotor.exceptions import ImbalanceWarning, InputError
from rapportmotor.periods import period_bounds
from rapportmotor.services.aggregation import (
    VerificationRow, aggregate, parse_date, sum_ranges
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StatementLine:
    """En rad i resultat- eller balansräkningen"""
    label: str
    value: Decimal = Decimal(0)
    level: int = 0
    is_header: bool = False
    is_total: bool = False
    accounts: Optional[str] = None


# === LAYOUT ===

@dataclass(frozen=True)
class LineItem:
    """Post som summerar ett eller flera kontointervall"""
    label: str
    ranges: Tuple[Tuple[int, int], ...]
    details: bool = True  # en rad per konto under posten

    @property
    def accounts(self) -> str:
        return ", ".join(f"{start}-{end}" for start, end in self.ranges)


@dataclass(frozen=True)
class Section:
    """Rubrik, poster och (valfritt) en summarad för avsnittet"""
    title: str
    items: Tuple[LineItem, ...]
    total_label: Optional[str] = None
    sign: int = -1  # -1 för kreditnormala avsnitt (intäkter visas positiva)
    level: int = 0


@dataclass(frozen=True)
class Heading:
    """Huvudrubrik; nollställer löpande summa"""
    label: str


@dataclass(frozen=True)
class Subtotal:
    """Summa av alla avsnitt sedan senaste huvudrubrik"""
    label: str


INCOME_STATEMENT_LAYOUT = (
    Section("Rörelseintäkter", (
        LineItem("Nettoomsättning", ((3000, 3799),)),
        LineItem("Övriga rörelseintäkter", ((3800, 3999),)),
    ), "Summa rörelseintäkter"),
    Section("Rörelsekostnader", (
        LineItem("Råvaror och förnödenheter", ((4000, 4999),)),
        LineItem("Övriga externa kostnader", ((5000, 6999),)),
        LineItem("Personalkostnader", ((7000, 7699),)),
        LineItem("Av- och nedskrivningar", ((7700, 7899),)),
        LineItem("Övriga rörelsekostnader", ((7900, 7999),)),
    ), "Summa rörelsekostnader"),
    Subtotal("Rörelseresultat"),
    Section("Finansiella poster", (
        LineItem("Finansiella intäkter", ((8000, 8399),)),
        LineItem("Finansiella kostnader", ((8400, 8799),)),
    ), "Summa finansiella poster"),
    Subtotal("Resultat efter finansiella poster"),
    Section("Bokslutsdispositioner", (
        LineItem("Förändring av obeskattade reserver", ((8800, 8899),)),
    )),
    Subtotal("Resultat före skatt"),
    Section("Skatter", (
        LineItem("Skatt på årets resultat", ((8900, 8989),)),
    )),
    Subtotal("Årets resultat"),
)

BALANCE_SHEET_LAYOUT = (
    Heading("TILLGÅNGAR"),
    Section("Anläggningstillgångar", (
        LineItem("Immateriella anläggningstillgångar", ((1000, 1099),)),
        LineItem("Materiella anläggningstillgångar", ((1100, 1299),)),
        LineItem("Finansiella anläggningstillgångar", ((1300, 1399),)),
    ), "Summa anläggningstillgångar", sign=1, level=1),
    Section("Omsättningstillgångar", (
        LineItem("Varulager", ((1400, 1499),)),
        LineItem("Kortfristiga fordringar", ((1500, 1799),)),
        LineItem("Kortfristiga placeringar", ((1800, 1899),)),
        LineItem("Kassa och bank", ((1900, 1999),)),
    ), "Summa omsättningstillgångar", sign=1, level=1),
    Subtotal("SUMMA TILLGÅNGAR"),
    Heading("EGET KAPITAL OCH SKULDER"),
    Section("Eget kapital", (
        LineItem("Aktiekapital och övrigt eget kapital", ((2000, 2099),)),
        # Resultatkonton som inte har stängts mot eget kapital
        LineItem("Årets resultat (ej avslutat)", ((3000, 8999),), details=False),
    ), "Summa eget kapital", level=1),
    Section("Obeskattade reserver", (
        LineItem("Periodiseringsfonder och överavskrivningar", ((2100, 2199),)),
    ), level=1),
    Section("Avsättningar", (
        LineItem("Pensioner och övriga avsättningar", ((2200, 2299),)),
    ), level=1),
    Section("Långfristiga skulder", (
        LineItem("Långfristiga lån", ((2300, 2399),)),
    ), level=1),
    Section("Kortfristiga skulder", (
        LineItem("Leverantörsskulder och förskott", ((2400, 2499),)),
        LineItem("Skatteskulder", ((2500, 2599),)),
        LineItem("Moms och punktskatter", ((2600, 2699),)),
        LineItem("Personalens skatter och avgifter", ((2700, 2799),)),
        LineItem("Övriga kortfristiga skulder", ((2800, 2899),)),
        LineItem("Upplupna kostnader och förutbetalda intäkter", ((2900, 2999),)),
    ), "Summa kortfristiga skulder", level=1),
    Subtotal("SUMMA EGET KAPITAL OCH SKULDER"),
)


# Konton med saldo under ett öre visas inte som egna rader
DETAIL_THRESHOLD = Decimal("0.01")


def _account_lines(
    balances: Mapping[str, Decimal],
    item: LineItem,
    sign: int,
    level: int,
    account_names: Optional[Mapping[str, str]] = None
) -> list[StatementLine]:
    """En rad per konto inom postens intervall, sorterade på kontonummer"""
    names = account_names or {}
    lines = []
    for account in sorted(balances):
        balance = balances[account]
        if not account.isdigit() or abs(balance) <= DETAIL_THRESHOLD:
            continue
        if not any(start <= int(account) <= end for start, end in item.ranges):
            continue
        lines.append(StatementLine(
            names.get(account) or f"Konto {account}",
            sign * balance,
            level=level,
            accounts=account
        ))
    return lines


def build_lines(
    balances: dict,
    layout,
    account_names: Optional[Mapping[str, str]] = None
) -> Tuple[list, dict]:
    """
    Bygg rader från en layout

    Under varje post listas de konton som ingår (om posten har
    details=True). account_names ger kontonamn; saknas namnet
    visas "Konto 1930".

    Returnerar (rader, summor) där summor är Subtotal-värdena
    per etikett.
    """
    lines = []
    totals = {}
    running = Decimal(0)

    for entry in layout:
        if isinstance(entry, Heading):
            running = Decimal(0)
            lines.append(StatementLine(entry.label, level=0, is_header=True))

        elif isinstance(entry, Section):
            lines.append(StatementLine(entry.title, level=entry.level, is_header=True))
            section_total = Decimal(0)
            for item in entry.items:
                value = entry.sign * sum_ranges(balances, item.ranges)
                section_total += value
                lines.append(StatementLine(
                    item.label, value, level=entry.level + 1, accounts=item.accounts
                ))
                if item.details:
                    lines.extend(_account_lines(
                        balances, item, entry.sign, entry.level + 2, account_names
                    ))
            if entry.total_label:
                lines.append(StatementLine(
                    entry.total_label, section_total, level=entry.level, is_total=True
                ))
            running += section_total

        elif isinstance(entry, Subtotal):
            totals[entry.label] = running
            lines.append(StatementLine(entry.label, running, level=0, is_total=True))

    return lines, totals


# === RESULTATRÄKNING ===

def calculate_income_statement(
    rows: Iterable[VerificationRow],
    fiscal_year: Union[int, object],
    account_names: Optional[Mapping[str, str]] = None
) -> list[StatementLine]:
    """
    Resultaträkning för räkenskapsåret

    Intäkter visas positiva och kostnader negativa.
    """
    start_date, end_date = period_bounds(fiscal_year)
    balances = aggregate(rows, start_date, end_date)
    lines, _ = build_lines(balances, INCOME_STATEMENT_LAYOUT, account_names)
    return lines


def net_result(lines: list[StatementLine]) -> Decimal:
    """Årets resultat ur resultaträkningens rader"""
    for line in reversed(lines):
        if line.is_total and line.label == "Årets resultat":
            return line.value
    return Decimal(0)


# === BALANSRÄKNING ===

@dataclass
class BalanceSheet:
    """Balansräkning per balansdag"""
    lines: list = field(default_factory=list)
    balances: bool = True
    total_assets: Decimal = Decimal(0)
    total_equity_and_liabilities: Decimal = Decimal(0)
    as_of: Optional[date] = None

    @property
    def difference(self) -> Decimal:
        return self.total_assets - self.total_equity_and_liabilities


def calculate_balance_sheet(
    rows: Iterable[VerificationRow],
    as_of_date,
    account_names: Optional[Mapping[str, str]] = None
) -> BalanceSheet:
    """
    Balansräkning per balansdag (all historik fram till as_of_date)

    Balanserar den inte (differens över 1 kr) sätts balances=False
    och en ImbalanceWarning skickas. Inget undantag kastas.
    """
    as_of = parse_date(as_of_date)
    if as_of is None:
        raise InputError("Balansdag saknas")

    balances = aggregate(rows, None, as_of)
    lines, totals = build_lines(balances, BALANCE_SHEET_LAYOUT, account_names)

    sheet = BalanceSheet(
        lines=lines,
        total_assets=totals["SUMMA TILLGÅNGAR"],
        total_equity_and_liabilities=totals["SUMMA EGET KAPITAL OCH SKULDER"],
        as_of=as_of,
    )

    if abs(sheet.difference) > BALANCE_TOLERANCE:
        sheet.balances = False
        message = (
            f"Balansräkningen per {as_of} balanserar inte: tillgångar={sheet.total_assets}, "
            f"eget kapital och skulder={sheet.total_equity_and_liabilities}"
        )
        logger.warning(message)
        warnings.warn(message, ImbalanceWarning, stacklevel=2)

    return sheet


# === ÅRSREDOVISNING ===

@dataclass
class AnnualReport:
    """Resultat- och balansräkning för ett räkenskapsår"""
    start_date: date
    end_date: date
    income_statement: list
    balance_sheet: BalanceSheet
    period_id: Optional[int] = None

    @property
    def net_result(self) -> Decimal:
        return net_result(self.income_statement)

    @property
    def year(self) -> int:
        return self.end_date.year


def build_annual_report(
    rows: Iterable[VerificationRow],
    fiscal_year: Union[int, object],
    period_id: Optional[int] = None,
    account_names: Optional[Mapping[str, str]] = None
) -> AnnualReport:
    """Bygg årsredovisningens räkningar för räkenskapsåret"""
    rows = list(rows)
    start_date, end_date = period_bounds(fiscal_year)

    report = AnnualReport(
        start_date=start_date,
        end_date=end_date,
        income_statement=calculate_income_statement(rows, fiscal_year, account_names),
        balance_sheet=calculate_balance_sheet(rows, end_date, account_names),
        period_id=period_id,
    )
    logger.info("Årsredovisning %s-%s: årets resultat %s", start_date, end_date, report.net_result)
    return report
