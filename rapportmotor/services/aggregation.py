"""
Huvudboksaggregering - summerar konteringsrader till kontosaldon

Saldot per konto är alltid debet - kredit (tecknat). Beloppen hålls
som Decimal med full precision; avrundning till hela kronor sker
först vid presentation eller i en deklarationsruta.
"""
import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Iterable, Mapping, Optional

from rapportmotor.exceptions import InputError

logger = logging.getLogger(__name__)

_BAS_ACCOUNT = re.compile(r'^\d{4}$')


def to_decimal(value) -> Decimal:
    """Konvertera belopp till Decimal (via str för att undvika flyttalsfel)"""
    if value is None or value == "":
        return Decimal(0)
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value).replace(',', '.'))
    except InvalidOperation:
        raise InputError(f"Ogiltigt belopp: {value!r}")


def round_kronor(value) -> Decimal:
    """Avrunda till hela kronor, halvor uppåt (0,5 -> 1, -0,5 -> -1)"""
    return to_decimal(value).quantize(Decimal("1"), rounding=ROUND_HALF_UP)


def parse_date(value) -> Optional[date]:
    """Tolka datum från date, datetime eller ISO-sträng (None om tomt)"""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        raise InputError(f"Ogiltigt datum: {value!r}")


@dataclass(frozen=True)
class VerificationRow:
    """
    En konteringsrad i huvudboken

    account: BAS-kontonummer med fyra siffror
    debit/credit: icke-negativa belopp, båda får vara satta
    """
    account: str
    debit: Decimal = Decimal(0)
    credit: Decimal = Decimal(0)
    date: Optional["date"] = None
    description: str = ""

    def __post_init__(self):
        # Frusen dataclass: normalisera belopp och datum via object.__setattr__
        object.__setattr__(self, "account", str(self.account or "").strip())
        object.__setattr__(self, "debit", to_decimal(self.debit))
        object.__setattr__(self, "credit", to_decimal(self.credit))
        object.__setattr__(self, "date", parse_date(self.date))

    @property
    def amount(self) -> Decimal:
        """Nettobelopp (debet - kredit)"""
        return self.debit - self.credit

    @property
    def is_valid(self) -> bool:
        """Har raden ett BAS-konto, ett datum och icke-negativa belopp?"""
        return (
            bool(self.account) and bool(_BAS_ACCOUNT.match(self.account))
            and self.date is not None
            and self.debit >= 0 and self.credit >= 0
        )

    @classmethod
    def from_dict(cls, data: Mapping) -> "VerificationRow":
        """
        Skapa rad från en dict (t.ex. JSON från lagring)

        Kastar InputError om konto eller datum saknas eller
        om beloppen är negativa.
        """
        account = str(data.get("account") or "").strip()
        if not account:
            raise InputError(f"Konteringsrad saknar konto: {dict(data)}")

        row_date = parse_date(data.get("date"))
        if row_date is None:
            raise InputError(f"Konteringsrad saknar datum: {dict(data)}")

        debit = to_decimal(data.get("debit"))
        credit = to_decimal(data.get("credit"))
        if debit < 0 or credit < 0:
            raise InputError(f"Negativt belopp på konto {account}: debet={debit}, kredit={credit}")

        return cls(
            account=account,
            debit=debit,
            credit=credit,
            date=row_date,
            description=data.get("description") or "",
        )


@dataclass
class LedgerAggregate:
    """Resultat av en aggregering: saldon per konto och överhoppade rader"""
    balances: dict = field(default_factory=dict)
    skipped: list = field(default_factory=list)

    @property
    def skipped_count(self) -> int:
        return len(self.skipped)


def aggregate_rows(
    rows: Iterable[VerificationRow],
    period_start: Optional[date] = None,
    period_end: Optional[date] = None
) -> LedgerAggregate:
    """
    Summera konteringsrader per konto

    Rader utanför [period_start, period_end] ignoreras. Utan
    period_start tas all historik med fram till period_end.
    Rader utan konto eller datum, eller med negativt belopp, räknas
    som överhoppade och påverkar aldrig saldona.
    """
    result = LedgerAggregate()

    for row in rows:
        if not row.is_valid:
            result.skipped.append(row)
            continue
        if period_start and row.date < period_start:
            continue
        if period_end and row.date > period_end:
            continue

        result.balances[row.account] = result.balances.get(row.account, Decimal(0)) + row.amount

    if result.skipped:
        logger.warning(
            "Hoppade över %d felaktiga konteringsrader vid aggregering", result.skipped_count
        )

    return result


def aggregate(
    rows: Iterable[VerificationRow],
    period_start: Optional[date] = None,
    period_end: Optional[date] = None
) -> dict:
    """Saldo (debet - kredit) per konto för perioden"""
    return aggregate_rows(rows, period_start, period_end).balances


def sum_range(balances: Mapping[str, Decimal], start: int, end: int) -> Decimal:
    """Summa av saldon för konton inom [start, end]"""
    total = Decimal(0)
    for account, balance in balances.items():
        if account.isdigit() and start <= int(account) <= end:
            total += balance
    return total


def sum_ranges(balances: Mapping[str, Decimal], ranges) -> Decimal:
    """Summa över flera kontointervall"""
    return sum((sum_range(balances, start, end) for start, end in ranges), Decimal(0))
