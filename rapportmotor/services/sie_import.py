"""
SIE-import - Parser för SIE4-format

SIE (Standard Import Export) är ett svenskt standardformat för
att överföra bokföringsdata mellan olika system. Importerade
verifikationer blir konteringsrader som rapportbyggarna kan läsa.
"""
import logging
import re
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Iterator, Optional
from dataclasses import dataclass, field
from sqlalchemy.orm import Session

from rapportmotor.config import PeriodType
from rapportmotor.exceptions import InputError
from rapportmotor.models import FinancialPeriod
from rapportmotor.services.aggregation import VerificationRow
from rapportmotor.services.ledger import LedgerService

logger = logging.getLogger(__name__)

# #TRANS konto {objektlista} belopp [datum] ["text"]
_TRANS = re.compile(r'^#TRANS\s+(\S+)\s+\{[^}]*\}\s+(-?[\d.,]+)(?:\s+(\d{8}))?(?:\s+"([^"]*)")?')


def _sie_date(value: str) -> Optional[date]:
    """Tolka SIE-datum (ÅÅÅÅMMDD)"""
    try:
        return date(int(value[:4]), int(value[4:6]), int(value[6:8]))
    except (ValueError, IndexError):
        return None


def _split_amount(amount: Decimal) -> tuple:
    """Positivt belopp är debet, negativt kredit"""
    if amount >= 0:
        return amount, Decimal(0)
    return Decimal(0), abs(amount)


@dataclass
class SIEAccount:
    """Konto från SIE-fil"""
    number: str
    name: str


@dataclass
class SIEVerification:
    """Verifikation från SIE-fil"""
    series: str
    verification_number: int
    date: Optional[date]
    description: str
    lines: list[dict] = field(default_factory=list)


@dataclass
class SIEData:
    """Parsad SIE-data"""
    company_name: Optional[str] = None
    org_number: Optional[str] = None
    fiscal_year_start: Optional[date] = None
    fiscal_year_end: Optional[date] = None
    accounts: list[SIEAccount] = field(default_factory=list)
    opening_balances: dict = field(default_factory=dict)  # kontonummer -> saldo
    verifications: list[SIEVerification] = field(default_factory=list)

    @property
    def account_names(self) -> dict:
        """Kontonummer -> kontonamn från #KONTO"""
        return {account.number: account.name for account in self.accounts}

    def rows(self, include_opening_balances: bool = True) -> Iterator[VerificationRow]:
        """
        Konteringsrader ur filen, utan databas

        Ingående balanser dateras till räkenskapsårets första dag.
        """
        if include_opening_balances and self.fiscal_year_start:
            for account, balance in self.opening_balances.items():
                debit, credit = _split_amount(balance)
                yield VerificationRow(
                    account=account,
                    debit=debit,
                    credit=credit,
                    date=self.fiscal_year_start,
                    description="Ingående balans"
                )

        for verification in self.verifications:
            for line in verification.lines:
                yield VerificationRow(
                    account=line['account'],
                    debit=line['debit'],
                    credit=line['credit'],
                    date=line.get('date') or verification.date,
                    description=line.get('description') or verification.description
                )


class SIEParser:
    """
    Parser för SIE4-format

    Hanterar:
    - #FNAMN - Företagsnamn
    - #ORGNR - Organisationsnummer
    - #RAR - Räkenskapsår (endast innevarande år, 0)
    - #KONTO - Konton
    - #IB - Ingående balanser (innevarande år)
    - #VER - Verifikationer med #TRANS-rader
    """

    def __init__(self):
        self.data = SIEData()

    def parse(self, content: str) -> SIEData:
        """Parsa SIE-filinnehåll"""
        self.data = SIEData()
        current_verification = None

        for line in content.splitlines():
            line = line.strip()
            if not line or line.startswith('//'):
                continue

            if line.startswith('#FNAMN'):
                self._parse_company_name(line)
            elif line.startswith('#ORGNR'):
                self._parse_org_number(line)
            elif line.startswith('#RAR'):
                self._parse_fiscal_year(line)
            elif line.startswith('#KONTO'):
                self._parse_account(line)
            elif line.startswith('#IB'):
                self._parse_opening_balance(line)
            elif line.startswith('#VER'):
                current_verification = self._parse_verification(line)
            elif line.startswith('#TRANS') and current_verification:
                self._parse_transaction_line(line, current_verification)
            elif line.startswith('}'):
                if current_verification and current_verification.lines:
                    self.data.verifications.append(current_verification)
                current_verification = None

        logger.info(
            "Läste SIE-fil: %d konton, %d verifikationer",
            len(self.data.accounts), len(self.data.verifications)
        )
        return self.data

    def _parse_company_name(self, line: str):
        """Parsa #FNAMN "Företagsnamn\""""
        match = re.search(r'"([^"]+)"', line)
        if match:
            self.data.company_name = match.group(1)

    def _parse_org_number(self, line: str):
        """Parsa #ORGNR orgnummer"""
        parts = line.split()
        if len(parts) >= 2:
            self.data.org_number = parts[1].replace('"', '')

    def _parse_fiscal_year(self, line: str):
        """Parsa #RAR 0 20240101 20241231"""
        parts = line.split()
        if len(parts) >= 4 and parts[1] == '0':
            self.data.fiscal_year_start = _sie_date(parts[2])
            self.data.fiscal_year_end = _sie_date(parts[3])

    def _parse_account(self, line: str):
        """Parsa #KONTO 1930 "Företagskonto\""""
        parts = line.split('"')
        if len(parts) >= 2:
            number = parts[0].replace('#KONTO', '').strip()
            self.data.accounts.append(SIEAccount(number=number, name=parts[1]))

    def _parse_opening_balance(self, line: str):
        """Parsa #IB 0 1930 50000.00"""
        parts = line.split()
        if len(parts) >= 4 and parts[1] == '0':
            try:
                self.data.opening_balances[parts[2]] = Decimal(parts[3].replace(',', '.'))
            except InvalidOperation:
                logger.warning("Ogiltig ingående balans i SIE-fil: %s", line)

    def _parse_verification(self, line: str) -> SIEVerification:
        """Parsa #VER A 1 20240115 "Beskrivning\""""
        parts = line.split('"')
        number_parts = parts[0].replace('#VER', '').strip().split()

        series = number_parts[0] if number_parts else "A"
        ver_number = 0
        ver_date = None

        if len(number_parts) >= 3:
            if number_parts[1].isdigit():
                ver_number = int(number_parts[1])
            ver_date = _sie_date(number_parts[2])

        description = parts[1] if len(parts) >= 2 else "Importerad"

        return SIEVerification(
            series=series,
            verification_number=ver_number,
            date=ver_date,
            description=description
        )

    def _parse_transaction_line(self, line: str, verification: SIEVerification):
        """Parsa #TRANS 1930 {} 1000.00"""
        match = _TRANS.match(line)
        if not match:
            logger.warning("Kunde inte tolka SIE-rad: %s", line)
            return

        account, amount_str, date_str, text = match.groups()
        try:
            amount = Decimal(amount_str.replace(',', '.'))
        except InvalidOperation:
            logger.warning("Ogiltigt belopp i SIE-rad: %s", line)
            return

        debit, credit = _split_amount(amount)
        verification.lines.append({
            'account': account,
            'debit': debit,
            'credit': credit,
            'date': _sie_date(date_str) if date_str else None,
            'description': text,
        })


class SIEImporter:
    """
    Importerar SIE-data till huvudboken
    """

    def __init__(self, db: Session):
        self.db = db
        self.parser = SIEParser()
        self.ledger = LedgerService(db)

    def import_file(self, content: str) -> dict:
        """
        Importera SIE-fil

        Skapar räkenskapsåret som period (om det saknas), en
        verifikation i serie "IB" för ingående balanser samt
        filens verifikationer.

        Returns:
            dict med importstatistik
        """
        data = self.parser.parse(content)

        stats = {
            'period_id': None,
            'opening_balance_imported': False,
            'verifications_imported': 0,
            'errors': []
        }

        period = self._get_or_create_period(data)
        stats['period_id'] = period.id

        if any(data.opening_balances.values()):
            try:
                self._import_opening_balances(period.start_date, data.opening_balances)
                stats['opening_balance_imported'] = True
            except InputError as e:
                logger.warning("Ingående balanser importerades inte: %s", e)
                stats['errors'].append(f"IB: {e}")

        for verification in data.verifications:
            if verification.date is None:
                stats['errors'].append(
                    f"{verification.series}{verification.verification_number}: datum saknas"
                )
                continue
            try:
                self.ledger.create_verification(
                    transaction_date=verification.date,
                    description=verification.description,
                    lines=verification.lines,
                    series=verification.series,
                    verification_number=verification.verification_number or None
                )
                stats['verifications_imported'] += 1
            except InputError as e:
                logger.warning(
                    "Hoppade över verifikation %s%s: %s",
                    verification.series, verification.verification_number, e
                )
                stats['errors'].append(f"{verification.series}{verification.verification_number}: {e}")

        logger.info(
            "SIE-import klar: %d verifikationer, %d fel",
            stats['verifications_imported'], len(stats['errors'])
        )
        return stats

    def _get_or_create_period(self, data: SIEData) -> FinancialPeriod:
        """Hämta eller skapa räkenskapsåret som period"""
        if not data.fiscal_year_start or not data.fiscal_year_end:
            # Använd innevarande kalenderår
            today = date.today()
            start = date(today.year, 1, 1)
            end = date(today.year, 12, 31)
        else:
            start = data.fiscal_year_start
            end = data.fiscal_year_end

        existing = self.db.query(FinancialPeriod).filter(
            FinancialPeriod.period_type == PeriodType.YEAR,
            FinancialPeriod.start_date == start,
            FinancialPeriod.end_date == end
        ).first()

        if existing:
            return existing

        name = str(start.year) if (start.month, start.day) == (1, 1) else f"{start.year}/{end.year}"
        return self.ledger.create_period(name, start, end, PeriodType.YEAR)

    def _import_opening_balances(self, start_date: date, balances: dict):
        """Bokför ingående balanser som en verifikation i serie IB"""
        lines = []
        for account, balance in sorted(balances.items()):
            if not balance:
                continue
            debit, credit = _split_amount(balance)
            lines.append({'account': account, 'debit': debit, 'credit': credit})

        self.ledger.create_verification(
            transaction_date=start_date,
            description="Ingående balanser",
            lines=lines,
            series="IB"
        )
