"""
Huvudbokstjänst - verifikationer och perioder i databasen

Levererar konteringsrader (VerificationRow) till rapportbyggarna.
"""
import logging
from datetime import date
from decimal import Decimal
from typing import Optional
from sqlalchemy.orm import Session
from sqlalchemy import func

from rapportmotor.config import BAS_CLASSES, PeriodType, account_type_for, AccountType
from rapportmotor.exceptions import InputError
from rapportmotor.models import Verification, VerificationLine, FinancialPeriod
from rapportmotor.services.aggregation import VerificationRow, aggregate, to_decimal

logger = logging.getLogger(__name__)


class LedgerService:
    """
    Tjänst för huvudboken

    Hanterar:
    - Redovisningsperioder
    - Verifikationer med dubbel bokföring
    - Uttag av konteringsrader och råbalans
    """

    def __init__(self, db: Session):
        self.db = db

    # === PERIODER ===

    def create_period(
        self,
        name: str,
        start_date: date,
        end_date: date,
        period_type: PeriodType = PeriodType.QUARTER
    ) -> FinancialPeriod:
        """Skapa en ny redovisningsperiod"""
        if end_date < start_date:
            raise InputError(f"Perioden {name} slutar före den börjar")

        period = FinancialPeriod(
            name=name,
            period_type=period_type,
            start_date=start_date,
            end_date=end_date
        )
        self.db.add(period)
        self.db.commit()
        self.db.refresh(period)
        return period

    def get_period(self, period_id: int) -> Optional[FinancialPeriod]:
        """Hämta period"""
        return self.db.query(FinancialPeriod).filter(FinancialPeriod.id == period_id).first()

    def get_periods(self, period_type: Optional[PeriodType] = None) -> list[FinancialPeriod]:
        """Hämta perioder, senaste först"""
        query = self.db.query(FinancialPeriod)
        if period_type:
            query = query.filter(FinancialPeriod.period_type == period_type)
        return query.order_by(FinancialPeriod.start_date.desc()).all()

    # === VERIFIKATIONER ===

    def get_next_verification_number(self, series: str = "A") -> int:
        """Hämta nästa verifikationsnummer i serien"""
        max_ver = (
            self.db.query(func.max(Verification.verification_number))
            .filter(Verification.series == series)
            .scalar()
        )
        return (max_ver or 0) + 1

    def create_verification(
        self,
        transaction_date: date,
        description: str,
        lines: list[dict],
        series: str = "A",
        verification_number: Optional[int] = None
    ) -> Verification:
        """
        Skapa en ny verifikation med konteringsrader

        lines: lista med dicts: {"account": "1930", "debit": Decimal, "credit": Decimal}

        Kastar InputError om verifikationen inte balanserar.
        """
        total_debit = sum((to_decimal(line.get("debit")) for line in lines), Decimal(0))
        total_credit = sum((to_decimal(line.get("credit")) for line in lines), Decimal(0))

        if total_debit != total_credit:
            raise InputError(
                f"Verifikationen balanserar inte: debet={total_debit}, kredit={total_credit}"
            )

        if total_debit == 0:
            raise InputError("Verifikationen har inga belopp")

        for line in lines:
            if not str(line.get("account") or "").strip():
                raise InputError(f"Konteringsrad saknar konto: {line}")

        verification = Verification(
            series=series,
            verification_number=verification_number or self.get_next_verification_number(series),
            transaction_date=transaction_date,
            description=description
        )
        self.db.add(verification)
        self.db.flush()  # För att få verification.id

        for line_data in lines:
            line = VerificationLine(
                verification_id=verification.id,
                account=str(line_data["account"]).strip(),
                debit=to_decimal(line_data.get("debit")),
                credit=to_decimal(line_data.get("credit")),
                description=line_data.get("description")
            )
            self.db.add(line)

        self.db.commit()
        self.db.refresh(verification)
        logger.info(
            "Bokförde verifikation %s%s (%s): %s",
            verification.series, verification.verification_number, transaction_date, description
        )
        return verification

    def get_verifications(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        series: Optional[str] = None
    ) -> list[Verification]:
        """Hämta verifikationer med filter"""
        query = self.db.query(Verification)

        if start_date:
            query = query.filter(Verification.transaction_date >= start_date)
        if end_date:
            query = query.filter(Verification.transaction_date <= end_date)
        if series:
            query = query.filter(Verification.series == series)

        return query.order_by(
            Verification.transaction_date, Verification.series, Verification.verification_number
        ).all()

    def get_rows(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None
    ) -> list[VerificationRow]:
        """Hämta konteringsrader som ögonblicksbild för rapportbyggarna"""
        query = (
            self.db.query(VerificationLine, Verification.transaction_date)
            .join(Verification, VerificationLine.verification_id == Verification.id)
        )
        if start_date:
            query = query.filter(Verification.transaction_date >= start_date)
        if end_date:
            query = query.filter(Verification.transaction_date <= end_date)

        return [
            VerificationRow(
                account=line.account,
                debit=Decimal(str(line.debit or 0)),
                credit=Decimal(str(line.credit or 0)),
                date=transaction_date,
                description=line.description or "",
            )
            for line, transaction_date in query.order_by(VerificationLine.id).all()
        ]

    # === SALDON ===

    def get_trial_balance(self, end_date: Optional[date] = None) -> list[dict]:
        """
        Generera råbalans (saldon för alla konton med rörelse)

        Tillgångar och kostnader visas med debetsaldo, övriga med kreditsaldo.
        account_class är BAS-kontoklassens namn (t.ex. "Tillgångar").
        """
        balances = aggregate(self.get_rows(end_date=end_date), None, end_date)
        trial_balance = []

        for account in sorted(balances):
            balance = balances[account]
            if balance == 0:
                continue
            account_type = account_type_for(account)
            is_debit_account = account_type in [AccountType.ASSET, AccountType.EXPENSE]
            trial_balance.append({
                "account_number": account,
                "account_type": account_type.value,
                "account_class": BAS_CLASSES.get(int(account[0])),
                "balance": balance if is_debit_account else -balance,
                "debit": balance if balance > 0 else Decimal(0),
                "credit": -balance if balance < 0 else Decimal(0),
            })

        return trial_balance
