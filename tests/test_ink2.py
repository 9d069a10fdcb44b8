"""
Tester för INK2-beräkningen
"""
from datetime import date
from decimal import Decimal

from rapportmotor.config import PeriodType
from rapportmotor.models import FinancialPeriod
from rapportmotor.services.aggregation import VerificationRow
from rapportmotor.services.ink2 import calculate_ink2


def row(account, debit=0, credit=0, day="2025-01-10"):
    return VerificationRow(account=account, debit=debit, credit=credit, date=day)


LEDGER = [
    row("1930", debit=50000, day="2025-01-01"),
    row("2081", credit=50000, day="2025-01-01"),
    row("1510", debit=12500, day="2025-02-01"),
    row("3010", credit=10000, day="2025-02-01"),
    row("2610", credit=2500, day="2025-02-01"),
    row("5010", debit=4000, day="2025-03-01"),
    row("2640", debit=1000, day="2025-03-01"),
    row("1930", credit=5000, day="2025-03-01"),
    # Representation, ej avdragsgill
    row("6072", debit=1000, day="2025-04-01"),
    row("1930", credit=1000, day="2025-04-01"),
    # Årets skatt
    row("8910", debit=1000, day="2025-12-31"),
    row("2510", credit=1000, day="2025-12-31"),
]


class TestIncomeStatementFields:
    def test_result_positive_signs(self):
        """Testa att intäkter är positiva och kostnader negativa"""
        declaration = calculate_ink2(LEDGER, 2025)
        assert declaration.get("3.1") == 10000
        assert declaration.get("3.7") == -5000
        assert declaration.get("3.25") == -1000
        assert declaration.get("3.26") == 4000
        assert declaration.get("3.27") == 0
        assert declaration.net_result == 4000

    def test_loss(self):
        """Testa förlust"""
        rows = [row("5010", debit=3000), row("1930", credit=3000)]
        declaration = calculate_ink2(rows, 2025)
        assert declaration.get("3.26") == 0
        assert declaration.get("3.27") == 3000
        assert declaration.get("4.16") == 3000
        assert declaration.taxable_result == -3000
        assert declaration.calculated_tax == 0

    def test_periodisation_fund(self):
        """Testa avsättning till periodiseringsfond"""
        rows = [row("8811", debit=2000), row("2125", credit=2000)]
        declaration = calculate_ink2(rows, 2025)
        assert declaration.get("3.21") == 0
        assert declaration.get("3.22") == -2000
        assert declaration.get("2.29") == 2000

    def test_rounding(self):
        """Testa att fälten är hela kronor"""
        declaration = calculate_ink2([row("3010", credit="1000.50")], 2025)
        assert declaration.get("3.1") == 1001

    def test_manual_field_is_zero(self):
        declaration = calculate_ink2(LEDGER, 2025)
        assert declaration.get("3.14") == 0


class TestTaxAdjustments:
    def test_non_deductible_added_back(self):
        """Testa att skatt och ej avdragsgilla kostnader läggs tillbaka"""
        declaration = calculate_ink2(LEDGER, 2025)
        assert declaration.get("4.1") == 4000
        assert declaration.get("4.3a") == 1000
        assert declaration.get("4.3c") == 1000
        assert declaration.get("4.15") == 6000
        assert declaration.taxable_result == 6000

    def test_complete_form(self):
        """Testa att alla INK2S-fält finns med, i blankettens ordning"""
        declaration = calculate_ink2(LEDGER, 2025)
        codes = [f.field for f in declaration.tax_adjustments]

        assert codes[:5] == ["4.1", "4.2", "4.3a", "4.3b", "4.3c"]
        assert codes.index("4.4a") < codes.index("4.14c") < codes.index("4.15")
        assert codes[-6:] == ["4.17", "4.18", "4.19", "4.20", "4.21", "4.22"]
        assert len(codes) == len(set(codes)) == 41

        for code in ("4.4a", "4.6c", "4.13", "4.14a", "4.20"):
            assert declaration.get(code) == 0
        assert "Tilläggsuppgifter" in declaration.by_section()

    def test_corporate_tax(self):
        """Testa bolagsskatt 20,6%"""
        declaration = calculate_ink2(LEDGER, 2025)
        assert declaration.calculated_tax == Decimal("1236")


class TestBalanceSheetFields:
    def test_balances(self):
        """Testa att tillgångar och eget kapital och skulder är lika"""
        declaration = calculate_ink2(LEDGER, 2025)
        assert declaration.get("2.26") == 44000
        assert declaration.get("2.19") == 12500
        assert declaration.get("2.27") == 50000
        assert declaration.get("2.28") == 4000
        assert declaration.get("2.49") == 1000
        assert declaration.total_assets == 56500
        assert declaration.total_equity_and_liabilities == 56500

    def test_prior_years_in_balance_only(self):
        """Testa att tidigare år bara påverkar balansräkningen"""
        rows = LEDGER + [
            row("1930", debit=800, day="2024-06-01"),
            row("3010", credit=800, day="2024-06-01"),
        ]
        declaration = calculate_ink2(rows, 2025)
        assert declaration.get("3.1") == 10000
        assert declaration.get("2.26") == 44800

    def test_broken_fiscal_year(self):
        """Testa brutet räkenskapsår från FinancialPeriod"""
        period = FinancialPeriod(
            name="2024/2025",
            start_date=date(2024, 7, 1),
            end_date=date(2025, 6, 30),
            period_type=PeriodType.YEAR
        )
        declaration = calculate_ink2(LEDGER, period, period_id=7)
        assert declaration.start_date == date(2024, 7, 1)
        assert declaration.period_id == 7
        assert declaration.get("3.25") == 0
        assert declaration.get("3.26") == 5000


class TestDeclaration:
    def test_sections_in_form_order(self):
        declaration = calculate_ink2(LEDGER, 2025)
        sections = declaration.by_section()
        assert list(sections)[0] == "Immateriella anläggningstillgångar"
        assert "Slutligt resultat" in sections
        assert declaration.get("9.99") == 0
