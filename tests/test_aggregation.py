"""
Tester för huvudboksaggregeringen
"""
import logging
import random
from datetime import date
from decimal import Decimal

import pytest

from rapportmotor.exceptions import InputError
from rapportmotor.services.aggregation import (
    VerificationRow, aggregate, aggregate_rows, round_kronor, sum_range, to_decimal
)


def row(account, debit=0, credit=0, day="2025-01-10", description=""):
    return VerificationRow(account=account, debit=debit, credit=credit, date=day, description=description)


LEDGER = [
    row("1930", debit=12500, day="2025-01-10"),
    row("3010", credit=10000, day="2025-01-10"),
    row("2610", credit=2500, day="2025-01-10"),
    row("5010", debit=8000, day="2025-02-01"),
    row("2640", debit=2000, day="2025-02-01"),
    row("1930", credit=10000, day="2025-02-01"),
    row("1930", debit="0.33", day="2025-03-31"),
    row("8310", credit="0.33", day="2025-03-31"),
]


class TestVerificationRow:
    def test_amounts_are_decimal(self):
        """Testa att belopp konverteras till Decimal utan flyttalsfel"""
        r = row("1930", debit=0.1)
        assert r.debit == Decimal("0.1")
        assert isinstance(r.credit, Decimal)

    def test_amount_is_debit_minus_credit(self):
        """Testa nettobelopp när både debet och kredit är satta"""
        r = row("1930", debit=300, credit=100)
        assert r.amount == Decimal(200)

    def test_date_parsed_from_string(self):
        """Testa att ISO-datum tolkas"""
        assert row("1930", day="2025-03-01").date == date(2025, 3, 1)

    def test_from_dict(self):
        """Testa att skapa rad från dict"""
        r = VerificationRow.from_dict({"account": "3010", "credit": "1000", "date": "2025-01-10"})
        assert r.account == "3010"
        assert r.credit == Decimal(1000)
        assert r.debit == Decimal(0)

    def test_from_dict_missing_account(self):
        """Testa att rad utan konto ger InputError"""
        with pytest.raises(InputError, match="saknar konto"):
            VerificationRow.from_dict({"debit": 100, "date": "2025-01-10"})

    def test_from_dict_missing_date(self):
        """Testa att rad utan datum ger InputError"""
        with pytest.raises(InputError, match="saknar datum"):
            VerificationRow.from_dict({"account": "1930", "debit": 100})

    def test_from_dict_negative_amount(self):
        """Testa att negativt belopp ger InputError"""
        with pytest.raises(InputError):
            VerificationRow.from_dict({"account": "1930", "debit": -5, "date": "2025-01-10"})

    def test_invalid_amount(self):
        """Testa att ogiltigt belopp ger InputError"""
        with pytest.raises(InputError):
            to_decimal("tusen")


class TestAggregate:
    def test_empty_rows(self):
        """Testa att tom huvudbok ger tom dict"""
        assert aggregate([], date(2025, 1, 1), date(2025, 12, 31)) == {}

    def test_net_per_account(self):
        """Testa saldo (debet - kredit) per konto"""
        balances = aggregate(LEDGER, date(2025, 1, 1), date(2025, 3, 31))
        assert balances["1930"] == Decimal("2500.33")
        assert balances["3010"] == Decimal(-10000)
        assert balances["2610"] == Decimal(-2500)
        assert balances["2640"] == Decimal(2000)

    def test_inclusive_period_bounds(self):
        """Testa att periodens första och sista dag ingår"""
        balances = aggregate(LEDGER, date(2025, 1, 10), date(2025, 2, 1))
        assert balances["3010"] == Decimal(-10000)
        assert balances["5010"] == Decimal(8000)
        assert "8310" not in balances

    def test_rows_outside_period_ignored(self):
        """Testa att rader utanför perioden ignoreras"""
        balances = aggregate(LEDGER, date(2025, 2, 1), date(2025, 2, 28))
        assert "3010" not in balances
        assert balances["1930"] == Decimal(-10000)

    def test_without_start_takes_all_history(self):
        """Testa att utan startdatum tas all historik med"""
        balances = aggregate(LEDGER, None, date(2025, 1, 31))
        assert balances["1930"] == Decimal(12500)

    def test_order_independence(self):
        """Testa att radernas ordning inte påverkar saldona"""
        expected = aggregate(LEDGER, date(2025, 1, 1), date(2025, 12, 31))
        rng = random.Random(4700)
        for _ in range(10):
            shuffled = LEDGER[:]
            rng.shuffle(shuffled)
            assert aggregate(shuffled, date(2025, 1, 1), date(2025, 12, 31)) == expected

    def test_full_precision_kept(self):
        """Testa att öresbelopp inte avrundas under aggregeringen"""
        rows = [row("6570", debit="0.333") for _ in range(3)]
        assert aggregate(rows)["6570"] == Decimal("0.999")

    def test_malformed_rows_skipped(self, caplog):
        """Testa att rader utan konto eller datum hoppas över och loggas"""
        rows = LEDGER + [row("", debit=999), row("1930", debit=999, day=None), row("ABC", debit=1)]

        with caplog.at_level(logging.WARNING):
            result = aggregate_rows(rows, date(2025, 1, 1), date(2025, 12, 31))

        assert result.skipped_count == 3
        assert result.balances == aggregate(LEDGER, date(2025, 1, 1), date(2025, 12, 31))
        assert "Hoppade över 3" in caplog.text

    def test_negative_amounts_skipped(self):
        """Testa att direkt skapade rader med negativt belopp hoppas över"""
        rows = LEDGER + [row("3010", credit=-100), row("1930", debit=-100)]
        result = aggregate_rows(rows, date(2025, 1, 1), date(2025, 12, 31))

        assert result.skipped_count == 2
        assert result.balances == aggregate(LEDGER, date(2025, 1, 1), date(2025, 12, 31))


class TestHelpers:
    def test_round_half_up(self):
        """Testa avrundning till hela kronor med halvor uppåt"""
        assert round_kronor(Decimal("2.5")) == Decimal(3)
        assert round_kronor(Decimal("3.5")) == Decimal(4)
        assert round_kronor(Decimal("-2.5")) == Decimal(-3)
        assert round_kronor(Decimal("2.49")) == Decimal(2)

    def test_sum_range(self):
        """Testa summering av kontointervall"""
        balances = {"2610": Decimal(-100), "2611": Decimal(-50), "2640": Decimal(30)}
        assert sum_range(balances, 2610, 2619) == Decimal(-150)
        assert sum_range(balances, 2640, 2649) == Decimal(30)
        assert sum_range(balances, 3000, 3999) == Decimal(0)
