"""
Tester för rapportgenerering (HTML)
"""
from datetime import date
from decimal import Decimal

import pytest

from rapportmotor.services.aggregation import VerificationRow
from rapportmotor.services.report_generator import ReportGenerator, format_currency, format_date
from rapportmotor.services.statements import build_annual_report
from rapportmotor.services.vat import VatReport, recalculate, update_box


@pytest.fixture
def generator():
    return ReportGenerator()


def row(account, debit=0, credit=0, day="2025-02-01"):
    return VerificationRow(account=account, debit=debit, credit=credit, date=day)


class TestFormatting:
    def test_format_currency(self):
        """Testa beloppsformat med tusentalsavgränsare"""
        assert format_currency(Decimal("12345")) == "12 345 kr"
        assert format_currency(Decimal("1234567.50")) == "1 234 568 kr"
        assert format_currency(-1500) == "-1 500 kr"
        assert format_currency(None) == "0 kr"

    def test_format_date(self):
        assert format_date(date(2025, 3, 31)) == "2025-03-31"
        assert format_date(None) == ""


class TestRendering:
    def test_templates_available(self, generator):
        assert generator.get_available_templates() == {
            'annual_report': True,
            'vat_report': True,
        }

    def test_render_vat_report(self, generator):
        """Testa momsdeklaration som HTML"""
        report = recalculate(VatReport(period="Q1 2025", ruta05=10000, ruta10=2500, ruta48=4000))
        report = update_box(report, "ruta48", 4000)
        html = generator.render_vat_report(report, "Test AB", "556123-4567")

        assert "Test AB" in html
        assert "556123-4567" in html
        assert "Q1 2025" in html
        assert "10 000 kr" in html
        assert "Att få tillbaka" in html
        assert "1 500 kr" in html
        assert 'class="manual"' in html

    def test_reduced_rate_labels(self, generator):
        """Testa att ruta 06 och 07 visas som försäljning med 12 % och 6 % moms"""
        report = recalculate(VatReport(period="Q1 2025", ruta06=1000, ruta11=120, ruta07=500, ruta12=30))
        html = generator.render_vat_report(report, "Test AB")

        assert "Momspliktig försäljning 12 %" in html
        assert "Momspliktig försäljning 6 %" in html
        assert "Momspliktiga uttag" not in html
        assert "vinstmarginalbeskattning" not in html

    def test_render_annual_report(self, generator):
        """Testa årsredovisning som HTML"""
        rows = [
            row("1930", debit=12500),
            row("3010", credit=10000),
            row("2610", credit=2500),
        ]
        report = build_annual_report(rows, 2025)
        html = generator.render_annual_report(
            report, "Test & Co AB", additional_data={"forvaltningsberattelse": "Verksamheten"}
        )

        assert "Test &amp; Co AB" in html
        assert "Resultaträkning" in html
        assert "Balansräkning" in html
        assert "Nettoomsättning" in html
        assert "SUMMA TILLGÅNGAR" in html
        assert "12 500 kr" in html
        assert "Verksamheten" in html
