"""
Tester för rapportlagringen (utkast, inskickade rapporter, ögonblicksbilder)
"""
import pytest
from datetime import date
from decimal import Decimal

from rapportmotor.config import PeriodType, ReportStatus, ReportType, VatStatus
from rapportmotor.exceptions import ConflictError, InputError, ReportDataError
from rapportmotor.models import ReportRecord
from rapportmotor.services.ink2 import Ink2Declaration
from rapportmotor.services.report_store import ReportStore
from rapportmotor.services.statements import AnnualReport
from rapportmotor.services.vat import VatReport, update_box


@pytest.fixture
def store(db):
    return ReportStore(db)


@pytest.fixture
def quarter(store):
    """Q1 2025 med en försäljning"""
    period = store.ledger.create_period("Q1 2025", date(2025, 1, 1), date(2025, 3, 31))
    book_sale(store, date(2025, 2, 1))
    return period


@pytest.fixture
def year(store):
    """Räkenskapsåret 2025 med aktiekapital och en försäljning"""
    period = store.ledger.create_period(
        "2025", date(2025, 1, 1), date(2025, 12, 31), PeriodType.YEAR
    )
    store.ledger.create_verification(
        date(2025, 1, 1), "Aktiekapital",
        [{"account": "1930", "debit": 25000}, {"account": "2081", "credit": 25000}]
    )
    book_sale(store, date(2025, 2, 1))
    return period


def book_sale(store, day, amount=Decimal("10000")):
    store.ledger.create_verification(
        day, "Försäljning",
        [
            {"account": "1510", "debit": amount * Decimal("1.25")},
            {"account": "3010", "credit": amount},
            {"account": "2610", "credit": amount * Decimal("0.25")},
        ]
    )


class TestLoad:
    def test_live_draft(self, store, quarter):
        """Testa att utkast beräknas från huvudboken"""
        report = store.load(quarter.id)
        assert isinstance(report, VatReport)
        assert report.ruta05 == 10000
        assert report.ruta10 == 2500
        assert report.net_vat == 2500
        assert report.period_id == quarter.id
        assert report.due_date == date(2025, 5, 12)

    def test_live_draft_follows_ledger(self, store, quarter):
        """Testa att utkastet ändras när huvudboken ändras"""
        store.save(store.load(quarter.id))
        book_sale(store, date(2025, 3, 1))
        assert store.load(quarter.id).net_vat == 5000

    def test_unknown_period(self, store):
        assert store.load(999) is None

    def test_submitted_snapshot_is_frozen(self, store, quarter):
        """Testa att inskickad rapport läses som den sparades"""
        store.save(store.load(quarter.id), status=ReportStatus.SUBMITTED)
        book_sale(store, date(2025, 3, 1))

        report = store.load(quarter.id)
        assert report.net_vat == 2500
        assert report.status == VatStatus.SUBMITTED
        assert report.is_submitted

    def test_manual_boxes_survive_recalculation(self, store, quarter):
        """Testa att handändrade rutor i ett sparat utkast ligger kvar"""
        report = update_box(store.load(quarter.id), "ruta48", 800)
        store.save(report)
        book_sale(store, date(2025, 3, 1))

        reloaded = store.load(quarter.id)
        assert reloaded.ruta10 == 5000
        assert reloaded.ruta48 == 800
        assert reloaded.net_vat == 4200
        assert "ruta48" in reloaded.manual_boxes

    def test_manual_vat_box_dropped_when_base_changes(self, store, quarter):
        """Testa att handändrad momsruta släpps när underlaget ändras i huvudboken"""
        store.save(update_box(store.load(quarter.id), "ruta10", 2600))
        assert store.load(quarter.id).ruta10 == 2600

        book_sale(store, date(2025, 3, 1), amount=Decimal("4000"))

        reloaded = store.load(quarter.id)
        assert reloaded.ruta05 == 14000
        assert reloaded.ruta10 == 3500
        assert reloaded.net_vat == 3500
        assert "ruta10" not in reloaded.manual_boxes

    def test_manual_vat_box_kept_with_manual_base(self, store, quarter):
        """Testa att handändrad moms ligger kvar när även underlaget är handändrat"""
        report = update_box(store.load(quarter.id), "ruta05", 12000)
        store.save(update_box(report, "ruta10", 2990))
        book_sale(store, date(2025, 3, 1), amount=Decimal("4000"))

        reloaded = store.load(quarter.id)
        assert reloaded.ruta05 == 12000
        assert reloaded.ruta10 == 2990
        assert {"ruta05", "ruta10"} <= reloaded.manual_boxes

    def test_corrupt_snapshot(self, store, db, quarter):
        """Testa att felaktig sparad data ger ReportDataError"""
        db.add(ReportRecord(
            period_id=quarter.id,
            report_type=ReportType.VAT.value,
            data={"period": "Q1 2025", "ruta05": "10000", "okant_falt": 1},
            status=ReportStatus.SUBMITTED,
            period_start=quarter.start_date,
            period_end=quarter.end_date,
        ))
        db.commit()

        with pytest.raises(ReportDataError):
            store.load(quarter.id)


class TestSave:
    def test_draft_updated_in_place(self, store, quarter):
        """Testa att utkast för samma period uppdateras"""
        first = store.save(store.load(quarter.id))
        second = store.save(update_box(store.load(quarter.id), "ruta48", 100))
        assert first.id == second.id
        assert second.status == ReportStatus.DRAFT
        assert second.data["ruta48"] == "100"
        assert len(store.get_records(quarter.id)) == 1

    def test_overwrite_submitted_conflict(self, store, quarter):
        """Testa att inskickad rapport inte kan skrivas över"""
        submitted = store.save(store.load(quarter.id), status="submitted")

        with pytest.raises(ConflictError) as excinfo:
            store.save(store.load(quarter.id))
        assert excinfo.value.record_id == submitted.id

        record = store.get_record(submitted.id)
        assert record.is_submitted
        assert record.submitted_at is not None

    def test_superseding_report(self, store, quarter):
        """Testa rättelse som ersätter inskickad rapport"""
        submitted = store.save(store.load(quarter.id), status="submitted")
        book_sale(store, date(2025, 3, 1))

        period = store.ledger.get_period(quarter.id)
        correction = store.build_live(period, ReportType.VAT)
        record = store.save(correction, supersedes_id=submitted.id)

        assert record.id != submitted.id
        assert record.supersedes_id == submitted.id
        assert record.status == ReportStatus.DRAFT

        store.submit(record.id)
        assert store.load(quarter.id).net_vat == 5000
        assert store.get_record(submitted.id).data["net_vat"] == "2500"

    def test_supersedes_without_submitted(self, store, quarter):
        with pytest.raises(InputError):
            store.save(store.load(quarter.id), supersedes_id=1)

    def test_missing_period(self, store):
        """Testa att rapport utan giltig period avvisas"""
        with pytest.raises(InputError):
            store.save(VatReport(period="Q1 2025"))
        with pytest.raises(InputError):
            store.save(VatReport(period="Q1 2025", period_id=42))

    def test_unknown_report_type(self, store, quarter):
        with pytest.raises(InputError):
            store.save({"period_id": quarter.id})


class TestSubmit:
    def test_submit_draft(self, store, quarter):
        """Testa att skicka in utkast"""
        draft = store.save(store.load(quarter.id))
        record = store.submit(draft.id)
        assert record.is_submitted
        assert record.data["status"] == "submitted"
        assert store.load(quarter.id).is_submitted

    def test_submit_twice(self, store, quarter):
        """Testa att samma rapport inte kan skickas in två gånger"""
        draft = store.save(store.load(quarter.id))
        store.submit(draft.id)
        with pytest.raises(ConflictError):
            store.submit(draft.id)

    def test_submit_missing(self, store):
        with pytest.raises(InputError):
            store.submit(12345)


class TestOtherReports:
    def test_annual_report_snapshot(self, store, year):
        """Testa att årsredovisning sparas och läses oförändrad"""
        live = store.load(year.id, ReportType.ANNUAL_REPORT)
        assert isinstance(live, AnnualReport)
        assert live.net_result == 10000
        assert live.balance_sheet.balances

        store.save(live, status=ReportStatus.SUBMITTED)
        book_sale(store, date(2025, 6, 1))

        saved = store.load(year.id, "annual_report")
        assert saved.net_result == 10000
        assert saved.balance_sheet.total_assets == live.balance_sheet.total_assets
        assert [l.label for l in saved.income_statement] == [l.label for l in live.income_statement]

    def test_ink2_snapshot(self, store, year):
        """Testa att INK2 sparas och läses oförändrad"""
        live = store.load(year.id, ReportType.INK2)
        assert isinstance(live, Ink2Declaration)
        assert live.get("3.1") == 10000

        store.save(live, status=ReportStatus.SUBMITTED)
        book_sale(store, date(2025, 6, 1))

        saved = store.load(year.id, ReportType.INK2)
        assert saved.get("3.1") == 10000
        assert saved.calculated_tax == live.calculated_tax

    def test_types_are_independent(self, store, year):
        """Testa att inskickad INK2 inte låser årsredovisningen"""
        store.save(store.load(year.id, ReportType.INK2), status=ReportStatus.SUBMITTED)
        record = store.save(store.load(year.id, ReportType.ANNUAL_REPORT))
        assert record.report_type == "annual_report"
        assert len(store.get_records(year.id)) == 2
        assert len(store.get_records(year.id, "ink2")) == 1
