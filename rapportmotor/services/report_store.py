"""
Rapportlagring - sparar beräknade rapporter med status utkast/inskickad

En inskickad rapport är en låst ögonblicksbild. Den skrivs aldrig
över; en rättelse sparas som en ny rapport som pekar på den
inskickade via supersedes_id.
"""
import logging
from dataclasses import replace
from datetime import datetime
from typing import Optional, Union
from sqlalchemy.orm import Session

from rapportmotor.config import ReportStatus, ReportType, VatStatus
from rapportmotor.exceptions import ConflictError, InputError
from rapportmotor.models import FinancialPeriod, ReportRecord
from rapportmotor.periods import ReportingPeriod
from rapportmotor.schemas import dump_report, parse_report, report_type_of
from rapportmotor.services import ink2, statements, vat
from rapportmotor.services.ledger import LedgerService

logger = logging.getLogger(__name__)


class ReportStore:
    """
    Tjänst för sparade rapporter

    Hanterar:
    - Spara utkast och inskickade rapporter
    - Skicka in utkast
    - Läsa rapport för en period (inskickad ögonblicksbild eller
      ett färskt utkast från huvudboken)
    """

    def __init__(self, db: Session):
        self.db = db
        self.ledger = LedgerService(db)

    # === HJÄLPMETODER ===

    def _latest_submitted(self, period_id: int, report_type: str) -> Optional[ReportRecord]:
        return (
            self.db.query(ReportRecord)
            .filter(
                ReportRecord.period_id == period_id,
                ReportRecord.report_type == report_type,
                ReportRecord.status == ReportStatus.SUBMITTED
            )
            .order_by(ReportRecord.submitted_at.desc(), ReportRecord.id.desc())
            .first()
        )

    def _draft(self, period_id: int, report_type: str) -> Optional[ReportRecord]:
        return (
            self.db.query(ReportRecord)
            .filter(
                ReportRecord.period_id == period_id,
                ReportRecord.report_type == report_type,
                ReportRecord.status == ReportStatus.DRAFT
            )
            .order_by(ReportRecord.id.desc())
            .first()
        )

    def _check_not_locked(
        self,
        period_id: int,
        report_type: str,
        supersedes_id: Optional[int]
    ) -> Optional[ReportRecord]:
        """Kasta ConflictError om en inskickad rapport skulle skrivas över"""
        submitted = self._latest_submitted(period_id, report_type)

        if submitted is None:
            if supersedes_id is not None:
                raise InputError(
                    f"Rapport {supersedes_id} är inte en inskickad rapport för perioden"
                )
            return None

        if supersedes_id != submitted.id:
            logger.warning(
                "Konflikt: %s för period %s är redan inskickad (rapport %s)",
                report_type, period_id, submitted.id
            )
            raise ConflictError(
                f"Det finns redan en inskickad rapport ({report_type}) för perioden. "
                f"Skapa en ny rapport som ersätter rapport {submitted.id}.",
                record_id=submitted.id
            )
        return submitted

    # === SPARA ===

    def save(
        self,
        report,
        status: Union[ReportStatus, str] = ReportStatus.DRAFT,
        supersedes_id: Optional[int] = None
    ) -> ReportRecord:
        """
        Spara rapport för dess period

        Ett befintligt utkast för perioden uppdateras. Finns en
        inskickad rapport kastas ConflictError, om inte supersedes_id
        anger den senast inskickade rapporten.
        """
        status = ReportStatus(status)
        report_type = report_type_of(report).value

        if report.period_id is None:
            raise InputError("Rapporten saknar period_id")
        period = self.ledger.get_period(report.period_id)
        if not period:
            raise InputError(f"Period {report.period_id} finns inte")

        self._check_not_locked(period.id, report_type, supersedes_id)

        if status == ReportStatus.SUBMITTED and isinstance(report, vat.VatReport):
            report = replace(report, status=VatStatus.SUBMITTED)

        data = dump_report(report)
        now = datetime.now()

        record = self._draft(period.id, report_type)
        if record:
            # Uppdatera befintligt utkast
            record.data = data
            record.status = status
            record.supersedes_id = supersedes_id
            record.generated_at = now
        else:
            record = ReportRecord(
                period_id=period.id,
                report_type=report_type,
                data=data,
                status=status,
                period_start=period.start_date,
                period_end=period.end_date,
                supersedes_id=supersedes_id,
                generated_at=now
            )
            self.db.add(record)

        if status == ReportStatus.SUBMITTED:
            record.submitted_at = now

        self.db.commit()
        self.db.refresh(record)
        logger.info(
            "Sparade %s för period %s som %s (rapport %s)",
            report_type, period.name, status.value, record.id
        )
        return record

    def submit(self, record_id: int) -> ReportRecord:
        """Markera ett utkast som inskickat"""
        record = self.get_record(record_id)
        if not record:
            raise InputError(f"Rapport {record_id} finns inte")
        if record.is_submitted:
            raise ConflictError(f"Rapport {record_id} är redan inskickad", record_id=record_id)

        self._check_not_locked(record.period_id, record.report_type, record.supersedes_id)

        if record.report_type == ReportType.VAT.value:
            record.data = {**record.data, "status": VatStatus.SUBMITTED.value}

        record.status = ReportStatus.SUBMITTED
        record.submitted_at = datetime.now()
        self.db.commit()
        self.db.refresh(record)
        logger.info("Rapport %s (%s) inskickad", record.id, record.report_type)
        return record

    # === LÄSA ===

    def get_record(self, record_id: int) -> Optional[ReportRecord]:
        """Hämta sparad rapport"""
        return self.db.query(ReportRecord).filter(ReportRecord.id == record_id).first()

    def get_records(
        self,
        period_id: Optional[int] = None,
        report_type: Optional[str] = None
    ) -> list[ReportRecord]:
        """Hämta sparade rapporter, senaste först"""
        query = self.db.query(ReportRecord)
        if period_id:
            query = query.filter(ReportRecord.period_id == period_id)
        if report_type:
            query = query.filter(ReportRecord.report_type == ReportType(report_type).value)
        return query.order_by(ReportRecord.generated_at.desc(), ReportRecord.id.desc()).all()

    def load(self, period_id: int, report_type: Union[ReportType, str] = ReportType.VAT):
        """
        Läs rapport för en period

        Finns en inskickad rapport returneras den som den sparades,
        utan omräkning. Annars beräknas ett färskt utkast från
        huvudboken. Okänd period ger None.
        """
        report_type = ReportType(report_type)
        period = self.ledger.get_period(period_id)
        if not period:
            return None

        submitted = self._latest_submitted(period.id, report_type.value)
        if submitted:
            return parse_report(submitted.report_type, submitted.data)

        report = self.build_live(period, report_type)

        draft = self._draft(period.id, report_type.value)
        if draft and report_type == ReportType.VAT:
            report = self._apply_manual_boxes(report, parse_report(draft.report_type, draft.data))

        return report

    def build_live(self, period: FinancialPeriod, report_type: ReportType):
        """Beräkna rapport från huvudbokens aktuella innehåll"""
        rows = self.ledger.get_rows(end_date=period.end_date)

        if report_type == ReportType.VAT:
            reporting_period = ReportingPeriod(
                period.name, period.period_type, period.start_date, period.end_date
            )
            return vat.calculate_from_verifications(rows, reporting_period, period_id=period.id)
        if report_type == ReportType.ANNUAL_REPORT:
            return statements.build_annual_report(rows, period, period_id=period.id)
        return ink2.calculate_ink2(rows, period, period_id=period.id)

    def _apply_manual_boxes(self, live: vat.VatReport, saved: vat.VatReport) -> vat.VatReport:
        """
        Lägg tillbaka rutor som användaren ändrat för hand i ett sparat utkast

        En handändrad momsruta gäller bara så länge underlaget är
        oförändrat. Har underlaget i huvudboken ändrats sedan utkastet
        sparades används den omräknade momsen.
        """
        stale = set()
        for base_box, (vat_box, _) in vat.SALES_BASE_BOXES.items():
            if vat_box not in saved.manual_boxes or base_box in saved.manual_boxes:
                continue
            if getattr(live, base_box) != getattr(saved, base_box):
                logger.info(
                    "Underlaget i %s har ändrats (%s -> %s), handändrad %s släpps",
                    base_box, getattr(saved, base_box), getattr(live, base_box), vat_box
                )
                stale.add(vat_box)

        # Underlagen först så att en handändrad momsruta vinner
        for box in vat.BOX_NAMES:
            if box in saved.manual_boxes and box not in stale:
                live = vat.update_box(live, box, getattr(saved, box))
        return live
