"""
Scheman för sparad rapportdata (JSON)

Sparad data valideras alltid mot ett schema innan den används.
Okända eller felaktiga fält ger ReportDataError i stället för att
tyst slås ihop med standardvärden.
"""
from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, ValidationError

from rapportmotor.config import ReportType, VatStatus
from rapportmotor.exceptions import InputError, ReportDataError
from rapportmotor.services.ink2 import Ink2Declaration, Ink2Field
from rapportmotor.services.statements import AnnualReport, BalanceSheet, StatementLine
from rapportmotor.services.vat import VatReport

ZERO = Decimal(0)


class StrictModel(BaseModel):
    """Basschema som inte tillåter okända fält"""
    model_config = {"extra": "forbid"}


# === MOMSDEKLARATION ===

class VatReportData(StrictModel):
    """Sparad momsdeklaration"""
    period: str = Field(..., min_length=1)
    period_id: Optional[int] = None
    due_date: Optional[date] = None
    status: VatStatus = VatStatus.UPCOMING
    period_end: Optional[date] = None

    ruta05: Decimal = ZERO
    ruta06: Decimal = ZERO
    ruta07: Decimal = ZERO
    ruta08: Decimal = ZERO
    ruta10: Decimal = ZERO
    ruta11: Decimal = ZERO
    ruta12: Decimal = ZERO
    ruta20: Decimal = ZERO
    ruta21: Decimal = ZERO
    ruta22: Decimal = ZERO
    ruta23: Decimal = ZERO
    ruta24: Decimal = ZERO
    ruta30: Decimal = ZERO
    ruta31: Decimal = ZERO
    ruta32: Decimal = ZERO
    ruta35: Decimal = ZERO
    ruta36: Decimal = ZERO
    ruta37: Decimal = ZERO
    ruta38: Decimal = ZERO
    ruta39: Decimal = ZERO
    ruta40: Decimal = ZERO
    ruta41: Decimal = ZERO
    ruta42: Decimal = ZERO
    ruta48: Decimal = ZERO
    ruta49: Decimal = ZERO
    ruta50: Decimal = ZERO
    ruta60: Decimal = ZERO
    ruta61: Decimal = ZERO
    ruta62: Decimal = ZERO

    sales_vat: Decimal = ZERO
    input_vat: Decimal = ZERO
    net_vat: Decimal = ZERO

    manual_boxes: list[str] = Field(default_factory=list)


# === ÅRSREDOVISNING ===

class StatementLineData(StrictModel):
    label: str
    value: Decimal = ZERO
    level: int = Field(0, ge=0)
    is_header: bool = False
    is_total: bool = False
    accounts: Optional[str] = None


class BalanceSheetData(StrictModel):
    lines: list[StatementLineData] = Field(default_factory=list)
    balances: bool = True
    total_assets: Decimal = ZERO
    total_equity_and_liabilities: Decimal = ZERO
    as_of: Optional[date] = None


class AnnualReportData(StrictModel):
    """Sparad årsredovisning (resultat- och balansräkning)"""
    start_date: date
    end_date: date
    period_id: Optional[int] = None
    income_statement: list[StatementLineData] = Field(default_factory=list)
    balance_sheet: BalanceSheetData


# === INK2 ===

class Ink2FieldData(StrictModel):
    field: str
    label: str
    value: Decimal = ZERO
    section: str


class Ink2Data(StrictModel):
    """Sparat INK2-underlag"""
    start_date: date
    end_date: date
    period_id: Optional[int] = None
    balance_sheet: list[Ink2FieldData] = Field(default_factory=list)
    income_statement: list[Ink2FieldData] = Field(default_factory=list)
    tax_adjustments: list[Ink2FieldData] = Field(default_factory=list)
    total_assets: Decimal = ZERO
    total_equity_and_liabilities: Decimal = ZERO
    net_result: Decimal = ZERO
    taxable_result: Decimal = ZERO
    calculated_tax: Decimal = ZERO


SCHEMAS = {
    ReportType.VAT: VatReportData,
    ReportType.ANNUAL_REPORT: AnnualReportData,
    ReportType.INK2: Ink2Data,
}


def report_type_of(report) -> ReportType:
    """Rapporttyp för ett rapportobjekt"""
    if isinstance(report, VatReport):
        return ReportType.VAT
    if isinstance(report, AnnualReport):
        return ReportType.ANNUAL_REPORT
    if isinstance(report, Ink2Declaration):
        return ReportType.INK2
    raise InputError(f"Okänd rapporttyp: {type(report).__name__}")


def _lines(lines) -> list[dict]:
    return [StatementLineData.model_validate(line, from_attributes=True).model_dump() for line in lines]


def _ink2_fields(fields) -> list[dict]:
    return [Ink2FieldData.model_validate(f, from_attributes=True).model_dump() for f in fields]


def dump_report(report) -> dict:
    """Serialisera en rapport till JSON-kompatibel dict"""
    report_type = report_type_of(report)

    if report_type == ReportType.VAT:
        data = {name: getattr(report, name) for name in VatReportData.model_fields}
        data["manual_boxes"] = sorted(report.manual_boxes)
        model = VatReportData.model_validate(data)

    elif report_type == ReportType.ANNUAL_REPORT:
        sheet = report.balance_sheet
        model = AnnualReportData.model_validate({
            "start_date": report.start_date,
            "end_date": report.end_date,
            "period_id": report.period_id,
            "income_statement": _lines(report.income_statement),
            "balance_sheet": {
                "lines": _lines(sheet.lines),
                "balances": sheet.balances,
                "total_assets": sheet.total_assets,
                "total_equity_and_liabilities": sheet.total_equity_and_liabilities,
                "as_of": sheet.as_of,
            },
        })

    else:
        model = Ink2Data.model_validate({
            "start_date": report.start_date,
            "end_date": report.end_date,
            "period_id": report.period_id,
            "balance_sheet": _ink2_fields(report.balance_sheet),
            "income_statement": _ink2_fields(report.income_statement),
            "tax_adjustments": _ink2_fields(report.tax_adjustments),
            "total_assets": report.total_assets,
            "total_equity_and_liabilities": report.total_equity_and_liabilities,
            "net_result": report.net_result,
            "taxable_result": report.taxable_result,
            "calculated_tax": report.calculated_tax,
        })

    return model.model_dump(mode="json")


def parse_report(report_type, data: dict):
    """
    Tolka sparad JSON till ett rapportobjekt

    Kastar ReportDataError om datan inte följer schemat.
    """
    try:
        report_type = ReportType(report_type)
    except ValueError:
        raise ReportDataError(f"Okänd rapporttyp: {report_type!r}")

    try:
        model = SCHEMAS[report_type].model_validate(data)
    except ValidationError as e:
        raise ReportDataError(f"Felaktig sparad rapport ({report_type.value}): {e}") from e

    if report_type == ReportType.VAT:
        return VatReport(**model.model_dump())

    if report_type == ReportType.ANNUAL_REPORT:
        sheet = model.balance_sheet
        return AnnualReport(
            start_date=model.start_date,
            end_date=model.end_date,
            period_id=model.period_id,
            income_statement=[StatementLine(**line.model_dump()) for line in model.income_statement],
            balance_sheet=BalanceSheet(
                lines=[StatementLine(**line.model_dump()) for line in sheet.lines],
                balances=sheet.balances,
                total_assets=sheet.total_assets,
                total_equity_and_liabilities=sheet.total_equity_and_liabilities,
                as_of=sheet.as_of,
            ),
        )

    return Ink2Declaration(
        start_date=model.start_date,
        end_date=model.end_date,
        period_id=model.period_id,
        balance_sheet=[Ink2Field(**f.model_dump()) for f in model.balance_sheet],
        income_statement=[Ink2Field(**f.model_dump()) for f in model.income_statement],
        tax_adjustments=[Ink2Field(**f.model_dump()) for f in model.tax_adjustments],
        total_assets=model.total_assets,
        total_equity_and_liabilities=model.total_equity_and_liabilities,
        net_result=model.net_result,
        taxable_result=model.taxable_result,
        calculated_tax=model.calculated_tax,
    )
