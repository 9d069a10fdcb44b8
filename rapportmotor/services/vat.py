"""
Momsdeklaration (SKV 4700) - rutor ur huvudbokens kontosaldon

Kontona mappas till rutor via en fast tabell. Tabellen läses uppifrån
och ned och första träff vinner, därför står enskilda konton före
kontointervallen.

Utgående moms:  2610-2619 (25%), 2620-2629 (12%), 2630-2639 (6%)
Ingående moms:  2640-2649
"""
import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal
from typing import Iterable, Mapping, Optional, Union

from rapportmotor.config import VAT_RATES, VatStatus
from rapportmotor.exceptions import ConflictError, InputError
from rapportmotor.periods import ReportingPeriod, parse_period, vat_deadline
from rapportmotor.services.aggregation import (
    VerificationRow, aggregate, round_kronor, to_decimal
)

logger = logging.getLogger(__name__)

# (första konto, sista konto, ruta, tecken)
# Tecken -1 för kreditkonton (försäljning, utgående moms), +1 för debetkonton
VAT_ACCOUNT_MAP = [
    # Försäljning med särskild behandling
    (3002, 3002, "ruta06", -1),   # Försäljning 12%
    (3003, 3003, "ruta07", -1),   # Försäljning 6%
    (3108, 3108, "ruta35", -1),   # Varuförsäljning till annat EU-land
    (3105, 3105, "ruta36", -1),   # Varuförsäljning utanför EU
    (3308, 3308, "ruta39", -1),   # Tjänsteförsäljning till annat EU-land
    (3305, 3305, "ruta40", -1),   # Tjänsteförsäljning utanför EU
    (3231, 3231, "ruta41", -1),   # Försäljning där köparen är skattskyldig
    (3004, 3004, "ruta42", -1),   # Övrig momsfri försäljning
    (3001, 3740, "ruta05", -1),   # Momspliktig försäljning 25%

    # Inköp med omvänd skattskyldighet (underlag)
    (4515, 4515, "ruta20", 1),    # Inköp av varor från annat EU-land
    (4535, 4535, "ruta21", 1),    # Inköp av tjänster från annat EU-land
    (4531, 4531, "ruta22", 1),    # Inköp av tjänster utanför EU
    (4415, 4415, "ruta23", 1),    # Inköp av varor i Sverige
    (4425, 4425, "ruta24", 1),    # Inköp av tjänster i Sverige
    (4545, 4545, "ruta50", 1),    # Import av varor

    # Utgående moms på inköp och import
    (2614, 2614, "ruta30", -1),
    (2624, 2624, "ruta31", -1),
    (2634, 2634, "ruta32", -1),
    (2615, 2615, "ruta60", -1),
    (2625, 2625, "ruta61", -1),
    (2635, 2635, "ruta62", -1),

    # Utgående moms på försäljning
    (2610, 2619, "ruta10", -1),
    (2620, 2629, "ruta11", -1),
    (2630, 2639, "ruta12", -1),

    # Ingående moms att dra av
    (2640, 2649, "ruta48", 1),
]

# Försäljningsunderlag -> (momsruta, momssats)
SALES_BASE_BOXES = {
    "ruta05": ("ruta10", VAT_RATES["standard"]),
    "ruta06": ("ruta11", VAT_RATES["reduced"]),
    "ruta07": ("ruta12", VAT_RATES["low"]),
}

BOX_NAMES = [
    "ruta05", "ruta06", "ruta07", "ruta08",
    "ruta10", "ruta11", "ruta12",
    "ruta20", "ruta21", "ruta22", "ruta23", "ruta24",
    "ruta30", "ruta31", "ruta32",
    "ruta35", "ruta36", "ruta37", "ruta38", "ruta39", "ruta40", "ruta41", "ruta42",
    "ruta48", "ruta49", "ruta50",
    "ruta60", "ruta61", "ruta62",
]

# Rutor som alltid beräknas och inte kan ändras för hand
DERIVED_BOXES = {"ruta49"}

# Elementnamn i eSKDUpload 6.0
XML_ELEMENTS = {
    "ruta05": "ForsMomsEjAnnan",
    "ruta06": "UttagMoms",
    "ruta07": "UlagMargbesk",
    "ruta08": "HyrinkomstFriv",
    "ruta10": "MomsUtgHog",
    "ruta11": "MomsUtgMedel",
    "ruta12": "MomsUtgLag",
    "ruta20": "InkopVaruAnnatEg",
    "ruta21": "InkopTjanstAnnatEg",
    "ruta22": "InkopTjanstUtomEg",
    "ruta23": "InkopVaruSverige",
    "ruta24": "InkopTjanstSverige",
    "ruta50": "MomsUlagImport",
    "ruta30": "MomsInkopUtgHog",
    "ruta31": "MomsInkopUtgMedel",
    "ruta32": "MomsInkopUtgLag",
    "ruta60": "MomsImportUtgHog",
    "ruta61": "MomsImportUtgMedel",
    "ruta62": "MomsImportUtgLag",
    "ruta35": "ForsVaruAnnatEg",
    "ruta36": "ForsVaruUtomEg",
    "ruta37": "InkopVaruMellan3p",
    "ruta38": "ForsVaruMellan3p",
    "ruta39": "ForsTjSkskAnnatEg",
    "ruta40": "ForsTjOvrUtomEg",
    "ruta41": "ForsKopareSkskSverige",
    "ruta42": "ForsOvrigt",
    "ruta48": "MomsIngAvdr",
    "ruta49": "MomsBetala",
}

ZERO = Decimal(0)


@dataclass(frozen=True)
class VatReport:
    """
    Momsdeklaration för en period

    Alla rutor är hela kronor. sales_vat, input_vat, net_vat och
    ruta49 räknas alltid fram av recalculate(). Negativ net_vat
    betyder att moms ska återbetalas.
    """
    period: str
    period_id: Optional[int] = None
    due_date: Optional[date] = None
    status: VatStatus = VatStatus.UPCOMING
    period_end: Optional[date] = None

    # Momspliktig försäljning
    ruta05: Decimal = ZERO
    ruta06: Decimal = ZERO
    ruta07: Decimal = ZERO
    ruta08: Decimal = ZERO

    # Utgående moms på försäljning
    ruta10: Decimal = ZERO
    ruta11: Decimal = ZERO
    ruta12: Decimal = ZERO

    # Inköp med omvänd skattskyldighet
    ruta20: Decimal = ZERO
    ruta21: Decimal = ZERO
    ruta22: Decimal = ZERO
    ruta23: Decimal = ZERO
    ruta24: Decimal = ZERO

    # Utgående moms på inköp
    ruta30: Decimal = ZERO
    ruta31: Decimal = ZERO
    ruta32: Decimal = ZERO

    # Momsfri försäljning m.m.
    ruta35: Decimal = ZERO
    ruta36: Decimal = ZERO
    ruta37: Decimal = ZERO
    ruta38: Decimal = ZERO
    ruta39: Decimal = ZERO
    ruta40: Decimal = ZERO
    ruta41: Decimal = ZERO
    ruta42: Decimal = ZERO

    # Ingående moms och resultat
    ruta48: Decimal = ZERO
    ruta49: Decimal = ZERO

    # Import
    ruta50: Decimal = ZERO
    ruta60: Decimal = ZERO
    ruta61: Decimal = ZERO
    ruta62: Decimal = ZERO

    # Summeringar
    sales_vat: Decimal = ZERO
    input_vat: Decimal = ZERO
    net_vat: Decimal = ZERO

    # Rutor som användaren har ändrat för hand
    manual_boxes: frozenset = field(default_factory=frozenset)

    def __post_init__(self):
        for name in BOX_NAMES + ["sales_vat", "input_vat", "net_vat"]:
            object.__setattr__(self, name, to_decimal(getattr(self, name)))
        object.__setattr__(self, "status", VatStatus(self.status))
        object.__setattr__(self, "manual_boxes", frozenset(self.manual_boxes))

    @property
    def is_refund(self) -> bool:
        """Ska moms återbetalas?"""
        return self.net_vat < 0

    @property
    def payment_label(self) -> str:
        return "Att få tillbaka" if self.is_refund else "Att betala"

    @property
    def amount_due(self) -> Decimal:
        """Belopp att betala eller få tillbaka (alltid positivt)"""
        return abs(self.net_vat)

    @property
    def is_submitted(self) -> bool:
        return self.status == VatStatus.SUBMITTED

    def boxes(self) -> dict:
        """Alla rutor som dict, i deklarationens ordning"""
        return {name: getattr(self, name) for name in BOX_NAMES}


def box_for_account(account: str):
    """Hitta (ruta, tecken) för ett konto, eller None"""
    if not account.isdigit():
        return None
    number = int(account)
    for start, end, box, sign in VAT_ACCOUNT_MAP:
        if start <= number <= end:
            return box, sign
    return None


def recalculate(report: VatReport) -> VatReport:
    """
    Räkna om summeringarna från rutornas aktuella värden

    Returnerar en ny rapport; argumentet ändras inte. Manuellt
    ändrade rutor behåller sina värden.
    """
    sales_vat = report.ruta10 + report.ruta11 + report.ruta12
    input_vat = report.ruta48
    net_vat = sales_vat - input_vat

    return replace(
        report,
        sales_vat=sales_vat,
        input_vat=input_vat,
        net_vat=net_vat,
        ruta49=net_vat,
    )


def build_from_balances(
    balances: Mapping[str, Decimal],
    period_label: str,
    period_id: Optional[int] = None,
    due_date: Optional[date] = None,
    status: Union[VatStatus, str] = VatStatus.UPCOMING
) -> VatReport:
    """
    Bygg momsdeklaration från kontosaldon (debet - kredit)

    Varje ruta avrundas för sig till hela kronor. Saknas underlag
    men moms är bokförd räknas underlaget fram ur momsen, och
    tvärtom.
    """
    raw = {}
    for account, balance in balances.items():
        match = box_for_account(account)
        if match is None:
            continue
        box, sign = match
        raw[box] = raw.get(box, ZERO) + sign * to_decimal(balance)

    values = {box: round_kronor(amount) for box, amount in raw.items()}

    for base_box, (vat_box, rate) in SALES_BASE_BOXES.items():
        base = values.get(base_box, ZERO)
        vat = values.get(vat_box, ZERO)
        if vat and not base:
            values[base_box] = round_kronor(raw[vat_box] / rate)
        elif base and not vat:
            values[vat_box] = round_kronor(raw[base_box] * rate)

    report = VatReport(
        period=period_label,
        period_id=period_id,
        due_date=due_date,
        status=status,
        **{box: value for box, value in values.items() if box not in DERIVED_BOXES}
    )
    return recalculate(report)


def update_box(report: VatReport, box: str, value) -> VatReport:
    """
    Ändra en ruta för hand

    Rutan markeras som manuell. Ändras ett försäljningsunderlag
    (ruta05/06/07) räknas dess momsruta om och tappar sin manuella
    markering.
    """
    if report.is_submitted:
        raise ConflictError(f"Momsdeklarationen för {report.period} är redan inskickad")
    if box not in BOX_NAMES:
        raise InputError(f"Okänd ruta: {box}")
    if box in DERIVED_BOXES:
        raise InputError(f"{box} beräknas och kan inte ändras")

    amount = round_kronor(value)
    changes = {box: amount}
    manual = set(report.manual_boxes) | {box}

    if box in SALES_BASE_BOXES:
        vat_box, rate = SALES_BASE_BOXES[box]
        changes[vat_box] = round_kronor(amount * rate)
        manual.discard(vat_box)

    return recalculate(replace(report, manual_boxes=frozenset(manual), **changes))


def _status_for(due_date: date, today: date) -> VatStatus:
    return VatStatus.OVERDUE if today > due_date else VatStatus.UPCOMING


def calculate_from_verifications(
    rows: Iterable[VerificationRow],
    period: Union[str, ReportingPeriod],
    period_id: Optional[int] = None,
    today: Optional[date] = None
) -> VatReport:
    """
    Beräkna momsdeklaration från verifikationsrader för en period

    period kan vara ett periodnamn ("Q1 2025", "2025-03", "2025")
    eller en ReportingPeriod.
    """
    if isinstance(period, str):
        period = parse_period(period)

    balances = aggregate(rows, period.start_date, period.end_date)
    due_date = vat_deadline(period)
    status = _status_for(due_date, today or date.today())

    report = build_from_balances(
        balances, period.name, period_id=period_id, due_date=due_date, status=status
    )
    report = replace(report, period_end=period.end_date)
    logger.info(
        "Momsdeklaration %s: utgående %s, ingående %s, netto %s",
        period.name, report.sales_vat, report.input_vat, report.net_vat
    )
    return report


def _indent(elem, level=0):
    i = "\n" + level * "  "
    if len(elem):
        if not elem.text or not elem.text.strip():
            elem.text = i + "  "
        if not elem.tail or not elem.tail.strip():
            elem.tail = i
        for child in elem:
            _indent(child, level + 1)
        if not child.tail or not child.tail.strip():
            child.tail = i
    else:
        if level and (not elem.tail or not elem.tail.strip()):
            elem.tail = i


def to_xml(report: VatReport, org_number: str) -> str:
    """
    Exportera momsdeklarationen som eSKDUpload 6.0 för Skatteverket

    Rutor med värdet 0 utelämnas, utom MomsBetala som alltid skrivs.
    """
    period_end = report.period_end or parse_period(report.period).end_date

    root = ET.Element("eSKDUpload", Version="6.0")
    ET.SubElement(root, "OrgNr").text = org_number or ""

    moms = ET.SubElement(root, "Moms")
    ET.SubElement(moms, "Period").text = period_end.strftime("%Y%m")

    # Elementen skrivs i DTD:ns ordning
    for box, element in XML_ELEMENTS.items():
        value = getattr(report, box)
        if box == "ruta49" or value:
            ET.SubElement(moms, element).text = str(int(value))

    _indent(root)
    xml_string = ET.tostring(root, encoding="utf-8", method="xml").decode("utf-8")

    doctype = (
        '<!DOCTYPE eSKDUpload PUBLIC "-//Skatteverket, Sweden//DTD Skatteverket eSKDUpload-DTD Version 6.0//SV" '
        '"https://www.skatteverket.se/download/18.3f4496fd14864cc5ac99cb1/1415022101213/eSKDUpload_6p0.dtd">\n'
    )

    # DOCTYPE ska ligga direkt efter XML-deklarationen
    xml_lines = xml_string.split('\n', 1)
    if len(xml_lines) == 2:
        return xml_lines[0] + '\n' + doctype + xml_lines[1]
    return doctype + xml_string
