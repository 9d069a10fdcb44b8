"""
INK2 - Inkomstdeklaration för aktiebolag

Räknar fram fälten i:
- INK2R Balansräkning (2.1-2.50), ackumulerat till räkenskapsårets slut
- INK2R Resultaträkning (3.1-3.27), räkenskapsårets rörelser
- INK2S Skattemässiga justeringar (4.1-4.16)

Alla fält är hela kronor.
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional, Union

from rapportmotor.config import CORPORATE_TAX_RATE
from rapportmotor.periods import period_bounds
from rapportmotor.services.aggregation import (
    VerificationRow, aggregate, round_kronor, sum_range, sum_ranges
)

logger = logging.getLogger(__name__)

# Konton med kostnader som inte är avdragsgilla
NON_DEDUCTIBLE_ACCOUNTS = (
    (6072, 6072),  # Representation, ej avdragsgill
    (6992, 6992),  # Övriga externa kostnader, ej avdragsgilla
    (8423, 8423),  # Räntekostnader för skatter och avgifter
)

# (fält, etikett, kontointervall, avsnitt)
BALANCE_SHEET_ASSET_FIELDS = [
    ("2.1", "Koncessioner, patent, licenser, varumärken, hyresrätter, goodwill och liknande rättigheter",
     ((1000, 1059),), "Immateriella anläggningstillgångar"),
    ("2.2", "Förskott avseende immateriella anläggningstillgångar",
     ((1060, 1099),), "Immateriella anläggningstillgångar"),
    ("2.3", "Byggnader och mark", ((1100, 1159), (1170, 1199)), "Materiella anläggningstillgångar"),
    ("2.4", "Maskiner och andra tekniska anläggningar", ((1200, 1219),), "Materiella anläggningstillgångar"),
    ("2.5", "Inventarier, verktyg och installationer", ((1220, 1279),), "Materiella anläggningstillgångar"),
    ("2.6", "Förbättringsutgifter på annans fastighet", ((1160, 1169),), "Materiella anläggningstillgångar"),
    ("2.7", "Pågående nyanläggningar och förskott avseende materiella anläggningstillgångar",
     ((1280, 1299),), "Materiella anläggningstillgångar"),
    ("2.8", "Andelar i koncernföretag", ((1300, 1319),), "Finansiella anläggningstillgångar"),
    ("2.9", "Andelar i intresseföretag och gemensamt styrda företag samt andra långfristiga värdepappersinnehav",
     ((1320, 1349),), "Finansiella anläggningstillgångar"),
    ("2.10", "Fordringar hos koncern-, intresse- och gemensamt styrda företag",
     ((1350, 1369),), "Finansiella anläggningstillgångar"),
    ("2.11", "Lån till delägare eller närstående", ((1380, 1389),), "Finansiella anläggningstillgångar"),
    ("2.12", "Fordringar hos övriga företag som det finns ett ägarintresse i och andra långfristiga fordringar",
     ((1370, 1379), (1390, 1399)), "Finansiella anläggningstillgångar"),
    ("2.13", "Råvaror och förnödenheter", ((1400, 1439),), "Varulager m.m."),
    ("2.14", "Varor under tillverkning", ((1440, 1449),), "Varulager m.m."),
    ("2.15", "Färdiga varor och handelsvaror", ((1450, 1469),), "Varulager m.m."),
    ("2.16", "Övriga lagertillgångar", ((1470, 1479),), "Varulager m.m."),
    ("2.17", "Pågående arbeten för annans räkning", ((1480, 1489),), "Varulager m.m."),
    ("2.18", "Förskott till leverantörer", ((1490, 1499),), "Varulager m.m."),
    ("2.19", "Kundfordringar", ((1500, 1549),), "Kortfristiga fordringar"),
    ("2.20", "Fordringar hos koncern-, intresse- och gemensamt styrda företag",
     ((1550, 1579),), "Kortfristiga fordringar"),
    ("2.21", "Fordringar hos övriga företag som det finns ett ägarintresse i och övriga fordringar",
     ((1580, 1619), (1630, 1699)), "Kortfristiga fordringar"),
    ("2.22", "Upparbetad men ej fakturerad intäkt", ((1620, 1629),), "Kortfristiga fordringar"),
    ("2.23", "Förutbetalda kostnader och upplupna intäkter", ((1700, 1799),), "Kortfristiga fordringar"),
    ("2.24", "Andelar i koncernföretag", ((1800, 1819),), "Kortfristiga placeringar"),
    ("2.25", "Övriga kortfristiga placeringar", ((1820, 1899),), "Kortfristiga placeringar"),
    ("2.26", "Kassa, bank och redovisningsmedel", ((1900, 1999),), "Kassa och bank"),
]

BALANCE_SHEET_LIABILITY_FIELDS = [
    ("2.27", "Bundet eget kapital", ((2000, 2089),), "Eget kapital"),
    # Fritt eget kapital inkluderar årets ej avslutade resultat
    ("2.28", "Fritt eget kapital", ((2090, 2099), (3000, 8999)), "Eget kapital"),
    ("2.29", "Periodiseringsfonder", ((2110, 2149),), "Obeskattade reserver"),
    ("2.30", "Ackumulerade överavskrivningar", ((2150, 2159),), "Obeskattade reserver"),
    ("2.31", "Övriga obeskattade reserver", ((2100, 2109), (2160, 2199)), "Obeskattade reserver"),
    ("2.32", "Avsättningar för pensioner och liknande förpliktelser enligt lag (1967:531)",
     ((2210, 2219),), "Avsättningar"),
    ("2.33", "Övriga avsättningar för pensioner och liknande förpliktelser", ((2220, 2249),), "Avsättningar"),
    ("2.34", "Övriga avsättningar", ((2200, 2209), (2250, 2299)), "Avsättningar"),
    ("2.35", "Obligationslån", ((2300, 2319),), "Långfristiga skulder"),
    ("2.36", "Checkräkningskredit", ((2330, 2339),), "Långfristiga skulder"),
    ("2.37", "Övriga skulder till kreditinstitut", ((2320, 2329), (2340, 2359)), "Långfristiga skulder"),
    ("2.38", "Skulder till koncern-, intresse- och gemensamt styrda företag",
     ((2360, 2379),), "Långfristiga skulder"),
    ("2.39", "Skulder till övriga företag som det finns ett ägarintresse i och övriga skulder",
     ((2380, 2399),), "Långfristiga skulder"),
    ("2.40", "Checkräkningskredit", ((2400, 2419),), "Kortfristiga skulder"),
    ("2.41", "Övriga skulder till kreditinstitut", ((2420, 2439),), "Kortfristiga skulder"),
    ("2.42", "Förskott från kunder", ((2450, 2459),), "Kortfristiga skulder"),
    ("2.43", "Pågående arbeten för annans räkning", ((2460, 2469),), "Kortfristiga skulder"),
    ("2.44", "Fakturerad men ej upparbetad intäkt", ((2470, 2479),), "Kortfristiga skulder"),
    ("2.45", "Leverantörsskulder", ((2440, 2449),), "Kortfristiga skulder"),
    ("2.46", "Växelskulder", ((2480, 2499),), "Kortfristiga skulder"),
    ("2.47", "Skulder till koncern-, intresse- och gemensamt styrda företag",
     ((2860, 2879),), "Kortfristiga skulder"),
    ("2.48", "Skulder till övriga företag som det finns ett ägarintresse i och övriga skulder",
     ((2520, 2859), (2880, 2899)), "Kortfristiga skulder"),
    ("2.49", "Skatteskulder", ((2500, 2519),), "Kortfristiga skulder"),
    ("2.50", "Upplupna kostnader och förutbetalda intäkter", ((2900, 2999),), "Kortfristiga skulder"),
]

# Värden visas resultatpositiva: intäkter +, kostnader -
INCOME_STATEMENT_FIELDS = [
    ("3.1", "Nettoomsättning", ((3000, 3799),), "Rörelseintäkter"),
    ("3.2", "Förändring av lager av produkter i arbete, färdiga varor och pågående arbete för annans räkning",
     ((4900, 4999),), "Rörelseintäkter"),
    ("3.3", "Aktiverat arbete för egen räkning", ((3800, 3899),), "Rörelseintäkter"),
    ("3.4", "Övriga rörelseintäkter", ((3900, 3999),), "Rörelseintäkter"),
    ("3.5", "Råvaror och förnödenheter", ((4000, 4099),), "Rörelsekostnader"),
    ("3.6", "Handelsvaror", ((4100, 4899),), "Rörelsekostnader"),
    ("3.7", "Övriga externa kostnader", ((5000, 6999),), "Rörelsekostnader"),
    ("3.8", "Personalkostnader", ((7000, 7699),), "Rörelsekostnader"),
    ("3.9", "Av- och nedskrivningar av materiella och immateriella anläggningstillgångar",
     ((7700, 7719), (7730, 7899)), "Rörelsekostnader"),
    ("3.10", "Nedskrivningar av omsättningstillgångar utöver normala nedskrivningar",
     ((7720, 7729),), "Rörelsekostnader"),
    ("3.11", "Övriga rörelsekostnader", ((7900, 7999),), "Rörelsekostnader"),
    ("3.12", "Resultat från andelar i koncernföretag", ((8000, 8099),), "Finansiella poster"),
    ("3.13", "Resultat från andelar i intresseföretag och gemensamt styrda företag",
     ((8100, 8199),), "Finansiella poster"),
    # Saknar eget kontointervall i BAS; anges manuellt
    ("3.14", "Resultat från övriga företag som det finns ett ägarintresse i", (), "Finansiella poster"),
    ("3.15", "Resultat från övriga finansiella anläggningstillgångar",
     ((8200, 8269), (8280, 8299)), "Finansiella poster"),
    ("3.16", "Övriga ränteintäkter och liknande resultatposter", ((8300, 8399),), "Finansiella poster"),
    ("3.17", "Nedskrivningar av finansiella anläggningstillgångar och kortfristiga placeringar",
     ((8270, 8279),), "Finansiella poster"),
    ("3.18", "Räntekostnader och liknande resultatposter", ((8400, 8799),), "Finansiella poster"),
    ("3.19", "Lämnade koncernbidrag", ((8830, 8839),), "Bokslutsdispositioner"),
    ("3.20", "Mottagna koncernbidrag", ((8820, 8829),), "Bokslutsdispositioner"),
]

APPROPRIATION_FIELDS = [
    ("3.23", "Förändring av överavskrivningar", ((8850, 8859),), "Bokslutsdispositioner"),
    ("3.24", "Övriga bokslutsdispositioner", ((8800, 8809), (8840, 8849), (8860, 8899)), "Bokslutsdispositioner"),
    ("3.25", "Skatt på årets resultat", ((8900, 8989),), "Skatt och resultat"),
]

TAX_ACCOUNTS = ((8900, 8989),)
PERIODISATION_FUND_ACCOUNTS = (8810, 8819)

# INK2S-fält som inte kan räknas fram ur huvudboken; anges manuellt.
# (fält, etikett, avsnitt)
MANUAL_ADJUSTMENT_FIELDS = [
    ("4.4a", "Lämnade koncernbidrag", "Ej bokförda kostnader"),
    ("4.4b", "Andra ej bokförda kostnader", "Ej bokförda kostnader"),
    ("4.5a", "Ackordsvinster", "Ej skattepliktiga intäkter"),
    ("4.5b", "Utdelning", "Ej skattepliktiga intäkter"),
    ("4.5c", "Andra bokförda intäkter", "Ej skattepliktiga intäkter"),
    ("4.6a", "Beräknad schablonintäkt på periodiseringsfonder vid beskattningsårets ingång",
     "Ej bokförda intäkter"),
    ("4.6b", "Beräknad schablonintäkt på fondandelar ägda vid kalenderårets ingång", "Ej bokförda intäkter"),
    ("4.6c", "Mottagna koncernbidrag", "Ej bokförda intäkter"),
    ("4.6d", "Uppräknat belopp vid återföring av periodiseringsfond", "Ej bokförda intäkter"),
    ("4.6e", "Andra ej bokförda intäkter", "Ej bokförda intäkter"),
    ("4.7a", "Bokförd vinst", "Avyttring av delägarrätter"),
    ("4.7b", "Bokförd förlust", "Avyttring av delägarrätter"),
    ("4.7c", "Uppskov med kapitalvinst enligt blankett N4", "Avyttring av delägarrätter"),
    ("4.7d", "Återfört uppskov av kapitalvinst enligt blankett N4", "Avyttring av delägarrätter"),
    ("4.7e", "Kapitalvinst för beskattningsåret", "Avyttring av delägarrätter"),
    ("4.7f", "Kapitalförlust som ska dras av", "Avyttring av delägarrätter"),
    ("4.8a", "Bokförd intäkt/vinst", "Andel i handelsbolag"),
    ("4.8b", "Skattemässigt överskott enligt N3B", "Andel i handelsbolag"),
    ("4.8c", "Bokförd kostnad/förlust", "Andel i handelsbolag"),
    ("4.8d", "Skattemässigt underskott enligt N3B", "Andel i handelsbolag"),
    ("4.9", "Skattemässig justering för avskrivning på byggnader och annan fast egendom samt vid "
     "restvärdesavskrivning på maskiner och inventarier", "Skattemässiga justeringar"),
    ("4.10", "Skattemässig justering vid avyttring av näringsfastighet och näringsbostadsrätt",
     "Skattemässiga justeringar"),
    ("4.11", "Skogs-/substansminskningsavdrag", "Skattemässiga justeringar"),
    ("4.12", "Återföringar vid avyttring av fastighet", "Skattemässiga justeringar"),
    ("4.13", "Andra skattemässiga justeringar av resultatet", "Skattemässiga justeringar"),
    ("4.14a", "Outnyttjat underskott från föregående år", "Underskott"),
    ("4.14b", "Reduktion av outnyttjat underskott med hänsyn till beloppsspärr, ackord, konkurs m.m.",
     "Underskott"),
    ("4.14c", "Reduktion av outnyttjat underskott med hänsyn till koncernbidragsspärr, fusionsspärr m.m.",
     "Underskott"),
]

SUPPLEMENTARY_FIELDS = [
    ("4.17", "Värdeminskningsavdrag avseende byggnader vid beskattningsårets utgång", "Tilläggsuppgifter"),
    ("4.18", "Värdeminskningsavdrag avseende markanläggningar vid beskattningsårets utgång",
     "Tilläggsuppgifter"),
    ("4.19", "Vid restvärdesavskrivning: återförda belopp för av- och nedskrivning, försäljning, utrangering",
     "Tilläggsuppgifter"),
    ("4.20", "Lån från aktieägare (fysisk person) vid beskattningsårets utgång", "Tilläggsuppgifter"),
    ("4.21", "Pensionskostnader (som ingår i p. 3.8)", "Tilläggsuppgifter"),
    ("4.22", "Koncernbidragsspärrat och fusionsspärrat underskott m.m.", "Tilläggsuppgifter"),
]


@dataclass(frozen=True)
class Ink2Field:
    """Ett fält på INK2R/INK2S"""
    field: str
    label: str
    value: Decimal
    section: str


@dataclass
class Ink2Declaration:
    """Underlag för INK2 för ett räkenskapsår"""
    start_date: date
    end_date: date
    balance_sheet: list = field(default_factory=list)
    income_statement: list = field(default_factory=list)
    tax_adjustments: list = field(default_factory=list)
    total_assets: Decimal = Decimal(0)
    total_equity_and_liabilities: Decimal = Decimal(0)
    net_result: Decimal = Decimal(0)
    taxable_result: Decimal = Decimal(0)
    calculated_tax: Decimal = Decimal(0)
    period_id: Optional[int] = None

    @property
    def all_fields(self) -> list:
        return self.balance_sheet + self.income_statement + self.tax_adjustments

    def get(self, field_code: str) -> Decimal:
        """Värde för ett fält (0 om fältet saknas)"""
        for ink2_field in self.all_fields:
            if ink2_field.field == field_code:
                return ink2_field.value
        return Decimal(0)

    def by_section(self) -> dict:
        """Fält grupperade per avsnitt, i blankettens ordning"""
        sections = {}
        for ink2_field in self.all_fields:
            sections.setdefault(ink2_field.section, []).append(ink2_field)
        return sections


def _fields(balances: dict, definitions, sign: int) -> list[Ink2Field]:
    return [
        Ink2Field(code, label, round_kronor(sign * sum_ranges(balances, ranges)), section)
        for code, label, ranges, section in definitions
    ]


def _income_statement(balances: dict) -> list[Ink2Field]:
    fields = _fields(balances, INCOME_STATEMENT_FIELDS, -1)

    # Periodiseringsfond: kreditsaldo är återföring, debetsaldo avsättning
    fund = -sum_range(balances, *PERIODISATION_FUND_ACCOUNTS)
    fields.append(Ink2Field(
        "3.21", "Återföring av periodiseringsfond",
        round_kronor(max(fund, Decimal(0))), "Bokslutsdispositioner"
    ))
    fields.append(Ink2Field(
        "3.22", "Avsättning till periodiseringsfond",
        round_kronor(min(fund, Decimal(0))), "Bokslutsdispositioner"
    ))

    fields.extend(_fields(balances, APPROPRIATION_FIELDS, -1))

    result = sum((f.value for f in fields), Decimal(0))
    fields.append(Ink2Field(
        "3.26", "Årets resultat, vinst", max(result, Decimal(0)), "Skatt och resultat"
    ))
    fields.append(Ink2Field(
        "3.27", "Årets resultat, förlust", max(-result, Decimal(0)), "Skatt och resultat"
    ))
    return fields


def _tax_adjustments(balances: dict, income_fields: list[Ink2Field]) -> list[Ink2Field]:
    values = {f.field: f.value for f in income_fields}
    profit = values["3.26"]
    loss = values["3.27"]

    tax = round_kronor(sum_ranges(balances, TAX_ACCOUNTS))
    financial_write_down = -values["3.17"]
    non_deductible = round_kronor(sum_ranges(balances, NON_DEDUCTIBLE_ACCOUNTS))

    adjusted = profit - loss + tax + financial_write_down + non_deductible

    return [
        Ink2Field("4.1", "Årets resultat, vinst", profit, "Årets resultat"),
        Ink2Field("4.2", "Årets resultat, förlust", loss, "Årets resultat"),
        Ink2Field("4.3a", "Skatt på årets resultat", tax, "Ej avdragsgilla kostnader"),
        Ink2Field("4.3b", "Nedskrivning av finansiella tillgångar", financial_write_down,
                  "Ej avdragsgilla kostnader"),
        Ink2Field("4.3c", "Andra bokförda kostnader", non_deductible, "Ej avdragsgilla kostnader"),
        *_manual_fields(MANUAL_ADJUSTMENT_FIELDS),
        Ink2Field("4.15", "Överskott", max(adjusted, Decimal(0)), "Slutligt resultat"),
        Ink2Field("4.16", "Underskott", max(-adjusted, Decimal(0)), "Slutligt resultat"),
        *_manual_fields(SUPPLEMENTARY_FIELDS),
    ]


def _manual_fields(definitions) -> list[Ink2Field]:
    return [Ink2Field(code, label, Decimal(0), section) for code, label, section in definitions]


def calculate_ink2(
    rows: Iterable[VerificationRow],
    fiscal_year: Union[int, object],
    period_id: Optional[int] = None
) -> Ink2Declaration:
    """
    Beräkna INK2-fält för ett räkenskapsår

    Balansräkningen bygger på all historik till årets slut,
    resultaträkningen enbart på årets verifikationer.
    """
    rows = list(rows)
    start_date, end_date = period_bounds(fiscal_year)

    cumulative = aggregate(rows, None, end_date)
    yearly = aggregate(rows, start_date, end_date)

    assets = _fields(cumulative, BALANCE_SHEET_ASSET_FIELDS, 1)
    liabilities = _fields(cumulative, BALANCE_SHEET_LIABILITY_FIELDS, -1)
    income_statement = _income_statement(yearly)
    tax_adjustments = _tax_adjustments(yearly, income_statement)

    declaration = Ink2Declaration(
        start_date=start_date,
        end_date=end_date,
        balance_sheet=assets + liabilities,
        income_statement=income_statement,
        tax_adjustments=tax_adjustments,
        total_assets=sum((f.value for f in assets), Decimal(0)),
        total_equity_and_liabilities=sum((f.value for f in liabilities), Decimal(0)),
        period_id=period_id,
    )
    declaration.net_result = declaration.get("3.26") - declaration.get("3.27")
    declaration.taxable_result = declaration.get("4.15") - declaration.get("4.16")
    declaration.calculated_tax = round_kronor(declaration.get("4.15") * CORPORATE_TAX_RATE)

    logger.info(
        "INK2 %s-%s: bokfört resultat %s, skattemässigt resultat %s, skatt %s",
        start_date, end_date, declaration.net_result,
        declaration.taxable_result, declaration.calculated_tax
    )
    return declaration
