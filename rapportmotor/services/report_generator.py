"""
Rapportgenerering - HTML-dokument från Jinja2-mallar

Mallar lagras i rapportmotor/templates/:
    arsredovisning.html   - resultat- och balansräkning
    momsdeklaration.html  - momsdeklarationens rutor
"""
from datetime import datetime
from pathlib import Path
from typing import Optional
from jinja2 import Environment, FileSystemLoader, select_autoescape

from rapportmotor.config import TEMPLATE_DIR
from rapportmotor.services.aggregation import round_kronor
from rapportmotor.services.statements import AnnualReport
from rapportmotor.services.vat import VatReport, XML_ELEMENTS

# Rubriker för momsdeklarationens rutor
VAT_BOX_LABELS = {
    "ruta05": "Momspliktig försäljning 25 %",
    "ruta06": "Momspliktig försäljning 12 %",
    "ruta07": "Momspliktig försäljning 6 %",
    "ruta08": "Hyresinkomster vid frivillig skattskyldighet",
    "ruta10": "Utgående moms 25 %",
    "ruta11": "Utgående moms 12 %",
    "ruta12": "Utgående moms 6 %",
    "ruta20": "Inköp av varor från ett annat EU-land",
    "ruta21": "Inköp av tjänster från ett annat EU-land",
    "ruta22": "Inköp av tjänster från ett land utanför EU",
    "ruta23": "Inköp av varor i Sverige",
    "ruta24": "Övriga inköp av tjänster",
    "ruta30": "Utgående moms 25 % på inköp",
    "ruta31": "Utgående moms 12 % på inköp",
    "ruta32": "Utgående moms 6 % på inköp",
    "ruta35": "Försäljning av varor till ett annat EU-land",
    "ruta36": "Försäljning av varor utanför EU",
    "ruta37": "Mellanmans inköp av varor vid trepartshandel",
    "ruta38": "Mellanmans försäljning av varor vid trepartshandel",
    "ruta39": "Försäljning av tjänster till näringsidkare i annat EU-land",
    "ruta40": "Övrig försäljning av tjänster omsatta utomlands",
    "ruta41": "Försäljning när köparen är skattskyldig i Sverige",
    "ruta42": "Övrig försäljning m.m.",
    "ruta48": "Ingående moms att dra av",
    "ruta49": "Moms att betala eller få tillbaka",
    "ruta50": "Beskattningsunderlag vid import",
    "ruta60": "Utgående moms 25 % på import",
    "ruta61": "Utgående moms 12 % på import",
    "ruta62": "Utgående moms 6 % på import",
}


def format_currency(value) -> str:
    """Formatera belopp i hela kronor med mellanslag som tusentalsavgränsare"""
    if value is None or value == "":
        return "0 kr"
    amount = int(round_kronor(value))
    return f"{amount:,} kr".replace(",", " ")


def format_date(value, format_str: str = "%Y-%m-%d") -> str:
    """Formatera datum"""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return value.strftime(format_str)


class ReportGenerator:
    """
    Genererar HTML-dokument från Jinja2-mallar

    Mallarna är HTML-filer med Jinja2-syntax och kan konverteras
    till PDF med valfritt verktyg.
    """

    TEMPLATE_TYPES = {
        'annual_report': 'arsredovisning.html',
        'vat_report': 'momsdeklaration.html',
    }

    def __init__(self, template_dir: Optional[Path] = None):
        self.template_dir = Path(template_dir or TEMPLATE_DIR)

        self.env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            autoescape=select_autoescape(['html', 'xml'])
        )
        self.env.filters['currency'] = format_currency
        self.env.filters['date_format'] = format_date

    def get_available_templates(self) -> dict:
        """Lista tillgängliga mallar"""
        return {
            name: (self.template_dir / path).exists()
            for name, path in self.TEMPLATE_TYPES.items()
        }

    def render_annual_report(
        self,
        report: AnnualReport,
        company_name: str,
        org_number: Optional[str] = None,
        additional_data: dict = None
    ) -> str:
        """
        Generera årsredovisning

        Args:
            report: Resultat- och balansräkning för räkenskapsåret
            company_name: Företagsnamn
            org_number: Organisationsnummer
            additional_data: Extra data till mallen (t.ex. förvaltningsberättelse)

        Returns:
            HTML-sträng
        """
        context = {
            'company_name': company_name,
            'org_number': org_number,
            'report': report,
            'income_statement': report.income_statement,
            'balance_sheet': report.balance_sheet,
            'generated_at': datetime.now(),
            **(additional_data or {})
        }
        template = self.env.get_template(self.TEMPLATE_TYPES['annual_report'])
        return template.render(context)

    def render_vat_report(
        self,
        report: VatReport,
        company_name: str,
        org_number: Optional[str] = None
    ) -> str:
        """Generera momsdeklaration som HTML"""
        boxes = [
            {
                'box': box[4:],
                'label': VAT_BOX_LABELS[box],
                'value': getattr(report, box),
                'manual': box in report.manual_boxes,
            }
            for box in XML_ELEMENTS
        ]
        context = {
            'company_name': company_name,
            'org_number': org_number,
            'report': report,
            'boxes': boxes,
            'generated_at': datetime.now(),
        }
        template = self.env.get_template(self.TEMPLATE_TYPES['vat_report'])
        return template.render(context)
