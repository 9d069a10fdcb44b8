"""
Rapportmotor - svenska bokslutsrapporter ur huvudboken

Momsdeklaration, resultat- och balansräkning, INK2 och årsredovisning
beräknas från verifikationsrader och sparas som utkast eller inskickade
rapporter.
"""
__version__ = "0.1.0"
