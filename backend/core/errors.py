"""Taxonomie d'erreurs du moteur d'analyse (sans couche UI)."""

from __future__ import annotations


class SessionAnalyticsError(Exception):
    """Erreur de base du moteur d'analyse de seance."""


class EmptyInputError(SessionAnalyticsError, ValueError):
    """Aucun echantillon ne porte de timestamp exploitable."""


class SampleLimitError(SessionAnalyticsError, ValueError):
    """Nombre d'echantillons au-dela de la borne configuree (mode strict)."""

    def __init__(self, count: int, limit: int):
        super().__init__(f"{count} samples exceed the configured limit of {limit}")
        self.count = count
        self.limit = limit


class DecoderError(SessionAnalyticsError):
    """Echec du decodeur binaire ; le moteur ne tourne pas."""
