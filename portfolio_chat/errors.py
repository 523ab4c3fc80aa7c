# portfolio_chat/errors.py
"""
Fehlerklassen. Infrastrukturfehler werden nie in Antworttext umgewandelt,
sondern bis zur API durchgereicht.
"""


class PortfolioChatError(Exception):
    """Basisklasse für alle Fehler des Pakets."""


class InitializationError(PortfolioChatError):
    """Index-Aufbau fehlgeschlagen (Dokument fehlt, Backend nicht erreichbar, ...)."""


class EmbeddingError(PortfolioChatError):
    """Embedding-Backend hat keinen (gültigen) Vektor geliefert."""


class GenerationError(PortfolioChatError):
    """LLM-Aufruf fehlgeschlagen oder Backend antwortet nicht mit 2xx."""


class GenerationTimeout(PortfolioChatError):
    """LLM-Aufruf hat das feste Zeitlimit überschritten."""

    def __init__(self, seconds: float) -> None:
        super().__init__(f"Request timed out after {seconds:g} seconds")
        self.seconds = seconds
