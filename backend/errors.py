from __future__ import annotations

"""
backend/errors.py

Taxonomía de errores del resolver de atributos.

- MalformedPersonId: el id recibido no es un PersonId válido (HTTP 400).
- SourceUnavailable: fallo transitorio de una fuente remota (se degrada a "sin datos").
- PersistenceError: no se pudo escribir la caché a disco (el estado en memoria se conserva).
- ResolutionCancelled: el caller canceló la resolución; no se cachea nada negativo.

NotFound NO es una excepción: el resolver devuelve None.
"""


class ActorLensError(Exception):
    """Base de todos los errores de dominio."""


class MalformedPersonId(ActorLensError, ValueError):
    def __init__(self, raw: object) -> None:
        super().__init__(f"Malformed person id: {raw!r}")
        self.raw = raw


class SourceUnavailable(ActorLensError):
    def __init__(self, source: str, reason: str) -> None:
        super().__init__(f"{source} unavailable: {reason}")
        self.source = source
        self.reason = reason


class PersistenceError(ActorLensError):
    pass


class ResolutionCancelled(ActorLensError):
    pass
