from __future__ import annotations

from datetime import date


def compute_age(birth: date, ref: date) -> int | None:
    """
    Edad en años completos a fecha `ref`.

    Resta uno si (mes, día) de `ref` es anterior al de `birth`.
    Nacidos un 29-feb cumplen el 1-mar en años no bisiestos.
    Devuelve None si `ref` es anterior al nacimiento.
    """
    years = ref.year - birth.year
    if (ref.month, ref.day) < (birth.month, birth.day):
        years -= 1
    return years if years >= 0 else None


def age_text(age_years: int | None) -> str | None:
    return None if age_years is None else str(age_years)
