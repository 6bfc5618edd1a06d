"""
Excepciones del motor tributario.

Dos familias: errores de validación de la entrada (se rechazan antes de
calcular) y errores de configuración fiscal (tablas faltantes o mal formadas).
Los resultados de negocio, como no ser elegible al Régimen Simple, no son
excepciones.
"""
from dataclasses import dataclass
from typing import List


class TributarioError(Exception):
    """Excepción base del simulador tributario."""
    pass


@dataclass(frozen=True)
class FieldError:
    """Error de validación asociado a un campo de la entrada."""
    field: str
    message: str


class InputValidationError(TributarioError):
    """La entrada no es válida; contiene la lista de errores por campo."""

    def __init__(self, errors: List[FieldError]):
        self.errors = list(errors)
        detalle = "; ".join(f"{e.field}: {e.message}" for e in self.errors)
        super().__init__(f"Datos de entrada inválidos: {detalle}")


class FiscalConfigurationError(TributarioError):
    """Los parámetros fiscales están incompletos o son inconsistentes."""
    pass


class FiscalYearNotSupported(FiscalConfigurationError):
    """No existen parámetros fiscales para el año solicitado."""

    def __init__(self, year: int, supported=()):
        self.year = year
        self.supported = tuple(sorted(supported))
        disponibles = ", ".join(str(y) for y in self.supported) or "ninguno"
        super().__init__(
            f"No hay parámetros fiscales para el año {year} "
            f"(años disponibles: {disponibles})"
        )


class BracketTableError(FiscalConfigurationError):
    """Una tabla de rangos tiene huecos, traslapes o no inicia en cero."""
    pass


class BracketNotFound(FiscalConfigurationError):
    """Ningún rango de la tabla cubre el valor en UVT resuelto."""

    def __init__(self, table: str, value_uvt):
        self.table = table
        self.value_uvt = value_uvt
        super().__init__(f"La tabla '{table}' no tiene rango para {value_uvt} UVT")


class UnknownActivityClass(FiscalConfigurationError):
    """La actividad económica no tiene tabla en los parámetros del año."""

    def __init__(self, activity, year: int):
        self.activity = activity
        self.year = year
        super().__init__(
            f"La actividad '{getattr(activity, 'value', activity)}' no tiene "
            f"tabla del Régimen Simple para {year}"
        )
