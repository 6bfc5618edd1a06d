"""
Utilidades de validación.
La entrada del motor se valida completa antes de cualquier cálculo; los errores
se reportan por campo.
"""
from decimal import Decimal
from typing import List, Optional

from ..core.config import get_colombia_time
from ..core.exceptions import FieldError, InputValidationError
from ..services.tax_types import MONETARY_FIELDS, ActivityClass, InputSnapshot, Regime

# Máximo razonable para evitar desbordes y errores de digitación
MAX_MONETARY_AMOUNT = 999_999_999_999_999
BIMONTHLY_PERIODS = 6


def validate_tax_year(year: int) -> bool:
    """
    Valida que el año gravable sea razonable.
    Que existan parámetros para él lo decide el proveedor fiscal.
    """
    current_year = get_colombia_time().year
    return isinstance(year, int) and 2000 <= year <= current_year + 5


def validate_monetary_amount(amount) -> bool:
    """
    Valida que un monto sea un entero de pesos no negativo.
    """
    if isinstance(amount, bool) or not isinstance(amount, int):
        return False

    if amount < 0:
        return False

    return amount <= MAX_MONETARY_AMOUNT


def validate_growth_rate(rate) -> bool:
    """La tasa de crecimiento debe ser mayor a -100%."""
    try:
        return Decimal(str(rate)) > Decimal("-1")
    except ArithmeticError:
        return False


def collect_snapshot_errors(snapshot: InputSnapshot, max_dependents: int) -> List[FieldError]:
    """Lista todos los errores de la entrada, sin detenerse en el primero."""
    errors: List[FieldError] = []

    for name in MONETARY_FIELDS:
        value = getattr(snapshot, name)
        if not validate_monetary_amount(value):
            errors.append(FieldError(name, "Debe ser un valor entero en pesos, no negativo"))

    if not isinstance(snapshot.activity_class, ActivityClass):
        errors.append(FieldError("activity_class", f"Actividad económica desconocida: {snapshot.activity_class}"))

    dependents = snapshot.dependents
    if isinstance(dependents, bool) or not isinstance(dependents, int) or not 0 <= dependents <= max_dependents:
        errors.append(FieldError("dependents", f"El número de dependientes debe estar entre 0 y {max_dependents}"))

    if not isinstance(snapshot.exempt_25_election, bool):
        errors.append(FieldError("exempt_25_election", "Debe ser verdadero o falso"))

    actuals = snapshot.bimonthly_income_actuals
    if len(actuals) > BIMONTHLY_PERIODS:
        errors.append(FieldError("bimonthly_income_actuals", "Máximo seis bimestres"))
    for index, value in enumerate(actuals):
        if not validate_monetary_amount(value):
            errors.append(FieldError(
                f"bimonthly_income_actuals[{index}]",
                "Debe ser un valor entero en pesos, no negativo",
            ))

    if snapshot.current_regime is not None and not isinstance(snapshot.current_regime, Regime):
        errors.append(FieldError("current_regime", f"Régimen desconocido: {snapshot.current_regime}"))

    return errors


def validate_input_snapshot(snapshot: InputSnapshot, max_dependents: int) -> None:
    """Lanza InputValidationError si la entrada tiene cualquier error."""
    errors = collect_snapshot_errors(snapshot, max_dependents)
    if errors:
        raise InputValidationError(errors)


def validate_compare_options(growth_rate: Optional[Decimal]) -> None:
    """El año lo resuelve el proveedor fiscal; aquí solo la tasa de proyección."""
    if growth_rate is not None and not validate_growth_rate(growth_rate):
        raise InputValidationError(
            [FieldError("growth_rate", "La tasa de crecimiento debe ser mayor a -100%")]
        )
