"""
Parámetros fiscales por año gravable.

El motor nunca incorpora constantes de ley: las recibe de un proveedor que
entrega, para un año, el valor de la UVT y las tablas del Art. 241, Art. 336,
Art. 908 y Art. 912 E.T. Si el año no existe el proveedor falla; nunca usa
otro año en silencio.
"""
import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence, Tuple

from ..core.exceptions import (
    BracketNotFound,
    BracketTableError,
    FiscalConfigurationError,
    FiscalYearNotSupported,
)
from ..utils.money import Number, format_uvt, round_currency, to_decimal
from .tax_types import ActivityClass

logger = logging.getLogger(__name__)


# ===================== TABLAS DE RANGOS =====================

@dataclass(frozen=True)
class Bracket:
    """
    Rango en UVT con límites enteros: [from_uvt, to_uvt].
    Un valor fraccionario pertenece al rango si from_uvt <= v < to_uvt + 1.
    to_uvt None significa "en adelante".
    """
    from_uvt: int
    to_uvt: Optional[int]

    def contains(self, value_uvt: Decimal) -> bool:
        if value_uvt < self.from_uvt:
            return False
        return self.to_uvt is None or value_uvt < self.to_uvt + 1

    @property
    def label(self) -> str:
        if self.to_uvt is None:
            return f"{format_uvt(self.from_uvt)} en adelante"
        return f"{format_uvt(self.from_uvt).replace(' UVT', '')} - {format_uvt(self.to_uvt + 1)}"


@dataclass(frozen=True)
class OrdinaryBracket(Bracket):
    """Rango de la tabla del Art. 241 E.T."""
    marginal_rate: Decimal
    base_tax_uvt: Decimal


@dataclass(frozen=True)
class SimpleBracket(Bracket):
    """Rango de tarifa consolidada del Art. 908 E.T."""
    consolidated_rate: Decimal


@dataclass(frozen=True)
class AdvanceBracket(Bracket):
    """Rango de tarifa de anticipo bimestral."""
    advance_rate: Decimal


def validate_bracket_table(table: Sequence[Bracket], name: str) -> None:
    """
    Verifica que la tabla cubra [0, ∞) sin huecos ni traslapes:
    cada rango termina justo antes de que empiece el siguiente.
    """
    if not table:
        raise BracketTableError(f"La tabla '{name}' está vacía")
    if table[0].from_uvt != 0:
        raise BracketTableError(f"La tabla '{name}' debe iniciar en 0 UVT")
    for current, following in zip(table, table[1:]):
        if current.to_uvt is None:
            raise BracketTableError(
                f"La tabla '{name}' tiene un rango abierto antes del final"
            )
        if current.to_uvt + 1 != following.from_uvt:
            raise BracketTableError(
                f"La tabla '{name}' no es continua entre {current.to_uvt} "
                f"y {following.from_uvt} UVT"
            )
    if table[-1].to_uvt is not None:
        raise BracketTableError(f"El último rango de la tabla '{name}' debe ser abierto")


def validate_base_taxes(table: Sequence[OrdinaryBracket], name: str) -> None:
    """
    Verifica que el impuesto no baje al cruzar un límite:
    base_tax_uvt >= base anterior + tarifa anterior × (desde - desde anterior)
    """
    for current, following in zip(table, table[1:]):
        reached = current.base_tax_uvt + current.marginal_rate * (
            following.from_uvt - current.from_uvt
        )
        if following.base_tax_uvt < reached:
            raise BracketTableError(
                f"La tabla '{name}' reduce el impuesto en {following.from_uvt} UVT: "
                f"base {following.base_tax_uvt} < {reached}"
            )


def find_bracket(table: Sequence[Bracket], value_uvt: Decimal, name: str) -> Bracket:
    """Ubica el rango que contiene el valor (límite inferior inclusivo)."""
    for bracket in table:
        if bracket.contains(value_uvt):
            return bracket
    raise BracketNotFound(name, value_uvt)


# ===================== PARÁMETROS =====================

@dataclass(frozen=True)
class DeductionParams:
    """Topes de deducciones y rentas exentas (Art. 336 E.T.)."""
    aggregate_rate: Decimal
    aggregate_cap_uvt: int
    dependent_uvt: int
    max_dependents: int
    electronic_purchases_rate: Decimal
    electronic_purchases_cap_uvt: int
    prepaid_health_cap_uvt: int
    mortgage_interest_cap_uvt: int
    voluntary_contributions_cap_uvt: int
    exempt_income_rate: Decimal
    exempt_income_cap_uvt: int
    non_constitutive_cap_uvt: int


@dataclass(frozen=True)
class DiscountRule:
    """Descuento del Régimen Simple: porcentaje de la base con tope en UVT."""
    rate: Decimal
    ceiling_uvt: int


@dataclass(frozen=True)
class SimpleParams:
    eligibility_threshold_uvt: int
    activity_thresholds_uvt: Mapping[ActivityClass, int]
    brackets: Mapping[ActivityClass, Tuple[SimpleBracket, ...]]
    advance_brackets: Mapping[ActivityClass, Tuple[AdvanceBracket, ...]]
    advance_exemption_uvt: int
    advance_due_dates: Tuple[date, ...]
    electronic_payments_discount: DiscountRule
    gmf_discount: DiscountRule
    gmf_rate: Decimal
    ica_estimated_rate: Decimal

    def threshold_uvt(self, activity: ActivityClass) -> int:
        return self.activity_thresholds_uvt.get(activity, self.eligibility_threshold_uvt)


@dataclass(frozen=True)
class WithholdingParams:
    """Estimación de retenciones en la fuente por actividad."""
    withheld_share: Decimal
    rates: Mapping[ActivityClass, Decimal]
    default_rate: Decimal

    def rate_for(self, activity: ActivityClass) -> Decimal:
        return self.rates.get(activity, self.default_rate)


@dataclass(frozen=True)
class FilingThresholds:
    """Topes de obligación de declarar renta (Art. 592 E.T.)."""
    income_uvt: int
    patrimony_uvt: int


@dataclass(frozen=True)
class FiscalParameters:
    year: int
    uvt: int
    ordinary_brackets: Tuple[OrdinaryBracket, ...]
    deductions: DeductionParams
    simple: SimpleParams
    withholding: WithholdingParams
    filing: FilingThresholds

    def __post_init__(self):
        if self.uvt <= 0:
            raise FiscalConfigurationError(f"UVT inválida para {self.year}: {self.uvt}")
        validate_bracket_table(self.ordinary_brackets, f"Art. 241 {self.year}")
        validate_base_taxes(self.ordinary_brackets, f"Art. 241 {self.year}")
        for activity, table in self.simple.brackets.items():
            validate_bracket_table(table, f"RST {activity.value} {self.year}")
        for activity, table in self.simple.advance_brackets.items():
            validate_bracket_table(table, f"Anticipos RST {activity.value} {self.year}")
        if len(self.simple.advance_due_dates) != 6:
            raise FiscalConfigurationError(
                f"El calendario de anticipos {self.year} debe tener seis fechas"
            )

    def uvt_amount(self, uvt_count: Number) -> Decimal:
        """Valor exacto en pesos de una cantidad de UVT."""
        return to_decimal(uvt_count) * self.uvt

    def uvt_to_currency(self, uvt_count: Number) -> int:
        """Convierte UVT a pesos redondeando al peso."""
        return round_currency(self.uvt_amount(uvt_count))

    def currency_to_uvt(self, amount: Number) -> Decimal:
        """Convierte pesos a UVT sin redondear."""
        return to_decimal(amount) / self.uvt


# ===================== PROVEEDORES =====================

class FiscalParameterProvider(ABC):
    """Fuente de parámetros fiscales por año."""

    @abstractmethod
    def get_parameters(self, year: int) -> FiscalParameters:
        """Parámetros del año o FiscalYearNotSupported."""

    @abstractmethod
    def supported_years(self) -> Tuple[int, ...]:
        """Años disponibles, en orden ascendente."""

    def latest_year(self) -> int:
        years = self.supported_years()
        if not years:
            raise FiscalConfigurationError("El proveedor no tiene ningún año configurado")
        return years[-1]


class StaticFiscalParameterProvider(FiscalParameterProvider):
    """Proveedor en memoria a partir de parámetros ya construidos."""

    def __init__(self, tables: Iterable[FiscalParameters]):
        self._tables: Dict[int, FiscalParameters] = {}
        for params in tables:
            if params.year in self._tables:
                raise FiscalConfigurationError(f"Año {params.year} repetido")
            self._tables[params.year] = params

    def get_parameters(self, year: int) -> FiscalParameters:
        try:
            return self._tables[year]
        except KeyError:
            raise FiscalYearNotSupported(year, self._tables.keys()) from None

    def supported_years(self) -> Tuple[int, ...]:
        return tuple(sorted(self._tables))


# ===================== CARGA DESDE CONFIGURACIÓN =====================

def _dec(value: Any) -> Decimal:
    return to_decimal(value)


def _activity(key: Any) -> ActivityClass:
    try:
        return ActivityClass(key)
    except ValueError:
        raise FiscalConfigurationError(f"Actividad desconocida en la configuración: {key}") from None


def _brackets(rows: Sequence[Mapping[str, Any]], cls, rate_field: str):
    result = []
    for row in rows:
        kwargs = {
            "from_uvt": int(row["from_uvt"]),
            "to_uvt": None if row.get("to_uvt") is None else int(row["to_uvt"]),
            rate_field: _dec(row[rate_field]),
        }
        if cls is OrdinaryBracket:
            kwargs["base_tax_uvt"] = _dec(row["base_tax_uvt"])
        result.append(cls(**kwargs))
    return tuple(result)


def _per_activity(raw: Mapping[str, Any], builder) -> Mapping[ActivityClass, Any]:
    return MappingProxyType({_activity(key): builder(value) for key, value in raw.items()})


def parameters_from_mapping(year: int, raw: Mapping[str, Any]) -> FiscalParameters:
    """
    Construye los parámetros de un año desde un diccionario (p. ej. JSON).
    Cualquier clave faltante es un error de configuración.
    """
    try:
        deductions = raw["deductions"]
        simple = raw["simple"]
        withholding = raw["withholding"]
        return FiscalParameters(
            year=year,
            uvt=int(raw["uvt"]),
            ordinary_brackets=_brackets(raw["ordinary_brackets"], OrdinaryBracket, "marginal_rate"),
            deductions=DeductionParams(
                aggregate_rate=_dec(deductions["aggregate_rate"]),
                aggregate_cap_uvt=int(deductions["aggregate_cap_uvt"]),
                dependent_uvt=int(deductions["dependent_uvt"]),
                max_dependents=int(deductions["max_dependents"]),
                electronic_purchases_rate=_dec(deductions["electronic_purchases_rate"]),
                electronic_purchases_cap_uvt=int(deductions["electronic_purchases_cap_uvt"]),
                prepaid_health_cap_uvt=int(deductions["prepaid_health_cap_uvt"]),
                mortgage_interest_cap_uvt=int(deductions["mortgage_interest_cap_uvt"]),
                voluntary_contributions_cap_uvt=int(deductions["voluntary_contributions_cap_uvt"]),
                exempt_income_rate=_dec(deductions["exempt_income_rate"]),
                exempt_income_cap_uvt=int(deductions["exempt_income_cap_uvt"]),
                non_constitutive_cap_uvt=int(deductions["non_constitutive_cap_uvt"]),
            ),
            simple=SimpleParams(
                eligibility_threshold_uvt=int(simple["eligibility_threshold_uvt"]),
                activity_thresholds_uvt=_per_activity(
                    simple.get("activity_thresholds_uvt", {}), int
                ),
                brackets=_per_activity(
                    simple["brackets"],
                    lambda rows: _brackets(rows, SimpleBracket, "consolidated_rate"),
                ),
                advance_brackets=_per_activity(
                    simple["advance_brackets"],
                    lambda rows: _brackets(rows, AdvanceBracket, "advance_rate"),
                ),
                advance_exemption_uvt=int(simple["advance_exemption_uvt"]),
                advance_due_dates=tuple(
                    date.fromisoformat(d) if isinstance(d, str) else d
                    for d in simple["advance_due_dates"]
                ),
                electronic_payments_discount=DiscountRule(
                    rate=_dec(simple["electronic_payments_discount"]["rate"]),
                    ceiling_uvt=int(simple["electronic_payments_discount"]["ceiling_uvt"]),
                ),
                gmf_discount=DiscountRule(
                    rate=_dec(simple["gmf_discount"]["rate"]),
                    ceiling_uvt=int(simple["gmf_discount"]["ceiling_uvt"]),
                ),
                gmf_rate=_dec(simple["gmf_rate"]),
                ica_estimated_rate=_dec(simple["ica_estimated_rate"]),
            ),
            withholding=WithholdingParams(
                withheld_share=_dec(withholding["withheld_share"]),
                rates=_per_activity(withholding["rates"], _dec),
                default_rate=_dec(withholding["default_rate"]),
            ),
            filing=FilingThresholds(
                income_uvt=int(raw["filing"]["income_uvt"]),
                patrimony_uvt=int(raw["filing"]["patrimony_uvt"]),
            ),
        )
    except KeyError as exc:
        raise FiscalConfigurationError(
            f"Falta la clave {exc} en los parámetros fiscales de {year}"
        ) from exc


def provider_from_mapping(raw: Mapping[Any, Mapping[str, Any]]) -> StaticFiscalParameterProvider:
    """Proveedor a partir de {año: parámetros}; las claves pueden ser texto (JSON)."""
    return StaticFiscalParameterProvider(
        parameters_from_mapping(int(year), values) for year, values in raw.items()
    )


def load_provider(path: Optional[str] = None) -> StaticFiscalParameterProvider:
    """
    Carga las tablas fiscales desde un archivo JSON o, si no se indica,
    desde las tablas incluidas con la aplicación.
    """
    if path:
        logger.info(f"Cargando parámetros fiscales desde {path}")
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
    else:
        from ..core.fiscal_tables import FISCAL_TABLES
        raw = FISCAL_TABLES
    provider = provider_from_mapping(raw)
    logger.info(f"Parámetros fiscales disponibles: {provider.supported_years()}")
    return provider
