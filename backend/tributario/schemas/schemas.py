"""
Esquemas Pydantic para validación de datos de la API.
La validación de forma se hace aquí; las reglas de negocio las valida el motor.
"""
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from ..services.tax_types import ActivityClass, InputSnapshot, Regime
from ..utils.validators import validate_tax_year


def _check_tax_year(year: Optional[int]) -> Optional[int]:
    if year is not None and not validate_tax_year(year):
        raise ValueError(f"Año gravable inválido: {year}")
    return year


# ===================== ENUMS =====================

class ConversionDirection(str, Enum):
    UVT_A_PESOS = "uvt_a_pesos"
    PESOS_A_UVT = "pesos_a_uvt"


# ===================== ENTRADA DEL SIMULADOR =====================

class SnapshotRequest(BaseModel):
    """
    Datos del contribuyente.
    Todos los montos en pesos enteros; un campo omitido vale cero.
    """
    gross_income: int = Field(..., ge=0, description="Ingresos brutos anuales")
    activity_class: ActivityClass
    costs: int = Field(default=0, ge=0)
    dependents: int = Field(default=0, ge=0)
    electronic_invoice_purchases: int = Field(default=0, ge=0)
    voluntary_pension: int = Field(default=0, ge=0)
    afc_contributions: int = Field(default=0, ge=0)
    mortgage_interest: int = Field(default=0, ge=0)
    prepaid_health: int = Field(default=0, ge=0)
    exempt_25_election: bool = False
    electronic_payments_received: int = Field(default=0, ge=0)
    gmf_paid: int = Field(default=0, ge=0)
    mandatory_pension_contributions: int = Field(default=0, ge=0)
    bimonthly_income_actuals: List[int] = Field(default_factory=list, max_length=6)
    current_regime: Optional[Regime] = None

    def to_snapshot(self) -> InputSnapshot:
        return InputSnapshot(
            gross_income=self.gross_income,
            activity_class=self.activity_class,
            costs=self.costs,
            dependents=self.dependents,
            electronic_invoice_purchases=self.electronic_invoice_purchases,
            voluntary_pension=self.voluntary_pension,
            afc_contributions=self.afc_contributions,
            mortgage_interest=self.mortgage_interest,
            prepaid_health=self.prepaid_health,
            exempt_25_election=self.exempt_25_election,
            electronic_payments_received=self.electronic_payments_received,
            gmf_paid=self.gmf_paid,
            mandatory_pension_contributions=self.mandatory_pension_contributions,
            bimonthly_income_actuals=tuple(self.bimonthly_income_actuals),
            current_regime=self.current_regime,
        )


class CalculationRequest(SnapshotRequest):
    """Cálculo de un solo régimen."""
    year: Optional[int] = Field(default=None, description="Año gravable; por defecto el configurado")

    @field_validator("year")
    @classmethod
    def tax_year_in_range(cls, v):
        return _check_tax_year(v)


class ComparisonRequest(SnapshotRequest):
    """Comparación Ordinario vs. Simple."""
    year: Optional[int] = None
    include_projection: bool = False
    growth_rate: Optional[Decimal] = Field(default=None, gt=-1)

    @field_validator("year")
    @classmethod
    def tax_year_in_range(cls, v):
        return _check_tax_year(v)


# ===================== HERRAMIENTAS =====================

class FilingObligationRequest(BaseModel):
    gross_income: int = Field(..., ge=0)
    gross_patrimony: int = Field(default=0, ge=0)
    year: Optional[int] = None


class FilingObligationResponse(BaseModel):
    year: int
    obliged: bool
    reasons: List[str]
    income_threshold: int
    patrimony_threshold: int


class UVTConversionRequest(BaseModel):
    amount: Decimal = Field(..., ge=0)
    direction: ConversionDirection = ConversionDirection.UVT_A_PESOS
    year: Optional[int] = None


class UVTConversionResponse(BaseModel):
    year: int
    uvt: int
    amount: Decimal
    direction: ConversionDirection
    result: Decimal


class AdvanceCalendarEntry(BaseModel):
    period: int
    months: str
    due_date: date


class AdvanceCalendarResponse(BaseModel):
    year: int
    entries: List[AdvanceCalendarEntry]


class FiscalTablesResponse(BaseModel):
    """Tablas del año expresadas en UVT y en pesos."""
    year: int
    uvt: int
    ordinary: List[Dict]
    simple: Dict[str, List[Dict]]
    deductions: Dict


class FieldErrorDetail(BaseModel):
    field: str
    message: str
