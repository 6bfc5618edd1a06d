"""
Tipos del motor de comparación de regímenes.

Todas las entidades son inmutables y se crean en cada cálculo. Los montos de
entrada son pesos enteros; los valores intermedios se reportan en Decimal
exacto y los valores a pagar en pesos enteros.
"""
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import List, Optional, Tuple, Union


# ===================== ENUMS =====================

class ActivityClass(str, Enum):
    """Actividades económicas del Régimen Simple (Art. 908 E.T.)."""
    PROFESIONAL_LIBERAL = "PROFESIONAL_LIBERAL"  # Numeral 6
    SERVICIOS_TECNICOS = "SERVICIOS_TECNICOS"  # Numeral 2
    COMERCIAL = "COMERCIAL"  # Numeral 2
    TIENDA_PELUQUERIA = "TIENDA_PELUQUERIA"  # Numeral 1
    RESTAURANTE = "RESTAURANTE"  # Numeral 3


class Regime(str, Enum):
    ORDINARIO = "ORDINARIO"
    SIMPLE = "SIMPLE"


class OperationKind(str, Enum):
    SUMA = "suma"
    RESTA = "resta"
    IGUAL = "igual"
    MULTIPLICACION = "multiplicacion"
    INFO = "info"


class DeductionCategory(str, Enum):
    """Categorías en el orden de presentación del Art. 336 E.T."""
    DEPENDENTS = "DEPENDIENTES"
    ELECTRONIC_PURCHASES = "COMPRAS_FE"
    PREPAID_HEALTH = "MEDICINA_PREPAGADA"
    MORTGAGE_INTEREST = "INTERESES_VIVIENDA"
    VOLUNTARY_CONTRIBUTIONS = "APORTES_VOLUNTARIOS"
    EXEMPT_INCOME_25 = "RENTA_EXENTA_25"


class DiscountCategory(str, Enum):
    ELECTRONIC_PAYMENTS = "PAGOS_ELECTRONICOS"
    GMF = "GMF"


class BenefitKind(str, Enum):
    EXENCION_RETENCION = "EXENCION_RETENCION"
    EXENCION_ICA = "EXENCION_ICA"
    SIMPLIFICACION = "SIMPLIFICACION"
    FLUJO_CAJA = "FLUJO_CAJA"
    PARAFISCALES = "PARAFISCALES"


# ===================== ENTRADA =====================

@dataclass(frozen=True)
class InputSnapshot:
    """
    Datos del contribuyente para una simulación.
    Todo monto es un entero no negativo en pesos; un campo ausente vale cero.
    """
    gross_income: int
    activity_class: ActivityClass
    costs: int = 0
    dependents: int = 0
    electronic_invoice_purchases: int = 0
    voluntary_pension: int = 0
    afc_contributions: int = 0
    mortgage_interest: int = 0
    prepaid_health: int = 0
    exempt_25_election: bool = False
    electronic_payments_received: int = 0
    gmf_paid: int = 0
    # Ingreso no constitutivo de renta (Art. 55 E.T.)
    mandatory_pension_contributions: int = 0
    # Ingresos reales de los primeros bimestres, en orden
    bimonthly_income_actuals: Tuple[int, ...] = ()
    current_regime: Optional[Regime] = None


MONETARY_FIELDS = (
    "gross_income",
    "costs",
    "electronic_invoice_purchases",
    "voluntary_pension",
    "afc_contributions",
    "mortgage_interest",
    "prepaid_health",
    "electronic_payments_received",
    "gmf_paid",
    "mandatory_pension_contributions",
)


# ===================== TRAZA DEL CÁLCULO =====================

@dataclass(frozen=True)
class CalculationStep:
    """Paso individual de la traza de auditoría."""
    order: int
    label: str
    operation: OperationKind
    value: Decimal
    detail: Optional[str] = None
    legal_reference: Optional[str] = None


class StepRecorder:
    """Acumula los pasos de un cálculo numerándolos en orden."""

    def __init__(self):
        self._steps: List[CalculationStep] = []

    def add(
        self,
        label: str,
        operation: OperationKind,
        value,
        detail: Optional[str] = None,
        legal_reference: Optional[str] = None,
    ) -> None:
        self._steps.append(CalculationStep(
            order=len(self._steps) + 1,
            label=label,
            operation=operation,
            value=Decimal(value),
            detail=detail,
            legal_reference=legal_reference,
        ))

    def steps(self) -> Tuple[CalculationStep, ...]:
        return tuple(self._steps)


# ===================== RÉGIMEN ORDINARIO =====================

@dataclass(frozen=True)
class DeductionEntry:
    """
    Una categoría de deducción o renta exenta.

    ceiling_capped_value es el valor tras el tope propio de la categoría;
    capped_value es el valor finalmente aceptado, después del límite global
    cuando la categoría está sujeta a él.
    """
    category: DeductionCategory
    label: str
    raw_value: Decimal
    ceiling: Decimal
    ceiling_uvt: int
    ceiling_capped_value: Decimal
    capped_value: Decimal
    inside_aggregate_cap: bool
    legal_reference: str

    @property
    def truncated_amount(self) -> Decimal:
        return self.ceiling_capped_value - self.capped_value


@dataclass(frozen=True)
class DeductionBreakdown:
    entries: Tuple[DeductionEntry, ...]
    deduction_base: Decimal
    aggregate_limit_percentage: Decimal
    aggregate_limit_uvt: Decimal
    aggregate_limit: Decimal
    inside_cap_subtotal: Decimal
    inside_cap_total: Decimal
    outside_cap_total: Decimal
    total: Decimal
    exceeded_amount: Decimal
    exempt_election_applied: bool

    @property
    def exceeds_limit(self) -> bool:
        return self.exceeded_amount > 0

    def entry(self, category: DeductionCategory) -> DeductionEntry:
        for item in self.entries:
            if item.category == category:
                return item
        raise KeyError(category)


@dataclass(frozen=True)
class OrdinaryResult:
    year: int
    uvt: int
    gross_income: int
    costs: int
    net_income: Decimal
    non_constitutive_income: Decimal
    deductions: DeductionBreakdown
    taxable_income: Decimal
    taxable_income_uvt: Decimal
    bracket_label: str
    marginal_rate: Decimal
    gross_tax: Decimal
    estimated_withholdings: Decimal
    net_tax: int
    effective_rate: Decimal
    steps: Tuple[CalculationStep, ...]


# ===================== RÉGIMEN SIMPLE =====================

@dataclass(frozen=True)
class DiscountEntry:
    category: DiscountCategory
    label: str
    base_value: int
    rate: Decimal
    raw_value: Decimal
    ceiling: Decimal
    capped_value: Decimal
    legal_reference: str


@dataclass(frozen=True)
class DiscountBreakdown:
    electronic_payments: DiscountEntry
    gmf: DiscountEntry
    total: Decimal

    @property
    def entries(self) -> Tuple[DiscountEntry, ...]:
        return (self.electronic_payments, self.gmf)


@dataclass(frozen=True)
class AdvanceEntry:
    """Anticipo bimestral del Régimen Simple."""
    period: int
    months: str
    estimated_income: Decimal
    uses_actual_income: bool
    advance_rate: Decimal
    advance_amount: int
    due_date: date


@dataclass(frozen=True)
class AdvanceSchedule:
    entries: Tuple[AdvanceEntry, ...]
    is_exempt: bool
    exemption_reason: Optional[str]
    total: int


@dataclass(frozen=True)
class SimpleBenefit:
    kind: BenefitKind
    title: str
    description: str
    estimated_value: Optional[Decimal]
    applies: bool


@dataclass(frozen=True)
class SimpleIneligible:
    """El contribuyente no puede optar por el Régimen Simple."""
    year: int
    activity_class: ActivityClass
    gross_income: int
    gross_income_uvt: Decimal
    reasons: Tuple[str, ...]
    steps: Tuple[CalculationStep, ...]
    is_eligible: bool = field(default=False, init=False)


@dataclass(frozen=True)
class SimpleEligible:
    year: int
    activity_class: ActivityClass
    gross_income: int
    gross_income_uvt: Decimal
    bracket_label: str
    consolidated_rate: Decimal
    base_tax: Decimal
    discounts: DiscountBreakdown
    net_tax: int
    effective_rate: Decimal
    advances: AdvanceSchedule
    benefits: Tuple[SimpleBenefit, ...]
    steps: Tuple[CalculationStep, ...]
    is_eligible: bool = field(default=True, init=False)


SimpleResult = Union[SimpleEligible, SimpleIneligible]


# ===================== COMPARACIÓN =====================

@dataclass(frozen=True)
class Recommendation:
    regime: Regime
    indifferent: bool
    reasons: Tuple[str, ...]


@dataclass(frozen=True)
class SavingsOpportunity:
    regime: Regime
    category: str
    title: str
    description: str
    potential_saving: int
    utilization_percentage: Decimal
    current_value: Decimal
    ceiling: Decimal
    how_to: str


@dataclass(frozen=True)
class Projection:
    year: int
    parameters_year: int
    extrapolated: bool
    projected_income: int
    ordinary_net_tax: int
    simple_net_tax: Optional[int]
    simple_eligible: bool
    recommended_regime: Regime
    saving: int
    caveat: Optional[str] = None


@dataclass(frozen=True)
class ExecutiveSummary:
    current_regime: Optional[Regime]
    recommended_regime: Regime
    annual_saving: int
    monthly_saving: int
    actions: Tuple[str, ...]


@dataclass(frozen=True)
class ComparisonResult:
    year: int
    snapshot: InputSnapshot
    ordinary: OrdinaryResult
    simple: SimpleResult
    difference: Optional[int]
    savings_percentage: Optional[Decimal]
    recommendation: Recommendation
    opportunities: Tuple[SavingsOpportunity, ...]
    warnings: Tuple[str, ...]
    summary: ExecutiveSummary
    projection: Optional[Tuple[Projection, ...]] = None
