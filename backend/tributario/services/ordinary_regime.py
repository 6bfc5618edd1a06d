"""
Motor de cálculo - Régimen Ordinario de personas naturales.

Depuración de la renta según Art. 336 E.T. e impuesto según la tabla del
Art. 241 E.T. Los valores intermedios se llevan sin redondear; solo el
impuesto neto se redondea al peso.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, List, Tuple

from ..utils.money import format_currency, format_rate, format_uvt, quantize_rate, round_currency
from ..utils.validators import validate_input_snapshot
from .fiscal_parameters import FiscalParameters, OrdinaryBracket, find_bracket
from .tax_types import (
    DeductionBreakdown,
    DeductionCategory,
    DeductionEntry,
    InputSnapshot,
    OperationKind,
    OrdinaryResult,
    StepRecorder,
)

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


@dataclass(frozen=True)
class FilingObligation:
    """Resultado de la verificación del Art. 592 E.T."""
    obliged: bool
    reasons: Tuple[str, ...]
    income_threshold: int
    patrimony_threshold: int


class OrdinaryRegimeCalculator:
    """
    Calculadora del impuesto de renta bajo el Régimen Ordinario.
    Cada paso de la depuración queda registrado en la traza de cálculo.
    """

    @staticmethod
    def calculate_net_income(snapshot: InputSnapshot) -> Decimal:
        """
        Ingresos netos = ingresos brutos - costos y gastos.
        Nunca negativo.
        """
        return max(Decimal(snapshot.gross_income - snapshot.costs), ZERO)

    @staticmethod
    def calculate_non_constitutive_income(snapshot: InputSnapshot, params: FiscalParameters) -> Decimal:
        """
        Aportes obligatorios a pensión (Art. 55 E.T.), con tope en UVT.
        Solo se toma el valor declarado; no se estima.
        """
        ceiling = params.uvt_amount(params.deductions.non_constitutive_cap_uvt)
        return min(Decimal(snapshot.mandatory_pension_contributions), ceiling)

    @staticmethod
    def _entry(
        category: DeductionCategory,
        label: str,
        raw_value: Decimal,
        ceiling_uvt: int,
        inside_cap: bool,
        legal_reference: str,
        params: FiscalParameters,
    ) -> DeductionEntry:
        ceiling = params.uvt_amount(ceiling_uvt)
        capped = min(raw_value, ceiling)
        return DeductionEntry(
            category=category,
            label=label,
            raw_value=raw_value,
            ceiling=ceiling,
            ceiling_uvt=ceiling_uvt,
            ceiling_capped_value=capped,
            capped_value=capped,
            inside_aggregate_cap=inside_cap,
            legal_reference=legal_reference,
        )

    @classmethod
    def calculate_deductions(
        cls,
        snapshot: InputSnapshot,
        deduction_base: Decimal,
        params: FiscalParameters,
    ) -> DeductionBreakdown:
        """
        Deducciones y rentas exentas con sus topes (Art. 336 E.T.).

        1. Cada categoría se limita a su propio tope.
        2. Las categorías sujetas al límite global se suman y se limitan a
           min(40% de la base, 1.340 UVT). El recorte se aplica recorriendo
           las categorías en orden de presentación: la última agregada
           absorbe el exceso.
        3. Dependientes y compras con factura electrónica se suman por fuera
           del límite.
        """
        d = params.deductions

        dependents = cls._entry(
            DeductionCategory.DEPENDENTS,
            "Dependientes",
            params.uvt_amount(d.dependent_uvt) * snapshot.dependents,
            d.dependent_uvt * d.max_dependents,
            False,
            "Art. 336 num. 3 E.T.",
            params,
        )
        electronic_purchases = cls._entry(
            DeductionCategory.ELECTRONIC_PURCHASES,
            "Compras con factura electrónica",
            snapshot.electronic_invoice_purchases * d.electronic_purchases_rate,
            d.electronic_purchases_cap_uvt,
            False,
            "Art. 336 num. 5 E.T.",
            params,
        )
        prepaid_health = cls._entry(
            DeductionCategory.PREPAID_HEALTH,
            "Medicina prepagada",
            Decimal(snapshot.prepaid_health),
            d.prepaid_health_cap_uvt,
            True,
            "Art. 387 E.T.",
            params,
        )
        mortgage_interest = cls._entry(
            DeductionCategory.MORTGAGE_INTEREST,
            "Intereses de vivienda",
            Decimal(snapshot.mortgage_interest),
            d.mortgage_interest_cap_uvt,
            True,
            "Art. 119 E.T.",
            params,
        )
        voluntary = cls._entry(
            DeductionCategory.VOLUNTARY_CONTRIBUTIONS,
            "Aportes voluntarios pensión y AFC",
            Decimal(snapshot.voluntary_pension + snapshot.afc_contributions),
            d.voluntary_contributions_cap_uvt,
            True,
            "Arts. 126-1 y 126-4 E.T.",
            params,
        )

        # La renta exenta del 25% solo procede si no se imputan costos
        exempt_applied = snapshot.exempt_25_election and snapshot.costs == 0
        exempt_base = max(
            deduction_base
            - prepaid_health.ceiling_capped_value
            - mortgage_interest.ceiling_capped_value
            - voluntary.ceiling_capped_value,
            ZERO,
        )
        exempt_income = cls._entry(
            DeductionCategory.EXEMPT_INCOME_25,
            "Renta exenta 25%",
            exempt_base * d.exempt_income_rate if exempt_applied else ZERO,
            d.exempt_income_cap_uvt,
            True,
            "Art. 206 num. 10 E.T.",
            params,
        )

        inside = [prepaid_health, mortgage_interest, voluntary, exempt_income]
        outside = [dependents, electronic_purchases]

        limit_percentage = deduction_base * d.aggregate_rate
        limit_uvt = params.uvt_amount(d.aggregate_cap_uvt)
        limit = min(limit_percentage, limit_uvt)

        inside_subtotal = sum((e.ceiling_capped_value for e in inside), ZERO)

        # Recorte en orden de presentación
        remaining = limit
        truncated: List[DeductionEntry] = []
        for entry in inside:
            allowed = min(entry.ceiling_capped_value, remaining)
            remaining -= allowed
            truncated.append(DeductionEntry(
                category=entry.category,
                label=entry.label,
                raw_value=entry.raw_value,
                ceiling=entry.ceiling,
                ceiling_uvt=entry.ceiling_uvt,
                ceiling_capped_value=entry.ceiling_capped_value,
                capped_value=allowed,
                inside_aggregate_cap=True,
                legal_reference=entry.legal_reference,
            ))

        inside_total = sum((e.capped_value for e in truncated), ZERO)
        outside_total = sum((e.capped_value for e in outside), ZERO)
        exceeded = max(inside_subtotal - limit, ZERO)

        return DeductionBreakdown(
            entries=tuple(outside + truncated),
            deduction_base=deduction_base,
            aggregate_limit_percentage=limit_percentage,
            aggregate_limit_uvt=limit_uvt,
            aggregate_limit=limit,
            inside_cap_subtotal=inside_subtotal,
            inside_cap_total=inside_total,
            outside_cap_total=outside_total,
            total=inside_total + outside_total,
            exceeded_amount=exceeded,
            exempt_election_applied=exempt_applied,
        )

    @staticmethod
    def calculate_bracket_tax(
        taxable_income: Decimal,
        params: FiscalParameters,
    ) -> Tuple[Decimal, OrdinaryBracket, Decimal]:
        """
        Impuesto según la tabla del Art. 241 E.T.
        Fórmula: impuesto = base_UVT × UVT + tarifa × (renta_UVT - desde_UVT) × UVT

        Retorna (impuesto, rango, renta en UVT).
        """
        table = params.ordinary_brackets
        taxable_uvt = params.currency_to_uvt(taxable_income)

        if taxable_income <= 0:
            return ZERO, table[0], ZERO

        bracket = find_bracket(table, taxable_uvt, f"Art. 241 {params.year}")
        tax = (
            bracket.base_tax_uvt * params.uvt
            + bracket.marginal_rate * (taxable_income - params.uvt_amount(bracket.from_uvt))
        )
        return tax, bracket, taxable_uvt

    @staticmethod
    def estimate_withholdings(snapshot: InputSnapshot, params: FiscalParameters) -> Decimal:
        """
        Retenciones en la fuente estimadas:
        ingresos brutos × porción con retención × tarifa de la actividad.
        """
        w = params.withholding
        return snapshot.gross_income * w.withheld_share * w.rate_for(snapshot.activity_class)

    @classmethod
    def calculate(cls, snapshot: InputSnapshot, params: FiscalParameters) -> OrdinaryResult:
        """
        Calcula el impuesto de renta del Régimen Ordinario.
        Esta es la función principal de la calculadora.
        """
        validate_input_snapshot(snapshot, params.deductions.max_dependents)
        steps = StepRecorder()

        # Paso 1: ingresos netos
        steps.add("Ingresos brutos anuales", OperationKind.IGUAL, snapshot.gross_income)
        steps.add("Costos y gastos deducibles", OperationKind.RESTA, snapshot.costs)
        net_income = cls.calculate_net_income(snapshot)
        steps.add("Ingresos netos", OperationKind.IGUAL, net_income)

        non_constitutive = cls.calculate_non_constitutive_income(snapshot, params)
        steps.add(
            "Ingresos no constitutivos de renta (aportes obligatorios pensión)",
            OperationKind.RESTA,
            non_constitutive,
            detail=f"Máximo {format_uvt(params.deductions.non_constitutive_cap_uvt)}",
            legal_reference="Art. 55 E.T.",
        )
        deduction_base = max(net_income - non_constitutive, ZERO)
        steps.add("Base para deducciones", OperationKind.IGUAL, deduction_base)

        # Pasos 2 y 3: deducciones con topes
        deductions = cls.calculate_deductions(snapshot, deduction_base, params)
        for entry in deductions.entries:
            detail = f"Tope {format_uvt(entry.ceiling_uvt)}"
            if entry.truncated_amount > 0:
                detail += f"; recortado {format_currency(entry.truncated_amount)} por límite global"
            steps.add(
                entry.label,
                OperationKind.INFO,
                entry.capped_value,
                detail=detail,
                legal_reference=entry.legal_reference,
            )
        if deductions.exceeded_amount > 0:
            limit_detail = (
                f"Límite aplicado: {format_currency(deductions.aggregate_limit)} "
                f"(excede por {format_currency(deductions.exceeded_amount)})"
            )
        else:
            limit_detail = "Dentro del límite del 40% / 1.340 UVT"
        steps.add(
            "Total deducciones y rentas exentas",
            OperationKind.RESTA,
            deductions.total,
            detail=limit_detail,
            legal_reference="Art. 336 E.T.",
        )

        # Paso 4: renta líquida gravable
        taxable_income = max(deduction_base - deductions.total, ZERO)

        # Paso 5: tabla del Art. 241
        gross_tax, bracket, taxable_uvt = cls.calculate_bracket_tax(taxable_income, params)
        steps.add(
            "Renta líquida gravable",
            OperationKind.IGUAL,
            taxable_income,
            detail=format_uvt(taxable_uvt),
        )
        steps.add(
            "Impuesto de renta (Art. 241 E.T.)",
            OperationKind.IGUAL,
            gross_tax,
            detail=f"Rango: {bracket.label} - Tarifa marginal: {format_rate(bracket.marginal_rate, 0)}",
            legal_reference="Art. 241 E.T.",
        )

        # Paso 6: impuesto neto
        withholdings = cls.estimate_withholdings(snapshot, params)
        steps.add(
            "Retenciones en la fuente estimadas",
            OperationKind.RESTA,
            withholdings,
            detail="Estimación basada en retención promedio de la actividad",
        )
        net_tax = round_currency(max(gross_tax - withholdings, ZERO))
        effective_rate = (
            quantize_rate(gross_tax / snapshot.gross_income)
            if snapshot.gross_income > 0 else quantize_rate(0)
        )
        steps.add(
            "Impuesto neto a pagar",
            OperationKind.IGUAL,
            net_tax,
            detail=f"Tarifa efectiva: {format_rate(effective_rate, 2)}",
        )

        logger.debug(
            f"Ordinario {params.year}: renta gravable {taxable_income} "
            f"({bracket.label}), impuesto neto {net_tax}"
        )

        return OrdinaryResult(
            year=params.year,
            uvt=params.uvt,
            gross_income=snapshot.gross_income,
            costs=snapshot.costs,
            net_income=net_income,
            non_constitutive_income=non_constitutive,
            deductions=deductions,
            taxable_income=taxable_income,
            taxable_income_uvt=taxable_uvt,
            bracket_label=bracket.label,
            marginal_rate=bracket.marginal_rate,
            gross_tax=gross_tax,
            estimated_withholdings=withholdings,
            net_tax=net_tax,
            effective_rate=effective_rate,
            steps=steps.steps(),
        )


def filing_obligation(
    gross_income: int,
    gross_patrimony: int,
    params: FiscalParameters,
) -> FilingObligation:
    """
    Verifica si una persona está obligada a declarar renta (Art. 592 E.T.).
    """
    income_threshold = params.uvt_to_currency(params.filing.income_uvt)
    patrimony_threshold = params.uvt_to_currency(params.filing.patrimony_uvt)
    reasons = []

    if gross_income > income_threshold:
        reasons.append(
            f"Ingresos brutos ({format_currency(gross_income)}) superan "
            f"{format_currency(income_threshold)} ({format_uvt(params.filing.income_uvt)})"
        )
    if gross_patrimony > patrimony_threshold:
        reasons.append(
            f"Patrimonio bruto ({format_currency(gross_patrimony)}) supera "
            f"{format_currency(patrimony_threshold)} ({format_uvt(params.filing.patrimony_uvt)})"
        )

    return FilingObligation(
        obliged=bool(reasons),
        reasons=tuple(reasons),
        income_threshold=income_threshold,
        patrimony_threshold=patrimony_threshold,
    )


def ordinary_table_in_pesos(params: FiscalParameters) -> List[Dict]:
    """Tabla del Art. 241 con sus límites expresados en pesos."""
    rows = []
    for bracket in params.ordinary_brackets:
        rows.append({
            "label": bracket.label,
            "from_uvt": bracket.from_uvt,
            "to_uvt": bracket.to_uvt,
            "marginal_rate": bracket.marginal_rate,
            "base_tax_uvt": bracket.base_tax_uvt,
            "from_pesos": params.uvt_to_currency(bracket.from_uvt),
            "to_pesos": None if bracket.to_uvt is None else params.uvt_to_currency(bracket.to_uvt + 1),
            "base_tax_pesos": params.uvt_to_currency(bracket.base_tax_uvt),
        })
    return rows
