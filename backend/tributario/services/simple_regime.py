"""
Motor de cálculo - Régimen Simple de Tributación (RST).

Arts. 903 a 916 E.T.: tarifa consolidada por actividad sobre ingresos brutos,
descuentos por pagos electrónicos y GMF, y anticipos bimestrales.
"""
import logging
from decimal import Decimal
from typing import Dict, List, Sequence, Tuple

from ..core.exceptions import UnknownActivityClass
from ..utils.money import format_currency, format_rate, format_uvt, quantize_rate, round_currency
from ..utils.validators import validate_input_snapshot
from .fiscal_parameters import AdvanceBracket, DiscountRule, FiscalParameters, SimpleBracket, find_bracket
from .tax_types import (
    ActivityClass,
    AdvanceEntry,
    AdvanceSchedule,
    BenefitKind,
    DiscountBreakdown,
    DiscountCategory,
    DiscountEntry,
    InputSnapshot,
    OperationKind,
    SimpleBenefit,
    SimpleEligible,
    SimpleIneligible,
    SimpleResult,
    StepRecorder,
)

logger = logging.getLogger(__name__)

ZERO = Decimal("0")

BIMONTHLY_MONTHS = (
    "Enero - Febrero",
    "Marzo - Abril",
    "Mayo - Junio",
    "Julio - Agosto",
    "Septiembre - Octubre",
    "Noviembre - Diciembre",
)


class SimpleRegimeCalculator:
    """
    Calculadora del impuesto unificado del Régimen Simple.
    No ser elegible es un resultado, no un error.
    """

    @staticmethod
    def _activity_table(tables, activity: ActivityClass, year: int):
        try:
            return tables[activity]
        except KeyError:
            raise UnknownActivityClass(activity, year) from None

    @staticmethod
    def check_eligibility(snapshot: InputSnapshot, params: FiscalParameters) -> Tuple[str, ...]:
        """
        Verifica el tope de ingresos del régimen.
        Retorna las razones de inelegibilidad; vacío si es elegible.
        """
        threshold_uvt = params.simple.threshold_uvt(snapshot.activity_class)
        threshold = params.uvt_amount(threshold_uvt)
        reasons = []

        if snapshot.gross_income > threshold:
            reasons.append(
                f"Ingresos superan el límite de {format_uvt(threshold_uvt)} "
                f"({format_currency(threshold)})"
            )

        return tuple(reasons)

    @staticmethod
    def _discount(
        category: DiscountCategory,
        label: str,
        base_value: int,
        rule: DiscountRule,
        legal_reference: str,
        params: FiscalParameters,
    ) -> DiscountEntry:
        raw = base_value * rule.rate
        ceiling = params.uvt_amount(rule.ceiling_uvt)
        return DiscountEntry(
            category=category,
            label=label,
            base_value=base_value,
            rate=rule.rate,
            raw_value=raw,
            ceiling=ceiling,
            capped_value=min(raw, ceiling),
            legal_reference=legal_reference,
        )

    @classmethod
    def calculate_discounts(cls, snapshot: InputSnapshot, params: FiscalParameters) -> DiscountBreakdown:
        """
        Descuentos del impuesto unificado (Art. 912 E.T.).
        Cada descuento tiene su propio tope; no comparten límite.
        """
        electronic = cls._discount(
            DiscountCategory.ELECTRONIC_PAYMENTS,
            "Descuento por pagos electrónicos",
            snapshot.electronic_payments_received,
            params.simple.electronic_payments_discount,
            "Art. 912 E.T.",
            params,
        )
        gmf = cls._discount(
            DiscountCategory.GMF,
            "Descuento GMF (4x1000)",
            snapshot.gmf_paid,
            params.simple.gmf_discount,
            "Art. 912 E.T.",
            params,
        )
        return DiscountBreakdown(
            electronic_payments=electronic,
            gmf=gmf,
            total=electronic.capped_value + gmf.capped_value,
        )

    @classmethod
    def calculate_advances(
        cls,
        snapshot: InputSnapshot,
        params: FiscalParameters,
    ) -> AdvanceSchedule:
        """
        Anticipos bimestrales (Art. 910 E.T.).

        - Exento si los ingresos del año son menores a 3.500 UVT.
        - Si se reportan ingresos reales de los primeros bimestres, se usan;
          el resto del ingreso anual se reparte en los bimestres restantes.
        - La tarifa se toma de la tabla de anticipos según el ingreso anual.
        """
        gross = snapshot.gross_income
        gross_uvt = params.currency_to_uvt(gross)
        due_dates = params.simple.advance_due_dates
        actuals = tuple(snapshot.bimonthly_income_actuals)
        periods = len(BIMONTHLY_MONTHS)

        remaining_periods = periods - len(actuals)
        if remaining_periods:
            remainder = max(Decimal(gross - sum(actuals)), ZERO) / remaining_periods
        else:
            remainder = ZERO
        incomes = [Decimal(value) for value in actuals] + [remainder] * remaining_periods

        is_exempt = gross_uvt < params.simple.advance_exemption_uvt
        if is_exempt:
            rate = ZERO
            reason = (
                f"Ingresos menores a {format_uvt(params.simple.advance_exemption_uvt)}: "
                f"solo presenta la declaración anual"
            )
        else:
            table = cls._activity_table(
                params.simple.advance_brackets, snapshot.activity_class, params.year
            )
            bracket: AdvanceBracket = find_bracket(
                table, gross_uvt, f"Anticipos RST {snapshot.activity_class.value} {params.year}"
            )
            rate = bracket.advance_rate
            reason = None

        entries = []
        for index, months in enumerate(BIMONTHLY_MONTHS):
            income = incomes[index]
            entries.append(AdvanceEntry(
                period=index + 1,
                months=months,
                estimated_income=income,
                uses_actual_income=index < len(actuals),
                advance_rate=rate,
                advance_amount=0 if is_exempt else round_currency(income * rate),
                due_date=due_dates[index],
            ))

        return AdvanceSchedule(
            entries=tuple(entries),
            is_exempt=is_exempt,
            exemption_reason=reason,
            total=sum(entry.advance_amount for entry in entries),
        )

    @staticmethod
    def calculate_benefits(snapshot: InputSnapshot, params: FiscalParameters) -> Tuple[SimpleBenefit, ...]:
        """Beneficios cualitativos del régimen, con estimación cuando es posible."""
        gross = snapshot.gross_income
        w = params.withholding
        withholding_estimate = gross * w.withheld_share * w.rate_for(snapshot.activity_class)
        ica_estimate = gross * params.simple.ica_estimated_rate

        return (
            SimpleBenefit(
                kind=BenefitKind.EXENCION_RETENCION,
                title="Sin retención en la fuente",
                description=(
                    "Los pagos que recibe no están sujetos a retención por renta ni ICA, "
                    "mejorando su flujo de caja."
                ),
                estimated_value=withholding_estimate,
                applies=True,
            ),
            SimpleBenefit(
                kind=BenefitKind.EXENCION_ICA,
                title="ICA incluido en tarifa",
                description=(
                    "El impuesto de industria y comercio está incluido en la tarifa "
                    "consolidada. No paga ICA adicional."
                ),
                estimated_value=ica_estimate,
                applies=True,
            ),
            SimpleBenefit(
                kind=BenefitKind.SIMPLIFICACION,
                title="Declaración unificada",
                description=(
                    "Una sola declaración anual que incluye renta e ICA, en lugar de "
                    "múltiples formularios."
                ),
                estimated_value=None,
                applies=True,
            ),
            SimpleBenefit(
                kind=BenefitKind.FLUJO_CAJA,
                title="Mejor flujo de caja",
                description=(
                    "Paga anticipos bimestrales predecibles en lugar de retenciones "
                    "variables en cada pago que recibe."
                ),
                estimated_value=None,
                applies=True,
            ),
            # Depende de tener empleados; se muestra como información
            SimpleBenefit(
                kind=BenefitKind.PARAFISCALES,
                title="Posible simplificación de parafiscales",
                description=(
                    "Si tiene empleados, puede simplificar el pago de aportes "
                    "parafiscales según el número de trabajadores."
                ),
                estimated_value=None,
                applies=False,
            ),
        )

    @classmethod
    def calculate(cls, snapshot: InputSnapshot, params: FiscalParameters) -> SimpleResult:
        """
        Calcula el impuesto del Régimen Simple.
        Retorna SimpleIneligible si los ingresos superan el tope.
        """
        validate_input_snapshot(snapshot, params.deductions.max_dependents)
        activity = snapshot.activity_class
        table: Sequence[SimpleBracket] = cls._activity_table(params.simple.brackets, activity, params.year)

        steps = StepRecorder()
        gross = snapshot.gross_income
        gross_uvt = params.currency_to_uvt(gross)
        steps.add(
            "Ingresos brutos anuales",
            OperationKind.IGUAL,
            gross,
            detail=format_uvt(gross_uvt),
        )

        reasons = cls.check_eligibility(snapshot, params)
        if reasons:
            steps.add(
                "No elegible para el Régimen Simple",
                OperationKind.INFO,
                gross,
                detail="; ".join(reasons),
                legal_reference="Art. 905 E.T.",
            )
            logger.debug(f"RST {params.year}: no elegible ({gross_uvt} UVT)")
            return SimpleIneligible(
                year=params.year,
                activity_class=activity,
                gross_income=gross,
                gross_income_uvt=gross_uvt,
                reasons=reasons,
                steps=steps.steps(),
            )

        # Paso 2: tarifa consolidada
        bracket: SimpleBracket = find_bracket(table, gross_uvt, f"RST {activity.value} {params.year}")
        base_tax = gross * bracket.consolidated_rate
        steps.add(
            "Tarifa consolidada",
            OperationKind.INFO,
            bracket.consolidated_rate,
            detail=f"Rango: {bracket.label} - {activity.value.replace('_', ' ')}",
            legal_reference="Art. 908 E.T.",
        )
        steps.add(
            "Impuesto unificado (antes de descuentos)",
            OperationKind.MULTIPLICACION,
            base_tax,
            detail=f"{format_currency(gross)} × {format_rate(bracket.consolidated_rate)}",
        )

        # Paso 3: descuentos
        discounts = cls.calculate_discounts(snapshot, params)
        for entry in discounts.entries:
            steps.add(
                entry.label,
                OperationKind.RESTA,
                entry.capped_value,
                detail=f"{format_rate(entry.rate)} de {format_currency(entry.base_value)}, tope {format_currency(entry.ceiling)}",
                legal_reference=entry.legal_reference,
            )

        # Paso 4: impuesto neto
        net_tax = round_currency(max(base_tax - discounts.total, ZERO))
        effective_rate = quantize_rate(Decimal(net_tax) / gross) if gross > 0 else quantize_rate(0)
        steps.add(
            "Impuesto neto a pagar",
            OperationKind.IGUAL,
            net_tax,
            detail=f"Tarifa efectiva: {format_rate(effective_rate, 2)}",
        )

        # Paso 5: anticipos
        advances = cls.calculate_advances(snapshot, params)
        steps.add(
            "Total anticipos bimestrales",
            OperationKind.INFO,
            advances.total,
            detail=advances.exemption_reason,
            legal_reference="Art. 910 E.T.",
        )

        logger.debug(
            f"RST {params.year}: {activity.value} {bracket.label}, impuesto neto {net_tax}"
        )

        return SimpleEligible(
            year=params.year,
            activity_class=activity,
            gross_income=gross,
            gross_income_uvt=gross_uvt,
            bracket_label=bracket.label,
            consolidated_rate=bracket.consolidated_rate,
            base_tax=base_tax,
            discounts=discounts,
            net_tax=net_tax,
            effective_rate=effective_rate,
            advances=advances,
            benefits=cls.calculate_benefits(snapshot, params),
            steps=steps.steps(),
        )


def advance_calendar(params: FiscalParameters) -> List[Dict]:
    """Calendario de anticipos bimestrales del año."""
    return [
        {"period": index + 1, "months": months, "due_date": due_date}
        for index, (months, due_date) in enumerate(
            zip(BIMONTHLY_MONTHS, params.simple.advance_due_dates)
        )
    ]


def simple_rates_summary(params: FiscalParameters) -> Dict[str, List[Dict]]:
    """Tarifas consolidadas y de anticipo por actividad, con límites en pesos."""
    summary = {}
    for activity, table in params.simple.brackets.items():
        advance_table = params.simple.advance_brackets.get(activity, ())
        rows = []
        for bracket in table:
            advance = next((a for a in advance_table if a.from_uvt == bracket.from_uvt), None)
            rows.append({
                "label": bracket.label,
                "from_uvt": bracket.from_uvt,
                "to_uvt": bracket.to_uvt,
                "consolidated_rate": bracket.consolidated_rate,
                "advance_rate": None if advance is None else advance.advance_rate,
                "from_pesos": params.uvt_to_currency(bracket.from_uvt),
                "to_pesos": None if bracket.to_uvt is None else params.uvt_to_currency(bracket.to_uvt + 1),
            })
        summary[activity.value] = rows
    return summary
