"""
Comparador de regímenes: Ordinario vs. Simple.

Ejecuta ambas calculadoras sobre la misma entrada, recomienda el régimen con
menor impuesto neto, identifica oportunidades de ahorro no aprovechadas y,
opcionalmente, proyecta los siguientes años.
"""
import logging
from concurrent.futures import Executor
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import List, Optional, Tuple

from ..core.config import settings
from ..core.exceptions import FiscalYearNotSupported
from ..utils.money import format_currency, format_rate, percentage, round_currency, to_decimal
from ..utils.validators import validate_compare_options, validate_input_snapshot
from .fiscal_parameters import FiscalParameterProvider, FiscalParameters
from .ordinary_regime import OrdinaryRegimeCalculator
from .simple_regime import SimpleRegimeCalculator
from .tax_types import (
    ComparisonResult,
    DeductionCategory,
    DiscountCategory,
    ExecutiveSummary,
    InputSnapshot,
    OrdinaryResult,
    Projection,
    Recommendation,
    Regime,
    SavingsOpportunity,
    SimpleResult,
)

logger = logging.getLogger(__name__)

REGIME_NAMES = {
    Regime.ORDINARIO: "Régimen Ordinario",
    Regime.SIMPLE: "Régimen Simple",
}

# Textos de las oportunidades por categoría: (título, cómo aprovecharla)
OPPORTUNITY_TEXTS = {
    DeductionCategory.DEPENDENTS.value: (
        "Deducción por dependientes",
        "Reporte los dependientes económicos (hijos, cónyuge o padres) con sus soportes.",
    ),
    DeductionCategory.ELECTRONIC_PURCHASES.value: (
        "Compras con factura electrónica",
        "Solicite factura electrónica a su nombre en sus compras de bienes y servicios.",
    ),
    DeductionCategory.PREPAID_HEALTH.value: (
        "Medicina prepagada",
        "Los pagos de medicina prepagada o seguros de salud son deducibles con certificado.",
    ),
    DeductionCategory.MORTGAGE_INTEREST.value: (
        "Intereses de crédito de vivienda",
        "Solicite al banco el certificado de intereses pagados del crédito hipotecario o leasing.",
    ),
    DeductionCategory.VOLUNTARY_CONTRIBUTIONS.value: (
        "Aportes voluntarios a pensión y AFC",
        "Realice aportes a pensión voluntaria o cuentas AFC antes del 31 de diciembre.",
    ),
    DeductionCategory.EXEMPT_INCOME_25.value: (
        "Renta exenta del 25%",
        "Si no imputa costos y gastos, puede tomar la renta exenta del 25% de sus honorarios.",
    ),
    DiscountCategory.ELECTRONIC_PAYMENTS.value: (
        "Cobros por medios electrónicos",
        "Reciba pagos por transferencia, tarjeta o billetera digital para ampliar el descuento.",
    ),
    DiscountCategory.GMF.value: (
        "Descuento del GMF (4x1000)",
        "Solicite al banco el certificado del GMF pagado en cuentas asociadas a la actividad.",
    ),
}


@dataclass(frozen=True)
class CompareOptions:
    include_projection: bool = False
    growth_rate: Optional[Decimal] = None


class RegimeComparisonEngine:
    """
    Motor de comparación de regímenes.
    No guarda estado entre llamadas; es seguro usarlo desde varios hilos.
    """

    def __init__(
        self,
        provider: FiscalParameterProvider,
        negligible_difference: Optional[int] = None,
        default_growth_rate: Optional[Decimal] = None,
        projection_years: Optional[int] = None,
        min_opportunity_saving: Optional[int] = None,
    ):
        self.provider = provider
        self.negligible_difference = (
            settings.NEGLIGIBLE_DIFFERENCE if negligible_difference is None else negligible_difference
        )
        self.default_growth_rate = to_decimal(
            settings.DEFAULT_GROWTH_RATE if default_growth_rate is None else default_growth_rate
        )
        self.projection_years = (
            settings.PROJECTION_YEARS if projection_years is None else projection_years
        )
        self.min_opportunity_saving = (
            settings.MIN_OPPORTUNITY_SAVING if min_opportunity_saving is None else min_opportunity_saving
        )

    # ===================== EJECUCIÓN =====================

    @staticmethod
    def _run_calculators(
        snapshot: InputSnapshot,
        params: FiscalParameters,
        executor: Optional[Executor] = None,
    ) -> Tuple[OrdinaryResult, SimpleResult]:
        if executor is None:
            return (
                OrdinaryRegimeCalculator.calculate(snapshot, params),
                SimpleRegimeCalculator.calculate(snapshot, params),
            )
        ordinary_future = executor.submit(OrdinaryRegimeCalculator.calculate, snapshot, params)
        simple_future = executor.submit(SimpleRegimeCalculator.calculate, snapshot, params)
        return ordinary_future.result(), simple_future.result()

    def compare(
        self,
        snapshot: InputSnapshot,
        year: int,
        options: Optional[CompareOptions] = None,
        executor: Optional[Executor] = None,
    ) -> ComparisonResult:
        """
        Compara ambos regímenes para el año gravable indicado.

        La entrada se valida completa antes de calcular; un año sin parámetros
        lanza FiscalYearNotSupported.
        """
        options = options or CompareOptions()
        validate_compare_options(options.growth_rate)
        params = self.provider.get_parameters(year)
        validate_input_snapshot(snapshot, params.deductions.max_dependents)

        ordinary, simple = self._run_calculators(snapshot, params, executor)

        if simple.is_eligible:
            difference = ordinary.net_tax - simple.net_tax
            savings_pct = percentage(abs(difference), max(ordinary.net_tax, simple.net_tax))
        else:
            difference = None
            savings_pct = None

        recommendation = self.recommend(ordinary, simple, snapshot.current_regime)
        opportunities = self.find_opportunities(snapshot, params, ordinary, simple)
        warnings = self.build_warnings(snapshot, params, ordinary, simple, recommendation)

        projection = None
        if options.include_projection:
            growth = self.default_growth_rate if options.growth_rate is None else to_decimal(options.growth_rate)
            projection = self.project(snapshot, year, growth)

        summary = self.build_summary(
            snapshot.current_regime, recommendation, difference, simple, opportunities
        )

        logger.info(
            f"Comparación {year}: ordinario {ordinary.net_tax}, "
            f"simple {simple.net_tax if simple.is_eligible else 'no elegible'}, "
            f"recomendado {recommendation.regime.value}"
        )

        return ComparisonResult(
            year=year,
            snapshot=snapshot,
            ordinary=ordinary,
            simple=simple,
            difference=difference,
            savings_percentage=savings_pct,
            recommendation=recommendation,
            opportunities=opportunities,
            warnings=warnings,
            summary=summary,
            projection=projection,
        )

    # ===================== RECOMENDACIÓN =====================

    def _choose(self, ordinary_tax: int, simple_tax: Optional[int], current: Optional[Regime]) -> Tuple[Regime, bool]:
        """(régimen, indiferente) según el menor impuesto neto."""
        if simple_tax is None:
            return Regime.ORDINARIO, False
        difference = ordinary_tax - simple_tax
        if abs(difference) < self.negligible_difference:
            return current or Regime.ORDINARIO, True
        return (Regime.SIMPLE if difference > 0 else Regime.ORDINARIO), False

    def recommend(
        self,
        ordinary: OrdinaryResult,
        simple: SimpleResult,
        current_regime: Optional[Regime] = None,
    ) -> Recommendation:
        """
        Recomienda el régimen con menor impuesto neto.
        Si la diferencia es despreciable se mantiene el régimen actual
        (Ordinario si no se conoce).
        """
        if not simple.is_eligible:
            reasons = list(simple.reasons)
            reasons.append("El Régimen Ordinario es la única opción disponible")
            return Recommendation(regime=Regime.ORDINARIO, indifferent=False, reasons=tuple(reasons))

        regime, indifferent = self._choose(ordinary.net_tax, simple.net_tax, current_regime)
        difference = ordinary.net_tax - simple.net_tax
        reasons: List[str] = []

        if indifferent:
            reasons.append(
                f"La diferencia entre regímenes ({format_currency(abs(difference))}) es menor a "
                f"{format_currency(self.negligible_difference)}; se mantiene el {REGIME_NAMES[regime]}"
            )
            return Recommendation(regime=regime, indifferent=True, reasons=tuple(reasons))

        saving_pct = percentage(abs(difference), max(ordinary.net_tax, simple.net_tax))
        reasons.append(
            f"El {REGIME_NAMES[regime]} genera un ahorro de {format_currency(abs(difference))} "
            f"({saving_pct}%)"
        )
        if regime == Regime.SIMPLE:
            reasons.append(
                f"Tarifa efectiva de {format_rate(simple.effective_rate, 2)} frente a "
                f"{format_rate(ordinary.effective_rate, 2)} en el Ordinario"
            )
            if simple.discounts.total > 0:
                reasons.append(
                    f"Descuentos por pagos electrónicos y GMF de {format_currency(simple.discounts.total)}"
                )
            reasons.append("ICA incluido en la tarifa consolidada y sin retenciones en la fuente")
        else:
            if ordinary.deductions.total > 0:
                reasons.append(
                    f"Las deducciones y rentas exentas reducen la base en "
                    f"{format_currency(ordinary.deductions.total)}"
                )
            reasons.append(
                f"Tarifa marginal de {format_rate(ordinary.marginal_rate, 0)} "
                f"sobre la renta líquida gravable"
            )

        return Recommendation(regime=regime, indifferent=False, reasons=tuple(reasons))

    # ===================== OPORTUNIDADES =====================

    def _opportunity(
        self,
        regime: Regime,
        category: str,
        description: str,
        saving,
        current_value: Decimal,
        ceiling: Decimal,
    ) -> Optional[SavingsOpportunity]:
        saving = round_currency(saving)
        if saving <= self.min_opportunity_saving:
            return None
        title, how_to = OPPORTUNITY_TEXTS[category]
        return SavingsOpportunity(
            regime=regime,
            category=category,
            title=title,
            description=description,
            potential_saving=saving,
            utilization_percentage=percentage(current_value, ceiling),
            current_value=current_value,
            ceiling=ceiling,
            how_to=how_to,
        )

    @staticmethod
    def _bumped_snapshot(snapshot: InputSnapshot, category: DeductionCategory, params: FiscalParameters):
        """Entrada con la categoría llevada a su tope; None si no se puede aumentar."""
        d = params.deductions
        if category == DeductionCategory.DEPENDENTS:
            if snapshot.dependents >= d.max_dependents:
                return None
            return replace(snapshot, dependents=d.max_dependents)
        if category == DeductionCategory.ELECTRONIC_PURCHASES:
            needed = round_currency(params.uvt_amount(d.electronic_purchases_cap_uvt) / d.electronic_purchases_rate)
            if snapshot.electronic_invoice_purchases >= needed:
                return None
            return replace(snapshot, electronic_invoice_purchases=needed)
        if category == DeductionCategory.PREPAID_HEALTH:
            ceiling = params.uvt_to_currency(d.prepaid_health_cap_uvt)
            if snapshot.prepaid_health >= ceiling:
                return None
            return replace(snapshot, prepaid_health=ceiling)
        if category == DeductionCategory.MORTGAGE_INTEREST:
            ceiling = params.uvt_to_currency(d.mortgage_interest_cap_uvt)
            if snapshot.mortgage_interest >= ceiling:
                return None
            return replace(snapshot, mortgage_interest=ceiling)
        if category == DeductionCategory.VOLUNTARY_CONTRIBUTIONS:
            ceiling = params.uvt_to_currency(d.voluntary_contributions_cap_uvt)
            current = snapshot.voluntary_pension + snapshot.afc_contributions
            if current >= ceiling:
                return None
            return replace(snapshot, voluntary_pension=snapshot.voluntary_pension + ceiling - current)
        if category == DeductionCategory.EXEMPT_INCOME_25:
            # Solo procede sin costos imputados
            if snapshot.exempt_25_election or snapshot.costs > 0:
                return None
            return replace(snapshot, exempt_25_election=True)
        return None

    def _ordinary_opportunities(
        self,
        snapshot: InputSnapshot,
        params: FiscalParameters,
        ordinary: OrdinaryResult,
    ) -> List[SavingsOpportunity]:
        found = []
        for entry in ordinary.deductions.entries:
            if entry.capped_value >= entry.ceiling:
                continue
            bumped = self._bumped_snapshot(snapshot, entry.category, params)
            if bumped is None:
                continue
            result = OrdinaryRegimeCalculator.calculate(bumped, params)
            opportunity = self._opportunity(
                Regime.ORDINARIO,
                entry.category.value,
                (
                    f"Usa {format_currency(entry.capped_value)} de un tope de "
                    f"{format_currency(entry.ceiling)}"
                ),
                ordinary.gross_tax - result.gross_tax,
                entry.capped_value,
                entry.ceiling,
            )
            if opportunity:
                found.append(opportunity)
        return found

    def _simple_opportunities(
        self,
        snapshot: InputSnapshot,
        params: FiscalParameters,
        simple: SimpleResult,
    ) -> List[SavingsOpportunity]:
        if not simple.is_eligible:
            return []

        found = []
        gross = snapshot.gross_income
        for entry in simple.discounts.entries:
            if entry.capped_value >= entry.ceiling or entry.rate <= 0:
                continue
            if entry.category == DiscountCategory.ELECTRONIC_PAYMENTS:
                # No se puede recibir más de lo facturado
                potential = min(gross, round_currency(entry.ceiling / entry.rate))
                if potential <= snapshot.electronic_payments_received:
                    continue
                bumped = replace(snapshot, electronic_payments_received=potential)
            else:
                # El GMF posible depende de los ingresos que pasan por el banco
                potential = min(
                    round_currency(entry.ceiling / entry.rate),
                    round_currency(gross * params.simple.gmf_rate),
                )
                if potential <= snapshot.gmf_paid:
                    continue
                bumped = replace(snapshot, gmf_paid=potential)

            result = SimpleRegimeCalculator.calculate(bumped, params)
            opportunity = self._opportunity(
                Regime.SIMPLE,
                entry.category.value,
                (
                    f"Descuento actual {format_currency(entry.capped_value)} de un tope de "
                    f"{format_currency(entry.ceiling)}"
                ),
                simple.net_tax - result.net_tax,
                entry.capped_value,
                entry.ceiling,
            )
            if opportunity:
                found.append(opportunity)
        return found

    def find_opportunities(
        self,
        snapshot: InputSnapshot,
        params: FiscalParameters,
        ordinary: OrdinaryResult,
        simple: SimpleResult,
    ) -> Tuple[SavingsOpportunity, ...]:
        """
        Oportunidades de ahorro: cada categoría que no llega a su tope se
        recalcula en el tope y se reporta el impuesto que se dejaría de pagar.
        Ordenadas de mayor a menor ahorro.
        """
        found = self._ordinary_opportunities(snapshot, params, ordinary)
        found.extend(self._simple_opportunities(snapshot, params, simple))
        found.sort(key=lambda o: o.potential_saving, reverse=True)
        return tuple(found)

    # ===================== PROYECCIÓN =====================

    def project(self, snapshot: InputSnapshot, year: int, growth_rate: Decimal) -> Tuple[Projection, ...]:
        """
        Proyección de los años siguientes con ingresos que crecen a la tasa dada.
        Si un año no tiene parámetros se usan los del último año disponible y
        la entrada queda marcada como extrapolada.
        """
        projections = []
        factor = Decimal(1) + growth_rate

        for offset in range(1, self.projection_years + 1):
            target_year = year + offset
            income = round_currency(snapshot.gross_income * factor ** offset)
            projected = replace(snapshot, gross_income=income, bimonthly_income_actuals=())

            caveat = None
            try:
                params = self.provider.get_parameters(target_year)
                extrapolated = False
            except FiscalYearNotSupported:
                latest = self.provider.latest_year()
                params = self.provider.get_parameters(latest)
                extrapolated = True
                caveat = (
                    f"No hay parámetros fiscales para {target_year}; "
                    f"se usan los de {latest} (UVT {format_currency(params.uvt)})"
                )
                logger.warning(f"Proyección {target_year}: extrapolada con parámetros de {latest}")

            ordinary = OrdinaryRegimeCalculator.calculate(projected, params)
            simple = SimpleRegimeCalculator.calculate(projected, params)
            simple_tax = simple.net_tax if simple.is_eligible else None
            regime, _ = self._choose(ordinary.net_tax, simple_tax, snapshot.current_regime)

            projections.append(Projection(
                year=target_year,
                parameters_year=params.year,
                extrapolated=extrapolated,
                projected_income=income,
                ordinary_net_tax=ordinary.net_tax,
                simple_net_tax=simple_tax,
                simple_eligible=simple.is_eligible,
                recommended_regime=regime,
                saving=0 if simple_tax is None else abs(ordinary.net_tax - simple_tax),
                caveat=caveat,
            ))

        return tuple(projections)

    # ===================== ADVERTENCIAS Y RESUMEN =====================

    @staticmethod
    def build_warnings(
        snapshot: InputSnapshot,
        params: FiscalParameters,
        ordinary: OrdinaryResult,
        simple: SimpleResult,
        recommendation: Recommendation,
    ) -> Tuple[str, ...]:
        warnings = []
        deductions = ordinary.deductions

        if snapshot.exempt_25_election and not deductions.exempt_election_applied:
            warnings.append(
                "La renta exenta del 25% no se aplicó porque se imputaron costos y gastos"
            )
        if deductions.exceeds_limit:
            warnings.append(
                f"Las deducciones y rentas exentas superan el límite global en "
                f"{format_currency(deductions.exceeded_amount)}; el exceso no es deducible"
            )

        if not simple.is_eligible:
            warnings.extend(simple.reasons)
        else:
            threshold_uvt = params.simple.threshold_uvt(snapshot.activity_class)
            if simple.gross_income_uvt >= Decimal(threshold_uvt) * Decimal("0.9"):
                warnings.append(
                    "Los ingresos están cerca del tope del Régimen Simple; un crecimiento "
                    "podría obligar a salir del régimen"
                )
            if recommendation.regime == Regime.SIMPLE and not simple.advances.is_exempt:
                warnings.append(
                    f"En el Régimen Simple debe pagar anticipos bimestrales por "
                    f"{format_currency(simple.advances.total)} en el año"
                )

        if recommendation.indifferent:
            warnings.append(
                "La diferencia entre regímenes es poco significativa; considere factores "
                "no tributarios antes de cambiar"
            )

        return tuple(warnings)

    @staticmethod
    def build_summary(
        current_regime: Optional[Regime],
        recommendation: Recommendation,
        difference: Optional[int],
        simple: SimpleResult,
        opportunities: Tuple[SavingsOpportunity, ...],
    ) -> ExecutiveSummary:
        annual = 0 if difference is None or recommendation.indifferent else abs(difference)
        actions = []

        if recommendation.regime == Regime.SIMPLE and current_regime != Regime.SIMPLE:
            actions.append(
                "Inscribirse en el Régimen Simple actualizando el RUT antes del último "
                "día hábil de febrero"
            )
        if recommendation.regime == Regime.SIMPLE and simple.is_eligible and not simple.advances.is_exempt:
            actions.append(
                f"Programar los anticipos bimestrales ({format_currency(simple.advances.total)} en el año)"
            )
        if recommendation.regime == Regime.ORDINARIO:
            actions.append("Conservar los certificados que soportan las deducciones declaradas")

        for opportunity in opportunities[:3]:
            if opportunity.regime == recommendation.regime:
                actions.append(
                    f"{opportunity.title}: ahorro potencial de "
                    f"{format_currency(opportunity.potential_saving)}"
                )

        return ExecutiveSummary(
            current_regime=current_regime,
            recommended_regime=recommendation.regime,
            annual_saving=annual,
            monthly_saving=round_currency(Decimal(annual) / 12),
            actions=tuple(actions),
        )
