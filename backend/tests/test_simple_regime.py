"""
Tests del Régimen Simple de Tributación (Arts. 908-912 E.T.).
UVT 2025: $49.799
"""
import copy
from datetime import date
from decimal import Decimal

import pytest

from tributario.core.exceptions import UnknownActivityClass
from tributario.core.fiscal_tables import FISCAL_TABLES
from tributario.services.fiscal_parameters import parameters_from_mapping
from tributario.services.simple_regime import (
    BIMONTHLY_MONTHS,
    SimpleRegimeCalculator,
    advance_calendar,
    simple_rates_summary,
)
from tributario.services.tax_types import ActivityClass, BenefitKind, SimpleEligible, SimpleIneligible

# 100.000 UVT × 49.799
THRESHOLD_2025 = 4_979_900_000


class TestEligibility:

    def test_exactly_at_threshold_is_eligible(self, params, make_snapshot):
        """
        Ingresos = 100.000 UVT exactos -> elegible.
        Rango 30.000+ UVT profesional: 14,5%
        4.979.900.000 × 0,145 = 722.085.500
        """
        result = SimpleRegimeCalculator.calculate(make_snapshot(gross_income=THRESHOLD_2025), params)

        assert isinstance(result, SimpleEligible)
        assert result.is_eligible
        assert result.consolidated_rate == Decimal("0.145")
        assert result.net_tax == 722085500

    def test_one_peso_above_threshold(self, params, make_snapshot):
        result = SimpleRegimeCalculator.calculate(make_snapshot(gross_income=THRESHOLD_2025 + 1), params)

        assert isinstance(result, SimpleIneligible)
        assert not result.is_eligible
        assert len(result.reasons) == 1
        assert "100.000 UVT" in result.reasons[0]
        assert not hasattr(result, "net_tax")

    def test_activity_threshold_override(self, make_snapshot):
        raw = copy.deepcopy(FISCAL_TABLES[2025])
        raw["simple"]["activity_thresholds_uvt"] = {"RESTAURANTE": 80000}
        params = parameters_from_mapping(2025, raw)

        snapshot = make_snapshot(
            gross_income=80000 * 49799 + 1,
            activity_class=ActivityClass.RESTAURANTE,
        )
        assert not SimpleRegimeCalculator.calculate(snapshot, params).is_eligible
        assert SimpleRegimeCalculator.calculate(
            make_snapshot(gross_income=80000 * 49799 + 1), params
        ).is_eligible


class TestConsolidatedRate:

    def test_professional_lowest_bracket(self, params, make_snapshot):
        """200.000.000 ≈ 4.016 UVT -> 5,9% = 11.800.000"""
        result = SimpleRegimeCalculator.calculate(make_snapshot(), params)

        assert result.consolidated_rate == Decimal("0.059")
        assert result.base_tax == Decimal("11800000")
        assert result.net_tax == 11800000
        assert result.effective_rate == Decimal("0.059000")
        assert result.bracket_label == "0 - 6.000 UVT"

    def test_unknown_activity_class(self, make_snapshot):
        raw = copy.deepcopy(FISCAL_TABLES[2025])
        del raw["simple"]["brackets"]["RESTAURANTE"]
        del raw["simple"]["advance_brackets"]["RESTAURANTE"]
        params = parameters_from_mapping(2025, raw)

        with pytest.raises(UnknownActivityClass):
            SimpleRegimeCalculator.calculate(
                make_snapshot(activity_class=ActivityClass.RESTAURANTE), params
            )


class TestDiscounts:

    def test_discounts_reduce_tax(self, params, make_snapshot):
        """
        COMERCIAL 200.000.000 -> 1,8% = 3.600.000
        Pagos electrónicos: 0,5% × 150.000.000 = 750.000
        GMF: 100% × 800.000 = 800.000
        Neto = 3.600.000 - 1.550.000 = 2.050.000
        """
        snapshot = make_snapshot(
            activity_class=ActivityClass.COMERCIAL,
            electronic_payments_received=150_000_000,
            gmf_paid=800_000,
        )
        result = SimpleRegimeCalculator.calculate(snapshot, params)

        assert result.discounts.electronic_payments.capped_value == Decimal("750000")
        assert result.discounts.gmf.capped_value == Decimal("800000")
        assert result.discounts.total == Decimal("1550000")
        assert result.net_tax == 2050000

    def test_discount_ceilings_are_independent(self, params, make_snapshot):
        """GMF 30.000.000 supera su tope de 400 UVT = 19.919.600."""
        snapshot = make_snapshot(gmf_paid=30_000_000, electronic_payments_received=100_000_000)
        discounts = SimpleRegimeCalculator.calculate_discounts(snapshot, params)

        assert discounts.gmf.capped_value == discounts.gmf.ceiling == Decimal("19919600")
        assert discounts.electronic_payments.capped_value == Decimal("500000")

    def test_net_tax_not_negative(self, params, make_snapshot):
        snapshot = make_snapshot(gross_income=10_000_000, gmf_paid=5_000_000)
        assert SimpleRegimeCalculator.calculate(snapshot, params).net_tax == 0


class TestAdvances:

    def test_exempt_below_3500_uvt(self, params, make_snapshot):
        """100.000.000 ≈ 2.008 UVT: sin anticipos."""
        schedule = SimpleRegimeCalculator.calculate(
            make_snapshot(gross_income=100_000_000), params
        ).advances

        assert schedule.is_exempt
        assert "3.500 UVT" in schedule.exemption_reason
        assert len(schedule.entries) == 6
        assert all(e.advance_amount == 0 and e.advance_rate == 0 for e in schedule.entries)
        assert schedule.total == 0

    def test_even_schedule(self, params, make_snapshot):
        """
        COMERCIAL 200.000.000 -> tarifa de anticipo 0,9%
        200.000.000 / 6 × 0,009 = 300.000 por bimestre
        """
        snapshot = make_snapshot(activity_class=ActivityClass.COMERCIAL)
        schedule = SimpleRegimeCalculator.calculate(snapshot, params).advances

        assert not schedule.is_exempt
        assert [e.advance_amount for e in schedule.entries] == [300000] * 6
        assert schedule.total == 1800000
        assert [e.months for e in schedule.entries] == list(BIMONTHLY_MONTHS)
        assert schedule.entries[0].due_date == date(2025, 3, 7)
        assert schedule.entries[-1].due_date == date(2026, 1, 9)

    def test_actual_income_for_first_periods(self, params, make_snapshot):
        """
        300.000.000 ≈ 6.024 UVT -> tarifa 3,7%
        Bimestres 1-2 reales: 40.000.000 y 60.000.000
        Resto: (300.000.000 - 100.000.000) / 4 = 50.000.000
        """
        snapshot = make_snapshot(
            gross_income=300_000_000,
            bimonthly_income_actuals=(40_000_000, 60_000_000),
        )
        schedule = SimpleRegimeCalculator.calculate(snapshot, params).advances

        assert [e.uses_actual_income for e in schedule.entries] == [True, True, False, False, False, False]
        assert [e.advance_amount for e in schedule.entries] == [
            1480000, 2220000, 1850000, 1850000, 1850000, 1850000,
        ]
        assert schedule.total == 11100000

    def test_actuals_above_annual_income(self, params, make_snapshot):
        snapshot = make_snapshot(
            gross_income=200_000_000,
            bimonthly_income_actuals=(150_000_000, 100_000_000),
        )
        schedule = SimpleRegimeCalculator.calculate(snapshot, params).advances
        assert all(e.estimated_income == 0 for e in schedule.entries[2:])


class TestBenefits:

    def test_benefits(self, params, make_snapshot):
        """Retención evitada: 200.000.000 × 0,70 × 0,11 = 15.400.000"""
        benefits = SimpleRegimeCalculator.calculate(make_snapshot(), params).benefits

        by_kind = {b.kind: b for b in benefits}
        assert by_kind[BenefitKind.EXENCION_RETENCION].estimated_value == Decimal("15400000")
        assert by_kind[BenefitKind.EXENCION_ICA].estimated_value == Decimal("2000000")
        assert not by_kind[BenefitKind.PARAFISCALES].applies


class TestExports:

    def test_advance_calendar(self, params):
        calendar = advance_calendar(params)
        assert len(calendar) == 6
        assert calendar[2] == {"period": 3, "months": "Mayo - Junio", "due_date": date(2025, 7, 11)}

    def test_rates_summary(self, params):
        summary = simple_rates_summary(params)
        assert set(summary) == {a.value for a in ActivityClass}
        assert summary["PROFESIONAL_LIBERAL"][0]["advance_rate"] == Decimal("0.03")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
