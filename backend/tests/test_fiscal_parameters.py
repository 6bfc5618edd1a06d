"""
Tests de los parámetros fiscales por año.
"""
import copy
import json
from decimal import Decimal

import pytest

from tributario.core.exceptions import (
    BracketNotFound,
    BracketTableError,
    FiscalConfigurationError,
    FiscalYearNotSupported,
)
from tributario.core.fiscal_tables import FISCAL_TABLES
from tributario.services.fiscal_parameters import (
    OrdinaryBracket,
    find_bracket,
    load_provider,
    parameters_from_mapping,
)
from tributario.services.tax_types import ActivityClass


def _all_tables(params):
    yield "ordinario", params.ordinary_brackets
    for activity, table in params.simple.brackets.items():
        yield f"simple {activity.value}", table
    for activity, table in params.simple.advance_brackets.items():
        yield f"anticipo {activity.value}", table


class TestBracketTables:
    """Continuidad de las tablas de rangos."""

    @pytest.mark.parametrize("year", sorted(FISCAL_TABLES))
    def test_tables_are_continuous(self, provider, year):
        """
        Cada rango termina justo antes del siguiente: to_uvt + 1 == next.from_uvt
        y el último rango es abierto.
        """
        params = provider.get_parameters(year)
        for name, table in _all_tables(params):
            assert table[0].from_uvt == 0, name
            for current, following in zip(table, table[1:]):
                assert current.to_uvt + 1 == following.from_uvt, name
            assert table[-1].to_uvt is None, name

    def test_gap_is_configuration_error(self):
        raw = copy.deepcopy(FISCAL_TABLES[2025])
        raw["ordinary_brackets"][0]["to_uvt"] = 1088  # hueco entre 1089 y 1090

        with pytest.raises(BracketTableError):
            parameters_from_mapping(2025, raw)

    def test_overlap_is_configuration_error(self):
        raw = copy.deepcopy(FISCAL_TABLES[2025])
        raw["simple"]["brackets"]["COMERCIAL"][1]["from_uvt"] = 5000

        with pytest.raises(BracketTableError):
            parameters_from_mapping(2025, raw)

    def test_open_bracket_must_be_last(self):
        raw = copy.deepcopy(FISCAL_TABLES[2025])
        raw["ordinary_brackets"][-1]["to_uvt"] = 99999

        with pytest.raises(BracketTableError):
            parameters_from_mapping(2025, raw)

    @pytest.mark.parametrize("year", sorted(FISCAL_TABLES))
    def test_base_tax_never_drops_at_a_boundary(self, provider, year):
        """
        El impuesto base de cada rango alcanza el impuesto del rango anterior
        en su límite: 788 + 0,33 × (8.670 - 4.100) = 2.296,1
        """
        table = provider.get_parameters(year).ordinary_brackets
        for current, following in zip(table, table[1:]):
            reached = current.base_tax_uvt + current.marginal_rate * (following.from_uvt - current.from_uvt)
            assert following.base_tax_uvt >= reached, following.from_uvt

    @pytest.mark.parametrize("index,base_tax", [(4, "2296"), (6, "10352")])
    def test_rounded_down_base_tax_is_configuration_error(self, index, base_tax):
        raw = copy.deepcopy(FISCAL_TABLES[2025])
        raw["ordinary_brackets"][index]["base_tax_uvt"] = base_tax

        with pytest.raises(BracketTableError):
            parameters_from_mapping(2025, raw)

    def test_lower_bound_inclusive(self, params):
        """Un valor en el límite pertenece al rango que empieza ahí."""
        table = params.ordinary_brackets
        assert find_bracket(table, Decimal("1090"), "t").from_uvt == 1090
        assert find_bracket(table, Decimal("1089.999"), "t").from_uvt == 0
        assert find_bracket(table, Decimal("1000000"), "t").from_uvt == 31000

    def test_bracket_not_found(self):
        table = (OrdinaryBracket(0, 99, Decimal("0"), Decimal("0")),)
        with pytest.raises(BracketNotFound):
            find_bracket(table, Decimal("100"), "incompleta")

    def test_bracket_labels(self, params):
        assert params.ordinary_brackets[0].label == "0 - 1.090 UVT"
        assert params.ordinary_brackets[-1].label == "31.000 UVT en adelante"


class TestProvider:
    """Proveedor de parámetros por año."""

    def test_supported_years(self, provider):
        assert provider.supported_years() == (2024, 2025, 2026)
        assert provider.latest_year() == 2026

    def test_uvt_by_year(self, provider):
        assert provider.get_parameters(2024).uvt == 47065
        assert provider.get_parameters(2025).uvt == 49799
        assert provider.get_parameters(2026).uvt == 52374

    def test_unsupported_year_is_hard_error(self, provider):
        """Nunca se usa otro año en silencio."""
        with pytest.raises(FiscalYearNotSupported) as exc_info:
            provider.get_parameters(2019)

        assert exc_info.value.year == 2019
        assert exc_info.value.supported == (2024, 2025, 2026)

    def test_missing_key_is_configuration_error(self):
        raw = copy.deepcopy(FISCAL_TABLES[2025])
        del raw["deductions"]["aggregate_cap_uvt"]

        with pytest.raises(FiscalConfigurationError):
            parameters_from_mapping(2025, raw)

    def test_unknown_activity_in_configuration(self):
        raw = copy.deepcopy(FISCAL_TABLES[2025])
        raw["withholding"]["rates"]["MINERIA"] = "0.02"

        with pytest.raises(FiscalConfigurationError):
            parameters_from_mapping(2025, raw)

    def test_load_provider_from_json(self, tmp_path):
        path = tmp_path / "tablas.json"
        path.write_text(json.dumps({"2025": FISCAL_TABLES[2025]}), encoding="utf-8")

        provider = load_provider(str(path))

        assert provider.supported_years() == (2025,)
        params = provider.get_parameters(2025)
        assert params.uvt == 49799
        assert params.simple.advance_due_dates[0].isoformat() == "2025-03-07"

    def test_load_bundled_tables(self):
        assert load_provider().supported_years() == (2024, 2025, 2026)

    def test_withholding_rate_by_activity(self, params):
        assert params.withholding.rate_for(ActivityClass.PROFESIONAL_LIBERAL) == Decimal("0.11")
        assert params.withholding.rate_for(ActivityClass.TIENDA_PELUQUERIA) == Decimal("0.015")


class TestUVTConversion:
    """Conversión entre UVT y pesos."""

    def test_uvt_to_currency(self, params):
        # 1.340 UVT × $49.799 = $66.730.660
        assert params.uvt_to_currency(1340) == 66730660

    def test_currency_to_uvt_not_rounded(self, params):
        assert params.currency_to_uvt(49799) == Decimal("1")
        assert params.currency_to_uvt(24899.5) == Decimal("0.5")

    @pytest.mark.parametrize("amount", [0, 1, 999, 49799, 123456789, 4979900001])
    def test_round_trip_within_one_peso(self, params, amount):
        back = params.uvt_to_currency(params.currency_to_uvt(amount))
        assert abs(back - amount) <= 1


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
