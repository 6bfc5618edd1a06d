"""
Fixtures compartidas de los tests del simulador.
Todos los tests usan las tablas fiscales incluidas con la aplicación.
"""
from decimal import Decimal

import pytest

from tributario.core.fiscal_tables import FISCAL_TABLES
from tributario.services.fiscal_parameters import provider_from_mapping
from tributario.services.regime_comparison import RegimeComparisonEngine
from tributario.services.tax_types import ActivityClass, InputSnapshot

UVT_2025 = 49799


@pytest.fixture(scope="session")
def provider():
    return provider_from_mapping(FISCAL_TABLES)


@pytest.fixture
def params(provider):
    """Parámetros del año gravable 2025 (UVT $49.799)."""
    return provider.get_parameters(2025)


@pytest.fixture
def engine(provider):
    return RegimeComparisonEngine(
        provider,
        negligible_difference=100000,
        default_growth_rate=Decimal("0.05"),
        projection_years=3,
        min_opportunity_saving=0,
    )


@pytest.fixture
def make_snapshot():
    """Crea una entrada con valores por defecto de un profesional independiente."""
    def _make(**kwargs):
        kwargs.setdefault("gross_income", 200_000_000)
        kwargs.setdefault("activity_class", ActivityClass.PROFESIONAL_LIBERAL)
        return InputSnapshot(**kwargs)
    return _make
