"""
Endpoints del simulador de régimen tributario.
Capa delgada sobre el motor: convierte la solicitud en la entrada del motor y
los errores del motor en respuestas HTTP.
"""
import logging
from dataclasses import asdict
from decimal import Decimal
from functools import lru_cache
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status

from ...core.config import settings
from ...core.exceptions import FiscalYearNotSupported, InputValidationError, TributarioError
from ...schemas.schemas import (
    AdvanceCalendarResponse,
    CalculationRequest,
    ComparisonRequest,
    ConversionDirection,
    FieldErrorDetail,
    FilingObligationRequest,
    FilingObligationResponse,
    FiscalTablesResponse,
    UVTConversionRequest,
    UVTConversionResponse,
)
from ...services.fiscal_parameters import FiscalParameterProvider, FiscalParameters, load_provider
from ...services.ordinary_regime import OrdinaryRegimeCalculator, filing_obligation, ordinary_table_in_pesos
from ...services.regime_comparison import CompareOptions, RegimeComparisonEngine
from ...services.simple_regime import SimpleRegimeCalculator, advance_calendar, simple_rates_summary

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/regimen", tags=["Régimen Tributario"])


@lru_cache()
def get_provider() -> FiscalParameterProvider:
    """Proveedor de parámetros fiscales; se carga una sola vez."""
    return load_provider(settings.FISCAL_TABLES_PATH)


def get_engine(provider: FiscalParameterProvider = Depends(get_provider)) -> RegimeComparisonEngine:
    return RegimeComparisonEngine(provider)


def to_http_error(exc: TributarioError) -> HTTPException:
    """Traduce los errores del motor a respuestas HTTP."""
    if isinstance(exc, InputValidationError):
        return HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=[FieldErrorDetail(field=e.field, message=e.message).model_dump() for e in exc.errors],
        )
    if isinstance(exc, FiscalYearNotSupported):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))

    logger.error(f"Error de configuración fiscal: {exc}")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Error en la configuración de parámetros fiscales",
    )


def _parameters(provider: FiscalParameterProvider, year: Optional[int]) -> FiscalParameters:
    try:
        return provider.get_parameters(year or settings.DEFAULT_FISCAL_YEAR)
    except TributarioError as exc:
        raise to_http_error(exc) from exc


@router.post("/comparar")
async def compare_regimes(
    data: ComparisonRequest,
    engine: RegimeComparisonEngine = Depends(get_engine),
):
    """
    Compara el Régimen Ordinario con el Régimen Simple.
    Retorna ambos cálculos, la recomendación y las oportunidades de ahorro.
    """
    year = data.year or settings.DEFAULT_FISCAL_YEAR
    options = CompareOptions(
        include_projection=data.include_projection,
        growth_rate=data.growth_rate,
    )
    try:
        return engine.compare(data.to_snapshot(), year, options)
    except TributarioError as exc:
        raise to_http_error(exc) from exc


@router.post("/ordinario")
async def calculate_ordinary(
    data: CalculationRequest,
    provider: FiscalParameterProvider = Depends(get_provider),
):
    """Impuesto de renta en el Régimen Ordinario (Art. 241 E.T.)."""
    params = _parameters(provider, data.year)
    try:
        return OrdinaryRegimeCalculator.calculate(data.to_snapshot(), params)
    except TributarioError as exc:
        raise to_http_error(exc) from exc


@router.post("/simple")
async def calculate_simple(
    data: CalculationRequest,
    provider: FiscalParameterProvider = Depends(get_provider),
):
    """Impuesto unificado en el Régimen Simple (Art. 908 E.T.)."""
    params = _parameters(provider, data.year)
    try:
        return SimpleRegimeCalculator.calculate(data.to_snapshot(), params)
    except TributarioError as exc:
        raise to_http_error(exc) from exc


@router.post("/obligacion-declarar", response_model=FilingObligationResponse)
async def check_filing_obligation(
    data: FilingObligationRequest,
    provider: FiscalParameterProvider = Depends(get_provider),
):
    """Verifica la obligación de declarar renta (Art. 592 E.T.)."""
    params = _parameters(provider, data.year)
    result = filing_obligation(data.gross_income, data.gross_patrimony, params)
    return FilingObligationResponse(year=params.year, **asdict(result))


@router.post("/uvt/convertir", response_model=UVTConversionResponse)
async def convert_uvt(
    data: UVTConversionRequest,
    provider: FiscalParameterProvider = Depends(get_provider),
):
    """Convierte UVT a pesos o pesos a UVT con la UVT del año."""
    params = _parameters(provider, data.year)
    if data.direction == ConversionDirection.UVT_A_PESOS:
        result = Decimal(params.uvt_to_currency(data.amount))
    else:
        result = params.currency_to_uvt(data.amount).quantize(Decimal("0.0001"))
    return UVTConversionResponse(
        year=params.year,
        uvt=params.uvt,
        amount=data.amount,
        direction=data.direction,
        result=result,
    )


@router.get("/tablas/{year}", response_model=FiscalTablesResponse)
async def get_fiscal_tables(
    year: int,
    provider: FiscalParameterProvider = Depends(get_provider),
):
    """Tablas del Art. 241 y del Régimen Simple con sus límites en pesos."""
    params = _parameters(provider, year)
    return FiscalTablesResponse(
        year=params.year,
        uvt=params.uvt,
        ordinary=ordinary_table_in_pesos(params),
        simple=simple_rates_summary(params),
        deductions=asdict(params.deductions),
    )


@router.get("/anticipos/calendario/{year}", response_model=AdvanceCalendarResponse)
async def get_advance_calendar(
    year: int,
    provider: FiscalParameterProvider = Depends(get_provider),
):
    """Fechas límite de los anticipos bimestrales del Régimen Simple."""
    params = _parameters(provider, year)
    return AdvanceCalendarResponse(year=params.year, entries=advance_calendar(params))
