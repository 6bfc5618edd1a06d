"""
Aplicación principal FastAPI del Simulador de Régimen Tributario.
Compara el Régimen Ordinario y el Régimen Simple de Tributación para
personas naturales independientes.
"""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.endpoints import regimen
from .api.middleware.security import (
    RateLimitMiddleware,
    RequestLogMiddleware,
    SecurityHeadersMiddleware,
)
from .core.config import settings
from .core.logging_config import configure_logging

logger = logging.getLogger(__name__)

# Crear aplicación
app = FastAPI(
    title=settings.APP_NAME,
    description="""
    ## Simulador de Régimen Tributario

    Compara el impuesto de renta de personas naturales independientes
    bajo el Régimen Ordinario y el Régimen Simple de Tributación (RST).

    ### Funcionalidades:
    - Depuración de renta con topes de deducciones (Art. 336 E.T.)
    - Impuesto según la tabla del Art. 241 E.T.
    - Impuesto unificado, descuentos y anticipos del RST (Arts. 908-912 E.T.)
    - Recomendación de régimen y oportunidades de ahorro
    - Proyección a tres años
    - Obligación de declarar y conversión UVT
    """,
    version=settings.APP_VERSION,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json"
)

# Configurar CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RateLimitMiddleware)
app.add_middleware(RequestLogMiddleware)

# Incluir routers
app.include_router(regimen.router, prefix="/api/v1")


@app.on_event("startup")
async def startup_event():
    """Inicialización al arrancar la aplicación."""
    configure_logging(settings.LOG_LEVEL)
    provider = regimen.get_provider()
    logger.info(f"{settings.APP_NAME} v{settings.APP_VERSION} iniciado")
    logger.info(f"Años gravables disponibles: {provider.supported_years()}")


@app.on_event("shutdown")
async def shutdown_event():
    """Limpieza al cerrar la aplicación."""
    logger.info("Aplicación cerrada")


@app.get("/")
async def root():
    """Endpoint raíz."""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "running",
        "docs": "/api/docs"
    }


@app.get("/health")
async def health_check():
    """Health check para monitoreo."""
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "fiscal_years": list(regimen.get_provider().supported_years()),
    }
