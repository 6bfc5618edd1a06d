"""
Middleware de la API.
Headers de seguridad, rate limiting por IP y registro de peticiones.
"""
import logging
import time
from collections import defaultdict
from typing import Callable, Dict

from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from ...core.config import settings

logger = logging.getLogger("tributario.requests")


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Agrega headers de seguridad a todas las respuestas.
    La documentación interactiva necesita cargar recursos externos, por eso
    no se aplica Content-Security-Policy en /api/docs.
    """

    async def dispatch(self, request: Request, call_next: Callable):
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Cache-Control"] = "no-store"
        if not request.url.path.startswith(("/api/docs", "/api/redoc")):
            response.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none'"

        return response


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Rate limiting por IP con ventana deslizante.
    Configurable via RATE_LIMIT_REQUESTS y RATE_LIMIT_PERIOD.
    """

    def __init__(self, app, requests_limit: int = None, period: int = None):
        super().__init__(app)
        self.requests_limit = requests_limit or settings.RATE_LIMIT_REQUESTS
        self.period = period or settings.RATE_LIMIT_PERIOD
        self.request_counts: Dict[str, list] = defaultdict(list)

    async def dispatch(self, request: Request, call_next: Callable):
        client_ip = request.client.host if request.client else "unknown"
        now = time.monotonic()

        recent = [t for t in self.request_counts[client_ip] if now - t < self.period]
        if len(recent) >= self.requests_limit:
            self.request_counts[client_ip] = recent
            logger.warning(f"Rate limit excedido para {client_ip}")
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={"detail": "Demasiadas solicitudes. Intente más tarde."},
                headers={"Retry-After": str(self.period)},
            )

        recent.append(now)
        self.request_counts[client_ip] = recent
        return await call_next(request)


class RequestLogMiddleware(BaseHTTPMiddleware):
    """
    Registra cada petición con su estado y duración.
    """

    async def dispatch(self, request: Request, call_next: Callable):
        start = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - start

        response.headers["X-Process-Time"] = f"{elapsed:.4f}"
        logger.info(
            f"{request.method} {request.url.path} - {response.status_code} - {elapsed:.3f}s "
            f"- IP: {request.client.host if request.client else 'unknown'}"
        )
        return response
