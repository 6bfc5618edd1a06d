"""
Configuración del logging de la aplicación.
Un solo handler a stdout con formato con timestamp.
"""
import logging
import sys


LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """
    Configura el logger raíz.

    Elimina los handlers existentes para evitar líneas duplicadas cuando
    uvicorn recarga la aplicación.

    Args:
        level: Nivel de logging (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    root_logger = logging.getLogger()
    if root_logger.hasHandlers():
        root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Los accesos de uvicorn ya los registra RequestLogMiddleware
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
