"""
HTTP server for ChatJPT.
"""

from .application_server import ApplicationServer
from .main import create_app
from .service_container import ServiceContainer

__all__ = ["create_app", "ApplicationServer", "ServiceContainer"]
