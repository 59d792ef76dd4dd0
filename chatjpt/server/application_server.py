"""
Application server owning the service container for the process.
"""

import logging
from typing import Any, Dict, Optional

from ..config import Settings, get_settings
from ..utils.logging import log_event
from .service_container import ServiceConfig, ServiceContainer


class ApplicationServer:
    """
    Top-level server object shared with the API layer.

    Routes reach services through ``server.service_container``; the server
    ensures they exist before the first request and are released on exit.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.service_container: Optional[ServiceContainer] = None
        self._initialized = False

    async def initialize(self) -> None:
        if self._initialized:
            log_event("application_server_already_initialized", level=logging.WARNING)
            return

        try:
            log_event("application_server_init_start")

            config = ServiceConfig(
                redis_url=self.settings.redis_url,
                key_prefix=self.settings.redis_key_prefix,
                settings=self.settings,
            )
            self.service_container = ServiceContainer(config)
            await self.service_container.initialize()

            self._initialized = True
            log_event(
                "application_server_initialized",
                {
                    "model": self.settings.google_model,
                    "history_window": self.settings.history_window,
                },
            )

        except Exception as e:
            log_event(
                "application_server_init_failed",
                {"error": str(e), "error_type": type(e).__name__},
                level=logging.ERROR,
            )
            await self.cleanup()
            raise

    async def cleanup(self) -> None:
        log_event("application_server_cleanup_start")

        if self.service_container:
            try:
                await self.service_container.cleanup()
            except Exception as e:
                log_event(
                    "service_container_cleanup_error",
                    {"error": str(e)},
                    level=logging.WARNING,
                )

        self._initialized = False
        log_event("application_server_cleanup_complete")

    def health(self) -> Dict[str, Any]:
        """Availability of the core services, for the health endpoint."""
        container = self.service_container
        return {
            "storage": bool(container and container.session_store is not None),
            "generator": bool(
                container
                and container.reply_generator is not None
                and container.reply_generator.is_initialized
            ),
        }
