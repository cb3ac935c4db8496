"""
App configuration for the PLG website backend.
"""

import logging

from django.apps import AppConfig

logger = logging.getLogger(__name__)


class PlgWebsiteConfig(AppConfig):
    """App configuration for plg_website."""

    name = "plg_website"
    verbose_name = "PLG Website"

    def ready(self):
        """Called when Django starts."""
        import os
        import sys

        # Skip for management commands that never serve traffic
        if len(sys.argv) > 1 and sys.argv[1] in [
            "migrate",
            "makemigrations",
            "collectstatic",
            "shell",
            "check",
        ]:
            return

        # Django's reloader runs code twice
        if os.environ.get("RUN_MAIN") == "false":
            return

        if not hasattr(self, "_initialized"):
            try:
                logger.info("Setting up observability...")
                self.setup_observability()
                self.register_event_handlers()
                self._initialized = True
                logger.info("Observability setup complete")
            except Exception as e:
                logger.error(f"Error in AppConfig.ready(): {e}", exc_info=True)

    def setup_observability(self):
        """Setup observability after apps are ready."""
        try:
            from core.instrumentation import setup_opentelemetry

            setup_opentelemetry()
        except Exception as e:
            logger.warning(f"Failed to setup OpenTelemetry: {e}")

    def register_event_handlers(self):
        """Register event handlers after apps are ready."""
        from core.infrastructure.event_handlers import register_event_handlers as register

        register()
