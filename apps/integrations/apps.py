# apps/integrations/apps.py

import logging

from django.apps import AppConfig

logger = logging.getLogger(__name__)


class IntegrationsConfig(AppConfig):
    """Configuração da app Integrations"""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.integrations'
    verbose_name = 'Integrations - Google Calendar & Slack'

    def ready(self):
        """Conecta os receivers dos sinais de tarefa"""
        from . import receivers  # noqa: F401

        logger.info("🔌 Integrations App inicializada - receivers conectados")
