# apps/tasks/apps.py

import logging

from django.apps import AppConfig

logger = logging.getLogger(__name__)


class TasksConfig(AppConfig):
    """Configuração da app Tasks"""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.tasks'
    verbose_name = 'Tasks - Kanban'

    def ready(self):
        logger.info("🔌 Tasks App inicializada - WebSockets habilitados")
