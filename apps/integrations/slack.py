# apps/integrations/slack.py

import logging

import httpx
from django.utils.text import slugify

from apps.core.models import get_setting
from .base import IntegrationError, http_timeout

logger = logging.getLogger(__name__)


def is_notification_enabled(template_name, user_id, workspace_id, channel='slack'):
    """
    Verifica se o template de notificação está ativo para o usuário

    Ex: 'New Task' + slack -> setting 'slack_notification_new_task'.
    Templates ficam ativos até serem desligados explicitamente.
    """
    key = f"{channel}_notification_{slugify(template_name).replace('-', '_')}"
    return get_setting(key, '1', user_id, workspace_id) == '1'


def format_message(data):
    """Texto do Slack a partir dos dados do template"""
    lines = [f"*{data.get('title', '')}*", data.get('message', '')]

    details = [
        ('Tarefa', data.get('task_name')),
        ('Projeto', data.get('project_name')),
        ('Responsável', data.get('assigned_to')),
        ('De', data.get('old_stage')),
        ('Para', data.get('new_stage')),
    ]
    lines.extend(f"• {label}: {value}" for label, value in details if value)

    if data.get('url'):
        lines.append(f"<{data['url']}|Abrir tarefa>")
    return '\n'.join(line for line in lines if line)


class SlackService:
    """Envio de notificações via incoming webhook do Slack"""

    def __init__(self, http_client=None):
        self._http_client = http_client

    @property
    def http_client(self):
        if self._http_client is None:
            self._http_client = httpx.Client(timeout=http_timeout())
        return self._http_client

    def send(self, template_name, data, user_id, workspace_id):
        """
        Envia a notificação para o webhook do usuário no workspace

        Returns:
            True se enviada, False se o webhook não estiver configurado
        """
        webhook_url = get_setting('slack_webhook_url', None, user_id, workspace_id)
        if not webhook_url:
            logger.debug("Slack sem webhook para usuário %s / workspace %s", user_id, workspace_id)
            return False

        try:
            response = self.http_client.post(webhook_url, json={'text': format_message(data)})
        except httpx.HTTPError as e:
            raise IntegrationError(f"Falha ao enviar '{template_name}' para o Slack: {e}") from e

        if not response.is_success:
            raise IntegrationError(
                f"Slack respondeu {response.status_code} para '{template_name}': {response.text[:200]}"
            )

        logger.info("💬 Notificação '%s' enviada ao Slack (workspace %s)", template_name, workspace_id)
        return True


slack_service = SlackService()
