# apps/integrations/google_calendar.py

"""
Cliente do Google Calendar usado na sincronização de tarefas

As credenciais OAuth (client id/secret + refresh token) ficam no store de
configurações do dono do workspace. O access token é cacheado no cache
do Django até perto de expirar.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from urllib.parse import quote

import httpx
from django.core.cache import cache
from django.utils import timezone

from apps.core.models import get_setting
from .base import IntegrationError, IntegrationNotConfigured, http_timeout

logger = logging.getLogger(__name__)

GOOGLE_OAUTH_TOKEN_URL = 'https://oauth2.googleapis.com/token'
GOOGLE_CALENDAR_API_BASE_URL = 'https://www.googleapis.com/calendar/v3'

SYNC_SETTING = 'is_googlecalendar_sync'


class CalendarRequestError(IntegrationError):

    def __init__(self, status_code, message):
        super().__init__(f"Google Calendar respondeu {status_code}: {message}")
        self.status_code = status_code


def is_calendar_sync_enabled(workspace):
    """Sincronização habilitada pelo dono do workspace"""
    return get_setting(SYNC_SETTING, '0', workspace.owner_id, workspace.id) == '1'


@dataclass(frozen=True)
class GoogleCredentials:
    client_id: str
    client_secret: str
    refresh_token: str
    calendar_id: str = 'primary'

    @classmethod
    def for_workspace(cls, workspace):
        def value(key, default=None):
            return get_setting(key, default, workspace.owner_id, workspace.id)

        client_id = value('google_calendar_client_id')
        client_secret = value('google_calendar_client_secret')
        refresh_token = value('google_calendar_refresh_token')
        if not (client_id and client_secret and refresh_token):
            raise IntegrationNotConfigured(
                f"Google Calendar não configurado para o workspace {workspace.id}"
            )
        return cls(
            client_id=client_id,
            client_secret=client_secret,
            refresh_token=refresh_token,
            calendar_id=value('google_calendar_id') or 'primary',
        )


def _error_message(response):
    try:
        payload = response.json()
    except ValueError:
        return response.text[:200]

    error = payload.get('error') if isinstance(payload, dict) else None
    if isinstance(error, dict):
        return str(error.get('message', ''))[:200]
    return str(error or '')[:200]


def task_to_event(task):
    """Evento de dia inteiro cobrindo o intervalo da tarefa"""
    start = task.start_date or task.end_date or timezone.localdate()
    end = task.end_date or start

    return {
        'summary': task.title,
        'description': task.description or '',
        # No Google a data final de eventos de dia inteiro é exclusiva
        'start': {'date': start.isoformat()},
        'end': {'date': (end + timedelta(days=1)).isoformat()},
        'extendedProperties': {
            'private': {'taskflow_task_id': str(task.id)},
        },
    }


class GoogleCalendarService:
    """Operações de evento usadas pelo TaskService"""

    def __init__(self, http_client=None):
        self._http_client = http_client

    @property
    def http_client(self):
        if self._http_client is None:
            self._http_client = httpx.Client(timeout=http_timeout())
        return self._http_client

    # === Operações públicas ===

    def create_event(self, task, workspace):
        """Cria o evento e retorna o id gerado pelo Google"""
        credentials = GoogleCredentials.for_workspace(workspace)
        payload = self._request(
            'POST',
            f'/calendars/{quote(credentials.calendar_id, safe="")}/events',
            credentials,
            workspace,
            json_body=task_to_event(task),
        )
        event_id = payload.get('id')
        logger.info("📅 Evento %s criado para a tarefa %s", event_id, task.id)
        return event_id

    def update_event(self, event_id, task, workspace):
        credentials = GoogleCredentials.for_workspace(workspace)
        self._request(
            'PUT',
            f'/calendars/{quote(credentials.calendar_id, safe="")}/events/{quote(event_id, safe="")}',
            credentials,
            workspace,
            json_body=task_to_event(task),
        )
        logger.info("📅 Evento %s atualizado para a tarefa %s", event_id, task.id)

    def delete_event(self, event_id, workspace):
        credentials = GoogleCredentials.for_workspace(workspace)
        try:
            self._request(
                'DELETE',
                f'/calendars/{quote(credentials.calendar_id, safe="")}/events/{quote(event_id, safe="")}',
                credentials,
                workspace,
            )
        except CalendarRequestError as e:
            # Evento já removido no Google
            if e.status_code not in (404, 410):
                raise
        logger.info("📅 Evento %s removido", event_id)

    # === Métodos auxiliares ===

    def _token_cache_key(self, workspace):
        return f'google_calendar_token:{workspace.id}'

    def _access_token(self, credentials, workspace, force_refresh=False):
        cache_key = self._token_cache_key(workspace)
        if not force_refresh:
            token = cache.get(cache_key)
            if token:
                return token

        try:
            response = self.http_client.post(
                GOOGLE_OAUTH_TOKEN_URL,
                data={
                    'client_id': credentials.client_id,
                    'client_secret': credentials.client_secret,
                    'refresh_token': credentials.refresh_token,
                    'grant_type': 'refresh_token',
                },
                headers={'Accept': 'application/json'},
            )
        except httpx.HTTPError as e:
            raise IntegrationError(f"Falha ao renovar token do Google: {e}") from e

        if not response.is_success:
            raise CalendarRequestError(response.status_code, _error_message(response))

        payload = response.json()
        token = payload.get('access_token')
        if not token:
            raise IntegrationError("Resposta de token do Google sem access_token")

        expires_in = payload.get('expires_in') or 3600
        cache.set(cache_key, token, max(int(expires_in) - 60, 30))
        return token

    def _request(self, method, path, credentials, workspace, json_body=None):
        url = f'{GOOGLE_CALENDAR_API_BASE_URL}{path}'

        response = self._send(method, url, credentials, workspace, json_body, force_refresh=False)
        if response.status_code == 401:
            response = self._send(method, url, credentials, workspace, json_body, force_refresh=True)

        if not response.is_success:
            raise CalendarRequestError(response.status_code, _error_message(response))

        if response.status_code == 204 or not response.content:
            return {}
        return response.json()

    def _send(self, method, url, credentials, workspace, json_body, force_refresh):
        token = self._access_token(credentials, workspace, force_refresh=force_refresh)
        try:
            return self.http_client.request(
                method,
                url,
                json=json_body,
                headers={'Authorization': f'Bearer {token}'},
            )
        except httpx.HTTPError as e:
            raise IntegrationError(f"Falha na requisição ao Google Calendar: {e}") from e


google_calendar_service = GoogleCalendarService()
