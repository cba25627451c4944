# apps/tasks/consumers.py

import json
import logging

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncWebsocketConsumer
from django.utils import timezone

from apps.core.models import Workspace
from .visibility import visible_tasks

logger = logging.getLogger(__name__)


class TaskBoardConsumer(AsyncWebsocketConsumer):
    """
    Consumer WebSocket do kanban de tarefas de um workspace

    Recebe os eventos publicados pelos receivers de integração
    (task_created, task_stage_changed) e repassa ao navegador apenas
    as tarefas que o usuário pode ver.
    """

    async def connect(self):
        self.workspace_id = int(self.scope['url_route']['kwargs']['workspace_id'])
        self.group_name = f'workspace_{self.workspace_id}_tasks'
        self.user = self.scope['user']

        if not self.user.is_authenticated:
            logger.warning("❌ Conexão WebSocket rejeitada - usuário não autenticado")
            await self.close()
            return

        self.workspace, self.role = await self.resolve_membership()
        if self.role is None:
            logger.warning(
                "❌ Conexão WebSocket rejeitada - %s sem acesso ao workspace %s",
                self.user.username, self.workspace_id
            )
            await self.close()
            return

        await self.channel_layer.group_add(self.group_name, self.channel_name)
        await self.accept()

        logger.info("✅ WebSocket conectado - %s no workspace %s", self.user.username, self.workspace_id)

    async def disconnect(self, close_code):
        if getattr(self, 'role', None) is not None:
            await self.channel_layer.group_discard(self.group_name, self.channel_name)
            logger.info("🔌 WebSocket desconectado - %s do workspace %s", self.user.username, self.workspace_id)

    async def receive(self, text_data):
        try:
            data = json.loads(text_data)
        except json.JSONDecodeError:
            logger.error("❌ JSON inválido recebido via WebSocket de %s", self.user.username)
            return

        if not isinstance(data, dict):
            logger.warning("⚠️ Mensagem WebSocket ignorada (esperado objeto JSON) de %s", self.user.username)
            return

        # Heartbeat
        if data.get('type') == 'ping':
            await self.send(text_data=json.dumps({
                'type': 'pong',
                'timestamp': timezone.now().isoformat()
            }))

    # === Handlers dos eventos do grupo ===

    async def task_created(self, event):
        await self.relay('task_created', event['message'])

    async def task_stage_changed(self, event):
        await self.relay('task_stage_changed', event['message'])

    async def relay(self, event_type, message):
        if not await self.can_see_task(message.get('task_id')):
            return
        await self.send(text_data=json.dumps({
            'type': event_type,
            'message': message
        }))

    # === Métodos auxiliares ===

    @database_sync_to_async
    def resolve_membership(self):
        workspace = Workspace.objects.filter(id=self.workspace_id).first()
        if workspace is None:
            return None, None
        return workspace, workspace.get_member_role(self.user)

    @database_sync_to_async
    def can_see_task(self, task_id):
        if task_id is None:
            return False
        return visible_tasks(self.user, self.workspace, self.role).filter(pk=task_id).exists()
