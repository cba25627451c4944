# apps/integrations/receivers.py

import logging

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.conf import settings
from django.core.mail import send_mail
from django.dispatch import receiver
from django.urls import reverse
from django.utils import timezone

from apps.tasks.signals import task_assigned, task_created, task_stage_updated
from .base import best_effort
from .slack import is_notification_enabled, slack_service

logger = logging.getLogger(__name__)


def task_url(task):
    base_url = getattr(settings, 'TASKFLOW_APP_URL', '').rstrip('/')
    return f"{base_url}{reverse('tasks:show', args=[task.id])}"


def workspace_group_name(workspace_id):
    return f'workspace_{workspace_id}_tasks'


def broadcast(workspace_id, event_type, message):
    """Envia o evento para o grupo WebSocket do workspace"""
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return

    async_to_sync(channel_layer.group_send)(
        workspace_group_name(workspace_id),
        {
            'type': event_type,
            'message': {**message, 'timestamp': timezone.now().isoformat()},
        }
    )


# === Slack ===

@receiver(task_created)
@best_effort('notificação Slack de nova tarefa')
def send_new_task_slack_notification(sender, task, actor=None, **kwargs):
    user_id = task.created_by_id or (actor.id if actor else None)
    if not user_id:
        return

    workspace_id = task.project.workspace_id
    if not is_notification_enabled('New Task', user_id, workspace_id):
        return

    slack_service.send('New Task', {
        'title': 'New Task Created',
        'message': f"A new task '{task.title}' has been created.",
        'task_name': task.title,
        'project_name': task.project.title or 'Unknown Project',
        'assigned_to': task.assigned_to.name if task.assigned_to else 'Unassigned',
        'url': task_url(task),
    }, user_id, workspace_id)


@receiver(task_stage_updated)
@best_effort('notificação Slack de mudança de estágio')
def send_stage_updated_slack_notification(sender, task, old_stage, new_stage, actor=None, **kwargs):
    user_id = actor.id if actor else task.created_by_id
    workspace_id = task.project.workspace_id
    if not is_notification_enabled('Task Status Updated', user_id, workspace_id):
        return

    slack_service.send('Task Status Updated', {
        'title': 'Task Status Updated',
        'message': f"Task '{task.title}' moved from {old_stage} to {new_stage}.",
        'task_name': task.title,
        'project_name': task.project.title,
        'old_stage': old_stage,
        'new_stage': new_stage,
        'url': task_url(task),
    }, user_id, workspace_id)


# === Email ===

@receiver(task_assigned)
@best_effort('email de atribuição de tarefa')
def send_task_assigned_email(sender, task, assignee, actor=None, **kwargs):
    if not assignee.email:
        return

    assigner = actor.name if actor else 'Taskflow'
    send_mail(
        subject=f"Nova tarefa atribuída: {task.title}",
        message=(
            f"Olá {assignee.name},\n\n"
            f"{assigner} atribuiu a tarefa '{task.title}' do projeto "
            f"'{task.project.title}' para você.\n\n"
            f"{task_url(task)}\n"
        ),
        from_email=settings.DEFAULT_FROM_EMAIL,
        recipient_list=[assignee.email],
    )
    logger.info("📧 Email de atribuição enviado para %s (tarefa %s)", assignee.email, task.id)


# === WebSocket ===

@receiver(task_created)
@best_effort('broadcast de nova tarefa')
def broadcast_task_created(sender, task, actor=None, **kwargs):
    broadcast(task.project.workspace_id, 'task_created', {
        'task_id': task.id,
        'title': task.title,
        'task_stage_id': task.task_stage_id,
        'user': actor.name if actor else None,
    })


@receiver(task_stage_updated)
@best_effort('broadcast de mudança de estágio')
def broadcast_task_stage_updated(sender, task, old_stage, new_stage, actor=None, **kwargs):
    broadcast(task.project.workspace_id, 'task_stage_changed', {
        'task_id': task.id,
        'title': task.title,
        'task_stage_id': task.task_stage_id,
        'old_stage': old_stage,
        'new_stage': new_stage,
        'user': actor.name if actor else None,
    })
