# apps/tasks/services.py

"""
Serviço de tarefas - encapsula as mutações do kanban

A view cuida de HTTP e validação de formulário; este serviço cuida de
escopo de workspace, persistência e efeitos colaterais (calendário,
sinais de domínio).
"""

import logging

from django.core.exceptions import PermissionDenied, ValidationError
from django.db import transaction

from apps.core.models import Task, TaskStage
from apps.integrations.google_calendar import google_calendar_service, is_calendar_sync_enabled
from .signals import task_assigned, task_created, task_stage_updated

logger = logging.getLogger(__name__)

UNKNOWN_STAGE = 'Unknown'


def ensure_in_workspace(task, workspace):
    """Tarefa deve pertencer ao workspace atual - senão 403"""
    if workspace is None or task.project.workspace_id != workspace.id:
        raise PermissionDenied("Task not found in current workspace.")


class TaskService:
    """
    Mutações de tarefa para um ator dentro de um workspace

    Args:
        actor: usuário que executa a ação
        workspace: workspace atual do ator
        calendar: cliente de calendário (injetável nos testes)
        is_demo: instâncias de demonstração não disparam eventos
    """

    def __init__(self, actor, workspace, calendar=None, is_demo=False):
        if workspace is None:
            raise PermissionDenied("No workspace selected.")
        self.actor = actor
        self.workspace = workspace
        self.calendar = calendar or google_calendar_service
        self.is_demo = is_demo

    # === Mutações ===

    def create(self, fields):
        """
        Cria a tarefa no primeiro estágio do workspace

        fields: dicionário vindo de TaskCreateForm.task_fields()
        """
        project = fields['project']
        if project.workspace_id != self.workspace.id:
            raise PermissionDenied("Project not found in current workspace.")

        first_stage = TaskStage.objects.for_workspace(self.workspace.id).ordered().first()
        if first_stage is None:
            raise ValidationError("O workspace não possui estágios de tarefa configurados.")

        with transaction.atomic():
            task = Task.objects.create(
                **fields,
                task_stage=first_stage,
                created_by=self.actor,
                progress=0,
            )

        if task.is_googlecalendar_sync:
            self.sync_calendar(task)

        self._dispatch(task_created, task=task)

        if task.assigned_to is not None:
            self._dispatch(task_assigned, task=task, assignee=task.assigned_to)

        logger.info("✅ Tarefa %s criada por %s no projeto %s", task.id, self.actor.username, project.id)
        return task

    def update(self, task, fields):
        ensure_in_workspace(task, self.workspace)

        old_assigned_to_id = task.assigned_to_id

        for name, value in fields.items():
            setattr(task, name, value)
        task.save()

        if task.is_googlecalendar_sync:
            self.sync_calendar(task)
        elif task.google_calendar_event_id:
            # Sincronização desligada - remover evento do Google
            self.remove_from_calendar(task)

        new_assignee = task.assigned_to
        if new_assignee is not None and new_assignee.id != old_assigned_to_id:
            self._dispatch(task_assigned, task=task, assignee=new_assignee)

        logger.info("✏️ Tarefa %s atualizada por %s", task.id, self.actor.username)
        return task

    def destroy(self, task):
        """Remove a tarefa (soft delete) após limpar o evento do calendário"""
        ensure_in_workspace(task, self.workspace)

        if task.google_calendar_event_id:
            try:
                self.calendar.delete_event(task.google_calendar_event_id, self.workspace)
            except Exception as e:
                logger.error(
                    "Failed to delete Google Calendar event (task_id=%s, event_id=%s): %s",
                    task.id, task.google_calendar_event_id, e
                )

        task.soft_delete()
        logger.info("🗑️ Tarefa %s removida por %s", task.id, self.actor.username)

    def duplicate(self, task):
        """
        Copia a tarefa e seus checklists sem carregar identidade

        Datas e progresso são zerados; o ator vira o criador da cópia
        e de cada item de checklist.
        """
        ensure_in_workspace(task, self.workspace)

        checklists = list(task.checklists.all())

        with transaction.atomic():
            new_task = Task.objects.get(pk=task.pk)
            new_task.pk = None
            new_task.id = None
            new_task._state.adding = True
            new_task.title = f"{task.title} (Copy)"
            new_task.start_date = None
            new_task.end_date = None
            new_task.progress = 0
            new_task.created_by = self.actor
            new_task.google_calendar_event_id = None
            new_task.created_at = Task._meta.get_field('created_at').get_default()
            new_task.save()

            for checklist in checklists:
                checklist.pk = None
                checklist.id = None
                checklist._state.adding = True
                checklist.task = new_task
                checklist.is_completed = False
                checklist.created_by = self.actor
                checklist.save()

        logger.info("📋 Tarefa %s duplicada como %s", task.id, new_task.id)
        return new_task

    def change_stage(self, task, stage):
        """Move a tarefa para outro estágio e notifica a mudança"""
        ensure_in_workspace(task, self.workspace)

        old_stage = task.task_stage.name if task.task_stage_id else UNKNOWN_STAGE
        task.task_stage = stage
        task.save(update_fields=['task_stage', 'updated_at'])
        new_stage = stage.name or UNKNOWN_STAGE

        self._dispatch(task_stage_updated, task=task, old_stage=old_stage, new_stage=new_stage)

        logger.info("🔀 Tarefa %s: %s -> %s", task.id, old_stage, new_stage)
        return task

    # === Google Calendar ===

    def sync_calendar(self, task):
        """
        Cria ou atualiza o evento da tarefa no Google Calendar

        Só age quando o dono do workspace habilitou a sincronização.
        Falhas são logadas e não interrompem a mutação.
        """
        try:
            if not is_calendar_sync_enabled(self.workspace):
                return

            if task.google_calendar_event_id:
                self.calendar.update_event(task.google_calendar_event_id, task, self.workspace)
            else:
                event_id = self.calendar.create_event(task, self.workspace)
                if event_id:
                    task.google_calendar_event_id = event_id
                    task.save(update_fields=['google_calendar_event_id', 'updated_at'])
        except Exception as e:
            logger.error("Failed to sync task with Google Calendar (task_id=%s): %s", task.id, e)

    def remove_from_calendar(self, task):
        """Remove o evento remoto e limpa o id guardado mesmo se o Google falhar"""
        event_id = task.google_calendar_event_id
        try:
            self.calendar.delete_event(event_id, self.workspace)
        except Exception as e:
            logger.error(
                "Failed to delete Google Calendar event (task_id=%s, event_id=%s): %s",
                task.id, event_id, e
            )

        task.google_calendar_event_id = None
        task.save(update_fields=['google_calendar_event_id', 'updated_at'])

    # === Eventos ===

    def _dispatch(self, signal, **kwargs):
        """Dispara o sinal; falhas dos receivers são logadas e ignoradas"""
        if self.is_demo:
            return

        for receiver, result in signal.send_robust(sender=Task, actor=self.actor, **kwargs):
            if isinstance(result, Exception):
                logger.error(
                    "Receiver %s falhou: %s", getattr(receiver, '__name__', receiver), result,
                    exc_info=result
                )
