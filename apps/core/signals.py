# apps/core/signals.py

import logging

from django.db.models.signals import post_save
from django.dispatch import receiver

from .models import Workspace, WorkspaceMember

logger = logging.getLogger(__name__)


@receiver(post_save, sender=Workspace)
def preparar_workspace(sender, instance, created, **kwargs):
    """
    Novo workspace: registra o dono como membro e cria os estágios padrão
    APENAS se o workspace ainda não tem estágios
    """
    if not created:
        return

    WorkspaceMember.objects.get_or_create(
        workspace=instance,
        user=instance.owner,
        defaults={'role': 'owner'}
    )

    if not instance.task_stages.exists():
        instance.create_default_stages()

    logger.info("🏢 Workspace %s criado para %s", instance.id, instance.owner.username)
