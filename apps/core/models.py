# apps/core/models.py

import logging

from django.conf import settings
from django.contrib.auth.models import AbstractUser
from django.core.validators import MinValueValidator, MaxValueValidator
from django.db import models
from django.utils import timezone
from PIL import Image

logger = logging.getLogger(__name__)


class User(AbstractUser):
    """
    Usuário customizado com suporte a multi-tenancy

    O workspace atual define qual tenant o usuário está enxergando;
    toda consulta de projetos e tarefas parte dele.
    """

    TYPE_CHOICES = [
        ('company', 'Empresa'),
        ('client', 'Cliente'),
    ]

    type = models.CharField(max_length=20, choices=TYPE_CHOICES, default='company')
    avatar = models.ImageField(upload_to='avatars/', blank=True, null=True)

    # === MULTI-TENANCY: CAMPO FUNDAMENTAL ===
    current_workspace = models.ForeignKey(
        'Workspace',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        help_text="Workspace selecionado atualmente pelo usuário"
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'users'

    def save(self, *args, **kwargs):
        """Redimensiona o avatar depois de salvar"""
        super().save(*args, **kwargs)

        if self.avatar:
            try:
                img = Image.open(self.avatar.path)
                if img.height > 300 or img.width > 300:
                    img.thumbnail((300, 300))
                    img.save(self.avatar.path)
            except (OSError, ValueError) as e:
                logger.warning("Não foi possível redimensionar avatar de %s: %s", self.username, e)

    @property
    def name(self):
        return self.get_full_name() or self.username

    def __str__(self):
        return self.name


class Workspace(models.Model):
    """Workspace - fronteira de tenant"""

    name = models.CharField(max_length=200)
    owner = models.ForeignKey(
        User,
        on_delete=models.PROTECT,
        related_name='owned_workspaces'
    )
    members = models.ManyToManyField(
        User,
        through='WorkspaceMember',
        related_name='workspaces'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'workspaces'
        ordering = ['name']

    def __str__(self):
        return self.name

    def get_member_role(self, user):
        """
        Retorna o papel do usuário neste workspace

        O dono é sempre 'owner', independente da tabela de membros.
        Retorna None para quem não participa do workspace ou está inativo.
        """
        if user is None or not user.is_authenticated:
            return None
        if self.owner_id == user.id:
            return 'owner'

        membership = self.memberships.filter(
            user=user,
            status=WorkspaceMember.STATUS_ACTIVE
        ).first()
        return membership.role if membership else None

    def active_members(self):
        """Usuários ativos do workspace"""
        return User.objects.filter(
            workspace_memberships__workspace=self,
            workspace_memberships__status=WorkspaceMember.STATUS_ACTIVE
        ).distinct()

    def create_default_stages(self):
        """Cria os estágios padrão do kanban para o workspace"""
        stage_names = getattr(
            settings,
            'TASKFLOW_DEFAULT_STAGES',
            ['To Do', 'In Progress', 'Review', 'Done']
        )
        for idx, name in enumerate(stage_names):
            TaskStage.objects.create(
                workspace=self,
                name=name,
                order=idx
            )


class WorkspaceMember(models.Model):
    """Participação de um usuário em um workspace"""

    ROLE_CHOICES = [
        ('owner', 'Dono'),
        ('manager', 'Gerente'),
        ('member', 'Membro'),
        ('client', 'Cliente'),
    ]

    STATUS_ACTIVE = 'active'
    STATUS_CHOICES = [
        ('active', 'Ativo'),
        ('inactive', 'Inativo'),
    ]

    workspace = models.ForeignKey(
        Workspace,
        on_delete=models.CASCADE,
        related_name='memberships'
    )
    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='workspace_memberships'
    )
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default='member')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_ACTIVE)
    joined_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'workspace_members'
        unique_together = ['workspace', 'user']
        indexes = [
            models.Index(fields=['workspace', 'role']),
        ]

    def __str__(self):
        return f"{self.user.username} - {self.workspace.name} ({self.role})"


class ProjectQuerySet(models.QuerySet):

    def for_workspace(self, workspace_id):
        return self.filter(workspace_id=workspace_id)


class Project(models.Model):
    """Projeto - pertence a exatamente um workspace"""

    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    workspace = models.ForeignKey(
        Workspace,
        on_delete=models.CASCADE,
        related_name='projects'
    )
    created_by = models.ForeignKey(
        User,
        on_delete=models.PROTECT,
        related_name='created_projects'
    )
    members = models.ManyToManyField(
        User,
        through='ProjectMember',
        related_name='member_projects'
    )
    clients = models.ManyToManyField(
        User,
        through='ProjectClient',
        related_name='client_projects'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ProjectQuerySet.as_manager()

    class Meta:
        db_table = 'projects'
        ordering = ['-created_at']

    def __str__(self):
        return self.title


class ProjectMember(models.Model):
    """Membro de projeto com papel"""

    ROLE_CHOICES = [
        ('manager', 'Gerente'),
        ('member', 'Membro'),
    ]

    project = models.ForeignKey(Project, on_delete=models.CASCADE, related_name='project_members')
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='project_memberships')
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default='member')

    class Meta:
        db_table = 'project_members'
        unique_together = ['project', 'user']


class ProjectClient(models.Model):
    """Cliente com acesso restrito ao projeto"""

    project = models.ForeignKey(Project, on_delete=models.CASCADE, related_name='project_clients')
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='project_client_links')

    class Meta:
        db_table = 'project_clients'
        unique_together = ['project', 'user']


class ProjectMilestone(models.Model):

    STATUS_CHOICES = [
        ('pending', 'Pendente'),
        ('in_progress', 'Em andamento'),
        ('completed', 'Concluído'),
    ]

    project = models.ForeignKey(Project, on_delete=models.CASCADE, related_name='milestones')
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    due_date = models.DateField(null=True, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'project_milestones'
        ordering = ['due_date', 'id']

    def __str__(self):
        return f"{self.title} ({self.project.title})"


class TaskStageQuerySet(models.QuerySet):

    def for_workspace(self, workspace_id):
        return self.filter(workspace_id=workspace_id)

    def ordered(self):
        return self.order_by('order', 'id')


class TaskStage(models.Model):
    """
    Coluna do kanban (estágio da tarefa)

    Não é uma máquina de estados: a ordem é definida pelo usuário
    através do campo `order`.
    """

    workspace = models.ForeignKey(
        Workspace,
        on_delete=models.CASCADE,
        related_name='task_stages'
    )
    name = models.CharField(max_length=100)
    color = models.CharField(max_length=7, default='#6B7280')
    order = models.IntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    objects = TaskStageQuerySet.as_manager()

    class Meta:
        db_table = 'task_stages'
        ordering = ['order', 'id']

    def __str__(self):
        return f"{self.name} - {self.workspace.name}"


class Setting(models.Model):
    """
    Configurações chave/valor por (usuário, workspace)

    Os valores são sempre texto; flags usam '1' e '0'.
    """

    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='settings')
    workspace = models.ForeignKey(
        Workspace,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='settings'
    )
    key = models.CharField(max_length=100)
    value = models.TextField(blank=True, default='')
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'settings'
        unique_together = ['user', 'workspace', 'key']

    def __str__(self):
        return f"{self.key}={self.value}"


def get_setting(key, default=None, user_id=None, workspace_id=None):
    """Lê um valor do store de configurações"""
    row = Setting.objects.filter(
        key=key,
        user_id=user_id,
        workspace_id=workspace_id
    ).only('value').first()
    return row.value if row is not None else default


def set_setting(key, value, user_id, workspace_id=None):
    Setting.objects.update_or_create(
        key=key,
        user_id=user_id,
        workspace_id=workspace_id,
        defaults={'value': str(value)}
    )


class Tax(models.Model):
    """Alíquota de imposto configurada por workspace"""

    name = models.CharField(max_length=255)
    rate = models.FloatField(
        validators=[MinValueValidator(0), MaxValueValidator(100)],
        help_text="Percentual entre 0 e 100"
    )
    workspace = models.ForeignKey(
        Workspace,
        on_delete=models.CASCADE,
        related_name='taxes'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'taxes'
        ordering = ['name']

    def __str__(self):
        return f"{self.name} ({self.rate}%)"


class TaskQuerySet(models.QuerySet):

    def for_project(self, project_id):
        return self.filter(project_id=project_id)

    def by_stage(self, stage_id):
        return self.filter(task_stage_id=stage_id)

    def by_priority(self, priority):
        return self.filter(priority=priority)


class TaskManager(models.Manager.from_queryset(TaskQuerySet)):
    """Esconde tarefas removidas (soft delete)"""

    def get_queryset(self):
        return super().get_queryset().filter(deleted_at__isnull=True)


class Task(models.Model):
    """Tarefa de um projeto"""

    PRIORITY_CHOICES = [
        ('low', '🟢 Baixa'),
        ('medium', '🟡 Média'),
        ('high', '🟠 Alta'),
        ('critical', '🔴 Crítica'),
    ]

    project = models.ForeignKey(
        Project,
        on_delete=models.CASCADE,
        related_name='tasks'
    )
    task_stage = models.ForeignKey(
        TaskStage,
        on_delete=models.PROTECT,
        related_name='tasks'
    )
    milestone = models.ForeignKey(
        ProjectMilestone,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='tasks'
    )
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True, null=True)
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default='medium')
    start_date = models.DateField(null=True, blank=True)
    end_date = models.DateField(null=True, blank=True)
    assigned_to = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='assigned_tasks'
    )
    created_by = models.ForeignKey(
        User,
        on_delete=models.PROTECT,
        related_name='created_tasks'
    )
    progress = models.PositiveSmallIntegerField(
        default=0,
        validators=[MaxValueValidator(100)]
    )
    is_googlecalendar_sync = models.BooleanField(default=False)
    google_calendar_event_id = models.CharField(max_length=255, null=True, blank=True)
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)
    deleted_at = models.DateTimeField(null=True, blank=True)

    objects = TaskManager()
    all_objects = models.Manager()

    class Meta:
        db_table = 'tasks'
        ordering = ['-created_at', '-id']
        base_manager_name = 'all_objects'
        indexes = [
            models.Index(fields=['project', 'task_stage']),
            models.Index(fields=['assigned_to']),
        ]

    def __str__(self):
        return self.title

    def soft_delete(self):
        self.deleted_at = timezone.now()
        self.save(update_fields=['deleted_at', 'updated_at'])

    def is_overdue(self):
        """Verifica se a tarefa está atrasada"""
        if self.end_date and self.progress < 100:
            return timezone.now().date() > self.end_date
        return False


class TaskChecklist(models.Model):
    """Item de checklist da tarefa"""

    task = models.ForeignKey(Task, on_delete=models.CASCADE, related_name='checklists')
    title = models.CharField(max_length=255)
    is_completed = models.BooleanField(default=False)
    assigned_to = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='assigned_checklists'
    )
    created_by = models.ForeignKey(
        User,
        on_delete=models.PROTECT,
        related_name='created_checklists'
    )
    due_date = models.DateField(null=True, blank=True)
    order = models.IntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'task_checklists'
        ordering = ['order', 'id']

    def can_be_updated_by(self, user):
        return user.id in (self.created_by_id, self.assigned_to_id) or _is_workspace_owner(user, self.task)

    def can_be_deleted_by(self, user):
        return user.id == self.created_by_id or _is_workspace_owner(user, self.task)


class TaskComment(models.Model):
    """Comentário em tarefa"""

    task = models.ForeignKey(Task, on_delete=models.CASCADE, related_name='comments')
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='task_comments')
    comment = models.TextField()
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'task_comments'
        ordering = ['-created_at']

    def can_be_updated_by(self, user):
        return user.id == self.user_id

    def can_be_deleted_by(self, user):
        return user.id == self.user_id or _is_workspace_owner(user, self.task)


class TaskAttachment(models.Model):

    task = models.ForeignKey(Task, on_delete=models.CASCADE, related_name='attachments')
    file = models.FileField(upload_to='task_attachments/')
    name = models.CharField(max_length=255, blank=True)
    uploaded_by = models.ForeignKey(User, on_delete=models.CASCADE, related_name='task_attachments')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'task_attachments'
        ordering = ['-created_at']


def _is_workspace_owner(user, task):
    return task.project.workspace.owner_id == user.id
