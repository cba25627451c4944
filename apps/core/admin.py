# apps/core/admin.py

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.utils import timezone
from django.utils.html import format_html

from .models import (
    Project, ProjectClient, ProjectMember, ProjectMilestone, Setting, Task,
    TaskChecklist, TaskComment, TaskStage, Tax, User, Workspace, WorkspaceMember
)


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """Admin customizado para o modelo User"""

    list_display = [
        'username', 'email', 'get_full_name', 'type_badge',
        'current_workspace', 'is_active', 'date_joined'
    ]
    list_filter = ['type', 'is_staff', 'is_active', 'date_joined']
    search_fields = ['username', 'first_name', 'last_name', 'email']
    ordering = ['-date_joined']

    fieldsets = BaseUserAdmin.fieldsets + (
        ('Taskflow', {
            'fields': ('type', 'avatar', 'current_workspace')
        }),
    )

    add_fieldsets = BaseUserAdmin.add_fieldsets + (
        ('Taskflow', {
            'fields': ('type',)
        }),
    )

    def type_badge(self, obj):
        """Exibe o tipo de usuário com badge colorido"""
        cores = {
            'company': '#3B82F6',  # azul
            'client': '#F59E0B',  # amarelo
        }
        return format_html(
            '<span style="background-color: {}; color: white; '
            'padding: 3px 8px; border-radius: 4px; font-size: 11px;">{}</span>',
            cores.get(obj.type, '#6B7280'), obj.get_type_display()
        )

    type_badge.short_description = 'Tipo'


class WorkspaceMemberInline(admin.TabularInline):
    model = WorkspaceMember
    extra = 0
    fields = ['user', 'role', 'status']


class TaskStageInline(admin.TabularInline):
    model = TaskStage
    extra = 0
    fields = ['name', 'color', 'order']


@admin.register(Workspace)
class WorkspaceAdmin(admin.ModelAdmin):
    """Admin para workspaces (tenants)"""

    list_display = ['name', 'owner', 'members_count', 'projects_count', 'created_at']
    search_fields = ['name', 'owner__username']
    readonly_fields = ['created_at', 'updated_at']
    inlines = [WorkspaceMemberInline, TaskStageInline]

    def members_count(self, obj):
        return obj.memberships.count()

    members_count.short_description = 'Membros'

    def projects_count(self, obj):
        return obj.projects.count()

    projects_count.short_description = 'Projetos'


class ProjectMemberInline(admin.TabularInline):
    model = ProjectMember
    extra = 0


class ProjectClientInline(admin.TabularInline):
    model = ProjectClient
    extra = 0


class ProjectMilestoneInline(admin.TabularInline):
    model = ProjectMilestone
    extra = 0
    fields = ['title', 'due_date', 'status']


@admin.register(Project)
class ProjectAdmin(admin.ModelAdmin):
    """Admin para gerenciamento de projetos"""

    list_display = ['title', 'workspace', 'created_by', 'tasks_count', 'created_at']
    list_filter = ['workspace', 'created_at']
    search_fields = ['title', 'description']
    readonly_fields = ['created_at', 'updated_at']
    inlines = [ProjectMemberInline, ProjectClientInline, ProjectMilestoneInline]

    def tasks_count(self, obj):
        """Conta tarefas ativas"""
        return obj.tasks.count()

    tasks_count.short_description = 'Tarefas'


class TaskChecklistInline(admin.TabularInline):
    model = TaskChecklist
    extra = 0
    fields = ['title', 'is_completed', 'assigned_to', 'due_date', 'order']


class TaskCommentInline(admin.TabularInline):
    model = TaskComment
    extra = 0
    fields = ['user', 'comment', 'created_at']
    readonly_fields = ['created_at']


@admin.register(Task)
class TaskAdmin(admin.ModelAdmin):
    """Admin para tarefas - inclui as removidas (soft delete)"""

    list_display = [
        'id', 'title', 'project', 'task_stage', 'priority_badge',
        'assigned_to', 'progress', 'status_prazo', 'is_deleted'
    ]
    list_filter = ['priority', 'task_stage', 'project__workspace', 'is_googlecalendar_sync']
    search_fields = ['title', 'description']
    date_hierarchy = 'created_at'
    readonly_fields = ['created_at', 'updated_at', 'deleted_at', 'google_calendar_event_id']
    inlines = [TaskChecklistInline, TaskCommentInline]

    def get_queryset(self, request):
        return Task.all_objects.select_related('project', 'task_stage', 'assigned_to')

    def priority_badge(self, obj):
        """Badge colorido para prioridade"""
        return obj.get_priority_display()

    priority_badge.short_description = 'Prioridade'

    def status_prazo(self, obj):
        """Status do prazo"""
        if not obj.end_date:
            return '-'

        if obj.progress >= 100:
            return format_html('<span style="color: green;">✓ Concluída</span>')

        if obj.is_overdue():
            dias = (timezone.now().date() - obj.end_date).days
            return format_html('<span style="color: red;">⚠️ Atrasada {} dias</span>', dias)

        dias = (obj.end_date - timezone.now().date()).days
        if dias == 0:
            return format_html('<span style="color: orange;">⏰ Vence hoje</span>')
        return f"Em {dias} dias"

    status_prazo.short_description = 'Prazo'

    def is_deleted(self, obj):
        return obj.deleted_at is not None

    is_deleted.boolean = True
    is_deleted.short_description = 'Removida'


@admin.register(Setting)
class SettingAdmin(admin.ModelAdmin):
    list_display = ['key', 'value', 'user', 'workspace', 'updated_at']
    list_filter = ['key', 'workspace']
    search_fields = ['key', 'user__username']


@admin.register(Tax)
class TaxAdmin(admin.ModelAdmin):
    list_display = ['name', 'rate', 'workspace', 'created_at']
    list_filter = ['workspace']
    search_fields = ['name']


# Configuração do site admin
admin.site.site_header = "Taskflow - Administração"
admin.site.site_title = "Taskflow Admin"
admin.site.index_title = "Painel Administrativo"
