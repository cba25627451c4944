# apps/tasks/views.py

import logging

from django.conf import settings
from django.contrib import messages
from django.contrib.auth.decorators import login_required
from django.core.exceptions import ValidationError
from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from apps.core.inertia import redirect_back, render_inertia, request_data, validation_failed
from apps.core.models import Task, TaskStage
from apps.core.permissions import get_guard, requires_permission, requires_workspace
from apps.integrations.google_calendar import is_calendar_sync_enabled
from .forms import ChangeStageForm, TaskCreateForm, TaskUpdateForm
from .queries import KANBAN, TaskFilters, list_tasks
from .serializers import (
    serialize_milestone,
    serialize_page,
    serialize_project,
    serialize_stage,
    serialize_task,
    serialize_task_detail,
    serialize_user,
)
from .services import TaskService, ensure_in_workspace
from .visibility import accessible_projects, visible_tasks

logger = logging.getLogger(__name__)

# Flags de interface: chave enviada ao cliente -> permissão
INDEX_PERMISSIONS = {
    'create': 'task_create',
    'update': 'task_update',
    'delete': 'task_delete',
    'duplicate': 'task_duplicate',
    'change_status': 'task_change_status',
    'assign_users': 'task_assign_users',
    'manage_stages': 'task_manage_stages',
    'add_comments': 'task_add_comments',
    'add_attachments': 'task_add_attachments',
    'manage_checklists': 'task_manage_checklists',
}

SHOW_PERMISSIONS = {
    key: permission for key, permission in INDEX_PERMISSIONS.items()
    if key not in ('create', 'manage_stages')
}

CALENDAR_VIEWS = ('local', 'google')


def _task_service(request):
    return TaskService(
        actor=request.user,
        workspace=request.workspace,
        is_demo=getattr(settings, 'TASKFLOW_IS_DEMO', False),
    )


def _get_task(task_id):
    """Tarefa ativa (não removida) ou 404"""
    return get_object_or_404(
        Task.objects.select_related('project', 'project__workspace', 'task_stage'),
        pk=task_id
    )


@login_required
@requires_workspace
@require_http_methods(["GET", "POST"])
def task_collection(request):
    """GET lista as tarefas, POST cria uma nova"""
    if request.method == 'POST':
        return task_store(request)
    return task_index(request)


@requires_permission('task_view_any')
def task_index(request):
    """
    Listagem de tarefas (kanban ou lista paginada)

    A mesma regra de acesso das tarefas vale para o dropdown de projetos.
    """
    user = request.user
    workspace = request.workspace
    role = request.workspace_role
    guard = get_guard(request)

    filters = TaskFilters.from_querydict(request.GET)
    result = list_tasks(user, workspace, role, filters)

    if filters.view == KANBAN:
        tasks = [serialize_task(task) for task in result]
    else:
        tasks = serialize_page(result, serialize_task)

    projects = accessible_projects(user, workspace, role).prefetch_related(
        'milestones', 'project_members__user'
    )
    stages = TaskStage.objects.for_workspace(workspace.id).ordered()

    return render_inertia(request, 'tasks/Index', {
        'tasks': tasks,
        'projects': [serialize_project(project, with_relations=True) for project in projects],
        'stages': [serialize_stage(stage) for stage in stages],
        'members': [serialize_user(member) for member in workspace.active_members()],
        'filters': filters.as_dict(),
        'project_name': request.GET.get('project_name'),
        'userWorkspaceRole': role,
        'permissions': guard.flags(INDEX_PERMISSIONS),
        'googleCalendarEnabled': is_calendar_sync_enabled(workspace),
    })


@requires_permission('task_create')
def task_store(request):
    form = TaskCreateForm(request_data(request), workspace=request.workspace)
    if not form.is_valid():
        return validation_failed(request, form)

    try:
        _task_service(request).create(form.task_fields())
    except ValidationError as e:
        form.add_error(None, e)
        return validation_failed(request, form)

    messages.success(request, "Tarefa criada com sucesso!")
    return redirect_back(request)


@login_required
@requires_workspace
@require_GET
@requires_permission('task_view')
def task_show(request, task_id):
    """Detalhe da tarefa em JSON (modal do front end)"""
    task = _get_task(task_id)
    ensure_in_workspace(task, request.workspace)

    task = Task.objects.select_related(
        'project', 'task_stage', 'assigned_to', 'created_by', 'milestone'
    ).prefetch_related(
        'comments__user',
        'checklists__assigned_to',
        'checklists__created_by',
        'attachments',
    ).get(pk=task.pk)

    workspace = request.workspace

    # Membros do projeto (sem clientes); sem nenhum, todos do workspace
    project_members = [
        pm.user for pm in task.project.project_members.select_related('user')
        if pm.user.type != 'client'
    ]
    members = project_members or list(workspace.active_members())

    return JsonResponse({
        'task': serialize_task_detail(task, request.user),
        'members': [serialize_user(member) for member in members],
        'stages': [serialize_stage(stage) for stage in TaskStage.objects.for_workspace(workspace.id).ordered()],
        'milestones': [serialize_milestone(m) for m in task.project.milestones.all()],
        'permissions': get_guard(request).flags(SHOW_PERMISSIONS),
    })


@login_required
@requires_workspace
@require_http_methods(["PUT", "PATCH", "POST"])
@requires_permission('task_update')
def task_update(request, task_id):
    task = _get_task(task_id)
    ensure_in_workspace(task, request.workspace)

    form = TaskUpdateForm(request_data(request), workspace=request.workspace, project=task.project)
    if not form.is_valid():
        return validation_failed(request, form)

    _task_service(request).update(task, form.task_fields())

    messages.success(request, "Tarefa atualizada com sucesso!")
    return redirect_back(request)


@login_required
@requires_workspace
@require_http_methods(["DELETE", "POST"])
@requires_permission('task_delete')
def task_destroy(request, task_id):
    task = _get_task(task_id)
    _task_service(request).destroy(task)

    messages.success(request, "Tarefa removida com sucesso!")
    return redirect_back(request)


@login_required
@requires_workspace
@require_POST
@requires_permission('task_duplicate')
def task_duplicate(request, task_id):
    task = _get_task(task_id)
    _task_service(request).duplicate(task)

    messages.success(request, "Tarefa duplicada com sucesso!")
    return redirect_back(request)


@login_required
@requires_workspace
@require_http_methods(["PUT", "PATCH", "POST"])
@requires_permission('task_change_status')
def task_change_stage(request, task_id):
    """Move a tarefa para outra coluna do kanban"""
    task = _get_task(task_id)
    ensure_in_workspace(task, request.workspace)

    form = ChangeStageForm(request_data(request), workspace=request.workspace)
    if not form.is_valid():
        return validation_failed(request, form)

    _task_service(request).change_stage(task, form.cleaned_data['task_stage_id'])

    messages.success(request, "Estágio da tarefa atualizado com sucesso!")
    return redirect_back(request)


@login_required
@requires_workspace
@require_GET
@requires_permission('task_view_any')
def task_calendar(request):
    """
    Tarefas para o calendário

    calendar_view=google mantém só as tarefas marcadas para sincronizar;
    qualquer outro valor cai em 'local'.
    """
    calendar_view = request.GET.get('calendar_view', 'local')
    if calendar_view not in CALENDAR_VIEWS:
        calendar_view = 'local'

    tasks = visible_tasks(
        request.user, request.workspace, request.workspace_role
    ).select_related('project', 'task_stage', 'assigned_to', 'created_by', 'milestone')

    if calendar_view == 'google':
        tasks = tasks.filter(is_googlecalendar_sync=True)

    return JsonResponse({
        'tasks': [serialize_task(task) for task in tasks],
        'calendar_view': calendar_view,
    })
