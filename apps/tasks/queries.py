# apps/tasks/queries.py

from dataclasses import dataclass, asdict
from typing import Optional

from django.conf import settings
from django.core.paginator import Paginator

from .visibility import visible_tasks

KANBAN = 'kanban'
LIST = 'list'


def _page_sizes():
    return tuple(getattr(settings, 'TASKFLOW_PAGE_SIZES', (20, 50, 100)))


def _default_page_size():
    return getattr(settings, 'TASKFLOW_DEFAULT_PAGE_SIZE', 20)


def _int_or_none(value):
    try:
        return int(value) if value not in (None, '') else None
    except (TypeError, ValueError):
        return None


def normalize_per_page(value):
    """Tamanho de página restrito a TASKFLOW_PAGE_SIZES; fora disso, o padrão"""
    per_page = _int_or_none(value)
    return per_page if per_page in _page_sizes() else _default_page_size()


@dataclass
class TaskFilters:
    """Filtros aceitos pela listagem de tarefas"""

    project_id: Optional[int] = None
    stage_id: Optional[int] = None
    priority: Optional[str] = None
    assigned_to: Optional[int] = None
    search: Optional[str] = None
    view: str = KANBAN
    per_page: int = 20
    page: int = 1

    @classmethod
    def from_querydict(cls, params):
        return cls(
            project_id=_int_or_none(params.get('project_id')),
            stage_id=_int_or_none(params.get('stage_id')),
            priority=params.get('priority') or None,
            assigned_to=_int_or_none(params.get('assigned_to')),
            search=(params.get('search') or '').strip() or None,
            view=params.get('view') or KANBAN,
            per_page=normalize_per_page(params.get('per_page')),
            page=_int_or_none(params.get('page')) or 1,
        )

    def as_dict(self):
        data = asdict(self)
        data.pop('page')
        return data


def build_task_query(user, workspace, role, filters):
    """Compõe a consulta de tarefas com controle de acesso e filtros"""
    tasks = visible_tasks(user, workspace, role).select_related(
        'project', 'task_stage', 'assigned_to', 'created_by', 'milestone'
    )

    if filters.project_id:
        tasks = tasks.for_project(filters.project_id)

    if filters.stage_id:
        tasks = tasks.by_stage(filters.stage_id)

    if filters.priority:
        tasks = tasks.by_priority(filters.priority)

    if filters.assigned_to:
        tasks = tasks.filter(assigned_to_id=filters.assigned_to)

    if filters.search:
        tasks = tasks.filter(title__icontains=filters.search)

    return tasks


def list_tasks(user, workspace, role, filters):
    """
    Executa a listagem no modo pedido

    kanban: lista completa, sem paginação
    demais: Page do Paginator, mais recentes primeiro
    """
    tasks = build_task_query(user, workspace, role, filters)

    if filters.view == KANBAN:
        return list(tasks)

    paginator = Paginator(tasks.order_by('-created_at', '-id'), filters.per_page)
    return paginator.get_page(filters.page)
