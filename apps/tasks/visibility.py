# apps/tasks/visibility.py

"""
Regras de visibilidade de tarefas por papel no workspace

As mesmas regras existem em duas formas:
- predicados puros (project_is_accessible / task_is_visible), testáveis
  sem banco de dados;
- composição de Q objects (accessible_projects / visible_tasks) usada
  nas consultas da listagem.

Regras:
1. o projeto da tarefa pertence ao workspace atual;
2. 'owner' não tem restrição adicional;
3. demais papéis: ator é membro, cliente ou criador do projeto;
4. 'member': além da regra 3, ator é responsável ou criador da tarefa.

Papéis intermediários ('manager', 'client') recebem a regra 3 mas não a 4.
"""

from dataclasses import dataclass, field
from typing import FrozenSet, Optional

from django.db.models import Q

from apps.core.models import Project, Task

OWNER = 'owner'
MEMBER = 'member'


@dataclass(frozen=True)
class ProjectFacts:
    """Fatos de um projeto relevantes para acesso"""

    workspace_id: int
    created_by_id: int
    member_ids: FrozenSet[int] = field(default_factory=frozenset)
    client_ids: FrozenSet[int] = field(default_factory=frozenset)

    @classmethod
    def from_project(cls, project):
        return cls(
            workspace_id=project.workspace_id,
            created_by_id=project.created_by_id,
            member_ids=frozenset(project.project_members.values_list('user_id', flat=True)),
            client_ids=frozenset(project.project_clients.values_list('user_id', flat=True)),
        )


@dataclass(frozen=True)
class TaskFacts:
    project: ProjectFacts
    assigned_to_id: Optional[int]
    created_by_id: int

    @classmethod
    def from_task(cls, task):
        return cls(
            project=ProjectFacts.from_project(task.project),
            assigned_to_id=task.assigned_to_id,
            created_by_id=task.created_by_id,
        )


def project_is_accessible(actor_id, role, workspace_id, project):
    """Regras 1-3 aplicadas a um projeto"""
    if project.workspace_id != workspace_id:
        return False
    if role == OWNER:
        return True
    return (
        actor_id in project.member_ids
        or actor_id in project.client_ids
        or actor_id == project.created_by_id
    )


def task_is_visible(actor_id, role, workspace_id, task):
    """Regras 1-4 aplicadas a uma tarefa"""
    if not project_is_accessible(actor_id, role, workspace_id, task.project):
        return False
    if role == MEMBER:
        return actor_id in (task.assigned_to_id, task.created_by_id)
    return True


def _project_access_q(user):
    return (
        Q(project_members__user=user)
        | Q(project_clients__user=user)
        | Q(created_by=user)
    )


def _scoped_project_ids(user, workspace, role):
    projects = Project.objects.for_workspace(workspace.id)
    if role != OWNER:
        projects = projects.filter(_project_access_q(user))
    return projects.values('id')


def accessible_projects(user, workspace, role):
    """
    Projetos visíveis ao usuário - mesma regra do filtro de tarefas

    A regra é aplicada via subquery para não duplicar linhas quando o
    usuário é membro e cliente do mesmo projeto.
    """
    return Project.objects.filter(id__in=_scoped_project_ids(user, workspace, role))


def visible_tasks(user, workspace, role):
    """QuerySet de tarefas visíveis ao usuário no workspace"""
    tasks = Task.objects.filter(
        project_id__in=_scoped_project_ids(user, workspace, role)
    )

    # Membros só veem o que lhes foi atribuído ou o que criaram
    if role == MEMBER:
        tasks = tasks.filter(Q(assigned_to=user) | Q(created_by=user))

    return tasks
