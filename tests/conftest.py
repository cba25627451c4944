"""Fixtures compartilhadas dos testes do Taskflow"""

import pytest
from django.core.cache import cache

from apps.core.models import (
    Project, ProjectClient, ProjectMember, Task, TaskStage, User, Workspace, WorkspaceMember
)
from apps.tasks.signals import task_assigned, task_created, task_stage_updated


@pytest.fixture(autouse=True)
def _clear_cache():
    """Tokens do Google e sessões ficam no cache local entre testes"""
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def make_user(db):
    def _make(username, workspace=None, role='member', **extra):
        user = User.objects.create_user(
            username=username,
            email=f'{username}@example.com',
            password='secret',
            **extra
        )
        if workspace is not None:
            WorkspaceMember.objects.create(workspace=workspace, user=user, role=role)
            user.current_workspace = workspace
            user.save(update_fields=['current_workspace'])
        return user

    return _make


@pytest.fixture
def make_workspace(make_user):
    def _make(owner, name='Acme'):
        workspace = Workspace.objects.create(name=name, owner=owner)
        owner.current_workspace = workspace
        owner.save(update_fields=['current_workspace'])
        return workspace

    return _make


@pytest.fixture
def owner(make_user):
    return make_user('owner', first_name='Olivia', last_name='Owner')


@pytest.fixture
def workspace(make_workspace, owner):
    return make_workspace(owner)


@pytest.fixture
def manager(make_user, workspace):
    return make_user('manager', workspace, role='manager')


@pytest.fixture
def member(make_user, workspace):
    return make_user('member', workspace, role='member')


@pytest.fixture
def client_user(make_user, workspace):
    return make_user('client', workspace, role='client', type='client')


@pytest.fixture
def stages(workspace):
    return list(TaskStage.objects.for_workspace(workspace.id).ordered())


@pytest.fixture
def project(workspace, owner, manager, member, client_user):
    """Projeto com manager e member na equipe e um cliente"""
    project = Project.objects.create(title='Website', workspace=workspace, created_by=owner)
    ProjectMember.objects.create(project=project, user=manager, role='manager')
    ProjectMember.objects.create(project=project, user=member, role='member')
    ProjectClient.objects.create(project=project, user=client_user)
    return project


@pytest.fixture
def private_project(workspace, owner):
    """Projeto do mesmo workspace sem ninguém além do dono"""
    return Project.objects.create(title='Financeiro', workspace=workspace, created_by=owner)


@pytest.fixture
def make_task(db):
    def _make(project, **kwargs):
        kwargs.setdefault('title', 'Tarefa')
        kwargs.setdefault('created_by', project.created_by)
        kwargs.setdefault(
            'task_stage',
            TaskStage.objects.for_workspace(project.workspace_id).ordered().first()
        )
        return Task.objects.create(project=project, **kwargs)

    return _make


@pytest.fixture
def foreign_task(make_user, make_workspace, make_task):
    """Tarefa de outro workspace (outro tenant)"""
    other_owner = make_user('intruder')
    other_workspace = make_workspace(other_owner, name='Globex')
    other_project = Project.objects.create(
        title='Segredo', workspace=other_workspace, created_by=other_owner
    )
    return make_task(other_project, title='Tarefa de outro tenant')


@pytest.fixture
def login(client):
    def _login(user):
        client.force_login(user)
        return client

    return _login


@pytest.fixture
def captured_signals():
    """Registra os eventos de domínio disparados durante o teste"""
    events = []

    def _handler(signal_name):
        def receiver(sender, **kwargs):
            events.append((signal_name, kwargs))

        return receiver

    receivers = [
        (task_created, _handler('task_created')),
        (task_assigned, _handler('task_assigned')),
        (task_stage_updated, _handler('task_stage_updated')),
    ]
    for signal, receiver in receivers:
        signal.connect(receiver, weak=False)

    yield events

    for signal, receiver in receivers:
        signal.disconnect(receiver)


class FakeCalendar:
    """Calendário em memória no lugar do GoogleCalendarService"""

    def __init__(self, fail_on=()):
        self.fail_on = set(fail_on)
        self.created = []
        self.updated = []
        self.deleted = []

    def create_event(self, task, workspace):
        if 'create' in self.fail_on:
            raise RuntimeError('calendar down')
        self.created.append(task.id)
        return f'evt-{task.id}'

    def update_event(self, event_id, task, workspace):
        if 'update' in self.fail_on:
            raise RuntimeError('calendar down')
        self.updated.append(event_id)

    def delete_event(self, event_id, workspace):
        if 'delete' in self.fail_on:
            raise RuntimeError('calendar down')
        self.deleted.append(event_id)


@pytest.fixture
def fake_calendar():
    return FakeCalendar()
