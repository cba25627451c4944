"""Mutações de tarefa pelos endpoints HTTP e pelo TaskService"""

import json
import logging
from datetime import date

import pytest
from django.core import mail
from django.core.exceptions import PermissionDenied
from django.urls import reverse

from apps.core.models import (
    ProjectMilestone, Task, TaskChecklist, TaskStage, WorkspaceMember, set_setting
)
from apps.integrations.google_calendar import SYNC_SETTING
from apps.tasks.services import TaskService

INERTIA = {'HTTP_X_INERTIA': 'true'}
JSON = {'HTTP_ACCEPT': 'application/json'}

pytestmark = pytest.mark.django_db


def _payload(project, **overrides):
    data = {'project_id': project.id, 'title': 'Nova tarefa', 'priority': 'medium'}
    data.update(overrides)
    return data


def _events(captured, name):
    return [kwargs for signal_name, kwargs in captured if signal_name == name]


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------

class TestCreate:

    def test_defaults_to_first_ordered_stage(self, login, owner, project, stages):
        # Reordenar: 'Done' passa a ser o primeiro estágio
        TaskStage.objects.filter(pk=stages[-1].pk).update(order=-1)

        response = login(owner).post(reverse('tasks:index'), _payload(project))

        assert response.status_code == 302
        task = Task.objects.get(title='Nova tarefa')
        assert task.task_stage_id == stages[-1].id
        assert task.progress == 0
        assert task.created_by == owner

    def test_project_from_other_workspace_is_forbidden(self, login, owner, foreign_task, workspace):
        response = login(owner).post(reverse('tasks:index'), _payload(foreign_task.project))

        assert response.status_code == 403
        assert not Task.objects.filter(title='Nova tarefa').exists()

    def test_end_date_must_be_after_start_date(self, login, owner, project):
        response = login(owner).post(
            reverse('tasks:index'),
            _payload(project, start_date='2024-05-10', end_date='2024-05-10'),
            **JSON
        )

        assert response.status_code == 422
        assert 'end_date' in response.json()['errors']

    @pytest.mark.parametrize('field, value', [
        ('priority', 'urgent'),
        ('title', ''),
        ('assigned_to', '999999'),
        ('milestone_id', '999999'),
    ])
    def test_invalid_fields_are_rejected(self, login, owner, project, field, value):
        response = login(owner).post(reverse('tasks:index'), _payload(project, **{field: value}), **JSON)

        assert response.status_code == 422
        assert field in response.json()['errors']

    def test_inertia_validation_errors_go_to_session(self, login, owner, project):
        client = login(owner)
        response = client.post(reverse('tasks:index'), _payload(project, title=''), **INERTIA)

        assert response.status_code == 302
        props = client.get(reverse('tasks:index'), **INERTIA).json()['props']
        assert 'title' in props['errors']

    def test_workspace_without_stages_is_a_validation_error(self, login, owner, project, workspace):
        TaskStage.objects.filter(workspace=workspace).delete()

        response = login(owner).post(reverse('tasks:index'), _payload(project), **JSON)

        assert response.status_code == 422
        assert '__all__' in response.json()['errors']

    def test_client_cannot_create(self, login, client_user, project):
        response = login(client_user).post(reverse('tasks:index'), _payload(project))
        assert response.status_code == 403

    def test_assignee_is_notified(self, login, owner, member, project, captured_signals):
        login(owner).post(reverse('tasks:index'), _payload(project, assigned_to=member.id))

        assert len(_events(captured_signals, 'task_created')) == 1
        assigned = _events(captured_signals, 'task_assigned')
        assert len(assigned) == 1
        assert assigned[0]['assignee'] == member
        assert [message.to for message in mail.outbox] == [[member.email]]

    def test_demo_deployment_fires_no_events(self, settings, login, owner, member, project, captured_signals):
        settings.TASKFLOW_IS_DEMO = True

        login(owner).post(reverse('tasks:index'), _payload(project, assigned_to=member.id))

        assert Task.objects.filter(title='Nova tarefa').exists()
        assert captured_signals == []
        assert mail.outbox == []

    def test_json_body_is_accepted(self, login, owner, project):
        response = login(owner).post(
            reverse('tasks:index'),
            data=json.dumps(_payload(project, is_googlecalendar_sync=True)),
            content_type='application/json',
        )

        assert response.status_code == 302
        assert Task.objects.get(title='Nova tarefa').is_googlecalendar_sync is True

    @pytest.mark.parametrize('body', ['[1, 2]', '"texto"', '5'])
    def test_json_body_must_be_an_object(self, login, owner, project, body):
        response = login(owner).post(
            reverse('tasks:index'), data=body, content_type='application/json', **JSON
        )

        assert response.status_code == 422
        assert 'title' in response.json()['errors']
        assert not Task.objects.exists()


# ---------------------------------------------------------------------------
# Responsável e milestone restritos ao workspace
# ---------------------------------------------------------------------------

@pytest.fixture
def intruder(foreign_task):
    """Dono do outro workspace"""
    return foreign_task.project.created_by


@pytest.fixture
def foreign_milestone(foreign_task):
    return ProjectMilestone.objects.create(project=foreign_task.project, title='Segredo Q3')


class TestWorkspaceScopedFields:

    def test_create_rejects_assignee_from_other_workspace(self, login, owner, project, intruder):
        response = login(owner).post(
            reverse('tasks:index'), _payload(project, assigned_to=intruder.id), **JSON
        )

        assert response.status_code == 422
        assert 'assigned_to' in response.json()['errors']
        assert not Task.objects.filter(title='Nova tarefa').exists()
        assert mail.outbox == []

    def test_update_rejects_assignee_from_other_workspace(self, login, owner, project, make_task, intruder):
        task = make_task(project)

        response = login(owner).post(
            reverse('tasks:update', args=[task.id]),
            {'title': 'Tarefa', 'priority': 'low', 'assigned_to': intruder.id},
            **JSON
        )

        assert response.status_code == 422
        assert 'assigned_to' in response.json()['errors']
        task.refresh_from_db()
        assert task.assigned_to_id is None
        assert mail.outbox == []

    def test_inactive_member_cannot_be_assigned(self, login, owner, member, project, workspace):
        WorkspaceMember.objects.filter(workspace=workspace, user=member).update(status='inactive')

        response = login(owner).post(
            reverse('tasks:index'), _payload(project, assigned_to=member.id), **JSON
        )

        assert response.status_code == 422
        assert 'assigned_to' in response.json()['errors']

    def test_update_rejects_milestone_from_other_workspace(self, login, owner, project, make_task,
                                                          foreign_milestone):
        task = make_task(project)

        response = login(owner).post(
            reverse('tasks:update', args=[task.id]),
            {'title': 'Tarefa', 'priority': 'low', 'milestone_id': foreign_milestone.id},
            **JSON
        )

        assert response.status_code == 422
        assert 'milestone_id' in response.json()['errors']
        task.refresh_from_db()
        assert task.milestone_id is None

    def test_create_rejects_milestone_of_another_project(self, login, owner, project, private_project):
        other = ProjectMilestone.objects.create(project=private_project, title='Fechamento')

        response = login(owner).post(
            reverse('tasks:index'), _payload(project, milestone_id=other.id), **JSON
        )

        assert response.status_code == 422
        assert 'milestone_id' in response.json()['errors']

    def test_update_rejects_milestone_of_another_project(self, login, owner, project, private_project,
                                                         make_task):
        other = ProjectMilestone.objects.create(project=private_project, title='Fechamento')
        task = make_task(project)

        response = login(owner).post(
            reverse('tasks:update', args=[task.id]),
            {'title': 'Tarefa', 'priority': 'low', 'milestone_id': other.id},
            **JSON
        )

        assert response.status_code == 422
        assert 'milestone_id' in response.json()['errors']

    def test_milestone_and_member_of_the_task_project_are_accepted(self, login, owner, member, project,
                                                                   make_task):
        beta = ProjectMilestone.objects.create(project=project, title='Beta')
        task = make_task(project)

        response = login(owner).post(
            reverse('tasks:update', args=[task.id]),
            {'title': 'Tarefa', 'priority': 'low', 'milestone_id': beta.id, 'assigned_to': member.id}
        )

        assert response.status_code == 302
        task.refresh_from_db()
        assert task.milestone == beta
        assert task.assigned_to == member


# ---------------------------------------------------------------------------
# Update
# ---------------------------------------------------------------------------

class TestUpdate:

    def test_put_with_json_body(self, login, owner, project, make_task):
        task = make_task(project, title='Antiga')

        response = login(owner).put(
            reverse('tasks:update', args=[task.id]),
            data=json.dumps({'title': 'Renomeada', 'priority': 'high', 'is_googlecalendar_sync': '0'}),
            content_type='application/json',
        )

        assert response.status_code == 303
        task.refresh_from_db()
        assert task.title == 'Renomeada'
        assert task.priority == 'high'

    def test_foreign_task_is_forbidden(self, login, owner, foreign_task):
        response = login(owner).post(
            reverse('tasks:update', args=[foreign_task.id]),
            {'title': 'Hack', 'priority': 'low'}
        )
        assert response.status_code == 403

    def test_assignment_signal_only_on_change(self, owner, member, manager, workspace, project,
                                              make_task, captured_signals, fake_calendar):
        task = make_task(project, assigned_to=member)
        service = TaskService(owner, workspace, calendar=fake_calendar)
        fields = {'title': task.title, 'priority': 'medium', 'assigned_to': member}

        service.update(task, fields)
        assert _events(captured_signals, 'task_assigned') == []

        service.update(task, {**fields, 'assigned_to': manager})
        assert [e['assignee'] for e in _events(captured_signals, 'task_assigned')] == [manager]

        service.update(task, {**fields, 'assigned_to': None})
        assert len(_events(captured_signals, 'task_assigned')) == 1

    def test_disabling_sync_deletes_remote_event_and_clears_id(self, owner, workspace, project,
                                                              make_task, fake_calendar):
        task = make_task(project, is_googlecalendar_sync=True, google_calendar_event_id='evt-9')

        TaskService(owner, workspace, calendar=fake_calendar).update(
            task, {'is_googlecalendar_sync': False}
        )

        task.refresh_from_db()
        assert fake_calendar.deleted == ['evt-9']
        assert task.google_calendar_event_id is None

    def test_disabling_sync_clears_id_even_if_remote_delete_fails(self, owner, workspace, project,
                                                                   make_task, fake_calendar, caplog):
        fake_calendar.fail_on = {'delete'}
        task = make_task(project, is_googlecalendar_sync=True, google_calendar_event_id='evt-9')

        with caplog.at_level(logging.ERROR, logger='apps.tasks.services'):
            TaskService(owner, workspace, calendar=fake_calendar).update(
                task, {'is_googlecalendar_sync': False}
            )

        task.refresh_from_db()
        assert task.google_calendar_event_id is None
        assert 'evt-9' in caplog.text

    def test_enabled_sync_creates_then_updates_event(self, owner, workspace, project, make_task,
                                                     fake_calendar):
        set_setting(SYNC_SETTING, '1', owner.id, workspace.id)
        task = make_task(project)
        service = TaskService(owner, workspace, calendar=fake_calendar)

        service.update(task, {'is_googlecalendar_sync': True})
        task.refresh_from_db()
        assert task.google_calendar_event_id == f'evt-{task.id}'

        service.update(task, {'title': 'Outro título'})
        assert fake_calendar.updated == [f'evt-{task.id}']

    def test_sync_is_skipped_when_owner_disabled_it(self, owner, workspace, project, make_task,
                                                    fake_calendar):
        task = make_task(project)

        TaskService(owner, workspace, calendar=fake_calendar).update(task, {'is_googlecalendar_sync': True})

        assert fake_calendar.created == []
        task.refresh_from_db()
        assert task.google_calendar_event_id is None

    def test_calendar_failure_does_not_block_update(self, owner, workspace, project, make_task,
                                                    fake_calendar):
        set_setting(SYNC_SETTING, '1', owner.id, workspace.id)
        fake_calendar.fail_on = {'create'}
        task = make_task(project)

        TaskService(owner, workspace, calendar=fake_calendar).update(
            task, {'title': 'Salva mesmo assim', 'is_googlecalendar_sync': True}
        )

        task.refresh_from_db()
        assert task.title == 'Salva mesmo assim'
        assert task.google_calendar_event_id is None


# ---------------------------------------------------------------------------
# Destroy / duplicate / change stage
# ---------------------------------------------------------------------------

class TestDestroy:

    def test_soft_deletes(self, login, owner, project, make_task):
        task = make_task(project)

        response = login(owner).delete(reverse('tasks:destroy', args=[task.id]))

        assert response.status_code == 303
        assert not Task.objects.filter(pk=task.pk).exists()
        assert Task.all_objects.get(pk=task.pk).deleted_at is not None

    def test_deleted_task_is_not_found(self, login, owner, project, make_task):
        task = make_task(project)
        task.soft_delete()

        response = login(owner).get(reverse('tasks:show', args=[task.id]))
        assert response.status_code == 404

    def test_member_cannot_delete(self, login, member, project, make_task):
        task = make_task(project, created_by=member)
        response = login(member).post(reverse('tasks:destroy', args=[task.id]))
        assert response.status_code == 403

    def test_calendar_failure_is_logged_and_task_still_deleted(self, owner, workspace, project,
                                                               make_task, fake_calendar, caplog):
        fake_calendar.fail_on = {'delete'}
        task = make_task(project, google_calendar_event_id='evt-1')

        with caplog.at_level(logging.ERROR, logger='apps.tasks.services'):
            TaskService(owner, workspace, calendar=fake_calendar).destroy(task)

        assert Task.all_objects.get(pk=task.pk).deleted_at is not None
        assert 'task_id=%s' % task.id in caplog.text

    def test_service_checks_workspace(self, owner, workspace, foreign_task, fake_calendar):
        with pytest.raises(PermissionDenied):
            TaskService(owner, workspace, calendar=fake_calendar).destroy(foreign_task)


class TestDuplicate:

    def test_copy_resets_identity_and_progress(self, login, owner, manager, member, project, make_task):
        task = make_task(
            project,
            title='Original',
            description='Descrição',
            priority='high',
            progress=80,
            start_date=date(2024, 1, 1),
            end_date=date(2024, 1, 5),
            assigned_to=member,
            created_by=manager,
            google_calendar_event_id='evt-1',
        )
        TaskChecklist.objects.create(task=task, title='Item 1', is_completed=True, created_by=manager)
        TaskChecklist.objects.create(task=task, title='Item 2', is_completed=False, created_by=member)

        response = login(owner).post(reverse('tasks:duplicate', args=[task.id]))

        assert response.status_code == 302
        copy = Task.objects.exclude(pk=task.pk).get()
        assert copy.title == 'Original (Copy)'
        assert copy.progress == 0
        assert copy.start_date is None and copy.end_date is None
        assert copy.created_by == owner
        assert copy.google_calendar_event_id is None
        # Campos preservados
        assert copy.description == 'Descrição'
        assert copy.priority == 'high'
        assert copy.assigned_to == member
        assert copy.task_stage_id == task.task_stage_id

        clones = list(copy.checklists.all())
        assert [c.title for c in clones] == ['Item 1', 'Item 2']
        assert all(not c.is_completed for c in clones)
        assert all(c.created_by == owner for c in clones)
        # Originais intactos
        assert task.checklists.count() == 2
        assert task.checklists.filter(is_completed=True).count() == 1


class TestChangeStage:

    def test_moves_task_and_reports_stage_names(self, login, owner, project, stages, make_task,
                                                captured_signals):
        task = make_task(project)

        response = login(owner).post(
            reverse('tasks:change_stage', args=[task.id]), {'task_stage_id': stages[2].id}
        )

        assert response.status_code == 302
        task.refresh_from_db()
        assert task.task_stage_id == stages[2].id
        event = _events(captured_signals, 'task_stage_updated')[0]
        assert (event['old_stage'], event['new_stage']) == ('To Do', 'Review')

    def test_stage_is_required(self, login, owner, project, make_task):
        task = make_task(project)
        response = login(owner).post(reverse('tasks:change_stage', args=[task.id]), {}, **JSON)

        assert response.status_code == 422
        assert 'task_stage_id' in response.json()['errors']

    def test_stage_from_other_workspace_is_rejected(self, login, owner, project, make_task, foreign_task):
        task = make_task(project)
        response = login(owner).post(
            reverse('tasks:change_stage', args=[task.id]),
            {'task_stage_id': foreign_task.task_stage_id},
            **JSON
        )

        assert response.status_code == 422

    def test_demo_suppresses_stage_event(self, settings, login, owner, project, stages, make_task,
                                         captured_signals):
        settings.TASKFLOW_IS_DEMO = True
        task = make_task(project)

        login(owner).post(reverse('tasks:change_stage', args=[task.id]), {'task_stage_id': stages[1].id})

        task.refresh_from_db()
        assert task.task_stage_id == stages[1].id
        assert captured_signals == []

    def test_client_cannot_change_stage(self, login, client_user, project, stages, make_task):
        task = make_task(project)
        response = login(client_user).post(
            reverse('tasks:change_stage', args=[task.id]), {'task_stage_id': stages[1].id}
        )
        assert response.status_code == 403


# ---------------------------------------------------------------------------
# Show / calendar
# ---------------------------------------------------------------------------

class TestShow:

    def test_detail_payload(self, login, owner, member, manager, client_user, project, make_task):
        task = make_task(project, assigned_to=member)
        TaskChecklist.objects.create(task=task, title='Item', created_by=member)

        data = login(member).get(reverse('tasks:show', args=[task.id])).json()

        assert data['task']['id'] == task.id
        assert data['task']['project']['title'] == 'Website'
        assert data['task']['checklists'][0]['can_update'] is True
        assert data['task']['checklists'][0]['can_delete'] is True
        # Clientes ficam fora da lista de responsáveis possíveis
        assert {m['id'] for m in data['members']} == {manager.id, member.id}
        assert len(data['stages']) == 4
        assert data['permissions']['delete'] is False
        assert data['permissions']['update'] is True

    def test_falls_back_to_workspace_members(self, login, owner, private_project, make_task, workspace):
        task = make_task(private_project)

        data = login(owner).get(reverse('tasks:show', args=[task.id])).json()

        assert {m['id'] for m in data['members']} == {u.id for u in workspace.active_members()}

    def test_foreign_task_is_forbidden(self, login, owner, foreign_task):
        response = login(owner).get(reverse('tasks:show', args=[foreign_task.id]))
        assert response.status_code == 403


class TestCalendar:

    def test_google_view_keeps_only_synced_tasks(self, login, owner, project, make_task, foreign_task):
        synced = make_task(project, is_googlecalendar_sync=True)
        make_task(project)
        foreign_task.is_googlecalendar_sync = True
        foreign_task.save()

        data = login(owner).get(reverse('tasks:calendar'), {'calendar_view': 'google'}).json()

        assert data['calendar_view'] == 'google'
        assert [t['id'] for t in data['tasks']] == [synced.id]

    def test_unknown_view_falls_back_to_local(self, login, owner, project, make_task):
        make_task(project)
        make_task(project, is_googlecalendar_sync=True)

        data = login(owner).get(reverse('tasks:calendar'), {'calendar_view': 'outlook'}).json()

        assert data['calendar_view'] == 'local'
        assert len(data['tasks']) == 2

    def test_respects_member_visibility(self, login, owner, member, project, make_task):
        mine = make_task(project, assigned_to=member)
        make_task(project, assigned_to=owner)

        data = login(member).get(reverse('tasks:calendar')).json()
        assert [t['id'] for t in data['tasks']] == [mine.id]
