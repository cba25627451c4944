"""Guarda de permissões: capacidades por papel, overrides e decoradores de view"""

import pytest
from django.contrib.auth.models import AnonymousUser
from django.core.exceptions import PermissionDenied

from apps.core.models import WorkspaceMember
from apps.core.permissions import ALL_PERMISSIONS, PermissionGuard, get_guard, requires_permission

pytestmark = pytest.mark.django_db


class TestPermissionGuard:

    def test_owner_holds_every_permission(self, owner, workspace):
        guard = PermissionGuard(owner, workspace)
        assert guard.role == 'owner'
        assert guard.permissions == ALL_PERMISSIONS

    def test_manager_cannot_manage_stages(self, manager, workspace):
        guard = PermissionGuard(manager, workspace)
        assert guard.check('task_delete')
        assert guard.check('tax_manage')
        assert not guard.check('task_manage_stages')

    def test_member_capabilities(self, member, workspace):
        guard = PermissionGuard(member, workspace)
        assert guard.check('task_create')
        assert guard.check('task_change_status')
        assert not guard.check('task_delete')
        assert not guard.check('task_duplicate')
        assert not guard.check('tax_manage')

    def test_client_is_read_only(self, client_user, workspace):
        guard = PermissionGuard(client_user, workspace)
        assert guard.check('task_view_any')
        assert guard.check('task_add_comments')
        assert not guard.check('task_create')
        assert not guard.check('task_update')

    def test_stranger_has_nothing(self, make_user, workspace):
        stranger = make_user('stranger')
        guard = PermissionGuard(stranger, workspace)
        assert guard.role is None
        assert guard.permissions == frozenset()

    def test_inactive_member_has_no_role(self, member, workspace):
        WorkspaceMember.objects.filter(workspace=workspace, user=member).update(status='inactive')

        guard = PermissionGuard(member, workspace)
        assert guard.role is None
        assert guard.permissions == frozenset()

    def test_superuser_holds_every_permission(self, make_user, workspace):
        admin = make_user('admin', is_superuser=True, is_staff=True)
        assert PermissionGuard(admin, workspace).permissions == ALL_PERMISSIONS

    def test_anonymous_has_nothing(self, workspace):
        assert not PermissionGuard(AnonymousUser(), workspace).check('task_view_any')

    def test_authorize_raises_permission_denied(self, client_user, workspace):
        with pytest.raises(PermissionDenied):
            PermissionGuard(client_user, workspace).authorize('task_delete')

    def test_settings_override_replaces_role_set(self, settings, client_user, workspace):
        settings.TASKFLOW_ROLE_PERMISSIONS = {'client': ['task_view']}
        guard = PermissionGuard(client_user, workspace)
        assert guard.check('task_view')
        assert not guard.check('task_view_any')

    def test_flags_map_keys_to_checks(self, member, workspace):
        flags = PermissionGuard(member, workspace).flags({'update': 'task_update', 'delete': 'task_delete'})
        assert flags == {'update': True, 'delete': False}


class TestViewHelpers:

    def test_guard_is_cached_on_request(self, rf, owner, workspace):
        request = rf.get('/')
        request.user = owner
        request.workspace = workspace
        assert get_guard(request) is get_guard(request)

    def test_requires_permission_decorator(self, rf, client_user, workspace):
        @requires_permission('task_delete')
        def view(request):
            return 'ok'

        request = rf.post('/')
        request.user = client_user
        request.workspace = workspace
        with pytest.raises(PermissionDenied):
            view(request)

    def test_requires_permission_lets_allowed_through(self, rf, owner, workspace):
        @requires_permission('task_delete')
        def view(request):
            return 'ok'

        request = rf.post('/')
        request.user = owner
        request.workspace = workspace
        assert view(request) == 'ok'
