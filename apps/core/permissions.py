# apps/core/permissions.py

from functools import wraps

from django.conf import settings
from django.core.exceptions import PermissionDenied

TASK_PERMISSIONS = [
    'task_view_any',
    'task_view',
    'task_create',
    'task_update',
    'task_delete',
    'task_duplicate',
    'task_change_status',
    'task_assign_users',
    'task_manage_stages',
    'task_add_comments',
    'task_add_attachments',
    'task_manage_checklists',
]

ALL_PERMISSIONS = frozenset(TASK_PERMISSIONS + ['tax_manage'])

# Capacidades por papel no workspace (o dono tem todas)
ROLE_PERMISSIONS = {
    'manager': ALL_PERMISSIONS - {'task_manage_stages'},
    'member': frozenset([
        'task_view_any',
        'task_view',
        'task_create',
        'task_update',
        'task_change_status',
        'task_add_comments',
        'task_add_attachments',
        'task_manage_checklists',
    ]),
    'client': frozenset([
        'task_view_any',
        'task_view',
        'task_add_comments',
    ]),
}


def get_role_permissions(role):
    """
    Retorna o conjunto de permissões de um papel

    TASKFLOW_ROLE_PERMISSIONS nas settings substitui o mapa padrão
    papel a papel.
    """
    overrides = getattr(settings, 'TASKFLOW_ROLE_PERMISSIONS', None) or {}
    if role in overrides:
        return frozenset(overrides[role])
    return ROLE_PERMISSIONS.get(role, frozenset())


class PermissionGuard:
    """
    Guarda de permissões do Taskflow

    Mapeia uma permissão nomeada (ex: 'task_update') para permitir/negar
    o ator atual dentro do workspace corrente.
    """

    def __init__(self, user, workspace=None):
        self.user = user
        self.workspace = workspace
        self._role = None
        self._role_loaded = False

    @property
    def role(self):
        if not self._role_loaded:
            self._role = self.workspace.get_member_role(self.user) if self.workspace else None
            self._role_loaded = True
        return self._role

    @property
    def permissions(self):
        if not self.user.is_authenticated:
            return frozenset()
        if self.user.is_superuser or self.role == 'owner':
            return ALL_PERMISSIONS
        return get_role_permissions(self.role)

    def check(self, permission):
        """Versão sem exceção - usada para montar flags de interface"""
        return permission in self.permissions

    def authorize(self, permission):
        """Levanta PermissionDenied (403) se o ator não tiver a permissão"""
        if not self.check(permission):
            raise PermissionDenied("Você não tem permissão para esta ação.")

    def flags(self, mapping):
        """
        Monta o mapa de permissões enviado ao cliente

        mapping: {'update': 'task_update', ...}
        """
        return {key: self.check(permission) for key, permission in mapping.items()}


def get_guard(request):
    """Guard do request atual (cacheado no próprio request)"""
    guard = getattr(request, '_permission_guard', None)
    if guard is None:
        guard = PermissionGuard(request.user, getattr(request, 'workspace', None))
        request._permission_guard = guard
    return guard


# Decoradores para views

def requires_permission(permission):
    """
    Decorador que exige uma permissão nomeada
    Retorna 403 ao invés de redirecionar
    """

    def decorator(view_func):
        @wraps(view_func)
        def wrapped_view(request, *args, **kwargs):
            get_guard(request).authorize(permission)
            return view_func(request, *args, **kwargs)

        return wrapped_view

    return decorator


def requires_workspace(view_func):
    """Decorador que exige um workspace selecionado"""

    @wraps(view_func)
    def wrapped_view(request, *args, **kwargs):
        if getattr(request, 'workspace', None) is None:
            raise PermissionDenied("Nenhum workspace selecionado.")
        return view_func(request, *args, **kwargs)

    return wrapped_view


# Mixins para Class-Based Views

class PermissionRequiredMixin:
    """Mixin que exige `required_permission` antes do dispatch"""

    required_permission = None

    def dispatch(self, request, *args, **kwargs):
        if self.required_permission:
            get_guard(request).authorize(self.required_permission)
        return super().dispatch(request, *args, **kwargs)


class WorkspaceRequiredMixin:
    """Mixin que exige um workspace selecionado"""

    def dispatch(self, request, *args, **kwargs):
        if getattr(request, 'workspace', None) is None:
            raise PermissionDenied("Nenhum workspace selecionado.")
        return super().dispatch(request, *args, **kwargs)
