# apps/core/middleware.py


class CurrentWorkspaceMiddleware:
    """
    Middleware que resolve o workspace (tenant) do request

    Disponibiliza request.workspace e request.workspace_role para
    as views e adiciona cabeçalhos de diagnóstico na resposta.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        request.workspace, request.workspace_role = self._resolve(request)

        response = self.get_response(request)

        if request.workspace is not None:
            response['X-Workspace'] = str(request.workspace.id)
            response['X-Workspace-Role'] = request.workspace_role

        return response

    def _resolve(self, request):
        user = getattr(request, 'user', None)
        if user is None or not user.is_authenticated or not user.current_workspace_id:
            return None, None

        workspace = user.current_workspace
        role = workspace.get_member_role(user)

        # Usuário removido do workspace perde o acesso mesmo com ele selecionado
        if role is None:
            return None, None
        return workspace, role
