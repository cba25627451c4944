# apps/core/views.py

import logging

from django.contrib import messages
from django.contrib.auth.decorators import login_required
from django.contrib.auth.mixins import LoginRequiredMixin
from django.core.cache import cache
from django.core.exceptions import PermissionDenied
from django.db import DatabaseError
from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.utils import timezone
from django.views import View
from django.views.decorators.http import require_POST

from apps import __version__
from .forms import TaxForm
from .inertia import redirect_back, render_inertia, request_data, validation_failed
from .models import Tax, User, Workspace
from .permissions import PermissionRequiredMixin, WorkspaceRequiredMixin

logger = logging.getLogger(__name__)


def health_check(request):
    """
    Health check para monitoramento
    """
    try:
        # Verificar conexão com banco
        User.objects.exists()

        # Verificar cache (Redis em produção)
        cache.set('health_check', 'ok', 60)
        cache_status = 'ok' if cache.get('health_check') == 'ok' else 'unavailable'

        return JsonResponse({
            'status': 'healthy',
            'database': 'ok',
            'cache': cache_status,
            'timestamp': timezone.now().isoformat(),
            'version': __version__
        })

    except DatabaseError as e:
        logger.error("❌ Health check falhou: %s", e)
        return JsonResponse({
            'status': 'unhealthy',
            'error': str(e),
            'timestamp': timezone.now().isoformat(),
            'version': __version__
        }, status=500)


@login_required
@require_POST
def switch_workspace(request, workspace_id):
    """Troca o workspace atual do usuário (dono ou membro ativo)"""
    workspace = get_object_or_404(Workspace, pk=workspace_id)

    if workspace.get_member_role(request.user) is None:
        raise PermissionDenied("Você não participa deste workspace.")

    request.user.current_workspace = workspace
    request.user.save(update_fields=['current_workspace', 'updated_at'])

    logger.info("🔀 %s trocou para o workspace %s", request.user.username, workspace.id)
    messages.success(request, f"Workspace alterado para {workspace.name}.")
    return redirect_back(request)


# === IMPOSTOS ===

def serialize_tax(tax):
    return {
        'id': tax.id,
        'name': tax.name,
        'rate': tax.rate,
        'workspace_id': tax.workspace_id,
        'created_at': tax.created_at,
        'updated_at': tax.updated_at,
    }


class TaxViewMixin(LoginRequiredMixin, WorkspaceRequiredMixin, PermissionRequiredMixin):
    """Base das views de impostos - sempre no escopo do workspace atual"""

    required_permission = 'tax_manage'
    fallback_url = 'core:taxes'

    def get_tax(self, tax_id):
        tax = get_object_or_404(Tax, pk=tax_id)
        if tax.workspace_id != self.request.workspace.id:
            raise PermissionDenied("Imposto não encontrado no workspace atual.")
        return tax


class TaxListView(TaxViewMixin, View):
    """GET lista os impostos do workspace, POST cria um novo"""

    def get(self, request):
        taxes = Tax.objects.filter(workspace=request.workspace)
        return render_inertia(request, 'taxes/Index', {
            'taxes': [serialize_tax(tax) for tax in taxes],
        })

    def post(self, request):
        form = TaxForm(request_data(request))
        if not form.is_valid():
            return validation_failed(request, form, self.fallback_url)

        tax = form.save(commit=False)
        tax.workspace = request.workspace
        tax.save()

        logger.info("💰 Imposto %s criado no workspace %s", tax.id, request.workspace.id)
        messages.success(request, "Imposto criado com sucesso.")
        return redirect_back(request, self.fallback_url)


class TaxUpdateView(TaxViewMixin, View):

    http_method_names = ['post', 'put', 'patch']

    def post(self, request, tax_id):
        tax = self.get_tax(tax_id)

        form = TaxForm(request_data(request), instance=tax)
        if not form.is_valid():
            return validation_failed(request, form, self.fallback_url)

        form.save()
        messages.success(request, "Imposto atualizado com sucesso.")
        return redirect_back(request, self.fallback_url)

    put = post
    patch = post


class TaxDeleteView(TaxViewMixin, View):

    http_method_names = ['post', 'delete']

    def post(self, request, tax_id):
        tax = self.get_tax(tax_id)
        tax.delete()

        logger.info("🗑️ Imposto %s removido do workspace %s", tax_id, request.workspace.id)
        messages.success(request, "Imposto removido com sucesso.")
        return redirect_back(request, self.fallback_url)

    delete = post
