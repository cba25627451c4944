# apps/core/inertia.py

"""
Respostas no estilo Inertia

A primeira visita recebe o template app.html com o "page object"
embutido; visitas seguintes (cabeçalho X-Inertia) recebem só o JSON.
"""

import json

from django.conf import settings
from django.contrib import messages
from django.core.serializers.json import DjangoJSONEncoder
from django.http import HttpResponseRedirect, JsonResponse, QueryDict
from django.shortcuts import render, resolve_url
from django_htmx.http import HttpResponseClientRefresh

SESSION_ERRORS_KEY = 'inertia_errors'


def is_inertia(request):
    return request.headers.get('X-Inertia') == 'true'


def wants_json(request):
    """Cliente espera JSON (Inertia, fetch/axios) e não uma página"""
    accept = request.headers.get('Accept', '')
    return is_inertia(request) or 'application/json' in accept


def request_data(request):
    """
    Dados do corpo do request independente do método

    Django só preenche request.POST para POST com formulário;
    PUT/PATCH/DELETE e corpos JSON são lidos aqui.
    """
    if request.content_type == 'application/json':
        if not request.body:
            return {}
        try:
            data = json.loads(request.body)
        except ValueError:
            return {}
        # Só objetos JSON viram dados de formulário
        return data if isinstance(data, dict) else {}
    if request.method == 'POST':
        return request.POST
    return QueryDict(request.body, encoding=request.encoding)


def shared_props(request):
    """Props compartilhadas por todas as páginas"""
    user = request.user
    return {
        'auth': {
            'user': {
                'id': user.id,
                'name': user.name,
                'email': user.email,
            } if user.is_authenticated else None,
            'workspace_id': request.workspace.id if getattr(request, 'workspace', None) else None,
        },
        'flash': [
            {'level': message.level_tag, 'message': str(message)}
            for message in messages.get_messages(request)
        ],
        'errors': request.session.pop(SESSION_ERRORS_KEY, {}) if hasattr(request, 'session') else {},
    }


def render_inertia(request, component, props=None):
    page = {
        'component': component,
        'props': {**shared_props(request), **(props or {})},
        'url': request.get_full_path(),
        'version': getattr(settings, 'TASKFLOW_ASSET_VERSION', '1'),
    }

    if is_inertia(request):
        response = JsonResponse(page, encoder=DjangoJSONEncoder)
        response['X-Inertia'] = 'true'
        response['Vary'] = 'X-Inertia'
        return response

    return render(request, 'app.html', {'page': page})


def redirect_back(request, fallback='tasks:index'):
    """
    Volta para a página anterior após uma mutação

    HTMX recebe um refresh; Inertia recebe 303 para PUT/PATCH/DELETE.
    """
    if getattr(request, 'htmx', False):
        return HttpResponseClientRefresh()

    target = request.META.get('HTTP_REFERER') or resolve_url(fallback)
    response = HttpResponseRedirect(target)
    if request.method in ('PUT', 'PATCH', 'DELETE'):
        response.status_code = 303
    return response


def form_errors(form):
    """Primeiro erro de cada campo, no formato {campo: mensagem}"""
    return {field: str(errors[0]) for field, errors in form.errors.items()}


def validation_failed(request, form, fallback='tasks:index'):
    """Erros de validação: 422 para JSON, sessão + redirect para páginas"""
    errors = form_errors(form)
    if wants_json(request) and not is_inertia(request):
        return JsonResponse({'message': 'Os dados informados são inválidos.', 'errors': errors}, status=422)

    request.session[SESSION_ERRORS_KEY] = errors
    return redirect_back(request, fallback)
