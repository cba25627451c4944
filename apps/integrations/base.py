# apps/integrations/base.py

import logging
from functools import wraps

from django.conf import settings

logger = logging.getLogger(__name__)


class IntegrationError(Exception):
    """Falha ao falar com um serviço externo"""


class IntegrationNotConfigured(IntegrationError):
    """Credenciais ou URL do serviço ausentes"""


def http_timeout():
    return getattr(settings, 'TASKFLOW_HTTP_TIMEOUT', 10.0)


def best_effort(action):
    """
    Decorador para chamadas externas que não podem derrubar o request

    A exceção é logada com o contexto e a função retorna None.
    """

    def decorator(func):
        @wraps(func)
        def wrapped(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except Exception:
                logger.exception("❌ Falha em %s", action)
                return None

        return wrapped

    return decorator
