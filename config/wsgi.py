# config/wsgi.py

import os

from django.core.wsgi import get_wsgi_application

# Produção serve HTTP via WSGI; WebSockets ficam no ASGI (config.asgi)
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings.production')

application = get_wsgi_application()
