# apps/tasks/routing.py

from django.urls import re_path

from . import consumers

# Rotas WebSocket da app tasks
websocket_urlpatterns = [
    # Eventos de tarefas do workspace em tempo real
    re_path(r'ws/workspaces/(?P<workspace_id>\d+)/tasks/$', consumers.TaskBoardConsumer.as_asgi()),
]
