# apps/__init__.py

"""
Taskflow - Aplicações Django

Este pacote contém todas as aplicações do sistema:
- core: Models, workspaces, permissões e configurações (impostos)
- tasks: Kanban de tarefas, consultas com controle de acesso e WebSockets
- integrations: Google Calendar, Slack e receivers dos eventos de tarefa
"""

__version__ = '0.1.0'
