# apps/tasks/__init__.py

"""
Tasks - Kanban de tarefas do Taskflow

Funcionalidades:
- Listagem kanban/lista com controle de acesso por papel
- Criação, edição, duplicação e remoção de tarefas
- Mudança de estágio com notificação
- WebSockets para atualizações em tempo real
"""
