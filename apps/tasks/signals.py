# apps/tasks/signals.py

"""
Eventos de domínio das tarefas

Disparados pelo TaskService com send_robust; os receivers ficam em
apps.integrations.receivers (Slack, email e WebSocket).
"""

from django.dispatch import Signal

# kwargs: task, actor
task_created = Signal()

# kwargs: task, assignee, actor
task_assigned = Signal()

# kwargs: task, old_stage, new_stage, actor
task_stage_updated = Signal()
