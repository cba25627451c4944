# apps/integrations/__init__.py

"""
Integrations - Adaptadores externos do Taskflow

Contém:
- Google Calendar (sincronização de tarefas)
- Slack (notificações via incoming webhook)
- Receivers dos sinais de tarefa (Slack, email, WebSocket)

Toda chamada externa é best-effort: falhas são logadas e nunca
interrompem a operação principal.
"""
