# apps/core/__init__.py

"""
Core - Aplicação principal do Taskflow

Contém:
- Models (User, Workspace, Project, Task, Setting, Tax...)
- Middleware de workspace atual (multi-tenancy)
- Guarda de permissões por papel
- Respostas no estilo Inertia
- Configurações de impostos por workspace
"""
