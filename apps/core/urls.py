# apps/core/urls.py

from django.urls import path

from . import views

app_name = 'core'

urlpatterns = [
    # === WORKSPACE ===
    path('workspaces/<int:workspace_id>/switch/', views.switch_workspace, name='switch_workspace'),

    # === CONFIGURAÇÕES: IMPOSTOS ===
    path('settings/taxes/', views.TaxListView.as_view(), name='taxes'),
    path('settings/taxes/<int:tax_id>/update/', views.TaxUpdateView.as_view(), name='tax_update'),
    path('settings/taxes/<int:tax_id>/delete/', views.TaxDeleteView.as_view(), name='tax_delete'),

    # === MONITORAMENTO ===
    path('health/', views.health_check, name='health'),
]
