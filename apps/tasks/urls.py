# apps/tasks/urls.py

from django.urls import path

from . import views

app_name = 'tasks'

urlpatterns = [
    # Listagem (GET) e criação (POST)
    path('', views.task_collection, name='index'),

    # Calendário
    path('calendar/', views.task_calendar, name='calendar'),

    # Detalhe e mutações
    path('<int:task_id>/', views.task_show, name='show'),
    path('<int:task_id>/update/', views.task_update, name='update'),
    path('<int:task_id>/delete/', views.task_destroy, name='destroy'),
    path('<int:task_id>/duplicate/', views.task_duplicate, name='duplicate'),
    path('<int:task_id>/change-stage/', views.task_change_stage, name='change_stage'),
]
