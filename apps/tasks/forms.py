# apps/tasks/forms.py

from django import forms
from django.core.exceptions import ValidationError

from apps.core.models import Project, ProjectMilestone, Task, TaskStage, User


class FlagInput(forms.CheckboxInput):
    """Checkbox que também entende "0" e "1" vindos de JSON ou formulário"""

    def value_from_datadict(self, data, files, name):
        value = data.get(name)
        if isinstance(value, str):
            return value.strip().lower() in ('1', 'true', 'on', 'yes')
        return bool(value)


class TaskUpdateForm(forms.Form):
    """
    Validação dos campos editáveis de uma tarefa

    Responsável e milestone ficam restritos ao workspace atual; com o
    projeto conhecido, a milestone também precisa ser dele.
    """

    title = forms.CharField(max_length=255)
    description = forms.CharField(required=False)
    priority = forms.ChoiceField(choices=Task.PRIORITY_CHOICES)
    start_date = forms.DateField(required=False)
    end_date = forms.DateField(required=False)
    assigned_to = forms.ModelChoiceField(queryset=User.objects.none(), required=False)
    milestone_id = forms.ModelChoiceField(queryset=ProjectMilestone.objects.none(), required=False)
    is_googlecalendar_sync = forms.BooleanField(required=False, widget=FlagInput)

    def __init__(self, *args, workspace=None, project=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.project = project
        if workspace is not None:
            self.fields['assigned_to'].queryset = workspace.active_members()
            self.fields['milestone_id'].queryset = ProjectMilestone.objects.filter(
                project__in=Project.objects.for_workspace(workspace.id)
            )

    def target_project(self):
        return self.project

    def clean(self):
        """Valida o intervalo de datas e a milestone do projeto"""
        cleaned_data = super().clean()
        start_date = cleaned_data.get('start_date')
        end_date = cleaned_data.get('end_date')

        if start_date and end_date and end_date <= start_date:
            self.add_error('end_date', ValidationError("A data final deve ser posterior à data inicial."))

        milestone = cleaned_data.get('milestone_id')
        project = self.target_project()
        if milestone is not None and project is not None and milestone.project_id != project.id:
            self.add_error('milestone_id', ValidationError("A milestone não pertence ao projeto da tarefa."))

        return cleaned_data

    def task_fields(self):
        """Converte os dados validados nos campos do model"""
        data = self.cleaned_data
        return {
            'title': data['title'],
            'description': data.get('description') or None,
            'priority': data['priority'],
            'start_date': data.get('start_date'),
            'end_date': data.get('end_date'),
            'assigned_to': data.get('assigned_to'),
            'milestone': data.get('milestone_id'),
            'is_googlecalendar_sync': bool(data.get('is_googlecalendar_sync')),
        }


class TaskCreateForm(TaskUpdateForm):
    """Criação de tarefa - exige o projeto"""

    # Sem escopo aqui: projeto de outro workspace vira 403 no TaskService
    project_id = forms.ModelChoiceField(queryset=Project.objects.all())

    def target_project(self):
        return self.cleaned_data.get('project_id')

    def task_fields(self):
        fields = super().task_fields()
        fields['project'] = self.cleaned_data['project_id']
        return fields


class ChangeStageForm(forms.Form):
    """Mudança de estágio - o estágio deve existir no workspace"""

    task_stage_id = forms.ModelChoiceField(queryset=TaskStage.objects.none())

    def __init__(self, *args, workspace=None, **kwargs):
        super().__init__(*args, **kwargs)
        if workspace is not None:
            self.fields['task_stage_id'].queryset = TaskStage.objects.for_workspace(workspace.id)
