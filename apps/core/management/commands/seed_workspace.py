# apps/core/management/commands/seed_workspace.py

from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from apps.core.models import Project, ProjectMember, Task, TaskStage, User, Workspace


class Command(BaseCommand):
    help = 'Cria um workspace com estágios padrão (e opcionalmente um projeto de exemplo)'

    def add_arguments(self, parser):
        parser.add_argument('owner', help='Username do dono (criado se não existir)')
        parser.add_argument('--name', default='Meu Workspace', help='Nome do workspace')
        parser.add_argument('--email', default='', help='Email do dono, se for criado')
        parser.add_argument('--password', help='Senha do dono, se for criado')
        parser.add_argument(
            '--with-sample-project',
            action='store_true',
            help='Cria um projeto com algumas tarefas de exemplo'
        )

    def handle(self, *args, **options):
        self.stdout.write('🌱 Preparando workspace...')

        with transaction.atomic():
            owner = self._get_or_create_owner(options)

            workspace = Workspace.objects.create(name=options['name'], owner=owner)
            owner.current_workspace = workspace
            owner.save(update_fields=['current_workspace', 'updated_at'])

            stages = list(TaskStage.objects.for_workspace(workspace.id).ordered())
            self.stdout.write(f'  ✅ Workspace "{workspace.name}" (id {workspace.id})')
            self.stdout.write(f'  ✅ Estágios: {", ".join(stage.name for stage in stages)}')

            if options['with_sample_project']:
                self._create_sample_project(workspace, owner, stages)

        self.stdout.write(self.style.SUCCESS(f'\n✅ Workspace pronto para {owner.username}!'))

    def _get_or_create_owner(self, options):
        owner = User.objects.filter(username=options['owner']).first()
        if owner is not None:
            self.stdout.write(f'  👤 Usando usuário existente: {owner.username}')
            return owner

        if not options['password']:
            raise CommandError('Informe --password para criar o usuário dono.')

        owner = User.objects.create_user(
            username=options['owner'],
            email=options['email'],
            password=options['password'],
        )
        self.stdout.write(f'  👤 Usuário criado: {owner.username}')
        return owner

    def _create_sample_project(self, workspace, owner, stages):
        if not stages:
            raise CommandError('Workspace sem estágios - verifique TASKFLOW_DEFAULT_STAGES.')

        project = Project.objects.create(
            title='Projeto de exemplo',
            description='Criado pelo seed_workspace',
            workspace=workspace,
            created_by=owner,
        )
        ProjectMember.objects.create(project=project, user=owner, role='manager')

        samples = [
            ('Levantar requisitos', 'high'),
            ('Montar protótipo', 'medium'),
            ('Revisar com o cliente', 'low'),
        ]
        for idx, (title, priority) in enumerate(samples):
            Task.objects.create(
                project=project,
                task_stage=stages[min(idx, len(stages) - 1)],
                title=title,
                priority=priority,
                created_by=owner,
                assigned_to=owner,
            )

        self.stdout.write(f'  ✅ Projeto "{project.title}" com {len(samples)} tarefas')
