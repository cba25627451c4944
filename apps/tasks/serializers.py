# apps/tasks/serializers.py

"""
Conversão de models em dicionários para as respostas JSON / Inertia
"""


def serialize_user(user):
    if user is None:
        return None
    return {
        'id': user.id,
        'name': user.name,
        'email': user.email,
        'type': user.type,
        'avatar': user.avatar.url if user.avatar else None,
    }


def serialize_stage(stage):
    if stage is None:
        return None
    return {
        'id': stage.id,
        'name': stage.name,
        'color': stage.color,
        'order': stage.order,
    }


def serialize_milestone(milestone):
    if milestone is None:
        return None
    return {
        'id': milestone.id,
        'title': milestone.title,
        'due_date': milestone.due_date,
        'status': milestone.status,
    }


def serialize_project(project, with_relations=False):
    data = {
        'id': project.id,
        'title': project.title,
        'description': project.description,
        'workspace_id': project.workspace_id,
        'created_by': project.created_by_id,
    }
    if with_relations:
        data['milestones'] = [serialize_milestone(m) for m in project.milestones.all()]
        data['members'] = [
            {'id': pm.id, 'role': pm.role, 'user': serialize_user(pm.user)}
            for pm in project.project_members.select_related('user')
        ]
    return data


def serialize_task(task):
    """Representação da tarefa usada na listagem e no calendário"""
    return {
        'id': task.id,
        'title': task.title,
        'description': task.description,
        'priority': task.priority,
        'progress': task.progress,
        'start_date': task.start_date,
        'end_date': task.end_date,
        'project_id': task.project_id,
        'task_stage_id': task.task_stage_id,
        'milestone_id': task.milestone_id,
        'assigned_to': task.assigned_to_id,
        'created_by': task.created_by_id,
        'is_googlecalendar_sync': task.is_googlecalendar_sync,
        'google_calendar_event_id': task.google_calendar_event_id,
        'created_at': task.created_at,
        'updated_at': task.updated_at,
        'project': serialize_project(task.project),
        'task_stage': serialize_stage(task.task_stage),
        'assigned_to_user': serialize_user(task.assigned_to),
        'creator': serialize_user(task.created_by),
        'milestone': serialize_milestone(task.milestone),
    }


def serialize_task_detail(task, viewer):
    """Tarefa com comentários, checklists e anexos, com flags por item"""
    data = serialize_task(task)
    data['project'] = serialize_project(task.project, with_relations=True)

    data['comments'] = [
        {
            'id': comment.id,
            'comment': comment.comment,
            'user': serialize_user(comment.user),
            'created_at': comment.created_at,
            'can_update': comment.can_be_updated_by(viewer),
            'can_delete': comment.can_be_deleted_by(viewer),
        }
        for comment in task.comments.all()
    ]

    data['checklists'] = [
        {
            'id': item.id,
            'title': item.title,
            'is_completed': item.is_completed,
            'due_date': item.due_date,
            'assigned_to': serialize_user(item.assigned_to),
            'creator': serialize_user(item.created_by),
            'can_update': item.can_be_updated_by(viewer),
            'can_delete': item.can_be_deleted_by(viewer),
        }
        for item in task.checklists.all()
    ]

    data['attachments'] = [
        {
            'id': attachment.id,
            'name': attachment.name or attachment.file.name,
            'url': attachment.file.url if attachment.file else None,
            'uploaded_by': attachment.uploaded_by_id,
            'created_at': attachment.created_at,
        }
        for attachment in task.attachments.all()
    ]

    return data


def serialize_page(page, serializer):
    """Página do Paginator no formato esperado pelo front end"""
    paginator = page.paginator
    return {
        'data': [serializer(obj) for obj in page.object_list],
        'current_page': page.number,
        'last_page': paginator.num_pages,
        'per_page': paginator.per_page,
        'total': paginator.count,
        'from': page.start_index() if paginator.count else None,
        'to': page.end_index() if paginator.count else None,
    }
