"""Project CRUD that keeps at most one default project per owner.

Promoting a project demotes the owner's other defaults in the same
transaction, under the owner's in-process lock.
"""
import logging

from errors import NotFoundOrUnauthorized
from models import Project, db, now_local
from services.store import commit_session, owner_lock
from services.validation_service import require_text

logger = logging.getLogger(__name__)


def _demote_defaults(owner_id, exclude_id=None):
    demoted = 0
    now = now_local()
    for project in Project.query.filter_by(owner_id=owner_id).all():
        if project.id == exclude_id or not project.is_default:
            continue
        project.is_default = False
        project.updated_at = now
        demoted += 1
    if demoted:
        logger.info("Demoted %s default project(s) for owner=%s", demoted, owner_id)
    return demoted


def create_project(owner_id, name, is_default=False):
    """Create a project and return its id."""
    name = require_text(name, "Project name")
    is_default = bool(is_default)

    with owner_lock(owner_id):
        if is_default:
            _demote_defaults(owner_id)

        now = now_local()
        project = Project(
            owner_id=owner_id,
            name=name,
            is_default=is_default,
            created_at=now,
            updated_at=now,
        )
        db.session.add(project)
        commit_session("create project")
        return project.id


def get_project(owner_id, project_id):
    project = db.session.get(Project, project_id) if project_id is not None else None
    if not project or project.owner_id != owner_id:
        raise NotFoundOrUnauthorized("Project not found or unauthorized")
    return project


def update_project(owner_id, project_id, name=None, is_default=None):
    with owner_lock(owner_id):
        project = get_project(owner_id, project_id)

        if name is not None:
            name = require_text(name, "Project name")

        # Unsetting the flag can never create a second default, so only promotion scans
        if is_default is True and not project.is_default:
            _demote_defaults(owner_id, exclude_id=project.id)

        if name is not None:
            project.name = name
        if is_default is not None:
            project.is_default = bool(is_default)
        project.updated_at = now_local()
        commit_session("update project")
        return project


def list_projects(owner_id):
    return (
        Project.query.filter_by(owner_id=owner_id)
        .order_by(Project.is_default.desc(), Project.created_at.asc(), Project.id.asc())
        .all()
    )


def get_default_project(owner_id):
    return Project.query.filter_by(owner_id=owner_id, is_default=True).first()
