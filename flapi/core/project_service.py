"""Project records: CRUD operations backing the /project endpoints."""
from __future__ import annotations
import logging
from typing import Any, List

from flapi.core.db import db
from flapi.core.exceptions import NotFoundError
from flapi.core.models import Project, User
from flapi.core.validators import validate_project_payload

logger = logging.getLogger(__name__)


def _user_exists(user_id: int) -> bool:
    return db.session.get(User, user_id) is not None


def create_project(payload: Any) -> Project:
    """Validate and store a new project.

    Raises:
        ValidationError: On invalid payload or unknown ``user_id``
    """
    data = validate_project_payload(payload, user_exists=_user_exists)
    project = Project(**data)
    db.session.add(project)
    db.session.commit()
    logger.info("Project created (id=%s, user_id=%s)", project.id, project.user_id)
    return project


def get_projects() -> List[Project]:
    return list(db.session.execute(db.select(Project).order_by(Project.id)).scalars())


def get_project_by_id(project_id: int) -> Project:
    """
    Raises:
        NotFoundError: If no project has this id
    """
    project = db.session.get(Project, project_id)
    if project is None:
        raise NotFoundError("Project not found")
    return project


def get_projects_by_user_id(user_id: int) -> List[Project]:
    return list(
        db.session.execute(db.select(Project).filter_by(user_id=user_id).order_by(Project.id)).scalars()
    )


def update_project(project_id: int, payload: Any) -> Project:
    """Apply a partial update (only the provided fields change)."""
    project = get_project_by_id(project_id)
    data = validate_project_payload(payload, user_exists=_user_exists, partial=True)
    for key, value in data.items():
        setattr(project, key, value)
    db.session.commit()
    logger.info("Project updated (id=%s, fields=%s)", project.id, sorted(data))
    return project


def delete_project(project_id: int) -> None:
    project = get_project_by_id(project_id)
    db.session.delete(project)
    db.session.commit()
    logger.info("Project deleted (id=%s)", project_id)
