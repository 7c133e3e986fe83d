"""Teams and their membership (``user_teams`` rows carry the member role)."""
from __future__ import annotations
import logging
from typing import Any, List

from flapi.core.db import db
from flapi.core.exceptions import ConflictError, NotFoundError, ValidationError
from flapi.core.models import Team, User, user_teams
from flapi.core.validators import FieldError, validate_string, validate_team_payload

logger = logging.getLogger(__name__)

DEFAULT_MEMBER_ROLE = "member"


def _validate_role(role: Any) -> str:
    try:
        return validate_string(role, "role", max_length=50)
    except FieldError as exc:
        raise ValidationError([{"field": "role", "rule": exc.rule, "message": str(exc)}])


def _check_owner(data: dict) -> None:
    owner_id = data.get("owner_id")
    if owner_id is not None and db.session.get(User, owner_id) is None:
        raise ValidationError([{"field": "owner_id", "rule": "exists", "message": "The selected owner_id is invalid"}])


def _membership(team_id: int, user_id: int):
    return db.session.execute(
        db.select(user_teams).where(user_teams.c.team_id == team_id, user_teams.c.user_id == user_id)
    ).first()


def get_all_teams() -> List[Team]:
    return list(db.session.execute(db.select(Team).order_by(Team.id)).scalars())


def get_team_by_id(team_id: int) -> Team:
    team = db.session.get(Team, team_id)
    if team is None:
        raise NotFoundError("Team not found")
    return team


def create_team(payload: Any) -> Team:
    data = validate_team_payload(payload)
    _check_owner(data)
    team = Team(**data)
    db.session.add(team)
    db.session.commit()
    logger.info("Team created (id=%s)", team.id)
    return team


def update_team(team_id: int, payload: Any) -> Team:
    """Partial update of name / description / owner."""
    team = get_team_by_id(team_id)
    data = validate_team_payload(payload, partial=True)
    _check_owner(data)
    for key, value in data.items():
        setattr(team, key, value)
    db.session.commit()
    return team


def delete_team(team_id: int) -> None:
    team = get_team_by_id(team_id)
    db.session.delete(team)
    db.session.commit()
    logger.info("Team deleted (id=%s)", team_id)


def add_user_to_team(team_id: int, user_id: Any, role: Any = DEFAULT_MEMBER_ROLE) -> Team:
    """Attach a user to a team with a membership role.

    Raises:
        NotFoundError: Unknown team or user
        ConflictError: User already in the team
    """
    team = get_team_by_id(team_id)
    role = _validate_role(role if role is not None else DEFAULT_MEMBER_ROLE)
    if db.session.get(User, user_id) is None:
        raise NotFoundError("User not found")
    if _membership(team_id, user_id) is not None:
        raise ConflictError("User is already a member of this team")

    db.session.execute(user_teams.insert().values(team_id=team_id, user_id=user_id, role=role))
    db.session.commit()
    db.session.expire(team)
    logger.info("User %s added to team %s as %s", user_id, team_id, role)
    return team


def remove_user_from_team(team_id: int, user_id: int) -> Team:
    """Detach a user; removing a non-member leaves the team unchanged."""
    team = get_team_by_id(team_id)
    db.session.execute(
        user_teams.delete().where(user_teams.c.team_id == team_id, user_teams.c.user_id == user_id)
    )
    db.session.commit()
    db.session.expire(team)
    return team


def update_user_role(team_id: int, user_id: int, role: Any) -> Team:
    """
    Raises:
        NotFoundError: Unknown team, or the user is not a member
    """
    team = get_team_by_id(team_id)
    role = _validate_role(role)
    if _membership(team_id, user_id) is None:
        raise NotFoundError("User is not a member of this team")

    db.session.execute(
        user_teams.update()
        .where(user_teams.c.team_id == team_id, user_teams.c.user_id == user_id)
        .values(role=role)
    )
    db.session.commit()
    db.session.expire(team)
    logger.info("User %s role in team %s changed to %s", user_id, team_id, role)
    return team
