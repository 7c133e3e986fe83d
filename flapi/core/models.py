"""SQLAlchemy models for the platform records.

Every table carries ``created_at`` / ``updated_at`` timestamps. ``to_dict``
is the JSON shape returned by the API (snake_case, password never exposed).
"""
from __future__ import annotations
import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Table, Text
from sqlalchemy.orm import relationship

from flapi.core.db import db


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def _iso(value: datetime.datetime | None) -> str | None:
    return value.isoformat() if value else None


class TimestampMixin:
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    def _timestamps(self) -> dict:
        return {"created_at": _iso(self.created_at), "updated_at": _iso(self.updated_at)}


user_teams = Table(
    "user_teams",
    db.metadata,
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("team_id", Integer, ForeignKey("teams.id", ondelete="CASCADE"), primary_key=True),
    Column("role", String(50), nullable=False, default="member"),
)

team_projects = Table(
    "team_projects",
    db.metadata,
    Column("team_id", Integer, ForeignKey("teams.id", ondelete="CASCADE"), primary_key=True),
    Column("project_id", Integer, ForeignKey("projects.id", ondelete="CASCADE"), primary_key=True),
)

user_project_permissions = Table(
    "user_project_permissions",
    db.metadata,
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("project_id", Integer, ForeignKey("projects.id", ondelete="CASCADE"), primary_key=True),
    Column("has_access", Boolean, nullable=False, default=False),
)


class UserRole(TimestampMixin, db.Model):
    __tablename__ = "user_roles"

    id = Column(Integer, primary_key=True)
    name = Column(String(50), unique=True, nullable=False)

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, **self._timestamps()}


class User(TimestampMixin, db.Model):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    role_id = Column(Integer, ForeignKey("user_roles.id"))
    lastname = Column(String(255))
    firstname = Column(String(255))
    email = Column(String(254), unique=True, nullable=False)
    password = Column(String(255), nullable=False)
    currency_code = Column(String(8))
    ip_address = Column(String(45))
    ip_region = Column(String(45))
    is_active = Column(Boolean, nullable=False, default=False)
    active_code = Column(Integer, nullable=False)
    stripe_customer_id = Column(String(255))
    keycloak_id = Column(String(64))

    role = relationship("UserRole")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "role_id": self.role_id,
            "lastname": self.lastname,
            "firstname": self.firstname,
            "email": self.email,
            "currency_code": self.currency_code,
            "ip_address": self.ip_address,
            "ip_region": self.ip_region,
            "is_active": self.is_active,
            "stripe_customer_id": self.stripe_customer_id,
            **self._timestamps(),
        }


class Bucket(TimestampMixin, db.Model):
    __tablename__ = "buckets"

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    visibility = Column(String(32), nullable=False, default="private")

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "visibility": self.visibility, **self._timestamps()}


class File(TimestampMixin, db.Model):
    __tablename__ = "files"

    id = Column(Integer, primary_key=True)
    bucket_id = Column(Integer, ForeignKey("buckets.id"), nullable=False)
    pathfilename = Column(String(1024), nullable=False)
    url = Column(String(2048), nullable=False)
    # bytes
    size = Column(Integer, nullable=False)

    bucket = relationship("Bucket")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "bucket_id": self.bucket_id,
            "pathfilename": self.pathfilename,
            "url": self.url,
            "size": self.size,
            **self._timestamps(),
        }


class Database(TimestampMixin, db.Model):
    __tablename__ = "databases"

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, **self._timestamps()}


class Project(TimestampMixin, db.Model):
    __tablename__ = "projects"

    id = Column(Integer, primary_key=True)
    application_name = Column(String(255), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"))
    domain_name = Column(String(255), nullable=False)
    file_id = Column(Integer, ForeignKey("files.id"))
    database_id = Column(Integer, ForeignKey("databases.id"))

    user = relationship("User")
    file = relationship("File")
    database = relationship("Database")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "application_name": self.application_name,
            "user_id": self.user_id,
            "domain_name": self.domain_name,
            "file_id": self.file_id,
            "database_id": self.database_id,
            **self._timestamps(),
        }


class Team(TimestampMixin, db.Model):
    __tablename__ = "teams"

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    description = Column(Text)
    owner_id = Column(Integer, ForeignKey("users.id"))

    owner = relationship("User")
    users = relationship("User", secondary=user_teams, lazy="selectin")
    projects = relationship("Project", secondary=team_projects, lazy="selectin")

    def members(self) -> list[dict]:
        """Members with their pivot role."""
        rows = db.session.execute(
            db.select(user_teams.c.user_id, user_teams.c.role).where(user_teams.c.team_id == self.id)
        ).all()
        return [{"user_id": user_id, "role": role} for user_id, role in rows]

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "owner_id": self.owner_id,
            "members": self.members(),
            "project_ids": [project.id for project in self.projects],
            **self._timestamps(),
        }


def seed_user_roles() -> list[str]:
    """Insert the missing ``UserRoles`` rows.

    Returns:
        Names of the roles created
    """
    from flapi.core.user_roles import UserRoles

    existing = set(db.session.execute(db.select(UserRole.name)).scalars())
    created = [role.value for role in UserRoles if role.value not in existing]
    for name in created:
        db.session.add(UserRole(name=name))
    db.session.commit()
    return created
