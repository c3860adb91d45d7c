"""
Test configuration and fixtures.

Provides:
- A fresh in-memory SQLite database per test
- Factories for departments, users, projects, tasks and assignments
"""
import os
import uuid
from datetime import datetime
from typing import Callable, Generator
from zoneinfo import ZoneInfo

# Settings are read at import time; configure before importing taskhub.
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ["RESEND_API_KEY"] = ""
os.environ["REMINDER_TIMEZONE"] = "Asia/Singapore"
os.environ["APP_BASE_URL"] = "https://tasks.example.com"

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from taskhub.db.base import Base
from taskhub.db.enums import TaskStatus
from taskhub.db.models import Department, Project, Task, TaskAssignment, User

SGT = ZoneInfo("Asia/Singapore")

# Thursday morning in the reference timezone.
NOW = datetime(2025, 10, 30, 9, 0, tzinfo=SGT)


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Session on a private in-memory database, discarded after the test."""
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    session = sessionmaker(bind=engine, autoflush=False)()

    yield session

    session.close()
    engine.dispose()


# =============================================================================
# Factories
# =============================================================================

@pytest.fixture(scope="function")
def make_department(db: Session) -> Callable[..., Department]:
    def _make(name: str | None = None, parent: Department | None = None) -> Department:
        department = Department(
            name=name or f"Dept {uuid.uuid4().hex[:8]}",
            parent_id=parent.id if parent else None,
        )
        db.add(department)
        db.flush()
        return department

    return _make


@pytest.fixture(scope="function")
def make_user(db: Session) -> Callable[..., User]:
    def _make(
        first_name: str = "Test",
        last_name: str = "User",
        department: Department | None = None,
        email: str | None = "",
    ) -> User:
        if email == "":
            email = f"{first_name.lower()}-{uuid.uuid4().hex[:8]}@test.com"
        user = User(
            id=uuid.uuid4(),
            first_name=first_name,
            last_name=last_name,
            email=email,
            department_id=department.id if department else None,
        )
        db.add(user)
        db.flush()
        return user

    return _make


@pytest.fixture(scope="function")
def make_project(db: Session) -> Callable[..., Project]:
    def _make(name: str = "Budget", departments: list[Department] | None = None) -> Project:
        project = Project(name=name, departments=list(departments or []))
        db.add(project)
        db.flush()
        return project

    return _make


@pytest.fixture(scope="function")
def make_task(db: Session) -> Callable[..., Task]:
    def _make(creator: User, title: str = "Design budget dashboard", **fields) -> Task:
        fields.setdefault("status", TaskStatus.TO_DO.value)
        fields.setdefault("priority_bucket", 5)
        task = Task(title=title, creator_id=creator.id, **fields)
        db.add(task)
        db.flush()
        return task

    return _make


@pytest.fixture(scope="function")
def assign(db: Session) -> Callable[..., TaskAssignment]:
    """Insert an assignment row directly, without raising task events."""
    def _assign(task: Task, assignee: User, assignor: User | None = None) -> TaskAssignment:
        assignment = TaskAssignment(
            task_id=task.id,
            assignee_id=assignee.id,
            assignor_id=assignor.id if assignor else None,
        )
        db.add(assignment)
        db.flush()
        return assignment

    return _assign
