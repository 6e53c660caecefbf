# classes/submission_store.py

import logging
from datetime import timezone
from typing import Any, Callable, Iterable, Mapping, Optional

from sqlalchemy import delete, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from classes.entities import Submission, SubmissionProject, utc_now
from classes.errors import StoreError

logger = logging.getLogger("formwizard_backend")

# Columns a caller may overwrite through update(); id/user_id/created_at never change.
UPDATABLE_COLUMNS = frozenset({
    "name",
    "email",
    "address_line1",
    "address_line2",
    "city",
    "state",
    "zipcode",
    "is_studying",
    "institution",
})

# What a brand-new submission looks like before the first save
EMPTY_SUBMISSION = {
    "name": "",
    "email": "",
    "address_line1": "",
    "address_line2": "",
    "city": "",
    "state": "",
    "zipcode": "",
    "is_studying": False,
    "institution": "",
}


class DuplicateSubmission(StoreError):
    pass


def _iso(value) -> Optional[str]:
    if value is None:
        return None
    # SQLite hands timestamps back naive; they were written as UTC
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def project_to_dict(project: SubmissionProject) -> dict[str, Any]:
    return {
        "id": project.id,
        "name": project.name,
        "description": project.description,
        "submissionId": project.submission_id,
    }


def submission_to_dict(submission: Submission) -> dict[str, Any]:
    """Canonical wire shape of a submission, projects included."""
    return {
        "id": submission.id,
        "userId": submission.user_id,
        "name": submission.name,
        "email": submission.email,
        "addressLine1": submission.address_line1,
        "addressLine2": submission.address_line2,
        "city": submission.city,
        "state": submission.state,
        "zipcode": submission.zipcode,
        "isStudying": submission.is_studying,
        "institution": submission.institution,
        "createdAt": _iso(submission.created_at),
        "updatedAt": _iso(submission.updated_at),
        "projects": [project_to_dict(p) for p in submission.projects],
    }


class SubmissionStore:
    """
    Keyed storage of one Submission per user plus its project list.

    Every public method opens its own session and returns plain dicts, so
    nothing handed back to callers is bound to a live session.
    """

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self.SessionFactory = session_factory

    # -----------------------
    # Lookups
    # -----------------------

    def find_by_user(self, user_id: str) -> Optional[dict]:
        session = self.SessionFactory()
        try:
            submission = (
                session.query(Submission)
                    .filter(Submission.user_id == str(user_id))
                    .order_by(Submission.created_at)
                    .first()
            )
            return submission_to_dict(submission) if submission is not None else None
        except SQLAlchemyError as e:
            raise self._store_error("find_by_user", e) from e
        finally:
            session.close()

    def find_by_id_and_user(self, submission_id: str, user_id: str) -> Optional[dict]:
        """None both when the id is unknown and when it belongs to another user."""
        session = self.SessionFactory()
        try:
            submission = (
                session.query(Submission)
                    .filter(
                        Submission.id == str(submission_id),
                        Submission.user_id == str(user_id),
                    )
                    .one_or_none()
            )
            return submission_to_dict(submission) if submission is not None else None
        except SQLAlchemyError as e:
            raise self._store_error("find_by_id_and_user", e) from e
        finally:
            session.close()

    # -----------------------
    # Mutations
    # -----------------------

    def create(self, user_id: str, **fields) -> dict:
        self._check_columns(fields)
        session = self.SessionFactory()
        try:
            submission = Submission(user_id=str(user_id), **{**EMPTY_SUBMISSION, **fields})
            session.add(submission)
            session.commit()
            logger.info(f"Created submission {submission.id} for user {user_id}")
            return submission_to_dict(submission)
        except IntegrityError as e:
            session.rollback()
            raise DuplicateSubmission(f"Submission already exists for user {user_id}") from e
        except SQLAlchemyError as e:
            session.rollback()
            raise self._store_error("create", e) from e
        finally:
            session.close()

    def get_or_create(self, user_id: str) -> dict:
        existing = self.find_by_user(user_id)
        if existing is not None:
            return existing
        try:
            return self.create(user_id)
        except DuplicateSubmission:
            # Lost the race against a concurrent first fetch; the winner's row is canonical.
            logger.info(f"Concurrent create for user {user_id}, returning existing row")
            existing = self.find_by_user(user_id)
            if existing is None:
                raise StoreError("Failed to fetch form data")
            return existing

    def update(self, submission_id: str, **fields) -> dict:
        """Merge `fields` into the row, bump updated_at and return the canonical row."""
        self._check_columns(fields)
        session = self.SessionFactory()
        try:
            submission = session.get(Submission, str(submission_id))
            if submission is None:
                raise StoreError(f"Submission not found: {submission_id}")
            for column, value in fields.items():
                setattr(submission, column, value)
            submission.updated_at = utc_now()
            session.commit()
            return submission_to_dict(submission)
        except SQLAlchemyError as e:
            session.rollback()
            raise self._store_error("update", e) from e
        finally:
            session.close()

    def touch(self, submission_id: str) -> dict:
        return self.update(submission_id)

    def replace_projects(self, submission_id: str, projects: Iterable[Mapping[str, Any]]) -> dict:
        """
        Drop every project of the submission and insert `projects` in order.

        Delete, insert and the timestamp bump share one transaction, so a
        concurrent reader sees either the old list or the new one, never an
        empty set in between.
        """
        sid = str(submission_id)
        rows = [
            SubmissionProject(
                submission_id=sid,
                id=str(p["id"]),
                name=p["name"],
                description=p["description"],
                position=i,
            )
            for i, p in enumerate(projects)
        ]

        session = self.SessionFactory()
        try:
            with session.begin():
                project_table = SubmissionProject.__table__
                submission_table = Submission.__table__
                session.execute(
                    delete(project_table).where(project_table.c.submission_id == sid)
                )
                session.add_all(rows)
                result = session.execute(
                    update(submission_table)
                        .where(submission_table.c.id == sid)
                        .values(updated_at=utc_now())
                )
                if result.rowcount == 0:
                    raise StoreError(f"Submission not found: {submission_id}")

            submission = session.get(Submission, sid)
            logger.info(f"Replaced projects of submission {sid} ({len(rows)} item(s))")
            return submission_to_dict(submission)
        except SQLAlchemyError as e:
            raise self._store_error("replace_projects", e) from e
        finally:
            session.close()

    # -----------------------
    # Helpers
    # -----------------------

    def _check_columns(self, fields: Mapping[str, Any]) -> None:
        unknown = set(fields) - UPDATABLE_COLUMNS
        if unknown:
            raise ValueError(f"Unknown submission column(s): {', '.join(sorted(unknown))}")

    def _store_error(self, operation: str, exc: Exception) -> StoreError:
        logger.exception(f"{operation}(): DB error -> {exc}")
        return StoreError(f"Store failure during {operation}")
