# classes/form_service.py

import logging
from typing import Any, Mapping, Optional

from classes.errors import AuthorizationError, RequestShapeError, ValidationFailed
from classes.submission_store import SubmissionStore
from classes.validation import (
    PERSONAL_FIELDS,
    normalize_education,
    validate_education,
    validate_personal_info,
    validate_projects,
)

logger = logging.getLogger("formwizard_backend")

# wire name -> column name
PERSONAL_COLUMNS = {
    "name": "name",
    "email": "email",
    "addressLine1": "address_line1",
    "addressLine2": "address_line2",
    "city": "city",
    "state": "state",
    "zipcode": "zipcode",
}


class FormService:
    """
    Request handlers for the wizard backend, free of any HTTP framework.

    Every mutating handler follows the same order: request shape, field
    rules, ownership, then a single write. Nothing is written unless all
    checks pass, and the caller always receives the full canonical
    submission.
    """

    def __init__(self, store: SubmissionStore) -> None:
        self.store = store

    def fetch_or_create(self, user_id: Optional[str]) -> dict:
        self._require(userId=user_id)
        return self.store.get_or_create(user_id)

    def save_personal(
        self,
        user_id: Optional[str],
        fields: Mapping[str, Any],
        submission_id: Optional[str] = None,
    ) -> dict:
        """
        Partial update of the personal-info group.

        Only fields that are present and not None are validated and written;
        everything else keeps its stored value. Without a submission id the
        caller's own row is used, created on the spot if it does not exist yet.
        """
        self._require(userId=user_id)

        provided = {k: v for k, v in fields.items() if k in PERSONAL_FIELDS and v is not None}
        self._check(validate_personal_info(provided, partial=True))

        if submission_id:
            target = self._authorize(submission_id, user_id)
        else:
            target = self.store.get_or_create(user_id)

        columns = {PERSONAL_COLUMNS[k]: v for k, v in provided.items()}
        logger.debug(f"save_personal submission={target['id']} fields={sorted(provided)}")
        return self.store.update(target["id"], **columns)

    def save_education(
        self,
        submission_id: Optional[str],
        user_id: Optional[str],
        is_studying: Any,
        institution: Any = None,
    ) -> dict:
        self._require(id=submission_id, userId=user_id)
        self._check(validate_education(is_studying, institution))
        self._authorize(submission_id, user_id)

        is_studying, institution = normalize_education(is_studying, institution)
        return self.store.update(submission_id, is_studying=is_studying, institution=institution)

    def save_projects(
        self,
        submission_id: Optional[str],
        user_id: Optional[str],
        projects: Any,
    ) -> dict:
        self._require(id=submission_id, userId=user_id)
        self._check(validate_projects(projects))
        self._authorize(submission_id, user_id)

        return self.store.replace_projects(submission_id, projects)

    def submit(self, submission_id: Optional[str], user_id: Optional[str]) -> dict:
        # Finalizing is only a timestamp touch; the row stays editable afterwards.
        self._require(id=submission_id, userId=user_id)
        self._authorize(submission_id, user_id)

        submission = self.store.touch(submission_id)
        logger.info(f"Submission {submission_id} finalized at {submission['updatedAt']}")
        return submission

    # -----------------------
    # Checks
    # -----------------------

    def _require(self, **identifiers) -> None:
        missing = [name for name, value in identifiers.items() if not value]
        if not missing:
            return
        if missing == ["userId"]:
            raise RequestShapeError("Missing user ID")
        raise RequestShapeError("Missing submission ID or user ID")

    def _check(self, errors: list[dict[str, str]]) -> None:
        if errors:
            raise ValidationFailed(errors)

    def _authorize(self, submission_id: str, user_id: str) -> dict:
        submission = self.store.find_by_id_and_user(submission_id, user_id)
        if submission is None:
            logger.warning(f"Rejected access to submission {submission_id} by user {user_id}")
            raise AuthorizationError()
        return submission
