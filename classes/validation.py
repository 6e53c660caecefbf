# classes/validation.py
"""
Field rules for the three wizard steps.

Every function is pure and returns a list of {"field", "message"} dicts; an
empty list means the input is valid. The server runs them before persisting
anything and the wizard client runs the very same functions before sending a
request, so both sides always agree on what "valid" means.
"""

import re
from typing import Any, Mapping

from pydantic import EmailStr, TypeAdapter, ValidationError

ZIPCODE_RE = re.compile(r"[0-9]{5}(-[0-9]{4})?")

PERSONAL_FIELDS = ("name", "email", "addressLine1", "addressLine2", "city", "state", "zipcode")

# field -> (min length, message)
_MIN_LENGTH_RULES = {
    "name":         (2, "Name must be at least 2 characters"),
    "addressLine1": (5, "Address must be at least 5 characters"),
    "city":         (2, "City must be at least 2 characters"),
    "state":        (2, "State must be at least 2 characters"),
}

INSTITUTION_MESSAGE = "Institution name must be at least 2 characters when currently studying"


_EMAIL = TypeAdapter(EmailStr)


def _error(field: str, message: str) -> dict[str, str]:
    return {"field": field, "message": message}


def is_email(value: str) -> bool:
    # EmailStr also takes the "Name <addr>" form; only a bare address is allowed here
    if "<" in value or any(ch.isspace() for ch in value):
        return False
    try:
        _EMAIL.validate_python(value)
    except ValidationError:
        return False
    return True


def validate_personal_info(data: Mapping[str, Any], partial: bool = False) -> list[dict[str, str]]:
    """
    Check the personal-info step.

    With partial=True only the keys present (and not None) in `data` are
    checked, which is what a partial save accepts. With partial=False every
    required field must be there, which is what the client enforces before
    moving to the next page.
    """
    errs: list[dict[str, str]] = []

    def _present(field: str) -> bool:
        return data.get(field) is not None

    for field in PERSONAL_FIELDS:
        if partial and not _present(field):
            continue
        value = data.get(field)

        if field == "addressLine2":
            if value is not None and not isinstance(value, str):
                errs.append(_error(field, "Address line 2 must be a string"))
            continue

        if value is None:
            value = ""
        if not isinstance(value, str):
            errs.append(_error(field, f"{field} must be a string"))
            continue

        if field in _MIN_LENGTH_RULES:
            min_len, message = _MIN_LENGTH_RULES[field]
            if len(value) < min_len:
                errs.append(_error(field, message))
        elif field == "email":
            if not is_email(value):
                errs.append(_error(field, "Please enter a valid email address"))
        elif field == "zipcode":
            if not ZIPCODE_RE.fullmatch(value):
                errs.append(_error(field, "Please enter a valid zipcode"))

    return errs


def validate_education(is_studying: Any, institution: Any) -> list[dict[str, str]]:
    if not isinstance(is_studying, bool):
        return [_error("isStudying", "isStudying must be true or false")]
    if not is_studying:
        # whatever was sent is discarded by normalize_education
        return []
    if not isinstance(institution, str) or len(institution) < 2:
        return [_error("institution", INSTITUTION_MESSAGE)]
    return []


def normalize_education(is_studying: bool, institution: str | None) -> tuple[bool, str | None]:
    return is_studying, (institution if is_studying else None)


def validate_projects(projects: Any) -> list[dict[str, str]]:
    if not isinstance(projects, (list, tuple)):
        return [_error("projects", "Projects must be a list")]
    if not projects:
        return [_error("projects", "Please add at least one project")]

    errs: list[dict[str, str]] = []
    seen_ids: set[str] = set()
    for i, project in enumerate(projects):
        prefix = f"projects[{i}]"
        if not isinstance(project, Mapping):
            errs.append(_error(prefix, "Project must be an object"))
            continue

        project_id = project.get("id")
        if not isinstance(project_id, str) or not project_id:
            errs.append(_error(f"{prefix}.id", "Project id is required"))
        elif project_id in seen_ids:
            errs.append(_error(f"{prefix}.id", "Duplicate project id"))
        else:
            seen_ids.add(project_id)

        name = project.get("name")
        if not isinstance(name, str) or len(name) < 2:
            errs.append(_error(f"{prefix}.name", "Project name must be at least 2 characters"))

        description = project.get("description")
        if not isinstance(description, str) or len(description) < 10:
            errs.append(_error(f"{prefix}.description", "Description must be at least 10 characters"))

    return errs

