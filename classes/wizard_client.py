# classes/wizard_client.py
"""
Client side of the wizard: an httpx wrapper around the form API and the
session object that carries the working copy of a submission across the
three pages.

The session is never global. Each page receives a FormState, hands it to a
WizardClient step method and continues with the FormState it gets back. A
step that fails raises and the caller keeps the state it passed in, so a
failed save never leaves half-merged data behind.
"""

import logging
import os
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Mapping, Optional
from uuid import uuid4

import httpx
from dotenv import load_dotenv

from classes.errors import ApiError, RequestShapeError, ValidationFailed
from classes.validation import (
    PERSONAL_FIELDS,
    normalize_education,
    validate_education,
    validate_personal_info,
    validate_projects,
)

load_dotenv()

logger = logging.getLogger("formwizard_client")

API_URL = os.getenv("FORM_API_URL", "http://localhost:3001/api")
API_TIMEOUT = float(os.getenv("FORM_API_TIMEOUT", "5"))

TOTAL_STEPS = 3

# wire name -> FormState attribute
PERSONAL_ATTRS = {
    "name": "name",
    "email": "email",
    "addressLine1": "address_line1",
    "addressLine2": "address_line2",
    "city": "city",
    "state": "state",
    "zipcode": "zipcode",
}
EDUCATION_ATTRS = {
    "isStudying": "is_studying",
    "institution": "institution",
}
PROJECT_ATTRS = {
    "projects": "projects",
}


class FormApiClient:
    """One method per endpoint. Any non-2xx answer or transport failure raises ApiError."""

    def __init__(
        self,
        base_url: str = API_URL,
        timeout: float = API_TIMEOUT,
        http: Optional[httpx.Client] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.http = http or httpx.Client(timeout=timeout)

    def fetch_form(self, user_id: str) -> dict:
        return self._request("GET", "/form", params={"userId": user_id})

    def save_personal(self, body: Mapping[str, Any]) -> dict:
        return self._request("POST", "/form/personal", json=dict(body))

    def save_education(self, body: Mapping[str, Any]) -> dict:
        return self._request("POST", "/form/education", json=dict(body))

    def save_projects(self, body: Mapping[str, Any]) -> dict:
        return self._request("POST", "/form/projects", json=dict(body))

    def submit(self, body: Mapping[str, Any]) -> dict:
        return self._request("POST", "/form/submit", json=dict(body))

    def close(self) -> None:
        self.http.close()

    def _request(self, method: str, path: str, **kwargs) -> dict:
        url = f"{self.base_url}{path}"
        try:
            resp = self.http.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            raise ApiError("The server took too long to respond. Please try again.") from e
        except httpx.HTTPError as e:
            raise ApiError(f"Could not reach the server: {e}") from e

        if resp.is_success:
            return resp.json()

        try:
            payload = resp.json()
        except ValueError:
            payload = resp.text
        message = payload.get("error") if isinstance(payload, dict) else None
        raise ApiError(
            message or f"Request failed with status {resp.status_code}",
            status_code=resp.status_code,
            payload=payload,
        )


@dataclass
class FormState:
    """Working copy of one submission, as the wizard pages see it."""

    submission_id: Optional[str] = None
    name: str = ""
    email: str = ""
    address_line1: str = ""
    address_line2: Optional[str] = ""
    city: str = ""
    state: str = ""
    zipcode: str = ""
    is_studying: bool = False
    institution: Optional[str] = ""
    projects: list[dict] = field(default_factory=list)
    step: int = 1
    submitted: bool = False

    def personal_info(self) -> dict:
        return {wire: getattr(self, attr) for wire, attr in PERSONAL_ATTRS.items()}

    def education(self) -> dict:
        return {wire: getattr(self, attr) for wire, attr in EDUCATION_ATTRS.items()}


def merge_response(state: FormState, payload: Mapping[str, Any], groups: tuple = ()) -> FormState:
    """
    Shallow-merge a canonical submission into `state` and return the new state.

    `groups` restricts the merge to some field groups (PERSONAL_ATTRS, ...),
    so saving one page does not clobber unsaved edits on another one. With no
    groups every known field is taken.
    """
    mappings = groups or (PERSONAL_ATTRS, EDUCATION_ATTRS, PROJECT_ATTRS)
    changes: dict[str, Any] = {}
    for mapping in mappings:
        for wire, attr in mapping.items():
            if wire in payload:
                changes[attr] = payload[wire]
    if "projects" in changes:
        changes["projects"] = [
            {"id": p["id"], "name": p["name"], "description": p["description"]}
            for p in changes["projects"] or []
        ]
    if payload.get("id"):
        changes["submission_id"] = payload["id"]
    return replace(state, **changes)


class WizardClient:
    def __init__(self, api: FormApiClient, user_id: Optional[str]) -> None:
        self.api = api
        self.user_id = user_id
        self.loading = False

    # -----------------------
    # Server round trips
    # -----------------------

    def hydrate(self) -> FormState:
        """Load the caller's submission once; without a signed-in user the blank state is returned."""
        if not self.user_id:
            return FormState()
        payload = self._call(self.api.fetch_form, self.user_id)
        return merge_response(FormState(), payload)

    def save_personal(self, state: FormState, data: Mapping[str, Any]) -> FormState:
        self._require_user()
        personal = {k: data.get(k) for k in PERSONAL_FIELDS}
        self._check(validate_personal_info(personal))

        body = {**personal, "id": state.submission_id, "userId": self.user_id}
        payload = self._call(self.api.save_personal, body)
        return replace(merge_response(state, payload, (PERSONAL_ATTRS,)), step=2)

    def save_education(self, state: FormState, data: Mapping[str, Any]) -> FormState:
        self._require_user()
        is_studying = data.get("isStudying")
        self._check(validate_education(is_studying, data.get("institution")))
        is_studying, institution = normalize_education(is_studying, data.get("institution"))

        body = {"isStudying": is_studying, "id": state.submission_id, "userId": self.user_id}
        if is_studying:
            body["institution"] = institution
        payload = self._call(self.api.save_education, body)
        return replace(merge_response(state, payload, (EDUCATION_ATTRS,)), step=3)

    def save_projects(self, state: FormState) -> FormState:
        """Send the whole local project list; the server replaces its list with it."""
        self._require_user()
        self._check(validate_projects(state.projects))

        body = {
            "id": state.submission_id,
            "userId": self.user_id,
            "projects": [dict(p) for p in state.projects],
        }
        payload = self._call(self.api.save_projects, body)
        return merge_response(state, payload, (PROJECT_ATTRS,))

    def submit(self, state: FormState) -> FormState:
        """Final page: save the projects, then finalize."""
        state = self.save_projects(state)
        payload = self._call(self.api.submit, {"id": state.submission_id, "userId": self.user_id})
        return replace(merge_response(state, payload), submitted=True)

    # -----------------------
    # Local-only edits
    # -----------------------

    def add_project(self, state: FormState) -> tuple[FormState, str]:
        project_id = str(uuid4())
        project = {"id": project_id, "name": "", "description": ""}
        return replace(state, projects=[*state.projects, project]), project_id

    def remove_project(self, state: FormState, project_id: str) -> FormState:
        return replace(state, projects=[p for p in state.projects if p["id"] != project_id])

    def edit_project(self, state: FormState, project_id: str, **changes) -> FormState:
        unknown = set(changes) - {"name", "description"}
        if unknown:
            raise ValueError(f"Unknown project field(s): {', '.join(sorted(unknown))}")
        if not any(p["id"] == project_id for p in state.projects):
            raise KeyError(project_id)
        return replace(
            state,
            projects=[{**p, **changes} if p["id"] == project_id else dict(p) for p in state.projects],
        )

    def go_back(self, state: FormState) -> FormState:
        return replace(state, step=max(1, state.step - 1))

    @staticmethod
    def progress(state: FormState) -> float:
        if state.submitted:
            return 100.0
        return state.step / TOTAL_STEPS * 100

    # -----------------------
    # Helpers
    # -----------------------

    def _require_user(self) -> None:
        if not self.user_id:
            raise RequestShapeError("User not authenticated")

    def _check(self, errors: list[dict[str, str]]) -> None:
        if errors:
            raise ValidationFailed(errors)

    def _call(self, fn: Callable[..., dict], *args) -> dict:
        self.loading = True
        try:
            return fn(*args)
        except ApiError as e:
            logger.warning(f"{fn.__name__} failed: status={e.status_code} message={e.message}")
            raise
        finally:
            self.loading = False
