import os
import logging
from functools import lru_cache
from typing import Any, Callable, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from dotenv import load_dotenv

from classes.db_connection_hlpr import DbConnection
from classes.errors import FormError, StoreError
from classes.form_service import FormService
from classes.submission_store import SubmissionStore

load_dotenv()

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)
logger = logging.getLogger("formwizard_backend")

PORT = int(os.getenv("PORT", "3001"))
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

app = FastAPI(title="Form Wizard API")

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Request bodies ---
# Identifiers are optional at the model level so that a missing one is
# reported as a request-shape error (400) by the service, not as a 422.

class _Body(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: Optional[str] = None
    user_id: Optional[str] = Field(default=None, alias="userId")


class PersonalInfoBody(_Body):
    name: Optional[str] = None
    email: Optional[str] = None
    address_line1: Optional[str] = Field(default=None, alias="addressLine1")
    address_line2: Optional[str] = Field(default=None, alias="addressLine2")
    city: Optional[str] = None
    state: Optional[str] = None
    zipcode: Optional[str] = None


class EducationBody(_Body):
    # left untyped so the shared education rules produce the field message
    is_studying: Any = Field(default=None, alias="isStudying")
    institution: Optional[str] = None


class ProjectBody(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None


class ProjectsBody(_Body):
    projects: Optional[list[ProjectBody]] = None


class SubmitBody(_Body):
    pass


# --- Wiring ---

@lru_cache(maxsize=1)
def _build_form_service() -> FormService:
    session_factory = DbConnection().build_db_session_factory()
    return FormService(SubmissionStore(session_factory))


def get_form_service() -> FormService:
    try:
        return _build_form_service()
    except Exception as e:
        logger.exception(f"Failed to initialise the form service: {e}")
        raise StoreError("Service unavailable") from e


def _run(failure_message: str, fn: Callable[..., dict], *args, **kwargs) -> dict:
    """Call a service handler; any persistence failure becomes an opaque 500."""
    try:
        return fn(*args, **kwargs)
    except StoreError as e:
        raise StoreError(failure_message) from e
    except FormError:
        raise
    except Exception as e:
        logger.exception(f"{failure_message}: {e}")
        raise StoreError(failure_message) from e


@app.exception_handler(FormError)
async def form_error_handler(request: Request, exc: FormError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} -> {exc.status_code} {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query")]
        errors.append({"field": ".".join(loc) or "body", "message": err.get("msg", "Invalid value")})
    return JSONResponse(status_code=400, content={"error": "Validation failed", "errors": errors})


# --- Routes ---

@app.get("/api/health")
def health():
    return {"status": "ok"}


@app.get("/api/form")
def get_form(userId: Optional[str] = None, service: FormService = Depends(get_form_service)):
    return _run("Failed to fetch form data", service.fetch_or_create, userId)


@app.post("/api/form/personal")
def save_personal(body: PersonalInfoBody, service: FormService = Depends(get_form_service)):
    fields = body.model_dump(by_alias=True, exclude={"id", "user_id"})
    return _run(
        "Failed to save personal information",
        service.save_personal,
        body.user_id,
        fields,
        submission_id=body.id,
    )


@app.post("/api/form/education")
def save_education(body: EducationBody, service: FormService = Depends(get_form_service)):
    return _run(
        "Failed to save education information",
        service.save_education,
        body.id,
        body.user_id,
        body.is_studying,
        body.institution,
    )


@app.post("/api/form/projects")
def save_projects(body: ProjectsBody, service: FormService = Depends(get_form_service)):
    projects = [p.model_dump() for p in body.projects] if body.projects is not None else None
    return _run("Failed to save projects", service.save_projects, body.id, body.user_id, projects)


@app.post("/api/form/submit")
def submit_form(body: SubmitBody, service: FormService = Depends(get_form_service)):
    return _run("Failed to submit form", service.submit, body.id, body.user_id)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=PORT)
