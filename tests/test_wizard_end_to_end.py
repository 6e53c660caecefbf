import pytest

from classes.errors import ApiError
from classes.wizard_client import FormApiClient, WizardClient


def test_wizard_against_real_app(api, personal_info):
    wizard = WizardClient(FormApiClient(base_url="http://testserver/api", http=api), "user-1")

    state = wizard.hydrate()
    assert state.submission_id
    assert state.projects == []

    state = wizard.save_personal(state, personal_info)
    sid = state.submission_id

    state = wizard.save_education(state, {"isStudying": True, "institution": "MIT"})
    assert state.submission_id == sid

    state, project_id = wizard.add_project(state)
    state = wizard.edit_project(state, project_id, name="App", description="A mobile app for tracking tasks.")
    state, scratch_id = wizard.add_project(state)
    state = wizard.remove_project(state, scratch_id)

    state = wizard.submit(state)
    assert state.submitted is True

    # a fresh session sees everything that was saved
    reloaded = WizardClient(FormApiClient(base_url="http://testserver/api", http=api), "user-1").hydrate()
    assert reloaded.submission_id == sid
    assert reloaded.name == "Jo Lee"
    assert reloaded.email == "jo@x.com"
    assert reloaded.zipcode == "10001"
    assert reloaded.is_studying is True
    assert reloaded.institution == "MIT"
    assert reloaded.projects == [
        {"id": project_id, "name": "App", "description": "A mobile app for tracking tasks."}
    ]


def test_other_user_session_cannot_write_into_foreign_submission(api, personal_info):
    owner = WizardClient(FormApiClient(base_url="http://testserver/api", http=api), "owner")
    owner_state = owner.save_personal(owner.hydrate(), personal_info)

    intruder = WizardClient(FormApiClient(base_url="http://testserver/api", http=api), "intruder")
    with pytest.raises(ApiError) as exc:
        intruder.save_personal(owner_state, {**personal_info, "name": "Mallory"})
    assert exc.value.status_code == 403

    assert owner.hydrate().name == "Jo Lee"
