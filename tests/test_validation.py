import pytest

from classes.validation import (
    normalize_education,
    validate_education,
    validate_personal_info,
    validate_projects,
)


def _fields(errors):
    return {e["field"] for e in errors}


def test_complete_personal_info_is_valid(personal_info):
    assert validate_personal_info(personal_info) == []


@pytest.mark.parametrize("zipcode", ["12345", "12345-6789"])
def test_zipcode_accepts_five_digits_and_zip_plus_four(personal_info, zipcode):
    assert validate_personal_info({**personal_info, "zipcode": zipcode}) == []


@pytest.mark.parametrize("zipcode", ["1234", "123456", "12345-678", "abcde", "12345\n"])
def test_zipcode_rejects_other_shapes(personal_info, zipcode):
    errors = validate_personal_info({**personal_info, "zipcode": zipcode})
    assert errors == [{"field": "zipcode", "message": "Please enter a valid zipcode"}]


def test_email_needs_a_dotted_domain(personal_info):
    assert _fields(validate_personal_info({**personal_info, "email": "a@b"})) == {"email"}
    assert validate_personal_info({**personal_info, "email": "a@b.com"}) == []


def test_min_lengths(personal_info):
    data = {**personal_info, "name": "J", "addressLine1": "1 Ma", "city": "N", "state": "Y"}
    assert _fields(validate_personal_info(data)) == {"name", "addressLine1", "city", "state"}


def test_address_line2_is_optional(personal_info):
    assert validate_personal_info({**personal_info, "addressLine2": ""}) == []
    assert validate_personal_info({**personal_info, "addressLine2": None}) == []


def test_full_check_reports_missing_fields():
    errors = validate_personal_info({})
    assert _fields(errors) == {"name", "email", "addressLine1", "city", "state", "zipcode"}


def test_partial_check_only_looks_at_supplied_fields():
    assert validate_personal_info({"city": "Boston"}, partial=True) == []
    assert _fields(validate_personal_info({"zipcode": "1"}, partial=True)) == {"zipcode"}


def test_non_string_values_are_rejected(personal_info):
    assert _fields(validate_personal_info({**personal_info, "name": 42})) == {"name"}


def test_education_requires_institution_only_when_studying():
    assert validate_education(False, None) == []
    assert validate_education(False, "x") == []
    assert validate_education(True, "MIT") == []
    assert _fields(validate_education(True, None)) == {"institution"}
    assert _fields(validate_education(True, "M")) == {"institution"}


def test_education_flag_must_be_boolean():
    assert _fields(validate_education("yes", "MIT")) == {"isStudying"}
    assert _fields(validate_education(None, None)) == {"isStudying"}


def test_normalize_education_clears_institution_when_not_studying():
    assert normalize_education(False, "Stale College") == (False, None)
    assert normalize_education(True, "MIT") == (True, "MIT")


def test_projects_need_at_least_one_entry():
    assert validate_projects([]) == [{"field": "projects", "message": "Please add at least one project"}]
    assert _fields(validate_projects(None)) == {"projects"}


def test_project_description_boundary():
    ok = {"id": "p1", "name": "App", "description": "x" * 10}
    short = {"id": "p2", "name": "App", "description": "x" * 9}
    assert validate_projects([ok]) == []
    assert _fields(validate_projects([ok, short])) == {"projects[1].description"}


def test_project_rules_report_indexed_fields():
    errors = validate_projects([{"id": "", "name": "A", "description": "short"}])
    assert _fields(errors) == {"projects[0].id", "projects[0].name", "projects[0].description"}


def test_duplicate_project_ids_are_rejected():
    project = {"id": "p1", "name": "App", "description": "A mobile app"}
    assert _fields(validate_projects([project, dict(project)])) == {"projects[1].id"}


@pytest.mark.parametrize("email", ["jo@x..com", "a@b.c.", "a@.b.com", "a.@b.com", "a@b.com.", "Jo <jo@x.com>", "jo @x.com"])
def test_email_rejects_malformed_addresses(personal_info, email):
    errors = validate_personal_info({**personal_info, "email": email})
    assert errors == [{"field": "email", "message": "Please enter a valid email address"}]


@pytest.mark.parametrize("email", ["jo@x.com", "jo.lee+forms@mail.acme.org"])
def test_email_accepts_ordinary_addresses(personal_info, email):
    assert validate_personal_info({**personal_info, "email": email}) == []
