"""Unit tests for parameter validation."""

import pytest

from lam_engine.actions.base import ActionServices
from lam_engine.actions.errors import FieldError
from lam_engine.actions.registry import build_registry
from lam_engine.actions.validation import validate_params


@pytest.fixture
def registry(store, engine_settings):
    return build_registry(ActionServices(store=store, settings=engine_settings))


class TestValidateParams:
    """Test validate_params function."""

    def test_valid_params(self, registry):
        """Test valid parameters parse into the action schema."""
        outcome = validate_params(registry.lookup("createContact"), {"name": "Jane Doe"})

        assert outcome.ok
        assert outcome.params.name == "Jane Doe"
        assert outcome.params.type == "lead"
        assert outcome.errors == []

    def test_camel_case_aliases(self, registry):
        """Test camelCase wire names map to snake_case attributes."""
        outcome = validate_params(
            registry.lookup("scheduleFollowUp"),
            {"contactName": "Jane", "daysFromNow": 3},
        )

        assert outcome.ok
        assert outcome.params.contact_name == "Jane"
        assert outcome.params.days_from_now == 3

    def test_every_field_error_reported(self, registry):
        """Test all failing fields are listed, not just the first."""
        outcome = validate_params(
            registry.lookup("createContact"),
            {"email": "not-an-email", "type": "friend"},
        )

        assert not outcome.ok
        paths = [error.path for error in outcome.errors]
        assert "name" in paths
        assert "email" in paths
        assert "type" in paths

    def test_nested_path(self, registry):
        """Test nested fields are reported with dotted paths."""
        outcome = validate_params(
            registry.lookup("updateContact"),
            {"id": "c1", "patch": {"email": "nope"}},
        )

        assert not outcome.ok
        assert outcome.errors[0].path == "patch.email"

    def test_model_level_error_uses_params_path(self, registry):
        """Test cross-field rules report against params."""
        outcome = validate_params(registry.lookup("completeTask"), {})

        assert outcome.errors == [
            FieldError(path="params", reason="Either id or title is required to identify the task")
        ]

    def test_empty_patch_rejected(self, registry):
        """Test a patch that changes nothing is invalid."""
        outcome = validate_params(
            registry.lookup("updateDeal"),
            {"title": "Maple", "patch": {}},
        )

        assert not outcome.ok
        assert str(outcome.errors[0]) == "patch: patch must change at least one field"

    def test_none_params_treated_as_empty(self, registry):
        """Test missing params validate as an empty object."""
        outcome = validate_params(registry.lookup("getPipelineSummary"), None)

        assert outcome.ok

    def test_non_object_params(self, registry):
        """Test non-object params fail without raising."""
        outcome = validate_params(registry.lookup("createContact"), ["Jane"])

        assert not outcome.ok
        assert outcome.errors[0].path == "params"

    def test_limit_bounds(self, registry):
        """Test numeric bounds are enforced."""
        outcome = validate_params(registry.lookup("searchContacts"), {"query": "a", "limit": 51})

        assert not outcome.ok
        assert outcome.errors[0].path == "limit"

    def test_e164_phone_number(self, registry):
        """Test SMS phone numbers must be E.164."""
        definition = registry.lookup("sendSMS")

        assert validate_params(definition, {"phoneNumber": "+15551234567", "message": "Hi"}).ok
        assert not validate_params(definition, {"phoneNumber": "555-1234", "message": "Hi"}).ok

    def test_summary_and_error(self, registry):
        """Test summary rendering and conversion to an exception."""
        outcome = validate_params(registry.lookup("searchContacts"), {"query": ""})

        assert outcome.summary().startswith("query: ")
        assert str(outcome.to_error()) == f"Invalid parameters: {outcome.summary()}"
