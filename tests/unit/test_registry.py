"""Unit tests for the action registry."""

import pytest

from lam_engine.actions.base import ActionDefinition, ActionResult, ActionServices, RiskTier
from lam_engine.actions.errors import DuplicateActionError
from lam_engine.actions.registry import ActionRegistry, build_registry, builtin_actions, register_action

BUILTIN_NAMES = {
    "createContact",
    "updateContact",
    "searchContacts",
    "createDeal",
    "updateDeal",
    "searchDeals",
    "getPipelineSummary",
    "createTask",
    "completeTask",
    "getUpcomingTasks",
    "scheduleFollowUp",
    "setTheme",
    "sendSMS",
    "sendEmail",
}


class EchoAction(ActionDefinition):
    name = "echo"
    description = "Echo back."
    risk_tier = RiskTier.READ_ONLY

    async def execute(self, params, context):
        return ActionResult.ok("echo")


@pytest.fixture
def services(store, engine_settings):
    return ActionServices(store=store, settings=engine_settings)


class TestActionRegistry:
    """Test ActionRegistry class."""

    def test_register_and_lookup(self, services):
        """Test registering and looking up an action."""
        registry = ActionRegistry()
        action = EchoAction(services)

        registry.register(action)

        assert registry.lookup("echo") is action
        assert "echo" in registry
        assert len(registry) == 1

    def test_lookup_unknown(self):
        """Test looking up a missing name."""
        registry = ActionRegistry()

        assert registry.lookup("missing") is None
        assert "missing" not in registry

    def test_duplicate_registration_fails(self, services):
        """Test duplicate names abort registration."""
        registry = ActionRegistry()
        registry.register(EchoAction(services))

        with pytest.raises(DuplicateActionError) as exc_info:
            registry.register(EchoAction(services))

        assert "echo" in str(exc_info.value)

    def test_unnamed_action_rejected(self, services):
        """Test an action without a name is refused."""

        class Unnamed(EchoAction):
            name = ""

        with pytest.raises(ValueError):
            ActionRegistry().register(Unnamed(services))

    def test_describe_all(self, services):
        """Test catalog entries carry risk tier labels."""
        registry = build_registry(services)

        entries = {entry["name"]: entry for entry in registry.describe_all()}

        assert entries["searchContacts"]["riskTierLabel"] == "read-only, auto-execute"
        assert entries["createContact"]["riskTierLabel"] == "mutation with undo, auto-execute"
        assert entries["sendSMS"]["riskTierLabel"] == "external communication, requires approval"
        assert entries["createContact"]["description"].startswith("Create a new contact")

    def test_describe_text(self, services):
        """Test the textual catalog format."""
        registry = ActionRegistry()
        registry.register(EchoAction(services))

        assert registry.describe_text() == "- echo (read-only, auto-execute): Echo back."


class TestBuiltinActions:
    """Test the built-in action catalog."""

    def test_all_builtins_registered(self, services):
        """Test every built-in action is available."""
        registry = build_registry(services)

        assert {entry["name"] for entry in registry.describe_all()} == BUILTIN_NAMES

    def test_risk_tiers(self, services):
        """Test tiers of representative actions."""
        registry = build_registry(services)

        assert registry.lookup("getPipelineSummary").risk_tier is RiskTier.READ_ONLY
        assert registry.lookup("completeTask").risk_tier is RiskTier.MUTATION
        assert registry.lookup("setTheme").risk_tier is RiskTier.MUTATION
        assert registry.lookup("sendSMS").risk_tier is RiskTier.EXTERNAL
        assert registry.lookup("sendEmail").risk_tier is RiskTier.EXTERNAL

    def test_builtin_classes_stable(self):
        """Test collecting built-ins twice yields the same classes."""
        assert builtin_actions() == builtin_actions()

    def test_register_action_rejects_name_clash(self):
        """Test the decorator refuses a second class with a built-in name."""

        class Impostor(EchoAction):
            name = "createContact"

        builtin_actions()
        with pytest.raises(DuplicateActionError):
            register_action(Impostor)
