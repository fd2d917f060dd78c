"""Built-in action for changing the chat theme."""

from typing import Dict, Optional

import structlog
from pydantic import Field

from ...store import PROFILES
from ...undo.reversal import DeleteRecord, RestoreFields
from ..base import ActionContext, ActionDefinition, ActionParams, ActionResult, RiskTier
from ..registry import register_action

logger = structlog.get_logger(__name__)

# Theme id -> display name
THEMES: Dict[str, str] = {
    "ember": "Ember",
    "midnight": "Midnight",
    "forest": "Forest",
    "rose": "Rose",
    "slate": "Slate",
    "violet": "Violet",
}

THEME_ALIASES: Dict[str, str] = {
    "amber": "ember",
    "warm": "ember",
    "orange": "ember",
    "blue": "midnight",
    "navy": "midnight",
    "cool": "midnight",
    "green": "forest",
    "earth": "forest",
    "nature": "forest",
    "pink": "rose",
    "plum": "rose",
    "gray": "slate",
    "grey": "slate",
    "silver": "slate",
    "neutral": "slate",
    "purple": "violet",
    "indigo": "violet",
    "lavender": "violet",
}


def resolve_theme(value: str) -> Optional[str]:
    """Map a theme id, display name or colour word to a theme id."""
    key = value.strip().lower()
    if key in THEMES:
        return key
    if key in THEME_ALIASES:
        return THEME_ALIASES[key]
    for theme_id, display in THEMES.items():
        if display.lower() == key:
            return theme_id
    return None


class SetThemeParams(ActionParams):
    theme: str = Field(min_length=1, description="Theme name or color keyword")


@register_action
class SetThemeAction(ActionDefinition):
    """Stores the chosen theme on the tenant's profile."""

    name = "setTheme"
    description = (
        f"Change the chat theme. Available themes: {', '.join(THEMES)}. "
        'Also accepts color words like "blue", "green", "purple", etc.'
    )
    risk_tier = RiskTier.MUTATION
    Params = SetThemeParams

    async def execute(self, params: SetThemeParams, context: ActionContext) -> ActionResult:
        theme_id = resolve_theme(params.theme)
        if theme_id is None:
            available = ", ".join(f"{display} ({theme_id})" for theme_id, display in THEMES.items())
            return ActionResult.fail(f"I don't recognize that theme. Available themes: {available}")

        # Profiles are keyed by tenant id
        profile = await self.store.get(PROFILES, context.tenant_id)
        if profile is None:
            await self.store.insert(
                PROFILES,
                {"id": context.tenant_id, "tenant_id": context.tenant_id, "theme": theme_id},
            )
            reversal = DeleteRecord(PROFILES, context.tenant_id)
        else:
            await self.store.update(PROFILES, context.tenant_id, {"theme": theme_id})
            reversal = RestoreFields.from_snapshot(PROFILES, profile, ["theme"])

        logger.info(
            "Changed theme",
            theme=theme_id,
            previous=profile.get("theme") if profile else None,
            tenant=context.tenant_id,
        )

        return ActionResult.ok(
            f"Theme changed to {THEMES[theme_id]}. Refresh the page or the chat view will update automatically.",
            data={"theme": theme_id},
            reversal=reversal,
        )
