"""Built-in actions."""

# Import all built-in actions to register them
from . import (
    create_contact,
    update_contact,
    search_contacts,
    create_deal,
    update_deal,
    search_deals,
    get_pipeline_summary,
    create_task,
    complete_task,
    get_upcoming_tasks,
    schedule_follow_up,
    set_theme,
    send_sms,
    send_email,
)

__all__ = []
