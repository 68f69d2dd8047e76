# Authorization module.
# Access rules for action items: who can see them, who can complete them,
# and who can submit or read their secure responses.

from .action_item_policy import PolicyDenied, can_client_complete, can_view

__all__ = ["PolicyDenied", "can_client_complete", "can_view"]
