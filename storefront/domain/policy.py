from collections.abc import Sequence

from storefront.domain.entities import User
from storefront.rules.models import Rules


class PolicyEngine:
    def __init__(self, rules: Rules):
        self.rules = rules

    def check_permission(
        self,
        user: User | None,
        action: str,
        user_roles: Sequence[str] | None = None,
    ) -> bool:
        """
        Check if the user/role is allowed to perform the action.

        Order of precedence:
        1. Public Permissions (Global)
        2. Role-Based Access Control (RBAC)
        """
        # 1. Public Permissions
        if action in self.rules.rbac.public_permissions:
            return True

        # If not public, we need a user
        if not user:
            return False

        roles = user_roles if user_roles is not None else user.roles

        # 2. RBAC
        for role in roles:
            allowed_actions = self.rules.rbac.roles.get(role, [])
            if "*" in allowed_actions:
                return True
            if action in allowed_actions:
                return True

            # Check for scoped wildcards (e.g. "cart:*" matches "cart:write")
            if ":" in action:
                scope = action.split(":")[0]
                if f"{scope}:*" in allowed_actions:
                    return True

        return False
