"""
Role authorizer - Permission decisions over a fixed role hierarchy.

The hierarchy is an explicit ordered tuple, lowest rank first. A role's
depth is its 1-based position in that tuple. Roles outside the tuple
have no depth and every rank comparison involving them is False.

The authorizer only answers questions; it never raises. Guards in front
of privileged operations turn a False into a rejection before any side
effect happens.
"""

from collections.abc import Iterable
from dataclasses import dataclass

from .ports import Role

ADMIN_HIERARCHY: tuple[Role, ...] = (Role.ADMIN, Role.SUPER_ADMIN, Role.ADMINISTRATOR)

# Two-role deployment: self-registered users below a single admin role.
USER_ADMIN_HIERARCHY: tuple[Role, ...] = (Role.USER, Role.ADMIN)


def default_elevated_role(hierarchy: tuple[Role, ...]) -> Role:
    """The second rank of a hierarchy, or its only rank."""
    return hierarchy[1] if len(hierarchy) > 1 else hierarchy[0]


@dataclass(frozen=True)
class RoleAuthorizer:
    """
    Rank-based permission checks.

    Attributes:
        hierarchy: Roles ordered from lowest to highest rank
        elevated_role: Lowest role allowed to manage resources it does not
            own. Defaults to the rank just above the base role.
    """

    hierarchy: tuple[Role, ...] = ADMIN_HIERARCHY
    elevated_role: Role | None = None

    def __post_init__(self) -> None:
        if not self.hierarchy:
            raise ValueError("Role hierarchy must not be empty")
        if len(set(self.hierarchy)) != len(self.hierarchy):
            raise ValueError("Role hierarchy must not repeat a role")
        if self.elevated_role is None:
            object.__setattr__(self, "elevated_role", default_elevated_role(self.hierarchy))
        if self.elevated_role not in self.hierarchy:
            raise ValueError(f"Elevated role {self.elevated_role.value} is not in the hierarchy")

    def depth(self, role: Role | None) -> int | None:
        """Return the 1-based rank of role, or None if it has no rank."""
        if role is None or role not in self.hierarchy:
            return None
        return self.hierarchy.index(role) + 1

    def is_authorized(self, required_roles: Iterable[Role] | None, actual_role: Role | None) -> bool:
        """
        Exact-membership check used by route guards.

        No requirement means the operation is open. A requirement is not
        widened by rank: {ADMIN} does not admit SUPER_ADMIN.
        """
        if not required_roles:
            return True
        if actual_role is None:
            return False
        return actual_role in set(required_roles)

    def can_modify(self, actor_role: Role | None, target_role: Role | None) -> bool:
        """Actors may only modify principals strictly below their rank."""
        actor, target = self.depth(actor_role), self.depth(target_role)
        if actor is None or target is None:
            return False
        return actor > target

    def can_delete(self, actor_role: Role | None, target_role: Role | None) -> bool:
        """Deletion also admits peers of the same rank."""
        actor, target = self.depth(actor_role), self.depth(target_role)
        if actor is None or target is None:
            return False
        return actor >= target

    def creatable_roles(self, actor_role: Role | None) -> frozenset[Role]:
        """Roles strictly below the actor's rank."""
        actor = self.depth(actor_role)
        if actor is None:
            return frozenset()
        return frozenset(self.hierarchy[: actor - 1])

    def can_manage_owned_resource(
        self, actor_role: Role | None, actor_id: str | None, owner_id: str | None
    ) -> bool:
        """
        Decide whether an actor may edit or delete a resource it may not own.

        Roles at or above ``elevated_role`` manage everything. The base
        role of the hierarchy manages only its own resources.
        """
        actor = self.depth(actor_role)
        if actor is None or actor_id is None:
            return False
        if actor >= self.depth(self.elevated_role):
            return True
        if actor_role == self.hierarchy[0]:
            return owner_id is not None and actor_id == owner_id
        return False
