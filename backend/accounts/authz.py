# accounts/authz.py
"""
Authorization utilities.

Provides:
- ActorContext: Immutable context for the current request
- resolve_actor: Extract actor context from request
- require_role / require_member: Check roles and raise if not granted

Roles are fixed per membership (see accounts.roles). Every command takes
an ActorContext, so the church boundary and the role are always explicit.
"""

from dataclasses import dataclass
from typing import Iterable

from django.core.exceptions import PermissionDenied
from rest_framework.exceptions import NotAuthenticated

from accounts.models import Church, Membership
from accounts.roles import ELEVATED_APPROVER_ROLES


@dataclass(frozen=True)
class ActorContext:
    """
    Immutable context for the current actor (user + church).

    Attributes:
        user: The authenticated user
        church: The active church (tenant)
        membership: The user's active membership in the church
    """
    user: object  # User model
    church: Church
    membership: Membership

    @property
    def role(self) -> str:
        return self.membership.role

    @property
    def user_id(self) -> int:
        return self.user.pk

    @property
    def church_id(self) -> int:
        return self.church.pk

    def has_role(self, *roles: str) -> bool:
        if not self.membership.is_live:
            return False
        return self.membership.role in roles

    def in_roles(self, roles: Iterable[str]) -> bool:
        return self.has_role(*roles)

    @property
    def is_elevated(self) -> bool:
        return self.in_roles(ELEVATED_APPROVER_ROLES)


def resolve_actor(request) -> ActorContext:
    """
    Extract ActorContext from the current request.

    The membership is loaded fresh on every request so role changes and
    deactivations take effect immediately.

    Raises:
        NotAuthenticated: If user is not authenticated
        PermissionDenied: If user has no active church or membership
    """
    user = getattr(request, "user", None)

    if not user or not user.is_authenticated:
        raise NotAuthenticated("Authentication required.")

    church = getattr(user, "active_church", None)

    if not church:
        raise PermissionDenied("No active church selected.")

    try:
        membership = Membership.objects.live().select_related("church").get(
            user=user,
            church=church,
        )
    except Membership.DoesNotExist:
        raise PermissionDenied("You are not an active member of the selected church.")

    return ActorContext(user=user, church=church, membership=membership)


def actor_for(user, church) -> ActorContext:
    """Build an ActorContext outside a request (tasks, shell, tests)."""
    membership = Membership.objects.live().get(user=user, church=church)
    return ActorContext(user=user, church=church, membership=membership)


def require_role(actor: ActorContext, roles: Iterable[str]) -> None:
    """
    Require that the actor holds one of ``roles``.

    Raises:
        PermissionDenied: If the actor's role is not in the set
    """
    roles = tuple(roles)
    if not actor.has_role(*roles):
        raise PermissionDenied(
            f"Permission denied: requires one of {', '.join(sorted(roles))}"
        )


def require_member(actor: ActorContext) -> None:
    """Any active member may read their church's books."""
    if not actor.membership.is_live:
        raise PermissionDenied("Membership is inactive.")
