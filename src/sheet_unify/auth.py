"""Acting-user context passed explicitly to every mutating operation."""

from __future__ import annotations

from dataclasses import dataclass

from sheet_unify.errors import AuthorizationError


@dataclass(frozen=True)
class ActorContext:
    """Who is acting, and whether they hold the elevated (admin) privilege."""

    actor_id: str | None = None
    is_admin: bool = False

    @property
    def is_authenticated(self) -> bool:
        return bool(self.actor_id)


def require_admin(ctx: ActorContext, action: str) -> None:
    """Raise ``AuthorizationError`` unless *ctx* may perform *action*."""
    if not ctx.is_admin:
        raise AuthorizationError(f"Only administrators can {action}")
