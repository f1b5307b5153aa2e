"""
shared/utils/permissions.py
Single authorization capability for decisions on marketplace resources.
"""

from typing import Optional

from shared.models.models import ClientApplication, ContentFlag, Gig, Profile


def can_decide_on(actor: Optional[Profile], resource) -> bool:
    """
    Whether `actor` may make status decisions on `resource`.

    Gig                -> its owning client (covers the gig's applications and bookings)
    ClientApplication  -> admins
    ContentFlag        -> admins

    Admin-only kinds may be passed as the class itself, so the check can
    run before the row is loaded.
    """
    if actor is None or actor.is_suspended:
        return False

    if isinstance(resource, Gig):
        return resource.client_id == actor.id

    kind = resource if isinstance(resource, type) else type(resource)
    if issubclass(kind, (ClientApplication, ContentFlag)):
        return actor.is_admin
    return False
