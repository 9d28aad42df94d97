"""Reporter lookup across the two reporter collections."""

import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from fireops.errors import NotFoundError
from fireops.models import FirePersonnel, User
from fireops.models.alert import REPORTER_PERSONNEL, REPORTER_USER

Reporter = User | FirePersonnel


async def resolve_reporter(db: AsyncSession, reporter_id: uuid.UUID) -> tuple[Reporter, str]:
    """Look up users first, then fire personnel. Returns (reporter, reporter_type)."""
    user = await db.get(User, reporter_id)
    if user is not None:
        return user, REPORTER_USER

    personnel = await db.get(FirePersonnel, reporter_id)
    if personnel is not None:
        return personnel, REPORTER_PERSONNEL

    raise NotFoundError("User not found. Please ensure the user exists in the database.")


async def load_reporter(db: AsyncSession, reporter_id: uuid.UUID, reporter_type: str) -> Reporter | None:
    """Fetch a known reporter for payloads; None if it has since been removed."""
    model = FirePersonnel if reporter_type == REPORTER_PERSONNEL else User
    return await db.get(model, reporter_id)
