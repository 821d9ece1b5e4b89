"""
DevCamper Backend — Shared Service Helpers
============================================

Id parsing, not-found lookups and slug derivation used by every resource
service.
"""

import re
import unicodedata
import uuid
from typing import Any, Optional, Sequence, Type, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from devcamper.exceptions import NotFoundError

ModelT = TypeVar("ModelT")

_NON_SLUG = re.compile(r"[^a-z0-9]+")


def parse_id(raw: Any, resource: str) -> uuid.UUID:
    """
    Parse a path id. A malformed id is reported as NotFoundError so clients
    cannot tell it apart from an unknown one.
    """
    if isinstance(raw, uuid.UUID):
        return raw
    try:
        return uuid.UUID(str(raw))
    except ValueError:
        raise NotFoundError(resource=resource, resource_id=str(raw)) from None


async def get_or_404(
    db: AsyncSession,
    model: Type[ModelT],
    raw_id: Any,
    resource: str,
    options: Optional[Sequence[Any]] = None,
) -> ModelT:
    """
    Load one row by primary key.

    Raises:
        NotFoundError: malformed id or no such row (→ 404)
    """
    obj = await db.get(model, parse_id(raw_id, resource), options=options)
    if obj is None:
        raise NotFoundError(resource=resource, resource_id=str(raw_id))
    return obj


def slugify(value: str) -> str:
    """'ModernTech Bootcamp!' → 'moderntech-bootcamp'"""
    ascii_value = unicodedata.normalize("NFKD", value).encode("ascii", "ignore").decode("ascii")
    return _NON_SLUG.sub("-", ascii_value.lower()).strip("-")
