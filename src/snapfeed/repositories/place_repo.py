"""Data access helpers for working with places."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy import Insert, or_, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from snapfeed.db.time import utcnow
from snapfeed.models.place import Place
from snapfeed.utils.text import slugify

__all__ = ["PlaceData", "PlaceRepository"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlaceData:
    """Place attributes as submitted alongside a post."""

    place_id: str
    name: str
    formatted_address: str
    lat: float
    lng: float
    types: list[str] = field(default_factory=list)


class PlaceRepository:
    """Thin wrapper around database access for place entities."""

    def __init__(self, session: Session) -> None:
        """Initialize the repository with a SQLAlchemy session."""
        self.session = session

    def get_by_key(self, key: str) -> Place | None:
        """Return a place by external id, slug, or numeric primary key."""
        clauses = [Place.place_id == key, Place.slug == key]
        if key.isdigit():
            clauses.append(Place.id == int(key))
        return self.session.execute(select(Place).where(or_(*clauses)).limit(1)).scalars().first()

    def _insert_ignoring_conflict(self, values: dict[str, object]) -> Insert | None:
        dialect = self.session.get_bind().dialect.name
        if dialect == "postgresql":
            return pg_insert(Place).values(**values).on_conflict_do_nothing(
                index_elements=["place_id"]
            )
        if dialect == "sqlite":
            return sqlite_insert(Place).values(**values).on_conflict_do_nothing(
                index_elements=["place_id"]
            )
        return None

    def find_or_create(self, data: PlaceData) -> Place:
        """Return the place for `data.place_id`, inserting it if unseen.

        The insert is a single `INSERT ... ON CONFLICT DO NOTHING`, so two
        concurrent calls for the same id cannot both create a row.
        """
        name = data.name.strip()
        now = utcnow()
        values: dict[str, object] = {
            "place_id": data.place_id.strip(),
            "name": name,
            "formatted_address": data.formatted_address.strip(),
            "lat": data.lat,
            "lng": data.lng,
            "types": list(data.types),
            "posts_count": 0,
            "slug": slugify(name),
            "created_at": now,
            "updated_at": now,
        }
        stmt = self._insert_ignoring_conflict(values)
        if stmt is not None:
            result = self.session.execute(stmt)
            if result.rowcount:
                logger.info("Created new place %s (%s)", name, values["place_id"])
        else:
            try:
                with self.session.begin_nested():
                    self.session.add(Place(**values))
            except IntegrityError:
                logger.debug("Place %s inserted concurrently", values["place_id"])

        return self.session.execute(
            select(Place).where(Place.place_id == values["place_id"])
        ).scalar_one()

    def increment_posts(self, pk: int) -> None:
        """Atomically add one to the place's post counter."""
        self.session.execute(
            update(Place).where(Place.id == pk).values(posts_count=Place.posts_count + 1)
        )

    def decrement_posts(self, pk: int) -> None:
        """Atomically subtract one from the counter, never going below zero."""
        self.session.execute(
            update(Place)
            .where(Place.id == pk, Place.posts_count > 0)
            .values(posts_count=Place.posts_count - 1)
        )
