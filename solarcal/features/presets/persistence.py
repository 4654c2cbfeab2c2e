"""
solarcal/features/presets/persistence.py

SQL persistence for anchor presets.

Implements the same contract as InMemoryPresetStore (presets plus the
active selection), scoped to a single user id.
"""

from typing import List, Optional
from datetime import datetime, timezone

from sqlalchemy import select, insert, update, delete, and_
from sqlalchemy.engine import Engine

from solarcal.core.database import active_presets, anchor_presets, get_db_session
from solarcal.models.anchor import AnchorPreset


class SqlPresetStore:
    """
    SQLAlchemy-backed preset store for one user.

    Uses SQLAlchemy Core against the ``anchor_presets`` table.
    """

    def __init__(self, user_id: str, engine: Optional[Engine] = None):
        self.user_id = user_id
        self._engine = engine

    def load(self) -> List[AnchorPreset]:
        """
        Load this user's presets in creation order.

        Returns:
            List of AnchorPreset (possibly empty)
        """
        with get_db_session(self._engine) as session:
            rows = session.execute(
                select(anchor_presets)
                .where(anchor_presets.c.user_id == self.user_id)
                .order_by(anchor_presets.c.created_at, anchor_presets.c.id)
            ).all()

        presets = []
        for row in rows:
            created_at = row.created_at
            # SQLite drops tzinfo on the way back
            if created_at.tzinfo is None:
                created_at = created_at.replace(tzinfo=timezone.utc)
            presets.append(
                AnchorPreset(
                    id=row.id,
                    name=row.name,
                    start_date=row.start_date,
                    created_at=created_at,
                )
            )
        return presets

    def save(self, preset: AnchorPreset) -> None:
        """
        Insert or update a preset row.

        Args:
            preset: AnchorPreset to persist
        """
        with get_db_session(self._engine) as session:
            existing = session.execute(
                select(anchor_presets.c.id).where(
                    and_(
                        anchor_presets.c.id == preset.id,
                        anchor_presets.c.user_id == self.user_id,
                    )
                )
            ).first()

            if existing:
                session.execute(
                    update(anchor_presets)
                    .where(anchor_presets.c.id == preset.id)
                    .values(name=preset.name, start_date=preset.start_date)
                )
            else:
                session.execute(
                    insert(anchor_presets).values(
                        id=preset.id,
                        user_id=self.user_id,
                        name=preset.name,
                        start_date=preset.start_date,
                        created_at=preset.created_at,
                    )
                )

    def remove(self, preset_id: str) -> None:
        with get_db_session(self._engine) as session:
            session.execute(
                delete(anchor_presets).where(
                    and_(
                        anchor_presets.c.id == preset_id,
                        anchor_presets.c.user_id == self.user_id,
                    )
                )
            )

    def load_active(self) -> Optional[str]:
        with get_db_session(self._engine) as session:
            return session.execute(
                select(active_presets.c.preset_id).where(active_presets.c.user_id == self.user_id)
            ).scalar_one_or_none()

    def save_active(self, preset_id: str) -> None:
        """Record ``preset_id`` as this user's selection, replacing any earlier one."""
        now = datetime.now(timezone.utc)
        with get_db_session(self._engine) as session:
            existing = session.execute(
                select(active_presets.c.user_id).where(active_presets.c.user_id == self.user_id)
            ).first()

            if existing:
                session.execute(
                    update(active_presets)
                    .where(active_presets.c.user_id == self.user_id)
                    .values(preset_id=preset_id, updated_at=now)
                )
            else:
                session.execute(
                    insert(active_presets).values(user_id=self.user_id, preset_id=preset_id, updated_at=now)
                )
