"""Repository - data access for progress records and the watchlist.

ProgressStore is the document store the tracker talks to: it reads and
writes whole ShowProgress documents keyed by (user_id, show_id). Writes
are whole-document overwrites (last writer wins) unless the caller passes
expected_version, in which case a stale write raises ConflictError.

Each store opens its own SQLite file; models are bound to it per
operation, so two stores on different paths stay independent.
"""

from __future__ import annotations

import json
import logging
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, List, Optional, Union

from peewee import PeeweeException

from .errors import ConflictError, StoreError
from .models import ALL_MODELS, ProgressRecord, WatchlistItem, close_db, open_db
from .progress import ShowProgress, WatchStatus

logger = logging.getLogger(__name__)

ACTIVE_STATUSES = (WatchStatus.WATCHING, WatchStatus.COMPLETED)


def _naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class SqliteStore:
    """A store that owns its own SQLite database.

    Models are bound to self.db only for the duration of each operation,
    so stores opened on different files never see each other's rows.
    """

    def __init__(self, db_path: Optional[Union[str, Path]] = None):
        """Initialize store and ensure DB is ready.

        Args:
            db_path: SQLite file (default: ~/.config/episode-tracker/tracker.db)
        """
        try:
            self.db = open_db(db_path)
        except PeeweeException as e:
            raise StoreError(f"Could not open database {db_path or 'tracker.db'}: {e}") from e

    def _bound(self):
        return self.db.bind_ctx(ALL_MODELS)

    def close(self) -> None:
        close_db(self.db)


class ProgressStore(SqliteStore):
    """Per-user keyed collection of ShowProgress documents."""

    def get_record(self, user_id: str, show_id: int) -> Optional[ShowProgress]:
        """Load a progress record, or None if the show is not tracked.

        Raises:
            StoreError: If the read fails or the stored document is corrupt
        """
        try:
            with self._bound():
                row = ProgressRecord.get_or_none(
                    (ProgressRecord.user_id == user_id) & (ProgressRecord.show_id == show_id)
                )
        except PeeweeException as e:
            logger.error(f"Failed to read progress for {user_id}/{show_id}: {e}")
            raise StoreError(f"Failed to read progress for show {show_id}: {e}") from e

        if row is None:
            return None
        return self._to_progress(row)

    def put_record(
        self,
        user_id: str,
        show_id: int,
        progress: ShowProgress,
        expected_version: Optional[int] = None,
    ) -> ShowProgress:
        """Write the whole document in one statement.

        Args:
            user_id: Owner of the record
            show_id: Show the record tracks
            progress: Record to store
            expected_version: If given, the write only succeeds when the
                stored version still matches (0 means "must not exist")

        Returns:
            The stored record carrying its new version

        Raises:
            ConflictError: If expected_version no longer matches
            StoreError: If the write fails
        """
        document = json.dumps(progress.to_document())
        try:
            with self._bound(), self.db.atomic():
                existing = ProgressRecord.get_or_none(
                    (ProgressRecord.user_id == user_id) & (ProgressRecord.show_id == show_id)
                )
                current_version = existing.version if existing else 0
                if expected_version is not None and expected_version != current_version:
                    raise ConflictError(user_id, show_id, expected_version, current_version)

                new_version = current_version + 1
                now = datetime.now(timezone.utc).replace(tzinfo=None)
                (ProgressRecord
                 .insert(
                     user_id=user_id,
                     show_id=show_id,
                     status=progress.status.value,
                     last_watched=_naive_utc(progress.last_watched),
                     document=document,
                     version=new_version,
                     updated_at=now,
                 )
                 .on_conflict(
                     conflict_target=[ProgressRecord.user_id, ProgressRecord.show_id],
                     update={
                         ProgressRecord.status: progress.status.value,
                         ProgressRecord.last_watched: _naive_utc(progress.last_watched),
                         ProgressRecord.document: document,
                         ProgressRecord.version: new_version,
                         ProgressRecord.updated_at: now,
                     }
                 )
                 .execute())
        except PeeweeException as e:
            logger.error(f"Failed to write progress for {user_id}/{show_id}: {e}")
            raise StoreError(f"Failed to write progress for show {show_id}: {e}") from e

        logger.debug(f"Stored progress for {user_id}/{show_id} at version {new_version}")
        return replace(progress, version=new_version)

    def delete_record(self, user_id: str, show_id: int) -> bool:
        """Delete a progress record. Returns True if one existed.

        Raises:
            StoreError: If the delete fails
        """
        try:
            with self._bound():
                count = (
                    ProgressRecord.delete()
                    .where((ProgressRecord.user_id == user_id) & (ProgressRecord.show_id == show_id))
                    .execute()
                )
        except PeeweeException as e:
            logger.error(f"Failed to delete progress for {user_id}/{show_id}: {e}")
            raise StoreError(f"Failed to delete progress for show {show_id}: {e}") from e
        return count > 0

    def list_records(
        self,
        user_id: str,
        statuses: Optional[Iterable[WatchStatus]] = ACTIVE_STATUSES,
    ) -> List[ShowProgress]:
        """All of a user's records, most recently watched first.

        Args:
            user_id: Owner of the records
            statuses: Only include these statuses (None for all)
        """
        try:
            with self._bound():
                query = ProgressRecord.select().where(ProgressRecord.user_id == user_id)
                if statuses is not None:
                    query = query.where(ProgressRecord.status.in_([s.value for s in statuses]))
                rows = list(query.order_by(ProgressRecord.last_watched.desc(), ProgressRecord.show_id))
        except PeeweeException as e:
            logger.error(f"Failed to list progress for {user_id}: {e}")
            raise StoreError(f"Failed to list progress: {e}") from e
        return [self._to_progress(row) for row in rows]

    def tracked_show_ids(self, user_id: str) -> List[int]:
        """Ids of every show with a progress record, whatever its status."""
        try:
            with self._bound():
                query = ProgressRecord.select(ProgressRecord.show_id).where(ProgressRecord.user_id == user_id)
                return [row.show_id for row in query]
        except PeeweeException as e:
            raise StoreError(f"Failed to list tracked shows: {e}") from e

    @staticmethod
    def _to_progress(row: ProgressRecord) -> ShowProgress:
        try:
            return ShowProgress.from_document(row.show_id, json.loads(row.document), version=row.version)
        except (ValueError, KeyError, TypeError) as e:
            raise StoreError(f"Corrupt progress document for show {row.show_id}: {e}") from e


class WatchlistStore(SqliteStore):
    """Shows a user saved for later."""

    def add(
        self,
        user_id: str,
        show_id: int,
        title: Optional[str] = None,
        poster_path: Optional[str] = None,
        media_type: str = "tv",
    ) -> WatchlistItem:
        """Add (or refresh) a watchlist entry."""
        try:
            with self._bound():
                item, created = WatchlistItem.get_or_create(
                    user_id=user_id,
                    show_id=show_id,
                    defaults={
                        'title': title,
                        'poster_path': poster_path,
                        'media_type': media_type,
                    }
                )
                if not created:
                    if title:
                        item.title = title
                    if poster_path:
                        item.poster_path = poster_path
                    item.save()
        except PeeweeException as e:
            raise StoreError(f"Failed to add show {show_id} to watchlist: {e}") from e
        return item

    def remove(self, user_id: str, show_id: int) -> bool:
        """Remove a watchlist entry. Returns True if one existed."""
        try:
            with self._bound():
                count = (
                    WatchlistItem.delete()
                    .where((WatchlistItem.user_id == user_id) & (WatchlistItem.show_id == show_id))
                    .execute()
                )
        except PeeweeException as e:
            raise StoreError(f"Failed to remove show {show_id} from watchlist: {e}") from e
        return count > 0

    def contains(self, user_id: str, show_id: int) -> bool:
        try:
            with self._bound():
                return WatchlistItem.select().where(
                    (WatchlistItem.user_id == user_id) & (WatchlistItem.show_id == show_id)
                ).exists()
        except PeeweeException as e:
            raise StoreError(f"Failed to read watchlist: {e}") from e

    def list(self, user_id: str, exclude: Iterable[int] = (), media_type: Optional[str] = None) -> List[WatchlistItem]:
        """Watchlist entries, newest first.

        Args:
            user_id: Owner of the watchlist
            exclude: Show ids to leave out (e.g. shows already tracked)
            media_type: Only include this media type ("tv" or "movie")
        """
        exclude = list(exclude)
        try:
            with self._bound():
                query = WatchlistItem.select().where(WatchlistItem.user_id == user_id)
                if exclude:
                    query = query.where(WatchlistItem.show_id.not_in(exclude))
                if media_type:
                    query = query.where(WatchlistItem.media_type == media_type)
                return list(query.order_by(WatchlistItem.added_at.desc(), WatchlistItem.id.desc()))
        except PeeweeException as e:
            raise StoreError(f"Failed to list watchlist: {e}") from e
