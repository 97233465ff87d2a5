"""Peewee ORM models - the local document store for progress records."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

from peewee import (
    Model,
    SqliteDatabase,
    CharField,
    IntegerField,
    TextField,
    AutoField,
    DateTimeField,
)


PRAGMAS = {
    'journal_mode': 'wal',
    'cache_size': -64 * 1000,  # 64MB
    'foreign_keys': 1,
}


def default_db_path() -> Path:
    """Get database path, creating parent directories if needed."""
    p = Path.home() / ".config" / "episode-tracker" / "tracker.db"
    p.parent.mkdir(parents=True, exist_ok=True)
    return p


# Unbound default. Each store opens its own database with open_db() and
# binds the models to it per operation with bind_ctx().
database = SqliteDatabase(None)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class BaseModel(Model):
    """Base model with database binding."""

    class Meta:
        database = database


class ProgressRecord(BaseModel):
    """One user's progress document for one show.

    The document column holds the full JSON record; status and
    last_watched are copied out so collection scans can filter and sort.
    """

    id = AutoField()
    user_id = CharField(index=True)
    show_id = IntegerField()
    status = CharField(index=True)  # watching, completed, dropped
    last_watched = DateTimeField(null=True)  # naive UTC
    document = TextField()
    version = IntegerField(default=1)
    updated_at = DateTimeField(default=_utcnow)

    class Meta:
        table_name = 'tv_progress'
        indexes = (
            (('user_id', 'show_id'), True),
        )


class WatchlistItem(BaseModel):
    """A show the user saved for later but is not tracking yet."""

    id = AutoField()
    user_id = CharField(index=True)
    show_id = IntegerField()
    title = CharField(null=True)
    poster_path = CharField(null=True)
    media_type = CharField(default='tv')  # tv, movie
    added_at = DateTimeField(default=_utcnow)

    class Meta:
        table_name = 'watchlist'
        indexes = (
            (('user_id', 'show_id'), True),
        )


# All models for table creation
ALL_MODELS = [ProgressRecord, WatchlistItem]


def open_db(path: Optional[Union[str, Path]] = None) -> SqliteDatabase:
    """Open a database file and create tables.

    Args:
        path: SQLite file (default: ~/.config/episode-tracker/tracker.db)

    Returns:
        A database the caller binds models to with bind_ctx(ALL_MODELS)
    """
    target = str(path) if path is not None else str(default_db_path())
    db = SqliteDatabase(target, pragmas=PRAGMAS)
    with db.bind_ctx(ALL_MODELS):
        db.create_tables(ALL_MODELS, safe=True)
    return db


def close_db(db: SqliteDatabase) -> None:
    """Close database connection."""
    if not db.is_closed():
        db.close()
