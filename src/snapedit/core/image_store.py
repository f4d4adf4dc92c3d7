"""SQLite-backed store for shared images.

Records are write-once: a row is inserted by :meth:`ImageStore.create` and
then only ever read back by id.  There is no update, delete, or expiry path.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
import uuid
from dataclasses import dataclass
from pathlib import Path

from snapedit.core.errors import NotFoundError, StorageError, ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImageRecord:
    """A stored image payload and its metadata."""

    id: str
    data: str
    mime_type: str
    created_at: str


class ImageStore:
    """Manage the ``images`` table of the SQLite database.

    The store holds a single connection for its lifetime.  FastAPI runs
    blocking work in a thread pool, so the connection is shared across
    threads and every statement runs under a lock.

    Usage::

        with ImageStore(config.db_path) as store:
            image_id = store.create(b64_data, "image/png")
            record = store.get(image_id)
    """

    def __init__(self, db_path: Path | str):
        """Initialize the store without touching the filesystem.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.Lock()

    def __enter__(self) -> ImageStore:
        self.open()
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    def open(self) -> None:
        """Connect to the database and create the schema if it doesn't exist.

        Calling ``open()`` on an already open store is a no-op.

        Raises:
            StorageError: If the database cannot be opened or initialized.
        """
        if self._conn is not None:
            return

        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(self.db_path, check_same_thread=False)
            conn.row_factory = sqlite3.Row
            conn.execute("""
                CREATE TABLE IF NOT EXISTS images (
                    id TEXT PRIMARY KEY,
                    data TEXT NOT NULL,
                    mime_type TEXT NOT NULL,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
                """)
            conn.commit()
        except (sqlite3.Error, OSError) as e:
            logger.exception(f"Error opening image database at {self.db_path}")
            raise StorageError() from e

        self._conn = conn
        logger.info(f"Opened image database at {self.db_path}")

    def close(self) -> None:
        """Close the connection.  Safe to call more than once."""
        with self._lock:
            if self._conn is None:
                return
            self._conn.close()
            self._conn = None
        logger.info(f"Closed image database at {self.db_path}")

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise StorageError("Image store is not open")
        return self._conn

    def create(self, data: str | None, mime_type: str | None) -> str:
        """Insert a new image record.

        Args:
            data: Base64-encoded image payload
            mime_type: Content type of the payload

        Returns:
            The generated record id

        Raises:
            ValidationError: If ``data`` or ``mime_type`` is missing or empty.
                Nothing is written in that case.
            StorageError: If the insert fails.
        """
        if not data or not mime_type:
            raise ValidationError("Missing data or mimeType")

        image_id = str(uuid.uuid4())

        with self._lock:
            conn = self._connection()
            try:
                conn.execute(
                    "INSERT INTO images (id, data, mime_type) VALUES (?, ?, ?)",
                    (image_id, data, mime_type),
                )
                conn.commit()
            except sqlite3.Error as e:
                logger.exception(f"Error saving image {image_id}")
                raise StorageError("Failed to save image") from e

        logger.info(f"Saved image {image_id} ({mime_type}, {len(data)} chars)")
        return image_id

    def get(self, image_id: str) -> ImageRecord:
        """Fetch a record by id.

        Raises:
            NotFoundError: If no record has this id.
            StorageError: If the query fails.
        """
        with self._lock:
            conn = self._connection()
            try:
                row = conn.execute(
                    "SELECT id, data, mime_type, created_at FROM images WHERE id = ?",
                    (image_id,),
                ).fetchone()
            except sqlite3.Error as e:
                logger.exception(f"Error retrieving image {image_id}")
                raise StorageError("Failed to retrieve image") from e

        if row is None:
            logger.debug(f"Image not found: {image_id}")
            raise NotFoundError(image_id)

        return ImageRecord(
            id=row["id"],
            data=row["data"],
            mime_type=row["mime_type"],
            created_at=str(row["created_at"]),
        )

    def count(self) -> int:
        """Get total number of stored images."""
        with self._lock:
            conn = self._connection()
            try:
                result = conn.execute("SELECT COUNT(*) FROM images").fetchone()
            except sqlite3.Error as e:
                logger.exception("Error counting images")
                raise StorageError() from e
        return result[0] if result else 0
