"""User model definitions."""

import os
import re
import threading
import time
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Index, String
from userapi.database import Base

OBJECT_ID_PATTERN = re.compile(r"^[0-9a-f]{24}$")

_process_unique = os.urandom(5)
_counter_lock = threading.Lock()
_counter = int.from_bytes(os.urandom(3), "big")


def generate_object_id() -> str:
    """Return a 24-hex id: 4-byte timestamp, 5 process bytes, 3-byte counter."""
    global _counter
    with _counter_lock:
        _counter = (_counter + 1) % 0x1000000
        counter = _counter
    raw = int(time.time()).to_bytes(4, "big") + _process_unique + counter.to_bytes(3, "big")
    return raw.hex()


def is_object_id(value: str) -> bool:
    return bool(OBJECT_ID_PATTERN.match(value or ""))


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """Represents an account; ``password`` holds a bcrypt hash."""
    __tablename__ = "users"

    id = Column(String(24), primary_key=True, default=generate_object_id)
    name = Column(String, nullable=False)
    username = Column(String, unique=True, index=True, nullable=False)
    email = Column(String, nullable=False)
    password = Column(String, nullable=False)
    role = Column(String, nullable=False)  # mentor/prodigy/...
    token = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (
        Index("idx_users_created_id", "created_at", "id"),
    )
