from __future__ import annotations

import re
from contextlib import contextmanager
from typing import Any, Dict, List, Mapping, Optional

import mysql.connector
from mysql.connector import errorcode

from ..core.exceptions import ConflictError
from .connection import DatabaseConnection

_DUP_KEY_RE = re.compile(r"for key '(?:[^'.]+\.)?([^']+)'")


def duplicate_key_name(err: mysql.connector.Error) -> Optional[str]:
    """Name of the unique index a duplicate-entry error refers to."""
    match = _DUP_KEY_RE.search(str(getattr(err, "msg", "") or err))
    return match.group(1) if match else None


@contextmanager
def db_cursor(
    conn_factory: DatabaseConnection,
    *,
    dictionary: bool = True,
    conflicts: Optional[Mapping[str, str]] = None,
):
    """Yield (conn, cursor); commit on success, roll back on error.

    Duplicate-key violations are raised as ConflictError, with the message
    looked up by index name in ``conflicts``.
    """
    conn = conn_factory.connect()
    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except mysql.connector.IntegrityError as e:
        conn.rollback()
        if e.errno != errorcode.ER_DUP_ENTRY:
            raise
        key = duplicate_key_name(e)
        raise ConflictError((conflicts or {}).get(key, "Duplicate entry")) from e
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])


def like_pattern(term: str) -> str:
    """Substring LIKE pattern with wildcards in the term escaped."""
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"
