"""
Offline cache for STP in Pocket.

This module manages the SQLite database holding downloaded publications.
A publication owns topics, a topic owns rulebooks, a rulebook owns
sections and a section owns paragraphs; the tables reference their parent
by key only, and it is the caller's job (see :mod:`sync`) to insert parents
before children.  The database lives in the local filesystem (``stp.db``
by default, see ``STP_DB_PATH``) and is accessed with Python's built-in
:mod:`sqlite3` module.
"""
import logging
import sqlite3
import time
from typing import Any, Dict, List, Optional

from constants import DB_PATH

logger = logging.getLogger(__name__)

TABLES = ("publication", "topic", "rulebook", "section", "paragraph")


def get_connection(db_path: str = DB_PATH) -> sqlite3.Connection:
    """Return a SQLite connection that is safe for multi-threaded FastAPI use."""
    # Allow multi-thread access and wait if DB is busy
    conn = sqlite3.connect(db_path, timeout=10, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    return conn


def safe_commit(conn: sqlite3.Connection, retries: int = 5, delay: float = 0.5) -> None:
    """Retry commits if the database is locked."""
    for _ in range(retries):
        try:
            conn.commit()
            return
        except sqlite3.OperationalError as e:
            if "database is locked" in str(e).lower():
                time.sleep(delay)
            else:
                raise
    raise sqlite3.OperationalError("Database remained locked after multiple retries")


def init_db(db_path: str = DB_PATH) -> None:
    """Initialise the cache schema.

    Idempotent and safe to call on every start-up.
    """
    conn = get_connection(db_path)
    cur = conn.cursor()
    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS publication (
            acronym TEXT PRIMARY KEY,
            title TEXT NOT NULL,
            publication_id INTEGER NOT NULL
        );
        """
    )
    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS topic (
            topic_key INTEGER PRIMARY KEY,
            acronym TEXT NOT NULL,
            topic TEXT NOT NULL,
            release_num TEXT
        );
        """
    )
    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS rulebook (
            rb_key INTEGER PRIMARY KEY,
            topic_key INTEGER NOT NULL,
            rb_name TEXT NOT NULL,
            summary TEXT
        );
        """
    )
    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS section (
            section_key INTEGER PRIMARY KEY,
            rb_key INTEGER NOT NULL,
            sect_name TEXT NOT NULL
        );
        """
    )
    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS paragraph (
            para_key INTEGER PRIMARY KEY,
            section_key INTEGER NOT NULL,
            para_num TEXT,
            question TEXT,
            guide_note TEXT,
            citation TEXT
        );
        """
    )
    safe_commit(conn)

    conn.close()


def delete_publication(
    acronym: str,
    db_path: str = DB_PATH,
    conn: Optional[sqlite3.Connection] = None,
) -> Dict[str, int]:
    """Remove a publication and everything cached beneath it.

    Children are deleted before their parents so that the key lookups used
    to find them still resolve.  Returns a dict with counts of deleted rows
    per table.  When ``conn`` is given the caller owns the transaction and
    must commit it.
    """
    topics = "SELECT topic_key FROM topic WHERE acronym = ?"
    rulebooks = f"SELECT rb_key FROM rulebook WHERE topic_key IN ({topics})"
    sections = f"SELECT section_key FROM section WHERE rb_key IN ({rulebooks})"

    own = conn is None
    if own:
        conn = get_connection(db_path)
    cur = conn.cursor()
    counts = {}
    cur.execute(f"DELETE FROM paragraph WHERE section_key IN ({sections})", (acronym,))
    counts["paragraph"] = cur.rowcount
    cur.execute(f"DELETE FROM section WHERE rb_key IN ({rulebooks})", (acronym,))
    counts["section"] = cur.rowcount
    cur.execute(f"DELETE FROM rulebook WHERE topic_key IN ({topics})", (acronym,))
    counts["rulebook"] = cur.rowcount
    cur.execute("DELETE FROM topic WHERE acronym = ?", (acronym,))
    counts["topic"] = cur.rowcount
    cur.execute("DELETE FROM publication WHERE acronym = ?", (acronym,))
    counts["publication"] = cur.rowcount
    if own:
        safe_commit(conn)
        conn.close()
    logger.debug("Deleted cached publication %s: %s", acronym, counts)
    return counts


def _insert(sql: str, params: tuple, what: str, db_path: str, conn: Optional[sqlite3.Connection]) -> int:
    """Run a single INSERT and return the new rowid, or -1 if it failed.

    Without ``conn`` the row is committed on its own connection.  With one,
    a failed insert only undoes its own statement and the caller's
    transaction stays open for the rows that follow.
    """
    own = conn is None
    if own:
        conn = get_connection(db_path)
    try:
        cur = conn.cursor()
        cur.execute(sql, params)
        if own:
            safe_commit(conn)
        return cur.lastrowid
    except sqlite3.IntegrityError as e:
        logger.warning("Cannot save %s: %s", what, e)
        if own:
            # release the write lock before the connection goes away
            conn.rollback()
        return -1
    finally:
        if own:
            conn.close()


def add_publication(
    acronym: str,
    title: str,
    publication_id: int,
    db_path: str = DB_PATH,
    conn: Optional[sqlite3.Connection] = None,
) -> int:
    return _insert(
        "INSERT INTO publication (acronym, title, publication_id) VALUES (?, ?, ?)",
        (acronym, title, publication_id),
        f"publication {acronym}",
        db_path,
        conn,
    )


def add_topic(
    topic_key: int,
    acronym: str,
    topic: str,
    release_num: Optional[Any] = None,
    db_path: str = DB_PATH,
    conn: Optional[sqlite3.Connection] = None,
) -> int:
    return _insert(
        "INSERT INTO topic (topic_key, acronym, topic, release_num) VALUES (?, ?, ?, ?)",
        # release number is kept as text, the API is not consistent about its type
        (topic_key, acronym, topic, None if release_num is None else str(release_num)),
        f"topic {topic}",
        db_path,
        conn,
    )


def add_rulebook(
    topic_key: int,
    rb_key: int,
    rb_name: str,
    summary: Optional[str] = None,
    db_path: str = DB_PATH,
    conn: Optional[sqlite3.Connection] = None,
) -> int:
    return _insert(
        "INSERT INTO rulebook (rb_key, topic_key, rb_name, summary) VALUES (?, ?, ?, ?)",
        (rb_key, topic_key, rb_name, summary),
        f"rulebook {rb_name}",
        db_path,
        conn,
    )


def add_section(
    section_key: int,
    rb_key: int,
    sect_name: str,
    db_path: str = DB_PATH,
    conn: Optional[sqlite3.Connection] = None,
) -> int:
    return _insert(
        "INSERT INTO section (section_key, rb_key, sect_name) VALUES (?, ?, ?)",
        (section_key, rb_key, sect_name),
        f"section {sect_name}",
        db_path,
        conn,
    )


def add_paragraph(
    para_key: int,
    section_key: int,
    para_num: Optional[str] = None,
    question: Optional[str] = None,
    guide_note: Optional[str] = None,
    citation: Optional[str] = None,
    db_path: str = DB_PATH,
    conn: Optional[sqlite3.Connection] = None,
) -> int:
    return _insert(
        """
        INSERT INTO paragraph (para_key, section_key, para_num, question, guide_note, citation)
        VALUES (?, ?, ?, ?, ?, ?)
        """,
        (para_key, section_key, para_num, question, guide_note, citation),
        f"paragraph {para_key}",
        db_path,
        conn,
    )


def _fetch(sql: str, params: tuple, db_path: str) -> List[Dict[str, Any]]:
    conn = get_connection(db_path)
    cur = conn.cursor()
    cur.execute(sql, params)
    rows = cur.fetchall()
    conn.close()
    return [dict(row) for row in rows]


def get_publications(db_path: str = DB_PATH) -> List[Dict[str, Any]]:
    """Return all cached publications ordered by acronym."""
    return _fetch("SELECT acronym, title, publication_id FROM publication ORDER BY acronym", (), db_path)


def get_acronyms(db_path: str = DB_PATH) -> List[str]:
    return [row["acronym"] for row in get_publications(db_path)]


def get_topics(acronym: str, db_path: str = DB_PATH) -> List[Dict[str, Any]]:
    return _fetch(
        "SELECT topic_key, acronym, topic, release_num FROM topic WHERE acronym = ? ORDER BY topic_key",
        (acronym,),
        db_path,
    )


def get_rulebooks(topic_key: int, db_path: str = DB_PATH) -> List[Dict[str, Any]]:
    return _fetch(
        "SELECT rb_key, topic_key, rb_name, summary FROM rulebook WHERE topic_key = ? ORDER BY rb_key",
        (topic_key,),
        db_path,
    )


def get_sections(rb_key: int, db_path: str = DB_PATH) -> List[Dict[str, Any]]:
    return _fetch(
        "SELECT section_key, rb_key, sect_name FROM section WHERE rb_key = ? ORDER BY section_key",
        (rb_key,),
        db_path,
    )


def get_paragraphs(section_key: int, db_path: str = DB_PATH) -> List[Dict[str, Any]]:
    return _fetch(
        """
        SELECT para_key, section_key, para_num, question, guide_note, citation
        FROM paragraph WHERE section_key = ? ORDER BY para_key
        """,
        (section_key,),
        db_path,
    )


def cache_summary(db_path: str = DB_PATH) -> Dict[str, int]:
    """Return the number of cached rows per table."""
    conn = get_connection(db_path)
    cur = conn.cursor()
    counts = {}
    for table in TABLES:
        cur.execute(f"SELECT COUNT(*) FROM {table}")
        counts[table] = cur.fetchone()[0]
    conn.close()
    return counts
