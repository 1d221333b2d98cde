"""
Offline-cache synchronisation.

A downloaded publication replaces whatever was cached for it: the old
rows are deleted and the payload's records are inserted in hierarchy
order (publication, topics, rulebooks, sections, paragraphs) so that every
child is written after its parent.  The sync stops at the first record it
cannot read or store; rows written before that point are kept, and the
returned :class:`SyncResult` says where it stopped.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Type

from pydantic import BaseModel, ValidationError

import db
import stp_api
from constants import DB_PATH
from models import Paragraph, Publication, Rulebook, Section, Topic

logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
    acronym: Optional[str] = None
    counts: Dict[str, int] = field(default_factory=lambda: {t: 0 for t in db.TABLES})
    complete: bool = True
    error: Optional[str] = None

    def fail(self, reason: str) -> "SyncResult":
        logger.warning("Publication sync stopped: %s", reason)
        self.complete = False
        self.error = reason
        return self


class _Stop(Exception):
    pass


def _records(payload: Dict[str, Any], key: str) -> List[Any]:
    items = payload.get(key)
    if items is None:
        return []
    if not isinstance(items, list):
        raise _Stop(f"'{key}' is not a list")
    return items


def _parse(model: Type[BaseModel], item: Any, what: str, required: tuple = ()) -> Any:
    try:
        record = model.model_validate(item)
    except ValidationError as e:
        raise _Stop(f"malformed {what}: {e.errors()[0]['loc']}") from e
    for name in required:
        if getattr(record, name) is None:
            raise _Stop(f"malformed {what}: missing {name}")
    return record


def _store(table: str, result: SyncResult, insert: Callable[[], int], what: str) -> None:
    if insert() == -1:
        raise _Stop(f"cannot save {what}")
    result.counts[table] += 1


def save_publication(payload: Dict[str, Any], db_path: str = DB_PATH) -> SyncResult:
    """Replace the cached copy of a publication with ``payload``.

    ``payload`` is the object returned by ``Publications?acronym=``.  All
    rows go through one connection and are committed together at the end,
    including the ones written before a stop.
    """
    result = SyncResult()
    pb = payload.get("pb")
    if pb is None:
        # without a publication there is no acronym to attach children to
        return result.fail("payload has no publication")

    conn = db.get_connection(db_path)
    try:
        pub = _parse(Publication, pb, "publication")
        result.acronym = pub.acronym
        logger.debug("acronym: %s, title: %s, id: %s", pub.acronym, pub.title, pub.publication_id)
        db.delete_publication(pub.acronym, conn=conn)
        _store("publication", result,
               lambda: db.add_publication(pub.acronym, pub.title, pub.publication_id, conn=conn),
               f"publication {pub.acronym}")

        for item in _records(payload, "tp"):
            tp = _parse(Topic, item, "topic")
            _store("topic", result,
                   lambda: db.add_topic(tp.topic_key, pub.acronym, tp.topic,
                                        release_num=tp.release_num, conn=conn),
                   f"topic {tp.topic}")

        for item in _records(payload, "rb"):
            rb = _parse(Rulebook, item, "rulebook", required=("topic_key",))
            _store("rulebook", result,
                   lambda: db.add_rulebook(rb.topic_key, rb.rb_key, rb.rb_name,
                                           summary=rb.summary, conn=conn),
                   f"rulebook {rb.rb_name}")

        for item in _records(payload, "st"):
            st = _parse(Section, item, "section", required=("rb_key",))
            _store("section", result,
                   lambda: db.add_section(st.section_key, st.rb_key, st.sect_name, conn=conn),
                   f"section {st.sect_name}")

        for item in _records(payload, "pg"):
            pg = _parse(Paragraph, item, "paragraph", required=("section_key",))
            _store("paragraph", result,
                   lambda: db.add_paragraph(pg.para_key, pg.section_key, para_num=pg.para_num,
                                            question=pg.question, guide_note=pg.guide_note,
                                            citation=pg.citation, conn=conn),
                   f"paragraph {pg.para_key}")
    except _Stop as e:
        return result.fail(str(e))
    finally:
        db.safe_commit(conn)
        conn.close()

    logger.info("Saved publication %s: %s", result.acronym, result.counts)
    return result


def download_and_save(acronym: str, db_path: str = DB_PATH) -> SyncResult:
    """Download a publication from the API and store it in the cache.

    API errors propagate to the caller; nothing is deleted when the
    download fails.
    """
    payload = stp_api.download_publication(acronym)
    return save_publication(payload, db_path=db_path)
