"""
Navigation over the publication hierarchy.

A :class:`Browser` answers one question per level (which publications,
which topics of a publication, ...) from the remote API when online or
from the offline cache otherwise.  Rows are returned as plain dicts with
snake_case keys in both modes so callers never need to know the source.
"""
import logging
from typing import Any, Dict, List

from pydantic import ValidationError

import db
import stp_api
import sync
from constants import DB_PATH
from formatting import publication_label, simplify_question, split_publication_label
from models import Paragraph, PublicationSummary, Rulebook, Section, Topic
from session import Session

logger = logging.getLogger(__name__)


class OfflineError(Exception):
    """Raised for operations that need the API while browsing offline."""


def _rows(model, items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    try:
        return [model.model_validate(item).model_dump() for item in items]
    except ValidationError as e:
        # a bad upstream record is an API fault, not a bad request
        logger.error("Unexpected %s record from STP API: %s", model.__name__, e)
        raise stp_api.StpApiError(f"Malformed {model.__name__} record from STP API") from e


class Browser:
    def __init__(self, session: Session, offline: bool = False, db_path: str = DB_PATH):
        self.session = session
        self.offline = offline
        self.db_path = db_path

    def publications(self) -> List[Dict[str, Any]]:
        """Return ``{acronym, title, label, cached}`` for each publication."""
        if self.offline:
            items = db.get_publications(self.db_path)
        else:
            if self.session.user_id is None:
                raise ValueError("No user is signed in")
            items = _rows(PublicationSummary, stp_api.fetch_publications(self.session.user_id))

        cached = set(db.get_acronyms(self.db_path))
        return [
            {
                "acronym": item["acronym"],
                "title": item["title"],
                "label": publication_label(item["acronym"], item["title"]),
                "cached": item["acronym"] in cached,
            }
            for item in items
        ]

    def is_cached(self, label: str) -> bool:
        acronym, _ = split_publication_label(label)
        return acronym in db.get_acronyms(self.db_path)

    def topics(self, acronym: str) -> List[Dict[str, Any]]:
        if self.offline:
            return db.get_topics(acronym, self.db_path)
        return _rows(Topic, stp_api.fetch_topics(acronym))

    def rulebooks(self, topic_key: int) -> List[Dict[str, Any]]:
        if self.offline:
            return db.get_rulebooks(topic_key, self.db_path)
        return _rows(Rulebook, stp_api.fetch_rulebooks(topic_key))

    def sections(self, rb_key: int) -> List[Dict[str, Any]]:
        if self.offline:
            return db.get_sections(rb_key, self.db_path)
        return _rows(Section, stp_api.fetch_sections(rb_key))

    def paragraphs(self, section_key: int) -> List[Dict[str, Any]]:
        """Return the paragraphs of a section.

        Online, the selected state's differences are included and their
        type codes simplified for display.  The cache only holds federal
        paragraphs.
        """
        if self.offline:
            return db.get_paragraphs(section_key, self.db_path)

        rows = _rows(Paragraph, stp_api.fetch_paragraphs(section_key, self.session.state_for_request()))
        for row in rows:
            row["question"] = simplify_question(row["question"])
        return rows

    def download(self, acronym: str) -> sync.SyncResult:
        if self.offline:
            raise OfflineError("Publications cannot be downloaded while offline")
        logger.info("Downloading publication %s", acronym)
        return sync.download_and_save(acronym, db_path=self.db_path)
