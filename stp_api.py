"""Client for the remote STP JSON API.

Every call is a single GET against ``URL_END_POINT``.  Failures raise
:class:`StpApiError` (or :class:`NotFoundError` for a 404) after being
logged; there is no retry.
"""
import logging
from typing import Any, Dict, List, Optional

import requests

import constants
from formatting import state_path

logger = logging.getLogger(__name__)


class StpApiError(Exception):
    """Raised when the STP API cannot be reached or returns an unusable response."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(StpApiError):
    pass


def _get(path: str, params: Optional[Dict[str, Any]] = None) -> Any:
    url = constants.URL_END_POINT + path
    try:
        res = requests.get(url, params=params, timeout=constants.REQUEST_TIMEOUT)
    except requests.RequestException as e:
        logger.error("GET %s failed: %s", url, e)
        raise StpApiError(f"Cannot reach STP API: {e}") from e

    if res.status_code == 404:
        logger.warning("GET %s returned 404", url)
        raise NotFoundError(f"Not found: {path}", status_code=404)
    if res.status_code != 200:
        logger.error("GET %s: statusCode should be 200, but is %s: %s", url, res.status_code, res.text)
        raise StpApiError(f"Unexpected status {res.status_code} from {path}", status_code=res.status_code)

    try:
        return res.json()
    except ValueError as e:
        logger.error("GET %s returned a body that is not JSON", url)
        raise StpApiError(f"Invalid JSON from {path}") from e


def _get_list(path: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
    data = _get(path, params)
    if not isinstance(data, list):
        raise StpApiError(f"Expected a JSON array from {path}, got {type(data).__name__}")
    return data


def fetch_publications(user_id: int) -> List[Dict[str, Any]]:
    """Return the publications available to ``user_id`` as ``{acronym, title}`` dicts."""
    return _get_list("Publications", {"userId": user_id})


def download_publication(acronym: str) -> Dict[str, Any]:
    """Return the full publication payload with ``pb``, ``tp``, ``rb``, ``st`` and ``pg`` keys."""
    data = _get("Publications", {"acronym": acronym})
    if not isinstance(data, dict):
        raise StpApiError(f"Expected a JSON object for publication {acronym}")
    return data


def fetch_topics(acronym: str) -> List[Dict[str, Any]]:
    return _get_list("Topic", {"acronym": acronym})


def fetch_rulebooks(topic_key: int) -> List[Dict[str, Any]]:
    return _get_list("Rulebook", {"topicKey": topic_key})


def fetch_sections(rb_key: int) -> List[Dict[str, Any]]:
    return _get_list("Section", {"rbKey": rb_key})


def fetch_paragraphs(section_key: int, state: Optional[str] = None) -> List[Dict[str, Any]]:
    """Return the paragraphs of a section.

    With a ``state`` the state-difference endpoint is used instead, which
    interleaves the state's own entries with the federal paragraphs.
    """
    if state is None:
        return _get_list("Para", {"sectionKey": section_key})
    return _get_list(f"ParaController/{section_key}/{state_path(state)}")
