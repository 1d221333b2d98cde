"""
STP in Pocket FastAPI application.

This module exposes the publication browser as local REST endpoints:
listing publications, walking topics, rulebooks, sections and
paragraphs (online through the STP API or offline from the SQLite
cache), downloading publications into the cache and choosing the state
whose differences are shown alongside paragraphs.  Responses are JSON
suitable for consumption by a simple front-end.

Run with ``uvicorn app:app``.  Settings come from the environment or a
``.env`` file in the project root (see :mod:`constants`).
"""
import logging
from contextlib import asynccontextmanager
from typing import Any, Callable, Dict, List, Optional

from dotenv import load_dotenv

# load_dotenv respects an existing .env in the project root; it must run
# before constants reads the environment
load_dotenv()

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

import constants
import session
from browser import Browser, OfflineError
from db import cache_summary, delete_publication, init_db
from formatting import paragraph_detail, paragraph_row
from stp_api import NotFoundError, StpApiError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Initialise the cache on startup
    init_db(constants.DB_PATH)
    logger.info("Using cache %s and API %s", constants.DB_PATH, constants.URL_END_POINT)
    yield


app = FastAPI(title=constants.TITLE, lifespan=lifespan)


class SessionRequest(BaseModel):
    user_id: int
    states: Optional[List[str]] = None


class StateRequest(BaseModel):
    index: int


def _browser(offline: bool) -> Browser:
    return Browser(session.current, offline=offline, db_path=constants.DB_PATH)


def _call(fn: Callable[..., Any], *args) -> Any:
    """Run a browser operation and turn its errors into HTTP errors."""
    try:
        return fn(*args)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except StpApiError as e:
        raise HTTPException(status_code=502, detail=str(e))
    except OfflineError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.get("/health")
def health_check() -> Dict[str, str]:
    """Return a simple health status."""
    return {"status": "ok"}


@app.post("/session")
def start_session(payload: SessionRequest) -> Dict[str, Any]:
    """Start browsing as ``user_id``, optionally with the user's state list."""
    states = payload.states or constants.default_states()
    session.current = session.Session(user_id=payload.user_id, states=states)
    return {"user_id": payload.user_id, "states": states}


@app.get("/publications")
def list_publications(offline: bool = False) -> Dict[str, Any]:
    return {"title": constants.TITLE, "publications": _call(_browser(offline).publications)}


@app.post("/publications/{acronym}/download")
def download(acronym: str, offline: bool = False) -> Dict[str, Any]:
    result = _call(_browser(offline).download, acronym)
    return {
        "acronym": result.acronym,
        "complete": result.complete,
        "error": result.error,
        "saved": result.counts,
    }


@app.delete("/publications/{acronym}")
def remove_publication(acronym: str) -> Dict[str, Any]:
    counts = delete_publication(acronym, db_path=constants.DB_PATH)
    if not counts["publication"]:
        raise HTTPException(status_code=404, detail=f"Publication {acronym} is not cached")
    return {"status": "ok", "deleted": counts}


@app.get("/publications/{acronym}/topics")
def list_topics(acronym: str, offline: bool = False) -> Dict[str, Any]:
    return {"acronym": acronym, "topics": _call(_browser(offline).topics, acronym)}


@app.get("/topics/{topic_key}/rulebooks")
def list_rulebooks(topic_key: int, offline: bool = False) -> Dict[str, Any]:
    return {"topic_key": topic_key, "rulebooks": _call(_browser(offline).rulebooks, topic_key)}


@app.get("/rulebooks/{rb_key}/sections")
def list_sections(rb_key: int, offline: bool = False) -> Dict[str, Any]:
    return {"rb_key": rb_key, "sections": _call(_browser(offline).sections, rb_key)}


@app.get("/sections/{section_key}/paragraphs")
def list_paragraphs(section_key: int, offline: bool = False, row: Optional[int] = None) -> Dict[str, Any]:
    """Return a section's paragraphs with their display rows.

    ``row`` is the 1-based row whose detail should be shown; without it the
    detail of the first paragraph is returned.
    """
    paragraphs = _call(_browser(offline).paragraphs, section_key)
    state = session.current.selected_state()
    for p in paragraphs:
        p["row"] = paragraph_row(p, state)
    return {
        "section_key": section_key,
        "state": state,
        "detail": _call(paragraph_detail, paragraphs, row, state),
        "paragraphs": paragraphs,
    }


@app.get("/states")
def get_states() -> Dict[str, Any]:
    current = session.current
    return {
        "states": current.states,
        "selected": current.state_selected,
        "has_choice": current.has_state_choice(),
    }


@app.post("/states/select")
def select_state(payload: StateRequest) -> Dict[str, Any]:
    """Select a state; ``changed`` tells the client whether to refetch paragraphs."""
    changed = _call(session.current.select_state, payload.index)
    return {"changed": changed, "selected": session.current.state_selected, "state": session.current.selected_state()}


@app.get("/cache")
def get_cache() -> Dict[str, Any]:
    return {"db_path": constants.DB_PATH, "counts": cache_summary(constants.DB_PATH)}
