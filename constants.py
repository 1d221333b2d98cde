"""
Runtime settings for STP in Pocket.

Values are read from the environment so that a ``.env`` file (loaded by
``app.py`` through python-dotenv) or the shell can point the browser at a
different API host or cache file without code changes.
"""
import os
from typing import List

TITLE = "STP in Pocket"


def _end_point(url: str) -> str:
    # paths are appended directly, so the base must end with a slash
    return url if url.endswith("/") else url + "/"


URL_END_POINT = _end_point(os.getenv("STP_API_URL", "http://localhost:8080/api/"))
DB_PATH = os.getenv("STP_DB_PATH", "stp.db")
REQUEST_TIMEOUT = float(os.getenv("STP_REQUEST_TIMEOUT", "30"))


def default_states() -> List[str]:
    """Return the state list configured through ``STP_STATES``.

    The first entry is the "no state" choice; selecting it shows federal
    text only.
    """
    raw = os.getenv("STP_STATES", "Federal")
    states = [s.strip() for s in raw.split(",") if s.strip()]
    return states or ["Federal"]
