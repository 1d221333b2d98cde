import json

import pytest
import requests

import constants
import db

SAMPLE_PUBLICATION = {
    "pb": {"PublicationID": 7, "Acronym": "CALO", "Title": "OSHA Auditing: California Occupational"},
    "tp": [
        {"topicKey": 10, "topic": "Air Emissions", "releaseNum": 3},
        {"topicKey": 11, "topic": "Hazardous Waste", "releaseNum": None},
    ],
    "rb": [
        {"topicKey": 10, "rbKey": 100, "rbName": "Boilers", "summary": "Boiler permits"},
        {"topicKey": 11, "rbKey": 110, "rbName": "Storage", "summary": None},
    ],
    "st": [
        {"sectionKey": 1000, "rbKey": 100, "sectName": "Permits"},
        {"sectionKey": 1100, "rbKey": 110, "sectName": "Containers"},
    ],
    "pg": [
        {"paraKey": 1, "sectionKey": 1000, "paraNum": "AE.1.1", "question": "Is a permit posted?",
         "guideNote": "Check the boiler room.", "citation": "40 CFR 60"},
        {"paraKey": 2, "sectionKey": 1000, "paraNum": "AE.1.2", "question": "Are logs kept?",
         "guideNote": "Three years.", "citation": None},
        {"paraKey": 3, "sectionKey": 1100, "paraNum": "HW.1.1", "question": "Are containers closed?",
         "guideNote": "Except when adding waste.", "citation": "40 CFR 262"},
    ],
}


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=None):
        self.status_code = status_code
        self._payload = payload
        self.text = text if text is not None else json.dumps(payload)

    def json(self):
        if self._payload is None:
            return json.loads(self.text)
        return self._payload


class FakeApi:
    """Stands in for ``requests.get``; routes are keyed by path relative to the end point."""

    def __init__(self):
        self.routes = {}
        self.calls = []

    def add(self, path, response, **params):
        key = (path, tuple(sorted((k, str(v)) for k, v in params.items())))
        self.routes[key] = response

    def __call__(self, url, params=None, timeout=None):
        path = url[len(constants.URL_END_POINT):]
        self.calls.append((path, params or {}))
        key = (path, tuple(sorted((k, str(v)) for k, v in (params or {}).items())))
        return self.routes.get(key, FakeResponse(404, text="Not Found"))


@pytest.fixture
def db_path(tmp_path, monkeypatch):
    path = str(tmp_path / "stp.db")
    db.init_db(path)
    monkeypatch.setattr(constants, "DB_PATH", path)
    return path


@pytest.fixture
def fake_api(monkeypatch):
    api = FakeApi()
    monkeypatch.setattr(requests, "get", api)
    return api


@pytest.fixture
def sample_publication():
    return json.loads(json.dumps(SAMPLE_PUBLICATION))
