import pytest
from fastapi.testclient import TestClient

import db
import session
import sync
from app import app
from conftest import FakeResponse


@pytest.fixture
def client(db_path, fake_api, monkeypatch):
    monkeypatch.setattr(session, "current", session.Session(user_id=5, states=["Federal", "New York"]))
    with TestClient(app) as c:
        yield c


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_start_session(client):
    r = client.post("/session", json={"user_id": 9, "states": ["Federal"]})
    assert r.status_code == 200
    assert session.current.user_id == 9
    assert client.get("/states").json() == {"states": ["Federal"], "selected": 0, "has_choice": False}


def test_online_publications_mark_cached(client, fake_api, db_path, sample_publication):
    sync.save_publication(sample_publication, db_path=db_path)
    fake_api.add(
        "Publications",
        FakeResponse(payload=[{"acronym": "CALO", "title": "California"}, {"acronym": "TXLO", "title": "Texas"}]),
        userId=5,
    )

    pubs = client.get("/publications").json()["publications"]

    assert [p["label"] for p in pubs] == ["CALO: California", "TXLO: Texas"]
    assert [p["cached"] for p in pubs] == [True, False]


def test_download_then_browse_offline(client, fake_api, sample_publication):
    fake_api.add("Publications", FakeResponse(payload=sample_publication), acronym="CALO")

    r = client.post("/publications/CALO/download")
    assert r.status_code == 200
    assert r.json()["complete"] is True
    assert r.json()["saved"]["paragraph"] == 3

    pubs = client.get("/publications", params={"offline": True}).json()["publications"]
    assert pubs[0]["label"] == "CALO: OSHA Auditing: California Occupational"
    topics = client.get("/publications/CALO/topics", params={"offline": True}).json()["topics"]
    assert [t["topic_key"] for t in topics] == [10, 11]
    rulebooks = client.get("/topics/10/rulebooks", params={"offline": True}).json()["rulebooks"]
    assert rulebooks[0]["rb_name"] == "Boilers"
    sections = client.get("/rulebooks/100/sections", params={"offline": True}).json()["sections"]
    assert sections[0]["sect_name"] == "Permits"

    body = client.get("/sections/1000/paragraphs", params={"offline": True, "row": 2}).json()
    assert [p["row"] for p in body["paragraphs"]] == ["AE.1.1：40 CFR 60", "AE.1.2："]
    assert body["detail"] == "AE.1.2 Are logs kept?<br><br>Three years."


def test_online_paragraphs_with_state(client, fake_api):
    fake_api.add(
        "ParaController/1000/New%20York",
        FakeResponse(payload=[
            {"paraKey": 1, "paraNum": "AE.1", "question": "Auditable_Full", "guideNote": "NY rule", "citation": "NYCRR"},
            {"paraKey": 2, "paraNum": "AE.1", "question": "Posted?", "guideNote": "Check.", "citation": "40 CFR"},
        ]),
    )

    r = client.post("/states/select", json={"index": 1})
    assert r.json() == {"changed": True, "selected": 1, "state": "New York"}

    body = client.get("/sections/1000/paragraphs").json()
    assert body["state"] == "New York"
    assert body["paragraphs"][0]["question"] == "Audit"
    assert body["paragraphs"][0]["row"] == "New York-AE.1：NYCRR (Audit)"
    assert body["detail"] == "AE.1 Posted?<br><br>Check."


def test_online_sections(client, fake_api):
    fake_api.add("Section", FakeResponse(payload=[{"sectionKey": 1000, "sectName": "Permits"}]), rbKey=100)

    sections = client.get("/rulebooks/100/sections").json()["sections"]

    assert sections == [{"section_key": 1000, "rb_key": None, "sect_name": "Permits"}]


def test_api_errors_map_to_status(client, fake_api):
    assert client.get("/publications/CALO/topics").status_code == 404
    fake_api.add("Rulebook", FakeResponse(503, text="down"), topicKey=10)
    assert client.get("/topics/10/rulebooks").status_code == 502


def test_bad_state_index(client):
    assert client.post("/states/select", json={"index": 7}).status_code == 400


def test_bad_row(client, db_path, sample_publication):
    sync.save_publication(sample_publication, db_path=db_path)
    r = client.get("/sections/1100/paragraphs", params={"offline": True, "row": 5})
    assert r.status_code == 400


def test_publications_need_a_user(client, monkeypatch):
    monkeypatch.setattr(session, "current", session.Session(states=["Federal"]))
    assert client.get("/publications").status_code == 400


def test_delete_publication(client, db_path, sample_publication):
    sync.save_publication(sample_publication, db_path=db_path)

    r = client.delete("/publications/CALO")
    assert r.status_code == 200
    assert r.json()["deleted"]["paragraph"] == 3
    assert client.get("/cache").json()["counts"] == {t: 0 for t in db.TABLES}
    assert client.delete("/publications/CALO").status_code == 404


def test_negative_row(client, db_path, sample_publication):
    sync.save_publication(sample_publication, db_path=db_path)
    r = client.get("/sections/1100/paragraphs", params={"offline": True, "row": -3})
    assert r.status_code == 400


def test_malformed_upstream_record_is_bad_gateway(client, fake_api):
    fake_api.add("Section", FakeResponse(payload=[{"sectName": "no key"}]), rbKey=100)
    assert client.get("/rulebooks/100/sections").status_code == 502


def test_download_refused_offline(client):
    r = client.post("/publications/CALO/download", params={"offline": True})
    assert r.status_code == 409
