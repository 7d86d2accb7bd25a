# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false

"""
Tests for persistence: the record store, the local blob backend (SQLite),
the realtime REST backend (against an in-process fake of the document
store) and startup backend selection.
"""

import json
import re
from unittest.mock import MagicMock, patch

import httpx
import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.exc import OperationalError

from roster.core.config import settings
from roster.core.dependencies import select_backend
from roster.models.domain import Player
from roster.repositories.local_backend import LocalBackend, generate_id
from roster.repositories.player_repository import PlayerRepository
from roster.repositories.realtime_backend import RealtimeBackend, parse_snapshot
from roster.services.form_controller import FormController
from roster.services.notifier import Notifier

BASE_URL = "https://roster-test.firebaseio.com"


def make_player(pid=None, surname="Rossi", first_name="Mario", **extra):
    return Player(id=pid, surname=surname, first_name=first_name, phone="111",
                  level="advanced", empathy_rating=4, **extra)


def json_response(payload, status=200):
    return httpx.Response(
        status,
        content=json.dumps(payload).encode(),
        headers={"content-type": "application/json"},
    )


class FakeDocumentStore:
    """Just enough of the realtime database REST surface for the backend."""

    def __init__(self, data=None):
        self.data = dict(data or {})
        self.requests = []
        self.fail = False
        self.fail_reads = False
        self._counter = 0

    def handler(self, request):
        self.requests.append(request)
        if self.fail:
            return json_response({"error": "unavailable"}, status=503)
        path = request.url.path
        if path == "/.json":
            return json_response({"players": True})
        if request.headers.get("accept") == "text/event-stream":
            return httpx.Response(
                200,
                text='event: put\ndata: {"path": "/", "data": null}\n\n',
                headers={"content-type": "text/event-stream"},
            )
        if path == "/players.json":
            if request.method == "GET":
                if self.fail_reads:
                    return json_response({"error": "unavailable"}, status=503)
                return json_response(self.data or None)
            if request.method == "POST":
                self._counter += 1
                key = f"-Nkey{self._counter}"
                self.data[key] = json.loads(request.content)
                return json_response({"name": key})
        match = re.fullmatch(r"/players/([^/]+)\.json", path)
        if match:
            key = match.group(1)
            if request.method == "PATCH":
                body = json.loads(request.content)
                self.data.setdefault(key, {}).update(body)
                return json_response(body)
            if request.method == "DELETE":
                self.data.pop(key, None)
                return json_response(None)
        return json_response({"error": "not found"}, status=404)


# ============================================
# Fixtures
# ============================================
@pytest.fixture
def store():
    return PlayerRepository()


@pytest.fixture
def notifier():
    return Notifier(duration=60)


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite:///{tmp_path / 'roster.db'}"


@pytest.fixture
def local(store, notifier, db_url):
    backend = LocalBackend(store, notifier, database_url=db_url)
    backend.start()
    yield backend
    backend.close()


@pytest.fixture
def fake_db():
    return FakeDocumentStore({
        "-Nb": {"surname": "Bianchi", "firstName": "Luca", "phone": "222",
                "level": "beginner", "empathyRating": 2},
        "-Nr": {"surname": "Rossi", "firstName": "Mario", "phone": "111",
                "level": "advanced", "empathyRating": 4, "createdAt": "2026-01-01T00:00:00Z"},
    })


@pytest.fixture
def realtime(store, notifier, fake_db):
    backend = RealtimeBackend(
        store,
        notifier,
        base_url=BASE_URL,
        collection="players",
        auth_token="",
        listen=False,
        client=httpx.Client(transport=httpx.MockTransport(fake_db.handler)),
    )
    yield backend
    backend.close()


# ============================================
# Record store
# ============================================
class TestPlayerRepository:
    def test_sorted_by_surname(self, store):
        store.replace_all([
            make_player("a", "rossi"), make_player("b", "Bianchi"), make_player("c", "Conti"),
        ])
        assert [p.surname for p in store.get_all()] == ["Bianchi", "Conti", "rossi"]

    def test_upsert_keeps_order(self, store):
        store.replace_all([make_player("a", "Rossi")])
        store.upsert(make_player("b", "Amato"))
        store.upsert(make_player("a", "Zanetti"))
        assert [p.id for p in store.get_all()] == ["b", "a"]
        assert store.count() == 2

    def test_returns_copies(self, store):
        store.replace_all([make_player("a")])
        copy = store.get_by_id("a")
        copy.surname = "Changed"
        assert store.get_by_id("a").surname == "Rossi"

    def test_listeners_receive_snapshot(self, store):
        seen = []
        store.add_listener(lambda players: seen.append([p.id for p in players]))
        store.replace_all([make_player("a")])
        store.remove("a")
        assert seen == [["a"], []]

    def test_remove_absent(self, store):
        assert store.remove("ghost") is None

    def test_names_by_id(self, store):
        store.replace_all([make_player("a", "Rossi", "Mario")])
        assert store.names_by_id() == {"a": "Rossi Mario"}


# ============================================
# Local blob backend
# ============================================
class TestLocalBackend:
    def test_generated_id_format(self):
        assert re.fullmatch(r"player_\d+_[a-z0-9]{9}", generate_id())

    def test_empty_storage_loads_nothing(self, local, store):
        assert store.count() == 0
        assert local.load_all() == []

    def test_create_survives_restart(self, local, store, notifier, db_url):
        player = make_player()
        assert local.save(player) is True
        assert player.id.startswith("player_")

        fresh = PlayerRepository()
        reloaded = LocalBackend(fresh, notifier, database_url=db_url)
        reloaded.start()
        assert [p.full_name for p in fresh.get_all()] == ["Rossi Mario"]
        assert fresh.get_by_id(player.id) is not None
        reloaded.close()

    def test_update_is_shallow_merge(self, store, notifier, db_url):
        engine = create_engine(db_url)
        backend = LocalBackend(store, notifier, engine=engine)
        backend.load_all()
        blob = [{"id": "p1", "surname": "Rossi", "firstName": "Mario", "phone": "111",
                 "level": "advanced", "empathyRating": 4, "createdAt": "2026-01-01T00:00:00Z",
                 "notes": "left-handed"}]
        with engine.begin() as conn:
            conn.execute(
                text("INSERT INTO kv_store (key, value) VALUES (:key, :value)"),
                {"key": settings.LOCAL_STORAGE_KEY, "value": json.dumps(blob)},
            )
        backend.start()

        update = Player(id="p1", surname="Rossi", first_name="Mario", phone="999",
                        level="competitive", empathy_rating=5)
        assert backend.save(update) is True
        stored = store.get_by_id("p1").to_record()
        assert stored["phone"] == "999"
        assert stored["level"] == "competitive"
        assert stored["createdAt"] == "2026-01-01T00:00:00Z"
        assert stored["notes"] == "left-handed"
        engine.dispose()

    def test_update_of_unknown_id_fails(self, local, store, notifier):
        assert local.save(make_player("ghost")) is False
        assert store.count() == 0
        assert notifier.current().message == "Player no longer exists"

    def test_delete_removes_and_persists(self, local, store):
        player = make_player()
        local.save(player)
        assert local.delete(player.id) is True
        assert store.count() == 0
        assert local.load_all() == []

    def test_delete_absent_is_noop(self, local, notifier):
        assert local.delete("ghost") is True
        assert notifier.current() is None

    @pytest.mark.parametrize("raw", ["not json", '{"a": 1}', "42"])
    def test_unreadable_blob_resets_roster(self, store, notifier, db_url, raw):
        engine = create_engine(db_url)
        backend = LocalBackend(store, notifier, engine=engine)
        backend.load_all()
        with engine.begin() as conn:
            conn.execute(
                text("INSERT INTO kv_store (key, value) VALUES (:key, :value)"),
                {"key": settings.LOCAL_STORAGE_KEY, "value": raw},
            )
        backend.start()
        assert store.count() == 0
        engine.dispose()

    def test_damaged_items_survive_next_save(self, store, notifier, db_url):
        engine = create_engine(db_url)
        backend = LocalBackend(store, notifier, engine=engine)
        backend.load_all()
        blob = [
            {"id": "p1", "surname": "Rossi", "firstName": "Mario"},
            5,
            {"id": "p2", "surname": "Bianchi", "firstName": "Luca", "empathyRating": "lots",
             "club": "TC Roma",
             "availability": [{"day": "monday"},
                              {"day": "friday", "startTime": "17:00", "endTime": "19:00"}]},
            {"id": "p3", "surname": "Conti", "availability": "nope"},
        ]
        with engine.begin() as conn:
            conn.execute(
                text("INSERT INTO kv_store (key, value) VALUES (:key, :value)"),
                {"key": settings.LOCAL_STORAGE_KEY, "value": json.dumps(blob)},
            )
        backend.start()
        assert [p.id for p in store.get_all()] == ["p2", "p3", "p1"]
        bianchi = store.get_by_id("p2")
        assert [s.chip for s in bianchi.availability] == ["Fri 17:00-19:00"]
        assert bianchi.empathy_rating is None
        assert store.get_by_id("p3").availability == []

        assert backend.save(make_player(surname="Amato", first_name="Sara")) is True
        with engine.connect() as conn:
            stored = json.loads(conn.execute(
                text("SELECT value FROM kv_store WHERE key = :key"),
                {"key": settings.LOCAL_STORAGE_KEY},
            ).fetchone()[0])
        by_id = {item["id"]: item for item in stored}
        assert set(by_id) >= {"p1", "p2", "p3"}
        assert by_id["p2"]["club"] == "TC Roma"
        assert by_id["p2"]["availability"] == [
            {"day": "friday", "startTime": "17:00", "endTime": "19:00"},
        ]
        backend.close()

    def test_write_failure_keeps_memory(self, store, notifier):
        engine = MagicMock()
        engine.begin.side_effect = OperationalError("INSERT", {}, Exception("disk full"))
        engine.connect.side_effect = OperationalError("SELECT", {}, Exception("disk full"))
        backend = LocalBackend(store, notifier, engine=engine)
        backend.start()
        assert backend.save(make_player()) is True
        assert store.count() == 1
        assert notifier.current().kind == "warning"

    def test_describe(self, local):
        assert local.describe() == {"mode": "local", "storage_key": settings.LOCAL_STORAGE_KEY}


# ============================================
# Realtime snapshots
# ============================================
class TestParseSnapshot:
    def test_dict_injects_ids(self):
        players = parse_snapshot({"-Na": {"surname": "Rossi", "firstName": "Mario"}})
        assert players[0].id == "-Na"
        assert players[0].first_name == "Mario"

    def test_sparse_list(self):
        players = parse_snapshot([None, {"surname": "Rossi"}, None, {"surname": "Conti"}])
        assert [p.id for p in players] == ["1", "3"]

    @pytest.mark.parametrize("payload", [None, {}, [], "oops", 7])
    def test_empty_or_malformed(self, payload):
        assert parse_snapshot(payload) == []

    def test_bad_children_keep_what_validates(self):
        players = parse_snapshot({
            "-Na": {"surname": "Rossi"},
            "-Nb": "scalar",
            "-Nc": {"surname": "Conti", "empathyRating": "high",
                    "availability": [{"day": "monday"},
                                     {"day": "sunday", "startTime": "09:00", "endTime": "11:00"}]},
        })
        assert [p.id for p in players] == ["-Na", "-Nc"]
        conti = players[1]
        assert conti.surname == "Conti"
        assert conti.empathy_rating is None
        assert [s.day for s in conti.availability] == ["sunday"]


# ============================================
# Realtime backend
# ============================================
class TestRealtimeBackend:
    def test_probe(self, realtime):
        assert realtime.probe() is True

    def test_probe_error_status(self, realtime, fake_db):
        fake_db.fail = True
        assert realtime.probe() is False

    def test_probe_unreachable(self, store, notifier):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        backend = RealtimeBackend(
            store, notifier, base_url=BASE_URL, auth_token="", listen=False,
            client=httpx.Client(transport=httpx.MockTransport(refuse)),
        )
        assert backend.probe() is False
        backend.close()

    def test_start_loads_sorted_snapshot(self, realtime, store):
        realtime.start()
        assert [p.id for p in store.get_all()] == ["-Nb", "-Nr"]

    def test_create_posts_document_without_id(self, realtime, store, fake_db):
        realtime.start()
        player = make_player(surname="Amato", first_name="Sara")
        assert realtime.save(player) is True
        assert player.id == "-Nkey1"
        assert "id" not in fake_db.data["-Nkey1"]
        assert fake_db.data["-Nkey1"]["firstName"] == "Sara"
        # round trip: the store reflects the new snapshot
        assert store.get_all()[0].id == "-Nkey1"

    def test_update_patches_child(self, realtime, store, fake_db):
        realtime.start()
        update = Player(id="-Nr", surname="Rossi", first_name="Mario", phone="999",
                        level="advanced", empathy_rating=4)
        assert realtime.save(update) is True
        assert fake_db.requests[-2].method == "PATCH"
        assert fake_db.data["-Nr"]["phone"] == "999"
        assert fake_db.data["-Nr"]["createdAt"] == "2026-01-01T00:00:00Z"
        assert store.get_by_id("-Nr").phone == "999"

    def test_delete(self, realtime, store, fake_db):
        realtime.start()
        assert realtime.delete("-Nb") is True
        assert "-Nb" not in fake_db.data
        assert [p.id for p in store.get_all()] == ["-Nr"]

    def test_save_failure_notifies(self, realtime, store, notifier, fake_db):
        realtime.start()
        fake_db.fail = True
        assert realtime.save(make_player()) is False
        assert store.count() == 2
        assert notifier.current().message == "Error while saving"

    def test_delete_failure_notifies(self, realtime, notifier, fake_db):
        realtime.start()
        fake_db.fail = True
        assert realtime.delete("-Nb") is False
        assert notifier.current().message == "Error while deleting"

    def test_write_with_failed_reload_reports_connection_error(self, realtime, store, notifier,
                                                               fake_db):
        realtime.start()
        fake_db.fail_reads = True
        assert realtime.save(make_player(surname="Amato", first_name="Sara")) is True
        assert "-Nkey1" in fake_db.data
        assert store.count() == 2
        assert notifier.current().message == "Database connection error"

    def test_form_keeps_reload_error_visible(self, realtime, store, notifier, fake_db):
        realtime.start()
        form = FormController(store, realtime, notifier, variant="empathy")
        form.open_create()
        form.update_fields(surname="Amato", first_name="Sara", phone="333",
                           level="beginner", empathy_rating=3)
        fake_db.fail_reads = True
        assert form.submit() is not None
        assert form.state == "closed"
        assert notifier.current().kind == "error"
        assert notifier.current().message == "Database connection error"

    def test_delete_with_failed_reload_keeps_error(self, realtime, store, notifier, fake_db):
        realtime.start()
        form = FormController(store, realtime, notifier, variant="empathy")
        form.request_delete("-Nb")
        fake_db.fail_reads = True
        assert form.confirm_delete() is True
        assert "-Nb" not in fake_db.data
        assert notifier.current().message == "Database connection error"

    def test_snapshot_failure_keeps_store(self, realtime, store, notifier, fake_db):
        realtime.start()
        fake_db.fail = True
        assert realtime.refresh() is False
        assert store.count() == 2
        assert notifier.current().message == "Database connection error"

    def test_auth_token_sent_as_query_param(self, store, notifier, fake_db):
        backend = RealtimeBackend(
            store, notifier, base_url=BASE_URL, auth_token="secret", listen=False,
            client=httpx.Client(transport=httpx.MockTransport(fake_db.handler)),
        )
        backend.start()
        assert fake_db.requests[-1].url.params["auth"] == "secret"
        backend.close()

    def test_stream_event_triggers_snapshot(self, realtime, store, fake_db):
        realtime.start()
        fake_db.data["-Nc"] = {"surname": "Conti", "firstName": "Giulia"}
        realtime._consume_stream()
        assert [p.id for p in store.get_all()] == ["-Nb", "-Nc", "-Nr"]

    def test_revoked_stream_notifies(self, realtime, store, notifier, fake_db):
        realtime.start()
        before = len(fake_db.requests)
        realtime.handle_stream_event("auth_revoked")
        assert len(fake_db.requests) == before
        assert notifier.current().kind == "error"

    def test_keep_alive_is_ignored(self, realtime, fake_db):
        realtime.start()
        before = len(fake_db.requests)
        realtime.handle_stream_event("keep-alive")
        assert len(fake_db.requests) == before

    def test_describe(self, realtime):
        assert realtime.describe() == {
            "mode": "realtime", "collection": "players", "listening": False,
        }


# ============================================
# Backend selection
# ============================================
class TestSelectBackend:
    def test_local_when_not_configured(self, store, notifier, db_url, monkeypatch):
        monkeypatch.setattr(settings, "REALTIME_DB_URL", "")
        monkeypatch.setattr(settings, "LOCAL_DATABASE_URL", db_url)
        backend = select_backend(store, notifier)
        assert backend.mode == "local"
        backend.close()

    def test_realtime_when_probe_succeeds(self, store, notifier, monkeypatch):
        monkeypatch.setattr(settings, "REALTIME_DB_URL", BASE_URL)
        with patch.object(RealtimeBackend, "probe", return_value=True):
            backend = select_backend(store, notifier)
        assert backend.mode == "realtime"
        backend.close()

    def test_local_when_probe_fails(self, store, notifier, db_url, monkeypatch):
        monkeypatch.setattr(settings, "REALTIME_DB_URL", BASE_URL)
        monkeypatch.setattr(settings, "LOCAL_DATABASE_URL", db_url)
        with patch.object(RealtimeBackend, "probe", return_value=False):
            backend = select_backend(store, notifier)
        assert backend.mode == "local"
        backend.close()
