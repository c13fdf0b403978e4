"""
Unit tests for InMemorySessionStore (src/session/store.py).
"""

from datetime import datetime, timedelta, timezone

from src.session.models import Persona, VoiceSession
from src.session.store import InMemorySessionStore


def _session(room_name, age_seconds=0, persona=Persona.ADINA):
    return VoiceSession(
        room_name=room_name,
        persona=persona,
        created_at=datetime.now(timezone.utc) - timedelta(seconds=age_seconds),
    )


class TestInMemorySessionStore:

    def test_put_and_get(self, store, sample_session):
        store.put(sample_session)
        assert store.get(sample_session.room_name) == sample_session

    def test_get_missing(self, store):
        assert store.get("voice-adina-0") is None

    def test_put_overwrites(self, store, sample_session):
        store.put(sample_session)
        replaced = sample_session.model_copy(update={"persona": Persona.RAFA})
        store.put(replaced)
        assert store.get(sample_session.room_name).persona is Persona.RAFA
        assert len(store) == 1

    def test_delete(self, store, sample_session):
        store.put(sample_session)
        assert store.delete(sample_session.room_name) is True
        assert store.get(sample_session.room_name) is None

    def test_delete_missing_is_not_an_error(self, store):
        assert store.delete("voice-rafa-0") is False

    def test_list_oldest_first(self, store):
        store.put(_session("new", age_seconds=1))
        store.put(_session("old", age_seconds=100))
        assert [s.room_name for s in store.list()] == ["old", "new"]

    def test_evict_older_than(self, store):
        store.put(_session("stale", age_seconds=3600))
        store.put(_session("fresh", age_seconds=5))
        assert store.evict_older_than(600) == 1
        assert [s.room_name for s in store.list()] == ["fresh"]

    def test_evict_nothing(self, store):
        store.put(_session("fresh"))
        assert store.evict_older_than(600) == 0
        assert len(store) == 1

    def test_close_is_noop(self, store):
        store.close()
