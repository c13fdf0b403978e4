"""
Unit tests for ActivityTracker (src/session/activity.py).
"""

from datetime import datetime, timedelta, timezone

from src.session.activity import ActivityTracker
from src.session.models import Persona


class TestActivityTracker:

    def test_record_start_counts_interactions(self):
        tracker = ActivityTracker()
        tracker.record_start("s-1", Persona.ADINA)
        activity = tracker.record_start("s-1", Persona.RAFA)
        assert activity.interactions == 2
        assert activity.persona_history == [Persona.ADINA, Persona.RAFA]
        assert activity.current_persona is Persona.RAFA

    def test_persona_history_has_no_duplicates(self):
        tracker = ActivityTracker()
        tracker.record_start("s-1", Persona.ADINA)
        tracker.record_start("s-1", Persona.ADINA)
        assert tracker.get("s-1").persona_history == [Persona.ADINA]

    def test_get_returns_copy(self):
        tracker = ActivityTracker()
        tracker.record_start("s-1", Persona.ADINA)
        tracker.get("s-1").interactions = 99
        assert tracker.get("s-1").interactions == 1

    def test_record_end(self):
        tracker = ActivityTracker()
        tracker.record_start("s-1", Persona.RAFA)
        assert tracker.record_end("s-1") is True
        assert tracker.get("s-1").current_persona is None
        assert tracker.record_end("unknown") is False

    def test_reset(self):
        tracker = ActivityTracker()
        tracker.record_start("s-1", Persona.ADINA)
        assert tracker.reset("s-1") is True
        assert tracker.get("s-1").interactions == 0
        assert tracker.reset("unknown") is False

    def test_evict_older_than(self):
        tracker = ActivityTracker()
        tracker.record_start("old", Persona.ADINA)
        tracker.record_start("fresh", Persona.RAFA)
        tracker._activity["old"].last_interaction = datetime.now(timezone.utc) - timedelta(days=31)

        assert tracker.evict_older_than(30 * 24 * 3600) == 1
        assert tracker.get("old") is None
        assert tracker.get("fresh") is not None
        assert len(tracker) == 1
