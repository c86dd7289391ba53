"""Tests for the preference store against the in-memory store."""

import pytest

from nutrilog.core.errors import ValidationError
from nutrilog.core.models import ActivitySource, SyncFrequency


class TestGet:
    """Tests for PreferenceStore.get."""

    def test_defaults_persisted_on_first_read(self, services, repository):
        """A first read stores and returns the defaults."""
        prefs = services.preferences.get("u1")

        assert prefs.activity_goal == 600
        assert prefs.enabled_sources == []
        assert "u1" in repository.preference_rows

    def test_returns_stored(self, services):
        """Stored preferences are returned."""
        services.preferences.upsert("u1", {"activity_goal": 900})
        assert services.preferences.get("u1").activity_goal == 900


class TestUpsert:
    """Tests for PreferenceStore.upsert."""

    def test_partial_update_keeps_other_fields(self, services):
        """Only the provided fields change."""
        services.preferences.upsert("u1", {"activity_goal": 800, "sync_frequency": "hourly"})
        prefs = services.preferences.upsert("u1", {"auto_sync_enabled": False})

        assert prefs.activity_goal == 800
        assert prefs.sync_frequency == SyncFrequency.HOURLY
        assert prefs.auto_sync_enabled is False

    def test_enabled_sources_set_semantics(self, services):
        """Enabled sources are deduplicated."""
        prefs = services.preferences.upsert("u1", {"enabled_sources": ["healthkit", "healthkit", "manual"]})
        assert prefs.enabled_sources == [ActivitySource.HEALTHKIT, ActivitySource.MANUAL]

    def test_preferred_source_can_be_cleared(self, services):
        """An explicit null clears the preferred source."""
        services.preferences.upsert("u1", {"preferred_source": "garmin"})
        prefs = services.preferences.upsert("u1", {"preferred_source": None})
        assert prefs.preferred_source is None

    def test_goal_out_of_bounds(self, services, repository):
        """Activity goals outside 100..2000 are rejected and nothing is stored."""
        with pytest.raises(ValidationError) as exc:
            services.preferences.upsert("u1", {"activity_goal": 50})
        assert exc.value.field == "activity_goal"
        assert repository.preference_rows == {}

    def test_upper_bound_inclusive(self, services):
        """2000 is allowed."""
        assert services.preferences.upsert("u1", {"activity_goal": 2000}).activity_goal == 2000
