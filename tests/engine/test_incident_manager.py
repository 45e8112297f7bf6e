"""Tests for the IncidentManager: detail views, analysis, notes, deletion and users."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from incident_pilot.engine.incident_manager import IncidentManager
from incident_pilot.engine.similarity import SimilarityMatcher
from incident_pilot.engine.workflow import StatusWorkflow
from incident_pilot.errors import NotFoundError, ValidationError


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _make_manager(store, analysis=None):
    analyzer = MagicMock()
    analyzer.analyze = AsyncMock(return_value=analysis or {
        "tags": ["email", "server"],
        "analysis": "Mail relay is overloaded.",
        "suggested_severity": "critical",
    })
    workflow = StatusWorkflow(store=store, notifier=MagicMock())
    manager = IncidentManager(store=store, workflow=workflow, matcher=SimilarityMatcher(), analyzer=analyzer)
    return manager, analyzer


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------

class TestIncidentManager:

    @pytest.mark.asyncio
    async def test_detail_includes_people_history_and_similar(self, store, users, incident_fields):
        manager, _ = _make_manager(store)
        first = await manager.create_incident(**incident_fields)
        second = await manager.create_incident(**{
            **incident_fields,
            "title": "Email server slow",
            "description": "The email server takes minutes to deliver messages.",
        })
        await manager.assign_incident(first["id"], "specialist-1", "specialist-1")

        detail = await manager.get_incident_detail(first["id"])

        assert detail["reporter"]["username"] == "emp"
        assert detail["assignee"]["username"] == "spec"
        assert [h["action"] for h in detail["history"]] == ["assigned", "created"]
        assert [s["id"] for s in detail["similar_incidents"]] == [second["id"]]

    @pytest.mark.asyncio
    async def test_detail_unassigned_has_no_assignee(self, store, users, incident_fields):
        manager, _ = _make_manager(store)
        incident = await manager.create_incident(**incident_fields)

        detail = await manager.get_incident_detail(incident["id"])

        assert detail["assignee"] is None
        assert detail["similar_incidents"] == []

    @pytest.mark.asyncio
    async def test_missing_incident_raises_everywhere(self, store):
        manager, _ = _make_manager(store)

        for call in (
            manager.get_incident_detail("nope"),
            manager.get_history("nope"),
            manager.get_similar("nope"),
            manager.analyze_incident("nope"),
            manager.delete_incident("nope"),
            manager.add_note("nope", "hello", "specialist-1"),
        ):
            with pytest.raises(NotFoundError):
                await call

    @pytest.mark.asyncio
    async def test_analyze_persists_tags_and_analysis(self, store, users, incident_fields):
        manager, analyzer = _make_manager(store)
        incident = await manager.create_incident(**incident_fields)

        result = await manager.analyze_incident(incident["id"])

        analyzer.analyze.assert_awaited_once_with(
            incident["title"], incident["description"], "it", "high"
        )
        assert result["suggested_severity"] == "critical"
        assert result["suggested_category"] is None
        stored = await store.get_incident(incident["id"])
        assert stored["ai_tags"] == ["email", "server"]
        assert stored["ai_analysis"] == "Mail relay is overloaded."

    @pytest.mark.asyncio
    async def test_add_note_keeps_status(self, store, users, incident_fields):
        manager, _ = _make_manager(store)
        incident = await manager.create_incident(**incident_fields)

        entry = await manager.add_note(incident["id"], "  Called the vendor  ", "specialist-1")

        assert entry["action"] == "note"
        assert entry["notes"] == "Called the vendor"
        assert entry["previous_status"] == entry["new_status"] == "new"
        assert (await store.get_incident(incident["id"]))["status"] == "new"

    @pytest.mark.asyncio
    async def test_blank_note_rejected(self, store, users, incident_fields):
        manager, _ = _make_manager(store)
        incident = await manager.create_incident(**incident_fields)

        with pytest.raises(ValidationError):
            await manager.add_note(incident["id"], "   ", "specialist-1")

    @pytest.mark.asyncio
    async def test_delete_removes_incident_and_history(self, store, users, incident_fields):
        manager, _ = _make_manager(store)
        incident = await manager.create_incident(**incident_fields)

        await manager.delete_incident(incident["id"])

        assert await store.get_incident(incident["id"]) is None
        assert await store.list_history(incident["id"]) == []

    @pytest.mark.asyncio
    async def test_stats_zero_filled(self, store, users, incident_fields):
        manager, _ = _make_manager(store)
        await manager.create_incident(**incident_fields)
        await manager.create_incident(**{**incident_fields, "category": "cyber", "severity": "low"})

        stats = await manager.get_stats()

        assert stats["total"] == 2
        assert stats["by_status"] == {"new": 2, "assigned": 0, "in_progress": 0, "resolved": 0, "closed": 0}
        assert stats["by_severity"] == {"critical": 0, "high": 1, "medium": 0, "low": 1}
        assert stats["by_category"] == {"it": 1, "cyber": 1}


class TestUsers:

    @pytest.mark.asyncio
    async def test_create_and_fetch_user(self, store):
        manager, _ = _make_manager(store)

        user = await manager.create_user("jdoe", "specialist", "Jane Doe", "jane@example.com")

        assert (await manager.get_user(user["id"]))["display_name"] == "Jane Doe"
        assert [u["username"] for u in await manager.list_users("specialist")] == ["jdoe"]
        assert await manager.list_users("employee") == []

    @pytest.mark.asyncio
    async def test_duplicate_username_rejected(self, store, users):
        manager, _ = _make_manager(store)

        with pytest.raises(ValidationError) as exc_info:
            await manager.create_user("spec", "specialist", "Another Spec")

        assert exc_info.value.errors[0]["field"] == "username"

    @pytest.mark.asyncio
    async def test_invalid_role_rejected(self, store):
        manager, _ = _make_manager(store)

        with pytest.raises(ValidationError) as exc_info:
            await manager.create_user("newbie", "admin", "New Person")

        assert [e["field"] for e in exc_info.value.errors] == ["role"]

    @pytest.mark.asyncio
    async def test_missing_user(self, store):
        manager, _ = _make_manager(store)

        with pytest.raises(NotFoundError):
            await manager.get_user("ghost")
