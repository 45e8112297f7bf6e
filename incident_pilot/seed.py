"""Demo data for local development (idempotent: skipped once any user exists)."""

from datetime import datetime, timedelta, timezone

from .store.base import IncidentStore
from .utils.logging import get_logger

logger = get_logger("seed")

DEMO_USERS = [
    {"id": "specialist-1", "username": "d.kopijev", "role": "specialist", "display_name": "Dominic Kopijev"},
    {"id": "employee-1", "username": "o.mika", "role": "employee", "display_name": "Ona Mika"},
    {"id": "employee-2", "username": "a.mizgait", "role": "employee", "display_name": "Albas Mizgait"},
    {"id": "employee-3", "username": "v.pavilion", "role": "employee", "display_name": "Varene Pavilion"},
]

DEMO_INCIDENTS = [
    {
        "title": "Email server suffers intermittent outages",
        "description": "The company email server has been unstable all day. Users report that for 10-15 minutes "
                       "at a time they cannot send or receive email, which affects every department.",
        "category": "it",
        "severity": "high",
        "status": "in_progress",
        "affected_systems": ["email", "servers"],
        "reported_by": "employee-1",
        "assigned_to": "specialist-1",
        "ai_tags": ["email", "server outage", "intermittent"],
        "ai_analysis": "Likely server resource exhaustion. Similar incidents were resolved by adding "
                       "capacity or fixing memory leaks.",
        "age_hours": 30,
    },
    {
        "title": "Suspicious login attempts from foreign IP addresses",
        "description": "Security monitoring detected repeated failed login attempts from Eastern European IP "
                       "addresses. The attempts targeted several executive accounts outside working hours.",
        "category": "cyber",
        "severity": "critical",
        "status": "new",
        "affected_systems": ["network"],
        "reported_by": "employee-2",
        "ai_tags": ["brute force", "unauthorized access", "security threat"],
        "age_hours": 6,
    },
    {
        "title": "Remote staff frequently lose VPN connection",
        "description": "Several remote employees report that their VPN connection drops a few times a day. "
                       "It started after recent network maintenance work.",
        "category": "it",
        "severity": "medium",
        "status": "assigned",
        "affected_systems": ["network", "workstation"],
        "reported_by": "employee-1",
        "assigned_to": "specialist-1",
        "ai_tags": ["vpn", "connectivity", "remote work"],
        "age_hours": 50,
    },
    {
        "title": "Database performance degradation on production server",
        "description": "The main production database shows slow query processing. Average response time grew "
                       "from 50 ms to 500 ms, which affects customer-facing applications.",
        "category": "it",
        "severity": "high",
        "status": "resolved",
        "affected_systems": ["database", "servers"],
        "reported_by": "employee-2",
        "assigned_to": "specialist-1",
        "ai_tags": ["database", "performance", "slow queries"],
        "ai_analysis": "Resolved by query optimization and index tuning on frequently queried columns.",
        "age_hours": 120,
    },
    {
        "title": "Phishing email campaign targeting the finance department",
        "description": "Several finance employees received phishing emails that appeared to come from the CEO "
                       "asking for wire transfers. One employee clicked the link but did not enter credentials.",
        "category": "cyber",
        "severity": "high",
        "status": "closed",
        "affected_systems": ["email"],
        "reported_by": "employee-1",
        "assigned_to": "specialist-1",
        "ai_tags": ["phishing", "social engineering", "finance"],
        "ai_analysis": "Campaign blocked with extra mail filtering rules. Affected users were informed and "
                       "their passwords reset.",
        "age_hours": 160,
    },
]


async def seed_demo_data(store: IncidentStore) -> bool:
    """Insert demo users and incidents into an empty store. Returns True if anything was written."""
    if await store.list_users():
        logger.info("demo_seed_skipped")
        return False

    for user in DEMO_USERS:
        await store.create_user(user)

    now = datetime.now(timezone.utc)
    for data in DEMO_INCIDENTS:
        data = dict(data)
        created_at = now - timedelta(hours=data.pop("age_hours"))
        if data["status"] in ("resolved", "closed"):
            data["resolved_at"] = created_at + timedelta(hours=20)
        incident = await store.create_incident({**data, "created_at": created_at})
        await store.append_history({
            "incident_id": incident["id"],
            "action": "created",
            "previous_status": None,
            "new_status": "new",
            "performed_by": data["reported_by"],
            "created_at": created_at,
        })

    logger.info("demo_data_seeded", users=len(DEMO_USERS), incidents=len(DEMO_INCIDENTS))
    return True
