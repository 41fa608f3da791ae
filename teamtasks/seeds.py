"""
Demo data for local development.

Creates an administrator, three members, two teams and a handful of tasks
through the regular services, so every task gets its 'created' history
entry. Does nothing if any user already exists.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, Any

from teamtasks.auth.passwords import hash_password
from teamtasks.database import TaskDatabase
from teamtasks.services import TaskService, TeamService, UserService

logger = logging.getLogger(__name__)

ADMIN_EMAIL = "admin@teamtasks.local"
ADMIN_PASSWORD = "admin123"

MEMBERS = [
    ("Ana Souza", "ana@teamtasks.local"),
    ("Bruno Lima", "bruno@teamtasks.local"),
    ("Carla Dias", "carla@teamtasks.local"),
]
MEMBER_PASSWORD = "member123"


def seed_database(db: TaskDatabase) -> Dict[str, Any]:
    """
    Populate an empty database.

    Returns:
        Summary with created IDs, or {"skipped": True} when users already exist
    """
    if db.users.count() > 0:
        logger.info("Database already has users; skipping seed")
        return {"skipped": True}

    users = UserService(db)
    teams = TeamService(db)
    tasks = TaskService(db)

    # The first admin cannot be created through the service: nobody is logged in yet
    admin_id = db.users.create("Administrator", ADMIN_EMAIL, hash_password(ADMIN_PASSWORD), "admin")
    admin = db.users.get_by_id(admin_id)

    member_ids = [
        users.create_user(name, email, MEMBER_PASSWORD)["id"]
        for name, email in MEMBERS
    ]

    backend = teams.create_team("Backend", "API and database work", admin)
    frontend = teams.create_team("Frontend", "Web client", admin)
    teams.add_member(backend["id"], member_ids[0], admin)
    teams.add_member(backend["id"], member_ids[1], admin)
    teams.add_member(frontend["id"], member_ids[2], admin)

    now = datetime.now(timezone.utc)
    seed_tasks = [
        {"title": "Design database schema", "team_id": backend["id"], "priority": "high",
         "assigned_to": member_ids[0], "status": "completed", "due_date": (now - timedelta(days=3)).isoformat()},
        {"title": "Implement authentication", "team_id": backend["id"], "priority": "high",
         "assigned_to": member_ids[1], "status": "in_progress", "due_date": (now + timedelta(days=5)).isoformat()},
        {"title": "Write API documentation", "team_id": backend["id"], "priority": "low"},
        {"title": "Build task board", "team_id": frontend["id"], "priority": "medium",
         "assigned_to": member_ids[2], "due_date": (now + timedelta(days=10)).isoformat()},
    ]
    task_ids = [tasks.create_task(data, admin)["id"] for data in seed_tasks]

    logger.info(f"Seeded {1 + len(member_ids)} users, 2 teams and {len(task_ids)} tasks")
    return {
        "skipped": False,
        "admin_id": admin_id,
        "member_ids": member_ids,
        "team_ids": [backend["id"], frontend["id"]],
        "task_ids": task_ids,
    }
