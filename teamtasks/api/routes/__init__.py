"""
API routers.
"""
from teamtasks.api.routes import auth, users, teams, tasks, history, health

ALL_ROUTERS = [
    health.router,
    auth.router,
    users.router,
    teams.router,
    tasks.router,
    history.router,
]
