"""
Command line interface for maintenance tasks.

    teamtasks init-db
    teamtasks seed
    teamtasks purge-history --days 365
    teamtasks serve --port 8000
"""
import os

import click

from teamtasks.database import TaskDatabase
from teamtasks.middleware.logging_setup import setup_logging
from teamtasks.services import HistoryService


def _open_database(db_path):
    db_type = os.getenv("DB_TYPE", "sqlite").lower()
    if db_path is None and db_type != "postgresql":
        db_path = os.getenv("TEAMTASKS_DB_PATH", "./data/teamtasks.db")
    return TaskDatabase(db_path, db_type=db_type)


@click.group()
@click.option("--db-path", default=None, help="SQLite database file (defaults to TEAMTASKS_DB_PATH)")
@click.option("--log-level", default=None, help="Logging level (defaults to LOG_LEVEL or INFO)")
@click.pass_context
def cli(ctx, db_path, log_level):
    """Team task service administration."""
    setup_logging(log_level)
    ctx.ensure_object(dict)
    ctx.obj["db_path"] = db_path


@cli.command("init-db")
@click.pass_context
def init_db(ctx):
    """Create the schema if it does not exist."""
    db = _open_database(ctx.obj["db_path"])
    click.echo(f"Database ready ({db.db_type}: {db.db_path})")


@cli.command()
@click.pass_context
def seed(ctx):
    """Load demo users, teams and tasks into an empty database."""
    from teamtasks.seeds import seed_database, ADMIN_EMAIL, ADMIN_PASSWORD

    result = seed_database(_open_database(ctx.obj["db_path"]))
    if result["skipped"]:
        click.echo("Database already contains users; nothing to do")
        return
    click.echo(f"Seeded {len(result['task_ids'])} tasks in {len(result['team_ids'])} teams")
    click.echo(f"Admin login: {ADMIN_EMAIL} / {ADMIN_PASSWORD}")


@cli.command("purge-history")
@click.option("--days", type=click.IntRange(min=0), default=None,
              help="Delete entries older than this many days (defaults to HISTORY_RETENTION_DAYS)")
@click.pass_context
def purge_history(ctx, days):
    """Apply the history retention policy."""
    deleted = HistoryService(_open_database(ctx.obj["db_path"])).purge(days)
    click.echo(f"Deleted {deleted} history entries")


@cli.command()
@click.option("--host", default=lambda: os.getenv("HOST", "0.0.0.0"), show_default="0.0.0.0")
@click.option("--port", type=int, default=lambda: int(os.getenv("PORT", "8000")), show_default="8000")
@click.pass_context
def serve(ctx, host, port):
    """Run the HTTP API with uvicorn."""
    import uvicorn
    from teamtasks.app import create_app

    if ctx.obj["db_path"]:
        os.environ["TEAMTASKS_DB_PATH"] = ctx.obj["db_path"]
    uvicorn.run(create_app(), host=host, port=port)


def main():
    cli(obj={})


if __name__ == "__main__":
    main()
