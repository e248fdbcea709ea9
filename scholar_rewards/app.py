"""Command-line entry point for Scholar Rewards."""
import asyncio
import json
import logging
import sys

import click

from scholar_rewards.config import settings
from scholar_rewards.core import database
from scholar_rewards.handlers.award import handle_award_request
from scholar_rewards.handlers.grade import handle_grade_request
from scholar_rewards.rewards.ledger import RewardLedger
from scholar_rewards.sync.notifier import get_notifier

logger = logging.getLogger(__name__)


def _configure_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stderr)
        ]
    )


async def _run(operation):
    """Open the database, run one operation, flush pending sync, clean up."""
    db = await database.init_database(settings.DATABASE_PATH)
    database.db = db  # Set global instance
    try:
        return await operation()
    finally:
        await get_notifier().drain()
        await db.close()
        database.db = None


def _load_request(path: str) -> dict:
    with open(path, encoding="utf-8") as f:
        try:
            return json.load(f)
        except json.JSONDecodeError as e:
            raise click.ClickException(f"{path} is not valid JSON: {e}")


def _echo(payload: dict) -> None:
    click.echo(json.dumps(payload, ensure_ascii=False, indent=2))


@click.group()
def cli():
    """Grade assignments and credit rewards exactly once."""
    _configure_logging()


@cli.command("init-db")
def init_db():
    """Create the database schema."""
    asyncio.run(_run(lambda: asyncio.sleep(0)))
    click.echo(f"Database ready at {settings.DATABASE_PATH}")


@cli.command()
@click.argument("request_file", type=click.Path(exists=True, dir_okay=False))
def grade(request_file):
    """Grade the assignment described in REQUEST_FILE."""
    payload = _load_request(request_file)
    result = asyncio.run(_run(lambda: handle_grade_request(payload)))
    _echo(result)
    if result.get("success") is False:
        sys.exit(1)


@cli.command()
@click.argument("student_id")
@click.argument("request_file", type=click.Path(exists=True, dir_okay=False))
def award(student_id, request_file):
    """Claim a reward for STUDENT_ID using REQUEST_FILE."""
    payload = _load_request(request_file)
    result = asyncio.run(_run(lambda: handle_award_request(student_id, payload)))
    _echo(result)
    if not result.get("success"):
        sys.exit(1)


@cli.command()
@click.argument("student_id")
@click.option("--limit", default=20, show_default=True, help="Ledger entries to show.")
def balance(student_id, limit):
    """Show the balance and recent ledger entries of STUDENT_ID."""

    async def lookup():
        ledger = RewardLedger()
        current = await ledger.get_balance(student_id)
        history = await ledger.get_reward_history(student_id, limit=limit)
        return {
            "student_id": student_id,
            "xp_total": current.xp_total,
            "coins_total": current.coins_total,
            "history": history,
        }

    _echo(asyncio.run(_run(lookup)))


if __name__ == "__main__":
    cli()
