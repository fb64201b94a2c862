#!/usr/bin/env python3
"""
Prode Management CLI

Command-line management for the Prode application: schema, fixture,
results, users and the ranking.
"""

import json
import logging
from datetime import datetime

import click
from flask.cli import FlaskGroup, with_appcontext
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from prode import create_app, db
from prode.errors import InvalidInput, ProdeError
from prode.models import Match, Prediction, User
from prode.services.prediction_repository import (
    parse_match_id,
    parse_non_negative_int,
)
from prode.services.ranking import RankingService
from prode.services.store import PredictionStore
from prode.utils.timezone_utils import (
    convert_to_utc,
    format_match_time,
    get_app_timezone,
)

logger = logging.getLogger(__name__)

DATE_FORMATS = ["%Y-%m-%d %H:%M", "%Y-%m-%dT%H:%M", "%Y-%m-%dT%H:%M:%S"]


def _store():
    return PredictionStore(db.session, tz=get_app_timezone())


def parse_kickoff(value):
    """ISO datetime with offset, or a naive one read in the app timezone"""
    try:
        kickoff = datetime.fromisoformat(value)
    except ValueError:
        for fmt in DATE_FORMATS:
            try:
                kickoff = datetime.strptime(value, fmt)
                break
            except ValueError:
                continue
        else:
            raise click.BadParameter(f"Unrecognised date {value!r}")
    return convert_to_utc(kickoff, get_app_timezone())


@click.group(cls=FlaskGroup, create_app=create_app)
def cli():
    """Prode Management CLI"""
    pass


# Database Commands
@cli.group()
def db_cmd():
    """Database commands"""
    pass


@db_cmd.command()
@with_appcontext
def init_db():
    """Initialize database tables"""
    try:
        db.create_all()
        click.echo("✅ Database tables created successfully!")
    except SQLAlchemyError as e:
        click.echo(f"❌ Error initializing database: {str(e)}")
        logger.error(f"Database initialization failed: {e}")


@db_cmd.command()
@with_appcontext
def reset():
    """DANGER: Drop and recreate all tables"""
    if not click.confirm("This will DELETE ALL DATA. Are you sure?"):
        click.echo("Cancelled.")
        return

    try:
        db.drop_all()
        db.create_all()
        click.echo("✅ Database reset successfully!")
    except SQLAlchemyError as e:
        click.echo(f"❌ Error resetting database: {str(e)}")
        logger.error(f"Database reset failed: {e}")


# Match Commands
@cli.group()
def match():
    """Fixture and result commands"""
    pass


@match.command("add")
@click.argument("home_team")
@click.argument("away_team")
@click.option("--date", "match_date", required=True, help="Kick-off, app timezone unless an offset is given")
@click.option("--stage", default="", help="Tournament stage label")
@click.option("--id", "match_id", type=int, help="Explicit match id")
@with_appcontext
def add_match(home_team, away_team, match_date, stage, match_id):
    """Add a match to the fixture"""
    try:
        if match_id is not None:
            match_id = parse_match_id(match_id)
        record = _store().add_match(
            home_team, away_team, parse_kickoff(match_date), stage, match_id
        )
    except ProdeError as e:
        click.echo(f"❌ {e.message}")
        return
    click.echo(
        f"✅ Match {record.id}: {record.home_team} vs {record.away_team} "
        f"({format_match_time(record.match_date)})"
    )


@match.command("result")
@click.argument("match_id", type=int)
@click.argument("home_score", type=int)
@click.argument("away_score", type=int)
@click.option("--overwrite", is_flag=True, help="Replace an existing result")
@with_appcontext
def record_result(match_id, home_score, away_score, overwrite):
    """Record the final score of a match"""
    try:
        match_id = parse_match_id(match_id)
        home = parse_non_negative_int(home_score, "home_score")
        away = parse_non_negative_int(away_score, "away_score")
        record = _store().record_result(match_id, home, away, overwrite=overwrite)
    except ProdeError as e:
        click.echo(f"❌ {e.message}")
        return
    click.echo(
        f"✅ {record.home_team} {record.home_score} - "
        f"{record.away_score} {record.away_team}"
    )


@match.command("list")
@with_appcontext
def list_matches():
    """List the fixture"""
    matches = _store().find_matches()
    if not matches:
        click.echo("No matches found.")
        return

    for m in matches:
        score = f"{m.home_score}-{m.away_score}" if m.is_final else "vs"
        click.echo(
            f"  [{m.id}] {format_match_time(m.match_date)} {m.stage}: "
            f"{m.home_team} {score} {m.away_team}"
        )


# Fixture Commands
@cli.group()
def fixture():
    """Bulk fixture commands"""
    pass


def _fixture_entry(entry):
    """Parse one fixture file entry into the fields PredictionStore.load_matches takes"""
    if not isinstance(entry, dict):
        raise InvalidInput("entry must be a JSON object")

    teams = {}
    for field in ("home_team", "away_team"):
        value = entry.get(field)
        if not isinstance(value, str) or not value.strip():
            raise InvalidInput(f"{field} is required")
        teams[field] = value.strip()

    if not isinstance(entry.get("match_date"), str):
        raise InvalidInput("match_date is required")
    try:
        kickoff = parse_kickoff(entry["match_date"])
    except click.BadParameter as e:
        raise InvalidInput(e.message) from None

    home_score, away_score = entry.get("home_score"), entry.get("away_score")
    if (home_score is None) != (away_score is None):
        raise InvalidInput("home_score and away_score must be given together")
    if home_score is not None:
        home_score = parse_non_negative_int(home_score, "home_score")
        away_score = parse_non_negative_int(away_score, "away_score")

    match_id = entry.get("id")
    return {
        "id": parse_match_id(match_id) if match_id is not None else None,
        "home_team": teams["home_team"],
        "away_team": teams["away_team"],
        "match_date": kickoff,
        "stage": str(entry.get("stage") or ""),
        "home_score": home_score,
        "away_score": away_score,
    }


@fixture.command("load")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@with_appcontext
def load_fixture(path):
    """
    Load matches from a JSON file.

    The file holds a list of objects with home_team, away_team, match_date
    and stage, plus optional id, home_score and away_score. Nothing is
    stored unless every entry is valid.
    """
    with open(path, encoding="utf-8") as fh:
        entries = json.load(fh)

    if not isinstance(entries, list):
        raise click.BadParameter("Fixture file must contain a JSON list")

    matches = []
    for number, entry in enumerate(entries, start=1):
        try:
            matches.append(_fixture_entry(entry))
        except InvalidInput as e:
            click.echo(f"❌ Invalid fixture entry #{number}: {e.message}")
            return

    try:
        records = _store().load_matches(matches)
    except ProdeError as e:
        click.echo(f"❌ {e.message}")
        return

    click.echo(f"✅ Loaded {len(records)} matches")


# User Management Commands
@cli.group()
def user():
    """User management commands"""
    pass


@user.command("create")
@click.argument("username")
@click.argument("email")
@click.argument("password")
@click.option("--first-name", help="First name")
@click.option("--last-name", help="Last name")
@with_appcontext
def create_user(username, email, password, first_name, last_name):
    """Create a user"""
    existing = User.query.filter(
        (User.username == username) | (User.email == email)
    ).first()

    if existing:
        click.echo(
            f"❌ User with username '{username}' or email '{email}' already exists!"
        )
        return

    new_user = User(
        username=username,
        email=email.lower(),
        first_name=first_name,
        last_name=last_name,
        is_active=True,
    )
    new_user.set_password(password)

    db.session.add(new_user)
    db.session.commit()

    click.echo(f"✅ Created user '{username}' ({email})")


@user.command("list")
@with_appcontext
def list_users():
    """List all users"""
    users = User.query.order_by(User.created_at.desc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("Users:")
    for u in users:
        status = "🟢" if u.is_active else "🔴"
        click.echo(f"  {status} {u.username} ({u.email}) - {u.full_name}")


@cli.command()
@with_appcontext
def ranking():
    """Print the ranking"""
    entries = RankingService(_store()).get_ranking()
    if not entries:
        click.echo("No participants yet.")
        return

    for entry in entries:
        click.echo(
            f"  #{entry.position:<3} {entry.display_name:<30} {entry.points:>4} pts "
            f"({entry.exact_predictions} exact, {entry.winner_predictions} winner, "
            f"{entry.total_predictions} predictions)"
        )


@cli.command()
@with_appcontext
def status():
    """Show application status"""
    click.echo("⚽ Prode Application Status")
    click.echo("=" * 40)

    try:
        db.session.execute(text("SELECT 1"))
        click.echo("✅ Database: Connected")
    except SQLAlchemyError as e:
        click.echo(f"❌ Database: Error - {str(e)}")
        return

    user_count = User.query.filter_by(is_active=True).count()
    click.echo(f"👥 Active Users: {user_count}")

    match_count = Match.query.count()
    final_count = Match.query.filter(Match.home_score.isnot(None)).count()
    click.echo(f"⚽ Matches: {final_count}/{match_count} completed")

    prediction_count = Prediction.query.count()
    click.echo(f"📝 Predictions: {prediction_count}")


if __name__ == "__main__":
    cli()
