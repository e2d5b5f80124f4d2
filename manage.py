#!/usr/bin/env python3
"""
Prediction Pool Management CLI

This script provides command-line management functionality for the prediction pool.
"""

import logging
import os
import secrets
from datetime import datetime, timezone

import click
from flask.cli import with_appcontext
from flask_migrate import downgrade, migrate, upgrade
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from predictor import create_app, db
from predictor.errors import PredictionPoolError
from predictor.models import Match, MatchStatus, Prediction, User
from predictor.services.leaderboard import get_leaderboard
from predictor.services.recalculation import recalculate_all, settle_match
from predictor.utils.timezone_utils import format_kickoff_time

DEMO_PASSWORD = "password123"

DEMO_USERS = (
    ("john@company.com", "John Doe", "Engineering"),
    ("jane@company.com", "Jane Smith", "Marketing"),
    ("bob@company.com", "Bob Wilson", "Sales"),
)

# home, away, kickoff, status, home score, away score, round, venue
DEMO_MATCHES = (
    ("Argentina", "Saudi Arabia", "2024-12-20T14:00:00", "SCHEDULED", None, None, "Group C", "Lusail Stadium"),
    ("Brazil", "Serbia", "2024-12-20T20:00:00", "SCHEDULED", None, None, "Group G", "Stadium 974"),
    ("France", "Australia", "2024-12-21T16:00:00", "SCHEDULED", None, None, "Group D", "Al Janoub Stadium"),
    ("Spain", "Costa Rica", "2024-12-21T17:00:00", "FINISHED", 7, 0, "Group E", "Al Thumama Stadium"),
    ("Germany", "Japan", "2024-12-22T14:00:00", "FINISHED", 1, 2, "Group E", "Khalifa International Stadium"),
)

# user index, match index, home goals, away goals
DEMO_PREDICTIONS = ((0, 0, 2, 1), (1, 0, 1, 0), (0, 3, 3, 0))


@click.group()
def cli():
    """Prediction Pool Management CLI"""
    pass


# Match Management Commands
@cli.group()
def match():
    """Match management commands"""
    pass


@match.command("create")
@click.argument("home_team")
@click.argument("away_team")
@click.argument("kickoff", type=click.DateTime(formats=["%Y-%m-%dT%H:%M", "%Y-%m-%d %H:%M"]))
@click.option("--round", "round_name", help="Tournament round, e.g. 'Group A'")
@click.option("--venue", help="Stadium name")
@with_appcontext
def create_match(home_team, away_team, kickoff, round_name, venue):
    """Create a scheduled match (kickoff in UTC)"""
    if home_team == away_team:
        click.echo("❌ A team cannot play itself!")
        return

    try:
        new_match = Match(
            home_team=home_team,
            away_team=away_team,
            kickoff_time=kickoff.replace(tzinfo=timezone.utc),
            status=MatchStatus.SCHEDULED.value,
            round=round_name,
            venue=venue,
        )
        db.session.add(new_match)
        db.session.commit()
        click.echo(f"✅ Created match {new_match.id}: {home_team} vs {away_team}")

    except SQLAlchemyError as e:
        db.session.rollback()
        click.echo(f"❌ Database error creating match: {str(e)}")
        logging.error(f"Match creation failed - SQL error: {e}")


@match.command("result")
@click.argument("match_id", type=int)
@click.argument("home_score", type=int)
@click.argument("away_score", type=int)
@click.option(
    "--status",
    type=click.Choice([s.value for s in MatchStatus], case_sensitive=False),
    default=MatchStatus.FINISHED.value,
    help="Status to record with the score",
)
@with_appcontext
def match_result(match_id, home_score, away_score, status):
    """Record a score and re-score predictions once the match is finished"""
    found = db.session.get(Match, match_id)
    if not found:
        click.echo(f"❌ Match {match_id} not found!")
        return

    try:
        found.apply_update(status, home_score, away_score)
        db.session.commit()
    except PredictionPoolError as e:
        db.session.rollback()
        click.echo(f"❌ {e.message}")
        return
    except SQLAlchemyError as e:
        db.session.rollback()
        click.echo(f"❌ Database error recording result: {str(e)}")
        logging.error(f"Result entry failed - SQL error: {e}")
        return

    click.echo(f"✅ {found.home_team} {home_score} - {away_score} {found.away_team} ({found.status})")

    # A corrected final score re-scores too
    if found.is_scoreable:
        result = settle_match(found.id)
        click.echo(f"✅ Recalculated {result.updated_count} predictions")


@match.command("list")
@click.option(
    "--status",
    type=click.Choice([s.value for s in MatchStatus], case_sensitive=False),
    help="Only show matches with this status",
)
@with_appcontext
def list_matches(status):
    """List all matches by kickoff"""
    query = Match.query
    if status:
        query = query.filter_by(status=status.upper())
    matches = query.order_by(Match.kickoff_time).all()

    if not matches:
        click.echo("No matches found.")
        return

    click.echo("Matches:")
    for m in matches:
        score = (
            f"{m.home_score}-{m.away_score}" if m.home_score is not None else "-"
        )
        click.echo(
            f"  [{m.id}] {format_kickoff_time(m.kickoff_time)}  "
            f"{m.home_team} vs {m.away_team}  {score}  {m.status}"
        )


# Prediction Commands
@cli.group()
def predictions():
    """Prediction commands"""
    pass


@predictions.command()
@with_appcontext
def recalculate():
    """Re-score every prediction of a finished match"""
    result = recalculate_all()
    click.echo(f"✅ Recalculated points: {result.updated_count} predictions updated")


@cli.group()
def leaderboard():
    """Leaderboard commands"""
    pass


@leaderboard.command("show")
@click.option("--limit", default=20, help="Number of entries to show")
@with_appcontext
def show_leaderboard(limit):
    """Print the current standings"""
    board = get_leaderboard()

    if not board.entries:
        click.echo("No users found.")
        return

    click.echo("🏆 Leaderboard")
    click.echo("=" * 40)
    for entry in board.entries[:limit]:
        click.echo(
            f"{entry.rank:>3}. {entry.user_name:<20} {entry.total_points:>4} pts "
            f"({entry.total_predictions} predictions, {entry.exact_scores} exact)"
        )


# User Management Commands
@cli.group()
def user():
    """User management commands"""
    pass


@user.command()
@click.argument("email")
@click.argument("password")
@click.option("--name", default="Administrator", help="Display name")
@click.option("--department", help="Department")
@with_appcontext
def create_admin(email, password, name, department):
    """Create an admin user"""
    email = email.strip().lower()
    if User.query.filter_by(email=email).first():
        click.echo(f"❌ User with email '{email}' already exists!")
        return

    try:
        admin = User(email=email, name=name, department=department, is_admin=True)
        admin.set_password(password)
        db.session.add(admin)
        db.session.commit()
        click.echo(f"✅ Created admin user '{name}' ({email})")

    except IntegrityError:
        db.session.rollback()
        click.echo(f"❌ User with email '{email}' already exists!")


@user.command()
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
        admin = " [admin]" if u.is_admin else ""
        click.echo(f"  {status} {u.name} ({u.email}) - {u.department or '-'}{admin}")


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


@db_cmd.command()
@with_appcontext
def reset():
    """⚠️  DANGER: Drop and recreate all tables"""
    if not click.confirm("This will DELETE ALL DATA. Are you sure?"):
        click.echo("Cancelled.")
        return

    try:
        db.drop_all()
        db.create_all()
        click.echo("✅ Database reset successfully!")
    except SQLAlchemyError as e:
        click.echo(f"❌ Error resetting database: {str(e)}")


# Database Migration Commands
@cli.group()
def db_migrate():
    """Database migration commands"""
    pass


@db_migrate.command()
@with_appcontext
def init_migrations():
    """Initialize migrations repository"""
    if os.path.exists("migrations"):
        click.echo("❌ Migrations directory already exists!")
        return

    from flask_migrate import init as flask_migrate_init

    flask_migrate_init()
    click.echo("✅ Migrations repository initialized!")


@db_migrate.command()
@click.option("-m", "--message", required=True, help="Migration message")
@with_appcontext
def create_migration(message):
    """Create a new migration"""
    migrate(message=message)
    click.echo(f"✅ Migration created: {message}")


@db_migrate.command()
@click.option("--revision", default="head", help="Revision to upgrade to")
@with_appcontext
def apply_migrations(revision):
    """Apply migrations to database"""
    upgrade(revision=revision)
    click.echo(f"✅ Migrations applied to {revision}")


@db_migrate.command()
@click.option("--revision", required=True, help="Revision to downgrade to")
@with_appcontext
def rollback_migration(revision):
    """Rollback migrations to specific revision"""
    downgrade(revision=revision)
    click.echo(f"✅ Rolled back to {revision}")


@cli.command()
@click.option("--yes", is_flag=True, help="Replace existing data without asking")
@with_appcontext
def seed(yes):
    """Replace all data with demo users, World Cup matches and predictions"""
    if not yes and not click.confirm("This will DELETE ALL DATA. Are you sure?"):
        click.echo("Cancelled.")
        return

    try:
        Prediction.query.delete()
        Match.query.delete()
        User.query.delete()

        users = []
        for email, name, department in DEMO_USERS:
            demo_user = User(email=email, name=name, department=department)
            demo_user.set_password(DEMO_PASSWORD)
            users.append(demo_user)
        db.session.add_all(users)

        matches = []
        for home, away, kickoff, status, home_score, away_score, round_name, venue in DEMO_MATCHES:
            matches.append(
                Match(
                    home_team=home,
                    away_team=away,
                    kickoff_time=datetime.fromisoformat(kickoff).replace(tzinfo=timezone.utc),
                    status=status,
                    home_score=home_score,
                    away_score=away_score,
                    round=round_name,
                    venue=venue,
                )
            )
        db.session.add_all(matches)
        db.session.flush()

        for user_index, match_index, home_goals, away_goals in DEMO_PREDICTIONS:
            db.session.add(
                Prediction(
                    user_id=users[user_index].id,
                    match_id=matches[match_index].id,
                    home_goals=home_goals,
                    away_goals=away_goals,
                    points=0,
                )
            )
        db.session.commit()

    except SQLAlchemyError as e:
        db.session.rollback()
        click.echo(f"❌ Error seeding database: {str(e)}")
        logging.error(f"Seeding failed - SQL error: {e}")
        return

    click.echo(f"✅ Created {len(users)} users")
    click.echo(f"✅ Created {len(matches)} matches")
    click.echo(f"✅ Created {len(DEMO_PREDICTIONS)} predictions")

    result = recalculate_all()
    click.echo(f"✅ Scored {result.updated_count} predictions of finished matches")
    click.echo("🎉 Database seeded successfully!")


# Info Commands
@cli.command()
@with_appcontext
def status():
    """Show application status"""
    click.echo("⚽ Prediction Pool Status")
    click.echo("=" * 40)

    # Database connection
    try:
        db.session.execute(text("SELECT 1"))
        click.echo("✅ Database: Connected")
    except SQLAlchemyError as e:
        click.echo(f"❌ Database: Error - {str(e)}")
        return

    user_count = User.query.filter_by(is_active=True).count()
    click.echo(f"👥 Active Users: {user_count}")

    match_count = Match.query.count()
    finished_count = Match.query.filter_by(status=MatchStatus.FINISHED.value).count()
    live_count = Match.query.filter_by(status=MatchStatus.LIVE.value).count()
    click.echo(f"⚽ Matches: {finished_count}/{match_count} finished, {live_count} live")

    prediction_count = Prediction.query.count()
    click.echo(f"📝 Predictions: {prediction_count}")


@cli.command()
def generate_secrets():
    """Print fresh SECRET_KEY and WTF_CSRF_SECRET_KEY values for .env"""
    click.echo(f"SECRET_KEY={secrets.token_urlsafe(32)}")
    click.echo(f"WTF_CSRF_SECRET_KEY={secrets.token_urlsafe(32)}")
    click.echo("⚠️  Keep these secrets out of version control!")


if __name__ == "__main__":
    app = create_app()
    with app.app_context():
        cli()
