"""Flask CLI commands for running profile synchronization."""

from __future__ import annotations

import logging
import time

import click
from firebase_admin import firestore
from flask import current_app
from flask.cli import with_appcontext

from leaguebook.constants import USERS_COLLECTION

from .engine import sync_user_profile
from .visibility import VisibilityRules
from .watcher import ProfileWatcher

logger = logging.getLogger(__name__)


@click.command("watch-profiles")
@click.option(
    "--poll-seconds",
    default=5.0,
    show_default=True,
    help="How often the foreground loop wakes up.",
)
@with_appcontext
def watch_profiles_command(poll_seconds: float) -> None:
    """Listen for profile writes and keep every projection up to date."""
    db = firestore.client()
    watcher = ProfileWatcher(db, VisibilityRules.from_config(current_app.config))
    watcher.start()
    click.echo("Watching profiles. Press Ctrl+C to stop.")
    try:
        while True:
            time.sleep(poll_seconds)
    except KeyboardInterrupt:
        pass
    finally:
        watcher.stop()


@click.command("resync-profiles")
@click.option("--uid", "uids", multiple=True, help="Only resync these users.")
@with_appcontext
def resync_profiles_command(uids: tuple[str, ...]) -> None:
    """Recompute the projections of every profile once."""
    db = firestore.client()
    rules = VisibilityRules.from_config(current_app.config)
    users = db.collection(USERS_COLLECTION)

    if uids:
        docs = [users.document(uid).get() for uid in uids]
    else:
        docs = users.stream()

    synced = changed = failed = 0
    for doc in docs:
        if not doc.exists:
            click.echo(f"No profile for {doc.id}, skipping.")
            continue
        try:
            report = sync_user_profile(db, doc.id, None, doc.to_dict() or {}, rules)
        except Exception as e:
            logger.error(f"Resync failed for {doc.id}: {e}")
            failed += 1
            continue
        synced += 1
        if report.changed:
            changed += 1
        failed += len(report.failed)

    click.echo(f"Resynced {synced} profiles ({changed} changed, {failed} failures).")


def init_app(app) -> None:
    """Register the sync commands on the application CLI."""
    app.cli.add_command(watch_profiles_command)
    app.cli.add_command(resync_profiles_command)
