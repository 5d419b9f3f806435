import click
from flask.cli import with_appcontext

from extensions import db
from models.album import Album
from models.user import User
from services.covers import ensure_cover_integrity, ensure_cover_presence


@click.command("init-db")
@with_appcontext
def init_db_command():
    """Create all tables."""
    db.create_all()
    click.echo("Database tables created")


@click.command("repair-covers")
@with_appcontext
def repair_covers_command():
    """Re-derive every album's cover from its current members."""
    album_ids = [album_id for (album_id,) in db.session.query(Album.id).order_by(Album.id)]
    repaired = 0
    for album_id in album_ids:
        wrote = ensure_cover_integrity(album_id)
        wrote = ensure_cover_presence(album_id) or wrote
        if wrote:
            repaired += 1
    click.echo(f"Checked {len(album_ids)} albums, repaired {repaired}")


@click.command("reset-password")
@with_appcontext
@click.argument("username")
@click.argument("password")
def reset_password_command(username, password):
    """Set a new password for USERNAME."""
    if len(password) < 6:
        raise click.BadParameter("Password must be at least 6 characters", param_hint="password")
    user = User.query.filter_by(username=username).first()
    if user is None:
        raise click.ClickException(f"User {username} not found")
    user.set_password(password)
    db.session.commit()
    click.echo(f"Password reset for {username}")


def register_commands(app):
    app.cli.add_command(init_db_command)
    app.cli.add_command(repair_covers_command)
    app.cli.add_command(reset_password_command)
