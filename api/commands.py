"""
Flask CLI commands:
- flask create-admin --email ... --password ...
- flask prune-revoked-tokens
"""
import click
from flask.cli import with_appcontext

from models import storage
from models.admin import Admin
from utils.password_policy import (
    get_password_strength,
    get_password_strength_label,
    validate_password_policy,
)
from utils.security import hash_password, prune_revoked_tokens


@click.command("create-admin")
@click.option("--email", envvar="ADMIN_EMAIL", required=True, help="Admin email (or ADMIN_EMAIL).")
@click.option(
    "--password",
    envvar="ADMIN_PASSWORD",
    prompt=True,
    hide_input=True,
    confirmation_prompt=True,
    help="Admin password (or ADMIN_PASSWORD).",
)
@click.option("--role", default="admin", show_default=True)
@click.option("--level", default=1, show_default=True, type=click.IntRange(min=0))
@with_appcontext
def create_admin(email, password, role, level):
    """Create an admin account."""
    email = email.strip().lower()
    policy = validate_password_policy(password)
    if not policy.valid:
        for error in policy.errors:
            click.echo(f"  - {error}", err=True)
        raise click.ClickException("Password does not meet the password policy")

    session = storage.get_session()
    if session.query(Admin).filter(Admin.email == email).first():
        raise click.ClickException(f"Admin {email} already exists")

    admin = Admin(email=email, password_hash=hash_password(password), role=role, level=level)
    admin.save()
    strength = get_password_strength_label(get_password_strength(password))
    click.echo(f"Created admin {email} (id: {admin.id}, password strength: {strength})")


@click.command("prune-revoked-tokens")
@with_appcontext
def prune_revoked_tokens_command():
    """Delete revocation rows whose tokens have expired."""
    deleted = prune_revoked_tokens()
    click.echo(f"Pruned {deleted} expired revoked token(s)")


def register_commands(app):
    app.cli.add_command(create_admin)
    app.cli.add_command(prune_revoked_tokens_command)
