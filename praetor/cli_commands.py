"""
Flask CLI commands.

Commands:
- flask init-db: Create the database schema
- flask create-user: Add a user to the directory
"""

import click
from praetor.database import create_schema, db_session
from praetor.models import AppUser, UserRole


def init_cli_commands(app):
    """Register CLI commands with Flask app."""

    @app.cli.command('init-db')
    def init_db_command():
        """Create all tables that do not exist yet."""
        create_schema()
        click.echo(click.style('Database schema created.', fg='green'))

    @app.cli.command('create-user')
    @click.option('--username', prompt=True, help='Login name')
    @click.option('--full-name', default=None, help='Display name')
    @click.option('--role', type=click.Choice([r.value for r in UserRole]), default=UserRole.USER.value)
    def create_user(username, full_name, role):
        """Create a user (e.g. a manager who receives project notifications)."""
        existing = db_session.query(AppUser).filter_by(username=username).first()
        if existing:
            click.echo(click.style(f'User {username} already exists (id={existing.id}).', fg='red'))
            return

        try:
            user = AppUser(username=username, full_name=full_name, role=role)
            db_session.add(user)
            db_session.commit()
            click.echo(click.style(f'User created: {username} (id={user.id}, role={role})', fg='green'))
        except Exception as e:
            db_session.rollback()
            click.echo(click.style(f'Error creating user: {e}', fg='red'))
