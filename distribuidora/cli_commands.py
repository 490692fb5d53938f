"""
Flask CLI commands.

Commands:
- flask init-db: create every table
- flask create-user: create a staff account (and its seller/loader row)
"""

import click
from distribuidora.database import create_all, get_session
from distribuidora.models import AppUser, Role, Seller, Loader


def init_cli_commands(app):
    """Register CLI commands with Flask app."""

    @app.cli.command('init-db')
    def init_db_command():
        """Create database tables."""
        create_all()
        click.echo(click.style('✅ Tablas creadas.', fg='green'))

    @app.cli.command('create-user')
    @click.option('--username', prompt=True, help='Login name')
    @click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
    @click.option('--role', type=click.Choice([r.value for r in Role]), default=Role.VENDEDOR.value,
                  show_default=True, help='User role')
    @click.option('--full-name', default=None, help='Display name')
    @click.option('--email', default=None, help='Email address')
    @click.option('--vehicle-id', type=int, default=None, help='Truck assigned to a seller')
    def create_user(username, password, role, full_name, email, vehicle_id):
        """Create a user; sellers and loaders also get their profile row."""
        if len(password) < 6:
            click.echo(click.style('❌ La contraseña debe tener al menos 6 caracteres.', fg='red'))
            return

        session = get_session()
        if session.query(AppUser).filter_by(username=username).first():
            click.echo(click.style(f'❌ Ya existe un usuario con el nombre: {username}', fg='red'))
            return

        try:
            user = AppUser(username=username, email=email, full_name=full_name, role=role, active=True)
            user.set_password(password)
            session.add(user)
            session.flush()

            if role == Role.VENDEDOR.value:
                session.add(Seller(user_id=user.id, vehicle_id=vehicle_id, active=True, deleted=False))
            elif role == Role.CARGADOR.value:
                session.add(Loader(user_id=user.id))

            session.commit()
            click.echo(click.style('\n✅ Usuario creado exitosamente!', fg='green', bold=True))
            click.echo(f'   Usuario: {username}')
            click.echo(f'   Rol: {role}')
            click.echo(f'   ID: {user.id}')
        except Exception as e:
            session.rollback()
            click.echo(click.style(f'❌ Error al crear usuario: {str(e)}', fg='red'))
