"""
Tests for the Flask CLI commands.
"""

from distribuidora.models import AppUser, Seller, Loader


class TestCreateUser:

    def test_create_seller(self, app, session, vehicle_id):
        runner = app.test_cli_runner()
        result = runner.invoke(args=[
            'create-user', '--username', 'ruta7', '--password', 'secreto1',
            '--role', 'vendedor', '--full-name', 'Ruta Siete', '--vehicle-id', str(vehicle_id)
        ])

        assert result.exit_code == 0
        assert 'Usuario creado' in result.output
        session.expire_all()
        user = session.query(AppUser).filter_by(username='ruta7').one()
        assert user.check_password('secreto1')
        assert session.query(Seller).filter_by(user_id=user.id).one().vehicle_id == vehicle_id

    def test_create_loader(self, app, session):
        result = app.test_cli_runner().invoke(args=[
            'create-user', '--username', 'bodega', '--password', 'secreto1', '--role', 'cargador'
        ])
        assert result.exit_code == 0
        session.expire_all()
        user = session.query(AppUser).filter_by(username='bodega').one()
        assert session.query(Loader).filter_by(user_id=user.id).count() == 1

    def test_short_password_rejected(self, app, session):
        result = app.test_cli_runner().invoke(args=[
            'create-user', '--username', 'corto', '--password', '123', '--role', 'admin'
        ])
        assert 'al menos 6' in result.output
        session.expire_all()
        assert session.query(AppUser).filter_by(username='corto').count() == 0

    def test_duplicate_username(self, app, seller_user):
        result = app.test_cli_runner().invoke(args=[
            'create-user', '--username', seller_user[0], '--password', 'secreto1', '--role', 'admin'
        ])
        assert 'Ya existe' in result.output
