"""
Unit tests for SQLAlchemy models.
"""

import pytest
from datetime import date
from decimal import Decimal
from sqlalchemy.exc import IntegrityError
from distribuidora.models import (
    AppUser, Role, Seller, Vehicle, LoadLine, PaymentMethod, normalize_payment_method, GlobalDiscount
)


class TestLoadLineModel:
    """Tests for LoadLine derived quantities."""

    def test_remaining_is_staged_minus_sold_plus_returned(self):
        line = LoadLine(staged_quantity=Decimal('10'), sold_quantity=Decimal('6'),
                        returned_quantity=Decimal('1'))
        assert line.remaining == Decimal('5')

    def test_remaining_never_negative(self):
        line = LoadLine(staged_quantity=Decimal('2'), sold_quantity=Decimal('5'),
                        returned_quantity=Decimal('0'))
        assert line.remaining == Decimal('0')

    def test_returnable_is_sold_minus_returned(self):
        line = LoadLine(staged_quantity=Decimal('10'), sold_quantity=Decimal('4'),
                        returned_quantity=Decimal('1.5'))
        assert line.returnable == Decimal('2.5')

    def test_unsaved_line_treats_missing_counters_as_zero(self):
        line = LoadLine(staged_quantity=Decimal('3'))
        assert line.remaining == Decimal('3')
        assert line.returnable == Decimal('0')

    def test_one_line_per_product_per_load(self, session, open_load_id, products):
        session.add(LoadLine(load_id=open_load_id, product_id=products['Widget'], product_name='Widget',
                             unit_price=Decimal('2.50'), staged_quantity=Decimal('1'),
                             sold_quantity=Decimal('0'), returned_quantity=Decimal('0')))
        session.commit()

        session.add(LoadLine(load_id=open_load_id, product_id=products['Widget'], product_name='Widget',
                             unit_price=Decimal('2.50'), staged_quantity=Decimal('1'),
                             sold_quantity=Decimal('0'), returned_quantity=Decimal('0')))
        with pytest.raises(IntegrityError):
            session.commit()


class TestPaymentMethod:
    """Tests for payment method normalization."""

    @pytest.mark.parametrize('raw', ['transferencia', 'Transferencia', 'TRANS', 'transfer'])
    def test_trans_prefix_is_transfer(self, raw):
        assert normalize_payment_method(raw) == 'transferencia'

    @pytest.mark.parametrize('raw', ['efectivo', 'cash', '', None, 'tarjeta'])
    def test_everything_else_is_cash(self, raw):
        assert normalize_payment_method(raw) == 'efectivo'

    def test_enum_value_passes_through(self):
        assert normalize_payment_method(PaymentMethod.TRANSFERENCIA) == 'transferencia'


class TestAppUserModel:
    """Tests for AppUser model."""

    def test_password_hash_roundtrip(self, session):
        user = AppUser(username='ana', role=Role.VENDEDOR.value, active=True)
        user.set_password('securepassword')
        session.add(user)
        session.commit()

        assert user.password_hash != 'securepassword'
        assert user.check_password('securepassword') is True
        assert user.check_password('wrong') is False

    def test_user_without_password_cannot_log_in(self):
        assert AppUser(username='nopass').check_password('') is False

    def test_username_unique(self, session, seller_user):
        session.add(AppUser(username=seller_user[0], role=Role.VENDEDOR.value))
        with pytest.raises(IntegrityError):
            session.commit()


class TestSellerModel:
    """Tests for Seller and Vehicle display helpers."""

    def test_seller_name_prefers_full_name(self, session, seller_id):
        seller = session.get(Seller, seller_id)
        assert seller.name == 'Ana Ruta'

    def test_vehicle_label(self):
        assert Vehicle(brand='Nissan', model='NP300').label == 'Nissan NP300'
        assert Vehicle(plate='XYZ').label is None

    def test_new_seller_has_no_active_load(self, session, seller_id):
        assert session.get(Seller, seller_id).active_load_id is None

    def test_truck_has_one_seller(self, session, seller_id, vehicle_id):
        user = AppUser(username='otro', role=Role.VENDEDOR.value)
        session.add(user)
        session.flush()
        session.add(Seller(user_id=user.id, vehicle_id=vehicle_id, active=True, deleted=False))
        with pytest.raises(IntegrityError):
            session.flush()
        session.rollback()


class TestGlobalDiscountModel:

    @pytest.mark.parametrize('today,active,expected', [
        (date(2026, 5, 31), True, 'programado'),
        (date(2026, 6, 1), True, 'vigente'),
        (date(2026, 6, 30), True, 'vigente'),
        (date(2026, 7, 1), True, 'vencido'),
        (date(2026, 6, 15), False, 'inactivo'),
    ])
    def test_status(self, today, active, expected):
        discount = GlobalDiscount(percentage=10, start_date=date(2026, 6, 1), end_date=date(2026, 6, 30),
                                  active=active)
        assert discount.status(today) == expected
