"""
Integration tests for visits that ended without a sale.
"""

import pytest
from decimal import Decimal
from distribuidora.exceptions import NotFoundError, ValidationError
from distribuidora.models import NoSaleVisit
from distribuidora.services import visit_service


class TestRegisterNoSale:

    def test_by_customer_id(self, session, seller_id, customer_id, fresh):
        visit = visit_service.register_no_sale(
            session, seller_id, ['Cerrado', ' Sin dinero '], customer_id=customer_id,
            latitude='19,4326', longitude=-99.1332, notes='  volver el lunes '
        )

        stored = fresh(NoSaleVisit, visit.id)
        assert stored.customer_id == customer_id
        assert stored.reasons == ['Cerrado', 'Sin dinero']
        assert stored.latitude == Decimal('19.4326')
        assert stored.notes == 'volver el lunes'

    def test_by_scanned_code(self, session, seller_id, customer_id):
        visit = visit_service.register_no_sale(session, seller_id, ['Tiene producto'], customer_code='qr-lupita')
        assert visit.customer_id == customer_id

    def test_unknown_code(self, session, seller_id, customer_id):
        with pytest.raises(NotFoundError):
            visit_service.register_no_sale(session, seller_id, ['Cerrado'], customer_code='NOPE')
        assert session.query(NoSaleVisit).count() == 0

    def test_unknown_customer_id(self, session, seller_id):
        with pytest.raises(NotFoundError):
            visit_service.register_no_sale(session, seller_id, ['Cerrado'], customer_id=9999)

    def test_customer_reference_required(self, session, seller_id):
        with pytest.raises(ValidationError):
            visit_service.register_no_sale(session, seller_id, ['Cerrado'])

    @pytest.mark.parametrize('reasons', [[], ['  '], None, 'Cerrado'])
    def test_reasons_required(self, session, seller_id, customer_id, reasons):
        with pytest.raises(ValidationError):
            visit_service.register_no_sale(session, seller_id, reasons, customer_id=customer_id)

    def test_bad_coordinates(self, session, seller_id, customer_id):
        with pytest.raises(ValidationError):
            visit_service.register_no_sale(session, seller_id, ['Cerrado'], customer_id=customer_id,
                                           latitude='norte')


class TestNoSaleEndpoint:

    def test_register(self, client, seller_headers, seller_id, customer_id):
        response = client.post('/api/vendedor/no-venta', json={
            'codigo': 'QR-LUPITA',
            'motivos': ['Cerrado'],
            'latitud': 19.43,
            'longitud': -99.13,
        }, headers=seller_headers)

        assert response.status_code == 200
        body = response.get_json()
        assert body['ok'] is True
        assert body['data']['vendedorId'] == seller_id
        assert body['data']['clienteId'] == customer_id
        assert body['data']['id'] > 0

    def test_missing_reasons_is_400(self, client, seller_headers, customer_id):
        response = client.post('/api/vendedor/no-venta', json={'clienteId': customer_id, 'motivos': []},
                               headers=seller_headers)
        assert response.status_code == 400

    def test_other_seller_is_403(self, client, seller_headers, other_seller_id, customer_id):
        response = client.post('/api/vendedor/no-venta', json={
            'idVendedor': other_seller_id, 'clienteId': customer_id, 'motivos': ['Cerrado']
        }, headers=seller_headers)
        assert response.status_code == 403

    def test_requires_login(self, client, customer_id):
        response = client.post('/api/vendedor/no-venta', json={'clienteId': customer_id, 'motivos': ['Cerrado']})
        assert response.status_code == 401
