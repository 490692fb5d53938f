"""
Integration tests for product returns (devoluciones).
"""

import pytest
from decimal import Decimal
from sqlalchemy import text
from distribuidora.exceptions import (
    ConflictError, NoActiveLoad, NotFoundError, ProductNotInLoad, ValidationError, InvalidItem
)
from distribuidora.models import ProductReturn, ProductReturnLine
from distribuidora.services import return_service
from distribuidora.services.sales_service import commit_public_sale


@pytest.fixture
def sold_widgets(session, seller_id, widget_load):
    """10 Widget staged, 6 sold; returns (load_id, widget_id)."""
    load_id, widget = widget_load
    commit_public_sale(session, seller_id, 'efectivo', [{'productoId': widget, 'cantidad': 6}])
    return load_id, widget


class TestRegisterReturn:

    def test_return_raises_remaining(self, session, seller_id, sold_widgets, line_of, fresh):
        load_id, widget = sold_widgets

        return_id = return_service.register_return(
            session, seller_id, 'Producto dañado', [{'id_producto': widget, 'cantidad': 2}]
        )

        line = line_of(load_id, widget)
        assert line.returned_quantity == Decimal('2')
        assert line.remaining == Decimal('6')
        product_return = fresh(ProductReturn, return_id)
        assert product_return.processed is False
        assert product_return.load_id == load_id
        assert [(l.product_name, l.quantity, l.unit_price) for l in product_return.lines] == [
            ('Widget', Decimal('2'), Decimal('2.50'))
        ]

    def test_cap_is_sold_minus_returned(self, session, seller_id, sold_widgets, line_of):
        load_id, widget = sold_widgets
        return_service.register_return(session, seller_id, 'Caducado', [{'id_producto': widget, 'cantidad': 2}])

        with pytest.raises(ConflictError) as exc:
            return_service.register_return(session, seller_id, 'Caducado',
                                           [{'id_producto': widget, 'cantidad': 5}])

        assert exc.value.payload['max_devolvible'] == 4.0
        assert line_of(load_id, widget).returned_quantity == Decimal('2')
        assert session.query(ProductReturn).count() == 1
        assert session.query(ProductReturnLine).count() == 1

    def test_force_skips_cap(self, session, seller_id, sold_widgets, line_of):
        load_id, widget = sold_widgets
        return_service.register_return(session, seller_id, 'Cambio', [{'id_producto': widget, 'cantidad': 8}],
                                       force=True)

        line = line_of(load_id, widget)
        assert line.returned_quantity == Decimal('8')
        assert line.remaining == Decimal('12')

    def test_nothing_sold_nothing_returnable(self, session, seller_id, widget_load):
        with pytest.raises(ConflictError):
            return_service.register_return(session, seller_id, 'Error',
                                           [{'id_producto': widget_load[1], 'cantidad': 1}])

    def test_return_by_name(self, session, seller_id, sold_widgets, line_of):
        load_id, widget = sold_widgets
        return_service.register_return(session, seller_id, 'Roto', [{'nombre': 'WIDGET', 'cantidad': 1}])
        assert line_of(load_id, widget).returned_quantity == Decimal('1')

    def test_product_not_in_load(self, session, seller_id, sold_widgets, products):
        with pytest.raises(ProductNotInLoad):
            return_service.register_return(session, seller_id, 'Roto',
                                           [{'id_producto': products['Gadget'], 'cantidad': 1}])

    def test_customer_recorded_by_qr(self, session, seller_id, sold_widgets, customer_id, fresh):
        return_id = return_service.register_return(
            session, seller_id, 'Roto', [{'id_producto': sold_widgets[1], 'cantidad': 1}],
            customer_qr='QR-LUPITA'
        )
        product_return = fresh(ProductReturn, return_id)
        assert product_return.customer_id == customer_id
        assert product_return.customer_name == 'Abarrotes Lupita'
        assert product_return.customer_qr == 'QR-LUPITA'

    def test_reason_required(self, session, seller_id, sold_widgets):
        with pytest.raises(ValidationError):
            return_service.register_return(session, seller_id, '  ',
                                           [{'id_producto': sold_widgets[1], 'cantidad': 1}])

    def test_invalid_quantity(self, session, seller_id, sold_widgets):
        with pytest.raises(InvalidItem):
            return_service.register_return(session, seller_id, 'Roto',
                                           [{'id_producto': sold_widgets[1], 'cantidad': 0}])

    def test_no_active_load(self, session, seller_id, products):
        with pytest.raises(NoActiveLoad):
            return_service.register_return(session, seller_id, 'Roto',
                                           [{'id_producto': products['Widget'], 'cantidad': 1}])

    def test_unknown_customer_id_is_404(self, session, seller_id, sold_widgets, line_of):
        load_id, widget = sold_widgets
        with pytest.raises(NotFoundError) as exc:
            return_service.register_return(session, seller_id, 'Roto', [{'id_producto': widget, 'cantidad': 1}],
                                           customer_id=9999)

        assert exc.value.status_code == 404
        assert session.query(ProductReturn).count() == 0
        assert line_of(load_id, widget).returned_quantity == Decimal('0')

    def test_unknown_customer_qr_is_404(self, session, seller_id, sold_widgets):
        with pytest.raises(NotFoundError):
            return_service.register_return(session, seller_id, 'Roto',
                                           [{'id_producto': sold_widgets[1], 'cantidad': 1}],
                                           customer_qr='NOPE')
        assert session.query(ProductReturn).count() == 0


class TestReturnAgainstConcurrentWrites:
    """A write that lands between the line scan and the row lock must be honoured."""

    @pytest.fixture
    def interleave(self, session, monkeypatch):
        """Run an UPDATE on the load line right after the lines are first read."""
        def install(load_id, product_id, delta):
            original = return_service._index_lines

            def index_then_write(sess, lid):
                indexed = original(sess, lid)
                sess.connection().execute(
                    text('UPDATE load_line SET returned_quantity = returned_quantity + :d '
                         'WHERE load_id = :l AND product_id = :p'),
                    {'d': delta, 'l': load_id, 'p': product_id}
                )
                return indexed

            monkeypatch.setattr(return_service, '_index_lines', index_then_write)
        return install

    def test_locked_line_sees_committed_quantity(self, session, seller_id, sold_widgets, line_of, interleave):
        load_id, widget = sold_widgets
        interleave(load_id, widget, 1)

        return_service.register_return(session, seller_id, 'Roto', [{'id_producto': widget, 'cantidad': 2}])

        assert line_of(load_id, widget).returned_quantity == Decimal('3')

    def test_cap_uses_locked_quantity(self, session, seller_id, sold_widgets, line_of, interleave):
        load_id, widget = sold_widgets
        interleave(load_id, widget, 5)

        with pytest.raises(ConflictError) as exc:
            return_service.register_return(session, seller_id, 'Roto', [{'id_producto': widget, 'cantidad': 2}])

        assert exc.value.payload['max_devolvible'] == 1.0
        assert line_of(load_id, widget).returned_quantity == Decimal('0')


class TestReturnQueries:

    def test_returnable_list(self, session, seller_id, sold_widgets):
        return_service.register_return(session, seller_id, 'Roto', [{'id_producto': sold_widgets[1], 'cantidad': 1}])
        assert return_service.list_returnable(session, seller_id) == [{
            'id_producto': sold_widgets[1],
            'nombre': 'Widget',
            'ventas': 6.0,
            'devoluciones': 1.0,
            'max_devolvible': 5.0,
        }]

    def test_returnable_without_load(self, session, seller_id):
        assert return_service.list_returnable(session, seller_id) == []

    def test_pending_and_processed(self, session, seller_id, sold_widgets):
        return_id = return_service.register_return(session, seller_id, 'Roto',
                                                   [{'id_producto': sold_widgets[1], 'cantidad': 1}])

        pending = return_service.list_pending_returns(session, seller_id)
        assert [r['id'] for r in pending] == [return_id]
        assert pending[0]['productos'] == [{'nombre': 'Widget', 'cantidad': 1.0, 'precio_unitario': 2.5}]

        return_service.mark_return_processed(session, return_id)
        assert return_service.list_pending_returns(session, seller_id) == []

    def test_processing_does_not_touch_inventory(self, session, seller_id, sold_widgets, line_of):
        load_id, widget = sold_widgets
        return_id = return_service.register_return(session, seller_id, 'Roto',
                                                   [{'id_producto': widget, 'cantidad': 1}])
        return_service.mark_return_processed(session, return_id)
        assert line_of(load_id, widget).returned_quantity == Decimal('1')


class TestReturnEndpoints:

    def test_create_return(self, client, seller_headers, seller_id, sold_widgets, line_of):
        load_id, widget = sold_widgets
        response = client.post('/api/vendedor/devoluciones', json={
            'vendedor_id': seller_id,
            'motivo': 'Producto dañado',
            'productos': [{'id_producto': widget, 'cantidad': 2}],
        }, headers=seller_headers)

        assert response.status_code == 201
        assert response.get_json()['devolucion_id']
        assert line_of(load_id, widget).remaining == Decimal('6')

    def test_over_cap_is_409(self, client, seller_headers, seller_id, sold_widgets):
        response = client.post('/api/vendedor/devoluciones', json={
            'vendedor_id': seller_id,
            'motivo': 'Producto dañado',
            'productos': [{'id_producto': sold_widgets[1], 'cantidad': 7}],
        }, headers=seller_headers)

        assert response.status_code == 409
        assert response.get_json()['max_devolvible'] == 6.0

    def test_returnable_endpoint(self, client, seller_headers, seller_id, sold_widgets):
        response = client.get(f'/api/vendedor/devoluciones/para-devolver?vendedor_id={seller_id}',
                              headers=seller_headers)
        assert response.status_code == 200
        assert response.get_json()['data'][0]['max_devolvible'] == 6.0

    def test_return_desk_processes(self, client, session, token_for, seller_id, sold_widgets, fresh):
        return_id = return_service.register_return(session, seller_id, 'Roto',
                                                   [{'id_producto': sold_widgets[1], 'cantidad': 1}])
        headers = token_for('devolucion')

        pending = client.get('/api/vendedor/devoluciones/pendientes', headers=headers).get_json()
        assert [r['id'] for r in pending['data']] == [return_id]

        response = client.patch(f'/api/vendedor/devoluciones/{return_id}/procesar', headers=headers)
        assert response.status_code == 200
        assert fresh(ProductReturn, return_id).processed is True

    def test_process_unknown_return(self, client, token_for):
        response = client.patch('/api/vendedor/devoluciones/999/procesar', headers=token_for('devolucion'))
        assert response.status_code == 404

    def test_seller_cannot_process(self, client, seller_headers):
        response = client.patch('/api/vendedor/devoluciones/1/procesar', headers=seller_headers)
        assert response.status_code == 403

    def test_unknown_customer_endpoint_is_404(self, client, seller_headers, seller_id, sold_widgets):
        response = client.post('/api/vendedor/devoluciones', json={
            'vendedor_id': seller_id,
            'motivo': 'Producto dañado',
            'cliente_id': 4242,
            'productos': [{'id_producto': sold_widgets[1], 'cantidad': 1}],
        }, headers=seller_headers)

        assert response.status_code == 404
        assert response.get_json()['cliente_id'] == 4242
