import pytest
from decimal import Decimal
import uuid

from distribuidora import create_app
from distribuidora.database import get_session, create_all, drop_all
from distribuidora.models import (
    AppUser, Role, Seller, Loader, Vehicle, Category, Product, Customer,
    LoadLine, CustomerSale, SalePaymentType, Credit
)
from distribuidora.services.auth_service import Principal, issue_token


@pytest.fixture(scope='session')
def app():
    """Create application instance for testing."""
    app = create_app('config.TestConfig')
    return app


@pytest.fixture(autouse=True)
def _fresh_schema(app):
    """Every test starts from empty tables."""
    create_all()
    yield
    get_session().remove()
    drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def session(app):
    """Thread-local database session (same one the request handlers use)."""
    session = get_session()
    yield session
    session.rollback()


@pytest.fixture(scope='function')
def fresh(session):
    """Fresh copy of a row, bypassing anything cached in the identity map."""
    def _get(model, pk):
        session.expire_all()
        return session.get(model, pk)
    return _get


@pytest.fixture(scope='function')
def line_of(session):
    """Current state of one load line."""
    def _get(load_id, product_id):
        session.expire_all()
        return session.query(LoadLine).filter_by(load_id=load_id, product_id=product_id).one()
    return _get


def _make_user(session, role, full_name=None, password='password123'):
    suffix = str(uuid.uuid4())[:8]
    user = AppUser(
        username=f'{role.value}-{suffix}',
        email=f'{role.value}-{suffix}@test.com',
        full_name=full_name or f'{role.value.title()} {suffix}',
        role=role.value,
        active=True
    )
    user.set_password(password)
    session.add(user)
    session.flush()
    return user


@pytest.fixture(scope='function')
def vehicle_id(session):
    vehicle = Vehicle(brand='Nissan', model='NP300', plate='ABC-123', odometer=120500, active=True)
    session.add(vehicle)
    session.commit()
    return vehicle.id


@pytest.fixture(scope='function')
def seller_user(session, vehicle_id):
    """Seller account; returns (username, user_id, seller_id)."""
    user = _make_user(session, Role.VENDEDOR, full_name='Ana Ruta')
    seller = Seller(user_id=user.id, vehicle_id=vehicle_id, active=True, deleted=False)
    session.add(seller)
    session.commit()
    return user.username, user.id, seller.id


@pytest.fixture(scope='function')
def seller_id(seller_user):
    return seller_user[2]


@pytest.fixture(scope='function')
def other_seller_id(session):
    user = _make_user(session, Role.VENDEDOR, full_name='Beto Ruta')
    seller = Seller(user_id=user.id, active=True, deleted=False)
    session.add(seller)
    session.commit()
    return seller.id


@pytest.fixture(scope='function')
def loader_user(session):
    """Loader account; returns (username, user_id, loader_id)."""
    user = _make_user(session, Role.CARGADOR)
    loader = Loader(user_id=user.id)
    session.add(loader)
    session.commit()
    return user.username, user.id, loader.id


@pytest.fixture(scope='function')
def admin_user(session):
    """Admin account; returns (username, user_id)."""
    user = _make_user(session, Role.ADMIN)
    session.commit()
    return user.username, user.id


@pytest.fixture(scope='function')
def products(session):
    """Catalog: name -> product id."""
    category = Category(name='Bebidas')
    session.add(category)
    session.flush()
    catalog = {
        'Widget': Decimal('2.50'),
        'Gadget': Decimal('10.00'),
        'Agua 1L': Decimal('1.25'),
    }
    ids = {}
    for name, price in catalog.items():
        product = Product(name=name, price=price, category_id=category.id, active=True, deleted=False)
        session.add(product)
        session.flush()
        ids[name] = product.id
    session.commit()
    return ids


@pytest.fixture(scope='function')
def open_load_id(session, seller_id, loader_user):
    """Open load for the seller, already set as its active load."""
    from distribuidora.services.load_service import open_load
    load = open_load(session, seller_id, created_by=loader_user[1])
    return load.id


@pytest.fixture(scope='function')
def widget_load(session, open_load_id, products):
    """Active load with 10 Widget staged; returns (load_id, widget_id)."""
    from distribuidora.services.load_service import stage_products
    stage_products(session, open_load_id, [{'productoId': products['Widget'], 'cantidad': 10}])
    return open_load_id, products['Widget']


@pytest.fixture(scope='function')
def customer_id(session):
    customer = Customer(business_name='Abarrotes Lupita', contact_name='Lupita',
                        phone='555-0101', qr_code='QR-LUPITA', active=True)
    session.add(customer)
    session.commit()
    return customer.id


@pytest.fixture(scope='function')
def credit_scenario(session, customer_id):
    """
    Two credit sales for one customer: A (100, untouched) and B (50).

    Credit A is pending 100; the customer owes 150 overall.
    Returns (credit_a_id, credit_b_id).
    """
    credit_ids = []
    for total in (Decimal('100.00'), Decimal('50.00')):
        sale = CustomerSale(customer_id=customer_id, total=total,
                            payment_type=SalePaymentType.CREDITO.value)
        session.add(sale)
        session.flush()
        credit = Credit(sale_id=sale.id)
        session.add(credit)
        session.flush()
        credit_ids.append(credit.id)
    session.commit()
    return tuple(credit_ids)


@pytest.fixture(scope='function')
def token_for(app):
    """Build a bearer header for a principal."""
    def _make(role, user_id=1, seller_id=None, loader_id=None):
        principal = Principal(user_id=user_id, role=Role(role), seller_id=seller_id, loader_id=loader_id)
        with app.app_context():
            token = issue_token(principal)
        return {'Authorization': f'Bearer {token}'}
    return _make


@pytest.fixture(scope='function')
def seller_headers(token_for, seller_user):
    _, user_id, seller_id = seller_user
    return token_for('vendedor', user_id=user_id, seller_id=seller_id)


@pytest.fixture(scope='function')
def loader_headers(token_for, loader_user):
    _, user_id, loader_id = loader_user
    return token_for('cargador', user_id=user_id, loader_id=loader_id)


@pytest.fixture(scope='function')
def admin_headers(token_for, admin_user):
    return token_for('admin', user_id=admin_user[1])
