"""Models package - exports all SQLAlchemy models."""
# Identity
from distribuidora.models.app_user import AppUser, Role
from distribuidora.models.seller import Seller, Loader
from distribuidora.models.vehicle import Vehicle, VehicleAssignment

# Catalog
from distribuidora.models.category import Category
from distribuidora.models.product import Product
from distribuidora.models.customer import Customer

# Loads and sales
from distribuidora.models.load import Load, LoadLine
from distribuidora.models.public_sale import PublicSale, PublicSaleLine, PaymentMethod, normalize_payment_method
from distribuidora.models.product_return import ProductReturn, ProductReturnLine

# Credit
from distribuidora.models.credit import CustomerSale, SalePaymentType, Credit, CreditPayment

# Field operations
from distribuidora.models.global_discount import GlobalDiscount
from distribuidora.models.no_sale_visit import NoSaleVisit

__all__ = [
    'AppUser', 'Role', 'Seller', 'Loader', 'Vehicle', 'VehicleAssignment',
    'Category', 'Product', 'Customer',
    'Load', 'LoadLine',
    'PublicSale', 'PublicSaleLine', 'PaymentMethod', 'normalize_payment_method',
    'ProductReturn', 'ProductReturnLine',
    'CustomerSale', 'SalePaymentType', 'Credit', 'CreditPayment',
    'GlobalDiscount', 'NoSaleVisit',
]
