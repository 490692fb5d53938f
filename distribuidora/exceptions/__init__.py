"""Custom exceptions for the distribution backend."""


class AppError(Exception):
    """Base exception for all application errors."""
    def __init__(self, message="Error interno", status_code=500, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload

    def to_dict(self):
        rv = dict(self.payload or ())
        rv['ok'] = False
        rv['error'] = self.message
        return rv


class ValidationError(AppError):
    """Malformed or missing input."""
    def __init__(self, message, payload=None):
        super().__init__(message, 400, payload)


class InvalidItem(ValidationError):
    """A line item with a missing, non-numeric or non-positive quantity."""


class ProductNotInLoad(ValidationError):
    """Raised when a sale or return references a product absent from the load."""
    def __init__(self, product_ref):
        super().__init__(f'Producto no está en la carga: {product_ref}', {'producto': str(product_ref)})


class NotFoundError(AppError):
    """Exception raised when a resource is not found."""
    def __init__(self, message="Recurso no encontrado", payload=None):
        super().__init__(message, 404, payload)


class LoadNotFound(NotFoundError):
    def __init__(self, load_id):
        super().__init__('Carga no encontrada o ya procesada', {'cargaId': load_id})


class ConflictError(AppError):
    """Business rule conflict against current state."""
    def __init__(self, message, payload=None):
        super().__init__(message, 409, payload)


class NoActiveLoad(ConflictError):
    def __init__(self, seller_id):
        super().__init__('Sin carga para este vendedor', {'idVendedor': seller_id})


class InsufficientStock(ConflictError):
    """Raised when a sale asks for more than the load line has remaining."""
    def __init__(self, product_name, requested, remaining):
        req_fmt = _fmt_qty(requested)
        rem_fmt = _fmt_qty(remaining)
        message = f'Sin suficiente restante para {product_name} (solicitado={req_fmt}, restante={rem_fmt})'
        super().__init__(message, {
            'producto': product_name,
            'solicitado': float(requested),
            'restante': float(remaining),
        })
        self.product_name = product_name
        self.requested = requested
        self.remaining = remaining


class OverpaymentError(ConflictError):
    """A credit payment larger than what is still owed."""
    def __init__(self, message, pending_credit, customer_balance):
        super().__init__(message, {
            'pendiente_credito': float(pending_credit),
            'saldo_cliente': float(customer_balance),
        })


class AuthenticationError(AppError):
    def __init__(self, message='Credenciales inválidas'):
        super().__init__(message, 401)


class ForbiddenError(AppError):
    """Raised when a user lacks permission for an action."""
    def __init__(self, message='No autorizado'):
        super().__init__(message, 403)


class InternalError(AppError):
    def __init__(self, message='Error interno'):
        super().__init__(message, 500)


def _fmt_qty(value):
    if value % 1 == 0:
        return f'{int(value)}'
    return f'{value:.3f}'.rstrip('0').rstrip('.')
