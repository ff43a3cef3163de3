"""Custom exceptions for the client portal."""
from portal.i18n import translate


class PortalError(Exception):
    """Base exception for all application errors."""
    code = 'internal_error'
    message_key = 'error.internal'

    def __init__(self, message=None, status_code=500, payload=None, **params):
        self.params = params
        if message is None:
            message = translate(self.message_key, **params)
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload

    def localized(self, language):
        """Message rendered in a specific language."""
        return translate(self.message_key, language, **self.params)

    def to_dict(self, language=None):
        rv = dict(self.payload or ())
        rv['message'] = self.localized(language) if language else self.message
        rv['code'] = self.code
        rv['status'] = 'error'
        return rv


class ValidationError(PortalError):
    """Quantity below floor or malformed input. Nothing was mutated."""
    code = 'validation_error'
    message_key = 'validation.invalid_input'

    def __init__(self, message_key=None, status_code=400, payload=None, **params):
        if message_key:
            self.message_key = message_key
        super().__init__(None, status_code, payload, **params)


class BelowMinimumQuantityError(ValidationError):
    """Raised when a cart quantity is under the minimum order quantity."""
    code = 'below_minimum_quantity'

    def __init__(self, quantity, minimum):
        super().__init__(
            'validation.below_minimum',
            payload={'quantity': quantity, 'minimum': minimum},
            minimum=minimum,
        )
        self.quantity = quantity
        self.minimum = minimum


class NotFoundError(PortalError):
    """Exception raised when a resource is not found."""
    code = 'not_found'
    message_key = 'error.not_found'

    def __init__(self, message=None, payload=None):
        super().__init__(message, 404, payload)


class LoginRequiredError(PortalError):
    """No authenticated profile on the request."""
    code = 'login_required'
    message_key = 'error.login_required'

    def __init__(self):
        super().__init__(None, 401)


class UnauthorizedError(PortalError):
    """Raised when a user lacks permission for an action."""
    code = 'unauthorized'
    message_key = 'error.unauthorized'

    def __init__(self, message=None):
        super().__init__(message, 403)


class DiscountError(PortalError):
    """A promotional code could not be applied to the cart."""
    code = 'discount_error'

    def __init__(self, discount_code=None):
        super().__init__(None, 422, {'discount_code': discount_code})
        self.discount_code = discount_code


class InvalidCodeError(DiscountError):
    """No active offer carries this code."""
    code = 'invalid_code'
    message_key = 'discount.invalid_code'


class NoDiscountOfferedError(DiscountError):
    """The offer exists but its percentage is zero or negative."""
    code = 'no_discount_offered'
    message_key = 'discount.no_discount'


class NotApplicableError(DiscountError):
    """A scoped offer matches no line of the cart."""
    code = 'not_applicable'
    message_key = 'discount.not_applicable'


class AllocationError(PortalError):
    """The order-number sequence could not hand out a number."""
    code = 'allocation_error'
    message_key = 'order.allocation_failed'

    def __init__(self):
        super().__init__(None, 503)


class OrderSubmissionError(PortalError):
    """Base class for failures while persisting an order."""
    code = 'order_submission_error'
    message_key = 'order.submission_failed'


class TotalSubmissionError(OrderSubmissionError):
    """Nothing was persisted."""
    code = 'total_submission_error'

    def __init__(self):
        super().__init__(None, 500)


class PartialSubmissionError(OrderSubmissionError):
    """The order header exists but its line items do not; needs operator remediation."""
    code = 'partial_submission_error'
    message_key = 'order.partial_submission'

    def __init__(self, order_id, order_number):
        super().__init__(
            None, 500,
            {'order_id': order_id, 'order_number': order_number},
            order_number=order_number,
        )
        self.order_id = order_id
        self.order_number = order_number


class InvalidTransitionError(PortalError):
    """Order status change not allowed by the lifecycle."""
    code = 'invalid_transition'
    message_key = 'order.invalid_transition'

    def __init__(self, current, target):
        super().__init__(
            None, 409,
            {'current': current, 'target': target},
            current=current, target=target,
        )
