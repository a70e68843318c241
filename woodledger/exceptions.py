"""
Exceptions for Woodledger.

Every error is a LedgerError carrying a structured code for programmatic
handling. Subclasses give callers something to catch per failure kind.
"""

from decimal import Decimal
from typing import Any


class LedgerError(Exception):
    """
    Structured exception for ledger operations.

    Usage:
        try:
            ledger.request_distribution(member.pk, item.pk, Decimal('50'), actor=actor)
        except InsufficientStockError as e:
            print(f"Only {e.available} available")

    Attributes:
        code: Error code for programmatic handling
        message: Human-readable message
        data: Additional context data
    """

    default_code = 'LEDGER_ERROR'

    _default_messages = {
        'LEDGER_ERROR': 'Ledger operation failed',
        'INVALID_QUANTITY': 'Invalid quantity {requested} (must be positive)',
        'INVALID_INPUT': 'Invalid input',
        'MISSING_FIELD': 'Field {field} is required',
        'INVALID_CHOICE': 'Invalid value {value!r} for {field}',
        'ITEM_EXPIRED': 'Stock item {item_id} expired on {expiry_date}',
        'NOT_FOUND': 'Record not found',
        'CONFLICT': 'Conflicting record',
        'ITEM_NOT_FOUND': 'Stock item {item_id} not found',
        'DISTRIBUTION_NOT_FOUND': 'Distribution {distribution_id} not found',
        'MEMBER_NOT_FOUND': 'Member {member_id} not found',
        'INSUFFICIENT_AVAILABLE': 'Requested {requested}, only {available} available',
        'INVALID_TRANSITION': 'Cannot move distribution from {current} to {target}',
        'DUPLICATE_RECEIPT': 'Receipt number {receipt_number} is already in use',
        'ITEM_IN_USE': 'Stock item {item_id} is referenced by distributions',
        'NOT_AUTHORIZED': 'Actor lacks the {capability} capability',
    }

    def __init__(self, code: str | None = None, message: str | None = None, **data):
        self.code = code or self.default_code
        self.data = data
        self.message = message or self._format_message()
        super().__init__(self.message)

    def _format_message(self) -> str:
        template = self._default_messages.get(self.code, self.code)
        try:
            return template.format(**self.data)
        except (KeyError, IndexError):
            return template

    def as_dict(self) -> dict[str, Any]:
        """Serialize to dict (useful for APIs)."""
        return {
            'code': self.code,
            'message': self.message,
            'data': {
                k: str(v) if isinstance(v, Decimal) else v
                for k, v in self.data.items()
            }
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


class ValidationError(LedgerError):
    """Malformed or missing input."""

    default_code = 'INVALID_INPUT'


class NotFoundError(LedgerError):
    """Unknown item, distribution or member."""

    default_code = 'NOT_FOUND'


class InsufficientStockError(LedgerError):
    """Requested quantity exceeds the relevant pool."""

    default_code = 'INSUFFICIENT_AVAILABLE'

    @property
    def available(self) -> Decimal:
        """Shortcut for data['available']."""
        return self.data.get('available', Decimal('0'))

    @property
    def requested(self) -> Decimal:
        """Shortcut for data['requested']."""
        return self.data.get('requested', Decimal('0'))


class InvalidTransitionError(LedgerError):
    """Status transition not permitted from the current state."""

    default_code = 'INVALID_TRANSITION'


class ConflictError(LedgerError):
    """Unique-field collision."""

    default_code = 'CONFLICT'


class NotAuthorizedError(LedgerError):
    """Actor lacks the capability the operation requires."""

    default_code = 'NOT_AUTHORIZED'
