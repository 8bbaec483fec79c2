"""Typed errors raised by the cash-drawer services.

Every error carries a machine-readable ``code`` (class attribute, optionally
narrowed per instance) and the interpolation ``params`` used to render the
localized message at the HTTP boundary. Services never return error values;
they raise one of the five kinds below and leave retry policy to the caller.
"""

from __future__ import annotations


class CajaError(Exception):
    """Base exception for all cash-drawer errors."""

    code: str = "CAJA_ERROR"

    def __init__(self, message: str, *, code: str | None = None, **params: str) -> None:
        super().__init__(message)
        if code is not None:
            self.code = code
        self.params = params


class ValidationError(CajaError):
    """Malformed input: negative or non-finite amount, missing field."""

    code: str = "VALIDATION_ERROR"


class NotFoundError(CajaError):
    """A referenced drawer, shift or cashier does not exist for this tenant."""

    code: str = "NOT_FOUND"


class ConflictError(CajaError):
    """A uniqueness invariant would be violated."""

    code: str = "CONFLICT"


class DrawerBusyError(ConflictError):
    code: str = "DRAWER_BUSY"

    def __init__(self, drawer_id: str) -> None:
        self.drawer_id = drawer_id
        super().__init__(f"Drawer {drawer_id} already has an active shift", drawer_id=drawer_id)


class CashierBusyError(ConflictError):
    code: str = "CASHIER_BUSY"

    def __init__(self, cashier_id: str) -> None:
        self.cashier_id = cashier_id
        super().__init__(f"Cashier {cashier_id} already has an active shift", cashier_id=cashier_id)


class StateError(CajaError):
    """Operation requested on a record that is not in the required state."""

    code: str = "INVALID_STATE"


class ShiftNotActiveError(StateError):
    code: str = "SHIFT_NOT_ACTIVE"

    def __init__(self, shift_id: str, status: str) -> None:
        self.shift_id = shift_id
        self.status = status
        super().__init__(
            f"Shift {shift_id} is not active (status: {status})",
            shift_id=shift_id,
            status=status,
        )


class AtomicityError(CajaError):
    """A handoff could not be committed as one unit; nothing was changed."""

    code: str = "HANDOFF_NOT_COMMITTED"
