"""
Domain exceptions raised by the services layer.
Routes translate them into HTTP responses.
"""


class CaixaError(Exception):
    """Base class for every domain error."""


class NotFoundError(CaixaError):
    pass


class DateParseError(CaixaError, ValueError):
    def __init__(self, value):
        self.value = value
        super().__init__(f"Data inválida: {value!r}")


class MoneyParseError(CaixaError, ValueError):
    def __init__(self, value):
        self.value = value
        super().__init__(f"Valor monetário inválido: {value!r}")


class ReconciliationError(CaixaError, ValueError):
    pass


class ConcurrencyConflict(CaixaError):
    """The row changed between read and write."""


class GatewayError(CaixaError):
    def __init__(self, message: str, status_code: int | None = None, payload: dict | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload or {}
