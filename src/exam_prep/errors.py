"""Exceptions raised by the store."""


class StoreError(Exception):
    """Base class for recoverable store errors."""


class AuthenticationRequired(StoreError):
    def __init__(self, message: str = "User not authenticated"):
        super().__init__(message)


class AuthenticationError(StoreError):
    def __init__(self, message: str = "Invalid credentials"):
        super().__init__(message)


class NotFound(StoreError):
    def __init__(self, kind: str, item_id: str):
        super().__init__(f"{kind} not found: {item_id}")
        self.kind = kind
        self.item_id = item_id


class InsufficientFunds(StoreError):
    def __init__(self, price: int, balance: int):
        super().__init__(f"Insufficient coins: need {price}, have {balance}")
        self.price = price
        self.balance = balance


class ValidationError(StoreError):
    pass


class GenerationError(StoreError):
    """The content generator returned something unusable."""
