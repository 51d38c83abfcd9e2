class DomainError(Exception):
    """Base class for domain/service errors."""


class NotFoundError(DomainError):
    pass


class AmbiguousMatchError(NotFoundError):
    """Search returned candidates but none (or more than one) matched exactly."""

    def __init__(self, reference, candidates):
        super().__init__(f"No exact match for {reference}")
        self.reference = reference
        self.candidates = list(candidates)


class CriticalMismatchError(DomainError):
    def __init__(self, reference, found_name):
        super().__init__(f"Order mismatch: supplier={reference}, platform={found_name}")
        self.reference = reference
        self.found_name = found_name


class RemoteError(DomainError):
    def __init__(self, detail):
        super().__init__("Remote error")
        self.detail = detail

    def __str__(self) -> str:
        return str(self.detail)


class RemoteTimeoutError(RemoteError):
    pass


class UnauthorizedError(DomainError):
    pass


class ValidationError(DomainError):
    def __init__(self, detail):
        super().__init__("Validation error")
        self.detail = detail

    def __str__(self) -> str:
        return str(self.detail)
