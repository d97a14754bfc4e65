class DomainError(Exception):
    """Base class for domain-specific errors."""

    pass
