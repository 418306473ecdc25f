"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class ValidationError(DomainException):
    """Input is malformed or outside the loan type's bounds"""

    pass


class InvalidStateTransition(DomainException):
    """Lifecycle move not allowed from the aggregate's current status"""

    def __init__(self, aggregate: str, current: str, target: str):
        self.aggregate = aggregate
        self.current = current
        self.target = target
        super().__init__(f"{aggregate} cannot move from {current} to {target}")


class DuplicateContractError(DomainException):
    """A contract already exists for the application"""

    pass


class AlreadyPaidError(DomainException):
    """Payment has already been settled"""

    pass


class ContractGenerationError(DomainException):
    """Contract or schedule could not be generated; approval was rolled back"""

    pass


class EntityNotFoundError(DomainException):
    """Referenced aggregate does not exist"""

    pass


class ConcurrentModificationError(DomainException):
    """Row was modified by another transaction since it was loaded"""

    pass
