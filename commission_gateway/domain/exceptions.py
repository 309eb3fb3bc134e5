"""Domain-specific exceptions"""

from typing import Optional


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class InvalidInputError(DomainException):
    """Input record violates the engine's contract (bad amount, unknown enum, missing field)"""

    record_type = "record"

    def __init__(self, field: str, reason: str, record_id: Optional[str] = None):
        self.field = field
        self.reason = reason
        self.record_id = record_id
        where = f" {record_id}" if record_id else ""
        super().__init__(f"Invalid {self.record_type}{where}: {field} {reason}")

    def to_dict(self) -> dict:
        return {
            "record_type": self.record_type,
            "record_id": self.record_id,
            "field": self.field,
            "reason": self.reason,
        }


class InvalidDealError(InvalidInputError):
    record_type = "deal"


class InvalidProfileError(InvalidInputError):
    record_type = "profile"


class InvalidTargetError(InvalidInputError):
    record_type = "target"


class InvalidKpiError(InvalidInputError):
    record_type = "kpi"


class InvalidContextError(InvalidInputError):
    """Evaluated month/year or reference date cannot be computed"""

    record_type = "context"


class UnknownRuleSetError(DomainException):
    """Requested deal bonus rule set is not registered"""

    pass


class RecordsAPIError(DomainException):
    """Records service returned an error or is unavailable"""

    pass


class RepNotFoundError(DomainException):
    """Records service has no profile for the requested rep"""

    pass


class PayrollSyncError(DomainException):
    """Payroll webhook rejected the snapshot after all retries"""

    pass
