"""Domain errors raised by the engines and rendered by the API error handlers.

Every error carries the HTTP status it maps to and a stable machine-readable
``code`` so clients can branch without parsing the message.
"""

from __future__ import annotations


class DomainError(Exception):
    """Base class for all expected failures of an engine operation."""

    status_code: int = 500
    code: str = "error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(DomainError):
    """A referenced user, course, lesson, certificate or referrer does not exist."""

    status_code = 404
    code = "not_found"


class InvalidInputError(DomainError):
    """Malformed input: bad id, missing field, unusable wallet address."""

    status_code = 400
    code = "invalid_input"


class BusinessRuleViolation(DomainError):
    """The request is well-formed but the current state forbids it."""

    status_code = 400
    code = "business_rule_violation"


class CourseNotCompleted(BusinessRuleViolation):
    code = "course_not_completed"

    def __init__(self, message: str = "Course not completed") -> None:
        super().__init__(message)


class AlreadyClaimed(BusinessRuleViolation):
    code = "already_claimed"

    def __init__(self, message: str = "Reward already claimed") -> None:
        super().__init__(message)


class CertificateAlreadyIssued(BusinessRuleViolation):
    code = "certificate_already_issued"

    def __init__(self, message: str = "Certificate already issued") -> None:
        super().__init__(message)


class AlreadyReferred(BusinessRuleViolation):
    code = "already_referred"

    def __init__(self, message: str = "User already has a referrer") -> None:
        super().__init__(message)


class SelfReferral(BusinessRuleViolation):
    code = "self_referral"

    def __init__(self, message: str = "Users cannot refer themselves") -> None:
        super().__init__(message)


class NoWalletAddress(BusinessRuleViolation):
    code = "no_wallet_address"

    def __init__(self, message: str = "User does not have a wallet address set up") -> None:
        super().__init__(message)


class ExternalServiceFailure(DomainError):
    """The ledger reported a failed transfer or mint."""

    status_code = 502
    code = "ledger_failure"
