class DomainError(Exception):
    """Base for domain-level errors."""


class ResourceNotFound(DomainError):
    pass


class ValidationFailed(DomainError):
    pass


class ConflictError(DomainError):
    pass


class ServiceUnavailable(DomainError):
    pass


class Unauthenticated(DomainError):
    """No user context. Callers must block, never allow."""


class InvalidPolicyInput(ValidationFailed):
    """Unknown action, health status or plan identifier passed to the policy engine."""


class OverrideNotPermitted(ValidationFailed):
    """An override was requested for a level that cannot be overridden."""


class ActionBlocked(ConflictError):
    """The action is hard-blocked for the current case health."""


class AuditWriteFailed(ServiceUnavailable):
    """The override audit record could not be written; the mutation must not run."""
