"""
Typed Exception Hierarchy for the reminders system.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from RemindersError:

    RemindersError (base)
    |
    +-- ConfigurationError
    |   +-- ConfigLoadError
    |   +-- InvalidCronExpressionError
    |
    +-- DeliveryError
    |   +-- TransientDeliveryError
    |
    +-- PersistenceError
    |
    +-- ValidationError
    |   +-- TemplateNotFoundError
    |   +-- ObligationNotFoundError
    |
    +-- IdempotencyViolationError
    |
    +-- UnknownCycleError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Configuration   | CONFIGURATION_ERROR         | Provider credentials missing
                | CONFIG_LOAD_ERROR           | Configuration file malformed
                | INVALID_CRON_EXPRESSION     | Schedule expression unparseable
----------------|-----------------------------|-----------------------------------------
Delivery        | TRANSIENT_DELIVERY_ERROR    | Timeout, non-2xx, provider rejected
----------------|-----------------------------|-----------------------------------------
Persistence     | PERSISTENCE_ERROR           | Store unreachable or query failed
----------------|-----------------------------|-----------------------------------------
Validation      | VALIDATION_ERROR            | Malformed obligation or job
                | TEMPLATE_NOT_FOUND          | Template id not in catalog
                | OBLIGATION_NOT_FOUND        | Settle of an unknown obligation
----------------|-----------------------------|-----------------------------------------
Idempotency     | IDEMPOTENCY_VIOLATION       | Successor already exists
----------------|-----------------------------|-----------------------------------------
Dispatch        | UNKNOWN_CYCLE               | run_cycle of an unregistered cycle

===============================================================================
HANDLING PATTERNS
===============================================================================

1. PER-PROVIDER (fall through to the next provider):

    except ConfigurationError:      # skipped, no network call made
    except TransientDeliveryError:  # failed attempt, try the next one

2. PER-ITEM (isolate, count, continue):

    except ValidationError as e:
        failures.append(e.code)

3. PER-CYCLE (abort, surface to the scheduler):

    PersistenceError raised while scanning propagates out of run_cycle.

4. IDEMPOTENCY (a warning, never a failure of settlement):

    except IdempotencyViolationError as e:
        warning = str(e)

===============================================================================
"""


class RemindersError(Exception):
    """
    Base exception for all reminders errors.

    All subclasses have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "REMINDERS_ERROR"


# Configuration


class ConfigurationError(RemindersError):
    """A component is missing required configuration."""

    code: str = "CONFIGURATION_ERROR"

    def __init__(self, component: str, detail: str = "not configured"):
        self.component = component
        self.detail = detail
        super().__init__(f"{component}: {detail}")


class ConfigLoadError(ConfigurationError):
    """Configuration source could not be read or parsed."""

    code: str = "CONFIG_LOAD_ERROR"

    def __init__(self, source: str, detail: str):
        super().__init__(source, detail)
        self.source = source


class InvalidCronExpressionError(ConfigurationError):
    """A schedule expression could not be parsed."""

    code: str = "INVALID_CRON_EXPRESSION"

    def __init__(self, expression: str, detail: str):
        self.expression = expression
        super().__init__("cron", f"{detail}: {expression!r}")


# Delivery


class DeliveryError(RemindersError):
    """Base exception for provider delivery errors."""

    code: str = "DELIVERY_ERROR"


class TransientDeliveryError(DeliveryError):
    """Provider timed out, answered non-2xx, or rejected the message."""

    code: str = "TRANSIENT_DELIVERY_ERROR"

    def __init__(
        self,
        provider: str,
        detail: str,
        status_code: int | None = None,
    ):
        self.provider = provider
        self.detail = detail
        self.status_code = status_code
        super().__init__(f"{provider}: {detail}")


# Persistence


class PersistenceError(RemindersError):
    """Data store unreachable or a query failed."""

    code: str = "PERSISTENCE_ERROR"

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"{operation} failed: {detail}")


# Validation


class ValidationError(RemindersError):
    """A malformed obligation or notification job."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class TemplateNotFoundError(ValidationError):
    """Template id is not present in the catalog."""

    code: str = "TEMPLATE_NOT_FOUND"

    def __init__(self, template_id: str):
        self.template_id = template_id
        super().__init__(f"Template not found: {template_id}", field="template_id")


class ObligationNotFoundError(ValidationError):
    """Obligation with given ID was not found."""

    code: str = "OBLIGATION_NOT_FOUND"

    def __init__(self, obligation_id: str):
        self.obligation_id = obligation_id
        super().__init__(
            f"Obligation not found: {obligation_id}", field="obligation_id",
        )


# Idempotency


class IdempotencyViolationError(RemindersError):
    """A successor already exists for the settled obligation."""

    code: str = "IDEMPOTENCY_VIOLATION"

    def __init__(self, predecessor_id: str):
        self.predecessor_id = predecessor_id
        super().__init__("successor already exists")


# Dispatch


class UnknownCycleError(RemindersError):
    """No notification cycle is registered under the given name."""

    code: str = "UNKNOWN_CYCLE"

    def __init__(self, cycle_name: str, available: list[str] | None = None):
        self.cycle_name = cycle_name
        self.available = sorted(available or [])
        super().__init__(
            f"Unknown cycle: {cycle_name}. Available: {self.available}"
        )
