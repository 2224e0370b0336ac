"""
Budget engine error taxonomy

Use cases raise these; the HTTP layer maps them to status codes.
"""


class BudgetError(Exception):
    """Base class for all budget engine errors"""
    pass


class ValidationError(BudgetError, ValueError):
    """Malformed transaction or budget input"""
    pass


class NotFoundError(BudgetError, LookupError):
    """Budget, notification or plan absent for the given key"""

    def __init__(self, resource: str = "Resource", key=None):
        self.resource = resource
        self.key = key
        if key is None:
            super().__init__(f"{resource} not found")
        else:
            super().__init__(f"{resource} {key} not found")


class ConflictError(BudgetError):
    """Concurrent modification detected and retries exhausted"""

    def __init__(self, budget_id: int | None, attempts: int):
        self.budget_id = budget_id
        self.attempts = attempts
        target = "Budget" if budget_id is None else f"Budget {budget_id}"
        super().__init__(
            f"{target} was modified concurrently; gave up after {attempts} attempt(s)"
        )


class InvalidPeriodError(BudgetError, ValueError):
    """Projection requested for an invalid date window"""
    pass


class DependencyError(BudgetError):
    """An external item-family or combo store read failed"""

    def __init__(self, store: str, reason: str = ""):
        self.store = store
        self.reason = reason
        message = f"Store '{store}' is unavailable"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
