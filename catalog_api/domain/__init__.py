"""Domain layer - errors, tenancy rules and field validators.

- **Exceptions**: Typed business rule violations with stable error codes
- **Tenancy**: Caller scope and the visibility/ownership gate
- **Validators**: Field bounds, option normalisation, cycle detection
"""

from catalog_api.domain.exceptions import DomainError, ErrorKind
from catalog_api.domain.tenancy import CallerScope, Role

__all__ = [
    # Exceptions
    "DomainError",
    "ErrorKind",
    # Tenancy
    "CallerScope",
    "Role",
]
