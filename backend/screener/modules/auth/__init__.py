"""Bearer-token principals and role checks."""

from screener.modules.auth.principal import (
    Principal,
    Role,
    get_admin_principal,
    get_current_principal,
    require_admin,
)

__all__ = [
    "Principal",
    "Role",
    "get_admin_principal",
    "get_current_principal",
    "require_admin",
]
