"""
Route guards - Role checks composed at route registration.

A RoleGuard is a FastAPI dependency object parameterized by the set of
roles a route requires. It runs before the handler body, so a rejected
request never reaches the domain:

    @router.post("/admins", dependencies=[Depends(RoleGuard(Role.ADMINISTRATOR))])

or, when the handler needs the principal:

    requester: Account = Depends(RoleGuard(Role.ADMIN, Role.SUPER_ADMIN))

A guard without roles is open and performs no authentication.
"""

import logging

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBasicCredentials

from campusauth.api.dependencies import (
    authenticate,
    get_authorizer,
    get_repository,
    optional_http_basic,
    unauthorized,
)
from campusauth.domain.ports import Account, AccountRepository, Role
from campusauth.domain.roles import ADMIN_HIERARCHY, RoleAuthorizer

logger = logging.getLogger(__name__)


class RoleGuard:
    """Reject requests whose principal's role is not in ``required_roles``."""

    def __init__(self, *required_roles: Role) -> None:
        self.required_roles = frozenset(required_roles)

    def __repr__(self) -> str:
        roles = ", ".join(sorted(role.value for role in self.required_roles))
        return f"RoleGuard({roles})"

    def __call__(
        self,
        credentials: HTTPBasicCredentials | None = Depends(optional_http_basic),
        repository: AccountRepository = Depends(get_repository),
        authorizer: RoleAuthorizer = Depends(get_authorizer),
    ) -> Account | None:
        if not self.required_roles:
            return None

        if credentials is None:
            raise unauthorized()
        account = authenticate(credentials, repository)
        if account is None:
            raise unauthorized()

        if not authorizer.is_authorized(self.required_roles, account.role):
            logger.warning(f"Access denied: {account.id} ({account.role.value}) needs {self!r}")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return account


require_admin = RoleGuard(*ADMIN_HIERARCHY)
require_admin_manager = RoleGuard(Role.SUPER_ADMIN, Role.ADMINISTRATOR)
