# app/dependencies/authz.py
from typing import Callable, Iterable

from fastapi import Depends

from app.core.config import get_settings
from app.core.exceptions import FeatureDisabled, Forbidden
from app.core.tenant_context import TenantContext, get_tenant_context
from app.dependencies.auth import get_current_user
from app.models.user import RoleName, User

ADMIN_ROLES = {RoleName.SUPER_ADMIN, RoleName.HOSPITAL_ADMIN}

FRONT_DESK_ROLES = (RoleName.RECEPTIONIST, RoleName.NURSE, RoleName.DOCTOR)
CLINICAL_ROLES = (RoleName.NURSE, RoleName.DOCTOR)


def require_tenant_user(
    current_user: User = Depends(get_current_user),
    ctx: TenantContext = Depends(get_tenant_context),
) -> TenantContext:
    """
    Tenant context for an authenticated user of any role.
    """
    return ctx


def require_roles(required_roles: Iterable[RoleName]) -> Callable[..., TenantContext]:
    """
    Dependency factory for role-based access.

    Usage:

    @router.post("/visits")
    def create_visit(ctx: TenantContext = Depends(require_roles([RoleName.RECEPTIONIST]))):
        ...

    Returns the TenantContext if the user holds one of the required roles.
    Hospital and platform admins always pass.
    """

    required = {RoleName(r) for r in required_roles} | ADMIN_ROLES

    def dependency(ctx: TenantContext = Depends(require_tenant_user)) -> TenantContext:
        if ctx.role not in required:
            raise Forbidden("Insufficient role permissions.")
        return ctx

    return dependency


def require_feature(flag: str, module_name: str) -> Callable[[], None]:
    """
    Dependency factory gating a router on a boolean setting.

    A disabled module answers 404 so it is indistinguishable from a missing route.
    """

    def dependency() -> None:
        if not getattr(get_settings(), flag):
            raise FeatureDisabled(f"{module_name} module disabled")

    return dependency
