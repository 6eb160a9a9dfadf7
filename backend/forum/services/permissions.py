"""Static role to permission mapping."""

ROLE_USER = "user"
ROLE_ADMIN = "admin"
ROLE_SUPER_ADMIN = "super_admin"

ROLES = (ROLE_USER, ROLE_ADMIN, ROLE_SUPER_ADMIN)
ADMIN_ROLES = (ROLE_ADMIN, ROLE_SUPER_ADMIN)

ROLE_PERMISSIONS = {
    ROLE_SUPER_ADMIN: ["read", "write", "delete", "admin", "manage_admins", "manage_roles", "view_analytics"],
    ROLE_ADMIN: ["read", "write", "delete", "admin", "view_analytics"],
}
DEFAULT_PERMISSIONS = ["read", "write"]


def permissions_for(role: str | None) -> list[str]:
    return list(ROLE_PERMISSIONS.get(role or ROLE_USER, DEFAULT_PERMISSIONS))


def is_admin_role(role: str | None) -> bool:
    return role in ADMIN_ROLES
