"""Requester identity, permissions and field visibility."""

from docforge.auth.fields import AdminOwnerTransformer, FieldAccess, NoopTransformer, Role
from docforge.auth.jwt_service import InvalidTokenError, JWTError, JWTService, TokenExpiredError
from docforge.auth.middleware import AuthMiddleware, get_requester
from docforge.auth.permissions import Permission, Permissions, check_permissions, owned_by
from docforge.auth.types import Requester, TokenClaims

__all__ = [
    "AdminOwnerTransformer",
    "AuthMiddleware",
    "FieldAccess",
    "InvalidTokenError",
    "JWTError",
    "JWTService",
    "NoopTransformer",
    "Permission",
    "Permissions",
    "Requester",
    "Role",
    "TokenClaims",
    "TokenExpiredError",
    "check_permissions",
    "get_requester",
    "owned_by",
]
