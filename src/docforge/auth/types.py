"""Type definitions for requester identity."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Requester:
    """The caller attached to a request.

    Attributes:
        id: The requester's user id (compared against owner references)
        admin: Whether the requester has admin rights
        email: Optional email claim
        is_anonymous: Anonymous sessions carry an id but are not authenticated
    """

    id: str
    admin: bool = False
    email: str | None = None
    is_anonymous: bool = False

    @property
    def is_authenticated(self) -> bool:
        return bool(self.id) and not self.is_anonymous


@dataclass
class TokenClaims:
    """Claims embedded in a JWT token.

    Attributes:
        user_id: The authenticated user's ID
        admin: Admin flag
        email: Email claim, if any
        exp: Token expiration timestamp
        iat: Token issued-at timestamp
        type: Token type ("access")
    """

    user_id: str
    admin: bool = False
    email: str | None = None
    exp: int = 0
    iat: int = 0
    type: str = "access"

    def to_requester(self) -> Requester:
        return Requester(id=self.user_id, admin=self.admin, email=self.email)
