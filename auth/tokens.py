"""Access token verification."""

from uuid import UUID

from jose import ExpiredSignatureError, JWTError, jwt

from auth.exceptions import InvalidTokenError, SessionExpiredError
from auth.types import Principal


class TokenVerifier:
    """
    Verifies signed access tokens and extracts the Principal.

    Tokens are issued elsewhere; they must carry ``userId`` and
    ``organizationId`` claims.
    """

    def __init__(self, secret: str, algorithm: str = "HS256"):
        self._secret = secret
        self._algorithm = algorithm

    def verify(self, token: str) -> Principal:
        """
        Decode and validate a token.

        Raises:
            SessionExpiredError: Token's exp claim has passed
            InvalidTokenError: Bad signature, malformed token or missing claims
        """
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except ExpiredSignatureError as e:
            raise SessionExpiredError("Token has expired") from e
        except JWTError as e:
            raise InvalidTokenError("Invalid authentication token") from e

        user_id = payload.get("userId") or payload.get("sub")
        organization_id = payload.get("organizationId")
        if not user_id or not organization_id:
            raise InvalidTokenError("Token is missing user or organization")

        try:
            return Principal(user_id=UUID(str(user_id)), organization_id=UUID(str(organization_id)))
        except ValueError as e:
            raise InvalidTokenError("Token carries malformed identifiers") from e
