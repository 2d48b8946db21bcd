"""FastAPI dependencies resolving the caller from the bearer token.

Usage in a protected router:
    from src.lf_gateway.auth.dependencies import get_current_principal

    @router.post("/funds/{fund_id}/deposit")
    async def deposit(principal: Principal = Depends(get_current_principal)):
        ...

Wallet identity comes from the token only, never from the request body.
Auth failures are AppErrors, so they render in the ApiResponse envelope
(401 responses also carry WWW-Authenticate, see main.py).
"""

from dataclasses import dataclass

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from src.lf_common.enums import PrincipalRole
from src.lf_common.errors import ForbiddenError, InvalidCredentialsError
from src.lf_gateway.auth.jwt_handler import decode_token

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Principal:
    wallet: str
    role: str = PrincipalRole.INVESTOR.value

    @property
    def is_indexer(self) -> bool:
        return self.role == PrincipalRole.INDEXER.value


async def get_current_principal(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> Principal:
    """Raises InvalidCredentialsError (401) if the token is missing, invalid, or expired."""
    if credentials is None:
        raise InvalidCredentialsError()
    payload = decode_token(credentials.credentials)
    return Principal(
        wallet=payload["sub"],
        role=payload.get("role", PrincipalRole.INVESTOR.value),
    )


async def require_indexer(
    principal: Principal = Depends(get_current_principal),
) -> Principal:
    if not principal.is_indexer:
        raise ForbiddenError("indexer role required")
    return principal
