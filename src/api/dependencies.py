"""FastAPI dependencies shared by the document routes."""

from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from src.errors import Unauthorized
from src.vault.service import DocumentVault

bearer_scheme = HTTPBearer(auto_error=False)


def get_vault(request: Request) -> DocumentVault:
    return request.app.state.vault


def get_owner_id(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> str:
    """Resolve the authenticated owner from the bearer token."""
    if credentials is None:
        raise Unauthorized("No authentication token provided")
    return request.app.state.verifier.verify(credentials.credentials)


OwnerId = Annotated[str, Depends(get_owner_id)]
Vault = Annotated[DocumentVault, Depends(get_vault)]
