from fastapi import HTTPException, Request

from port.user_repository import UserRepository
from services.token_service import TokenIssuer
from services.user_service import UserService


def _state(request: Request, name: str):
    """Fetch a component wired by the app factory, raising 503 until it exists."""
    component = getattr(request.app.state, name, None)
    if component is None:
        raise HTTPException(status_code=503, detail="Service not ready")
    return component


def get_user_repo(request: Request) -> UserRepository:
    return _state(request, "user_repo")


def get_user_service(request: Request) -> UserService:
    return _state(request, "user_service")


def get_token_issuer(request: Request) -> TokenIssuer:
    return _state(request, "token_issuer")
