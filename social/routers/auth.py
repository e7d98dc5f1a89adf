from fastapi import APIRouter, Depends

from social.container import Container
from social.context import RequestContext
from social.dependencies import get_container, get_request_context
from social.schemas import AuthResponse, LoginRequest, RegisterRequest

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


@router.post("/register", status_code=201, response_model=AuthResponse)
async def register(
    data: RegisterRequest,
    ctx: RequestContext = Depends(get_request_context),
    container: Container = Depends(get_container),
):
    return await container.auth.register(ctx, data)


@router.post("/login", response_model=AuthResponse)
async def login(
    data: LoginRequest,
    ctx: RequestContext = Depends(get_request_context),
    container: Container = Depends(get_container),
):
    return await container.auth.login(ctx, data)
