import logging

from fastapi import APIRouter, Depends, Response

from social.container import Container
from social.context import RequestContext
from social.dependencies import (
    PaginationParams,
    get_container,
    get_current_user_context,
    get_request_context,
)
from social.schemas import PostListResponse, UserCreate, UserListResponse, UserResponse, UserUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/users", tags=["users"])


@router.post("", status_code=201, response_model=UserResponse)
async def create_user(
    data: UserCreate,
    ctx: RequestContext = Depends(get_request_context),
    container: Container = Depends(get_container),
):
    user = await container.users.create_user(ctx, data)
    logger.info("User created: id=%s username=%s", user.id, user.username)
    return user


@router.get("", response_model=UserListResponse)
async def list_users(
    pagination: PaginationParams = Depends(PaginationParams),
    ctx: RequestContext = Depends(get_request_context),
    container: Container = Depends(get_container),
):
    return await container.users.list_users(ctx, pagination.limit, pagination.offset)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: int,
    ctx: RequestContext = Depends(get_request_context),
    container: Container = Depends(get_container),
):
    return await container.users.get_user(ctx, user_id)


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: int,
    data: UserUpdate,
    ctx: RequestContext = Depends(get_current_user_context),
    container: Container = Depends(get_container),
):
    user = await container.users.update_user(ctx, user_id, ctx.user_id, data)
    logger.info("User updated: id=%s", user.id)
    return user


@router.delete("/{user_id}", status_code=204)
async def delete_user(
    user_id: int,
    ctx: RequestContext = Depends(get_current_user_context),
    container: Container = Depends(get_container),
):
    await container.users.delete_user(ctx, user_id, ctx.user_id)
    logger.info("User deleted: id=%s", user_id)
    return Response(status_code=204)


@router.get("/{user_id}/posts", response_model=PostListResponse)
async def list_user_posts(
    user_id: int,
    pagination: PaginationParams = Depends(PaginationParams),
    ctx: RequestContext = Depends(get_request_context),
    container: Container = Depends(get_container),
):
    return await container.posts.list_user_posts(ctx, user_id, pagination.limit, pagination.offset)
