import logging

from fastapi import APIRouter, Depends, Query, Response

from social.container import Container
from social.context import RequestContext
from social.dependencies import (
    PaginationParams,
    get_container,
    get_current_user_context,
    get_request_context,
)
from social.schemas import (
    CommentCreate,
    CommentListResponse,
    CommentResponse,
    PostCreate,
    PostListResponse,
    PostResponse,
    PostUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/posts", tags=["posts"])


@router.post("", status_code=201, response_model=PostResponse)
async def create_post(
    data: PostCreate,
    ctx: RequestContext = Depends(get_current_user_context),
    container: Container = Depends(get_container),
):
    post = await container.posts.create_post(ctx, ctx.user_id, data)
    logger.info("Post created: id=%s user_id=%s", post.id, post.user_id)
    return post


@router.get("", response_model=PostListResponse)
async def list_posts(
    pagination: PaginationParams = Depends(PaginationParams),
    ctx: RequestContext = Depends(get_request_context),
    container: Container = Depends(get_container),
):
    return await container.posts.list_posts(ctx, pagination.limit, pagination.offset)


# Registered before "/{post_id}" so the literal paths win.
@router.get("/search", response_model=list[PostResponse])
async def search_posts(
    title: str = Query(..., min_length=1, description="Case-insensitive title substring."),
    pagination: PaginationParams = Depends(PaginationParams),
    ctx: RequestContext = Depends(get_request_context),
    container: Container = Depends(get_container),
):
    return await container.posts.search_by_title(ctx, title, pagination.limit, pagination.offset)


@router.get("/tags", response_model=list[PostResponse])
async def posts_by_tags(
    tags: list[str] = Query(..., description="Posts carrying any of these tags."),
    pagination: PaginationParams = Depends(PaginationParams),
    ctx: RequestContext = Depends(get_request_context),
    container: Container = Depends(get_container),
):
    return await container.posts.get_by_tags(ctx, tags, pagination.limit, pagination.offset)


@router.get("/{post_id}", response_model=PostResponse)
async def get_post(
    post_id: int,
    ctx: RequestContext = Depends(get_request_context),
    container: Container = Depends(get_container),
):
    return await container.posts.get_post(ctx, post_id)


@router.put("/{post_id}", response_model=PostResponse)
async def update_post(
    post_id: int,
    data: PostUpdate,
    ctx: RequestContext = Depends(get_current_user_context),
    container: Container = Depends(get_container),
):
    post = await container.posts.update_post(ctx, post_id, ctx.user_id, data)
    logger.info("Post updated: id=%s", post.id)
    return post


@router.delete("/{post_id}", status_code=204)
async def delete_post(
    post_id: int,
    ctx: RequestContext = Depends(get_current_user_context),
    container: Container = Depends(get_container),
):
    await container.posts.delete_post(ctx, post_id, ctx.user_id)
    logger.info("Post deleted: id=%s", post_id)
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# Comments nested under a post
# ---------------------------------------------------------------------------

@router.post("/{post_id}/comments", status_code=201, response_model=CommentResponse)
async def create_comment(
    post_id: int,
    data: CommentCreate,
    ctx: RequestContext = Depends(get_current_user_context),
    container: Container = Depends(get_container),
):
    comment = await container.comments.create_comment(ctx, post_id, ctx.user_id, data)
    logger.info("Comment created: id=%s post_id=%s", comment.id, post_id)
    return comment


@router.get("/{post_id}/comments", response_model=CommentListResponse)
async def list_post_comments(
    post_id: int,
    pagination: PaginationParams = Depends(PaginationParams),
    ctx: RequestContext = Depends(get_request_context),
    container: Container = Depends(get_container),
):
    return await container.comments.list_post_comments(ctx, post_id, pagination.limit, pagination.offset)
