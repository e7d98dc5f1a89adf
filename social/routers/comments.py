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
from social.schemas import CommentListResponse, CommentResponse, CommentUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/comments", tags=["comments"])


@router.get("", response_model=CommentListResponse)
async def list_comments(
    pagination: PaginationParams = Depends(PaginationParams),
    ctx: RequestContext = Depends(get_request_context),
    container: Container = Depends(get_container),
):
    return await container.comments.list_comments(ctx, pagination.limit, pagination.offset)


@router.get("/{comment_id}", response_model=CommentResponse)
async def get_comment(
    comment_id: int,
    ctx: RequestContext = Depends(get_request_context),
    container: Container = Depends(get_container),
):
    return await container.comments.get_comment(ctx, comment_id)


@router.put("/{comment_id}", response_model=CommentResponse)
async def update_comment(
    comment_id: int,
    data: CommentUpdate,
    ctx: RequestContext = Depends(get_current_user_context),
    container: Container = Depends(get_container),
):
    comment = await container.comments.update_comment(ctx, comment_id, ctx.user_id, data)
    logger.info("Comment updated: id=%s", comment.id)
    return comment


@router.delete("/{comment_id}", status_code=204)
async def delete_comment(
    comment_id: int,
    ctx: RequestContext = Depends(get_current_user_context),
    container: Container = Depends(get_container),
):
    await container.comments.delete_comment(ctx, comment_id, ctx.user_id)
    logger.info("Comment deleted: id=%s", comment_id)
    return Response(status_code=204)
