import logging
import time

from fastapi import APIRouter, Depends

from app.dependencies import get_post_service
from app.schemas import ApiResponse, Post
from app.services.post_service import PostService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/posts", tags=["posts"])


@router.get(
    "",
    response_model=ApiResponse[list[Post]],
    summary="List every post with its author and comments",
    description=(
        "Fetches all posts from the upstream data source and joins each one "
        "with its author and comment list. Posts whose author or comments "
        "could not be resolved are still returned; their `enrichment` field "
        "says what is missing."
    ),
)
async def list_posts(service: PostService = Depends(get_post_service)):
    start = time.perf_counter()
    posts = await service.list_with_details()
    duration_ms = round((time.perf_counter() - start) * 1000)
    logger.info("Served %d posts with details in %d ms", len(posts), duration_ms)
    return ApiResponse.ok(
        f"Fetched {len(posts)} posts with details in {duration_ms} ms", posts
    )


@router.get(
    "/{post_id}",
    response_model=ApiResponse[Post],
    summary="Get one post with its author and comments",
    responses={400: {"model": ApiResponse}, 404: {"model": ApiResponse}},
)
async def get_post(post_id: int, service: PostService = Depends(get_post_service)):
    post = await service.get_with_details(post_id)
    return ApiResponse.ok("Post fetched", post)


@router.delete(
    "/{post_id}",
    response_model=ApiResponse[str],
    summary="Delete a post",
    description=(
        "Forwards the delete to the upstream data source. The upstream only "
        "simulates deletion, and cached reads are not invalidated, so the "
        "post may still be returned afterwards."
    ),
    responses={400: {"model": ApiResponse}, 503: {"model": ApiResponse}},
)
async def delete_post(post_id: int, service: PostService = Depends(get_post_service)):
    await service.delete(post_id)
    return ApiResponse.ok(f"Post {post_id} deleted", "Operation completed")
