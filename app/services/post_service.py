"""
Post service — the request facade over the aggregation engine.

Validates post ids before any aggregation work and otherwise delegates;
it holds no business logic of its own.
"""
import logging

from app.exceptions import ValidationError
from app.schemas import Post
from app.services.aggregation_service import AggregationEngine

logger = logging.getLogger(__name__)


def validate_post_id(post_id: object) -> int:
    """
    Return *post_id* if it is a positive integer, else raise ``ValidationError``.

    ``bool`` is rejected even though it subclasses ``int``.
    """
    if isinstance(post_id, bool) or not isinstance(post_id, int):
        raise ValidationError(
            "Post id must be an integer", context={"post_id": repr(post_id)}
        )
    if post_id <= 0:
        raise ValidationError(
            "Post id must be a positive integer", context={"post_id": post_id}
        )
    return post_id


class PostService:
    def __init__(self, engine: AggregationEngine) -> None:
        self._engine = engine

    async def list_with_details(self) -> list[Post]:
        return await self._engine.list_with_details()

    async def get_with_details(self, post_id: int) -> Post:
        post_id = validate_post_id(post_id)
        return await self._engine.get_with_details(post_id)

    async def delete(self, post_id: int) -> None:
        post_id = validate_post_id(post_id)
        logger.info("Deleting post %d", post_id)
        await self._engine.delete(post_id)
