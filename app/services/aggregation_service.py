"""
Aggregation engine — joins posts with their authors and comments.

Design notes
------------
- The base resource (the post list, or a single post) is fetched first.
  Any failure there aborts the operation; there is nothing to enrich
  without it.
- Each post then fans out into two sub-fetches (author, comment list).
  Every sub-fetch of every post is its own coroutine, all gathered at a
  single barrier, so the caller suspends exactly once per operation.
- Concurrency against the upstream is bounded by one ``asyncio.Semaphore``
  per engine, sized from ``settings.FETCH_CONCURRENCY`` and independent of
  the number of posts.  Excess sub-fetches queue on the semaphore.
- A failed or absent author / comment list only degrades its own post: the
  field stays ``None`` and ``Post.enrichment`` records what is missing.
- ``asyncio.gather`` returns results in argument order, so the output
  keeps the upstream post order whatever order the fetches complete in.
- Sub-fetches go through the ``ResourceCache``; the enriched ``Post`` is
  always a fresh object and is never cached itself.
- ``delete`` bypasses the cache and does not invalidate anything, so a
  deleted post may keep being served from cache.
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable

import pydantic
from pydantic import TypeAdapter

from app.cache import ALL, ResourceCache, ResourceKind
from app.client import ResourceClient
from app.config import settings
from app.exceptions import NotFoundError, UpstreamError
from app.schemas import Comment, Enrichment, Post, User

logger = logging.getLogger(__name__)

_comment_list = TypeAdapter(list[Comment])


def _parse_user(raw: Any) -> User:
    return User.model_validate(raw)


def _parse_comments(raw: Any) -> list[Comment]:
    return _comment_list.validate_python(raw)


class AggregationEngine:
    def __init__(
        self,
        client: ResourceClient,
        cache: ResourceCache,
        concurrency: int | None = None,
    ) -> None:
        size = concurrency if concurrency is not None else settings.FETCH_CONCURRENCY
        if size < 1:
            raise ValueError("concurrency must be a positive integer.")
        self._client = client
        self._cache = cache
        self._pool = asyncio.Semaphore(size)

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    async def list_with_details(self) -> list[Post]:
        """
        Return every post, each joined with its author and comments.

        Raises ``RemoteError`` / ``TransportError`` only when the post list
        itself cannot be fetched.
        """
        raw_posts = await self._cache.get_or_fetch(
            ResourceKind.POST_LIST, ALL, self._client.list_posts
        )
        posts = [Post.model_validate(raw) for raw in raw_posts]
        logger.info("Fetched %d posts, resolving authors and comments", len(posts))

        enriched = await asyncio.gather(*(self._enrich(post) for post in posts))

        partial = sum(1 for p in enriched if p.enrichment is not Enrichment.COMPLETE)
        if partial:
            logger.warning("%d of %d posts were only partially enriched", partial, len(enriched))
        return list(enriched)

    async def get_with_details(self, post_id: int) -> Post:
        """Return one post joined with its author and comments."""
        raw = await self._cache.get_or_fetch(
            ResourceKind.POST, post_id, lambda: self._client.get_post(post_id)
        )
        if raw is None:
            raise NotFoundError(f"Post {post_id} not found", context={"post_id": post_id})
        return await self._enrich(Post.model_validate(raw))

    async def delete(self, post_id: int) -> None:
        """Forward the delete upstream.  No cache entry is touched."""
        await self._client.delete_post(post_id)
        logger.info("Upstream accepted delete of post %d", post_id)

    # ------------------------------------------------------------------
    # Enrichment
    # ------------------------------------------------------------------

    async def _enrich(self, post: Post) -> Post:
        user, comments = await asyncio.gather(
            self._resolve(
                ResourceKind.USER,
                post.user_id,
                lambda: self._client.get_user(post.user_id),
                _parse_user,
                post_id=post.id,
            ),
            self._resolve(
                ResourceKind.COMMENT_LIST,
                post.id,
                lambda: self._client.list_comments(post.id),
                _parse_comments,
                post_id=post.id,
            ),
        )
        enrichment = Enrichment.from_parts(user is not None, comments is not None)
        if enrichment is Enrichment.COMPLETE:
            logger.debug("Post %d enriched", post.id)
        return post.model_copy(
            update={"user": user, "comments": comments, "enrichment": enrichment}
        )

    async def _resolve(
        self,
        kind: ResourceKind,
        key: int,
        fetch_fn: Callable[[], Awaitable[Any]],
        parse: Callable[[Any], Any],
        *,
        post_id: int,
    ) -> Any | None:
        """
        Fetch one dependency of *post_id* through the cache.

        Returns ``None`` instead of raising when the upstream fails, the
        resource is absent, or its payload does not match the schema.
        """
        async with self._pool:
            try:
                raw = await self._cache.get_or_fetch(kind, key, fetch_fn)
            except UpstreamError as exc:
                logger.warning(
                    "Post %d: could not resolve %s %s: %s", post_id, kind.value, key, exc
                )
                return None

        if raw is None:
            logger.warning("Post %d: %s %s not found upstream", post_id, kind.value, key)
            return None
        try:
            return parse(raw)
        except pydantic.ValidationError as exc:
            logger.warning(
                "Post %d: malformed %s %s payload (%d errors)",
                post_id,
                kind.value,
                key,
                exc.error_count(),
            )
            return None
