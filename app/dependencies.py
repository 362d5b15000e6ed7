from fastapi import Request

from app.cache import ResourceCache
from app.services.post_service import PostService


def get_post_service(request: Request) -> PostService:
    """
    Return the process-wide ``PostService`` built in the app lifespan.

    Tests swap it out through ``app.dependency_overrides`` so each test can
    run against a fresh cache and a stubbed resource client.
    """
    return request.app.state.post_service


def get_cache(request: Request) -> ResourceCache:
    """Return the process-wide ``ResourceCache`` (used by the metrics router)."""
    return request.app.state.cache
