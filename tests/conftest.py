"""
Test infrastructure for the Posts Aggregator API.

Strategy
--------
- The upstream REST source is replaced by ``StubResourceClient``, an
  in-memory implementation of the resource client contract that counts
  every call and can be told to fail specific calls.  No network access.
- Every test gets a fresh ``ResourceCache`` (memory backend), so cache
  state never leaks between tests.
- The app's ``get_post_service`` / ``get_cache`` dependencies are
  overridden to use the per-test engine, so endpoint tests exercise the
  real facade, engine and cache code through ``httpx.ASGITransport``.
  ASGITransport does not run the lifespan, so the production httpx client
  is never created.
"""
import asyncio
import copy
from collections import Counter

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from app.cache import ResourceCache
from app.dependencies import get_cache, get_post_service
from app.main import app
from app.middleware import increment_upstream_calls
from app.services.aggregation_service import AggregationEngine
from app.services.post_service import PostService

# ---------------------------------------------------------------------------
# Upstream fixtures data (shape matches the public JSONPlaceholder API)
# ---------------------------------------------------------------------------

USERS = {
    1: {
        "id": 1,
        "name": "Leanne Graham",
        "username": "Bret",
        "email": "Sincere@april.biz",
        "address": {
            "street": "Kulas Light",
            "suite": "Apt. 556",
            "city": "Gwenborough",
            "zipcode": "92998-3874",
            "geo": {"lat": "-37.3159", "lng": "81.1496"},
        },
        "phone": "1-770-736-8031 x56442",
        "website": "hildegard.org",
        "company": {
            "name": "Romaguera-Crona",
            "catchPhrase": "Multi-layered client-server neural-net",
            "bs": "harness real-time e-markets",
        },
    },
    2: {
        "id": 2,
        "name": "Ervin Howell",
        "username": "Antonette",
        "email": "Shanna@melissa.tv",
    },
}

POSTS = [
    {"userId": 1, "id": 1, "title": "sunt aut facere", "body": "quia et suscipit"},
    {"userId": 1, "id": 2, "title": "qui est esse", "body": "est rerum tempore"},
    {"userId": 2, "id": 3, "title": "ea molestias quasi", "body": "et iusto sed quo"},
]

COMMENTS = {
    1: [
        {"postId": 1, "id": 1, "name": "id labore", "email": "Eliseo@gardner.biz", "body": "laudantium"},
        {"postId": 1, "id": 2, "name": "quo vero", "email": "Jayne_Kuhic@sydney.com", "body": "est natus"},
    ],
    2: [
        {"postId": 2, "id": 6, "name": "et fugit", "email": "Presley.Mueller@myrl.com", "body": "doloribus"},
    ],
    3: [],
}


class StubResourceClient:
    """
    In-memory stand-in for ``app.client.ResourceClient``.

    ``calls`` counts invocations per ``(method, key)``.  ``fail`` makes a
    call raise once it has been invoked more than *after* times, and
    ``delay`` makes a call sleep before answering.
    """

    def __init__(self, posts=None, users=None, comments=None) -> None:
        self.posts = copy.deepcopy(POSTS if posts is None else posts)
        self.users = copy.deepcopy(USERS if users is None else users)
        self.comments = copy.deepcopy(COMMENTS if comments is None else comments)
        self.calls: Counter = Counter()
        self.deleted: list[int] = []
        self._failures: dict[tuple[str, object], tuple[Exception, int]] = {}
        self._delays: dict[tuple[str, object], float] = {}
        self.in_flight = 0
        self.max_in_flight = 0

    # -- test controls -------------------------------------------------

    def fail(self, method: str, key, exc: Exception, after: int = 0) -> None:
        self._failures[(method, key)] = (exc, after)

    def recover(self, method: str, key) -> None:
        self._failures.pop((method, key), None)

    def delay(self, method: str, key, seconds: float) -> None:
        self._delays[(method, key)] = seconds

    @property
    def total_calls(self) -> int:
        return sum(self.calls.values())

    async def _enter(self, method: str, key) -> None:
        self.calls[(method, key)] += 1
        increment_upstream_calls()
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self._delays.get((method, key), 0))
            failure = self._failures.get((method, key))
            if failure and self.calls[(method, key)] > failure[1]:
                raise failure[0]
        finally:
            self.in_flight -= 1

    # -- resource client contract ----------------------------------------

    async def list_posts(self) -> list[dict]:
        await self._enter("list_posts", "all")
        return copy.deepcopy(self.posts)

    async def get_post(self, post_id: int) -> dict | None:
        await self._enter("get_post", post_id)
        return next((copy.deepcopy(p) for p in self.posts if p["id"] == post_id), None)

    async def get_user(self, user_id: int) -> dict | None:
        await self._enter("get_user", user_id)
        return copy.deepcopy(self.users.get(user_id))

    async def list_comments(self, post_id: int) -> list[dict]:
        await self._enter("list_comments", post_id)
        return copy.deepcopy(self.comments.get(post_id, []))

    async def delete_post(self, post_id: int) -> None:
        await self._enter("delete_post", post_id)
        self.deleted.append(post_id)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def stub_client() -> StubResourceClient:
    return StubResourceClient()


@pytest.fixture
def cache() -> ResourceCache:
    return ResourceCache()


@pytest.fixture
def engine(stub_client: StubResourceClient, cache: ResourceCache) -> AggregationEngine:
    return AggregationEngine(stub_client, cache, concurrency=4)


@pytest.fixture
def service(engine: AggregationEngine) -> PostService:
    return PostService(engine)


@pytest_asyncio.fixture
async def async_client(service: PostService, cache: ResourceCache) -> AsyncClient:
    """
    Yield an httpx.AsyncClient wired to the FastAPI app via ASGITransport,
    with the service and cache dependencies pointing at this test's stubs.
    """
    app.dependency_overrides[get_post_service] = lambda: service
    app.dependency_overrides[get_cache] = lambda: cache
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
