"""HTTP benchmark for the posts aggregator endpoints (cold vs warm cache)."""
import asyncio
import argparse
import time
import statistics
import httpx

BASE_URL = "http://localhost:8000"

ENDPOINTS = [
    ("GET /api/posts", "/api/posts"),
    ("GET /api/posts/1", "/api/posts/1"),
    ("GET /api/metrics", "/api/metrics"),
    ("GET /health", "/health"),
]


async def timed_get(client: httpx.AsyncClient, path: str) -> tuple[float, httpx.Response]:
    start = time.perf_counter()
    resp = await client.get(f"{BASE_URL}{path}")
    return (time.perf_counter() - start) * 1000, resp


async def benchmark_endpoint(client: httpx.AsyncClient, name: str, path: str, iterations: int = 50):
    times = []
    upstream_calls = []
    errors = 0

    # The first request populates the cache; report it separately.
    try:
        cold_ms, cold_resp = await timed_get(client, path)
        cold_calls = cold_resp.headers.get("X-Upstream-Calls", "?")
    except httpx.HTTPError:
        return {"name": name, "error": "Cold request failed"}

    for _ in range(iterations):
        try:
            elapsed, resp = await timed_get(client, path)
        except httpx.HTTPError:
            errors += 1
            continue

        if resp.status_code == 200:
            times.append(elapsed)
            calls = resp.headers.get("X-Upstream-Calls")
            if calls is not None:
                upstream_calls.append(int(calls))
        else:
            errors += 1

    if not times:
        return {"name": name, "error": f"All {iterations} requests failed"}

    ordered = sorted(times)
    return {
        "name": name,
        "cold_ms": round(cold_ms, 2),
        "cold_calls": cold_calls,
        "avg_ms": round(statistics.mean(times), 2),
        "p50_ms": round(ordered[len(ordered) // 2], 2),
        "p95_ms": round(ordered[int(len(ordered) * 0.95)], 2),
        "warm_calls": round(statistics.mean(upstream_calls), 1) if upstream_calls else "N/A",
        "errors": errors,
    }


async def run_benchmark(iterations: int = 50):
    print("=" * 88)
    print(f"Posts Aggregator Benchmark — {iterations} warm iterations per endpoint")
    print(f"Target: {BASE_URL}")
    print("=" * 88)

    async with httpx.AsyncClient(timeout=30.0) as client:
        try:
            resp = await client.get(f"{BASE_URL}/health")
            if resp.status_code != 200:
                print(f"ERROR: Health check failed ({resp.status_code})")
                return
            print(f"Health: {resp.json()}")
        except httpx.HTTPError as e:
            print(f"ERROR: Cannot connect to {BASE_URL} — {e}")
            return

        print()
        print(
            f"{'Endpoint':<22} {'Cold':>9} {'Calls':>6} "
            f"{'Avg':>9} {'P50':>9} {'P95':>9} {'Calls':>6} {'Err':>4}"
        )
        print("-" * 88)

        for name, path in ENDPOINTS:
            result = await benchmark_endpoint(client, name, path, iterations)
            if "error" in result:
                print(f"{result['name']:<22} {'ERROR':>9}  {result['error']}")
                continue
            print(
                f"{result['name']:<22} "
                f"{result['cold_ms']:>7.1f}ms "
                f"{str(result['cold_calls']):>6} "
                f"{result['avg_ms']:>7.1f}ms "
                f"{result['p50_ms']:>7.1f}ms "
                f"{result['p95_ms']:>7.1f}ms "
                f"{str(result['warm_calls']):>6} "
                f"{result['errors']:>4}"
            )

        print("-" * 88)
        print("\nBenchmark complete.")


def main():
    global BASE_URL

    parser = argparse.ArgumentParser(description="Benchmark the posts aggregator API")
    parser.add_argument("-n", "--iterations", type=int, default=50, help="Warm iterations per endpoint")
    parser.add_argument("--base-url", default=BASE_URL, help="API base URL")
    args = parser.parse_args()

    BASE_URL = args.base_url
    asyncio.run(run_benchmark(args.iterations))


if __name__ == "__main__":
    main()
