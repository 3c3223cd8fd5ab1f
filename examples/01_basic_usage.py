"""
Basic fetch-core Usage Examples

Demonstrates fetch_with_log, per-request retry overrides and error handling.
"""

import asyncio

from src.fetch_core import (
    FetchClientConfig,
    FetchError,
    HttpClient,
    RequestOptions,
    TooManyRedirectsError,
    TransportError,
)
from src.fetch_core.core.logging import LoggingConfig


async def basic_fetch(client: HttpClient):
    """Simple GET through retry and redirect middleware."""
    print("\n=== Basic Fetch ===")

    response = await client.fetch_with_log("https://httpbin.org/get")

    print(f"Status: {response.status_code}")
    print(f"Body: {response.text[:80]}...")


async def conditional_fetch(client: HttpClient):
    """304 Not Modified is a success."""
    print("\n=== Conditional Fetch ===")

    options = RequestOptions(headers={"If-None-Match": '"ruleset-v1"'})
    response = await client.fetch_with_log("https://httpbin.org/etag/ruleset-v1", options)

    print(f"Status: {response.status_code}")


async def fast_fail(client: HttpClient):
    """No retries for this request only."""
    print("\n=== Fast Fail ===")

    options = RequestOptions(retry_options={"max_retries": 0})
    try:
        await client.fetch_with_log("https://httpbin.org/status/503", options)
    except TransportError as e:
        print(f"Gave up: {e.kind.value}, status {e.status_code}")


async def error_handling(client: HttpClient):
    """FetchError and redirect limit."""
    print("\n=== Error Handling ===")

    try:
        await client.fetch_with_log("https://httpbin.org/status/404")
    except FetchError as e:
        print(f"FetchError: {e.status_code} {e.message} ({e.url})")

    try:
        await client.fetch_with_log("https://httpbin.org/redirect/7")
    except TooManyRedirectsError as e:
        print(f"Redirect limit: {e}")


async def main():
    print("=" * 60)
    print("fetch-core - Basic Usage Examples")
    print("=" * 60)

    config = FetchClientConfig.create(
        min_timeout=1.0,
        logging=LoggingConfig.create(level="INFO", format="colored"),
    )

    async with HttpClient(config) as client:
        try:
            await basic_fetch(client)
            await conditional_fetch(client)
            await fast_fail(client)
            await error_handling(client)
        except Exception as e:
            print(f"\n❌ Error: {e}")


if __name__ == "__main__":
    asyncio.run(main())
