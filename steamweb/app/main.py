import asyncio
import sys
from typing import Sequence

from loguru import logger

from steamweb.app.composition import FetcherDependencies, create_fetcher_dependencies
from steamweb.app.core import SERVICE_NAME


def _log(event: str, **kwargs) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).info("")


async def fetch_url(url: str, method: str = "GET", deps: FetcherDependencies | None = None) -> str | None:
    """Fetch `url` with the configured retry policy; None when every attempt failed transiently."""
    deps = deps or create_fetcher_dependencies()
    await deps.connect()
    try:
        policy = deps.retry_policy
        return await deps.fetcher.retry_fetch(
            policy.delay_seconds,
            policy.max_attempts,
            url,
            method,
            xhr=False,
        )
    finally:
        await deps.close()


def main(argv: Sequence[str] | None = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    if not args or len(args) > 2:
        print("usage: steamweb <url> [method]", file=sys.stderr)
        return 2

    url = args[0]
    method = args[1] if len(args) > 1 else "GET"
    try:
        body = asyncio.run(fetch_url(url, method))
    except KeyboardInterrupt:
        _log("fetch_interrupted", url=url)
        return 130
    except Exception as e:
        logger.exception("fetch failed: {}", e)
        raise

    if body is None:
        _log("fetch_gave_up", url=url, method=method)
        return 1
    print(body)
    return 0


if __name__ == "__main__":
    sys.exit(main())
