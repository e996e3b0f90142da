"""
Paginated fetching of a user's starred repositories from the GitHub REST API.

Pages are requested one at a time in descending star order until a short (or
empty) page is returned. Rate-limit responses are waited out and the same page
is retried; other failures are retried a bounded number of times. A missing
user or an exhausted retry budget stops pagination but keeps what was already
collected, and the returned FetchResult is marked incomplete.
"""

import logging
import time
from typing import Any, Dict, List, Optional

import requests

from stars_categorizer.models import FetchResult, Repository

logger = logging.getLogger(__name__)

GITHUB_API = "https://api.github.com"
GITHUB_API_VERSION = "2022-11-28"
REQUEST_TIMEOUT = 30

RATE_LIMIT_STATUSES = (403, 429)


class _RetryableError(Exception):
    """A page request failed in a way that is worth retrying."""

    def __init__(self, message: str, response: Optional[requests.Response] = None):
        super().__init__(message)
        self.response = response


class _SourceNotFound(Exception):
    """The user does not exist or their stars are not visible."""


def get_github_headers(token: str) -> Dict[str, str]:
    """
    Build the request headers for the GitHub API.
    Parameters:
    - token: GitHub access token (GH_TOKEN).
    Returns: headers dict with bearer auth, Accept, API version and User-Agent.
    """
    return {
        "Authorization": f"Bearer {token}",
        "Accept": "application/vnd.github.v3+json",
        "X-GitHub-Api-Version": GITHUB_API_VERSION,
        "User-Agent": "stars-categorizer",
    }


def rate_limit_wait_seconds(
    response: requests.Response, margin: float, now: Optional[float] = None
) -> Optional[float]:
    """
    Work out how long to sleep for a rate-limited response.
    Parameters:
    - response: a 403/429 response.
    - margin: extra seconds added on top of the server hint.
    - now: current epoch seconds (defaults to time.time()).
    Returns: seconds to wait, or None when the response is not a rate limit or
    carries no reset hint (it is then handled as an ordinary failure).
    A 403 only counts as a rate limit when X-RateLimit-Remaining is "0";
    permission errors also carry the reset header.
    """
    if response.status_code not in RATE_LIMIT_STATUSES:
        return None
    headers = response.headers or {}
    if response.status_code == 403 and str(headers.get("X-RateLimit-Remaining", "")).strip() != "0":
        return None
    reset = headers.get("X-RateLimit-Reset")
    if reset:
        try:
            reset_at = float(reset)
        except ValueError:
            logger.warning("Ignoring malformed X-RateLimit-Reset header: %r", reset)
        else:
            current = time.time() if now is None else now
            return max(0.0, reset_at - current) + margin
    retry_after = headers.get("Retry-After")
    if retry_after:
        try:
            return max(0.0, float(retry_after)) + margin
        except ValueError:
            logger.warning("Ignoring malformed Retry-After header: %r", retry_after)
    return None


def _fetch_page(
    http: Any,
    url: str,
    headers: Dict[str, str],
    page: int,
    per_page: int,
) -> List[Dict[str, Any]]:
    params = {
        "page": page,
        "per_page": per_page,
        "sort": "created",
        "direction": "desc",
    }
    try:
        resp = http.get(url, headers=headers, params=params, timeout=REQUEST_TIMEOUT)
    except requests.RequestException as e:
        raise _RetryableError(f"request failed: {e}") from e

    if resp.status_code == 404:
        raise _SourceNotFound(f"GitHub API returned 404 for {url}")
    if resp.status_code != 200:
        raise _RetryableError(
            f"GitHub API error: {resp.status_code} {resp.text[:200]}", response=resp
        )
    try:
        data = resp.json()
    except ValueError as e:
        raise _RetryableError(f"invalid JSON in page {page}: {e}") from e
    if not isinstance(data, list):
        raise _RetryableError(f"unexpected payload type in page {page}: {type(data).__name__}")
    return data


def fetch_starred_repos(
    username: str,
    token: str,
    per_page: int = 100,
    page_delay: float = 1.0,
    retry_delay: float = 5.0,
    max_retries: int = 3,
    reset_margin: float = 1.0,
    max_rate_limit_waits: int = 5,
    session: Optional[requests.Session] = None,
) -> FetchResult:
    """
    Fetch every repository starred by `username`, newest star first.

    Parameters:
    - username: GitHub account whose stars are listed.
    - token: GitHub access token.
    - per_page: page size; a shorter page ends pagination.
    - page_delay: pause between two successful pages.
    - retry_delay: pause before retrying a failed page.
    - max_retries: retries allowed per page for non rate-limit failures.
    - reset_margin: seconds added to the rate-limit reset time.
    - max_rate_limit_waits: consecutive rate-limit waits allowed on one page.
    - session: optional requests.Session (module-level requests is used otherwise).
    Returns: FetchResult; `complete` is False if pagination stopped early.
    """
    if per_page <= 0:
        raise ValueError(f"per_page must be positive, got {per_page}")
    if max_retries < 0:
        raise ValueError(f"max_retries must be >= 0, got {max_retries}")
    if max_rate_limit_waits < 0:
        raise ValueError(f"max_rate_limit_waits must be >= 0, got {max_rate_limit_waits}")

    http = session or requests
    url = f"{GITHUB_API}/users/{username}/starred"
    headers = get_github_headers(token)
    repositories: List[Repository] = []
    page = 1
    pages_fetched = 0
    failures = 0
    rate_limit_waits = 0
    seen = set()

    logger.info("Fetching starred repositories for user %s...", username)
    while True:
        logger.debug("Fetching page %d", page)
        try:
            records = _fetch_page(http, url, headers, page, per_page)
        except _SourceNotFound as e:
            logger.error("User %s not found or starred repositories not accessible: %s", username, e)
            return FetchResult(
                repositories=repositories,
                complete=False,
                error=f"user {username!r} not found or not accessible",
                pages_fetched=pages_fetched,
            )
        except _RetryableError as e:
            wait = None
            if e.response is not None:
                wait = rate_limit_wait_seconds(e.response, reset_margin)
            if wait is not None:
                rate_limit_waits += 1
                if rate_limit_waits > max_rate_limit_waits:
                    logger.error("Still rate limited on page %d, stopping pagination", page)
                    return FetchResult(
                        repositories=repositories,
                        complete=False,
                        error=f"page {page} still rate limited after {max_rate_limit_waits} waits",
                        pages_fetched=pages_fetched,
                    )
                # same page again, does not count against max_retries
                logger.warning("Rate limited on page %d; waiting %.1f seconds", page, wait)
                time.sleep(wait)
                continue
            failures += 1
            if failures > max_retries:
                logger.error("Too many errors on page %d, stopping pagination: %s", page, e)
                return FetchResult(
                    repositories=repositories,
                    complete=False,
                    error=f"page {page} failed after {max_retries} retries: {e}",
                    pages_fetched=pages_fetched,
                )
            logger.warning(
                "Error fetching page %d (%s); retry %d/%d in %.1f seconds",
                page,
                e,
                failures,
                max_retries,
                retry_delay,
            )
            time.sleep(retry_delay)
            continue

        failures = 0
        rate_limit_waits = 0
        pages_fetched += 1
        for record in records:
            if not isinstance(record, dict) or not record.get("full_name"):
                logger.debug("Skipping record without full_name on page %d", page)
                continue
            # a star added mid-run shifts later pages by one
            if record["full_name"] in seen:
                logger.debug("Skipping duplicate %s on page %d", record["full_name"], page)
                continue
            seen.add(record["full_name"])
            repositories.append(Repository.from_api(record))
        logger.info(
            "Fetched %d repositories on page %d. Total: %d",
            len(records),
            page,
            len(repositories),
        )

        if len(records) < per_page:
            logger.info("Reached the last page of results.")
            break
        page += 1
        time.sleep(page_delay)

    return FetchResult(repositories=repositories, complete=True, pages_fetched=pages_fetched)
