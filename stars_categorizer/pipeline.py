"""
End-to-end run: fetch all stars, split into batches, classify each batch in
order while carrying the known categories forward, merge, and report which
repositories ended up in no category.

Batches are processed strictly one after another: the first batch to name a
category decides its display name and description.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from stars_categorizer.batching import DEFAULT_BATCH_SIZE, split_into_batches
from stars_categorizer.classifier import ClassificationClient
from stars_categorizer.github import fetch_starred_repos
from stars_categorizer.models import BatchExchange, FetchResult, Repository
from stars_categorizer.taxonomy import Taxonomy, find_uncategorized, merge_into

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    repositories: List[Repository]
    fetch_complete: bool
    taxonomy: Taxonomy
    uncategorized: List[Repository]
    fetch_error: Optional[str] = None
    exchanges: List[BatchExchange] = field(default_factory=list)


def run_pipeline(
    username: str,
    token: str,
    classifier: ClassificationClient,
    batch_size: int = DEFAULT_BATCH_SIZE,
    batch_delay: float = 5.0,
    fetch: Callable[..., FetchResult] = fetch_starred_repos,
    on_fetched: Optional[Callable[[FetchResult], None]] = None,
    on_batch: Optional[Callable[[BatchExchange], None]] = None,
    **fetch_options,
) -> PipelineResult:
    """
    Run fetch -> batch -> classify -> merge for one GitHub user.

    Parameters:
    - username / token: source account and its GitHub token.
    - classifier: client used for every batch.
    - batch_size: repositories per classification call.
    - batch_delay: pause between two classification calls.
    - fetch: fetch function, fetch_starred_repos by default.
    - on_fetched: called once with the FetchResult before classification starts.
    - on_batch: called with each BatchExchange right after it is merged.
    - fetch_options: forwarded to `fetch` (per_page, page_delay, ...).
    Returns: PipelineResult with the frozen taxonomy and the uncategorized repositories.
    """
    # validate before any network traffic
    if batch_size <= 0:
        raise ValueError(f"batch_size must be positive, got {batch_size}")

    fetched = fetch(username, token, **fetch_options)
    repositories = fetched.repositories
    logger.info("Fetched a total of %d repositories.", len(repositories))
    if not fetched.complete:
        logger.warning("Fetch incomplete: %s", fetched.error)
    if on_fetched is not None:
        on_fetched(fetched)

    taxonomy = Taxonomy()
    exchanges: List[BatchExchange] = []
    batches = split_into_batches(repositories, batch_size)
    logger.info("Split %d repositories into %d batches", len(repositories), len(batches))

    for i, batch in enumerate(batches):
        logger.info("Processing batch %d of %d (%d repositories)...", i + 1, len(batches), len(batch))
        exchange = classifier.classify_batch(
            batch,
            prior_categories=taxonomy.entries,
            is_first_batch=(i == 0),
            index=i,
        )
        if not exchange.suggestions:
            logger.warning("Batch %d produced no category suggestions", i + 1)
        taxonomy = merge_into(taxonomy, exchange.suggestions)
        exchanges.append(exchange)
        if on_batch is not None:
            on_batch(exchange)

        if i < len(batches) - 1:
            logger.info("Waiting %.1f seconds before processing next batch...", batch_delay)
            time.sleep(batch_delay)

    taxonomy.freeze()
    uncategorized = find_uncategorized(repositories, taxonomy)
    return PipelineResult(
        repositories=repositories,
        fetch_complete=fetched.complete,
        fetch_error=fetched.error,
        taxonomy=taxonomy,
        uncategorized=uncategorized,
        exchanges=exchanges,
    )
