"""
Command-line entry point.

Steps:
1) parse arguments and load configuration (.env + environment);
2) fetch the starred repositories and classify them batch by batch;
3) write the raw data, per-batch exchanges, merged categories and views.

Exit status: 0 on success, 1 for configuration errors or when nothing was
fetched, 2 when the fetch stopped early (outputs are still written).
"""

import argparse
import logging
from typing import List, Optional

from stars_categorizer.batching import DEFAULT_BATCH_SIZE
from stars_categorizer.classifier import ClassificationClient
from stars_categorizer.config import ConfigError, load_settings
from stars_categorizer.outputs import DEFAULT_OUTPUT_DIR, OutputWriter
from stars_categorizer.pipeline import PipelineResult, run_pipeline

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Configure standard logging format for the CLI."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )


def _positive_int(value: str) -> int:
    number = int(value)
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be a positive integer, got {value}")
    return number


def _non_negative_int(value: str) -> int:
    number = int(value)
    if number < 0:
        raise argparse.ArgumentTypeError(f"must be a non-negative integer, got {value}")
    return number


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="stars-categorizer",
        description="Group GitHub starred repositories into categories suggested by an LLM",
    )
    parser.add_argument("--username", default=None, help="GitHub user (default: GITHUB_USERNAME)")
    parser.add_argument("--output-dir", default=DEFAULT_OUTPUT_DIR, help="Output directory")
    parser.add_argument(
        "--batch-size",
        type=_positive_int,
        default=DEFAULT_BATCH_SIZE,
        help=f"Repositories per classification request (default: {DEFAULT_BATCH_SIZE})",
    )
    parser.add_argument("--per-page", type=_positive_int, default=100, help="GitHub API page size")
    parser.add_argument(
        "--sleep", type=float, default=5.0, help="Seconds to wait between classification requests"
    )
    parser.add_argument(
        "--page-delay", type=float, default=1.0, help="Seconds to wait between GitHub pages"
    )
    parser.add_argument(
        "--max-retries",
        type=_non_negative_int,
        default=3,
        help="Retries per GitHub page on transient errors",
    )
    parser.add_argument(
        "--max-rate-limit-waits",
        type=_non_negative_int,
        default=5,
        help="Consecutive rate-limit waits allowed on one GitHub page",
    )
    parser.add_argument("--model", default=None, help="Model name (default: MODEL or gpt-4o-mini)")
    parser.add_argument(
        "--base-url",
        default=None,
        help="OpenAI-compatible API base URL, takes precedence over BASE_URL",
    )
    parser.add_argument("--env-file", default=None, help="Path to a .env file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def log_summary(result: PipelineResult) -> None:
    if not len(result.taxonomy):
        logger.warning("No categories were suggested.")
        return
    logger.info("Suggested categories:")
    for entry in result.taxonomy.entries:
        logger.info("- %s (%d repositories)", entry.name, len(entry.members))
    if result.uncategorized:
        logger.warning("%d repositories were not categorized.", len(result.uncategorized))
    else:
        logger.info("All repositories were successfully categorized!")


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging(args.verbose)

    try:
        settings = load_settings(
            env_file=args.env_file,
            username=args.username,
            base_url=args.base_url,
            model=args.model,
        )
    except ConfigError as e:
        logger.error("%s", e)
        return 1

    writer = OutputWriter(args.output_dir)
    classifier = ClassificationClient(
        api_key=settings.api_key,
        model=settings.model,
        base_url=settings.base_url,
    )

    def save_fetched(fetched) -> None:
        if fetched.repositories:
            writer.write_repositories(fetched.repositories)

    result = run_pipeline(
        settings.github_username,
        settings.github_token,
        classifier,
        batch_size=args.batch_size,
        batch_delay=args.sleep,
        on_fetched=save_fetched,
        on_batch=writer.write_exchange,
        per_page=args.per_page,
        page_delay=args.page_delay,
        max_retries=args.max_retries,
        max_rate_limit_waits=args.max_rate_limit_waits,
    )

    if not result.repositories:
        logger.error("No repositories fetched. Please check your GitHub token and username.")
        return 1

    writer.write_taxonomy(result.taxonomy)
    writer.write_uncategorized(result.uncategorized)
    writer.write_views(result.taxonomy, result.repositories)
    log_summary(result)

    if not result.fetch_complete:
        logger.warning("Results are based on an incomplete fetch: %s", result.fetch_error)
        return 2
    return 0
