"""
Output files for a categorization run.

All files go to one output directory:
- starred-repos.json: raw fetched collection
- prompt-batch{N}.txt / response-batch{N}.json: per-batch exchange
- categories-final.json: merged taxonomy
- uncategorized-repos.json: repositories in no category (only when there are any)
- categorized-repos.html / .md / .csv: human-readable views
"""

import csv
import html
import json
import logging
import os
from typing import Any, Dict, List, Sequence

from stars_categorizer.models import BatchExchange, Repository
from stars_categorizer.taxonomy import Taxonomy

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT_DIR = "output"


# --------- Generic writers ---------
def ensure_output_dir(path: str) -> None:
    os.makedirs(path, exist_ok=True)


def write_text(path: str, content: str) -> None:
    with open(path, "w", encoding="utf-8") as f:
        f.write(content)
    logger.info("Saved to file %s", path)


def write_json(path: str, data: Any) -> None:
    """
    Write `data` as pretty-printed UTF-8 JSON.
    Parameters:
    - path: output file path.
    - data: JSON-serializable object.
    """
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False, indent=2)
    logger.info("Saved to file %s", path)


# --------- Run artifacts ---------
class OutputWriter:
    """Writes every artifact of one run into `output_dir`."""

    def __init__(self, output_dir: str = DEFAULT_OUTPUT_DIR):
        self.output_dir = output_dir
        ensure_output_dir(output_dir)

    def path(self, filename: str) -> str:
        return os.path.join(self.output_dir, filename)

    def write_repositories(self, repositories: Sequence[Repository]) -> str:
        path = self.path("starred-repos.json")
        write_json(path, [r.to_dict() for r in repositories])
        logger.info("Saved %d repositories to %s", len(repositories), path)
        return path

    def write_exchange(self, exchange: BatchExchange) -> None:
        n = exchange.index + 1
        write_text(self.path(f"prompt-batch{n}.txt"), exchange.prompt)
        write_json(self.path(f"response-batch{n}.json"), exchange.to_dict())

    def write_taxonomy(self, taxonomy: Taxonomy) -> str:
        path = self.path("categories-final.json")
        write_json(path, taxonomy.to_dict())
        return path

    def write_uncategorized(self, uncategorized: Sequence[Repository]) -> None:
        # an empty list means nothing was missed; a stale file from an older run is removed
        path = self.path("uncategorized-repos.json")
        if uncategorized:
            write_json(path, [r.to_dict() for r in uncategorized])
        elif os.path.exists(path):
            os.remove(path)

    def write_views(self, taxonomy: Taxonomy, repositories: Sequence[Repository]) -> None:
        write_text(self.path("categorized-repos.html"), render_html(taxonomy, repositories))
        write_text(self.path("categorized-repos.md"), render_markdown(taxonomy, repositories))
        write_csv(self.path("categorized-repos.csv"), taxonomy, repositories)


# --------- Views ---------
CSV_COLUMNS = [
    "category",
    "full_name",
    "html_url",
    "description",
    "language",
    "topics",
    "stargazers_count",
    "reason",
]


def _lookup(repositories: Sequence[Repository]) -> Dict[str, Repository]:
    return {r.full_name: r for r in repositories}


def write_csv(path: str, taxonomy: Taxonomy, repositories: Sequence[Repository]) -> None:
    """
    Write one CSV row per (category, repository) membership.
    Topics are joined with ';' so they stay in one cell.
    """
    repo_map = _lookup(repositories)
    with open(path, "w", encoding="utf-8", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=CSV_COLUMNS)
        writer.writeheader()
        for entry in taxonomy.entries:
            for member in entry.members:
                repo = repo_map.get(member.full_name)
                writer.writerow(
                    {
                        "category": entry.name,
                        "full_name": member.full_name,
                        "html_url": repo.html_url if repo else "",
                        "description": repo.description if repo else "",
                        "language": (repo.language or "") if repo else "",
                        "topics": ";".join(repo.topics) if repo else "",
                        "stargazers_count": repo.stargazers_count if repo else "",
                        "reason": member.reason,
                    }
                )
    logger.info("Saved to file %s", path)


def _md_cell(value: str) -> str:
    return (value or "").replace("\n", " ").replace("|", "\\|")


def render_markdown(taxonomy: Taxonomy, repositories: Sequence[Repository]) -> str:
    repo_map = _lookup(repositories)
    lines: List[str] = ["# GitHub Stars Categories", "", f"Total repositories: {len(repositories)}", ""]
    for entry in taxonomy.entries:
        lines.append(f"## {entry.name}")
        lines.append("")
        if entry.description:
            lines.append(entry.description)
            lines.append("")
        lines.append("| Repository | Description | Language | Reason |")
        lines.append("|---|---|---|---|")
        for member in entry.members:
            repo = repo_map.get(member.full_name)
            link = f"[{member.full_name}]({repo.html_url})" if repo else member.full_name
            description = repo.description if repo else ""
            language = (repo.language or "") if repo else ""
            lines.append(
                f"| {link} | {_md_cell(description)} | {_md_cell(language)} | {_md_cell(member.reason)} |"
            )
        lines.append("")
    return "\n".join(lines)


HTML_STYLE = """
    body { font-family: Arial, sans-serif; max-width: 1200px; margin: 0 auto; padding: 20px; }
    h1 { color: #24292e; }
    .category { margin-bottom: 30px; border: 1px solid #e1e4e8; border-radius: 6px; padding: 15px; }
    .category h2 { margin-top: 0; border-bottom: 1px solid #e1e4e8; padding-bottom: 10px; }
    .category-description { color: #586069; margin-bottom: 15px; }
    .repo-item { margin-bottom: 15px; padding: 10px; border: 1px solid #e1e4e8; border-radius: 6px; }
    .repo-name { font-weight: bold; margin-bottom: 5px; }
    .repo-name a { color: #0366d6; text-decoration: none; }
    .repo-name a:hover { text-decoration: underline; }
    .repo-description { color: #586069; margin-bottom: 5px; }
    .repo-reason { font-style: italic; color: #6a737d; }
    .repo-meta { margin-top: 8px; font-size: 0.9em; color: #6a737d; }
    .repo-language { margin-right: 10px; }
    .topics-list { display: flex; flex-wrap: wrap; gap: 5px; }
    .topic { background-color: #f1f8ff; color: #0366d6; padding: 2px 5px; border-radius: 3px; font-size: 0.9em; }
"""


def render_html(taxonomy: Taxonomy, repositories: Sequence[Repository]) -> str:
    """Render the taxonomy as a standalone HTML page; all model text is escaped."""
    esc = html.escape
    repo_map = _lookup(repositories)
    parts = [
        "<!DOCTYPE html>",
        '<html lang="en">',
        "<head>",
        '  <meta charset="UTF-8">',
        '  <meta name="viewport" content="width=device-width, initial-scale=1.0">',
        "  <title>GitHub Stars Categories</title>",
        f"  <style>{HTML_STYLE}</style>",
        "</head>",
        "<body>",
        "  <h1>GitHub Stars Categories</h1>",
        f"  <p>Total repositories: {len(repositories)}</p>",
    ]
    for entry in taxonomy.entries:
        parts.append('  <div class="category">')
        parts.append(f"    <h2>{esc(entry.name)}</h2>")
        parts.append(f'    <div class="category-description">{esc(entry.description)}</div>')
        parts.append('    <div class="repository-list">')
        for member in entry.members:
            repo = repo_map.get(member.full_name)
            href = esc(repo.html_url) if repo else "#"
            parts.append('      <div class="repo-item">')
            parts.append(
                f'        <div class="repo-name"><a href="{href}" target="_blank">{esc(member.full_name)}</a></div>'
            )
            if repo and repo.description:
                parts.append(f'        <div class="repo-description">{esc(repo.description)}</div>')
            parts.append(f'        <div class="repo-reason">Reason: {esc(member.reason)}</div>')
            parts.append('        <div class="repo-meta">')
            if repo and repo.language:
                parts.append(f'          <span class="repo-language">Language: {esc(repo.language)}</span>')
            if repo and repo.topics:
                topics = "".join(f'<span class="topic">{esc(t)}</span>' for t in repo.topics)
                parts.append(f'          <div class="topics-list">{topics}</div>')
            parts.append("        </div>")
            parts.append("      </div>")
        parts.append("    </div>")
        parts.append("  </div>")
    parts.append("</body>")
    parts.append("</html>")
    return "\n".join(parts)
