"""
Batch classification through an OpenAI-compatible chat completions endpoint.

The model is asked for free-form text containing one JSON object of the shape
{"categories": [{"name", "description", "repositories": [{"full_name", "reason"}]}]}.
The service is treated as best-effort: any failure (API error, no JSON in the
reply, malformed JSON) yields an empty suggestion list instead of an exception.
"""

import json
import logging
from typing import Any, List, Optional, Sequence

from openai import OpenAI

from stars_categorizer.models import BatchExchange, CategoryMember, CategorySuggestion, Repository

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o-mini"

SYSTEM_PROMPT = "You are an assistant that organizes GitHub repositories into meaningful categories."

FIRST_BATCH_INTRO = (
    "Here's a list of GitHub repositories I've starred. Based on their names, "
    "descriptions, and topics, please suggest how to divide them into meaningful "
    "lists or categories that I could create on GitHub:\n\n"
)

NEXT_BATCH_INTRO = (
    "Here's another batch of GitHub repositories I've starred. Please categorize "
    "them using the categories you've already identified, and create new "
    "categories if necessary:\n\n"
)

RESPONSE_FORMAT = """Please provide your response in a structured JSON format with the following structure:
{
  "categories": [
    {
      "name": "Category Name",
      "description": "Brief description of why this category makes sense",
      "repositories": [
        {"full_name": "owner/repo_name", "reason": "Why this repo belongs in this category"}
      ]
    }
  ]
}"""


# --------- Prompt building ---------
def build_prompt(
    batch: Sequence[Repository],
    prior_categories: Sequence[Any] = (),
    is_first_batch: bool = True,
) -> str:
    """
    Build the user prompt for one batch.
    Parameters:
    - batch: repositories to classify.
    - prior_categories: objects with `name` and `description`, already known categories.
      Only listed for non-first batches.
    - is_first_batch: selects the opening instructions.
    Returns: prompt text.
    """
    parts = [FIRST_BATCH_INTRO if is_first_batch else NEXT_BATCH_INTRO]

    if not is_first_batch and prior_categories:
        parts.append("Here are the categories you've already identified:\n\n")
        for category in prior_categories:
            parts.append(f"- {category.name}: {category.description}\n")
        parts.append("\n")

    for i, repo in enumerate(batch, 1):
        parts.append(f"{i}. {repo.full_name}\n")
        if repo.description:
            parts.append(f"   Description: {repo.description}\n")
        if repo.language:
            parts.append(f"   Language: {repo.language}\n")
        if repo.topics:
            parts.append(f"   Topics: {', '.join(repo.topics)}\n")
        parts.append("\n")

    parts.append(RESPONSE_FORMAT)
    return "".join(parts)


# --------- Response parsing ---------
def extract_json_object(text: Optional[str]) -> Optional[str]:
    """
    Return the first balanced {...} substring of `text`, or None.
    Braces inside JSON string literals are ignored, so descriptions such as
    "uses {curly} templates" do not end the object early.
    """
    if not text:
        return None
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for pos in range(start, len(text)):
            ch = text[pos]
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
                continue
            if ch == '"':
                in_string = True
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    return text[start : pos + 1]
        # unbalanced from this brace; try the next one
        start = text.find("{", start + 1)
    return None


def parse_suggestions(payload: Any) -> List[CategorySuggestion]:
    """
    Convert a decoded response object into category suggestions.
    Entries without a name and members without full_name are dropped.
    """
    if not isinstance(payload, dict):
        return []
    raw_categories = payload.get("categories")
    if not isinstance(raw_categories, list):
        return []

    suggestions: List[CategorySuggestion] = []
    for raw in raw_categories:
        if not isinstance(raw, dict):
            continue
        name = str(raw.get("name") or "").strip()
        if not name:
            continue
        members: List[CategoryMember] = []
        raw_members = raw.get("repositories")
        if isinstance(raw_members, list):
            for m in raw_members:
                if not isinstance(m, dict) or not m.get("full_name"):
                    continue
                members.append(
                    CategoryMember(
                        full_name=str(m["full_name"]).strip(),
                        reason=str(m.get("reason") or ""),
                    )
                )
        suggestions.append(
            CategorySuggestion(
                name=name,
                description=str(raw.get("description") or ""),
                members=members,
            )
        )
    return suggestions


def parse_response_text(text: Optional[str]) -> List[CategorySuggestion]:
    """Extract and parse the JSON object embedded in a model reply; [] on any failure."""
    candidate = extract_json_object(text)
    if candidate is None:
        logger.error("Could not find JSON in the classification response")
        return []
    try:
        payload = json.loads(candidate)
    except json.JSONDecodeError as e:
        logger.error("Failed to parse JSON from the classification response: %s", e)
        logger.debug("Raw response: %s", text)
        return []
    return parse_suggestions(payload)


# --------- Client ---------
class ClassificationClient:
    """Sends batches to the chat completions endpoint and parses the suggested categories."""

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        base_url: Optional[str] = None,
        max_tokens: int = 4000,
        temperature: float = 0.2,
        timeout: float = 120,
        client: Optional[Any] = None,
    ):
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.client = client or OpenAI(api_key=api_key, base_url=base_url, timeout=timeout)

    def complete(self, prompt: str) -> Optional[str]:
        """
        Send one prompt and return the reply text.
        Returns None when the call fails; the error is logged, never raised.
        """
        try:
            completion = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                max_tokens=self.max_tokens,
                temperature=self.temperature,
            )
            return completion.choices[0].message.content
        except Exception as e:
            logger.error("Error while communicating with the classification service: %s", e)
            return None

    def classify_batch(
        self,
        batch: Sequence[Repository],
        prior_categories: Sequence[Any] = (),
        is_first_batch: bool = True,
        index: int = 0,
    ) -> BatchExchange:
        prompt = build_prompt(batch, prior_categories, is_first_batch)
        logger.info("Sending batch %d (%d repositories) to %s...", index + 1, len(batch), self.model)
        response_text = self.complete(prompt)
        suggestions = parse_response_text(response_text) if response_text is not None else []
        return BatchExchange(
            index=index,
            prompt=prompt,
            response_text=response_text,
            suggestions=suggestions,
        )

    def classify(
        self,
        batch: Sequence[Repository],
        prior_categories: Sequence[Any] = (),
        is_first_batch: bool = True,
    ) -> List[CategorySuggestion]:
        return self.classify_batch(batch, prior_categories, is_first_batch).suggestions
