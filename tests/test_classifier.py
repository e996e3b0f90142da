"""Tests for stars_categorizer.classifier module."""

import json
from types import SimpleNamespace
from unittest.mock import Mock

from stars_categorizer.classifier import (
    ClassificationClient,
    build_prompt,
    extract_json_object,
    parse_response_text,
    parse_suggestions,
)
from stars_categorizer.models import CategoryMember, Repository

REPOS = [
    Repository(
        full_name="psf/requests",
        name="requests",
        html_url="https://github.com/psf/requests",
        description="HTTP for Humans",
        language="Python",
        topics=("http", "client"),
    ),
    Repository(full_name="owner/bare", name="bare", html_url="https://github.com/owner/bare"),
]

VALID_PAYLOAD = {
    "categories": [
        {
            "name": "HTTP",
            "description": "HTTP clients",
            "repositories": [{"full_name": "psf/requests", "reason": "HTTP library"}],
        }
    ]
}


def make_openai_client(content=None, error=None) -> Mock:
    client = Mock()
    if error is not None:
        client.chat.completions.create.side_effect = error
    else:
        message = SimpleNamespace(content=content)
        client.chat.completions.create.return_value = SimpleNamespace(
            choices=[SimpleNamespace(message=message)]
        )
    return client


class TestBuildPrompt:
    def test_first_batch_lists_repositories(self) -> None:
        prompt = build_prompt(REPOS, is_first_batch=True)

        assert prompt.startswith("Here's a list of GitHub repositories I've starred.")
        assert "1. psf/requests" in prompt
        assert "   Description: HTTP for Humans" in prompt
        assert "   Language: Python" in prompt
        assert "   Topics: http, client" in prompt
        assert "2. owner/bare" in prompt
        assert '"categories"' in prompt

    def test_first_batch_ignores_prior_categories(self) -> None:
        prior = [SimpleNamespace(name="Web", description="web stuff")]
        prompt = build_prompt(REPOS, prior, is_first_batch=True)
        assert "- Web: web stuff" not in prompt

    def test_later_batch_includes_known_categories(self) -> None:
        prior = [
            SimpleNamespace(name="Web", description="web stuff"),
            SimpleNamespace(name="CLI", description="terminal tools"),
        ]
        prompt = build_prompt(REPOS, prior, is_first_batch=False)

        assert prompt.startswith("Here's another batch")
        assert "- Web: web stuff\n" in prompt
        assert "- CLI: terminal tools\n" in prompt

    def test_optional_fields_are_omitted(self) -> None:
        prompt = build_prompt(REPOS[1:])
        assert "Description:" not in prompt
        assert "Language:" not in prompt
        assert "Topics:" not in prompt


class TestExtractJsonObject:
    def test_object_surrounded_by_prose(self) -> None:
        text = 'Sure! Here you go:\n{"a": {"b": 1}}\nHope that helps {not json}'
        assert extract_json_object(text) == '{"a": {"b": 1}}'

    def test_code_fence(self) -> None:
        text = '```json\n{"categories": []}\n```'
        assert extract_json_object(text) == '{"categories": []}'

    def test_braces_inside_strings(self) -> None:
        text = 'x {"d": "uses } and { in text", "e": "quote \\" }"} y'
        assert json.loads(extract_json_object(text)) == {"d": "uses } and { in text", "e": 'quote " }'}

    def test_no_object(self) -> None:
        assert extract_json_object("I could not categorize these repositories.") is None
        assert extract_json_object("") is None
        assert extract_json_object(None) is None

    def test_unbalanced_prefix(self) -> None:
        assert extract_json_object("{ broken") is None


class TestParseSuggestions:
    def test_valid_payload(self) -> None:
        suggestions = parse_suggestions(VALID_PAYLOAD)

        assert len(suggestions) == 1
        assert suggestions[0].name == "HTTP"
        assert suggestions[0].description == "HTTP clients"
        assert suggestions[0].members == [CategoryMember("psf/requests", "HTTP library")]

    def test_drops_invalid_entries(self) -> None:
        payload = {
            "categories": [
                {"description": "no name"},
                "not a dict",
                {
                    "name": "Tools",
                    "repositories": [{"reason": "missing name"}, {"full_name": "a/b"}, 42],
                },
            ]
        }
        suggestions = parse_suggestions(payload)

        assert [s.name for s in suggestions] == ["Tools"]
        assert suggestions[0].description == ""
        assert suggestions[0].members == [CategoryMember("a/b", "")]

    def test_wrong_shape(self) -> None:
        assert parse_suggestions([]) == []
        assert parse_suggestions({"categories": "nope"}) == []


class TestParseResponseText:
    def test_plain_prose_returns_empty(self) -> None:
        assert parse_response_text("These repositories are all very interesting.") == []

    def test_malformed_json_returns_empty(self) -> None:
        assert parse_response_text("{'categories': [}") == []

    def test_embedded_json(self) -> None:
        text = "Here is my answer:\n" + json.dumps(VALID_PAYLOAD) + "\nLet me know!"
        assert [s.name for s in parse_response_text(text)] == ["HTTP"]


class TestClassificationClient:
    def test_classify_parses_response(self) -> None:
        openai_client = make_openai_client(content=json.dumps(VALID_PAYLOAD))
        client = ClassificationClient(api_key="k", model="test-model", client=openai_client)

        suggestions = client.classify(REPOS, [], is_first_batch=True)

        assert [s.name for s in suggestions] == ["HTTP"]
        kwargs = openai_client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "test-model"
        assert kwargs["messages"][-1]["role"] == "user"
        assert "psf/requests" in kwargs["messages"][-1]["content"]

    def test_api_error_returns_empty(self) -> None:
        client = ClassificationClient(api_key="k", client=make_openai_client(error=RuntimeError("down")))

        exchange = client.classify_batch(REPOS, index=3)

        assert exchange.suggestions == []
        assert exchange.response_text is None
        assert exchange.index == 3
        assert "psf/requests" in exchange.prompt

    def test_unparseable_response_returns_empty(self) -> None:
        client = ClassificationClient(api_key="k", client=make_openai_client(content="No JSON here, sorry."))

        exchange = client.classify_batch(REPOS)

        assert exchange.suggestions == []
        assert exchange.response_text == "No JSON here, sorry."

    def test_none_content_returns_empty(self) -> None:
        client = ClassificationClient(api_key="k", client=make_openai_client(content=None))
        assert client.classify(REPOS) == []
