"""Shared pytest fixtures and configuration."""

from __future__ import annotations

from typing import Any

import pytest

from boardhook.board_store import BoardStore, Workspace, provision_workspace
from boardhook.extraction import (
    GenerationResult,
    GenerationStep,
    GenerationUsage,
    ToolInvocation,
)


# Register custom markers
def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers for test categorization."""
    config.addinivalue_line("markers", "unit: fast tests with no external dependencies")
    config.addinivalue_line("markers", "integration: component interaction tests")


class FakeBackend:
    """Generation backend that replays canned results and records calls."""

    def __init__(self, *results: GenerationResult | Exception) -> None:
        self.results = list(results)
        self.calls: list[dict[str, Any]] = []

    def generate(
        self, system_prompt: str, user_prompt: str, tools: list[dict[str, Any]]
    ) -> GenerationResult:
        self.calls.append({"system": system_prompt, "user": user_prompt, "tools": tools})
        result = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if isinstance(result, Exception):
            raise result
        return result


def tool_result(
    fields: dict[str, Any],
    text: str = "",
    model: str = "claude-haiku-4-5-20251001",
    usage: GenerationUsage | None = None,
) -> GenerationResult:
    """A generation result containing a single create_issue call."""
    return GenerationResult(
        model=model,
        steps=[
            GenerationStep(
                text=text,
                tool_invocations=[ToolInvocation(name="create_issue", input=fields, id="toolu_1")],
            )
        ],
        text=text,
        usage=usage or GenerationUsage(input_tokens=1200, output_tokens=80),
    )


def text_result(text: str, model: str = "claude-haiku-4-5-20251001") -> GenerationResult:
    """A generation result where the model answered in prose only."""
    return GenerationResult(
        model=model,
        steps=[GenerationStep(text=text)],
        text=text,
        usage=GenerationUsage(input_tokens=900, output_tokens=30),
    )


@pytest.fixture
def fake_backend_factory():
    """Build FakeBackend instances from canned results."""
    return FakeBackend


@pytest.fixture
def make_tool_result():
    """Build a GenerationResult with one create_issue call."""
    return tool_result


@pytest.fixture
def make_text_result():
    """Build a GenerationResult with prose only."""
    return text_result


@pytest.fixture
def store():
    """Create an in-memory BoardStore."""
    s = BoardStore(":memory:")
    yield s
    s.close()


@pytest.fixture
def workspace(store: BoardStore) -> Workspace:
    """A workspace with the default columns and labels."""
    return provision_workspace(store, "Acme Ops", slug="acme")
