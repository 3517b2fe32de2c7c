"""Unit tests for WebhookIngestor."""

import json
from unittest.mock import MagicMock

import pytest

from boardhook.auth import WorkspaceAccessDeniedError
from boardhook.board_store import (
    BoardStore,
    BoardStoreError,
    WebhookNotFoundError,
    Workspace,
    WorkspaceNotFoundError,
)
from boardhook.extraction import ExtractionEngine, GenerationBackendError
from boardhook.ingest import (
    ExtractionFailedError,
    MalformedPayloadError,
    WebhookIngestor,
    WorkspaceHasNoColumnsError,
    board_path,
    parse_webhook_body,
)


@pytest.fixture
def invalidator() -> MagicMock:
    """Records view invalidations."""
    return MagicMock()


@pytest.fixture
def make_ingestor(store: BoardStore, invalidator: MagicMock, fake_backend_factory):
    """Build an ingestor whose backend replays the given results."""

    def _make(*results):
        backend = fake_backend_factory(*results)
        return WebhookIngestor(store, ExtractionEngine(backend), invalidator=invalidator)

    return _make


@pytest.mark.unit
class TestParseWebhookBody:
    """Tests for parse_webhook_body."""

    def test_unwraps_data(self) -> None:
        """{"data": X} yields X."""
        assert parse_webhook_body(b'{"data": {"a": 1}, "meta": 2}') == {"a": 1}

    def test_null_data_not_unwrapped(self) -> None:
        """A null data key leaves the object as-is."""
        assert parse_webhook_body(b'{"data": null, "a": 1}') == {"data": None, "a": 1}

    def test_plain_object(self) -> None:
        """Objects without data are used whole."""
        assert parse_webhook_body(b'{"alert": "cpu"}') == {"alert": "cpu"}

    @pytest.mark.parametrize("body", [b"[1, 2]", b'"text"', b"42", b"null"])
    def test_non_object_json(self, body: bytes) -> None:
        """Any JSON value is accepted."""
        assert parse_webhook_body(body) == json.loads(body)

    @pytest.mark.parametrize("body", [b"", b"{not json", b"\xff\xfe"])
    def test_malformed(self, body: bytes) -> None:
        """Non-JSON bodies raise MalformedPayloadError."""
        with pytest.raises(MalformedPayloadError):
            parse_webhook_body(body)


@pytest.mark.unit
class TestResolveTarget:
    """Tests for WebhookIngestor.resolve_target."""

    def test_resolves(self, store: BoardStore, workspace: Workspace, make_ingestor) -> None:
        """Returns workspace and webhook for a matching caller."""
        webhook = store.create_webhook(workspace.id, "Alerts", prompt="p")

        target = make_ingestor().resolve_target("acme", "alerts", workspace.id)

        assert target.workspace.id == workspace.id
        assert target.webhook.id == webhook.id

    def test_unknown_workspace(self, workspace: Workspace, make_ingestor) -> None:
        """WorkspaceNotFoundError for an unknown slug."""
        with pytest.raises(WorkspaceNotFoundError):
            make_ingestor().resolve_target("nope", "alerts", workspace.id)

    def test_other_workspace_key(
        self, store: BoardStore, workspace: Workspace, make_ingestor
    ) -> None:
        """A key for another workspace is denied before the webhook lookup."""
        store.create_webhook(workspace.id, "Alerts", prompt="p")

        with pytest.raises(WorkspaceAccessDeniedError):
            make_ingestor().resolve_target("acme", "alerts", "someone-else")

    def test_unknown_webhook(self, workspace: Workspace, make_ingestor) -> None:
        """WebhookNotFoundError for an unknown webhook slug."""
        with pytest.raises(WebhookNotFoundError):
            make_ingestor().resolve_target("acme", "missing", workspace.id)

    def test_disabled_webhook(self, store: BoardStore, workspace: Workspace, make_ingestor) -> None:
        """Disabled webhooks look the same as missing ones."""
        webhook = store.create_webhook(workspace.id, "Alerts", prompt="p")
        store.set_webhook_active(webhook.id, False)

        with pytest.raises(WebhookNotFoundError):
            make_ingestor().resolve_target("acme", "alerts", workspace.id)


@pytest.mark.unit
class TestIngest:
    """Tests for WebhookIngestor.ingest."""

    def test_creates_issue_from_extraction(
        self,
        store: BoardStore,
        workspace: Workspace,
        invalidator: MagicMock,
        make_ingestor,
        make_tool_result,
    ) -> None:
        """Extracted fields land in the matching column with labels."""
        store.create_webhook(workspace.id, "Alerts", prompt="p")
        ingestor = make_ingestor(
            make_tool_result(
                {
                    "title": "Checkout 500s",
                    "description": "Errors spiking",
                    "status": "in_progress",
                    "priority": 1,
                    "labels": ["bug", "nonexistent"],
                }
            )
        )
        target = ingestor.resolve_target("acme", "alerts", workspace.id)

        result = ingestor.ingest(target, {"alert": "500"})

        issue = result.issue
        assert issue.identifier == "ACME-1"
        assert issue.title == "Checkout 500s"
        assert issue.description == "Errors spiking"
        assert issue.status == "in_progress"
        assert issue.priority == 1
        assert issue.position == 0
        column = store.resolve_column(workspace.id, "in_progress")
        assert issue.column_id == column.id
        bug = next(label for label in store.list_labels(workspace.id) if label.name == "Bug")
        assert store.list_issue_label_ids(issue.id) == [bug.id]
        assert result.used_fallback is False
        invalidator.invalidate.assert_called_once_with(workspace.id, "/w/acme")

    def test_logs_activity(
        self, store: BoardStore, workspace: Workspace, make_ingestor, make_tool_result
    ) -> None:
        """An issue_created activity names the webhook."""
        webhook = store.create_webhook(workspace.id, "Alerts", prompt="p")
        ingestor = make_ingestor(make_tool_result({"title": "t"}))

        result = ingestor.ingest(ingestor.resolve_target("acme", "alerts", workspace.id), {})

        (activity,) = store.list_activities(result.issue.id)
        assert activity.type == "issue_created"
        assert activity.user_id is None
        assert json.loads(activity.data) == {"source": "webhook", "webhookId": webhook.id}

    def test_defaults_override_extraction(
        self, store: BoardStore, workspace: Workspace, make_ingestor, make_tool_result
    ) -> None:
        """Webhook defaults beat extracted status and priority; labels merge."""
        feature = next(lb for lb in store.list_labels(workspace.id) if lb.name == "Feature")
        store.create_webhook(
            workspace.id,
            "Alerts",
            prompt="p",
            default_status="backlog",
            default_priority=0,
            default_label_ids=[feature.id],
        )
        ingestor = make_ingestor(
            make_tool_result({"title": "t", "status": "done", "priority": 3, "labels": ["Bug"]})
        )

        result = ingestor.ingest(ingestor.resolve_target("acme", "alerts", workspace.id), {})

        assert result.issue.status == "backlog"
        assert result.issue.priority == 0
        assert store.resolve_column(workspace.id, "backlog").id == result.issue.column_id
        assert len(result.label_ids) == 2
        assert result.label_ids[1] == feature.id

    def test_fallback_title_and_defaults(
        self, store: BoardStore, workspace: Workspace, make_ingestor, make_text_result
    ) -> None:
        """Without a tool call the raw text is the title, filed under todo."""
        store.create_webhook(workspace.id, "Alerts", prompt="p")
        ingestor = make_ingestor(make_text_result("Disk full on db-1"))

        result = ingestor.ingest(ingestor.resolve_target("acme", "alerts", workspace.id), {})

        assert result.used_fallback is True
        assert result.issue.title == "Disk full on db-1"
        assert result.issue.status == "todo"
        assert result.issue.priority == 4
        assert result.label_ids == []

    def test_unmatched_status_uses_first_column(
        self, store: BoardStore, workspace: Workspace, make_ingestor, make_tool_result
    ) -> None:
        """'canceled' has no column, so the issue goes to the leftmost one."""
        store.create_webhook(workspace.id, "Alerts", prompt="p")
        ingestor = make_ingestor(make_tool_result({"title": "t", "status": "canceled"}))

        result = ingestor.ingest(ingestor.resolve_target("acme", "alerts", workspace.id), {})

        assert result.issue.status == "canceled"
        assert result.issue.column_id == store.list_columns(workspace.id)[0].id

    def test_identifiers_and_positions_advance(
        self, store: BoardStore, workspace: Workspace, make_ingestor, make_tool_result
    ) -> None:
        """Consecutive deliveries get consecutive identifiers and positions."""
        store.create_webhook(workspace.id, "Alerts", prompt="p")
        ingestor = make_ingestor(make_tool_result({"title": "t"}))
        target = ingestor.resolve_target("acme", "alerts", workspace.id)

        first = ingestor.ingest(target, {}).issue
        second = ingestor.ingest(target, {}).issue

        assert (first.identifier, second.identifier) == ("ACME-1", "ACME-2")
        assert (first.position, second.position) == (0, 1)

    def test_extraction_failure(
        self, store: BoardStore, workspace: Workspace, invalidator: MagicMock, make_ingestor
    ) -> None:
        """Backend errors become ExtractionFailedError and nothing is written."""
        store.create_webhook(workspace.id, "Alerts", prompt="p")
        ingestor = make_ingestor(GenerationBackendError("timeout"))

        with pytest.raises(ExtractionFailedError):
            ingestor.ingest(ingestor.resolve_target("acme", "alerts", workspace.id), {})

        assert store.list_issues(workspace.id) == []
        assert store.get_workspace(workspace.id).issue_counter == 0
        invalidator.invalidate.assert_not_called()

    def test_workspace_without_columns(
        self, store: BoardStore, make_ingestor, make_tool_result
    ) -> None:
        """A workspace with no columns cannot receive issues."""
        ws = store.create_workspace(name="Empty", slug="empty", identifier="EMPT")
        store.create_webhook(ws.id, "Alerts", prompt="p")
        ingestor = make_ingestor(make_tool_result({"title": "t"}))

        with pytest.raises(WorkspaceHasNoColumnsError):
            ingestor.ingest(ingestor.resolve_target("empty", "alerts", ws.id), {})

        assert store.get_workspace(ws.id).issue_counter == 0

    def test_invalidation_failure_is_swallowed(
        self,
        store: BoardStore,
        workspace: Workspace,
        invalidator: MagicMock,
        make_ingestor,
        make_tool_result,
    ) -> None:
        """The issue is returned even if the view invalidation fails."""
        store.create_webhook(workspace.id, "Alerts", prompt="p")
        invalidator.invalidate.side_effect = RuntimeError("no subscribers")
        ingestor = make_ingestor(make_tool_result({"title": "t"}))

        result = ingestor.ingest(ingestor.resolve_target("acme", "alerts", workspace.id), {})

        assert result.issue.identifier == "ACME-1"

    def test_invalidation_via_runner(
        self, store: BoardStore, workspace: Workspace, fake_backend_factory, make_tool_result
    ) -> None:
        """With a runner, invalidation is submitted rather than called inline."""
        store.create_webhook(workspace.id, "Alerts", prompt="p")
        invalidator = MagicMock()
        runner = MagicMock()
        ingestor = WebhookIngestor(
            store,
            ExtractionEngine(fake_backend_factory(make_tool_result({"title": "t"}))),
            invalidator=invalidator,
            runner=runner,
        )

        ingestor.ingest(ingestor.resolve_target("acme", "alerts", workspace.id), {})

        runner.submit.assert_called_once_with(
            "invalidate_view", invalidator.invalidate, workspace.id, board_path("acme")
        )
        invalidator.invalidate.assert_not_called()

    def test_issue_created_callback(
        self, store: BoardStore, workspace: Workspace, fake_backend_factory, make_tool_result
    ) -> None:
        """The issue-created callback receives the workspace id and the new issue."""
        store.create_webhook(workspace.id, "Alerts", prompt="p")
        announced: list[tuple] = []
        ingestor = WebhookIngestor(
            store,
            ExtractionEngine(fake_backend_factory(make_tool_result({"title": "Disk full"}))),
            on_issue_created=lambda ws_id, issue: announced.append((ws_id, issue.identifier)),
        )

        ingestor.ingest(ingestor.resolve_target("acme", "alerts", workspace.id), {})

        assert announced == [(workspace.id, "ACME-1")]

    def test_label_failure_after_insert_is_not_rolled_back(
        self,
        store: BoardStore,
        workspace: Workspace,
        invalidator: MagicMock,
        make_ingestor,
        make_tool_result,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Once the issue row exists, a later failure propagates and the row stays."""
        store.create_webhook(workspace.id, "Alerts", prompt="p")
        ingestor = make_ingestor(make_tool_result({"title": "Disk full", "labels": ["Bug"]}))

        def failing_add_issue_labels(issue_id, label_ids):
            raise BoardStoreError("database is locked")

        monkeypatch.setattr(store, "add_issue_labels", failing_add_issue_labels)

        with pytest.raises(BoardStoreError):
            ingestor.ingest(ingestor.resolve_target("acme", "alerts", workspace.id), {})

        issues = store.list_issues(workspace.id)
        assert [i.title for i in issues] == ["Disk full"]
        assert store.get_workspace(workspace.id).issue_counter == 1
        assert store.list_activities(issues[0].id) == []
        invalidator.invalidate.assert_not_called()
