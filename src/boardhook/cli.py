"""CLI entry point for boardhook.

Runs the webhook service and provisions the records it needs: workspaces,
webhooks and API keys.
"""

from __future__ import annotations

import sys
from datetime import timedelta
from pathlib import Path

import click

from boardhook.auth import generate_api_key
from boardhook.board_store import (
    BoardStore,
    BoardStoreError,
    IssueStatus,
    provision_workspace,
)
from boardhook.board_store.store import utcnow
from boardhook.config import ConfigError, Settings, load_settings
from boardhook.logging import setup_logging

STATUS_CHOICES = [s.value for s in IssueStatus]


def _load(ctx: click.Context) -> Settings:
    settings: Settings = ctx.obj["settings"]
    return settings


def _open_store(settings: Settings) -> BoardStore:
    return BoardStore(settings.database_path)


def _label_ids_for(store: BoardStore, workspace_id: str, names: tuple[str, ...]) -> list[str]:
    """Map label names to ids, case-insensitively. Exits on unknown names."""
    by_name = {label.name.lower(): label.id for label in store.list_labels(workspace_id)}
    unknown = [n for n in names if n.lower() not in by_name]
    if unknown:
        click.echo(f"Error: Unknown labels: {', '.join(unknown)}", err=True)
        sys.exit(1)
    return [by_name[n.lower()] for n in names]


@click.group()
@click.version_option(package_name="boardhook")
@click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(exists=True, path_type=Path),
    help="Path to boardhook.yaml (auto-detected if not specified)",
)
@click.option(
    "--db",
    "database_path",
    default=None,
    help="SQLite database path (overrides configuration)",
)
@click.pass_context
def main(ctx: click.Context, config_path: Path | None, database_path: str | None) -> None:
    """boardhook - turn webhook payloads into board issues."""
    try:
        settings = load_settings(config_path)
    except ConfigError as e:
        click.echo(f"Configuration error: {e}", err=True)
        sys.exit(1)
    if database_path:
        settings.database_path = database_path
    ctx.ensure_object(dict)
    ctx.obj["settings"] = settings


@main.command()
@click.option("--host", default="127.0.0.1", show_default=True, help="Bind address")
@click.option("--port", default=8000, show_default=True, type=int, help="Bind port")
@click.pass_context
def serve(ctx: click.Context, host: str, port: int) -> None:
    """Run the webhook API server."""
    import uvicorn  # noqa: PLC0415

    from boardhook.api import create_app  # noqa: PLC0415

    settings = _load(ctx)
    setup_logging(log_dir=settings.log_dir, level=settings.log_level)
    uvicorn.run(create_app(settings), host=host, port=port, log_config=None)


@main.command("init-db")
@click.pass_context
def init_db(ctx: click.Context) -> None:
    """Create the database and its tables."""
    settings = _load(ctx)
    store = _open_store(settings)
    store.close()
    click.echo(f"Database ready at {settings.database_path}")


@main.command("create-workspace")
@click.argument("name")
@click.option("--slug", default=None, help="URL slug (derived from NAME if omitted)")
@click.option("--identifier", default=None, help="Issue identifier prefix, e.g. ACME")
@click.pass_context
def create_workspace(
    ctx: click.Context, name: str, slug: str | None, identifier: str | None
) -> None:
    """Create a workspace with the default columns and labels."""
    store = _open_store(_load(ctx))
    try:
        workspace = provision_workspace(store, name, slug=slug, identifier=identifier)
    except BoardStoreError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    finally:
        store.close()

    click.echo(f"Created workspace {workspace.name}")
    click.echo(f"  Slug: {workspace.slug}")
    click.echo(f"  Identifier: {workspace.identifier}")
    click.echo(f"  ID: {workspace.id}")


@main.command("create-webhook")
@click.argument("workspace_slug")
@click.argument("name")
@click.option("--prompt", required=True, help="Extraction instructions for the model")
@click.option("--slug", default=None, help="Webhook slug (derived from NAME if omitted)")
@click.option(
    "--default-status",
    type=click.Choice(STATUS_CHOICES),
    default=None,
    help="Status that overrides whatever the model extracts",
)
@click.option(
    "--default-priority",
    type=click.IntRange(0, 4),
    default=None,
    help="Priority (0-4) that overrides whatever the model extracts",
)
@click.option(
    "--default-label",
    "default_labels",
    multiple=True,
    help="Label name applied to every issue (repeatable)",
)
@click.pass_context
def create_webhook(
    ctx: click.Context,
    workspace_slug: str,
    name: str,
    prompt: str,
    slug: str | None,
    default_status: str | None,
    default_priority: int | None,
    default_labels: tuple[str, ...],
) -> None:
    """Create a webhook in a workspace."""
    store = _open_store(_load(ctx))
    try:
        workspace = store.get_workspace_by_slug(workspace_slug)

        label_ids = _label_ids_for(store, workspace.id, default_labels)

        webhook = store.create_webhook(
            workspace_id=workspace.id,
            name=name,
            prompt=prompt,
            slug=slug,
            default_status=default_status,
            default_priority=default_priority,
            default_label_ids=label_ids,
        )
    except BoardStoreError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    finally:
        store.close()

    click.echo(f"Created webhook {webhook.name}")
    click.echo(f"  URL: /api/webhooks/{workspace.slug}/{webhook.slug}")


@main.command("list-webhooks")
@click.argument("workspace_slug")
@click.pass_context
def list_webhooks(ctx: click.Context, workspace_slug: str) -> None:
    """List a workspace's webhooks."""
    store = _open_store(_load(ctx))
    try:
        workspace = store.get_workspace_by_slug(workspace_slug)
        webhooks = store.list_webhooks(workspace.id)
    except BoardStoreError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    finally:
        store.close()

    if not webhooks:
        click.echo("No webhooks")
        return
    for webhook in webhooks:
        state = "active" if webhook.is_active else "disabled"
        click.echo(f"{webhook.slug}\t{state}\t{webhook.name}")


@main.command("set-webhook-active")
@click.argument("workspace_slug")
@click.argument("webhook_slug")
@click.option("--enable/--disable", "enabled", required=True, help="New state")
@click.pass_context
def set_webhook_active(
    ctx: click.Context, workspace_slug: str, webhook_slug: str, enabled: bool
) -> None:
    """Enable or disable a webhook. Disabled webhooks answer 404."""
    store = _open_store(_load(ctx))
    try:
        workspace = store.get_workspace_by_slug(workspace_slug)
        webhook = store.get_webhook(workspace.id, webhook_slug)
        store.set_webhook_active(webhook.id, enabled)
    except BoardStoreError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    finally:
        store.close()

    click.echo(f"Webhook {webhook_slug} {'enabled' if enabled else 'disabled'}")


@main.command("update-webhook")
@click.argument("workspace_slug")
@click.argument("webhook_slug")
@click.option("--name", default=None, help="New display name")
@click.option("--prompt", default=None, help="New extraction instructions")
@click.option(
    "--default-status",
    type=click.Choice(STATUS_CHOICES),
    default=None,
    help="Status that overrides whatever the model extracts",
)
@click.option(
    "--default-priority",
    type=click.IntRange(0, 4),
    default=None,
    help="Priority (0-4) that overrides whatever the model extracts",
)
@click.option(
    "--default-label",
    "default_labels",
    multiple=True,
    help="Label name applied to every issue (repeatable, replaces the current set)",
)
@click.option(
    "--clear-defaults",
    is_flag=True,
    help="Remove the default status, priority and labels first",
)
@click.pass_context
def update_webhook(
    ctx: click.Context,
    workspace_slug: str,
    webhook_slug: str,
    name: str | None,
    prompt: str | None,
    default_status: str | None,
    default_priority: int | None,
    default_labels: tuple[str, ...],
    clear_defaults: bool,
) -> None:
    """Change a webhook's name, prompt or defaults. Omitted options are kept."""
    store = _open_store(_load(ctx))
    try:
        workspace = store.get_workspace_by_slug(workspace_slug)
        webhook = store.get_webhook(workspace.id, webhook_slug)
        label_ids = (
            _label_ids_for(store, workspace.id, default_labels) if default_labels else None
        )
        webhook = store.update_webhook(
            webhook.id,
            name=name,
            prompt=prompt,
            default_status=default_status,
            default_priority=default_priority,
            default_label_ids=label_ids,
            clear_defaults=clear_defaults,
        )
    except BoardStoreError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    finally:
        store.close()

    click.echo(f"Updated webhook {webhook.name}")


@main.command("delete-webhook")
@click.argument("workspace_slug")
@click.argument("webhook_slug")
@click.confirmation_option(prompt="Delete this webhook? Its URL will stop working.")
@click.pass_context
def delete_webhook(ctx: click.Context, workspace_slug: str, webhook_slug: str) -> None:
    """Delete a webhook. Issues it already created are kept."""
    store = _open_store(_load(ctx))
    try:
        workspace = store.get_workspace_by_slug(workspace_slug)
        webhook = store.get_webhook(workspace.id, webhook_slug)
        store.delete_webhook(webhook.id)
    except BoardStoreError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    finally:
        store.close()

    click.echo(f"Deleted webhook {webhook_slug}")


@main.command("create-api-key")
@click.argument("workspace_slug")
@click.argument("name")
@click.option(
    "--expires-in-days",
    type=click.IntRange(min=1),
    default=None,
    help="Days until the key expires (never, if omitted)",
)
@click.pass_context
def create_api_key(
    ctx: click.Context, workspace_slug: str, name: str, expires_in_days: int | None
) -> None:
    """Create an API key for a workspace and print it once."""
    store = _open_store(_load(ctx))
    try:
        workspace = store.get_workspace_by_slug(workspace_slug)
        generated = generate_api_key()
        expires_at = utcnow() + timedelta(days=expires_in_days) if expires_in_days else None
        store.create_api_key(
            workspace_id=workspace.id,
            name=name,
            key_hash=generated.key_hash,
            key_prefix=generated.key_prefix,
            expires_at=expires_at,
        )
    except BoardStoreError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    finally:
        store.close()

    click.echo(f"Created API key {name} ({generated.key_prefix}...)")
    if expires_at is not None:
        click.echo(f"  Expires: {expires_at.isoformat()}Z")
    click.echo("  Store it now, it will not be shown again:")
    click.echo(generated.key)


@main.command("list-api-keys")
@click.argument("workspace_slug")
@click.pass_context
def list_api_keys(ctx: click.Context, workspace_slug: str) -> None:
    """List a workspace's API keys. Only the key prefix is shown."""
    store = _open_store(_load(ctx))
    try:
        workspace = store.get_workspace_by_slug(workspace_slug)
        api_keys = store.list_api_keys(workspace.id)
    except BoardStoreError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    finally:
        store.close()

    if not api_keys:
        click.echo("No API keys")
        return
    for api_key in api_keys:
        expires = api_key.expires_at.isoformat() + "Z" if api_key.expires_at else "never"
        last_used = api_key.last_used_at.isoformat() + "Z" if api_key.last_used_at else "never"
        click.echo(
            f"{api_key.id}\t{api_key.key_prefix}...\t{api_key.name}"
            f"\texpires={expires}\tlast_used={last_used}"
        )


@main.command("revoke-api-key")
@click.argument("workspace_slug")
@click.argument("key_id")
@click.confirmation_option(prompt="Revoke this API key? Callers using it will get 401.")
@click.pass_context
def revoke_api_key(ctx: click.Context, workspace_slug: str, key_id: str) -> None:
    """Delete an API key so it no longer authenticates."""
    store = _open_store(_load(ctx))
    try:
        workspace = store.get_workspace_by_slug(workspace_slug)
        store.delete_api_key(workspace.id, key_id)
    except BoardStoreError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    finally:
        store.close()

    click.echo(f"Revoked API key {key_id}")


if __name__ == "__main__":
    main()
