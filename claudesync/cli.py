"""CLI interface for ClaudeSync."""

import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Optional, Sequence, TypeVar

import click

from .auth import SESSION_KEY_INSTRUCTIONS, login, require_client
from .chat_pull import ChatPuller
from .config import ConfigManager
from .exceptions import ClaudeSyncError
from .output import OutputFormatter
from .sync import SyncEngine
from .utils import (
    CONFIG_DIR_NAME,
    DEFAULT_PROVIDER,
    DEFAULT_TIMEZONE,
    format_http_date,
    parse_expiry,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


def select_item(
    out: OutputFormatter,
    items: Sequence[T],
    labels: Sequence[str],
    prompt: str,
) -> T:
    """Print a numbered list and let the user pick one entry."""
    for i, label in enumerate(labels, start=1):
        out.print(f"  {i}. {label}")
    selection = click.prompt(prompt, type=click.IntRange(1, len(items)))
    return items[selection - 1]


@click.group()
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json", is_flag=True, help="Output in JSON format")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.version_option(package_name="claudesync")
@click.pass_context
def main(ctx: Any, quiet: bool, json: bool, verbose: bool) -> None:
    """ClaudeSync - Synchronize local files with Claude.ai projects."""
    ctx.ensure_object(dict)
    ctx.obj["out"] = OutputFormatter(json_output=json, quiet=quiet)
    if "config" not in ctx.obj:
        ctx.obj["config"] = ConfigManager()

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        logging.getLogger("claudesync").setLevel(logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)


# =========================
# auth
# =========================


@main.group()
def auth() -> None:
    """Manage authentication."""


@auth.command("login")
@click.option(
    "--provider",
    "-p",
    default=DEFAULT_PROVIDER,
    show_default=True,
    help="The provider to authenticate with",
)
@click.option("--session-key", help="Session key (prompted if omitted)")
@click.option(
    "--expires",
    help="Session key expiry, RFC 1123 or ISO 8601 (default: one month from now)",
)
@click.pass_context
def auth_login(
    ctx: Any, provider: str, session_key: Optional[str], expires: Optional[str]
) -> None:
    """Authenticate with an AI provider using a session key."""
    out: OutputFormatter = ctx.obj["out"]
    config: ConfigManager = ctx.obj["config"]

    if session_key is None:
        out.print(SESSION_KEY_INSTRUCTIONS)
        session_key = click.prompt("Please enter your sessionKey", hide_input=True)
    session_key = session_key.strip()
    if not session_key:
        out.error("Session key must not be empty")
        ctx.exit(1)

    if expires is None:
        default_expiry = datetime.now(timezone.utc) + timedelta(days=30)
        expires = click.prompt(
            "Please enter the expires time for the sessionKey",
            default=format_http_date(default_expiry),
        )

    try:
        expiry = parse_expiry(expires)
    except ValueError as e:
        out.error(str(e))
        ctx.exit(1)
        return

    try:
        out.info("Validating session key...")
        organizations = login(config, provider, session_key, expiry)
    except ClaudeSyncError as e:
        out.error(f"Session key verification failed: {e}")
        ctx.exit(1)
        return

    out.success(f"Successfully stored session key for {provider}.")
    out.print_summary(
        "Login Complete",
        [
            ("Provider", provider),
            ("Expires", format_http_date(expiry)),
            ("Organizations", len(organizations)),
            ("Config file", str(config.global_config_path)),
        ],
    )


@auth.command("logout")
@click.pass_context
def auth_logout(ctx: Any) -> None:
    """Log out from all AI providers."""
    out: OutputFormatter = ctx.obj["out"]
    config: ConfigManager = ctx.obj["config"]
    try:
        config.clear_all_session_keys()
    except ClaudeSyncError as e:
        out.error(str(e))
        ctx.exit(1)
    out.success("Logged out from all providers successfully.")


@auth.command("ls")
@click.pass_context
def auth_ls(ctx: Any) -> None:
    """List all authenticated providers."""
    out: OutputFormatter = ctx.obj["out"]
    config: ConfigManager = ctx.obj["config"]
    providers = config.get_providers_with_session_keys()

    if out.json_output:
        out.output_json(providers)
        return
    if not providers:
        out.print("No authenticated providers found.")
        return
    out.print("Authenticated providers:")
    for provider in providers:
        out.print(f"  - {provider}")


# =========================
# config
# =========================


@main.group("config")
def config_group() -> None:
    """Manage claudesync configuration."""


@config_group.command("set")
@click.argument("key")
@click.argument("value")
@click.option("--local", is_flag=True, help="Set the value in the local configuration")
@click.pass_context
def config_set(ctx: Any, key: str, value: str, local: bool) -> None:
    """Set a configuration value."""
    out: OutputFormatter = ctx.obj["out"]
    config: ConfigManager = ctx.obj["config"]
    try:
        config.set(key, value, local=local)
    except ClaudeSyncError as e:
        out.error(str(e))
        ctx.exit(1)
    out.success(f"Set {key} = {value}")


@config_group.command("get")
@click.argument("key")
@click.pass_context
def config_get(ctx: Any, key: str) -> None:
    """Get a configuration value."""
    out: OutputFormatter = ctx.obj["out"]
    config: ConfigManager = ctx.obj["config"]
    value = config.get(key)

    if out.json_output:
        out.output_json({key: value})
    elif value is None:
        out.print(f"Configuration {key} is not set")
    else:
        out.print(f"{key}: {value}")


@config_group.command("ls")
@click.pass_context
def config_ls(ctx: Any) -> None:
    """List all configuration values."""
    out: OutputFormatter = ctx.obj["out"]
    config: ConfigManager = ctx.obj["config"]
    out.output_json(config.as_dict())


# =========================
# organization
# =========================


@main.group()
def organization() -> None:
    """Manage AI organizations."""


@organization.command("ls")
@click.pass_context
def organization_ls(ctx: Any) -> None:
    """List all available organizations."""
    out: OutputFormatter = ctx.obj["out"]
    client = require_client(ctx, out)

    try:
        organizations = client.get_organizations()
    except ClaudeSyncError as e:
        out.error(str(e))
        ctx.exit(1)
        return

    if not organizations:
        out.warning("No organizations found.")
        return
    out.output_table(
        [{"id": org.id, "name": org.name} for org in organizations],
        ["name", "id"],
        {"name": "Name", "id": "ID"},
    )


@organization.command("set")
@click.option("--org-id", help="ID of the organization to set as active")
@click.option(
    "--provider",
    default=DEFAULT_PROVIDER,
    show_default=True,
    help="The provider for repositories without .claudesync",
)
@click.pass_context
def organization_set(ctx: Any, org_id: Optional[str], provider: str) -> None:
    """Set the active organization.

    Changing the organization clears the active project.
    """
    out: OutputFormatter = ctx.obj["out"]
    config: ConfigManager = ctx.obj["config"]

    try:
        config.set("active_provider", provider, local=True)
        client = require_client(ctx, out)
        organizations = client.get_organizations()

        if org_id:
            matches = [org for org in organizations if org.id == org_id]
            if not matches:
                out.error(f"Organization with ID {org_id} not found")
                ctx.exit(1)
                return
            selected = matches[0]
        elif not organizations:
            out.error("No organizations found.")
            ctx.exit(1)
            return
        else:
            out.print("Available organizations:")
            selected = select_item(
                out,
                organizations,
                [f"{org.name} (ID: {org.id})" for org in organizations],
                "Enter the number of the organization you want to work with",
            )

        config.set_active_organization(selected.id)
    except ClaudeSyncError as e:
        out.error(str(e))
        ctx.exit(1)
        return

    out.success(f"Selected organization: {selected.name} (ID: {selected.id})")
    out.info(
        "Project settings cleared. "
        "Please select or create a new project for this organization."
    )


# =========================
# project
# =========================


@main.group()
def project() -> None:
    """Manage AI projects within the active organization."""


@project.command("create")
@click.option("--name", help="The name of the project (default: local directory name)")
@click.option(
    "--description",
    default="Project created with ClaudeSync",
    show_default=True,
    help="The project description",
)
@click.option(
    "--local-path",
    default=".",
    show_default=True,
    type=click.Path(file_okay=False),
    help="The local path for the project",
)
@click.option(
    "--provider",
    default=DEFAULT_PROVIDER,
    show_default=True,
    help="The provider to use for this project",
)
@click.option("--organization", "organization_id", help="The organization ID to use")
@click.pass_context
def project_create(
    ctx: Any,
    name: Optional[str],
    description: str,
    local_path: str,
    provider: str,
    organization_id: Optional[str],
) -> None:
    """Create a new project and make it the active one."""
    out: OutputFormatter = ctx.obj["out"]
    config: ConfigManager = ctx.obj["config"]

    try:
        organization_id = organization_id or config.require("active_organization_id")
        name = name or Path(local_path).resolve().name

        config.set("active_provider", provider, local=True)
        client = require_client(ctx, out)
        new_project = client.create_project(organization_id, name, description)

        config.set("active_organization_id", organization_id, local=True)
        config.set_active_project(new_project.id, new_project.name)
        config.set("local_path", local_path, local=True)
        (Path(local_path) / CONFIG_DIR_NAME).mkdir(parents=True, exist_ok=True)
    except (ClaudeSyncError, OSError) as e:
        out.error(str(e))
        ctx.exit(1)
        return

    out.success(
        f"Project '{new_project.name}' (uuid: {new_project.id}) "
        "has been created successfully."
    )
    out.info(f"URL: https://claude.ai/project/{new_project.id}")


@project.command("archive")
@click.option("--project-id", help="ID of the project to archive")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def project_archive(ctx: Any, project_id: Optional[str], yes: bool) -> None:
    """Archive an existing project."""
    out: OutputFormatter = ctx.obj["out"]
    config: ConfigManager = ctx.obj["config"]

    try:
        organization_id = config.require("active_organization_id")
        client = require_client(ctx, out)
        projects = client.get_projects(organization_id, include_archived=False)

        if not projects:
            out.warning("No active projects found.")
            return

        if project_id:
            matches = [p for p in projects if p.id == project_id]
            if not matches:
                out.error(f"Project with ID {project_id} not found")
                ctx.exit(1)
                return
            selected = matches[0]
        else:
            out.print("Available projects to archive:")
            selected = select_item(
                out,
                projects,
                [f"{p.name} (ID: {p.id})" for p in projects],
                "Enter the number of the project to archive",
            )

        if not yes and not click.confirm(
            f"Are you sure you want to archive the project '{selected.name}'? "
            "Archived projects cannot be modified but can still be viewed.",
            default=False,
        ):
            out.warning("Archive operation cancelled.")
            return

        client.archive_project(organization_id, selected.id)
    except ClaudeSyncError as e:
        out.error(str(e))
        ctx.exit(1)
        return

    out.success(f"Project '{selected.name}' has been archived.")


@project.command("set")
@click.option("--project-id", help="ID of the project to set as active")
@click.option(
    "--provider",
    default=DEFAULT_PROVIDER,
    show_default=True,
    help="The provider for repositories without .claudesync",
)
@click.pass_context
def project_set(ctx: Any, project_id: Optional[str], provider: str) -> None:
    """Set the active project for syncing."""
    out: OutputFormatter = ctx.obj["out"]
    config: ConfigManager = ctx.obj["config"]

    try:
        config.set("active_provider", provider, local=True)
        organization_id = config.require("active_organization_id")
        client = require_client(ctx, out)
        projects = client.get_projects(organization_id, include_archived=False)

        if project_id:
            matches = [p for p in projects if p.id == project_id]
            if not matches:
                out.error(f"Project with ID {project_id} not found")
                ctx.exit(1)
                return
            selected = matches[0]
        elif not projects:
            out.warning("No active projects found.")
            return
        else:
            out.print("Available projects:")
            selected = select_item(
                out,
                projects,
                [f"{p.name} (ID: {p.id})" for p in projects],
                "Enter the number of the project to select",
            )

        config.set_active_project(selected.id, selected.name)
    except ClaudeSyncError as e:
        out.error(str(e))
        ctx.exit(1)
        return

    out.success(f"Selected project: {selected.name} (ID: {selected.id})")
    out.info(f"Local configuration: {config.local_config_path}")


@project.command("ls")
@click.option("--all", "show_all", is_flag=True, help="Include archived projects")
@click.pass_context
def project_ls(ctx: Any, show_all: bool) -> None:
    """List all projects in the active organization."""
    out: OutputFormatter = ctx.obj["out"]
    config: ConfigManager = ctx.obj["config"]

    try:
        organization_id = config.require("active_organization_id")
        client = require_client(ctx, out)
        projects = client.get_projects(organization_id, include_archived=show_all)
    except ClaudeSyncError as e:
        out.error(str(e))
        ctx.exit(1)
        return

    if not projects:
        out.warning("No projects found.")
        return
    out.output_table(
        [
            {
                "id": p.id,
                "name": p.name,
                "status": "Archived" if p.is_archived else "Active",
            }
            for p in projects
        ],
        ["name", "id", "status"],
        {"name": "Name", "id": "ID", "status": "Status"},
    )


# =========================
# chat
# =========================


@main.group()
def chat() -> None:
    """Manage and synchronize chats."""


@chat.command("ls")
@click.option(
    "--all", "show_all", is_flag=True, help="Include chats of every project"
)
@click.pass_context
def chat_ls(ctx: Any, show_all: bool) -> None:
    """List chats of the active project."""
    out: OutputFormatter = ctx.obj["out"]
    config: ConfigManager = ctx.obj["config"]

    try:
        organization_id = config.require("active_organization_id")
        project_id = None if show_all else config.get("active_project_id")
        client = require_client(ctx, out)
        conversations = client.get_chat_conversations(organization_id)
    except ClaudeSyncError as e:
        out.error(str(e))
        ctx.exit(1)
        return

    if project_id:
        conversations = [c for c in conversations if c.project_uuid == project_id]
    if not conversations:
        out.warning("No chats found.")
        return
    out.output_table(
        [
            {"uuid": c.uuid, "name": c.name, "updated": c.updated_at or ""}
            for c in conversations
        ],
        ["uuid", "name", "updated"],
        {"uuid": "UUID", "name": "Name", "updated": "Updated"},
    )


@chat.command("rm")
@click.argument("chat_uuids", nargs=-1)
@click.option("--all", "delete_all", is_flag=True, help="Delete all chats")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def chat_rm(
    ctx: Any, chat_uuids: tuple[str, ...], delete_all: bool, yes: bool
) -> None:
    """Delete chat conversations."""
    out: OutputFormatter = ctx.obj["out"]
    config: ConfigManager = ctx.obj["config"]

    try:
        organization_id = config.require("active_organization_id")
        client = require_client(ctx, out)

        uuids = list(chat_uuids)
        if delete_all:
            uuids = [c.uuid for c in client.get_chat_conversations(organization_id)]
        elif not uuids:
            conversations = client.get_chat_conversations(organization_id)
            if not conversations:
                out.warning("No chats found.")
                return
            out.print("Available chats:")
            selected = select_item(
                out,
                conversations,
                [f"{c.name or '(untitled)'} (UUID: {c.uuid})" for c in conversations],
                "Enter the number of the chat to delete",
            )
            uuids = [selected.uuid]

        if not uuids:
            out.warning("No chats to delete.")
            return
        if not yes and not click.confirm(
            f"Delete {len(uuids)} chat(s)?", default=False
        ):
            out.warning("Delete operation cancelled.")
            return

        client.delete_chats(organization_id, uuids)
    except ClaudeSyncError as e:
        out.error(str(e))
        ctx.exit(1)
        return

    out.success(f"Deleted {len(uuids)} chat(s).")


@chat.command("init")
@click.option("--name", default="", help="Name of the chat conversation")
@click.option(
    "--project", "project_uuid", help="UUID of the project (default: active project)"
)
@click.pass_context
def chat_init(ctx: Any, name: str, project_uuid: Optional[str]) -> None:
    """Initialize a new chat conversation."""
    out: OutputFormatter = ctx.obj["out"]
    config: ConfigManager = ctx.obj["config"]

    try:
        organization_id = config.require("active_organization_id")
        project_uuid = project_uuid or config.require("active_project_id")
        client = require_client(ctx, out)
        conversation = client.create_chat(organization_id, name, project_uuid)
    except ClaudeSyncError as e:
        out.error(str(e))
        ctx.exit(1)
        return

    if out.json_output:
        out.output_json(conversation.to_metadata())
        return
    out.success(f"Created chat: {conversation.name or '(untitled)'}")
    out.print(conversation.uuid)


@chat.command("message")
@click.argument("message", nargs=-1, required=True)
@click.option("--chat", "chat_uuid", help="UUID of the chat (a new chat if omitted)")
@click.option(
    "--timezone",
    "tz",
    default=DEFAULT_TIMEZONE,
    show_default=True,
    help="Timezone for the message",
)
@click.pass_context
def chat_message(
    ctx: Any, message: tuple[str, ...], chat_uuid: Optional[str], tz: str
) -> None:
    """Send a message to a chat and stream the reply."""
    out: OutputFormatter = ctx.obj["out"]
    config: ConfigManager = ctx.obj["config"]
    prompt = " ".join(message)
    failed = False

    try:
        organization_id = config.require("active_organization_id")
        client = require_client(ctx, out)
        if chat_uuid is None:
            conversation = client.create_chat(
                organization_id, "", config.require("active_project_id")
            )
            chat_uuid = conversation.uuid
            out.info(f"Created chat: {chat_uuid}")

        with client.send_message(organization_id, chat_uuid, prompt, tz) as stream:
            for event in stream:
                if event.is_error:
                    out.error(event.text)
                    failed = True
                elif not event.is_done:
                    click.echo(event.text, nl=False)
        click.echo()
    except ClaudeSyncError as e:
        out.error(str(e))
        ctx.exit(1)
        return

    if failed:
        ctx.exit(1)


@chat.command("pull")
@click.option(
    "--output-dir",
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory to write chats to (default: <local path>/.claudesync/chats)",
)
@click.option(
    "--all", "pull_all", is_flag=True, help="Pull chats of every project"
)
@click.pass_context
def chat_pull(ctx: Any, output_dir: Optional[Path], pull_all: bool) -> None:
    """Synchronize chats and their artifacts from the remote source."""
    out: OutputFormatter = ctx.obj["out"]
    config: ConfigManager = ctx.obj["config"]

    try:
        organization_id = config.require("active_organization_id")
        project_id = None if pull_all else config.require("active_project_id")
        if output_dir is None:
            output_dir = config.get_local_path() / CONFIG_DIR_NAME / "chats"
        client = require_client(ctx, out)
        stats = ChatPuller(client, output_dir, out).pull(organization_id, project_id)
    except ClaudeSyncError as e:
        out.error(str(e))
        ctx.exit(1)
        return

    if out.json_output:
        out.output_json(stats)
        return
    out.success(
        f"Pulled {stats['conversations']} chat(s), {stats['messages']} message(s) "
        f"and {stats['artifacts']} artifact(s) into {output_dir}"
    )


@chat.command("artifact")
@click.argument("artifact_uuid")
@click.pass_context
def chat_artifact(ctx: Any, artifact_uuid: str) -> None:
    """Print the content of a published artifact."""
    out: OutputFormatter = ctx.obj["out"]
    config: ConfigManager = ctx.obj["config"]

    try:
        organization_id = config.require("active_organization_id")
        client = require_client(ctx, out)
        content = client.get_artifact_content(organization_id, artifact_uuid)
    except ClaudeSyncError as e:
        out.error(str(e))
        ctx.exit(1)
        return

    click.echo(content)


# =========================
# push
# =========================


@main.command()
@click.option(
    "--dry-run", is_flag=True, help="Show what would be synced without syncing"
)
@click.pass_context
def push(ctx: Any, dry_run: bool) -> None:
    """Synchronize the project files.

    Uploads new and changed files from the local path to the active project
    and deletes remote documents that no longer exist locally.
    """
    out: OutputFormatter = ctx.obj["out"]
    config: ConfigManager = ctx.obj["config"]

    try:
        organization_id = config.require("active_organization_id")
        project_id = config.require("active_project_id")
        local_path = config.get_local_path()
        client = require_client(ctx, out)

        engine = SyncEngine(client, out)
        stats = engine.push(organization_id, project_id, local_path, dry_run=dry_run)
    except KeyboardInterrupt:
        out.warning("\nSync cancelled by user")
        ctx.exit(130)
        return
    except ClaudeSyncError as e:
        out.error(f"Sync failed: {e}")
        ctx.exit(1)
        return

    if out.json_output:
        out.output_json(stats)


if __name__ == "__main__":
    main()
