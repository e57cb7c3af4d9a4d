"""CLI commands for generating idea plans and task breakdowns."""

from __future__ import annotations

import copy
import hashlib
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import typer
import yaml

from .memory.schema import User
from .memory.store import PlanStore
from .models import LLMClient, OfflineLLMClient, OpenAIChatClient, is_offline_model
from .pipeline import IdeaPipeline, PipelineConfig, PipelineResponse

APP_HELP = "ideamax: turn a product idea into a plan and an MVP task list."
DEFAULT_CONFIG_NAME = "config.yaml"

DEFAULT_CONFIG_TEMPLATE: Dict[str, Any] = {
    "paths": {
        "data": "data",
        "db_path": "data/ideamax.sqlite",
        "logs": "data/logs",
    },
    "models": {
        "plan": "gpt-4",
        "breakdown": "gpt-3.5-turbo",
        "base_url": "https://api.openai.com/v1/chat/completions",
        "timeout": 60,
        "api_key": "",
    },
    "generation": {
        "max_attempts": 1,
        "retry_delay": 0.5,
        "temperature": None,
    },
    "logging": {
        "level": "WARNING",
    },
}

EXIT_CLIENT_ERROR = 2
EXIT_SERVER_ERROR = 1

PASSWORD_SALT_BYTES = 16
PASSWORD_SCRYPT_PARAMS = (2**14, 8, 1)

app = typer.Typer(help=APP_HELP)


def _copy_config_template() -> Dict[str, Any]:
    return copy.deepcopy(DEFAULT_CONFIG_TEMPLATE)


def _merge_config(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge_config(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(config_path: Path) -> Dict[str, Any]:
    """Load YAML configuration from disk, layered over the defaults."""
    if not config_path.exists():
        return _resolve_paths(_copy_config_template(), config_path)

    try:
        with config_path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except yaml.YAMLError as error:
        typer.echo(f"Failed to parse config: {error}")
        raise typer.Exit(code=1) from error

    if not isinstance(data, dict):
        typer.echo("Configuration must be a mapping at the top level.")
        raise typer.Exit(code=1)

    return _resolve_paths(_merge_config(_copy_config_template(), data), config_path)


def _resolve_paths(config: Dict[str, Any], config_path: Path) -> Dict[str, Any]:
    """Anchor relative ``paths`` entries to the directory holding the config file."""
    base_dir = config_path.resolve().parent
    paths_cfg = config.setdefault("paths", {})
    for key in ("data", "db_path", "logs"):
        value = paths_cfg.get(key)
        if isinstance(value, str) and value.strip():
            candidate = Path(value.strip())
            if not candidate.is_absolute():
                candidate = base_dir / candidate
            paths_cfg[key] = candidate.as_posix()
    return config


def _write_config(config_path: Path, config_data: Dict[str, Any]) -> None:
    config_path.parent.mkdir(parents=True, exist_ok=True)
    with config_path.open("w", encoding="utf-8") as handle:
        yaml.safe_dump(config_data, handle, sort_keys=False)


def _configure_logging(config: Dict[str, Any]) -> None:
    level_name = str((config.get("logging") or {}).get("level") or "WARNING").upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def hash_password(password: str, *, salt: Optional[bytes] = None) -> str:
    """Return a salted scrypt digest encoded as ``scrypt$n,r,p$<salt>$<digest>``."""
    salt = salt if salt is not None else os.urandom(PASSWORD_SALT_BYTES)
    n, r, p = PASSWORD_SCRYPT_PARAMS
    digest = hashlib.scrypt(password.encode("utf-8"), salt=salt, n=n, r=r, p=p, dklen=32)
    return f"scrypt${n},{r},{p}${salt.hex()}${digest.hex()}"


def _build_client(config: Dict[str, Any], model_name: str) -> LLMClient:
    """Select the Chat Completions client or the offline stub for ``model_name``."""
    if is_offline_model(model_name):
        return OfflineLLMClient()

    models_cfg = config.get("models") or {}
    client_kwargs: Dict[str, Any] = {}
    if model_name:
        client_kwargs["model"] = model_name
    timeout_value = models_cfg.get("timeout")
    if isinstance(timeout_value, (int, float)) and timeout_value > 0:
        client_kwargs["timeout"] = float(timeout_value)
    base_url_value = models_cfg.get("base_url")
    if isinstance(base_url_value, str) and base_url_value.strip():
        client_kwargs["base_url"] = base_url_value.strip()
    api_key_value = models_cfg.get("api_key")
    if isinstance(api_key_value, str) and api_key_value.strip():
        client_kwargs["api_key"] = api_key_value.strip()
    return OpenAIChatClient(**client_kwargs)


def _build_pipeline(config: Dict[str, Any], store: PlanStore) -> IdeaPipeline:
    settings = PipelineConfig.from_config(config)
    plan_client = _build_client(config, settings.plan_model or "")
    breakdown_client = _build_client(config, settings.breakdown_model or "")
    return IdeaPipeline(store, plan_client, settings, breakdown_client=breakdown_client)


def _emit_response(response: PipelineResponse) -> None:
    typer.echo(json.dumps(response.to_dict(), indent=2, sort_keys=True))
    if response.success:
        return
    if 400 <= response.status_code < 500:
        raise typer.Exit(code=EXIT_CLIENT_ERROR)
    raise typer.Exit(code=EXIT_SERVER_ERROR)


_CONFIG_OPTION = typer.Option(
    DEFAULT_CONFIG_NAME,
    "--config",
    "-c",
    help="Path to the ideamax configuration file.",
)


@app.command()
def init(config: str = _CONFIG_OPTION) -> None:
    """Write a default configuration file and create the database."""
    config_path = Path(config)
    if config_path.exists():
        typer.echo(f"Configuration already exists at {config_path}.")
    else:
        _write_config(config_path, _copy_config_template())
        typer.echo(f"Created configuration at {config_path}.")

    config_data = load_config(config_path)
    with PlanStore.from_config(config_data) as store:
        typer.echo(f"Database ready at {store.db_path.as_posix()}.")


@app.command("create-user")
def create_user(
    name: str = typer.Option(..., "--name", "-n", help="Display name of the user."),
    email: str = typer.Option(..., "--email", "-e", help="Email address of the user."),
    password: Optional[str] = typer.Option(
        None,
        "--password",
        help="Optional password; only a salted scrypt digest is stored.",
    ),
    config: str = _CONFIG_OPTION,
) -> None:
    """Register a user that can own ideas."""
    config_data = load_config(Path(config))
    _configure_logging(config_data)
    password_hash = hash_password(password) if password else None
    with PlanStore.from_config(config_data) as store:
        user = store.create_user(User(name=name.strip(), email=email.strip(), password_hash=password_hash))
    typer.echo(user.id)


@app.command("create-idea")
def create_idea(
    title: str = typer.Option(..., "--title", "-t", help="Name of the app idea."),
    description: str = typer.Option(..., "--description", "-d", help="Short description of the idea."),
    user_id: str = typer.Option(..., "--user-id", "-u", help="Identifier of the owning user."),
    config: str = _CONFIG_OPTION,
) -> None:
    """Generate the plan for a new idea and store it."""
    config_data = load_config(Path(config))
    _configure_logging(config_data)
    with PlanStore.from_config(config_data) as store:
        response = _build_pipeline(config_data, store).create_idea(title, description, user_id)
    _emit_response(response)


@app.command("create-idea-tasks")
def create_idea_tasks(
    idea_id: str = typer.Option(..., "--idea-id", "-i", help="Identifier of the idea to break down."),
    user_id: str = typer.Option(..., "--user-id", "-u", help="Identifier of the owning user."),
    config: str = _CONFIG_OPTION,
) -> None:
    """Generate and store the task/subtask breakdown of an idea."""
    config_data = load_config(Path(config))
    _configure_logging(config_data)
    with PlanStore.from_config(config_data) as store:
        response = _build_pipeline(config_data, store).create_idea_tasks(idea_id, user_id)
    _emit_response(response)


@app.command("show-idea")
def show_idea(
    idea_id: str = typer.Argument(..., help="Identifier of the idea to display."),
    config: str = _CONFIG_OPTION,
) -> None:
    """Print an idea's plan followed by its tasks and subtasks."""
    config_data = load_config(Path(config))
    with PlanStore.from_config(config_data) as store:
        idea = store.get_idea(idea_id)
        if idea is None:
            typer.echo(f"Idea {idea_id} not found.")
            raise typer.Exit(code=EXIT_CLIENT_ERROR)
        typer.echo(f"{idea.title} [{idea.id}]")
        typer.echo(idea.plan or "(no plan)")
        tasks = store.list_tasks(idea.id)
        if not tasks:
            typer.echo("No tasks generated yet.")
            return
        typer.echo("")
        typer.echo("Tasks:")
        for task in tasks:
            typer.echo(f"{task.order + 1}. {task.title}: {task.description}")
            for subtask in store.list_subtasks(task.id):
                typer.echo(f"   - [{subtask.status.name}] {subtask.title}: {subtask.description}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
