"""Config commands -- view and modify the configuration file.

Provides the ``termtune config`` sub-command group for reading, updating,
and resetting :class:`~termtune.models.AppConfig`. Settings control the
API root, the OAuth client credential sources, the callback listener
address, request retries, and the default output format.
"""

from __future__ import annotations

from typing import Any

import typer
from pydantic import ValidationError

from termtune.commands.common import cli_errors, is_forced
from termtune.exit_codes import EXIT_INVALID_USAGE
from termtune.output import error, format_response, info, success


config_app = typer.Typer(no_args_is_help=True)


@config_app.command("show")
def config_show() -> None:
    """Show current configuration.

    Example::

        termtune config show
        termtune --json config show
    """
    from termtune.config import config_path, load_config

    with cli_errors():
        config = load_config()
    info(f"Config file: {config_path()}")
    format_response(config.model_dump(mode="json"))


@config_app.command("set")
def config_set(
    key: str = typer.Argument(
        help="Config key (dot notation, e.g., 'auth.callback_port')."
    ),
    value: str = typer.Argument(help="Value to set."),
) -> None:
    """Set a configuration value.

    Uses dot notation for nested keys. The value is coerced to the type of
    the current value; ``none`` clears optional settings and list values
    are split on commas or spaces.

    Example::

        termtune config set auth.client_id_source file:~/.spotify_id
        termtune config set auth.login_timeout 300
        termtune config set request.max_retries 1
    """
    from termtune.config import load_config, save_config
    from termtune.models import AppConfig

    with cli_errors():
        config = load_config()
    data = config.model_dump(mode="json")

    keys = key.split(".")
    target = data
    for k in keys[:-1]:
        if k not in target or not isinstance(target[k], dict):
            error(f"Invalid config key: {key}")
            raise typer.Exit(code=EXIT_INVALID_USAGE)
        target = target[k]

    final_key = keys[-1]
    if final_key not in target or isinstance(target[final_key], dict):
        error(f"Unknown config key: {key}")
        raise typer.Exit(code=EXIT_INVALID_USAGE)

    try:
        coerced = _coerce(target[final_key], value)
    except ValueError:
        error(f"Expected a number for {key}, got: {value}")
        raise typer.Exit(code=EXIT_INVALID_USAGE) from None
    target[final_key] = coerced

    try:
        new_config = AppConfig.model_validate(data)
    except ValidationError as exc:
        error(f"Validation error: {exc}")
        raise typer.Exit(code=EXIT_INVALID_USAGE) from None

    save_config(new_config)
    success(f"Set {key} = {coerced}")


@config_app.command("reset")
def config_reset(ctx: typer.Context) -> None:
    """Reset configuration to defaults.

    Asks for confirmation unless ``--force`` is active. The stored session
    is not touched; use ``termtune auth logout`` for that.
    """
    from termtune.config import save_config
    from termtune.models import AppConfig

    if not is_forced(ctx):
        confirmed = typer.confirm("Reset all config to defaults?")
        if not confirmed:
            info("Cancelled.")
            raise typer.Exit()

    save_config(AppConfig())
    success("Configuration reset to defaults.")


def _coerce(current: Any, value: str) -> Any:
    """Convert *value* to the type of *current*.

    Optional fields (``current is None``) accept ``none``/``null`` to stay
    unset; anything else is passed through for Pydantic to validate.
    """
    if value.lower() in ("none", "null") and not isinstance(current, (str, list)):
        return None
    if isinstance(current, bool):
        return value.lower() in ("true", "1", "yes")
    if isinstance(current, int):
        return int(value)
    if isinstance(current, float):
        return float(value)
    if isinstance(current, list):
        return [part for part in value.replace(",", " ").split() if part]
    return value
