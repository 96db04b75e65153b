"""Helpers shared by the command modules."""

from __future__ import annotations

import asyncio
from contextlib import contextmanager
from typing import Any, Coroutine, Iterator, TypeVar

import typer

from termtune.config import resolve_config
from termtune.exceptions import NotAuthenticatedError, TermtuneError
from termtune.models import AppConfig
from termtune.output import error, suggest

_T = TypeVar("_T")


@contextmanager
def cli_errors() -> Iterator[None]:
    """Report a :class:`~termtune.exceptions.TermtuneError` and exit with its code."""
    try:
        yield
    except TermtuneError as exc:
        error(str(exc))
        if isinstance(exc, NotAuthenticatedError):
            suggest("Log in: termtune auth login")
        raise typer.Exit(code=exc.exit_code) from None


def get_config(ctx: typer.Context) -> AppConfig:
    """Resolve the effective config, honouring ``--session-file``."""
    session_file = ctx.obj.get("session_file") if ctx.obj else None
    return resolve_config(cli_session_file=session_file)


def is_forced(ctx: typer.Context) -> bool:
    return bool(ctx.obj.get("force", False)) if ctx.obj else False


def run_async(coro: Coroutine[Any, Any, _T]) -> _T:
    """Run *coro* to completion on a fresh event loop."""
    return asyncio.run(coro)
