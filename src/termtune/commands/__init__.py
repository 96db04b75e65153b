"""Built-in CLI sub-commands for termtune.

This package groups the Typer sub-command modules that form the CLI's
command tree:

* :mod:`~termtune.commands.auth` -- log in, inspect and discard the session.
* :mod:`~termtune.commands.player` -- playback control, plus the top-level
  ``search`` command.
* :mod:`~termtune.commands.config` -- view and modify settings.

Multi-command groups export a :class:`typer.Typer` sub-application; single
commands (``search``) export a plain callback registered on the root app.
"""
