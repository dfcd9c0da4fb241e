"""Built-in CLI sub-commands for grantflow.

* :mod:`~grantflow.commands.profile` -- add, list, show, and remove client
  profiles.
* :mod:`~grantflow.commands.authorize` -- print authorization URLs and run
  the interactive authorization code login.

Each module exports a :class:`typer.Typer` sub-application registered on the
root :data:`grantflow.app.app`.
"""
