"""Built-in CLI commands for dashauth.

* :mod:`~dashauth.commands.auth` -- ``login``, ``logout``, ``refresh``,
  ``status`` and ``scopes``, registered directly on the root app.
* :mod:`~dashauth.commands.config` -- the ``config`` sub-application for
  viewing and modifying provider settings.
"""
