"""Built-in CLI sub-commands for fscache.

* :mod:`~fscache.commands.entries` -- ``sweep``, ``stats``, ``show``,
  ``get``, ``delete`` and ``clear``, registered directly on the root app.
* :mod:`~fscache.commands.config` -- the ``config`` group for viewing the
  effective settings.
"""
