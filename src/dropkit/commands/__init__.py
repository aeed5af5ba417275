"""Built-in CLI sub-commands for dropkit.

* :mod:`~dropkit.commands.init` -- register an application as a profile.
* :mod:`~dropkit.commands.auth` -- link, inspect and unlink an account.
* :mod:`~dropkit.commands.files` -- file and folder operations.

:mod:`~dropkit.commands.session` holds the helpers the API-backed commands
share.
"""
