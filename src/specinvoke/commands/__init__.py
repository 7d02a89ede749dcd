"""Built-in CLI sub-commands for specinvoke.

* :mod:`~specinvoke.commands.operations` -- list the operations of a
  document.
* :mod:`~specinvoke.commands.call` -- build and send one operation's
  request.

Each module exports a plain callback function registered directly on the
root app.
"""
