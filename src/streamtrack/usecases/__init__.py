"""
Application usecases.

Orchestration steps built on the store. CLI commands and pollers should call
functions from here instead of composing store calls themselves.
"""

from . import roster_sync  # noqa: I001
from . import schedule_refresh  # noqa: I001
from . import schedule_view  # noqa: I001
