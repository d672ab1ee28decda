"""
Contract-aligned application usecases.

CLI commands and admin API routes call functions from here; each returns a
plain dict and raises ValueError (or a subclass) for contract violations.
"""

# Import order matters: display_add and playlist_add hold the resolvers the
# other modules import.
from . import display_add  # noqa: I001
from . import display_list  # noqa: I001
from . import display_show  # noqa: I001
from . import display_update  # noqa: I001
from . import playlist_add  # noqa: I001
from . import playlist_list  # noqa: I001
from . import playlist_show  # noqa: I001
from . import playlist_delete  # noqa: I001
from . import playlist_assign  # noqa: I001
from . import command_send  # noqa: I001
from . import timeline_inspect  # noqa: I001
