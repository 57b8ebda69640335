"""
harpipe - Build HAR logs from Chrome DevTools Protocol event streams.

Feed an ordered list of Page.* and Network.* events to har_from_messages,
or record them from a running browser with the `harpipe capture` command.
"""

__version__ = "0.1.0"

from .converter import HarConverter, har_from_messages
from .options import HarOptions, WallTimeHelper

__all__ = ["HarConverter", "har_from_messages", "HarOptions", "WallTimeHelper"]
