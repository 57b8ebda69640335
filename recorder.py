"""
Records Page and Network events from a live browser tab and converts the
recording into a HAR log.
"""
import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from .connection import CDPConnection
from .converter import har_from_messages
from .events import EventMethod
from .options import HarOptions

logger = logging.getLogger("harpipe.recorder")


class EventRecorder:
    """Collects every event the converter understands, in arrival order."""

    def __init__(self, client):
        self.client = client
        self.messages: List[Dict[str, Any]] = []
        self.listeners_attached = False

    async def attach_listeners(self):
        """Subscribe before enabling the domains so nothing emitted on enable is lost."""
        if self.listeners_attached:
            return

        for method in EventMethod:
            self.client.on(method.value, self._make_handler(method.value))
        await self.client.send('Network.enable')
        await self.client.send('Page.enable')

        self.listeners_attached = True
        logger.info(f"Recording {len(EventMethod)} event types.")

    def _make_handler(self, method: str) -> Callable[[Dict[str, Any]], None]:
        def handler(params: Dict[str, Any]):
            self.messages.append({'method': method, 'params': params})
        return handler

    def save(self, path: Path):
        """Writes the raw recording as JSON Lines, one event per line."""
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            for message in self.messages:
                f.write(json.dumps(message) + '\n')


class CaptureSession:
    """Attach, record until the user presses Enter, convert."""

    def __init__(self, cdp_port: int, options: Optional[HarOptions] = None, reload: bool = False,
                 events_path: Optional[Path] = None):
        self.conn = CDPConnection(cdp_port=cdp_port)
        self.options = options or HarOptions()
        self.reload = reload
        self.events_path = events_path
        self.recorder: Optional[EventRecorder] = None

    async def start(self) -> Optional[Dict[str, Any]]:
        print(f"Connecting to browser on CDP port {self.conn.cdp_port}...")
        if not await self.conn.connect():
            return None

        try:
            self.recorder = EventRecorder(self.conn.client)
            await self.recorder.attach_listeners()
            if self.reload:
                await self.conn.page.reload()
            print(f"Recording {self.conn.page.url}. Press Enter to stop.")
            await asyncio.to_thread(input, "")
        finally:
            print("Disconnecting from browser...")
            await self.conn.disconnect()

        print(f"Recorded {len(self.recorder.messages)} events.")
        if self.events_path:
            self.recorder.save(self.events_path)
        return har_from_messages(self.recorder.messages, self.options)
