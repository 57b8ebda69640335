"""
Correlation state for a single conversion run. A fresh ConversionContext is
created per call; nothing here outlives it.
"""
from typing import Any, Dict, List, Optional, Set

from .events import IgnoredEvents
from .model import Entry, Page

# frame id given to a root-less page once a newer root navigation replaces it
SUPERSEDED_FRAME = 'removed'


class ConversionContext:
    """Indices, buffers and the page/entry lists the converter mutates."""

    def __init__(self):
        self.pages: List[Page] = []
        self.entries: List[Entry] = []

        # requests seen before any page existed, with the params that created them
        self.entries_without_page: List[Entry] = []
        self.params_without_page: List[Dict[str, Any]] = []
        self.responses_without_page: List[Dict[str, Any]] = []

        self.ignored_requests: Set[str] = set()
        self.root_frame_mappings: Dict[str, str] = {}
        self.loaders: Dict[str, Dict[str, Any]] = {}
        self.request_extra_info: Dict[str, Dict[str, Any]] = {}
        self.response_extra_info: Dict[str, Dict[str, Any]] = {}
        self.recognized_options_calls: Dict[str, Dict[str, Any]] = {}

        self.ignored_events = IgnoredEvents()

    # pages

    @property
    def has_pages(self) -> bool:
        return bool(self.pages)

    @property
    def current_page(self) -> Optional[Page]:
        return self.pages[-1] if self.pages else None

    def add_page(self, page: Page):
        self.pages.append(page)

    def has_page_for_loader(self, loader_id: Optional[str]) -> bool:
        return any(page.loader_id == loader_id for page in self.pages)

    def page_for_frame(self, frame_id: Optional[str]) -> Optional[Page]:
        return next((page for page in self.pages if page.frame_id == frame_id), None)

    def supersede_rootless_page(self):
        previous = next((page for page in self.pages if page.frame_id is None), None)
        if previous is not None and previous.loader_id:
            previous.frame_id = SUPERSEDED_FRAME

    # frames

    def map_frame(self, frame_id: str, parent_id: str):
        """Maps ``frame_id`` straight to the outermost known ancestor of ``parent_id``."""
        self.root_frame_mappings[frame_id] = parent_id
        seen = {frame_id}
        ancestor = self.root_frame_mappings.get(parent_id)
        while ancestor and ancestor not in seen:
            seen.add(ancestor)
            self.root_frame_mappings[frame_id] = ancestor
            ancestor = self.root_frame_mappings.get(ancestor)

    def root_frame(self, frame_id: Optional[str]) -> Optional[str]:
        return self.root_frame_mappings.get(frame_id) or frame_id

    # entries

    def find_entry(self, request_id: str) -> Optional[Entry]:
        return next((entry for entry in self.entries if entry.request_id == request_id), None)

    def find_pending_entry(self, request_id: str) -> Optional[Entry]:
        return next((entry for entry in self.entries_without_page if entry.request_id == request_id), None)

    def find_any_entry(self, request_id: str) -> Optional[Entry]:
        return self.find_entry(request_id) or self.find_pending_entry(request_id)

    def retire_request_id(self, entry: Entry, marker: str = 'r'):
        """Renames a redirected leg so the next leg of the chain can take over its request id."""
        request_id = entry.request_id + marker
        while self.find_any_entry(request_id) is not None:
            request_id += marker
        entry.rename(request_id)

    def add_entry(self, entry: Entry):
        self.entries.append(entry)

    def buffer_entry(self, entry: Entry, params: Dict[str, Any]):
        self.entries_without_page.append(entry)
        self.params_without_page.append(params)

    def buffer_response(self, params: Dict[str, Any]):
        self.responses_without_page.append(params)

    def take_pending_entries(self):
        """Returns and clears the buffered (entries, params) lists."""
        entries, params = self.entries_without_page, self.params_without_page
        self.entries_without_page, self.params_without_page = [], []
        return entries, params

    def take_pending_responses(self) -> List[Dict[str, Any]]:
        responses = self.responses_without_page
        self.responses_without_page = []
        return responses

    # ignored requests

    def ignore_request(self, request_id: str):
        self.ignored_requests.add(request_id)

    def is_ignored(self, request_id: str) -> bool:
        return request_id in self.ignored_requests

    def release_request(self, request_id: str):
        self.ignored_requests.discard(request_id)

    # loaders, extra info, preflights

    def remember_loader(self, loader_id: Optional[str], params: Dict[str, Any]):
        if loader_id not in self.loaders:
            self.loaders[loader_id] = params

    def first_request_for_loader(self, loader_id: Optional[str]) -> Optional[Dict[str, Any]]:
        return self.loaders.get(loader_id)

    def remember_preflight(self, request_id: str, loader_id: str, frame_id: Optional[str]):
        self.recognized_options_calls[request_id] = {'loaderId': loader_id, 'frameId': frame_id}

    def preflight_frame(self, request_id: str) -> Optional[str]:
        return (self.recognized_options_calls.get(request_id) or {}).get('frameId')
