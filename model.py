"""
Pages and entries as the converter builds them.

Both keep their correlation bookkeeping (loader and frame ids, monotonic and
wall-clock timestamps) as plain attributes; only the HAR fields in ``data``
ever reach the report.
"""
from typing import Any, Dict, Optional


def _public_fields(data: Dict[str, Any]) -> Dict[str, Any]:
    # double-underscore keys are reserved for internal use
    return {key: value for key, value in data.items() if not key.startswith('__')}


class Page:
    """One top-level document and its aggregate load timings."""

    def __init__(self, page_id: str, title: str = '', loader_id: Optional[str] = None,
                 frame_id: Optional[str] = None):
        self.id = page_id
        self.started_date_time = ''
        self.title = title
        self.page_timings: Dict[str, float] = {}
        self.loader_id = loader_id
        self.frame_id = frame_id
        self.timestamp: Optional[float] = None
        self.wall_time: Optional[float] = None

    def set_start(self, timestamp: Optional[float], wall_time: Optional[float], started_date_time: str):
        self.timestamp = timestamp
        self.wall_time = wall_time
        self.started_date_time = started_date_time

    def record_timing(self, name: str, millis: float):
        self.page_timings[name] = millis

    def to_har(self, public_id: str) -> Dict[str, Any]:
        return {
            'id': public_id,
            'startedDateTime': self.started_date_time,
            'title': self.title,
            'pageTimings': dict(self.page_timings),
        }

    def __repr__(self):
        return f"Page(id={self.id!r}, loader_id={self.loader_id!r}, frame_id={self.frame_id!r})"


class Entry:
    """One request/response pair. Complete only once ``response`` is set."""

    def __init__(self, data: Dict[str, Any], request_will_be_sent_time: Optional[float] = None):
        self.data = data
        self.data.setdefault('cache', {})
        self.data.setdefault('time', 0)
        self.request_will_be_sent_time = request_will_be_sent_time
        self.request_time: Optional[float] = None
        self.receive_headers_end: Optional[float] = None
        self.served_from_cache = False

    @property
    def request_id(self) -> str:
        return self.data['_requestId']

    def rename(self, request_id: str):
        self.data['_requestId'] = request_id

    @property
    def pageref(self) -> Optional[str]:
        return self.data.get('pageref')

    @pageref.setter
    def pageref(self, page_id: str):
        self.data['pageref'] = page_id

    @property
    def request(self) -> Dict[str, Any]:
        return self.data['request']

    @property
    def response(self) -> Optional[Dict[str, Any]]:
        return self.data.get('response')

    @response.setter
    def response(self, response: Dict[str, Any]):
        self.data['response'] = response

    @property
    def timings(self) -> Optional[Dict[str, Any]]:
        return self.data.get('timings')

    @timings.setter
    def timings(self, timings: Dict[str, Any]):
        self.data['timings'] = timings

    @property
    def cache(self) -> Dict[str, Any]:
        return self.data['cache']

    @property
    def is_complete(self) -> bool:
        return bool(self.response)

    def merge_custom(self, custom: Optional[Dict[str, Any]]):
        if custom:
            merged = dict(self.data.get('_custom') or {})
            merged.update(custom)
            self.data['_custom'] = merged

    def to_har(self, public_pageref: Optional[str]) -> Dict[str, Any]:
        har = _public_fields(self.data)
        har['pageref'] = public_pageref
        return har

    def __repr__(self):
        return f"Entry(request_id={self.request_id!r}, pageref={self.pageref!r})"
