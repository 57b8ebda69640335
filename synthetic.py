"""
Placeholder entries for pages whose originating request was never seen.

This happens when the debugger attaches after the document request went out:
the navigation arrives, but its requestWillBeSent never will.
"""
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import urlsplit

from .model import Entry, Page
from .util import parse_query

# The document response, when present at all, is among the first few events.
RESPONSE_LOOKBACK = 10


def _synthetic_request(url: str) -> Dict[str, Any]:
    return {
        'method': 'GET',
        'url': url,
        'queryString': parse_query(urlsplit(url).query),
        'headersSize': -1,
        'bodySize': 0,
        'cookies': [],
        'headers': [],
    }


def _synthetic_entry(page: Page, url: str, request_id: str, request_time: Optional[float]) -> Entry:
    data = {
        'cache': {},
        'startedDateTime': page.started_date_time,
        '_requestId': request_id,
        '_initialPriority': 'VeryHigh',
        '_priority': 'VeryHigh',
        'pageref': page.id,
        'request': _synthetic_request(url),
        'time': 0,
    }
    return Entry(data, request_will_be_sent_time=request_time)


def find_early_response(messages: List[Mapping[str, Any]], loader_id: str) -> Optional[Dict[str, Any]]:
    """Params of a Network.responseReceived for ``loader_id`` among the first RESPONSE_LOOKBACK events."""
    for message in messages[:RESPONSE_LOOKBACK]:
        params = message.get('params') or {}
        if message.get('method') == 'Network.responseReceived' and params.get('requestId') == loader_id:
            return params
    return None


def entry_from_response(page: Page, params: Mapping[str, Any]) -> Entry:
    response = params['response']
    timing = response.get('timing') or {}
    return _synthetic_entry(page, response['url'], params['requestId'], timing.get('requestTime'))


def entry_from_frame_navigated(page: Page, params: Mapping[str, Any]) -> Entry:
    frame = params['frame']
    return _synthetic_entry(page, frame['url'], frame['loaderId'], None)
