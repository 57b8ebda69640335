"""
Small pure helpers used by the converter: millisecond rounding, protocol
checks, query/post-body decomposition and the canned blocked/cached blocks.
"""
import json
import math
import re
import uuid
from decimal import ROUND_HALF_UP, Decimal
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional
from urllib.parse import parse_qs
import logging

logger = logging.getLogger("harpipe.util")

TIMING_COMPONENTS = ('blocked', 'dns', 'connect', 'send', 'wait', 'receive')

_SUPPORTED_PROTOCOL = re.compile(r'^https?:')
_FORM_URLENCODED = re.compile(r'^application/x-www-form-urlencoded')
_JSON = re.compile(r'^application/json')


def is_http1x(version: Optional[str]) -> bool:
    return (version or '').lower().startswith('http/1.')


def format_millis(time: float, fractional_digits: int = 3) -> float:
    # exact ties round away from zero, not to even
    quantum = Decimal(1).scaleb(-fractional_digits)
    return float(Decimal(float(time)).quantize(quantum, rounding=ROUND_HALF_UP))


def first_non_negative(values: Iterable[Optional[float]]) -> float:
    for value in values:
        if value is not None and value >= 0:
            return value
    return -1


def total_time(timings: Mapping[str, Any]) -> float:
    """Sum of the non-negative timing components, floored to three fractional digits."""
    full = sum(max(0, timings.get(name) or 0) for name in TIMING_COMPONENTS)
    return math.floor(1000 * full) / 1000


def to_name_value_pairs(obj: Mapping[str, Any]) -> List[Dict[str, Any]]:
    result = []
    for name, value in obj.items():
        if isinstance(value, list):
            result.extend({'name': name, 'value': v} for v in value)
        else:
            result.append({'name': name, 'value': value})
    return result


def parse_query(query: str) -> List[Dict[str, Any]]:
    # parse_qs keeps first-appearance key order and groups repeated keys
    return to_name_value_pairs(parse_qs(query, keep_blank_values=True))


def parse_url_encoded(data: str) -> List[Dict[str, Any]]:
    return parse_query(data)


def parse_post_data(content_type: Optional[str], post_data: Optional[str]) -> Optional[Dict[str, Any]]:
    if not content_type or not post_data:
        return None

    try:
        if _FORM_URLENCODED.match(content_type):
            return {'mimeType': content_type, 'params': parse_url_encoded(post_data)}
        if _JSON.match(content_type):
            body = json.loads(post_data)
            if isinstance(body, dict):
                return {'mimeType': content_type, 'params': to_name_value_pairs(body)}
        # TODO: decompose multipart/form-data bodies into params
    except ValueError:
        logger.debug(f"Unable to parse post data '{post_data}' of type {content_type}")

    return {'mimeType': content_type, 'text': post_data}


def is_supported_protocol(url: str) -> bool:
    return bool(_SUPPORTED_PROTOCOL.match(url or ''))


def format_wall_time(wall_time: Optional[float]) -> str:
    """Epoch seconds (float) to an ISO-8601 UTC string, e.g. 2015-08-26T11:51:49.592Z."""
    if wall_time is None:
        return ''
    moment = datetime.fromtimestamp(wall_time, tz=timezone.utc)
    return moment.isoformat(timespec='milliseconds').replace('+00:00', 'Z')


def new_page_id() -> str:
    return uuid.uuid4().hex


def blocked_response() -> Dict[str, Any]:
    return {
        'status': 0,
        'statusText': '',
        'httpVersion': '',
        'headers': [],
        'cookies': [],
        'content': {
            'size': 0,
            'mimeType': 'x-unknown',
        },
        'redirectURL': '',
        'headersSize': -1,
        'bodySize': -1,
        '_transferSize': 0,
    }


def blocked_timings() -> Dict[str, float]:
    return {
        'blocked': -1,
        'connect': -1,
        'dns': -1,
        'receive': -1,
        'send': -1,
        'ssl': -1,
        'wait': -1,
        '_queued': -1,
    }


def cached_timings(will_be_sent: float, loading_finished: float) -> Dict[str, float]:
    return {
        'blocked': -1,
        'dns': -1,
        'ssl': -1,
        'connect': -1,
        'send': 0,
        'wait': 0.01,
        'receive': format_millis((loading_finished - will_be_sent) * 1000),
        '_blocked_queueing': -1,
    }
