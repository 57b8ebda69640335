"""
Fills an entry from a response payload (a Network.responseReceived response,
or the redirectResponse of the next leg), and merges the headers and cookie
blocking data carried by the extra-info events.
"""
import logging
from typing import Any, Dict, Mapping

from .cookies import format_cookie, parse_request_cookies, parse_response_cookies
from .headers import get_header_value, parse_headers
from .model import Entry
from .options import HarOptions
from .util import first_non_negative, format_millis, is_http1x, total_time

logger = logging.getLogger("harpipe.response")

_CACHE_BEFORE_REQUEST = {
    'lastAccess': '',
    'eTag': '',
    'hitCount': 0,
}


def cache_before_request() -> Dict[str, Any]:
    return dict(_CACHE_BEFORE_REQUEST)


def calculate_request_header_size(request: Mapping[str, Any]) -> int:
    buffer = f"{request['method']} {request['url']} {request.get('httpVersion', '')}\r\n"
    for header in request['headers']:
        buffer += f"{header['name']}: {header['value']}\r\n"
    buffer += '\r\n'
    return len(buffer)


def calculate_response_header_size(response: Mapping[str, Any]) -> int:
    buffer = f"{response.get('protocol', '')} {response['status']} {response['statusText']}\r\n"
    for name, value in (response.get('headers') or {}).items():
        buffer += f"{name}: {value}\r\n"
    buffer += '\r\n'
    return len(buffer)


def _optional_span(start: float, end: float) -> float:
    if start is not None and start >= 0:
        return format_millis(end - start)
    return -1


def _timings_from(entry: Entry, timing: Mapping[str, Any]) -> Dict[str, Any]:
    dns_start = timing.get('dnsStart', -1)
    connect_start = timing.get('connectStart', -1)
    ssl_start = timing.get('sslStart', -1)
    send_start = timing['sendStart']
    send_end = timing['sendEnd']
    receive_headers_end = timing['receiveHeadersEnd']

    blocked = first_non_negative([dns_start, connect_start, send_start])
    dns = _optional_span(dns_start, first_non_negative([connect_start, send_start]))
    connect = _optional_span(connect_start, send_start)
    ssl = -1
    if ssl_start >= 0 and timing.get('sslEnd', -1) >= 0:
        ssl = format_millis(timing['sslEnd'] - ssl_start)

    # time spent between the request being issued and the network stack picking it up
    queueing = -1
    request_time = timing.get('requestTime')
    if not entry.served_from_cache and request_time is not None and entry.request_will_be_sent_time is not None:
        queueing = max(0, format_millis((request_time - entry.request_will_be_sent_time) * 1000))

    if queueing > 0:
        blocked = max(0, blocked) + queueing

    return {
        'blocked': format_millis(blocked),
        'dns': dns,
        'connect': connect,
        'send': format_millis(send_end - send_start),
        'wait': format_millis(receive_headers_end - send_end),
        'receive': 0,
        'ssl': ssl,
        '_blocked_queueing': queueing,
    }


def populate_entry_from_response(entry: Entry, response: Mapping[str, Any], options: HarOptions):
    """
    Sets ``entry.response`` and everything derived from it: request header
    fields that only the response knows about, connection details, cache
    markers and the timing breakdown.
    """
    headers = response['headers']
    protocol = response.get('protocol') or ''
    request = entry.request

    entry.response = {
        'httpVersion': protocol,
        'redirectURL': get_header_value(headers, 'Location') or '',
        'status': response['status'],
        'statusText': response['statusText'],
        'content': {
            'mimeType': response['mimeType'],
            'size': 0,
        },
        'headersSize': -1,
        'bodySize': -1,
        'cookies': parse_response_cookies(get_header_value(headers, 'Set-Cookie')),
        'headers': parse_headers(headers),
        '_transferSize': response.get('encodedDataLength', 0),
    }
    request['httpVersion'] = protocol

    timing = response.get('timing')
    if response.get('fromDiskCache'):
        if is_http1x(protocol):
            # h2 headers are compressed, so their text length says nothing
            entry.response['headersSize'] = calculate_response_header_size(response)
        # a pushed resource can arrive before the parser requests it
        if not (timing and timing.get('pushStart', 0) > 0):
            entry.cache['beforeRequest'] = cache_before_request()
    else:
        request_headers = response.get('requestHeaders')
        if request_headers:
            request['headers'] = parse_headers(request_headers)
            request['cookies'] = parse_request_cookies(get_header_value(request_headers, 'Cookie'))

        if is_http1x(protocol):
            if response.get('headersText'):
                entry.response['headersSize'] = len(response['headersText'])
            else:
                entry.response['headersSize'] = calculate_response_header_size(response)
            entry.response['bodySize'] = response.get('encodedDataLength', 0) - entry.response['headersSize']

            if response.get('requestHeadersText'):
                request['headersSize'] = len(response['requestHeadersText'])
            else:
                request['headersSize'] = calculate_request_header_size(request)

    if response.get('connectionId') is not None:
        entry.data['connection'] = str(response['connectionId'])
    server_ip = response.get('remoteIPAddress')
    if server_ip:
        entry.data['serverIPAddress'] = server_ip.strip('[]')

    if entry.served_from_cache:
        entry.data['_fromCache'] = 'memory'
    elif response.get('fromDiskCache'):
        entry.data['_fromCache'] = 'disk'

    if timing:
        entry.timings = _timings_from(entry, timing)
        entry.request_time = timing.get('requestTime')
        entry.receive_headers_end = timing['receiveHeadersEnd']
        if timing.get('pushStart', 0) > 0:
            entry.data['_was_pushed'] = 1
    else:
        entry.timings = {
            'blocked': -1,
            'dns': -1,
            'connect': -1,
            'send': 0,
            'wait': 0,
            'receive': 0,
            'ssl': -1,
            'comment': 'No timings available from the browser',
        }
    entry.data['time'] = total_time(entry.timings)


def apply_request_extra_info(request: Dict[str, Any], extra_info: Mapping[str, Any]):
    """Replaces request headers, and request cookies with the ones that were not blocked."""
    if extra_info.get('headers'):
        request['headers'] = parse_headers(extra_info['headers'])

    associated = extra_info.get('associatedCookies')
    if associated:
        try:
            request['cookies'] = [
                format_cookie(item['cookie'])
                for item in associated
                if not item.get('blockedReasons')
            ]
        except (KeyError, TypeError, AttributeError) as e:
            logger.debug(f"Skipping malformed associatedCookies for {extra_info.get('requestId')}: {e}")


def _blocks_cookie(blocked: Mapping[str, Any], name: str) -> bool:
    if blocked.get('cookie'):
        return blocked['cookie']['name'] == name
    if blocked.get('cookieLine'):
        parsed = parse_response_cookies(blocked['cookieLine'])
        if parsed:
            return parsed[0]['name'] == name
    return False


def apply_response_extra_info(response: Dict[str, Any], extra_info: Mapping[str, Any]):
    """Replaces response headers and drops response cookies the browser blocked."""
    if extra_info.get('headers'):
        response['headers'] = parse_headers(extra_info['headers'])

    blocked_cookies = extra_info.get('blockedCookies')
    if blocked_cookies:
        try:
            response['cookies'] = [
                cookie for cookie in response['cookies']
                if not any(_blocks_cookie(blocked, cookie['name']) for blocked in blocked_cookies)
            ]
        except (KeyError, TypeError, AttributeError) as e:
            logger.debug(f"Skipping malformed blockedCookies for {extra_info.get('requestId')}: {e}")
