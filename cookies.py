"""
Cookie helpers for request Cookie headers, response Set-Cookie headers and the
cookie objects found in extra-info events.
"""
import logging
from email.utils import parsedate_to_datetime
from datetime import timezone
from typing import Any, Dict, List, Mapping, Optional

from .util import format_wall_time

logger = logging.getLogger("harpipe.cookies")


def parse_request_cookies(cookie_header: Optional[str]) -> List[Dict[str, str]]:
    if not cookie_header:
        return []
    cookies = []
    for part in cookie_header.split(';'):
        name, sep, value = part.strip().partition('=')
        if not sep or not name:
            continue
        cookies.append({'name': name.strip(), 'value': value.strip()})
    return cookies


def _parse_expires(value: str) -> Optional[str]:
    try:
        moment = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        logger.debug(f"Ignoring unparseable cookie expiry: {value}")
        return None
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return format_wall_time(moment.timestamp())


def parse_set_cookie(line: str) -> Optional[Dict[str, Any]]:
    """Parse one Set-Cookie line. Returns None when the line carries no name=value pair."""
    parts = line.split(';')
    name, sep, value = parts[0].strip().partition('=')
    if not sep or not name.strip():
        return None

    cookie = {
        'name': name.strip(),
        'value': value.strip(),
        'httpOnly': False,
        'secure': False,
    }
    for attribute in parts[1:]:
        key, _, attr_value = attribute.strip().partition('=')
        key = key.strip().lower()
        attr_value = attr_value.strip()
        if key == 'path' and attr_value:
            cookie['path'] = attr_value
        elif key == 'domain' and attr_value:
            cookie['domain'] = attr_value
        elif key == 'expires':
            expires = _parse_expires(attr_value)
            if expires:
                cookie['expires'] = expires
        elif key == 'httponly':
            cookie['httpOnly'] = True
        elif key == 'secure':
            cookie['secure'] = True
        elif key == 'samesite' and attr_value:
            cookie['sameSite'] = attr_value
    return cookie


def parse_response_cookies(cookie_header: Optional[str]) -> List[Dict[str, Any]]:
    if not cookie_header:
        return []
    cookies = []
    for line in cookie_header.split('\n'):
        cookie = parse_set_cookie(line)
        if cookie:
            cookies.append(cookie)
    return cookies


def format_cookie(cookie: Mapping[str, Any]) -> Dict[str, Any]:
    """Converts a protocol cookie object (expiry in epoch seconds, -1 for session) to a HAR cookie."""
    formatted = {
        'name': cookie['name'],
        'value': cookie['value'],
        'httpOnly': bool(cookie.get('httpOnly')),
        'secure': bool(cookie.get('secure')),
    }
    if cookie.get('path'):
        formatted['path'] = cookie['path']
    if cookie.get('domain'):
        formatted['domain'] = cookie['domain']
    expires = cookie.get('expires')
    if expires is not None and expires > 0 and not cookie.get('session'):
        formatted['expires'] = format_wall_time(expires)
    if cookie.get('sameSite'):
        formatted['sameSite'] = cookie['sameSite']
    return formatted
