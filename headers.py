"""
Header helpers. Browser header maps fold repeated headers into one value
separated by newlines; HAR wants one name/value pair per header line.
"""
from typing import Any, Dict, List, Mapping, Optional


def get_header_value(headers: Optional[Mapping[str, Any]], header: str) -> Optional[str]:
    """Case-insensitive lookup of a header value. Returns None when absent."""
    if not headers:
        return None
    wanted = header.lower()
    for name, value in headers.items():
        if name.lower() == wanted:
            return value
    return None


def parse_headers(headers: Optional[Mapping[str, Any]]) -> List[Dict[str, str]]:
    if not headers:
        return []
    result = []
    for name, value in headers.items():
        for line in str(value).split('\n'):
            result.append({'name': name, 'value': line})
    return result
