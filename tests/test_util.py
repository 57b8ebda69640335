"""Tests for the small helpers in harpipe.util, harpipe.headers and harpipe.cookies."""
import pytest

from harpipe.cookies import format_cookie, parse_request_cookies, parse_response_cookies, parse_set_cookie
from harpipe.headers import get_header_value, parse_headers
from harpipe.util import (
    cached_timings,
    first_non_negative,
    format_millis,
    format_wall_time,
    is_http1x,
    is_supported_protocol,
    parse_post_data,
    parse_query,
    total_time,
)


@pytest.mark.parametrize('version, expected', [
    ('HTTP/1.1', True),
    ('http/1.0', True),
    ('h2', False),
    ('h3', False),
    ('', False),
    (None, False),
])
def test_is_http1x(version, expected):
    assert is_http1x(version) is expected


def test_format_millis_rounds_to_three_digits():
    assert format_millis(12.34567) == 12.346
    assert format_millis(3) == 3.0


def test_format_millis_rounds_ties_up():
    assert format_millis(0.0625) == 0.063
    assert format_millis(-0.0625) == -0.063
    assert format_millis(2.5, 0) == 3.0


def test_first_non_negative():
    assert first_non_negative([-1, -1, 4.5, 2]) == 4.5
    assert first_non_negative([-1, None]) == -1


def test_total_time_ignores_negative_components_and_floors():
    timings = {'blocked': -1, 'dns': -1, 'connect': 1.0005, 'send': 0.5, 'wait': 10, 'receive': 2, 'ssl': 30}
    # ssl is part of connect and is not added again
    assert total_time(timings) == 13.5


def test_is_supported_protocol():
    assert is_supported_protocol('https://example.com/')
    assert is_supported_protocol('http://example.com/')
    assert not is_supported_protocol('ftp://example.com/file')
    assert not is_supported_protocol('data:image/png;base64,AAAA')
    assert not is_supported_protocol('blob:https://example.com/1234')


def test_parse_query_groups_repeated_keys_in_first_seen_order():
    assert parse_query('b=1&a=2&b=3&empty=') == [
        {'name': 'b', 'value': '1'},
        {'name': 'b', 'value': '3'},
        {'name': 'a', 'value': '2'},
        {'name': 'empty', 'value': ''},
    ]


def test_parse_post_data():
    assert parse_post_data(None, 'a=1') is None
    assert parse_post_data('text/plain', '') is None
    assert parse_post_data('application/x-www-form-urlencoded; charset=UTF-8', 'a=1&b=two') == {
        'mimeType': 'application/x-www-form-urlencoded; charset=UTF-8',
        'params': [{'name': 'a', 'value': '1'}, {'name': 'b', 'value': 'two'}],
    }
    assert parse_post_data('text/plain', 'hello') == {'mimeType': 'text/plain', 'text': 'hello'}


def test_parse_post_data_falls_back_to_text_for_bad_json():
    assert parse_post_data('application/json', '{broken') == {'mimeType': 'application/json', 'text': '{broken'}
    assert parse_post_data('application/json', '[1, 2]') == {'mimeType': 'application/json', 'text': '[1, 2]'}


def test_format_wall_time():
    assert format_wall_time(1440589909.59248) == '2015-08-26T11:51:49.592Z'
    assert format_wall_time(None) == ''


def test_cached_timings():
    timings = cached_timings(10.0, 10.25)
    assert timings['receive'] == pytest.approx(250.0)
    assert timings['blocked'] == -1
    assert timings['send'] == 0


def test_get_header_value_is_case_insensitive():
    headers = {'content-type': 'text/html', 'X-Trace': 'abc'}
    assert get_header_value(headers, 'Content-Type') == 'text/html'
    assert get_header_value(headers, 'x-trace') == 'abc'
    assert get_header_value(headers, 'Cookie') is None
    assert get_header_value(None, 'Cookie') is None


def test_parse_headers_splits_folded_values():
    headers = {'Set-Cookie': 'a=1\nb=2', 'Vary': 'Accept'}
    assert parse_headers(headers) == [
        {'name': 'Set-Cookie', 'value': 'a=1'},
        {'name': 'Set-Cookie', 'value': 'b=2'},
        {'name': 'Vary', 'value': 'Accept'},
    ]
    assert parse_headers(None) == []


def test_parse_request_cookies():
    assert parse_request_cookies('a=1; b=two=2;  c=') == [
        {'name': 'a', 'value': '1'},
        {'name': 'b', 'value': 'two=2'},
        {'name': 'c', 'value': ''},
    ]
    assert parse_request_cookies(None) == []
    assert parse_request_cookies('novalue') == []


def test_parse_set_cookie_attributes():
    cookie = parse_set_cookie(
        'id=a3fWa; Expires=Wed, 21 Oct 2015 07:28:00 GMT; Path=/docs; Domain=example.com; '
        'Secure; HttpOnly; SameSite=Lax')
    assert cookie == {
        'name': 'id',
        'value': 'a3fWa',
        'expires': '2015-10-21T07:28:00.000Z',
        'path': '/docs',
        'domain': 'example.com',
        'secure': True,
        'httpOnly': True,
        'sameSite': 'Lax',
    }


def test_parse_set_cookie_skips_bad_expiry_and_bad_lines():
    assert 'expires' not in parse_set_cookie('a=1; Expires=not a date')
    assert parse_set_cookie('just-a-flag') is None
    assert [c['name'] for c in parse_response_cookies('a=1\ngarbage\nb=2; Path=/')] == ['a', 'b']


def test_format_cookie():
    cookie = {'name': 'sid', 'value': 'x', 'domain': '.example.com', 'path': '/', 'expires': 1440589909.59248,
              'httpOnly': True, 'secure': False, 'session': False, 'sameSite': 'Strict'}
    assert format_cookie(cookie) == {
        'name': 'sid',
        'value': 'x',
        'domain': '.example.com',
        'path': '/',
        'expires': '2015-08-26T11:51:49.592Z',
        'httpOnly': True,
        'secure': False,
        'sameSite': 'Strict',
    }
    session = dict(cookie, expires=-1, session=True)
    assert 'expires' not in format_cookie(session)
