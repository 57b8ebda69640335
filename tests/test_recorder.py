"""Tests for live capture: the event recorder and the DevTools endpoint probe."""
import asyncio
import json
from unittest.mock import AsyncMock, Mock, patch

import requests

from harpipe.connection import CDPConnection
from harpipe.events import EventMethod
from harpipe.recorder import EventRecorder


def make_client():
    client = Mock()
    client.on = Mock()
    client.send = AsyncMock()
    return client


def test_attach_listeners_subscribes_before_enabling():
    client = make_client()
    recorder = EventRecorder(client)

    asyncio.run(recorder.attach_listeners())

    subscribed = [call.args[0] for call in client.on.call_args_list]
    assert subscribed == [method.value for method in EventMethod]
    assert [call.args[0] for call in client.send.await_args_list] == ['Network.enable', 'Page.enable']
    assert recorder.listeners_attached


def test_attach_listeners_only_once():
    client = make_client()
    recorder = EventRecorder(client)

    asyncio.run(recorder.attach_listeners())
    asyncio.run(recorder.attach_listeners())

    assert client.on.call_count == len(EventMethod)
    assert client.send.await_count == 2


def test_handlers_record_events_in_order():
    client = make_client()
    recorder = EventRecorder(client)
    asyncio.run(recorder.attach_listeners())
    handlers = {call.args[0]: call.args[1] for call in client.on.call_args_list}

    handlers['Network.requestWillBeSent']({'requestId': '1'})
    handlers['Network.loadingFinished']({'requestId': '1'})

    assert recorder.messages == [
        {'method': 'Network.requestWillBeSent', 'params': {'requestId': '1'}},
        {'method': 'Network.loadingFinished', 'params': {'requestId': '1'}},
    ]


def test_save_writes_json_lines(tmp_path):
    recorder = EventRecorder(make_client())
    recorder.messages = [
        {'method': 'Page.loadEventFired', 'params': {'timestamp': 1.0}},
        {'method': 'Network.dataReceived', 'params': {'requestId': '1', 'dataLength': 10}},
    ]
    path = tmp_path / 'nested' / 'events.jsonl'

    recorder.save(path)

    lines = path.read_text().splitlines()
    assert [json.loads(line) for line in lines] == recorder.messages


def test_endpoint():
    assert CDPConnection(9222).endpoint == 'http://localhost:9222'
    assert CDPConnection(9333, host='10.0.0.2').endpoint == 'http://10.0.0.2:9333'


def test_browser_version_reads_devtools_endpoint():
    reply = Mock(status_code=200)
    reply.json.return_value = {'Browser': 'Chrome/120.0.6099.109'}
    with patch('harpipe.connection.requests.get', return_value=reply) as get:
        assert CDPConnection(9222).browser_version() == 'Chrome/120.0.6099.109'
    get.assert_called_once_with('http://localhost:9222/json/version', timeout=5)


def test_browser_version_refused_connection():
    with patch('harpipe.connection.requests.get', side_effect=requests.ConnectionError('refused')):
        assert CDPConnection(9222).browser_version() is None


def test_browser_version_bad_status():
    with patch('harpipe.connection.requests.get', return_value=Mock(status_code=404)):
        assert CDPConnection(9222).browser_version() is None


def test_connect_gives_up_without_browser():
    conn = CDPConnection(9222)
    with patch.object(conn, 'browser_version', return_value=None):
        assert asyncio.run(conn.connect()) is False
    assert conn.client is None
