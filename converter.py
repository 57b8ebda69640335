"""
Builds a HAR log from an ordered list of Page.* and Network.* events.

Events do not arrive in causal order: requests can precede the navigation that
owns them, responses can precede any page, and extra-info events can land on
either side of the request or response they describe. The converter keeps
enough correlation state to stitch all of that back together in a single pass.
"""
import json
import logging
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Union
from urllib.parse import urlsplit

from .context import ConversionContext
from .cookies import parse_request_cookies
from .events import EventMethod
from .finalizer import finalize
from .headers import get_header_value, parse_headers
from .model import Entry, Page
from .options import HarOptions
from .response import (
    apply_request_extra_info,
    apply_response_extra_info,
    cache_before_request,
    populate_entry_from_response,
)
from .synthetic import entry_from_frame_navigated, entry_from_response, find_early_response
from .util import (
    blocked_response,
    blocked_timings,
    cached_timings,
    format_millis,
    format_wall_time,
    is_http1x,
    is_supported_protocol,
    new_page_id,
    parse_post_data,
    parse_query,
    total_time,
)

logger = logging.getLogger("harpipe.converter")


class HarConverter:
    """Single-use correlation engine. Create one per list of events."""

    # how far back a CORS preflight looks for the request that triggered it
    PREFLIGHT_LOOKBACK = 50

    def __init__(self, messages: Iterable[Mapping[str, Any]], options: Optional[HarOptions] = None):
        self.messages: List[Mapping[str, Any]] = list(messages)
        self.options = options or HarOptions()
        self.ctx = ConversionContext()
        self._handlers: Dict[EventMethod, Callable[[int, Dict[str, Any]], None]] = {
            EventMethod.FRAME_NAVIGATED: self._on_frame_navigated,
            EventMethod.NAVIGATED_WITHIN_DOCUMENT: self._on_navigated_within_document,
            EventMethod.FRAME_ATTACHED: self._on_frame_attached,
            EventMethod.LOAD_EVENT_FIRED: self._on_load_event_fired,
            EventMethod.DOM_CONTENT_EVENT_FIRED: self._on_dom_content_event_fired,
            EventMethod.REQUEST_WILL_BE_SENT: self._on_request_will_be_sent,
            EventMethod.REQUEST_WILL_BE_SENT_EXTRA_INFO: self._on_request_extra_info,
            EventMethod.REQUEST_SERVED_FROM_CACHE: self._on_request_served_from_cache,
            EventMethod.RESPONSE_RECEIVED: self._on_response_received,
            EventMethod.RESPONSE_RECEIVED_EXTRA_INFO: self._on_response_extra_info,
            EventMethod.DATA_RECEIVED: self._on_data_received,
            EventMethod.LOADING_FINISHED: self._on_loading_finished,
            EventMethod.LOADING_FAILED: self._on_loading_failed,
            EventMethod.RESOURCE_CHANGED_PRIORITY: self._on_resource_changed_priority,
        }

    def convert(self) -> Dict[str, Any]:
        for position, message in enumerate(self.messages):
            self._dispatch(position, message)
        return finalize(self.ctx, self.options)

    def _dispatch(self, position: int, message: Mapping[str, Any]):
        method = EventMethod.parse(message.get('method'))
        if method is None:
            self.ctx.ignored_events.report(message.get('method'))
            return
        self._handlers[method](position, message.get('params') or {})

    # -- helpers ------------------------------------------------------------

    def _attach_custom_props(self, entry: Entry, params: Mapping[str, Any]):
        if self.options.include_custom_properties:
            entry.merge_custom(params.get('_custom'))

    def _new_page(self, title: str, loader_id: Optional[str] = None, frame_id: Optional[str] = None) -> Page:
        return Page(new_page_id(), title=title, loader_id=loader_id, frame_id=frame_id)

    @staticmethod
    def _add_from_first_request(page: Page, params: Mapping[str, Any]):
        if page.timestamp is None:
            wall_time = params.get('wallTime')
            page.set_start(params.get('timestamp'), wall_time, format_wall_time(wall_time))
            # URL is better than blank, and it's what devtools uses.
            if page.title == '':
                page.title = params['request']['url']

        if not page.loader_id and params.get('loaderId'):
            page.loader_id = params['loaderId']

    def _add_from_first_response(self, page: Page, params: Mapping[str, Any]):
        response = params['response']
        request_time = (response.get('timing') or {}).get('requestTime')
        timestamp = page.timestamp if page.timestamp is not None else request_time

        wall_time = self.options.wall_time_helper.get_wall_time_from_timestamp(request_time)
        if wall_time:
            page.set_start(timestamp, wall_time, format_wall_time(wall_time))
        else:
            page.set_start(timestamp, page.wall_time, page.started_date_time)
        page.title = response['url']

        if not page.loader_id and params.get('loaderId'):
            page.loader_id = params['loaderId']

    @staticmethod
    def _entry_started(page: Page, params: Mapping[str, Any]) -> str:
        # wallTime is not monotonic but timestamp is, so offset from the page's start
        timestamp = params.get('timestamp')
        if page.wall_time is None or page.timestamp is None or timestamp is None:
            return format_wall_time(params.get('wallTime'))
        return format_wall_time(page.wall_time + (timestamp - page.timestamp))

    def _populate(self, entry: Entry, params: Mapping[str, Any]):
        populate_entry_from_response(entry, params['response'], self.options)
        extra_info = self.ctx.response_extra_info.get(params['requestId'])
        if extra_info:
            apply_response_extra_info(entry.response, extra_info)

    def _attach_pageless_requests(self, page: Page):
        entries, params_list = self.ctx.take_pending_entries()
        if entries:
            self._add_from_first_request(page, params_list[0])
            for entry, params in zip(entries, params_list):
                entry.pageref = page.id
                entry.data['startedDateTime'] = self._entry_started(page, params)
                self.ctx.add_entry(entry)

        for params in self.ctx.take_pending_responses():
            entry = self.ctx.find_entry(params['requestId'])
            if entry is None:
                logger.debug(f"Couldn't find matching request for buffered response {params['requestId']}")
                continue
            self._populate(entry, params)

    # -- Page domain --------------------------------------------------------

    def _on_frame_navigated(self, position: int, params: Dict[str, Any]):
        frame = params['frame']
        if frame.get('parentId'):
            return
        loader_id = frame.get('loaderId')
        if self.ctx.has_page_for_loader(loader_id):
            return

        self.ctx.supersede_rootless_page()
        page = self._new_page(frame.get('url', ''), loader_id=loader_id, frame_id=frame.get('id'))

        first_request = self.ctx.first_request_for_loader(loader_id)
        if first_request:
            self._add_from_first_request(page, first_request)
        else:
            # The debugger attached after the document request was sent.
            response_params = find_early_response(self.messages, loader_id)
            if response_params:
                self._add_from_first_response(page, response_params)
                entry = entry_from_response(page, response_params)
                self._attach_custom_props(entry, response_params)
            else:
                entry = entry_from_frame_navigated(page, params)
            logger.debug(f"Created synthetic entry {entry.request_id} for page {frame.get('url')}")
            self.ctx.add_entry(entry)

        self.ctx.add_page(page)
        self._attach_pageless_requests(page)

    def _on_navigated_within_document(self, position: int, params: Dict[str, Any]):
        root_frame = self.ctx.root_frame(params.get('frameId'))
        if self.ctx.page_for_frame(root_frame):
            return

        page = self._new_page(params.get('url', ''), frame_id=root_frame)
        self.ctx.add_page(page)
        self._attach_pageless_requests(page)

    def _on_frame_attached(self, position: int, params: Dict[str, Any]):
        self.ctx.map_frame(params['frameId'], params['parentFrameId'])

    def _on_load_event_fired(self, position: int, params: Dict[str, Any]):
        self._record_page_timing('onLoad', params)

    def _on_dom_content_event_fired(self, position: int, params: Dict[str, Any]):
        self._record_page_timing('onContentLoad', params)

    def _record_page_timing(self, name: str, params: Mapping[str, Any]):
        page = self.ctx.current_page
        if page is None:
            return
        if params.get('timestamp') and page.timestamp is not None:
            page.record_timing(name, format_millis((params['timestamp'] - page.timestamp) * 1000))

    # -- Network domain -----------------------------------------------------

    def _recover_preflight_initiator(self, position: int, params: Dict[str, Any]) -> Dict[str, Any]:
        """
        A CORS preflight has no loader of its own. Look back through recent
        events for the latest non-OPTIONS request to the preflight's document
        URL and borrow its loader and frame.
        """
        start = max(0, position - self.PREFLIGHT_LOOKBACK)
        for message in reversed(self.messages[start:position]):
            if message.get('method') != EventMethod.REQUEST_WILL_BE_SENT.value:
                continue
            candidate = message.get('params') or {}
            request = candidate.get('request') or {}
            if request.get('method') != 'OPTIONS' and request.get('url') == params.get('documentURL'):
                self.ctx.remember_preflight(params['requestId'], candidate.get('loaderId'), candidate.get('frameId'))
                return dict(params, loaderId=candidate.get('loaderId'), frameId=candidate.get('frameId'))
        return params

    @staticmethod
    def _is_preflight(params: Mapping[str, Any]) -> bool:
        return (params.get('loaderId') == ''
                and params['request'].get('method') == 'OPTIONS'
                and (params.get('initiator') or {}).get('type') == 'other')

    @staticmethod
    def _apply_initiator(entry: Entry, initiator: Mapping[str, Any]):
        initiator_type = initiator.get('type')
        if initiator_type == 'parser':
            entry.data['_initiator'] = initiator.get('url')
            if initiator.get('lineNumber') is not None:
                entry.data['_initiator_line'] = initiator['lineNumber'] + 1
        elif initiator_type == 'script':
            call_frames = (initiator.get('stack') or {}).get('callFrames') or []
            if call_frames:
                top = call_frames[0]
                entry.data['_initiator'] = top.get('url')
                # protocol line and column numbers are 0-based
                entry.data['_initiator_line'] = top.get('lineNumber', 0) + 1
                entry.data['_initiator_column'] = top.get('columnNumber', 0) + 1
                entry.data['_initiator_function_name'] = top.get('functionName')
                entry.data['_initiator_script_id'] = top.get('scriptId')

    def _build_request(self, request: Mapping[str, Any]) -> Dict[str, Any]:
        headers = request.get('headers') or {}
        # keep the fragment so the report points at the URL that was actually loaded
        url = request['url'] + (request.get('urlFragment') or '')
        post_data = request.get('postData')
        har_request = {
            'method': request['method'],
            'url': url,
            'queryString': parse_query(urlsplit(url).query),
            'headersSize': -1,
            'bodySize': len(post_data) if post_data else 0,
            'cookies': parse_request_cookies(get_header_value(headers, 'Cookie')),
            'headers': parse_headers(headers),
        }
        parsed_post_data = parse_post_data(get_header_value(headers, 'Content-Type'), post_data)
        if parsed_post_data is not None:
            har_request['postData'] = parsed_post_data
        return har_request

    def _on_request_will_be_sent(self, position: int, params: Dict[str, Any]):
        request = params['request']
        request_id = params['requestId']
        if not is_supported_protocol(request['url']):
            self.ctx.ignore_request(request_id)
            return

        if self._is_preflight(params):
            params = self._recover_preflight_initiator(position, params)

        self.ctx.remember_loader(params.get('loaderId'), params)

        har_request = self._build_request(request)
        extra_info = self.ctx.request_extra_info.get(request_id)
        if extra_info:
            apply_request_extra_info(har_request, extra_info)

        page = self.ctx.current_page
        initiator = params.get('initiator') or {}
        entry = Entry({
            'cache': {},
            'startedDateTime': '',
            '_requestId': request_id,
            '_initialPriority': request.get('initialPriority'),
            '_priority': request.get('initialPriority'),
            'pageref': page.id if page else None,
            'request': har_request,
            'time': 0,
            '_initiator_detail': json.dumps(initiator),
            '_initiator_type': initiator.get('type'),
        }, request_will_be_sent_time=params.get('timestamp'))
        if isinstance(params.get('type'), str):
            entry.data['_resourceType'] = params['type'].lower()
        self._attach_custom_props(entry, params)
        self._apply_initiator(entry, initiator)

        redirect_response = params.get('redirectResponse')
        if redirect_response:
            previous = self.ctx.find_any_entry(request_id)
            if previous is not None:
                self.ctx.retire_request_id(previous)
                populate_entry_from_response(previous, redirect_response, self.options)
            else:
                logger.debug(f"Couldn't find original request for redirect response: {request_id}")

        if page is None:
            logger.debug(f"Request {request_id} can't be mapped to any page at the moment, buffering it")
            self.ctx.buffer_entry(entry, params)
            return

        self.ctx.add_entry(entry)
        self._add_from_first_request(page, params)
        entry.data['startedDateTime'] = self._entry_started(page, params)

    def _on_request_served_from_cache(self, position: int, params: Dict[str, Any]):
        if not self.ctx.has_pages or self.ctx.is_ignored(params['requestId']):
            return
        entry = self.ctx.find_entry(params['requestId'])
        if entry is None:
            logger.debug(f"Received requestServedFromCache for requestId {params['requestId']} with no matching request.")
            return
        entry.served_from_cache = True
        entry.cache['beforeRequest'] = cache_before_request()

    def _on_response_received(self, position: int, params: Dict[str, Any]):
        request_id = params['requestId']
        if not self.ctx.has_pages:
            self.ctx.buffer_response(params)
            return
        if self.ctx.is_ignored(request_id):
            return

        entry = self.ctx.find_any_entry(request_id)
        if entry is None:
            logger.debug(f"Received network response for requestId {request_id} with no matching request.")
            return
        self._attach_custom_props(entry, params)

        frame_id = self.ctx.root_frame(params.get('frameId')) or self.ctx.preflight_frame(request_id)
        if self.ctx.page_for_frame(frame_id) is None:
            logger.debug(f"Received network response for requestId {request_id} that can't be mapped to any page.")
            return

        try:
            self._populate(entry, params)
        except Exception:
            logger.error(f"Error parsing response: {json.dumps(params, indent=2, default=str)}")
            raise

    def _on_data_received(self, position: int, params: Dict[str, Any]):
        if not self.ctx.has_pages or self.ctx.is_ignored(params['requestId']):
            return
        entry = self.ctx.find_entry(params['requestId'])
        if entry is None:
            logger.debug(f"Received network data for requestId {params['requestId']} with no matching request.")
            return
        # data can show up for an entry that has no response yet; nothing to add it to
        if entry.response:
            entry.response['content']['size'] += params.get('dataLength', 0)

    def _on_loading_finished(self, position: int, params: Dict[str, Any]):
        request_id = params['requestId']
        if not self.ctx.has_pages:
            return
        if self.ctx.is_ignored(request_id):
            self.ctx.release_request(request_id)
            return

        entry = self.ctx.find_entry(request_id)
        if entry is None:
            logger.debug(f"Network loading finished for requestId {request_id} with no matching request.")
            return
        self._attach_custom_props(entry, params)

        timestamp = params.get('timestamp')
        if entry.served_from_cache and entry.request_will_be_sent_time is not None and timestamp is not None:
            entry.data['time'] = 0
            entry.timings = cached_timings(entry.request_will_be_sent_time, timestamp)
        else:
            timings = entry.timings or {}
            starts = [t for t in (entry.request_will_be_sent_time, entry.request_time) if t is not None]
            if starts and timestamp is not None:
                timings['receive'] = format_millis(
                    (timestamp - max(starts)) * 1000 - (entry.receive_headers_end or 0))
            entry.timings = timings
            entry.data['time'] = total_time(timings)

        # encodedDataLength is -1 when the transport doesn't know
        encoded = params.get('encodedDataLength')
        response = entry.response
        if encoded is not None and encoded >= 0 and response:
            response['_transferSize'] = encoded
            response['bodySize'] = encoded
            if is_http1x(response['httpVersion']) and response['headersSize'] > -1:
                response['bodySize'] -= response['headersSize']

            compression = max(0, response['content']['size'] - response['bodySize'])
            if compression > 0:
                response['content']['compression'] = compression

    def _on_loading_failed(self, position: int, params: Dict[str, Any]):
        request_id = params['requestId']
        if self.ctx.is_ignored(request_id):
            self.ctx.release_request(request_id)
            return

        entry = self.ctx.find_entry(request_id)
        if entry is None:
            logger.debug(f"Network loading failed for requestId {request_id} with no matching request.")
            return
        self._attach_custom_props(entry, params)

        error_text = params.get('errorText', '')
        entry.request['httpVersion'] = entry.request.get('httpVersion') or ''
        response = entry.response or blocked_response()
        response['_error'] = error_text
        response['_transferSize'] = 0
        entry.response = response
        entry.timings = entry.timings or blocked_timings()
        entry.data['serverIPAddress'] = ''

        comment = f"Error: {error_text}"
        if params.get('blockedReason'):
            comment += f". Reason: {params['blockedReason']}"
        entry.data['comment'] = comment

    def _on_resource_changed_priority(self, position: int, params: Dict[str, Any]):
        entry = self.ctx.find_entry(params['requestId'])
        if entry is None:
            logger.debug(f"Received resourceChangedPriority for requestId {params['requestId']} with no matching request.")
            return
        entry.data['_priority'] = params.get('newPriority')

    def _on_request_extra_info(self, position: int, params: Dict[str, Any]):
        request_id = params['requestId']
        self.ctx.request_extra_info[request_id] = params
        entry = self.ctx.find_any_entry(request_id)
        if entry is None:
            logger.debug(f"Received requestWillBeSentExtraInfo for requestId {request_id} with no matching request.")
            return
        apply_request_extra_info(entry.request, params)

    def _on_response_extra_info(self, position: int, params: Dict[str, Any]):
        request_id = params['requestId']
        self.ctx.response_extra_info[request_id] = params
        entry = self.ctx.find_any_entry(request_id)
        if entry is None:
            logger.debug(f"Received responseReceivedExtraInfo for requestId {request_id} with no matching request.")
            return
        if entry.response:
            apply_response_extra_info(entry.response, params)


def har_from_messages(messages: Iterable[Mapping[str, Any]],
                      options: Union[HarOptions, Mapping[str, Any], None] = None) -> Dict[str, Any]:
    """
    Converts an ordered list of ``{"method": ..., "params": ...}`` browser
    events into a HAR 1.2 ``{"log": ...}`` dict.

    ``options`` may be a HarOptions, a dict of option names (camelCase as in
    the HAR tooling, or snake_case), or None for defaults.
    """
    return HarConverter(messages, HarOptions.coerce(options)).convert()
