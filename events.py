"""
The browser events the converter understands, plus the reporter for
everything it does not.
"""
import logging
import re
from enum import Enum
from typing import Optional, Set

logger = logging.getLogger("harpipe.events")

_SUPPORTED_FAMILY = re.compile(r'^(Page|Network)\..+')


class EventMethod(str, Enum):
    """Every Page.* and Network.* method with a handler in the converter."""

    FRAME_NAVIGATED = 'Page.frameNavigated'
    NAVIGATED_WITHIN_DOCUMENT = 'Page.navigatedWithinDocument'
    FRAME_ATTACHED = 'Page.frameAttached'
    LOAD_EVENT_FIRED = 'Page.loadEventFired'
    DOM_CONTENT_EVENT_FIRED = 'Page.domContentEventFired'
    REQUEST_WILL_BE_SENT = 'Network.requestWillBeSent'
    REQUEST_WILL_BE_SENT_EXTRA_INFO = 'Network.requestWillBeSentExtraInfo'
    REQUEST_SERVED_FROM_CACHE = 'Network.requestServedFromCache'
    RESPONSE_RECEIVED = 'Network.responseReceived'
    RESPONSE_RECEIVED_EXTRA_INFO = 'Network.responseReceivedExtraInfo'
    DATA_RECEIVED = 'Network.dataReceived'
    LOADING_FINISHED = 'Network.loadingFinished'
    LOADING_FAILED = 'Network.loadingFailed'
    RESOURCE_CHANGED_PRIORITY = 'Network.resourceChangedPriority'

    @classmethod
    def parse(cls, method: Optional[str]) -> Optional['EventMethod']:
        try:
            return cls(method)
        except ValueError:
            return None


# Methods that routinely show up in a Page/Network capture and carry nothing
# the report needs. They are skipped without being reported.
KNOWN_IGNORED_METHODS = frozenset({
    'Page.frameStartedLoading',
    'Page.frameStoppedLoading',
    'Page.frameScheduledNavigation',
    'Page.frameClearedScheduledNavigation',
    'Page.frameRequestedNavigation',
    'Page.frameDetached',
    'Page.frameResized',
    'Page.lifecycleEvent',
    'Page.documentOpened',
    'Page.windowOpen',
    'Page.javascriptDialogOpening',
    'Page.javascriptDialogClosed',
    'Page.screencastFrame',
    'Page.screencastVisibilityChanged',
    'Page.interstitialShown',
    'Page.interstitialHidden',
    'Network.eventSourceMessageReceived',
    'Network.webSocketCreated',
    'Network.webSocketClosed',
    'Network.webSocketFrameSent',
    'Network.webSocketFrameReceived',
    'Network.webSocketFrameError',
    'Network.webSocketHandshakeResponseReceived',
    'Network.webSocketWillSendHandshakeRequest',
    'Network.policyUpdated',
    'Network.reportingApiReportAdded',
    'Network.reportingApiReportUpdated',
    'Network.reportingApiEndpointsChangedForOrigin',
    'Network.trustTokenOperationDone',
    'Network.subresourceWebBundleMetadataReceived',
    'Network.subresourceWebBundleMetadataError',
    'Network.subresourceWebBundleInnerResponseParsed',
    'Network.subresourceWebBundleInnerResponseError',
})


def is_supported_family(method: Optional[str]) -> bool:
    return bool(_SUPPORTED_FAMILY.match(method or ''))


class IgnoredEvents:
    """Reports each unhandled method once per conversion run."""

    def __init__(self):
        self._reported: Set[str] = set()

    def report(self, method: Optional[str]):
        if method in KNOWN_IGNORED_METHODS or method in self._reported:
            return
        self._reported.add(method)
        if is_supported_family(method):
            logger.debug(f"Unhandled event: {method}")
        else:
            logger.debug(f"Skipping event outside the Page/Network domains: {method}")

    @property
    def reported(self) -> Set[str]:
        return set(self._reported)
