"""
Turns the converter's pages and entries into the final HAR log.
"""
import logging
from typing import Any, Dict

from .context import ConversionContext
from .options import HarOptions

logger = logging.getLogger("harpipe.finalizer")

HAR_VERSION = '1.2'


def finalize(ctx: ConversionContext, options: HarOptions) -> Dict[str, Any]:
    """
    Drops cache-served entries (unless asked to keep them), entries that never
    got a response and pages left without entries, then renumbers the
    surviving pages ``page_1..page_N`` in creation order.
    """
    entries = ctx.entries
    if not options.include_resources_from_disk_cache:
        entries = [entry for entry in entries if 'beforeRequest' not in entry.cache]

    complete = []
    for entry in entries:
        if entry.is_complete:
            complete.append(entry)
        else:
            logger.debug(f"Dropping incomplete request: {entry.request['url']}")

    referenced = {entry.pageref for entry in complete}
    pages = []
    for index, page in enumerate(ctx.pages):
        if page.id in referenced:
            pages.append(page)
        else:
            logger.debug(f"Skipping empty page: {index + 1}")

    pagerefs = {page.id: f"page_{index + 1}" for index, page in enumerate(pages)}

    return {
        'log': {
            'version': HAR_VERSION,
            'creator': {
                'name': options.name,
                'version': options.version,
                'comment': options.comment,
            },
            'pages': [page.to_har(pagerefs[page.id]) for page in pages],
            'entries': [entry.to_har(pagerefs.get(entry.pageref)) for entry in complete],
            '_meta': options.meta,
        }
    }
