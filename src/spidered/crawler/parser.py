"""
Hyperlink extraction from fetched pages.
"""

from typing import Iterator

from bs4 import BeautifulSoup, SoupStrainer

# Only build <a> elements; the rest of the document is discarded while parsing
_ANCHORS = SoupStrainer('a')


def extract_hrefs(body: bytes) -> Iterator[str]:
    """
    Yield the href of every anchor tag in a page, in document order.

    Anchors without an href, or with an empty one, are skipped. The values
    are returned as written in the page; resolving them is left to the caller.
    """
    if not body:
        return

    soup = BeautifulSoup(body, 'lxml', parse_only=_ANCHORS)

    for anchor in soup.find_all('a'):
        href = anchor.get('href')
        if isinstance(href, list):
            href = ' '.join(href)
        if href and href.strip():
            yield href
