"""
Lazy iteration over scrolling search results
"""

import logging
from collections import deque
from typing import Any, Deque, Dict, Iterator, List, Mapping, Optional

from .backend import SearchBackend
from .exceptions import ProtocolError
from .models import DEFAULT_SCROLL_LIFETIME, DEFAULT_SCROLL_SIZE

logger = logging.getLogger("metacpanpy")


class ScrollSession:
    """
    Stateful iterator over the hits of one scrolling search

    Nothing is requested until the first page is needed. The session owns
    its scroll id; it is not safe to advance one session from several threads.
    After a backend error the session should be discarded.
    """

    def __init__(
        self,
        backend: SearchBackend,
        index: str,
        doc_type: str,
        body: Mapping[str, Any],
        size: int = DEFAULT_SCROLL_SIZE,
        scroll: str = DEFAULT_SCROLL_LIFETIME,
        search_type: Optional[str] = None,
        params: Optional[Mapping[str, Any]] = None,
    ):
        """
        Initialize a new scroll session

        Args:
            backend: Search backend issuing search/scroll/clear_scroll calls
            index: Index to search (the API version, e.g. "v1")
            doc_type: Document type, e.g. "release" or "author"
            body: Search request body
            size: Number of hits per page
            scroll: How long the server keeps the cursor alive between pages
            search_type: Optional search type hint
            params: Extra search parameters passed to the backend
        """
        self.backend = backend
        self.index = index
        self.doc_type = doc_type
        self.body = body
        self.size = size
        self.scroll = scroll
        self.search_type = search_type
        self.params = dict(params or {})

        self.scroll_id: Optional[str] = None
        self.total: Optional[int] = None
        self.seen = 0
        self._buffer: Deque[Dict[str, Any]] = deque()
        self._started = False
        self._finished = False
        self._cleared = False

    @property
    def is_finished(self) -> bool:
        """True once every hit has been handed out"""
        return self._finished and not self._buffer

    def next_page(self) -> List[Dict[str, Any]]:
        """
        Return the next page of hits, or an empty list once finished

        Hits already buffered by next_record() are returned first.
        """
        if self._buffer:
            page = list(self._buffer)
            self._buffer.clear()
            return page

        while not self._finished:
            page = self._fetch_page()
            if page:
                return page
        return []

    def next_record(self) -> Optional[Dict[str, Any]]:
        """Return the next hit, or None once finished"""
        while not self._buffer and not self._finished:
            self._buffer.extend(self._fetch_page())
        if self._buffer:
            return self._buffer.popleft()
        return None

    def __iter__(self) -> Iterator[Dict[str, Any]]:
        return self

    def __next__(self) -> Dict[str, Any]:
        hit = self.next_record()
        if hit is None:
            raise StopIteration
        return hit

    def close(self) -> None:
        """Stop scrolling and release the server-side cursor"""
        self._finished = True
        self._buffer.clear()
        self._clear_scroll()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            self.close()
            return
        # keep the error raised inside the block
        try:
            self.close()
        except Exception as e:
            logger.debug(f"Failed to clear scroll {self.scroll_id}: {e}")

    def _fetch_page(self) -> List[Dict[str, Any]]:
        first = not self._started
        if first:
            response = self.backend.search(
                index=self.index,
                doc_type=self.doc_type,
                body=self.body,
                size=self.size,
                scroll=self.scroll,
                search_type=self.search_type,
                params=self.params,
            )
            self._started = True
        else:
            response = self.backend.scroll(scroll_id=self.scroll_id, scroll=self.scroll)

        self.scroll_id = response.get("_scroll_id", self.scroll_id)
        hits_section = response.get("hits", {})
        hits = list(hits_section.get("hits", []))
        if first:
            self.total = _read_total(hits_section.get("total"))

        self.seen += len(hits)
        logger.debug(
            f"Scroll page for {self.index}/{self.doc_type}: "
            f"{len(hits)} hits ({self.seen} of {self.total})"
        )

        # scan-style searches return an empty first page with a positive total
        if (self.total is not None and self.seen >= self.total) or (not hits and not first):
            self._finished = True
            self._clear_scroll()
        elif self.scroll_id is None:
            raise ProtocolError("missing scroll id in search response")

        return hits

    def _clear_scroll(self) -> None:
        if self._cleared or self.scroll_id is None:
            return
        self._cleared = True
        logger.debug(f"Clearing scroll {self.scroll_id}")
        self.backend.clear_scroll(scroll_id=self.scroll_id)


def _read_total(total: Any) -> Optional[int]:
    if isinstance(total, Mapping):
        if total.get("relation", "eq") != "eq":
            return None
        total = total.get("value")
    if isinstance(total, int):
        return total
    return None
