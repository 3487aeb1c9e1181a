import pytest


class FakeBackend:
    """In-memory search backend that pages through a fixed list of documents"""

    def __init__(self, docs, total_as_object=True):
        self.docs = docs
        self.total_as_object = total_as_object
        self.searches = []
        self.scrolls = []
        self.cleared = []
        self._cursors = {}
        self.closed = False

    def search(self, *, index, doc_type, body, size, scroll, search_type=None, params=None):
        self.searches.append({
            "index": index,
            "doc_type": doc_type,
            "body": body,
            "size": size,
            "scroll": scroll,
            "search_type": search_type,
            "params": params,
        })
        scroll_id = f"cursor-{len(self._cursors)}"
        self._cursors[scroll_id] = {"size": size, "offset": 0}
        return self._page(scroll_id)

    def scroll(self, *, scroll_id, scroll):
        self.scrolls.append({"scroll_id": scroll_id, "scroll": scroll})
        return self._page(scroll_id)

    def clear_scroll(self, *, scroll_id):
        self.cleared.append(scroll_id)
        return {"succeeded": True}

    def close(self):
        self.closed = True

    def _page(self, scroll_id):
        cursor = self._cursors[scroll_id]
        start = cursor["offset"]
        hits = self.docs[start:start + cursor["size"]]
        cursor["offset"] = start + len(hits)
        total = {"value": len(self.docs), "relation": "eq"} if self.total_as_object else len(self.docs)
        return {"_scroll_id": scroll_id, "hits": {"total": total, "hits": hits}}


def make_hits(count, doc_type="release"):
    return [
        {
            "_index": "v1",
            "_type": doc_type,
            "_id": f"id{i}",
            "_source": {"name": f"Dist-{i}", "author": "ETHER"},
        }
        for i in range(count)
    ]


@pytest.fixture
def five_hits():
    return make_hits(5)


@pytest.fixture
def fake_backend(five_hits):
    return FakeBackend(five_hits)


@pytest.fixture
def backend_factory():
    """Build a FakeBackend holding `count` hits"""
    def factory(count, **kwargs):
        return FakeBackend(make_hits(count), **kwargs)
    return factory
