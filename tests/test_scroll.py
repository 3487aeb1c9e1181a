import pytest
from unittest.mock import MagicMock, patch

from metacpanpy.backend import ElasticsearchBackend
from metacpanpy.exceptions import ProtocolError
from metacpanpy.scroll import ScrollSession

BODY = {"query": {"term": {"author": "ETHER"}}}


def open_session(backend, size=2, **kwargs):
    return ScrollSession(backend, index="v1", doc_type="release", body=BODY, size=size, **kwargs)


class TestScrollSession:

    def test_no_request_until_iterated(self, fake_backend):
        session = open_session(fake_backend)
        assert fake_backend.searches == []
        assert not session.is_finished
        assert session.scroll_id is None

    def test_pages_of_two_over_five_hits(self, fake_backend, five_hits):
        """Three pages (2, 2, 1) and then exhaustion"""
        session = open_session(fake_backend)

        pages = [session.next_page(), session.next_page(), session.next_page()]

        assert [len(page) for page in pages] == [2, 2, 1]
        assert [hit for page in pages for hit in page] == five_hits
        assert session.is_finished
        assert session.total == 5
        assert len(fake_backend.searches) == 1
        assert len(fake_backend.scrolls) == 2
        assert session.next_page() == []

    def test_first_page_uses_search_then_scroll(self, fake_backend):
        session = open_session(fake_backend, scroll="1m", search_type="scan", params={"fields": "name"})
        session.next_page()
        session.next_page()

        assert fake_backend.searches == [{
            "index": "v1",
            "doc_type": "release",
            "body": BODY,
            "size": 2,
            "scroll": "1m",
            "search_type": "scan",
            "params": {"fields": "name"},
        }]
        assert fake_backend.scrolls == [{"scroll_id": "cursor-0", "scroll": "1m"}]

    def test_iteration_yields_every_hit(self, fake_backend, five_hits):
        session = open_session(fake_backend)
        assert list(session) == five_hits
        assert session.is_finished
        assert session.seen == 5

    def test_next_record(self, backend_factory):
        backend = backend_factory(3)
        session = open_session(backend)

        ids = []
        while not session.is_finished:
            ids.append(session.next_record()["_id"])

        assert ids == ["id0", "id1", "id2"]
        assert session.next_record() is None

    def test_next_page_returns_buffered_hits_first(self, fake_backend):
        session = open_session(fake_backend)
        first = session.next_record()
        rest_of_page = session.next_page()

        assert first["_id"] == "id0"
        assert [hit["_id"] for hit in rest_of_page] == ["id1"]
        assert [hit["_id"] for hit in session.next_page()] == ["id2", "id3"]

    def test_cursor_cleared_once_when_exhausted(self, fake_backend):
        session = open_session(fake_backend)
        list(session)
        session.close()
        assert fake_backend.cleared == ["cursor-0"]

    def test_close_clears_cursor_early(self, fake_backend):
        with open_session(fake_backend) as session:
            session.next_record()
        assert fake_backend.cleared == ["cursor-0"]
        assert session.is_finished
        assert session.next_record() is None

    def test_close_before_start_sends_nothing(self, fake_backend):
        open_session(fake_backend).close()
        assert fake_backend.searches == []
        assert fake_backend.cleared == []

    def test_no_matches(self, backend_factory):
        backend = backend_factory(0)
        session = open_session(backend)
        assert session.next_page() == []
        assert session.is_finished
        assert session.total == 0

    def test_integer_total(self, backend_factory):
        backend = backend_factory(3, total_as_object=False)
        session = open_session(backend)
        assert len(list(session)) == 3
        assert session.total == 3

    def test_scan_style_empty_first_page(self):
        backend = MagicMock()
        backend.search.return_value = {"_scroll_id": "s1", "hits": {"total": 3, "hits": []}}
        backend.scroll.side_effect = [
            {"_scroll_id": "s2", "hits": {"total": 3, "hits": [{"_id": "a"}, {"_id": "b"}]}},
            {"_scroll_id": "s3", "hits": {"total": 3, "hits": [{"_id": "c"}]}},
        ]

        session = open_session(backend)
        assert [hit["_id"] for hit in session.next_page()] == ["a", "b"]
        assert [hit["_id"] for hit in session.next_page()] == ["c"]
        assert session.is_finished
        backend.scroll.assert_any_call(scroll_id="s2", scroll="5m")
        backend.clear_scroll.assert_called_once_with(scroll_id="s3")

    def test_unknown_total_stops_on_empty_page(self):
        backend = MagicMock()
        backend.search.return_value = {
            "_scroll_id": "s1",
            "hits": {"total": {"value": 10000, "relation": "gte"}, "hits": [{"_id": "a"}]},
        }
        backend.scroll.return_value = {"_scroll_id": "s1", "hits": {"hits": []}}

        session = open_session(backend)
        assert [hit["_id"] for hit in session] == ["a"]
        assert session.total is None
        assert session.is_finished

    def test_backend_error_propagates(self):
        backend = MagicMock()
        backend.search.side_effect = RuntimeError("index_not_found_exception")

        session = open_session(backend)
        with pytest.raises(RuntimeError):
            session.next_record()


    def test_backend_error_survives_failed_cleanup(self):
        """Test the scroll error, not the cleanup error, reaches the caller"""
        backend = MagicMock()
        backend.search.return_value = {
            "_scroll_id": "s1",
            "hits": {"total": 5, "hits": [{"_id": "a"}, {"_id": "b"}]},
        }
        backend.scroll.side_effect = RuntimeError("search_phase_execution_exception")
        backend.clear_scroll.side_effect = RuntimeError("clear failed")

        with pytest.raises(RuntimeError) as excinfo:
            with open_session(backend) as session:
                list(session)

        assert str(excinfo.value) == "search_phase_execution_exception"
        backend.clear_scroll.assert_called_once_with(scroll_id="s1")

    def test_cleanup_error_raised_on_normal_exit(self):
        backend = MagicMock()
        backend.search.return_value = {"_scroll_id": "s1", "hits": {"total": 5, "hits": [{"_id": "a"}]}}
        backend.clear_scroll.side_effect = RuntimeError("clear failed")

        with pytest.raises(RuntimeError, match="clear failed"):
            with open_session(backend) as session:
                session.next_record()

    def test_missing_scroll_id(self):
        backend = MagicMock()
        backend.search.return_value = {"hits": {"total": 5, "hits": [{"_id": "a"}, {"_id": "b"}]}}

        session = open_session(backend)
        with pytest.raises(ProtocolError):
            session.next_page()
        backend.scroll.assert_not_called()

    def test_missing_scroll_id_on_final_page(self):
        backend = MagicMock()
        backend.search.return_value = {"hits": {"total": 1, "hits": [{"_id": "a"}]}}

        session = open_session(backend)
        assert [hit["_id"] for hit in session] == ["a"]
        backend.clear_scroll.assert_not_called()


class TestElasticsearchBackend:

    @patch("metacpanpy.backend.Elasticsearch")
    def test_client_bound_to_nodes(self, mock_es):
        ElasticsearchBackend("http://api.metacpan.org", request_timeout=30)
        mock_es.assert_called_once_with(hosts=["http://api.metacpan.org"], request_timeout=30)

    @patch("metacpanpy.backend.Elasticsearch")
    def test_search_posts_to_type_path(self, mock_es):
        es = mock_es.return_value
        es.perform_request.return_value = MagicMock(body={"_scroll_id": "s1", "hits": {"hits": []}})

        backend = ElasticsearchBackend("http://api.metacpan.org")
        result = backend.search(
            index="v1",
            doc_type="release",
            body=BODY,
            size=1000,
            scroll="5m",
            search_type="scan",
            params={"fields": "name"},
        )

        assert result == {"_scroll_id": "s1", "hits": {"hits": []}}
        args, kwargs = es.perform_request.call_args
        assert args == ("POST", "/v1/release/_search")
        assert kwargs["params"] == {"size": 1000, "scroll": "5m", "search_type": "scan", "fields": "name"}
        assert kwargs["body"] == BODY

    @patch("metacpanpy.backend.Elasticsearch")
    def test_search_omits_empty_search_type(self, mock_es):
        es = mock_es.return_value
        backend = ElasticsearchBackend(["http://localhost:9200"])
        backend.search(index="v1", doc_type="author", body=BODY, size=10, scroll="5m")

        _, kwargs = es.perform_request.call_args
        assert kwargs["params"] == {"size": 10, "scroll": "5m"}

    @patch("metacpanpy.backend.Elasticsearch")
    def test_scroll_and_clear(self, mock_es):
        es = mock_es.return_value
        es.scroll.return_value = MagicMock(body={"_scroll_id": "s2"})

        backend = ElasticsearchBackend("http://api.metacpan.org")
        assert backend.scroll(scroll_id="s1", scroll="5m") == {"_scroll_id": "s2"}
        backend.clear_scroll(scroll_id="s2")

        es.scroll.assert_called_once_with(scroll_id="s1", scroll="5m")
        es.clear_scroll.assert_called_once_with(scroll_id="s2")
