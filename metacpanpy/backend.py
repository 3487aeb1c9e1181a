"""
Search backend used for scrolling searches
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Protocol, Union
from urllib.parse import quote

from elasticsearch import Elasticsearch

logger = logging.getLogger("metacpanpy")

JSON_HEADERS = {"accept": "application/json", "content-type": "application/json"}


class SearchBackend(Protocol):
    def search(
        self,
        *,
        index: str,
        doc_type: str,
        body: Mapping[str, Any],
        size: int,
        scroll: str,
        search_type: Optional[str] = None,
        params: Optional[Mapping[str, Any]] = None,
    ) -> Mapping[str, Any]: ...

    def scroll(self, *, scroll_id: str, scroll: str) -> Mapping[str, Any]: ...

    def clear_scroll(self, *, scroll_id: str) -> Any: ...


class ElasticsearchBackend:
    """
    SearchBackend backed by the official Elasticsearch client

    MetaCPAN still addresses documents as /{index}/{type}, which the client's
    typed search() no longer supports, so the first page is requested through
    perform_request and continuation pages through the regular scroll API.
    """

    def __init__(self, nodes: Union[str, List[str]], **client_kwargs):
        if isinstance(nodes, str):
            nodes = [nodes]
        self.nodes = nodes
        self.es = Elasticsearch(hosts=nodes, **client_kwargs)

    def search(
        self,
        *,
        index: str,
        doc_type: str,
        body: Mapping[str, Any],
        size: int,
        scroll: str,
        search_type: Optional[str] = None,
        params: Optional[Mapping[str, Any]] = None,
    ) -> Dict[str, Any]:
        query_params: Dict[str, Any] = {"size": size, "scroll": scroll}
        if search_type:
            query_params["search_type"] = search_type
        if params:
            query_params.update(params)

        path = f"/{quote(index, safe='')}/{quote(doc_type, safe='')}/_search"
        logger.debug(f"POST {path} params={query_params}")
        response = self.es.perform_request(
            "POST", path, params=query_params, headers=JSON_HEADERS, body=dict(body)
        )
        return response.body

    def scroll(self, *, scroll_id: str, scroll: str) -> Dict[str, Any]:
        return self.es.scroll(scroll_id=scroll_id, scroll=scroll).body

    def clear_scroll(self, *, scroll_id: str) -> Any:
        return self.es.clear_scroll(scroll_id=scroll_id)

    def close(self) -> None:
        self.es.close()
