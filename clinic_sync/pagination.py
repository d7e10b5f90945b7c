from typing import Any, Dict, List, Optional

from clinic_sync.config import Config
from clinic_sync.http_client import RetryingHttpClient
from clinic_sync.parsing import parse_json_body
from clinic_sync.request_helpers import build_url, with_query
from clinic_sync.small_utils import dig

PER_PAGE = 100
MAX_PAGES = 200


def extract_next_url(payload: Any, base_url: str) -> Optional[str]:
    if not isinstance(payload, dict):
        return None
    nxt = dig(payload, "links.next") or payload.get("next")
    if not nxt or not isinstance(nxt, str):
        return None
    if nxt.startswith(("http://", "https://")):
        return nxt
    return build_url(base_url, nxt)


def extract_items(payload: Any) -> List[Any]:
    """``items`` if present, else the first list-valued field in key order."""
    if not isinstance(payload, dict):
        return []
    items = payload.get("items")
    if isinstance(items, list):
        return items
    for value in payload.values():
        if isinstance(value, list):
            return value
    return []


class Paginator:
    """Drains one collection endpoint, following ``links.next`` when the API
    supplies it and falling back to ``page``/``per_page`` counting when not.
    """

    def __init__(
        self,
        client: RetryingHttpClient,
        log,
        per_page: int = PER_PAGE,
        max_pages: int = MAX_PAGES,
    ):
        self.client = client
        self.log = log
        self.per_page = per_page
        self.max_pages = max_pages

    def drain(
        self,
        endpoint: str,
        base_params: Optional[Dict[str, Any]],
        config: Config,
    ) -> List[Any]:
        base_params = dict(base_params or {})
        page = int(base_params.get("page", 1))
        per_page = int(base_params.get("per_page", self.per_page))

        records: List[Any] = []
        next_url: Optional[str] = None
        pages = 0

        while pages < self.max_pages:
            if next_url:
                url = next_url
            else:
                params = dict(base_params)
                if config.clinic_id:
                    params["clinic_id"] = config.clinic_id
                params["page"] = page
                params["per_page"] = per_page
                url = with_query(build_url(config.base_url, endpoint), params)

            resp = self.client.fetch(url, config.api_key)
            payload = parse_json_body(resp.body_text, resp.status)
            batch = extract_items(payload)
            records.extend(batch)
            pages += 1

            found = extract_next_url(payload, config.base_url)
            if found:
                next_url = found
                continue
            if next_url:
                # following links: no link means the last page
                break
            if len(batch) < per_page:
                break
            page += 1
        else:
            self.log.info(
                f"[paginate] {endpoint}: stopped at page cap {self.max_pages}"
            )

        self.log.info(
            f"[paginate] {endpoint}: {len(records)} records over {pages} pages"
        )
        return records
