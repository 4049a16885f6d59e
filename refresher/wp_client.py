import logging
from typing import Any, Dict, Optional

import requests
from requests.auth import HTTPBasicAuth

from refresher.errors import FetchError, PublishError

logger = logging.getLogger("wp_client")


def _snippet(resp: requests.Response) -> str:
    return f"{resp.status_code} {resp.text[:300]}"


class WordPressClient:
    """Reads and overwrites page content through the WordPress REST API."""

    def __init__(self, base_url: str, user: str, app_password: str, session: Optional[requests.Session] = None) -> None:
        self.base_url = base_url.rstrip("/")
        self.auth = HTTPBasicAuth(user, app_password)
        self.session = session or requests.Session()

    def request(self, method: str, path: str, timeout: float, **kwargs: Any) -> requests.Response:
        url = f"{self.base_url}/wp-json/wp/v2/{path.lstrip('/')}"
        return self.session.request(method, url, auth=self.auth, timeout=timeout, **kwargs)

    def get_page_html(self, page_id: int, timeout: float) -> str:
        try:
            resp = self.request("GET", f"pages/{page_id}", timeout, params={"_fields": "id,link,content"})
        except requests.RequestException as exc:
            raise FetchError(f"page {page_id}: request failed: {exc}") from exc
        if resp.status_code != 200:
            raise FetchError(f"page {page_id}: WP GET failed: {_snippet(resp)}")
        try:
            data = resp.json()
        except ValueError:
            raise FetchError(f"page {page_id}: WP GET returned a non-JSON body") from None

        content = data.get("content") if isinstance(data, dict) else None
        rendered = content.get("rendered") if isinstance(content, dict) else None
        if not isinstance(rendered, str):
            raise FetchError(f"page {page_id}: response has no content.rendered string")
        return rendered

    def update_page(self, page_id: int, html: str, timeout: float) -> Dict[str, Any]:
        try:
            resp = self.request("POST", f"pages/{page_id}", timeout, json={"content": html})
        except requests.RequestException as exc:
            raise PublishError(f"page {page_id}: request failed: {exc}") from exc
        if resp.status_code not in (200, 201):
            raise PublishError(f"page {page_id}: WP UPDATE failed: {_snippet(resp)}")
        try:
            data = resp.json()
        except ValueError:
            logger.warning("page=%s updated but response body was not JSON", page_id)
            return {}
        return data if isinstance(data, dict) else {}
