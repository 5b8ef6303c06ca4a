from typing import Any, Dict, Optional

import requests
from requests.adapters import HTTPAdapter, Retry

from .errors import HttpRequestError


class HttpClient:
    def __init__(self, timeout: float, max_retries: int, user_agent: str = "jupiter-trader/0.1") -> None:
        self.timeout = timeout
        self.session = requests.Session()
        # JSON-RPC goes over POST; resending the same signed transaction is idempotent.
        retry_policy = Retry(
            total=max_retries,
            backoff_factor=0.2,
            status_forcelist=(429, 500, 502, 503, 504),
            allowed_methods=("GET", "POST"),
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry_policy, pool_connections=4, pool_maxsize=16)
        self.session.mount("https://", adapter)
        self.session.mount("http://", adapter)
        self.session.headers.update({"User-Agent": user_agent})

    def get_json(self, url: str, params: Optional[Dict[str, Any]] = None) -> Any:
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as exc:
            raise HttpRequestError("GET request failed", url=url, cause=exc) from exc
        return self._decode(url, response)

    def post_json(self, url: str, payload: Dict[str, Any]) -> Any:
        try:
            response = self.session.post(url, json=payload, timeout=self.timeout)
        except requests.RequestException as exc:
            raise HttpRequestError("POST request failed", url=url, cause=exc) from exc
        return self._decode(url, response)

    def close(self) -> None:
        self.session.close()

    @staticmethod
    def _decode(url: str, response: requests.Response) -> Any:
        status = response.status_code
        if status >= 400:
            raise HttpRequestError("request returned error status", url=url, http_status=status, body=response.text)
        try:
            return response.json()
        except ValueError as exc:
            raise HttpRequestError(
                "response was not valid JSON", url=url, http_status=status, body=response.text, cause=exc
            ) from exc
