"""
Monday.com gateway — posts updates (comments) to board items.

Only the comment capability is exposed.  A failed call is logged and
reported as ``False``; it never raises into the workflow.

Usage:
    gw = MondayGateway(api_url=..., token=...)
    if gw.add_comment("123456", "[Wellspring] Step advanced to: Drafting"):
        ...
"""

from __future__ import annotations

import logging

import requests

from wellspring.integrations.base import DEFAULT_TIMEOUT, BaseGateway, GatewayResult

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.monday.com/v2"

_CREATE_UPDATE_MUTATION = """
mutation ($itemId: ID!, $body: String!) {
  create_update(item_id: $itemId, body: $body) {
    id
  }
}
""".strip()


class MondayGateway(BaseGateway):
    """Thin client over the Monday.com GraphQL endpoint."""

    service_name = "Monday"

    def __init__(
        self,
        api_url: str = DEFAULT_API_URL,
        token: str | None = None,
        timeout: int = DEFAULT_TIMEOUT,
        session: requests.Session | None = None,
    ) -> None:
        super().__init__(session=session, timeout=timeout)
        self.api_url = api_url
        self.token = token

    def is_configured(self) -> bool:
        return bool(self.token)

    def _headers(self) -> dict:
        return {
            "Authorization": self.token or "",
            "Content-Type": "application/json",
            "API-Version": "2024-01",
        }

    def query(self, query: str, variables: dict | None = None) -> GatewayResult:
        """Run one GraphQL operation.  GraphQL ``errors`` count as failure."""
        result = self.send(
            "POST",
            self.api_url,
            self._headers(),
            json_body={"query": query, "variables": variables or {}},
        )
        if result.ok and isinstance(result.data, dict) and result.data.get("errors"):
            messages = "; ".join(str(e.get("message", e)) for e in result.data["errors"])
            logger.warning("Monday GraphQL error: %s", messages)
            result.ok = False
            result.error = messages[:500]
        return result

    def add_comment(self, item_id: str, text: str) -> bool:
        """Post ``text`` as an update on item ``item_id``."""
        if not self.is_configured():
            logger.warning("Monday.com not configured; comment on item %s skipped", item_id)
            return False

        result = self.query(_CREATE_UPDATE_MUTATION, {"itemId": str(item_id), "body": text})
        if not result.ok:
            logger.error("Monday comment failed item=%s error=%s", item_id, result.error)
            return False

        update_id = ((result.data or {}).get("data") or {}).get("create_update", {}).get("id")
        logger.info("Monday comment posted item=%s update=%s (%dms)", item_id, update_id, result.duration_ms)
        return True
