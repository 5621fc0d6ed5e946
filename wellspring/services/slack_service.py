"""
Slack Service
Posts GEODE nudges to a channel or as direct messages
"""
import logging
from typing import Optional

import httpx

from ..config import SLACK_BOT_TOKEN
from ..exceptions import ConfigurationError, UpstreamError

logger = logging.getLogger(__name__)

SLACK_API_BASE = "https://slack.com/api"


class SlackService:
    def __init__(self, bot_token: Optional[str] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.bot_token = bot_token if bot_token is not None else SLACK_BOT_TOKEN
        self.transport = transport

    def is_configured(self) -> bool:
        return bool(self.bot_token)

    async def _call(self, method: str, payload: dict, http_method: str = "POST") -> dict:
        """Slack returns 200 with ok=false on API errors"""
        if not self.bot_token:
            raise ConfigurationError("SLACK_BOT_TOKEN is not set")

        headers = {"Authorization": f"Bearer {self.bot_token}"}
        async with httpx.AsyncClient(transport=self.transport, timeout=15.0) as client:
            if http_method == "GET":
                response = await client.get(f"{SLACK_API_BASE}/{method}", params=payload, headers=headers)
            else:
                response = await client.post(f"{SLACK_API_BASE}/{method}", json=payload, headers=headers)

        if response.status_code != 200:
            raise UpstreamError("Slack", response.status_code, method)
        data = response.json()
        if not data.get("ok"):
            raise UpstreamError("Slack", detail=f"{method}: {data.get('error', 'unknown_error')}")
        return data

    async def post_message(self, channel: str, text: str) -> dict:
        try:
            data = await self._call("chat.postMessage", {"channel": channel, "text": text})
        except (UpstreamError, ConfigurationError, httpx.HTTPError) as e:
            logger.error(f"❌ Slack post to {channel} failed: {str(e)}")
            return {"success": False, "error": str(e)}

        logger.info(f"📤 Slack message posted to {channel}")
        return {"success": True, "ts": data.get("ts"), "channel": data.get("channel")}

    async def send_direct_message(self, user_id: str, text: str) -> dict:
        """Open (or reuse) the DM channel, then post into it"""
        try:
            opened = await self._call("conversations.open", {"users": user_id})
        except (UpstreamError, ConfigurationError, httpx.HTTPError) as e:
            logger.error(f"❌ Could not open Slack DM with {user_id}: {str(e)}")
            return {"success": False, "error": str(e)}

        return await self.post_message(opened["channel"]["id"], text)

    async def lookup_user_by_email(self, email: str) -> Optional[str]:
        try:
            data = await self._call("users.lookupByEmail", {"email": email}, http_method="GET")
        except (UpstreamError, ConfigurationError, httpx.HTTPError) as e:
            logger.info(f"ℹ️ Slack user lookup failed for {email}: {str(e)}")
            return None
        return data.get("user", {}).get("id")
