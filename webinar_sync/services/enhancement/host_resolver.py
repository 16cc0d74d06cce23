"""
@file: webinar_sync/services/enhancement/host_resolver.py
@description: Дополнение вебинаров данными организатора через /users/{host_id}
@dependencies: ZoomApiClient
"""

from typing import Any, Dict

from webinar_sync.services.enhancement.base import EnhancementProcessor
from webinar_sync.services.enhancement.result import Enhanced


class HostResolver(EnhancementProcessor):
    """Email и имя организатора. Отсутствие host_id и host_email ошибкой не является."""

    name = "host-details"

    async def enhance_one(self, webinar: Dict[str, Any]) -> Enhanced[Dict[str, Any]]:
        host_id = webinar.get("host_id")
        host_email = webinar.get("host_email")

        if not host_id:
            reason = "Host email already present" if host_email else "No host_id or host_email"
            return Enhanced.skipped(dict(webinar), reason)

        if host_email and webinar.get("host_name"):
            return Enhanced.skipped(dict(webinar), "Host details already present")

        host_data = await self.client.get_user(host_id)

        enhanced = dict(webinar)
        enhanced["host_email"] = host_data.get("email") or host_email
        enhanced["host_name"] = host_data.get("display_name") or " ".join(
            part for part in (host_data.get("first_name"), host_data.get("last_name")) if part
        ) or None
        enhanced["host_first_name"] = host_data.get("first_name")
        enhanced["host_last_name"] = host_data.get("last_name")
        enhanced["host_info"] = {
            "id": host_id,
            "email": enhanced["host_email"],
            "display_name": enhanced["host_name"],
            "first_name": enhanced["host_first_name"],
            "last_name": enhanced["host_last_name"],
        }
        return Enhanced.ok(enhanced)
