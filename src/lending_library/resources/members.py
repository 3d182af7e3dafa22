"""Member Resources

Resources:
- library://members/list - all registered members
- library://members/{member_id}/summary - a member's loans and queue positions
"""

import logging
from typing import Any

from fastmcp.exceptions import ResourceError

from ..database.member_repository import MemberRepository
from ..database.session import session_scope
from ..tools.common import build_library_service

logger = logging.getLogger(__name__)


async def list_members_handler() -> dict[str, Any]:
    try:
        logger.debug("MCP Resource Request - members/list")

        with session_scope() as session:
            members = MemberRepository(session).get_all()

        return {
            "members": [member.model_dump(mode="json") for member in members],
            "total": len(members),
        }

    except Exception as e:
        logger.exception("Error in members/list resource")
        raise ResourceError(f"Failed to retrieve member list: {e!s}") from e


async def member_summary_handler(member_id: str) -> dict[str, Any]:
    """
    Returns the member's current loans and, for every book they are queued
    for, their zero-based position in that queue.
    """
    try:
        logger.debug("MCP Resource Request - members/%s/summary", member_id)

        with session_scope() as session:
            service = build_library_service(session)
            summary = service.member_summary(member_id)

        if not summary.ok:
            raise ResourceError(f"Member not found: {member_id}")

        return summary.model_dump(mode="json")

    except ResourceError:
        raise
    except Exception as e:
        logger.exception("Error in members/{member_id}/summary resource")
        raise ResourceError(f"Failed to retrieve member summary: {e!s}") from e


member_resources: list[dict[str, Any]] = [
    {
        "uri": "library://members/list",
        "name": "Member Directory",
        "description": "All registered library members.",
        "mime_type": "application/json",
        "handler": list_members_handler,
    },
    {
        "uri_template": "library://members/{member_id}/summary",
        "name": "Member Summary",
        "description": "A member's current loans and their position in every reservation queue.",
        "mime_type": "application/json",
        "handler": member_summary_handler,
    },
]
