"""
Output records for comments and posts.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .config import POST_URL_BASE
from .data_models import ListingIdentity
from .parsing import _dig, item_shortcode


def _epoch_to_dt(v) -> Optional[datetime]:
    try:
        return datetime.fromtimestamp(int(v), tz=timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError):
        return None


def post_url(code: str) -> str:
    return f"{POST_URL_BASE}{code}"


def format_comment(item: Dict[str, Any], identity: ListingIdentity, position: int) -> Dict[str, Any]:
    node = item.get("node") or {}
    owner = node.get("owner") or None
    return {
        "#debug": {
            "index": position,
            **identity.user_data(),
            **identity.debug_info(),
        },
        "id": node.get("id"),
        "postId": identity.owner_id,
        "text": node.get("text"),
        "position": position,
        "timestamp": _epoch_to_dt(node.get("created_at")),
        "ownerId": owner.get("id") if owner else None,
        "ownerIsVerified": owner.get("is_verified") if owner else None,
        "ownerUsername": owner.get("username") if owner else None,
        "ownerProfilePicUrl": owner.get("profile_pic_url") if owner else None,
    }


def format_single_post(node: Dict[str, Any]) -> Dict[str, Any]:
    """Business fields of one post, for both GraphQL nodes and section-layout media."""
    if not node:
        return {}
    code = node.get("shortcode") or node.get("code")
    caption = _dig(node, "edge_media_to_caption", "edges", 0, "node", "text")
    if caption is None:
        caption = _dig(node, "caption", "text")
    owner = node.get("owner") or node.get("user") or {}
    location = node.get("location") or {}
    comments = _dig(node, "edge_media_to_comment", "count")
    if comments is None:
        comments = node.get("comment_count")
    likes = _dig(node, "edge_media_preview_like", "count")
    if likes is None:
        likes = _dig(node, "edge_liked_by", "count")
    if likes is None:
        likes = node.get("like_count")
    return {
        "id": str(node.get("id") or node.get("pk") or "") or None,
        "type": node.get("__typename") or node.get("media_type"),
        "shortCode": code,
        "caption": caption or "",
        "url": post_url(code) if code else None,
        "commentsCount": comments,
        "likesCount": likes,
        "displayUrl": node.get("display_url"),
        "alt": node.get("accessibility_caption"),
        "timestamp": _epoch_to_dt(node.get("taken_at_timestamp") or node.get("taken_at")),
        "ownerId": str(owner.get("id") or owner.get("pk") or "") or None,
        "ownerUsername": owner.get("username"),
        "locationName": location.get("name"),
    }


def format_post(item: Dict[str, Any], identity: ListingIdentity, position: int) -> Dict[str, Any]:
    node = item.get("node") if isinstance(item.get("node"), dict) else item
    location_id = _dig(node, "location", "id") or _dig(node, "location", "pk")
    owner_id = _dig(node, "owner", "id") or _dig(node, "user", "pk")
    return {
        **identity.user_data(),
        "#debug": {
            **identity.debug_info(),
            "shortcode": item_shortcode(item),
            "postLocationId": location_id,
            "postOwnerId": owner_id,
        },
        "queryTag": identity.tag_name,
        "queryUsername": identity.username,
        "queryLocation": identity.location_name,
        "position": position,
        **format_single_post(node),
    }


def format_record(item: Dict[str, Any], identity: ListingIdentity, position: int) -> Dict[str, Any]:
    if identity.kind.is_posts:
        return format_post(item, identity, position)
    return format_comment(item, identity, position)
