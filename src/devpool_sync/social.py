"""
Social media announcements for newly mirrored issues.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Final

import requests

from .exceptions import RemoteCallError
from .labels import PRICING_PREFIX, TIME_PREFIX, find_label, label_value

if TYPE_CHECKING:
    from .models import Issue

logger: logging.Logger = logging.getLogger(__name__)

_TWEETS_URL: Final[str] = "https://api.twitter.com/2/tweets"
_TIMEOUT_SECONDS: Final[int] = 30


def get_social_media_text(issue: Issue) -> str:
    """Return text for social media (twitter, telegram, etc.)

    The mirrored issue body holds the URL of the partner issue.

    Example:
        50 USD for <1 Hour

        https://github.com/ubiquity/pay.ubq.fi/issues/65
    """
    price_label = find_label(issue.labels, PRICING_PREFIX)
    time_label = find_label(issue.labels, TIME_PREFIX)
    price = label_value(price_label.name) if price_label else ""
    time = label_value(time_label.name) if time_label else ""
    return f"{price} for {time}\n\n{issue.body}"


class TwitterPoster:
    """Posts text to X/Twitter through the v2 API with a user access token."""

    def __init__(self, token: str, *, session: requests.Session | None = None) -> None:
        self.token: str = token
        self.session: requests.Session = session or requests.Session()

    def post(self, text: str) -> str:
        """Post text and return the id of the created post.

        Raises:
            RemoteCallError: If the request fails or the response has no post id
        """
        try:
            response = self.session.post(
                _TWEETS_URL,
                json={"text": text},
                headers={"Authorization": f"Bearer {self.token}"},
                timeout=_TIMEOUT_SECONDS,
            )
            response.raise_for_status()
            post_id = response.json().get("data", {}).get("id")
        except (requests.RequestException, ValueError) as e:
            msg = f"Failed to post tweet: {e}"
            raise RemoteCallError(msg) from e

        if not post_id:
            msg = "Tweet response did not contain a post id"
            raise RemoteCallError(msg)
        logger.debug(f"Posted tweet {post_id}")
        return str(post_id)
