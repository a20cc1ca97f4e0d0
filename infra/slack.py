"""Slack client for sending job notifications."""

import os
from typing import Optional

import httpx
from loguru import logger


def get_webhook_url() -> Optional[str]:
    """Slack webhook URL from the environment, None when not configured."""
    return os.getenv("SLACK_WEBHOOK_URL")


def send_message(text: str, webhook_url: Optional[str] = None) -> bool:
    """Send a message to Slack.

    Args:
        text: Message text (supports Slack markdown)
        webhook_url: Override webhook URL

    Returns:
        True if sent successfully, False otherwise
    """
    url = webhook_url or get_webhook_url()

    if not url:
        logger.warning("Slack webhook URL not configured")
        return False

    try:
        response = httpx.post(url, json={"text": text}, timeout=10.0)
    except httpx.HTTPError as e:
        logger.error(f"Failed to send Slack message: {e}")
        return False

    if response.status_code == 200:
        logger.info("Sent Slack message")
        return True
    logger.error(f"Slack API error: {response.status_code} - {response.text}")
    return False


def send_run_summary(
    job_name: str,
    summary: str,
    failed: bool = False,
    webhook_url: Optional[str] = None,
) -> bool:
    """Send a formatted end-of-run notification."""
    title = f"*{job_name} failed*" if failed else f"*{job_name} complete*"
    return send_message(f"{title}\n• {summary}", webhook_url)
