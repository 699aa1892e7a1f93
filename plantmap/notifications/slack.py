import logging

import httpx

from plantmap.config import get_config
from plantmap.models import StatusRequest

logger = logging.getLogger(__name__)


async def send_slack_notification(message: str, blocks: list[dict] | None = None) -> bool:
    """Send a notification to Slack via webhook.

    Args:
        message: The fallback text message.
        blocks: Optional list of Slack Block Kit blocks for rich formatting.

    Returns:
        bool: True if successful, False otherwise.
    """
    config = get_config()

    # Check if notifications are enabled and webhook URL is configured
    if not config.notifications.enabled:
        logger.debug("slack_notifications_disabled_by_config")
        return False

    if not config.notifications.slack_webhook_url:
        logger.warning("slack_webhook_url_missing: Notifications enabled but no webhook URL configured")
        return False

    payload = {"text": message}
    if blocks:
        payload["blocks"] = blocks

    try:
        async with httpx.AsyncClient() as client:
            response = await client.post(config.notifications.slack_webhook_url, json=payload)
            if response.status_code != 200:
                logger.error(
                    "slack_notification_failed: status=%s response=%s",
                    response.status_code,
                    response.text,
                )
                return False

            logger.info("slack_notification_sent")
            return True
    except httpx.HTTPError as e:
        logger.error("slack_notification_error: %s", str(e))
        return False


def _tracker_summary(tracker_ids: list[str], limit: int = 10) -> str:
    shown = ", ".join(tracker_ids[:limit])
    if len(tracker_ids) > limit:
        shown += f" (+{len(tracker_ids) - limit} more)"
    return shown


def build_submission_message(request: StatusRequest) -> tuple[str, list[dict]]:
    """Fallback text and blocks announcing a new pending request."""
    text = (
        f"{request.submitted_by} requested {request.task_type.label} "
        f"{request.requested_state.value} for {len(request.tracker_ids)} tracker(s)"
    )
    fields = [
        {"type": "mrkdwn", "text": f"*Task:*\n{request.task_type.label}"},
        {"type": "mrkdwn", "text": f"*State:*\n{request.requested_state.value}"},
        {"type": "mrkdwn", "text": f"*Trackers:*\n{_tracker_summary(request.tracker_ids)}"},
        {"type": "mrkdwn", "text": f"*Submitted by:*\n{request.submitted_by}"},
    ]
    blocks = [
        {"type": "header", "text": {"type": "plain_text", "text": "Tracker status request"}},
        {"type": "section", "fields": fields},
    ]
    if request.message:
        blocks.append({"type": "section", "text": {"type": "mrkdwn", "text": f"> {request.message}"}})
    return text, blocks


def build_review_message(request: StatusRequest, cycle_completed: bool = False) -> tuple[str, list[dict]]:
    """Fallback text and blocks announcing an approval or rejection."""
    text = (
        f"{request.task_type.label} request from {request.submitted_by} "
        f"{request.status.value} by {request.reviewed_by}"
    )
    if request.rejection_reason:
        text += f": {request.rejection_reason}"
    if cycle_completed:
        text += f". {request.task_type.label} cycle is complete."
    blocks = [{"type": "section", "text": {"type": "mrkdwn", "text": text}}]
    return text, blocks
