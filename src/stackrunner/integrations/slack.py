"""Slack notification for finished stack runs.

The run summary is sent as markdown through an incoming webhook. Webhook URLs
come from the environment, so they are checked before anything is sent.
"""

from urllib.parse import urlparse

import requests

ALLOWED_SLACK_HOSTS = {"hooks.slack.com", "hooks.slack-gov.com"}


def validate_webhook_url(webhook_url: str) -> None:
    """Raise ValueError unless ``webhook_url`` is an HTTPS Slack webhook.

    Called by the CLI before any stack is touched, so a bad URL fails the
    run up front instead of after every operation has finished.
    """
    parsed = urlparse(webhook_url)
    if parsed.scheme != "https":
        raise ValueError("Slack webhook URL must use HTTPS")
    if parsed.hostname not in ALLOWED_SLACK_HOSTS:
        raise ValueError(
            f"Invalid Slack webhook host {parsed.hostname!r}: "
            f"must be one of {sorted(ALLOWED_SLACK_HOSTS)}"
        )


def post_to_slack(report: str, webhook_url: str, timeout: int = 30) -> None:
    """Send a markdown run summary to the channel behind ``webhook_url``."""
    validate_webhook_url(webhook_url)
    response = requests.post(webhook_url, json=_message(report), timeout=timeout)
    response.raise_for_status()


def _message(report: str) -> dict:
    return {"text": report, "mrkdwn": True}
