"""Unit tests for the notification collaborator and webhook client"""

import asyncio
import pytest
import httpx
from unittest.mock import AsyncMock, MagicMock, patch
from loan_engine.infrastructure.clients.notifications import NotificationClient
from loan_engine.services.notifications import Notifier, WebhookNotifier, publish

URL = "http://notifications.test/loan-events"


class ExplodingNotifier(Notifier):
    def __init__(self):
        self.calls = 0

    def notify(self, event_kind, payload):
        self.calls += 1
        raise RuntimeError("mail relay down")


def test_notifier_must_implement_notify():
    class Silent(Notifier):
        pass

    with pytest.raises(TypeError):
        Silent()


def test_publish_never_raises():
    notifier = ExplodingNotifier()

    publish(notifier, [("application.submitted", {"application_id": 1}), ("application.approved", {"application_id": 1})])

    assert notifier.calls == 2


def test_webhook_notifier_schedules_delivery():
    schedule = MagicMock()
    client = NotificationClient(webhook_url=URL)

    WebhookNotifier(schedule, client).notify("contract.signed", {"contract_id": 7})

    schedule.assert_called_once_with(client.send_event, "contract.signed", {"contract_id": 7})


@patch("loan_engine.infrastructure.clients.notifications.asyncio.sleep", new_callable=AsyncMock)
@patch("httpx.AsyncClient.post", new_callable=AsyncMock)
def test_send_event_success(mock_post: AsyncMock, mock_sleep: AsyncMock):
    mock_post.return_value = httpx.Response(202, request=httpx.Request("POST", URL))

    delivered = asyncio.run(NotificationClient(webhook_url=URL).send_event("payment.paid", {"payment_id": 3}))

    assert delivered is True
    assert mock_post.call_args.kwargs["json"] == {"event": "payment.paid", "payment_id": 3}
    mock_sleep.assert_not_called()


@patch("loan_engine.infrastructure.clients.notifications.asyncio.sleep", new_callable=AsyncMock)
@patch("httpx.AsyncClient.post", new_callable=AsyncMock)
def test_send_event_retries_then_gives_up(mock_post: AsyncMock, mock_sleep: AsyncMock):
    mock_post.side_effect = httpx.ConnectError("connection refused")
    client = NotificationClient(webhook_url=URL)
    client.max_retries = 3

    delivered = asyncio.run(client.send_event("payment.late", {"payment_id": 3}))

    assert delivered is False
    assert mock_post.call_count == 3
    # Exponential backoff between attempts: base, 2 * base
    assert [c.args[0] for c in mock_sleep.call_args_list] == [client.backoff_base, client.backoff_base * 2]


@patch("loan_engine.infrastructure.clients.notifications.asyncio.sleep", new_callable=AsyncMock)
@patch("httpx.AsyncClient.post", new_callable=AsyncMock)
def test_send_event_retries_on_server_error(mock_post: AsyncMock, mock_sleep: AsyncMock):
    request = httpx.Request("POST", URL)
    mock_post.side_effect = [httpx.Response(503, request=request), httpx.Response(200, request=request)]

    delivered = asyncio.run(NotificationClient(webhook_url=URL).send_event("contract.completed", {"contract_id": 1}))

    assert delivered is True
    assert mock_post.call_count == 2
