"""
Alert recording and webhook delivery for BreachWatch.

The AlertService listens to IncidentManager events. New incidents and status
changes are recorded as alerts and POSTed as JSON to every webhook that was
registered for the incident. Delivery never fails the operation that caused
it: errors are logged and the alert stays recorded.
"""

import json
import logging
import time
import urllib.error
import urllib.request
from concurrent.futures import Executor
from typing import Any

from breachwatch.exceptions import AlertError
from breachwatch.incidents.manager import IncidentEvent, IncidentEventType
from breachwatch.incidents.models import Alert, AlertType
from breachwatch.incidents.validator import SourceValidator
from breachwatch.models.base import generate_uuid, serialize_value, utc_now
from breachwatch.storage.interfaces import AlertStore
from breachwatch.version import __version__

logger = logging.getLogger("breachwatch.incidents.alerts")

# Manager events that raise an alert.
ALERTING_EVENTS: dict[IncidentEventType, AlertType] = {
    IncidentEventType.CREATED: AlertType.NEW_INCIDENT,
    IncidentEventType.STATUS_CHANGED: AlertType.STATUS_CHANGE,
}


class AlertService:
    """
    Records alerts and notifies webhook subscribers.

    Example:
        Wiring alerts to a manager::

            alerts = AlertService(InMemoryAlertRepository())
            manager.on_event(alerts.handle_event)
            alerts.register_webhook(incident.incident_id, "https://hooks.example.com/x")
    """

    def __init__(
        self,
        store: AlertStore,
        timeout_seconds: float = 5.0,
        retries: int = 3,
        retry_backoff_seconds: float = 0.5,
        executor: Executor | None = None,
    ) -> None:
        """
        Initialize the alert service.

        Args:
            store: Storage for alerts and webhook subscriptions.
            timeout_seconds: Timeout for each webhook request.
            retries: Attempts per webhook before giving up.
            retry_backoff_seconds: Base delay between attempts; the n-th
                retry waits n times this long.
            executor: When given, webhook delivery runs on it instead of
                the calling thread.
        """
        self._store = store
        self._timeout = timeout_seconds
        self._retries = max(1, retries)
        self._backoff = retry_backoff_seconds
        self._executor = executor
        self._url_validator = SourceValidator()

    def register_webhook(self, incident_id: str, url: str) -> None:
        """
        Subscribe a webhook to an incident's alerts.

        Raises:
            ValidationError: If the URL is not an http(s) URL with a host.
        """
        self._url_validator.validate_webhook_url(url).raise_if_invalid()
        self._store.add_webhook(incident_id, url.strip())
        logger.info(f"Registered webhook for incident {incident_id}")

    def list_webhooks(self, incident_id: str) -> list[str]:
        return self._store.list_webhooks(incident_id)

    def get_alerts(self, incident_id: str) -> list[Alert]:
        """Get the alerts recorded for an incident, oldest first."""
        return self._store.list_alerts(incident_id)

    def clear_alerts(self, incident_id: str) -> bool:
        """Delete an incident's alerts and webhook subscriptions."""
        removed_alerts = self._store.delete_alerts(incident_id)
        removed_hooks = self._store.delete_webhooks(incident_id)
        return removed_alerts or removed_hooks

    def notify(
        self,
        incident_id: str,
        alert_type: AlertType,
        payload: dict[str, Any],
    ) -> Alert:
        """
        Record an alert and deliver it to the incident's webhooks.

        Args:
            incident_id: The incident the alert is about.
            alert_type: What triggered the alert.
            payload: Extra data included in the webhook body.

        Returns:
            The recorded Alert.
        """
        alert = self._store.add_alert(
            Alert(
                alert_id=generate_uuid(),
                incident_id=incident_id,
                alert_type=alert_type,
                triggered_at=utc_now(),
            )
        )

        body = {"alert": alert.to_dict(), "payload": serialize_value(payload)}
        for url in self._store.list_webhooks(incident_id):
            if self._executor is not None:
                self._executor.submit(self._deliver, url, body)
            else:
                self._deliver(url, body)
        return alert

    def handle_event(self, event: IncidentEvent) -> None:
        """IncidentManager callback turning events into alerts."""
        if event.event_type == IncidentEventType.DELETED:
            self.clear_alerts(event.incident_id)
            return

        alert_type = ALERTING_EVENTS.get(event.event_type)
        if alert_type is None:
            return

        payload: dict[str, Any] = {"incident": event.incident.to_dict()}
        if event.old_value is not None:
            payload["old_status"] = event.old_value
        if event.new_value is not None:
            payload["new_status"] = event.new_value
        self.notify(event.incident_id, alert_type, payload)

    def _deliver(self, url: str, body: dict[str, Any]) -> bool:
        """Deliver one webhook, retrying; return whether it succeeded."""
        for attempt in range(1, self._retries + 1):
            try:
                self._post(url, body)
                logger.debug(f"Delivered alert to {url} on attempt {attempt}")
                return True
            except (AlertError, urllib.error.URLError, OSError) as e:
                logger.warning(
                    f"Webhook delivery to {url} failed "
                    f"(attempt {attempt}/{self._retries}): {e}"
                )
                if attempt < self._retries and self._backoff > 0:
                    time.sleep(self._backoff * attempt)
        logger.error(f"Giving up on webhook {url} after {self._retries} attempts")
        return False

    def _post(self, url: str, body: dict[str, Any]) -> None:
        request = urllib.request.Request(
            url,
            data=json.dumps(body).encode("utf-8"),
            headers={
                "Content-Type": "application/json",
                "User-Agent": f"BreachWatch/{__version__}",
            },
            method="POST",
        )
        with urllib.request.urlopen(request, timeout=self._timeout) as response:
            if response.status >= 400:
                raise AlertError(
                    f"Webhook returned status {response.status}",
                    {"url": url, "status": response.status},
                )
