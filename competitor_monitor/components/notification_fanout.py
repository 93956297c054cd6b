"""
Notification fan-out for created alerts.

Each alert triggers two independent jobs on a small thread pool: queueing
an email and sending a push notification. Neither job can fail the crawl
that produced the alert, and a failure in one channel never blocks the
other.
"""

import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Set

import requests
from dateutil import tz
from requests.adapters import HTTPAdapter
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker
from urllib3.util.retry import Retry

from ..db.base import utcnow
from ..db.repositories import AlertRepository, EmailQueueRepository, TargetRepository
from ..interfaces import INotificationEnqueuer, IPushSender
from ..models.alert import CreatedAlert
from ..models.config import NotificationConfig, parse_clock_time
from ..models.notification import EnqueueResult, PushPayload, PushResult
from ..utils.error_handling import ErrorCategory, ErrorSeverity, get_error_tracker
from ..utils.logging import get_logger

logger = get_logger("notification.fanout")

ALERT_EMAIL_TEMPLATE = "alert_notification"
PUSH_TITLE = "New Alert from Competitor Monitor"


def _in_quiet_hours(minutes: int, start: int, end: int) -> bool:
    if end > start:
        return start <= minutes < end
    # Range crosses midnight, e.g. 22:00-06:00
    return minutes >= start or minutes < end


def calculate_scheduled_time(
    now: datetime,
    quiet_hours_start: Optional[str],
    quiet_hours_end: Optional[str],
    timezone_name: str = "UTC",
) -> datetime:
    """
    Earliest time a notification may go out, honoring quiet hours.

    Args:
        now: Current time (timezone-aware)
        quiet_hours_start: Local start of quiet hours as "HH:MM"
        quiet_hours_end: Local end of quiet hours as "HH:MM"
        timezone_name: IANA timezone the quiet hours are expressed in

    Returns:
        ``now`` outside quiet hours, otherwise the end of quiet hours in UTC
    """
    if not quiet_hours_start or not quiet_hours_end:
        return now

    user_tz = tz.gettz(timezone_name)
    if user_tz is None:
        logger.warning(f"Unknown timezone {timezone_name}, using UTC")
        user_tz = tz.UTC

    start_hour, start_minute = parse_clock_time(quiet_hours_start)
    end_hour, end_minute = parse_clock_time(quiet_hours_end)

    local_now = now.astimezone(user_tz)
    current = local_now.hour * 60 + local_now.minute
    if not _in_quiet_hours(current, start_hour * 60 + start_minute, end_hour * 60 + end_minute):
        return now

    quiet_end = local_now.replace(hour=end_hour, minute=end_minute, second=0, microsecond=0)
    if quiet_end <= local_now:
        quiet_end += timedelta(days=1)

    return quiet_end.astimezone(timezone.utc)


class EmailNotificationQueue:
    """Queues alert emails for an external sender, one row per alert."""

    def __init__(
        self,
        session_factory: sessionmaker,
        config: NotificationConfig,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.session_factory = session_factory
        self.config = config
        self.clock = clock

    def enqueue_alert_notification(self, alert_id: int) -> EnqueueResult:
        """
        Queue an email for an alert without waiting for delivery.

        Args:
            alert_id: Alert to announce

        Returns:
            EnqueueResult; ``reason`` explains skips and quiet-hours delays
        """
        try:
            with self.session_factory.begin() as session:
                alert = AlertRepository(session).get_alert(alert_id)
                if alert is None:
                    return EnqueueResult(success=False, reason="Alert not found")

                if not self.config.email_enabled:
                    return EnqueueResult(
                        success=False, reason="Email notifications disabled"
                    )

                if not self.config.to_email:
                    return EnqueueResult(success=False, reason="No recipient configured")

                if alert.alert_type not in self.config.alert_types:
                    return EnqueueResult(
                        success=False,
                        reason=f'Alert type "{alert.alert_type}" not enabled',
                    )

                now = self.clock()
                scheduled_for = calculate_scheduled_time(
                    now,
                    self.config.quiet_hours_start,
                    self.config.quiet_hours_end,
                    self.config.timezone,
                )

                target = TargetRepository(session).get_target(alert.target_id)
                template_data = {
                    "target_name": (target.name or target.url) if target else "Unknown Competitor",
                    "alert_type": alert.alert_type,
                    "message": alert.message,
                    "details": alert.details,
                    "dashboard_path": self.config.dashboard_path,
                }

                queue_id = EmailQueueRepository(session).enqueue_once(
                    alert_id=alert_id,
                    to_email=self.config.to_email,
                    template_name=ALERT_EMAIL_TEMPLATE,
                    template_data=template_data,
                    scheduled_for=scheduled_for,
                )

        except SQLAlchemyError as e:
            logger.error(
                "Failed to enqueue alert email",
                extra={"alert_id": alert_id, "error": str(e)},
            )
            return EnqueueResult(success=False, reason=str(e))

        if queue_id is None:
            return EnqueueResult(success=False, reason="Email already queued for this alert")

        delayed = scheduled_for > now
        return EnqueueResult(
            success=True,
            reason="quiet hours" if delayed else None,
            queue_id=queue_id,
            scheduled_for=scheduled_for,
        )


class PushGatewaySender:
    """Posts push notifications to an HTTP push gateway."""

    def __init__(
        self,
        gateway_url: str,
        token: Optional[str] = None,
        max_retries: int = 3,
        timeout: float = 10.0,
    ):
        """
        Initialize push sender.

        Args:
            gateway_url: Endpoint accepting push requests
            token: Bearer token for the gateway
            max_retries: Maximum number of retry attempts
            timeout: Request timeout in seconds
        """
        self.gateway_url = gateway_url
        self.token = token
        self.max_retries = max_retries
        self.timeout = timeout
        self.session = self._create_session()

    def _create_session(self) -> requests.Session:
        """Create a requests session with retry configuration."""
        session = requests.Session()

        retry_strategy = Retry(
            total=self.max_retries,
            backoff_factor=1,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["POST"],
        )

        adapter = HTTPAdapter(max_retries=retry_strategy)
        session.mount("http://", adapter)
        session.mount("https://", adapter)

        if self.token:
            session.headers["Authorization"] = f"Bearer {self.token}"

        return session

    def send_push(self, target_user_id: str, payload: PushPayload) -> PushResult:
        """Send a push notification to all of a user's subscriptions."""
        try:
            payload.validate()
        except ValueError as e:
            return PushResult(errors=[f"Invalid payload: {e}"])

        body = {
            "user_id": target_user_id,
            "notification": {
                "title": payload.title,
                "body": payload.body,
                "tag": payload.tag or "notification",
                "data": {"url": payload.url},
            },
        }

        try:
            response = self.session.post(self.gateway_url, json=body, timeout=self.timeout)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            return PushResult(errors=[str(e)])

        try:
            result = response.json()
        except ValueError:
            result = {}

        return PushResult(
            sent=int(result.get("sent", 0)),
            failed=int(result.get("failed", 0)),
            errors=list(result.get("errors", [])),
        )

    def close(self) -> None:
        self.session.close()


class DisabledPushSender:
    """Push channel used when no gateway is configured."""

    def send_push(self, target_user_id: str, payload: PushPayload) -> PushResult:
        return PushResult(errors=["Push notifications not configured"])


class NotificationFanout:
    """Fire-and-forget email and push delivery for created alerts."""

    def __init__(
        self,
        email_queue: INotificationEnqueuer,
        push_sender: IPushSender,
        config: Optional[NotificationConfig] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.email_queue = email_queue
        self.push_sender = push_sender
        self.config = config or NotificationConfig()
        self.clock = clock
        self._executor = ThreadPoolExecutor(
            max_workers=self.config.fanout_workers,
            thread_name_prefix="notification-fanout",
        )
        self._pending: Set[Future] = set()
        self._lock = threading.Lock()
        self.error_tracker = get_error_tracker()

    def dispatch(self, alert: CreatedAlert, owner_id: Optional[str] = None) -> None:
        """Submit email and push jobs for an alert; never raises."""
        try:
            self._submit(self._send_email, alert)
            self._submit(self._send_push, alert, owner_id)
        except RuntimeError as e:
            # Executor already shut down
            logger.error(
                "Notification fan-out unavailable",
                extra={"alert_id": alert.id, "error": str(e)},
            )

    def _submit(self, fn, *args) -> None:
        future = self._executor.submit(fn, *args)
        with self._lock:
            self._pending.add(future)
        future.add_done_callback(self._forget)

    def _forget(self, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)

    def _send_email(self, alert: CreatedAlert) -> None:
        try:
            result = self.email_queue.enqueue_alert_notification(alert.id)
        except Exception as e:
            logger.error(
                "Failed to enqueue alert email",
                extra={"alert_id": alert.id, "error": str(e)},
            )
            self.error_tracker.record_error(
                component="notification.fanout",
                category=ErrorCategory.NOTIFICATION,
                severity=ErrorSeverity.LOW,
                message=f"Email enqueue failed for alert {alert.id}",
                exception=e,
            )
            return

        if result.success:
            logger.info(
                "Alert email queued",
                extra={
                    "alert_id": alert.id,
                    "queue_id": result.queue_id,
                    "scheduled_for": result.scheduled_for,
                    "reason": result.reason,
                },
            )
        else:
            logger.info(
                "Alert email skipped",
                extra={"alert_id": alert.id, "reason": result.reason},
            )

    def _send_push(self, alert: CreatedAlert, owner_id: Optional[str]) -> None:
        if not owner_id:
            logger.debug("No owner for alert, skipping push", extra={"alert_id": alert.id})
            return

        if alert.alert_type.value not in self.config.alert_types:
            return

        now = self.clock()
        scheduled_for = calculate_scheduled_time(
            now,
            self.config.quiet_hours_start,
            self.config.quiet_hours_end,
            self.config.timezone,
        )
        if scheduled_for > now:
            logger.debug("Quiet hours, skipping push", extra={"alert_id": alert.id})
            return

        payload = PushPayload(
            title=PUSH_TITLE,
            body=f"{alert.alert_type.value}: {alert.message}",
            url=self.config.dashboard_path,
            tag=f"alert-{alert.id}",
        )

        try:
            result = self.push_sender.send_push(owner_id, payload)
        except Exception as e:
            logger.error(
                "Failed to send alert push notification",
                extra={"alert_id": alert.id, "error": str(e)},
            )
            self.error_tracker.record_error(
                component="notification.fanout",
                category=ErrorCategory.NOTIFICATION,
                severity=ErrorSeverity.LOW,
                message=f"Push send failed for alert {alert.id}",
                exception=e,
            )
            return

        logger.info(
            "Alert push notification sent",
            extra={
                "alert_id": alert.id,
                "sent": result.sent,
                "failed": result.failed,
                "errors": result.errors,
            },
        )

    def drain(self, timeout: Optional[float] = None) -> bool:
        """Wait for outstanding jobs. Returns True if all finished."""
        with self._lock:
            pending = set(self._pending)
        if not pending:
            return True

        _, not_done = wait(pending, timeout=timeout)
        return not not_done

    def shutdown(self, wait_for_pending: bool = True) -> None:
        self._executor.shutdown(wait=wait_for_pending)
        logger.info("Notification fan-out stopped")
