"""
Change detection between consecutive snapshots.

The diff covers the three fixed record kinds. Each kind with a qualifying
change produces one alert whose dedupe key is a stable hash of its type and
details, so repeated or concurrent detection of the same change inserts at
most one row. A per-target cooldown suppresses alert creation (not change
reporting) after a recent alert.
"""

import re
from dataclasses import asdict
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Tuple

from sqlalchemy.orm import sessionmaker

from ..db.base import utcnow
from ..db.repositories import AlertRepository, SnapshotRepository, TargetRepository
from ..interfaces import IAlertDispatcher
from ..models.alert import (
    AlertDraft,
    AlertType,
    ChangeDetectionResult,
    CreatedAlert,
    DetectionOutcome,
)
from ..models.extraction import ExtractedData, MenuItem, PriceEntry, Promotion
from ..utils.hashing import hash_payload
from ..utils.logging import get_logger

logger = get_logger("change.detector")

PROMOTION_SNIPPET_CHARS = 20

_NUMBER = re.compile(r"[\d.]+")


def _compact(record: Any) -> Dict[str, Any]:
    return {key: value for key, value in asdict(record).items() if value is not None}


def _plural(count: int, singular: str, plural: Optional[str] = None) -> str:
    return singular if count == 1 else (plural or f"{singular}s")


def parse_price(price: Optional[str]) -> float:
    """Numeric value of a price string; 0 when nothing parses."""
    if not price:
        return 0.0
    match = _NUMBER.search(price.replace(",", ""))
    if match is None:
        return 0.0
    try:
        return float(match.group(0))
    except ValueError:
        return 0.0


def diff_prices(previous: List[PriceEntry], current: List[PriceEntry]) -> Dict[str, list]:
    """Added, removed and updated prices, keyed by lower-cased item name."""
    previous_by_item = {p.item.lower(): p for p in previous}
    current_by_item = {c.item.lower(): c for c in current}

    added = []
    updated = []
    for entry in current:
        found = previous_by_item.get(entry.item.lower())
        if found is None:
            added.append(_compact(entry))
        elif found.price != entry.price:
            updated.append(
                {
                    "item": entry.item,
                    "old_price": found.price,
                    "new_price": entry.price,
                    "reduced": parse_price(entry.price) < parse_price(found.price),
                }
            )

    removed = [
        _compact(entry) for entry in previous if entry.item.lower() not in current_by_item
    ]

    return {"added": added, "removed": removed, "updated": updated}


def _promotions_match(candidate: Promotion, reference: Promotion) -> bool:
    """True when ``candidate`` looks like the same promotion as ``reference``."""
    if candidate.title and candidate.title.lower() == reference.title.lower():
        return True

    snippet = reference.description[:PROMOTION_SNIPPET_CHARS].lower()
    return bool(snippet) and snippet in candidate.description.lower()


def diff_promotions(
    previous: List[Promotion], current: List[Promotion]
) -> Dict[str, list]:
    """Added and removed promotions, tolerant of minor wording drift."""
    added = [
        _compact(promo)
        for promo in current
        if not any(_promotions_match(p, promo) for p in previous)
    ]
    removed = [
        _compact(promo)
        for promo in previous
        if not any(_promotions_match(c, promo) for c in current)
    ]
    return {"added": added, "removed": removed}


def diff_menu_items(previous: List[MenuItem], current: List[MenuItem]) -> Dict[str, list]:
    """Added and removed menu items, keyed by lower-cased name."""
    previous_names = {item.name.lower() for item in previous}
    current_names = {item.name.lower() for item in current}

    added = [_compact(item) for item in current if item.name.lower() not in previous_names]
    removed = [
        _compact(item) for item in previous if item.name.lower() not in current_names
    ]
    return {"added": added, "removed": removed}


def price_message(changes: Dict[str, list]) -> str:
    msg = ""

    added = len(changes["added"])
    if added:
        msg += f"{added} new {_plural(added, 'price')} added. "

    updated = len(changes["updated"])
    if updated:
        reductions = sum(1 for change in changes["updated"] if change["reduced"])
        msg += f"{updated} {_plural(updated, 'price')} updated"
        if reductions:
            msg += f" ({reductions} price {_plural(reductions, 'reduction')})"
        msg += ". "

    removed = len(changes["removed"])
    if removed:
        msg += f"{removed} {_plural(removed, 'price')} removed. "

    return msg.strip() or "Prices updated"


def promotion_message(changes: Dict[str, list]) -> str:
    msg = ""

    added = len(changes["added"])
    if added:
        title = changes["added"][0].get("title") or "Special offer"
        msg += f"{added} new {_plural(added, 'promotion')}: {title} and more. "

    removed = len(changes["removed"])
    if removed:
        msg += f"{removed} {_plural(removed, 'promotion')} ended. "

    return msg.strip() or "Promotions updated"


def menu_message(changes: Dict[str, list]) -> str:
    msg = ""

    added = len(changes["added"])
    if added:
        name = changes["added"][0].get("name") or "Item"
        msg += f"{added} new menu {_plural(added, 'item')}: {name} and more. "

    removed = len(changes["removed"])
    if removed:
        msg += f"{removed} menu {_plural(removed, 'item')} removed. "

    return msg.strip() or "Menu updated"


def build_dedupe_key(alert_type: AlertType, details: Dict[str, Any]) -> str:
    """Stable hash of an alert's type and structured details."""
    return hash_payload({"alert_type": alert_type.value, "details": details})


def analyze_changes(
    previous: ExtractedData, current: ExtractedData
) -> Tuple[ChangeDetectionResult, List[AlertDraft]]:
    """Diff two extraction results into a result and alert drafts, without touching storage."""
    price_changes = diff_prices(previous.prices, current.prices)
    promotion_changes = diff_promotions(previous.promotions, current.promotions)
    menu_changes = diff_menu_items(previous.menu_items, current.menu_items)

    change_types: List[AlertType] = []
    drafts: List[AlertDraft] = []
    summary = []

    if price_changes["added"] or price_changes["updated"]:
        change_types.append(AlertType.PRICE_CHANGE)
        drafts.append(
            AlertDraft(
                alert_type=AlertType.PRICE_CHANGE,
                message=price_message(price_changes),
                details=price_changes,
                dedupe_key=build_dedupe_key(AlertType.PRICE_CHANGE, price_changes),
            )
        )
        summary.append(
            f"Prices updated ({len(price_changes['added'])} added, "
            f"{len(price_changes['updated'])} changed)."
        )

    if promotion_changes["added"] or promotion_changes["removed"]:
        change_types.append(AlertType.NEW_PROMOTION)
        drafts.append(
            AlertDraft(
                alert_type=AlertType.NEW_PROMOTION,
                message=promotion_message(promotion_changes),
                details=promotion_changes,
                dedupe_key=build_dedupe_key(AlertType.NEW_PROMOTION, promotion_changes),
            )
        )
        summary.append(
            f"Promotions updated ({len(promotion_changes['added'])} new, "
            f"{len(promotion_changes['removed'])} ended)."
        )

    if menu_changes["added"] or menu_changes["removed"]:
        change_types.append(AlertType.MENU_CHANGE)
        drafts.append(
            AlertDraft(
                alert_type=AlertType.MENU_CHANGE,
                message=menu_message(menu_changes),
                details=menu_changes,
                dedupe_key=build_dedupe_key(AlertType.MENU_CHANGE, menu_changes),
            )
        )
        summary.append(
            f"Menu updated ({len(menu_changes['added'])} added, "
            f"{len(menu_changes['removed'])} removed)."
        )

    result = ChangeDetectionResult(
        outcome=DetectionOutcome.CHANGED if change_types else DetectionOutcome.NO_CHANGE,
        change_types=change_types,
        message=(
            "Changes detected: " + " ".join(summary)
            if summary
            else "No significant changes detected"
        ),
        details={
            "price_changes": price_changes,
            "promotion_changes": promotion_changes,
            "menu_changes": menu_changes,
        },
    )
    return result, drafts


class ChangeDetector:
    """Diffs the latest snapshot against the previous distinct one and raises alerts."""

    def __init__(
        self,
        session_factory: sessionmaker,
        dispatcher: Optional[IAlertDispatcher] = None,
        cooldown_hours: float = 1.0,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Initialize change detector.

        Args:
            session_factory: SQLAlchemy session factory
            dispatcher: Notification fan-out for created alerts
            cooldown_hours: Minimum time between alert bursts per target
            clock: Source of the current UTC time
        """
        self.session_factory = session_factory
        self.dispatcher = dispatcher
        self.cooldown = timedelta(hours=cooldown_hours)
        self.clock = clock

    def detect(
        self, target_id: int, current_data: ExtractedData, current_hash: str
    ) -> ChangeDetectionResult:
        """
        Compare the current snapshot with the previous distinct one.

        The current snapshot is expected to be persisted already; the
        previous snapshot is the most recent of the latest two whose hash
        differs from ``current_hash``.

        Raises:
            LookupError: If the target does not exist
        """
        _, result = self._detect(target_id, current_data, current_hash, record_at=None)
        return result

    def record_and_detect(
        self,
        target_id: int,
        current_data: ExtractedData,
        current_hash: str,
        observed_at: Optional[datetime] = None,
    ) -> Tuple[int, ChangeDetectionResult]:
        """
        Append a snapshot and diff it against the previous one atomically.

        The snapshot and any alerts commit together, so a failure while
        raising alerts also discards the snapshot and a retried crawl sees
        the same change again.

        Returns:
            Tuple of (snapshot id, detection result)

        Raises:
            LookupError: If the target does not exist
        """
        return self._detect(
            target_id, current_data, current_hash, record_at=observed_at or self.clock()
        )

    def _detect(
        self,
        target_id: int,
        current_data: ExtractedData,
        current_hash: str,
        record_at: Optional[datetime],
    ) -> Tuple[Optional[int], ChangeDetectionResult]:
        now = self.clock()
        snapshot_id = None
        created: List[CreatedAlert] = []

        with self.session_factory.begin() as session:
            target = TargetRepository(session).get_target_for_update(target_id)
            if target is None:
                raise LookupError(f"Target {target_id} not found")
            owner_id = target.owner_id

            snapshots = SnapshotRepository(session)
            if record_at is not None:
                snapshot_id = snapshots.append(
                    target_id=target_id,
                    extracted_data=current_data.to_dict(),
                    content_hash=current_hash,
                    observed_at=record_at,
                ).id

            recent = snapshots.latest(target_id=target_id, limit=2)
            previous = next(
                (snapshot for snapshot in recent if snapshot.content_hash != current_hash),
                None,
            )

            if previous is None:
                if len(recent) < 2:
                    return snapshot_id, ChangeDetectionResult(
                        outcome=DetectionOutcome.FIRST_CRAWL,
                        message="First crawl - no previous data to compare",
                        details={"reason": "first_crawl"},
                    )
                return snapshot_id, ChangeDetectionResult(
                    outcome=DetectionOutcome.NO_CHANGE,
                    message="No changes detected",
                    details={"reason": "hash_match"},
                )

            result, drafts = analyze_changes(
                ExtractedData.from_dict(previous.extracted_data), current_data
            )

            if not drafts:
                return snapshot_id, result

            if target.last_alert_at is not None and now - target.last_alert_at < self.cooldown:
                logger.info(
                    "Alert cooldown active, suppressing alerts",
                    extra={
                        "target_id": target_id,
                        "last_alert_at": target.last_alert_at,
                        "change_types": [t.value for t in result.change_types],
                    },
                )
                result.suppressed = True
                return snapshot_id, result

            alerts = AlertRepository(session)
            for draft in drafts:
                draft.validate()
                alert_id = alerts.insert_if_new(
                    target_id=target_id,
                    alert_type=draft.alert_type.value,
                    message=draft.message,
                    details=draft.details,
                    dedupe_key=draft.dedupe_key,
                )
                if alert_id is None:
                    logger.debug(
                        "Duplicate alert ignored",
                        extra={"target_id": target_id, "alert_type": draft.alert_type.value},
                    )
                    continue

                created.append(
                    CreatedAlert(
                        id=alert_id,
                        target_id=target_id,
                        alert_type=draft.alert_type,
                        message=draft.message,
                        details=draft.details,
                        dedupe_key=draft.dedupe_key,
                        created_at=now,
                    )
                )

            if created:
                target.last_alert_at = now

        result.alerts = created
        logger.info(
            f"Created {len(created)} alerts for target {target_id}",
            extra={
                "target_id": target_id,
                "change_types": [t.value for t in result.change_types],
            },
        )

        # Only committed alerts are announced
        if self.dispatcher is not None:
            for alert in created:
                self.dispatcher.dispatch(alert, owner_id=owner_id)

        return snapshot_id, result
