"""
Crawl worker and batch driver.

A job runs through the pipeline sequentially: target lookup, rate limit
gate, fetch, optional industry classification, extraction, then one
transaction for the snapshot write and change detection. Each stage maps
its failures to a ``JobErrorCode``; retryable failures put the job back on
the queue with a delay.
"""

import time
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy.orm import sessionmaker

from ..components.fetcher import FetchOptions
from ..db.base import utcnow
from ..db.repositories import TargetRepository
from ..errors import FetchError
from ..interfaces import (
    IChangeDetector,
    IExtractionEngine,
    IFetcher,
    IIndustryClassifier,
    IJobQueue,
    IRateLimiter,
)
from ..models.config import CrawlerConfig
from ..models.industry import get_effective_industry
from ..models.job import BatchResult, CrawlJob, JobErrorCode, ProcessResult
from ..utils.error_handling import ErrorCategory, ErrorSeverity, get_error_tracker
from ..utils.hashing import hash_payload
from ..utils.logging import get_logger
from ..utils.rate_limiter import get_domain

logger = get_logger("crawl.worker")


class JobFailure(Exception):
    """A pipeline stage failed with a known error code."""

    def __init__(self, code: JobErrorCode, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


@dataclass
class _TargetInfo:
    id: int
    url: str
    is_first_crawl: bool
    industry_label: Optional[str]
    industry_confidence: Optional[float]
    industry_override: Optional[str]


class CrawlWorker:
    """Runs crawl jobs from the queue through the extraction pipeline."""

    def __init__(
        self,
        session_factory: sessionmaker,
        job_queue: IJobQueue,
        rate_limiter: IRateLimiter,
        fetcher: IFetcher,
        extraction_engine: IExtractionEngine,
        change_detector: IChangeDetector,
        config: Optional[CrawlerConfig] = None,
        industry_classifier: Optional[IIndustryClassifier] = None,
        business_industry: Optional[str] = None,
        clock: Callable[[], datetime] = utcnow,
        timer: Callable[[], float] = time.monotonic,
    ):
        self.session_factory = session_factory
        self.job_queue = job_queue
        self.rate_limiter = rate_limiter
        self.fetcher = fetcher
        self.extraction_engine = extraction_engine
        self.change_detector = change_detector
        self.config = config or CrawlerConfig()
        self.industry_classifier = industry_classifier
        self.business_industry = business_industry
        self.clock = clock
        self.timer = timer
        self.error_tracker = get_error_tracker()

    def retry_delay(self, code: JobErrorCode) -> timedelta:
        if code is JobErrorCode.RATE_LIMITED:
            return timedelta(minutes=self.config.rate_limit_retry_minutes)
        return timedelta(minutes=self.config.fetch_retry_minutes)

    async def process_job(self, job: CrawlJob) -> ProcessResult:
        """
        Process a single crawl job.

        Args:
            job: Claimed crawl job

        Returns:
            ProcessResult describing success or the failing stage
        """
        logger.info(
            f"Processing job {job.id} for target {job.target_id}",
            extra={"job_id": job.id, "target_id": job.target_id, "attempt": job.attempt},
        )

        try:
            return await self._run_pipeline(job)
        except JobFailure as failure:
            return self._fail(job, failure.code, failure.message)
        except Exception as e:
            logger.error(
                f"[Job {job.id}] Unexpected error: {e}",
                extra={"job_id": job.id, "target_id": job.target_id},
                exc_info=True,
            )
            return self._fail(job, JobErrorCode.UNKNOWN, f"Unexpected error: {e}")

    async def _run_pipeline(self, job: CrawlJob) -> ProcessResult:
        target = self._load_target(job.target_id)
        if target is None:
            raise JobFailure(JobErrorCode.TARGET_NOT_FOUND, "Target not found")

        domain = get_domain(target.url)
        if not self.rate_limiter.try_acquire(domain):
            raise JobFailure(JobErrorCode.RATE_LIMITED, f"Rate limited for {domain}")

        try:
            html = await self.fetcher.fetch(
                target.url,
                FetchOptions(
                    timeout_ms=self.config.request_timeout_ms,
                    wait_for_idle=True,
                    include_images=self.config.include_images,
                ),
            )
        except FetchError as e:
            raise JobFailure(JobErrorCode.FETCH_FAILED, f"Crawl failed: {e}") from e

        industry = await self._resolve_industry(job, target, html)
        logger.debug(f"[Job {job.id}] Using industry: {industry}")

        try:
            extracted = await self.extraction_engine.extract(html, industry)
        except Exception as e:
            raise JobFailure(
                JobErrorCode.EXTRACTION_FAILED, f"Extraction failed: {e}"
            ) from e

        snapshot_hash = hash_payload(extracted.to_dict())
        try:
            snapshot_id, change = self.change_detector.record_and_detect(
                target.id, extracted, snapshot_hash, observed_at=self.clock()
            )
        except Exception as e:
            raise JobFailure(
                JobErrorCode.SNAPSHOT_OR_ALERT_FAILED, f"Snapshot or alert write failed: {e}"
            ) from e

        change_types = [change_type.value for change_type in change.change_types]
        logger.info(
            f"[Job {job.id}] Change detection: {', '.join(change_types) or 'no changes'}",
            extra={
                "job_id": job.id,
                "target_id": target.id,
                "outcome": change.outcome.value,
                "suppressed": change.suppressed,
            },
        )

        try:
            with self.session_factory.begin() as session:
                TargetRepository(session).mark_crawled(
                    target_id=target.id, crawled_at=self.clock()
                )
        except Exception as e:
            # Non-critical, the snapshot is already stored
            logger.warning(
                f"[Job {job.id}] Failed to update last crawl time: {e}",
                extra={"job_id": job.id, "target_id": target.id},
            )

        logger.info(
            f"[Job {job.id}] Successfully processed ({len(change.alerts)} alerts)",
            extra={"job_id": job.id, "target_id": target.id, "snapshot_id": snapshot_id},
        )
        return ProcessResult(
            job_id=job.id,
            target_id=target.id,
            success=True,
            snapshot_id=snapshot_id,
            change_types=change_types,
            alerts_created=len(change.alerts),
        )

    def _load_target(self, target_id: int) -> Optional[_TargetInfo]:
        with self.session_factory() as session:
            target = TargetRepository(session).get_target(target_id)
            if target is None:
                return None
            return _TargetInfo(
                id=target.id,
                url=target.url,
                is_first_crawl=target.last_crawled_at is None,
                industry_label=target.industry_label,
                industry_confidence=target.industry_confidence,
                industry_override=target.industry_override,
            )

    async def _resolve_industry(self, job: CrawlJob, target: _TargetInfo, html: str) -> str:
        """Effective industry, re-classifying on a first crawl or low confidence."""
        effective = get_effective_industry(
            target.industry_override, target.industry_label, self.business_industry
        )

        low_confidence = (
            target.industry_confidence is not None
            and target.industry_confidence < self.config.industry_confidence_threshold
        )
        if self.industry_classifier is None or not (target.is_first_crawl or low_confidence):
            return effective

        logger.info(
            f"[Job {job.id}] {'First crawl' if target.is_first_crawl else 'Low confidence'}"
            " - detecting industry with content"
        )
        try:
            detection = await self.industry_classifier.classify_industry(
                target.url, html, self.business_industry
            )
            with self.session_factory.begin() as session:
                TargetRepository(session).update_industry(
                    target_id=target.id,
                    label=detection.label,
                    confidence=detection.confidence,
                )
        except Exception as e:
            logger.warning(
                f"[Job {job.id}] Industry detection failed: {e}",
                extra={"job_id": job.id, "target_id": target.id},
            )
            return effective

        logger.info(
            f"[Job {job.id}] Industry updated: {detection.label} ({detection.confidence})"
        )
        return get_effective_industry(
            target.industry_override, detection.label, self.business_industry
        )

    def _fail(self, job: CrawlJob, code: JobErrorCode, message: str) -> ProcessResult:
        logger.warning(
            f"[Job {job.id}] {message}",
            extra={"job_id": job.id, "target_id": job.target_id, "error_code": code.value},
        )

        rescheduled = False
        if code.retryable:
            priority = 0 if code is JobErrorCode.RATE_LIMITED else None
            try:
                rescheduled = self.job_queue.reschedule(
                    job, self.retry_delay(code), priority=priority
                )
            except Exception as e:
                logger.error(
                    f"[Job {job.id}] Failed to reschedule: {e}",
                    extra={"job_id": job.id, "target_id": job.target_id},
                )
                self.error_tracker.record_error(
                    component="crawl.worker",
                    category=ErrorCategory.STORAGE,
                    severity=ErrorSeverity.HIGH,
                    message=f"Failed to reschedule job {job.id}",
                    exception=e,
                    context={"job_id": job.id, "target_id": job.target_id},
                )

        return ProcessResult(
            job_id=job.id,
            target_id=job.target_id,
            success=False,
            error_code=code,
            error_message=message,
            rescheduled=rescheduled,
        )

    async def process_batch(
        self,
        max_jobs: Optional[int] = None,
        time_budget_seconds: Optional[float] = None,
    ) -> BatchResult:
        """
        Claim and process jobs until the queue is empty, ``max_jobs`` have
        run, or the time budget is spent.
        """
        max_jobs = max_jobs or self.config.max_jobs_per_batch
        budget = (
            time_budget_seconds
            if time_budget_seconds is not None
            else self.config.batch_time_budget_seconds
        )

        started = self.timer()
        batch = BatchResult()
        logger.info(f"Starting batch processing (max {max_jobs} jobs)")

        for _ in range(max_jobs):
            if self.timer() - started > budget:
                logger.warning("Time budget exhausted, exiting batch")
                batch.stopped_early = True
                break

            try:
                job = self.job_queue.claim_next()
            except Exception as e:
                logger.error(f"Failed to claim job: {e}")
                break

            if job is None:
                logger.info("No more jobs in queue")
                break

            batch.record(await self.process_job(job))

        batch.duration_seconds = self.timer() - started
        logger.info(
            f"Batch complete: {batch.succeeded} successful, {batch.failed} failed",
            extra={
                "processed": batch.processed,
                "duration_seconds": round(batch.duration_seconds, 2),
                "stopped_early": batch.stopped_early,
            },
        )
        return batch
