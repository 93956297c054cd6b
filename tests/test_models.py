"""
Unit tests for data models.
"""

from datetime import datetime, timezone

import pytest

from competitor_monitor.models.alert import AlertDraft, AlertType, ChangeDetectionResult, DetectionOutcome
from competitor_monitor.models.config import (
    Configuration,
    CrawlerConfig,
    DatabaseConfig,
    ExtractionConfig,
    LLMProviderConfig,
    NotificationConfig,
    parse_clock_time,
)
from competitor_monitor.models.extraction import ExtractedData, MenuItem, PriceEntry, Promotion
from competitor_monitor.models.industry import (
    IndustryDetectionResult,
    get_effective_industry,
)
from competitor_monitor.models.job import BatchResult, CrawlJob, JobErrorCode, ProcessResult
from competitor_monitor.models.notification import PushPayload


class TestExtractedData:
    """Test cases for ExtractedData."""

    def test_from_dict(self):
        data = ExtractedData.from_dict(
            {
                "prices": [{"item": "Classic Burger", "price": 10, "currency": "USD"}],
                "promotions": [
                    {"title": "BOGO", "description": "Buy one get one", "validUntil": "2024-02-01"}
                ],
                "menu_items": [{"name": "Fries", "price": "$3.00"}],
            }
        )

        assert data.prices == [PriceEntry(item="Classic Burger", price="10", currency="USD")]
        assert data.promotions[0].valid_until == "2024-02-01"
        assert data.menu_items == [MenuItem(name="Fries", price="$3.00")]

    def test_missing_fields_become_empty_strings(self):
        data = ExtractedData.from_dict({"promotions": [{"discount": "20%"}]})

        assert data.promotions == [Promotion(title="", description="", discount="20%")]

    @pytest.mark.parametrize(
        "payload",
        [
            "prices",
            {"prices": {"item": "x"}},
            {"menu_items": ["Fries"]},
            {"prices": [{"item": {"nested": True}, "price": "$1"}]},
        ],
    )
    def test_invalid_shapes(self, payload):
        with pytest.raises(ValueError):
            ExtractedData.from_dict(payload)

    def test_to_dict_omits_empty_optionals(self):
        data = ExtractedData(prices=[PriceEntry(item="Classic Burger", price="$10.00")])

        assert data.to_dict() == {
            "prices": [{"item": "Classic Burger", "price": "$10.00"}],
            "promotions": [],
            "menu_items": [],
        }

    def test_is_empty(self):
        assert ExtractedData().is_empty()
        assert not ExtractedData(menu_items=[MenuItem(name="Fries")]).is_empty()


class TestJobModels:
    """Test cases for crawl job models."""

    def make_job(self, **kwargs):
        values = dict(
            id=1,
            target_id=1,
            url="https://burgerbarn.example.com",
            priority=0,
            attempt=0,
            max_attempts=3,
            scheduled_for=datetime(2024, 1, 1, tzinfo=timezone.utc),
        )
        values.update(kwargs)
        return CrawlJob(**values)

    def test_valid_job(self):
        assert self.make_job().validate() is True

    @pytest.mark.parametrize(
        "kwargs", [{"url": " "}, {"attempt": -1}, {"max_attempts": 0}, {"scheduled_for": "now"}]
    )
    def test_invalid_job(self, kwargs):
        with pytest.raises(ValueError):
            self.make_job(**kwargs).validate()

    def test_is_exhausted(self):
        assert not self.make_job(attempt=1).is_exhausted
        assert self.make_job(attempt=2).is_exhausted

    def test_only_missing_target_is_not_retryable(self):
        retryable = {code for code in JobErrorCode if code.retryable}

        assert retryable == set(JobErrorCode) - {JobErrorCode.TARGET_NOT_FOUND}

    def test_process_result_validation(self):
        with pytest.raises(ValueError):
            ProcessResult(job_id=1, target_id=1, success=False).validate()
        with pytest.raises(ValueError):
            ProcessResult(
                job_id=1, target_id=1, success=True, error_code=JobErrorCode.UNKNOWN
            ).validate()

    def test_batch_result_record(self):
        batch = BatchResult()
        batch.record(ProcessResult(job_id=1, target_id=1, success=True))
        batch.record(
            ProcessResult(job_id=2, target_id=2, success=False, error_code=JobErrorCode.FETCH_FAILED)
        )

        assert (batch.processed, batch.succeeded, batch.failed) == (2, 1, 1)


class TestAlertModels:
    """Test cases for alert models."""

    def test_alert_draft_validation(self):
        draft = AlertDraft(
            alert_type=AlertType.PRICE_CHANGE,
            message="Classic Burger: $10.00 -> $9.00 (-10%)",
            details={},
            dedupe_key="f" * 64,
        )
        assert draft.validate() is True

        draft.dedupe_key = "short"
        with pytest.raises(ValueError, match="SHA-256"):
            draft.validate()

    def test_change_detection_result(self):
        assert not ChangeDetectionResult(outcome=DetectionOutcome.NO_CHANGE).has_changes
        assert ChangeDetectionResult(
            outcome=DetectionOutcome.CHANGED, change_types=[AlertType.MENU_CHANGE]
        ).has_changes


class TestIndustryModels:
    """Test cases for industry models."""

    def test_effective_industry_precedence(self):
        assert get_effective_industry("retail_ecommerce", "restaurant_food") == "retail_ecommerce"
        assert get_effective_industry(None, "healthcare_pharmacy", "retail_ecommerce") == "healthcare_pharmacy"
        assert get_effective_industry("bogus", None, "professional_services") == "professional_services"
        assert get_effective_industry(None, None) == "restaurant_food"

    def test_detection_result_validation(self):
        with pytest.raises(ValueError):
            IndustryDetectionResult(label="aerospace", confidence=0.5).validate()
        with pytest.raises(ValueError):
            IndustryDetectionResult(label="retail_ecommerce", confidence=1.5).validate()


class TestPushPayload:
    """Test cases for PushPayload."""

    def test_valid_payload(self):
        assert PushPayload(title="Alert", body="price_change: cheaper").validate() is True

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"title": "", "body": "b"},
            {"title": "t" * 201, "body": "b"},
            {"title": "t", "body": " "},
            {"title": "t", "body": "b", "url": "javascript:alert(1)"},
        ],
    )
    def test_invalid_payload(self, kwargs):
        with pytest.raises(ValueError):
            PushPayload(**kwargs).validate()


class TestConfigModels:
    """Test cases for configuration models."""

    def test_parse_clock_time(self):
        assert parse_clock_time("07:30") == (7, 30)
        for value in ["7", "24:00", "12:60", "ab:cd"]:
            with pytest.raises(ValueError):
                parse_clock_time(value)

    def test_llm_provider_validation(self):
        assert LLMProviderConfig(type="local", local={"model": "llama3"}).validate()

        with pytest.raises(ValueError, match="must be 'local' or 'api'"):
            LLMProviderConfig(type="remote").validate()
        with pytest.raises(ValueError, match="must include 'model'"):
            LLMProviderConfig(type="local", local={"base_url": "http://x"}).validate()
        with pytest.raises(ValueError, match="OPENAI_API_KEY"):
            LLMProviderConfig(
                type="api", api={"provider": "openai", "model": "gpt-4o-mini"}
            ).validate()

    def test_database_validation(self):
        assert DatabaseConfig(url="postgresql+psycopg://db/monitor").validate()
        with pytest.raises(ValueError):
            DatabaseConfig(url="mysql://db/monitor").validate()

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"max_jobs_per_batch": 101},
            {"requests_per_hour": 0},
            {"alert_cooldown_hours": -1},
            {"max_attempts": 0},
            {"industry_confidence_threshold": 1.5},
        ],
    )
    def test_crawler_validation(self, kwargs):
        with pytest.raises(ValueError):
            CrawlerConfig(**kwargs).validate()

    def test_extraction_validation(self):
        with pytest.raises(ValueError):
            ExtractionConfig(default_industry="aerospace").validate()
        with pytest.raises(ValueError):
            ExtractionConfig(business_industry="aerospace").validate()

    def test_notification_validation(self):
        with pytest.raises(ValueError, match="both a start and an end"):
            NotificationConfig(quiet_hours_start="22:00").validate()
        with pytest.raises(ValueError, match="Unknown alert type"):
            NotificationConfig(alert_types=["price_drop"]).validate()
        with pytest.raises(ValueError, match="gateway URL"):
            NotificationConfig(push_enabled=True).validate()

    def test_configuration_validation(self):
        config = Configuration(llm_provider=LLMProviderConfig(type="local", local={"model": "llama3"}))
        assert config.validate() is True

        config.log_level = "VERBOSE"
        with pytest.raises(ValueError, match="Invalid log level"):
            config.validate()
