"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import sys
from datetime import datetime, timedelta
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from bandwise.core.models import (  # noqa: E402
    Band,
    BandStatus,
    DomainState,
    DomainStatus,
    GateProgress,
    LearnerProfile,
    RecentPerformance,
    ReviewItem,
)


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")
    config.addinivalue_line("markers", "slow: Slow tests")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


@pytest.fixture(autouse=True)
def setup_logging():
    """Route loguru to stderr at DEBUG for the duration of a test."""
    from loguru import logger

    logger.remove()
    logger.add(
        sys.stderr,
        level="DEBUG",
        format="<level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>",
    )

    yield

    logger.remove()


@pytest.fixture
def log_messages():
    """Collect loguru messages emitted during a test."""
    from loguru import logger

    messages: list[str] = []
    handler_id = logger.add(lambda m: messages.append(m.record["message"]), level="DEBUG")
    yield messages
    logger.remove(handler_id)


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def now():
    """A fixed Monday-morning reference time."""
    return datetime(2025, 3, 3, 9, 0)


@pytest.fixture
def make_item(now):
    """Factory for reviewed items (last reviewed ``days_ago``)."""

    def _make(
        item_id="card-1",
        domain="trauma",
        stability=0.5,
        interval=3,
        days_ago=3,
        fail_count=0,
        review_count=2,
        is_leech=False,
    ):
        reviewed = now - timedelta(days=days_ago)
        return ReviewItem(
            id=item_id,
            content_id=f"content-{item_id}",
            domain=domain,
            stability=stability,
            interval=interval,
            review_count=review_count,
            fail_count=fail_count,
            last_reviewed_at=reviewed,
            next_due_at=reviewed + timedelta(days=interval),
            is_leech=is_leech,
        )

    return _make


@pytest.fixture
def all_gates():
    return GateProgress(
        mini_osce_passed=True,
        retention_check_passed=True,
        srs_cards_stable=True,
        complication_case_passed=True,
    )


@pytest.fixture
def domains():
    return [
        DomainStatus("trauma", total_items=20, items_completed=10, status=DomainState.ACTIVE),
        DomainStatus("cardiology", total_items=20, items_completed=4, status=DomainState.ACTIVE),
        DomainStatus("orthopedics", total_items=10, items_completed=8, status=DomainState.GATED),
        DomainStatus("neurology", total_items=15, items_completed=0, status=DomainState.LOCKED),
    ]


@pytest.fixture
def profile(domains):
    return LearnerProfile(
        learner_id="learner-1",
        band_status=BandStatus(
            current_band=Band.C,
            recent_performance=RecentPerformance(correct_rate=0.7, sample_size=12),
        ),
        domain_statuses=domains,
        focus_domains=["trauma"],
        daily_minutes=30,
    )
