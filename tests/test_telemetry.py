import logging

import pytest

from MasterDataNormalizer.telemetry import NormalizationTelemetry


@pytest.fixture
def telemetry() -> NormalizationTelemetry:
    return NormalizationTelemetry(logger=logging.getLogger("test.normalization.telemetry"))


def test_batch_match_adds_auto_select_rate(telemetry, caplog) -> None:
    with caplog.at_level(logging.INFO, logger="test.normalization.telemetry"):
        telemetry.record_batch_match("city", {"total_processed": 4.0, "auto_selected": 1.0})
    record = caplog.records[-1]
    assert record.getMessage() == "normalization.batch_match"
    assert record.payload["metrics"]["auto_select_rate"] == 0.25


def test_batch_match_with_nothing_processed(telemetry, caplog) -> None:
    with caplog.at_level(logging.INFO, logger="test.normalization.telemetry"):
        telemetry.record_batch_match("city", {"total_processed": 0.0})
    assert caplog.records[-1].payload["metrics"]["auto_select_rate"] == 0.0


def test_commit_and_audit_failure_events(telemetry, caplog) -> None:
    with caplog.at_level(logging.INFO, logger="test.normalization.telemetry"):
        telemetry.record_commit(
            category="state",
            transaction_id="txn_1",
            attempted=3,
            failed=1,
            total_updated=4,
            audit_written=True,
        )
        telemetry.record_audit_failure("txn_2", "disk full")
    commit, failure = caplog.records[-2:]
    assert commit.payload == {
        "category": "state",
        "transaction_id": "txn_1",
        "attempted": 3,
        "failed": 1,
        "total_updated": 4,
        "audit_written": True,
    }
    assert failure.levelno == logging.WARNING
    assert failure.payload["reason"] == "disk full"


def test_emit_event_copies_payload(telemetry, caplog) -> None:
    payload = {"category": "state", "labels": 2}
    with caplog.at_level(logging.DEBUG, logger="test.normalization.telemetry"):
        telemetry.emit_event("normalization.session_started", payload)
        telemetry.emit_event("normalization.session_reset", {"category": "state"}, level=logging.DEBUG)
    started, reset = caplog.records[-2:]
    assert started.getMessage() == "normalization.session_started"
    assert started.levelno == logging.INFO
    assert started.payload == payload
    assert started.payload is not payload
    assert reset.levelno == logging.DEBUG
