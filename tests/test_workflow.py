"""Tests for the end-to-end normalization workflow."""

from __future__ import annotations

import logging

import pytest

from MasterDataNormalizer.audit import InMemoryAuditTrail
from MasterDataNormalizer.commit import STATUS_SUCCESS
from MasterDataNormalizer.config import default_engine_config
from MasterDataNormalizer.exceptions import ConfigError, ValidationError
from MasterDataNormalizer.telemetry import NormalizationTelemetry
from MasterDataNormalizer.workflow import AUTO_SELECT_STATUS, NormalizationWorkflow


@pytest.fixture
def workflow(record_store, audit_trail) -> NormalizationWorkflow:
    return NormalizationWorkflow.from_config(
        default_engine_config(),
        "state",
        store=record_store,
        audit_trail=audit_trail,
    )


def test_discover_raw_labels_skips_canonical_and_blank(workflow: NormalizationWorkflow) -> None:
    assert workflow.discover_raw_labels() == ("U.P.", "Maharastra", "Tamilnadu", "Delhi/NCR")


def test_discover_city_labels(record_store, audit_trail) -> None:
    workflow = NormalizationWorkflow.from_config(
        default_engine_config(), "city", store=record_store, audit_trail=audit_trail
    )
    labels = workflow.discover_raw_labels()
    assert "Mumbai" not in labels
    assert "Bombay" in labels
    assert "  " not in labels


def test_unknown_category(record_store, audit_trail) -> None:
    with pytest.raises(ConfigError):
        NormalizationWorkflow.from_config(
            default_engine_config(), "country", store=record_store, audit_trail=audit_trail
        )


def test_auto_select_skips_compound_labels(workflow: NormalizationWorkflow, audit_context) -> None:
    workflow.start_session()

    report = workflow.auto_select(audit_context=audit_context)

    assert report.applied == 3
    assert report.excluded_labels == ("Delhi/NCR",)
    assert report.excluded == 1
    assert workflow.session.mappings == {
        "U.P.": "Uttar Pradesh",
        "Maharastra": "Maharashtra",
        "Tamilnadu": "Tamil Nadu",
        "Delhi/NCR": "",
    }
    record = workflow.audit_trail.records()[0]
    assert record.id == report.audit_id
    assert record.action_type == "STATE_MAPPING_AUTO_SELECT"
    assert {change.status for change in record.changes} == {AUTO_SELECT_STATUS}


def test_auto_select_without_context_writes_no_audit(workflow: NormalizationWorkflow) -> None:
    workflow.start_session()
    report = workflow.auto_select(threshold=95)
    assert report.audit_id is None
    assert report.applied == 2
    assert workflow.session.mappings["Maharastra"] == ""
    assert len(workflow.audit_trail) == 0


def test_save_commits_and_discards_applied_labels(workflow: NormalizationWorkflow, record_store, audit_context) -> None:
    workflow.start_session()
    workflow.auto_select()

    result = workflow.save(audit_context)

    assert result.success
    assert result.total_updated == 4
    assert all(outcome.status == STATUS_SUCCESS for outcome in result.per_mapping_results)
    assert workflow.session.raw_labels == ("Delhi/NCR",)
    assert record_store.query("creators", {"state": "Tamilnadu"}) == []
    assert workflow.discover_raw_labels() == ("Delhi/NCR",)


def test_save_rejects_duplicate_targets(workflow: NormalizationWorkflow, audit_context) -> None:
    workflow.start_session(["Mumbai1", "Mumbai2"])
    workflow.session.update("Mumbai1", "Mumbai")
    workflow.session.update("Mumbai2", "Mumbai")

    with pytest.raises(ValidationError) as excinfo:
        workflow.save(audit_context)

    assert "Mumbai (2 times)" in str(excinfo.value)
    assert len(workflow.audit_trail) == 0


def test_bulk_assign_maps_many_labels_to_one(workflow: NormalizationWorkflow, record_store, audit_context) -> None:
    workflow.start_session()

    result = workflow.bulk_assign(["Delhi/NCR", "U.P."], "Delhi", audit_context)

    assert result.total_updated == 3
    assert len(record_store.query("creators", {"state": "Delhi"})) == 3
    changes = workflow.audit_trail.get_batch_details(result.transaction_id)
    assert [change.new_value for change in changes] == ["Delhi", "Delhi"]
    assert all(change.confidence is None and not change.auto_selected for change in changes)
    assert "Delhi/NCR" not in workflow.session


def test_bulk_assign_validates_target(workflow: NormalizationWorkflow, audit_context) -> None:
    with pytest.raises(ValidationError, match="not a canonical state label"):
        workflow.bulk_assign(["U.P."], "Uttar Pardesh", audit_context)
    with pytest.raises(ValidationError):
        workflow.bulk_assign([], "Delhi", audit_context)


def test_telemetry_records_batch_match(record_store, caplog) -> None:
    workflow = NormalizationWorkflow.from_config(
        default_engine_config(),
        "state",
        store=record_store,
        audit_trail=InMemoryAuditTrail(),
        telemetry=NormalizationTelemetry(logger=logging.getLogger("test.workflow.telemetry")),
    )
    workflow.start_session()
    with caplog.at_level(logging.INFO, logger="test.workflow.telemetry"):
        workflow.auto_select()

    record = next(item for item in caplog.records if item.getMessage() == "normalization.batch_match")
    assert record.payload["category"] == "state"
    assert record.payload["metrics"]["auto_select_rate"] == 1.0


def test_telemetry_records_session_start(record_store, caplog) -> None:
    workflow = NormalizationWorkflow.from_config(
        default_engine_config(),
        "state",
        store=record_store,
        audit_trail=InMemoryAuditTrail(),
        telemetry=NormalizationTelemetry(logger=logging.getLogger("test.workflow.telemetry")),
    )
    with caplog.at_level(logging.INFO, logger="test.workflow.telemetry"):
        workflow.start_session()

    record = next(item for item in caplog.records if item.getMessage() == "normalization.session_started")
    assert record.payload == {"category": "state", "raw_labels": 4}
