"""Tests for the search predicate builder."""

import pytest
from datetime import datetime
from uuid import UUID
from zoneinfo import ZoneInfo
from pydantic import ValidationError

from synaptik.models.task import Task, TaskStatus
from synaptik.services.task_search import (
    Contains,
    Eq,
    In,
    SearchCriteria,
    SearchPredicate,
    build_search_predicate,
)
from tests.utils.assertions import assert_predicate_range
from tests.utils.factories import create_task

PROJECT_ID = "3f2b8c1e-9d4a-4f6b-8a7e-2c5d1e0f9a3b"


@pytest.mark.unit
def test_status_and_date_range():
    """Test the canonical status plus due-date window."""
    predicate = build_search_predicate(
        statuses=["PENDING"],
        date_from="2025-08-15",
        date_to="2025-08-20",
        timezone="UTC",
    )

    assert predicate.describe() == {
        "status": {"eq": "PENDING"},
        "due_date": {
            "gte": "2025-08-15T00:00:00.000Z",
            "lte": "2025-08-20T23:59:59.999Z",
        },
    }


@pytest.mark.unit
def test_empty_criteria_matches_everything(sample_task, active_task):
    """Test that no criteria yields an empty predicate."""
    predicate = build_search_predicate()

    assert predicate.is_empty
    assert predicate.describe() == {}
    assert predicate.filter([sample_task, active_task]) == [sample_task, active_task]


@pytest.mark.unit
def test_multiple_statuses_use_membership():
    """Test that several statuses become one membership condition."""
    predicate = build_search_predicate(statuses=["pending", "Active", "PENDING"])

    condition = predicate.conditions_for("status")[0]
    assert isinstance(condition, In)
    assert predicate.describe() == {"status": {"in": ["PENDING", "ACTIVE"]}}


@pytest.mark.unit
def test_single_status_string():
    """Test that a bare status string is accepted."""
    predicate = build_search_predicate(statuses="completed")

    assert predicate.conditions_for("status") == [Eq(value=TaskStatus.COMPLETED)]


@pytest.mark.unit
def test_blank_statuses_ignored():
    """Test that blank status values add no condition."""
    predicate = build_search_predicate(statuses=["", "   "])

    assert predicate.is_empty


@pytest.mark.unit
def test_unknown_status_rejected():
    """Test that an unknown status name fails validation."""
    with pytest.raises(ValidationError) as exc_info:
        SearchCriteria(statuses=["PENDING", "ARCHIVED"])

    assert "ARCHIVED" in str(exc_info.value)


@pytest.mark.unit
def test_invalid_project_id_matches_nothing(sample_task, caplog):
    """Test that a malformed project id degrades to an empty result."""
    predicate = build_search_predicate(project_id="not-a-uuid")

    assert predicate.match_none
    assert not predicate.is_empty
    assert predicate.describe() == {"match_none": True}
    assert predicate.filter([sample_task]) == []
    assert "not a valid UUID" in caplog.text


@pytest.mark.unit
def test_valid_project_id_filters_by_uuid():
    """Test that a canonical UUID becomes an equality condition."""
    in_project = create_task(project_id=PROJECT_ID)
    elsewhere = create_task()

    predicate = build_search_predicate(project_id=PROJECT_ID.upper())

    assert predicate.describe() == {"project_id": {"eq": PROJECT_ID}}
    assert predicate.conditions_for("project_id") == [Eq(value=UUID(PROJECT_ID))]
    assert predicate.filter([in_project, elsewhere]) == [in_project]


@pytest.mark.unit
def test_title_substring_is_case_insensitive(sample_task, active_task):
    """Test title substring matching."""
    predicate = build_search_predicate(title="  QUARTERLY ")

    assert predicate.describe() == {"title": {"contains": "QUARTERLY", "case_insensitive": True}}
    assert predicate.filter([sample_task, active_task]) == [sample_task]


@pytest.mark.unit
def test_title_special_characters_are_literal():
    """Test that regex and LIKE metacharacters match literally."""
    coupon = Task(title="Coupon 50%_OFF (v2) campaign")
    lookalike = Task(title="Coupon 50xxOFF v2 campaign")

    predicate = build_search_predicate(title="50%_off (v2)")
    condition = predicate.conditions_for("title")[0]

    assert isinstance(condition, Contains)
    assert predicate.filter([coupon, lookalike]) == [coupon]
    assert condition.ilike_pattern() == "%50\\%\\_off (v2)%"


@pytest.mark.unit
def test_blank_title_adds_no_condition():
    """Test that whitespace-only text filters are ignored."""
    assert build_search_predicate(title="   ", assignee="").is_empty


@pytest.mark.unit
def test_assignee_substring(sample_task, active_task):
    """Test assignee matching; tasks without an assignee never match."""
    predicate = build_search_predicate(assignee="smith")

    assert predicate.filter([sample_task, active_task]) == [active_task]


@pytest.mark.unit
def test_date_range_in_named_zone():
    """Test that day boundaries follow the requested zone."""
    predicate = build_search_predicate(
        date_from="2025-08-15",
        date_to="2025-08-20",
        timezone="America/New_York",
    )

    assert_predicate_range(
        predicate,
        gte="2025-08-15T04:00:00.000Z",
        lte="2025-08-21T03:59:59.999Z",
    )


@pytest.mark.unit
def test_unknown_timezone_falls_back_to_utc(caplog):
    """Test the UTC fallback for an unknown zone."""
    predicate = build_search_predicate(
        date_from="2025-08-15",
        date_to="2025-08-20",
        timezone="Mars/Olympus_Mons",
    )

    assert_predicate_range(
        predicate,
        gte="2025-08-15T00:00:00.000Z",
        lte="2025-08-20T23:59:59.999Z",
    )
    assert "Invalid timezone" in caplog.text


@pytest.mark.unit
def test_offset_boundary_converted_to_zone():
    """Test that an offset timestamp is moved into the zone before flooring."""
    predicate = build_search_predicate(
        date_from="2025-08-15T23:30:00-05:00",
        date_to="2025-08-15T10:00+02:00[Europe/Paris]",
        timezone="UTC",
    )

    assert_predicate_range(
        predicate,
        gte="2025-08-16T00:00:00.000Z",
        lte="2025-08-15T23:59:59.999Z",
    )


@pytest.mark.unit
def test_local_datetime_boundary_uses_its_date():
    """Test that a local date-time is snapped to its own calendar day."""
    predicate = build_search_predicate(
        date_from="2025-08-15T18:45",
        date_to="2025-08-16 06:00",
        timezone="America/New_York",
    )

    assert_predicate_range(
        predicate,
        gte="2025-08-15T04:00:00.000Z",
        lte="2025-08-17T03:59:59.999Z",
    )


@pytest.mark.unit
def test_unparseable_boundary_dropped(caplog):
    """Test that an unparseable bound is ignored and the other kept."""
    predicate = build_search_predicate(date_from="next week", date_to="2025-08-20")

    assert predicate.describe() == {"due_date": {"lte": "2025-08-20T23:59:59.999Z"}}
    assert "Unable to parse date boundary" in caplog.text


@pytest.mark.unit
def test_both_boundaries_unparseable():
    """Test that no range is added when neither bound parses."""
    assert build_search_predicate(date_from="soon", date_to="later").is_empty


@pytest.mark.unit
def test_date_range_filters_tasks(sample_task, active_task):
    """Test in-memory range evaluation; undated tasks are excluded."""
    late = active_task.model_copy(
        update={"due_date": datetime(2025, 8, 21, 0, 0, tzinfo=ZoneInfo("UTC"))}
    )
    predicate = build_search_predicate(date_from="2025-08-15", date_to="2025-08-20")

    assert predicate.filter([sample_task, active_task, late]) == [active_task]


@pytest.mark.unit
def test_combined_conditions_are_anded(sample_task, active_task):
    """Test that every condition must hold."""
    predicate = build_search_predicate(statuses=["ACTIVE"], title="report")

    assert predicate.filter([sample_task, active_task]) == []


@pytest.mark.unit
def test_and_merges_predicates():
    """Test conjunction of two predicates on the same field."""
    combined = build_search_predicate(title="report").and_(
        build_search_predicate(title="quarterly")
    )

    assert combined.describe() == {
        "title": {
            "all": [
                {"contains": "report", "case_insensitive": True},
                {"contains": "quarterly", "case_insensitive": True},
            ]
        }
    }


@pytest.mark.unit
def test_and_keeps_match_none():
    """Test that an empty-result predicate stays empty when combined."""
    combined = build_search_predicate(statuses=["PENDING"]).and_(
        build_search_predicate(project_id="bogus")
    )

    assert combined.match_none
    assert combined.field_names() == ["status"]


@pytest.mark.unit
def test_criteria_object_accepted():
    """Test passing a SearchCriteria instance directly."""
    criteria = SearchCriteria(statuses=["WAITING"], assignee="Jordan")

    predicate = build_search_predicate(criteria)

    assert predicate.field_names() == ["status", "assignee"]


@pytest.mark.unit
def test_predicate_is_immutable():
    """Test that a built predicate cannot be altered."""
    predicate = build_search_predicate(statuses=["PENDING"])

    with pytest.raises(ValidationError):
        predicate.match_none = True
    assert isinstance(predicate, SearchPredicate)


@pytest.mark.unit
@pytest.mark.parametrize("filters", [
    {"status": ["COMPLETED"]},
    {"project": "home-reno"},
])
def test_unknown_filter_rejected(filters):
    """Test that a misspelled filter fails instead of matching every task."""
    with pytest.raises(ValidationError) as exc_info:
        build_search_predicate(**filters)

    assert next(iter(filters)) in str(exc_info.value)
