from datetime import date, datetime, timedelta

import pytest

from roundtable import (
    TRAINER_CONFLICT_WINDOW,
    Booking,
    InvalidQuestionCountError,
    InvalidScheduleError,
    InvalidSelectionCountError,
    InvalidStateError,
    InvalidTopicError,
    PreferredTime,
    QuestionsStatus,
    QuestionStatus,
    RoundtableStatus,
    ScheduleOptions,
    SessionFrequency,
    SessionStatus,
    TopicTally,
    adjust_for_weekends,
    calculate_progress,
    can_finalize,
    find_conflicts,
    next_questions_status,
    next_roundtable_status,
    overlaps,
    percentage,
    plan_sessions,
    rank_topics,
    split_finalists,
    validate_selection,
)
from roundtable.exceptions import InvalidInputError
from roundtable.questions import normalise_questions, review_summary
from roundtable.states import ensure_roundtable_transition, questions_status_after_submission
from roundtable.voting import quorum_threshold

TOPICS = [f"topic-{index}" for index in range(8)]


@pytest.fixture
def monday() -> date:
    return date(2025, 3, 3)


def test_percentage_rounds_halves_up() -> None:
    assert percentage(1, 8) == 13
    assert percentage(1, 3) == 33
    assert percentage(2, 3) == 67
    assert percentage(3, 10) == 30
    assert percentage(5, 0) == 0


def test_calculate_progress_boundaries() -> None:
    assert calculate_progress([]) == 0
    assert calculate_progress(None) == 0
    statuses = [SessionStatus.COMPLETED, SessionStatus.FEEDBACK_SENT, SessionStatus.COMPLETED] + [
        SessionStatus.SCHEDULED
    ] * 7
    assert calculate_progress(statuses) == 30
    assert calculate_progress(statuses) == calculate_progress(statuses)


def test_weekly_plan_keeps_sessions_on_the_start_weekday(monday: date) -> None:
    planned = plan_sessions(ScheduleOptions(start_date=monday), TOPICS)

    assert [slot.session_number for slot in planned] == list(range(1, 11))
    assert planned[0].scheduled_at == datetime(2025, 3, 3, 14, 0)
    assert planned[-1].scheduled_at == datetime(2025, 5, 5, 14, 0)
    assert all(b.scheduled_at - a.scheduled_at == timedelta(weeks=1) for a, b in zip(planned, planned[1:]))


def test_bi_weekly_plan_ends_eighteen_weeks_after_start(monday: date) -> None:
    options = ScheduleOptions(start_date=monday, frequency=SessionFrequency.BI_WEEKLY)
    planned = plan_sessions(options, TOPICS)

    assert planned[1].scheduled_at == datetime(2025, 3, 17, 14, 0)
    assert planned[-1].scheduled_at == datetime(2025, 7, 7, 14, 0)


def test_saturday_start_moves_first_session_to_monday() -> None:
    planned = plan_sessions(ScheduleOptions(start_date=date(2025, 3, 1)), TOPICS)
    assert planned[0].scheduled_at == datetime(2025, 3, 3, 14, 0)


@pytest.mark.parametrize("frequency", list(SessionFrequency))
@pytest.mark.parametrize("day", range(1, 8))
def test_no_session_falls_on_a_weekend(day: int, frequency: SessionFrequency) -> None:
    options = ScheduleOptions(start_date=date(2025, 3, day), frequency=frequency, skip_weekends=True)
    assert all(slot.scheduled_at.weekday() < 5 for slot in plan_sessions(options, TOPICS))


def test_weekends_are_kept_when_not_skipped() -> None:
    options = ScheduleOptions(start_date=date(2025, 3, 1), skip_weekends=False)
    planned = plan_sessions(options, TOPICS)
    assert planned[0].scheduled_at == datetime(2025, 3, 1, 14, 0)


def test_adjust_for_weekends_never_moves_backwards() -> None:
    sunday = datetime(2025, 3, 2, 9, 30)
    assert adjust_for_weekends(sunday) == datetime(2025, 3, 3, 9, 30)
    assert adjust_for_weekends(sunday, skip_weekends=False) == sunday


def test_topics_map_to_sessions_two_to_nine(monday: date) -> None:
    planned = plan_sessions(ScheduleOptions(start_date=monday), TOPICS)

    assert planned[0].topic_id is None
    assert planned[-1].topic_id is None
    assert [slot.topic_id for slot in planned[1:9]] == TOPICS


def test_smaller_topic_set_wraps_around(monday: date) -> None:
    planned = plan_sessions(ScheduleOptions(start_date=monday), ["a", "b", "c"])
    assert [slot.topic_id for slot in planned[1:9]] == ["a", "b", "c", "a", "b", "c", "a", "b"]


def test_plan_is_deterministic(monday: date) -> None:
    options = ScheduleOptions(start_date=monday, preferred_time=PreferredTime(9, 15))
    assert plan_sessions(options, TOPICS) == plan_sessions(options, TOPICS)
    assert plan_sessions(options, TOPICS)[0].scheduled_at == datetime(2025, 3, 3, 9, 15)


def test_plan_requires_topics(monday: date) -> None:
    with pytest.raises(InvalidScheduleError):
        plan_sessions(ScheduleOptions(start_date=monday), [])


def test_preferred_time_is_validated() -> None:
    with pytest.raises(InvalidScheduleError):
        PreferredTime(24, 0)


def test_selection_must_contain_exactly_eight() -> None:
    valid = [f"t{index}" for index in range(10)]
    for size in (0, 7, 9, 10):
        with pytest.raises(InvalidSelectionCountError) as exc_info:
            validate_selection(valid[:size], valid)
        assert "8" in exc_info.value.message
    assert validate_selection(valid[:8], valid) == valid[:8]


def test_foreign_topic_is_reported_before_the_count() -> None:
    valid = [f"t{index}" for index in range(10)]
    with pytest.raises(InvalidTopicError):
        validate_selection(valid[:6] + ["elsewhere"], valid)


def test_duplicate_topics_are_a_set_size_mismatch() -> None:
    valid = [f"t{index}" for index in range(10)]
    with pytest.raises(InvalidTopicError):
        validate_selection(valid[:7] + [valid[0]], valid)


def test_rank_topics_breaks_ties_by_creation_order() -> None:
    tallies = [
        TopicTally(topic_id="late", title="Late", position=9, vote_count=3),
        TopicTally(topic_id="early", title="Early", position=1, vote_count=3),
        TopicTally(topic_id="top", title="Top", position=5, vote_count=4),
    ]
    assert [tally.topic_id for tally in rank_topics(tallies)] == ["top", "early", "late"]


def test_split_finalists_returns_eight_and_two() -> None:
    tallies = [TopicTally(topic_id=f"t{i}", title=str(i), position=i, vote_count=i % 3) for i in range(10)]
    selected, rejected = split_finalists(rank_topics(tallies))
    assert len(selected) == 8
    assert len(rejected) == 2


def test_quorum_is_eighty_percent_rounded_up() -> None:
    assert quorum_threshold(4) == 4
    assert quorum_threshold(5) == 4
    assert can_finalize(4, 5)
    assert not can_finalize(3, 5)


def test_conflict_window_includes_its_boundary() -> None:
    start = datetime(2025, 3, 3, 14, 0)
    assert TRAINER_CONFLICT_WINDOW == timedelta(minutes=90)
    assert overlaps(start, start + timedelta(minutes=90))
    assert overlaps(start, start - timedelta(minutes=90))
    assert not overlaps(start, start + timedelta(minutes=91))


@pytest.mark.parametrize("minutes", [-120, -90, -89, -30, 0, 30, 89, 90, 120])
def test_conflicts_are_symmetric(minutes: int) -> None:
    a = datetime(2025, 3, 3, 14, 0)
    b = a + timedelta(minutes=minutes)
    forward = find_conflicts(a, [Booking(session_id="b", scheduled_at=b)])
    backward = find_conflicts(b, [Booking(session_id="a", scheduled_at=a)])
    assert bool(forward) == bool(backward)


def test_find_conflicts_skips_the_session_being_edited() -> None:
    start = datetime(2025, 3, 3, 14, 0)
    bookings = [
        Booking(session_id="same", scheduled_at=start),
        Booking(session_id="other", scheduled_at=start + timedelta(minutes=60)),
    ]
    conflicts = find_conflicts(start, bookings, exclude_session_id="same")
    assert [booking.session_id for booking in conflicts] == ["other"]


def test_roundtable_transitions() -> None:
    assert ensure_roundtable_transition(RoundtableStatus.SETUP, RoundtableStatus.CANCELLED) == RoundtableStatus.CANCELLED
    with pytest.raises(InvalidStateError):
        ensure_roundtable_transition(RoundtableStatus.COMPLETED, RoundtableStatus.CANCELLED)
    with pytest.raises(InvalidStateError):
        ensure_roundtable_transition(RoundtableStatus.SCHEDULED, RoundtableStatus.SCHEDULED)


def test_roundtable_status_follows_sessions() -> None:
    idle = [SessionStatus.SCHEDULED] * 10
    started = [SessionStatus.IN_PROGRESS] + [SessionStatus.SCHEDULED] * 9
    done = [SessionStatus.COMPLETED] * 9 + [SessionStatus.FEEDBACK_SENT]

    assert next_roundtable_status(RoundtableStatus.SCHEDULED, idle) == RoundtableStatus.SCHEDULED
    assert next_roundtable_status(RoundtableStatus.SCHEDULED, started) == RoundtableStatus.IN_PROGRESS
    assert next_roundtable_status(RoundtableStatus.IN_PROGRESS, done) == RoundtableStatus.COMPLETED
    assert next_roundtable_status(RoundtableStatus.CANCELLED, done) == RoundtableStatus.CANCELLED


def test_questions_status_after_review() -> None:
    pending = QuestionsStatus.PENDING_APPROVAL
    approved = [QuestionStatus.APPROVED] * 3

    assert next_questions_status(pending, approved, 3) == QuestionsStatus.SENT_TO_PARTICIPANTS
    assert next_questions_status(pending, approved[:2], 3) == pending
    assert (
        next_questions_status(pending, approved[:2] + [QuestionStatus.NEEDS_REVISION], 3)
        == QuestionsStatus.REQUESTED_FROM_COORDINATOR
    )
    assert (
        next_questions_status(pending, [QuestionStatus.APPROVED, QuestionStatus.PENDING, QuestionStatus.REJECTED], 3)
        == QuestionsStatus.REQUESTED_FROM_COORDINATOR
    )
    assert next_questions_status(pending, approved[:2] + [QuestionStatus.PENDING], 3) == pending


def test_resubmission_is_closed_once_questions_are_sent() -> None:
    assert (
        questions_status_after_submission(QuestionsStatus.REQUESTED_FROM_COORDINATOR)
        == QuestionsStatus.PENDING_APPROVAL
    )
    with pytest.raises(InvalidStateError):
        questions_status_after_submission(QuestionsStatus.SENT_TO_PARTICIPANTS)


def test_normalise_questions_bounds() -> None:
    assert normalise_questions([" One ", "Two", "Three"], 3, 5) == ["One", "Two", "Three"]
    with pytest.raises(InvalidQuestionCountError) as exc_info:
        normalise_questions(["One"], 3, 5)
    assert exc_info.value.details == {"minimum": 3, "maximum": 5, "submitted": 1}
    with pytest.raises(InvalidQuestionCountError, match="Exactly 4"):
        normalise_questions(["a", "b"], 4, 4)
    with pytest.raises(InvalidInputError):
        normalise_questions(["a", " ", "c"], 3, 5)


def test_review_summary_counts() -> None:
    summary = review_summary([QuestionStatus.APPROVED, QuestionStatus.REJECTED, QuestionStatus.PENDING], 3)
    assert summary["approved"] == 1
    assert summary["rejected"] == 1
    assert summary["pending"] == 1
    assert summary["needs_attention"] is True
    assert summary["is_complete"] is False
