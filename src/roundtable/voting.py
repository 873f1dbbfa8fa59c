"""Ranking and validation rules for topic voting."""

from __future__ import annotations

import math
from typing import Iterable, List, Sequence

from .core import SELECTION_SIZE, percentage
from .exceptions import InvalidSelectionCountError, InvalidTopicError
from .models import TopicTally

QUORUM_RATIO = 0.8


def validate_selection(
    topic_ids: Sequence[str],
    valid_topic_ids: Iterable[str],
    required: int = SELECTION_SIZE,
) -> List[str]:
    """Check a participant ballot and return it as a list.

    Topic membership is checked before the count, so a ballot naming a
    foreign topic is reported as such even when its length is also wrong.
    Duplicated ids count once towards membership, which makes them surface as
    a set-size mismatch.
    """

    selection = list(topic_ids)
    valid = set(valid_topic_ids)
    matching = {topic_id for topic_id in selection if topic_id in valid}
    if len(matching) != len(selection):
        raise InvalidTopicError(
            "Some selected topics are not valid for this roundtable",
            submitted=len(selection),
            matched=len(matching),
        )
    if len(selection) != required:
        raise InvalidSelectionCountError(
            f"You must select exactly {required} topics",
            required=required,
            submitted=len(selection),
        )
    return selection


def rank_topics(tallies: Iterable[TopicTally]) -> List[TopicTally]:
    """Sort by vote count descending; ties keep topic creation order."""

    return sorted(tallies, key=lambda tally: (-tally.vote_count, tally.position))


def with_percentages(tallies: Iterable[TopicTally], total_participants: int) -> List[TopicTally]:
    return [
        TopicTally(
            topic_id=tally.topic_id,
            title=tally.title,
            position=tally.position,
            vote_count=tally.vote_count,
            percentage=percentage(tally.vote_count, total_participants),
            is_selected=tally.is_selected,
        )
        for tally in tallies
    ]


def split_finalists(
    ranked: Sequence[TopicTally], size: int = SELECTION_SIZE
) -> tuple[List[TopicTally], List[TopicTally]]:
    """Return ``(selected, rejected)`` from an already ranked list."""

    return list(ranked[:size]), list(ranked[size:])


def quorum_threshold(total_participants: int, ratio: float = QUORUM_RATIO) -> int:
    return math.ceil(total_participants * ratio)


def can_finalize(voted_participants: int, total_participants: int, ratio: float = QUORUM_RATIO) -> bool:
    """Advisory readiness signal: enough of the active cohort has voted."""

    return voted_participants >= quorum_threshold(total_participants, ratio)
