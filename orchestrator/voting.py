from __future__ import annotations

from typing import Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from core import services
from core.config import Settings, get_settings
from core.logging import logger
from core.models import Participant, Roundtable
from core.schemas import TopicRead
from core.security import VotingAccess, VotingTokenCipher
from roundtable.core import percentage
from roundtable.exceptions import NotRegisteredError, PreconditionFailedError
from roundtable.models import TopicTally
from roundtable.states import RoundtableStatus
from roundtable.voting import (
    can_finalize,
    quorum_threshold,
    rank_topics,
    split_finalists,
    validate_selection,
    with_percentages,
)

from .notifications import CeleryNotifier, NotificationKind, Notifier, send_notification
from .schemas import (
    Ballot,
    PendingParticipant,
    TopicResult,
    VoteReceipt,
    VotingProgress,
    VotingResults,
)


class VotingEngine:
    """Collects topic ballots and aggregates them into a ranking."""

    def __init__(
        self,
        db: AsyncSession,
        settings: Settings | None = None,
        notifier: Notifier | None = None,
        tokens: VotingTokenCipher | None = None,
    ) -> None:
        self.db = db
        self.settings = settings or get_settings()
        self.notifier = notifier or CeleryNotifier()
        self.tokens = tokens or VotingTokenCipher(
            self.settings.secrets_key, ttl_days=self.settings.voting_token_ttl_days
        )

    async def submit_votes(
        self, roundtable_id: str, participant_email: str, topic_ids: Sequence[str]
    ) -> VoteReceipt:
        roundtable = await services.get_roundtable(self.db, roundtable_id, for_update=True)
        if roundtable.status != RoundtableStatus.TOPIC_VOTING:
            raise PreconditionFailedError(
                "Voting is not open for this roundtable",
                roundtable_id=roundtable_id,
                status=roundtable.status.value,
            )
        participant = await self._registered_participant(roundtable, participant_email)
        selection = validate_selection(
            topic_ids,
            [topic.id for topic in roundtable.topics],
            required=self.settings.selection_size,
        )
        await services.replace_votes(self.db, roundtable.id, participant.id, selection)
        logger.bind(event="votes_submitted", roundtable_id=roundtable.id, participant_id=participant.id).info(
            "Participant {} voted on roundtable {}", participant.id, roundtable.id
        )
        return VoteReceipt(roundtable_id=roundtable.id, participant_id=participant.id, topic_ids=selection)

    async def submit_votes_with_token(self, token: str, topic_ids: Sequence[str]) -> VoteReceipt:
        access = self.tokens.resolve(token)
        return await self.submit_votes(access.roundtable_id, access.email, topic_ids)

    def issue_token(self, roundtable_id: str, email: str) -> str:
        return self.tokens.issue(roundtable_id, services.normalise_email(email))

    def voting_link(self, roundtable_id: str, email: str) -> str:
        return f"{self.settings.voting_url(roundtable_id)}?token={self.issue_token(roundtable_id, email)}"

    async def resolve_token(self, token: str) -> VotingAccess:
        access = self.tokens.resolve(token)
        roundtable = await services.get_roundtable(self.db, access.roundtable_id)
        await self._registered_participant(roundtable, access.email)
        return access

    async def get_results(self, roundtable_id: str) -> VotingResults:
        roundtable = await services.get_roundtable(self.db, roundtable_id)
        counts = await services.vote_counts(self.db, roundtable.id)
        total = len(await services.list_participants(self.db, roundtable.id, exclude_dropped=True))
        voted = len(await services.voted_participant_ids(self.db, roundtable.id))

        tallies = [
            TopicTally(
                topic_id=topic.id,
                title=topic.title,
                position=topic.position,
                vote_count=counts.get(topic.id, 0),
                is_selected=topic.is_selected,
            )
            for topic in roundtable.topics
        ]
        ranked = with_percentages(rank_topics(tallies), total)
        top, _ = split_finalists(ranked, self.settings.selection_size)
        ratio = self.settings.voting_quorum_ratio
        return VotingResults(
            roundtable_id=roundtable.id,
            status=roundtable.status,
            topics=[TopicResult.from_tally(tally) for tally in ranked],
            top_topics=[TopicResult.from_tally(tally) for tally in top],
            total_participants=total,
            voted_participants=voted,
            quorum=quorum_threshold(total, ratio),
            can_finalize=can_finalize(voted, total, ratio),
        )

    async def get_progress(self, roundtable_id: str) -> VotingProgress:
        roundtable = await services.get_roundtable(self.db, roundtable_id)
        participants = await services.list_participants(self.db, roundtable.id, exclude_dropped=True)
        voted_ids = await services.voted_participant_ids(self.db, roundtable.id)
        voted = len(voted_ids)
        total = len(participants)
        ratio = self.settings.voting_quorum_ratio
        return VotingProgress(
            roundtable_id=roundtable.id,
            total_participants=total,
            voted_participants=voted,
            progress=percentage(voted, total),
            quorum=quorum_threshold(total, ratio),
            can_finalize=can_finalize(voted, total, ratio),
            pending=[
                PendingParticipant(participant_id=p.id, name=p.name, email=p.email)
                for p in participants
                if p.id not in voted_ids
            ],
        )

    async def send_reminders(self, roundtable_id: str) -> int:
        roundtable = await services.get_roundtable(self.db, roundtable_id)
        if roundtable.status != RoundtableStatus.TOPIC_VOTING:
            raise PreconditionFailedError(
                "Voting is not open for this roundtable",
                roundtable_id=roundtable_id,
                status=roundtable.status.value,
            )
        progress = await self.get_progress(roundtable.id)
        sent = 0
        for pending in progress.pending:
            delivered = send_notification(
                self.notifier,
                NotificationKind.VOTING_REMINDER,
                pending.email,
                {
                    "roundtable_id": roundtable.id,
                    "roundtable_name": roundtable.name,
                    "participant_name": pending.name,
                    "voting_url": self.voting_link(roundtable.id, pending.email),
                },
            )
            sent += int(delivered)
        logger.bind(event="voting_reminders", roundtable_id=roundtable.id).info(
            "Sent {} voting reminders for roundtable {}", sent, roundtable.id
        )
        return sent

    async def has_voted(self, roundtable_id: str, email: str) -> bool:
        participant = await services.find_participant_by_email(self.db, roundtable_id, email)
        if participant is None:
            return False
        return bool(await services.participant_topic_ids(self.db, roundtable_id, participant.id))

    async def get_ballot(self, roundtable_id: str, email: str) -> Ballot:
        roundtable = await services.get_roundtable(self.db, roundtable_id)
        participant = await self._registered_participant(roundtable, email)
        selected = await services.participant_topic_ids(self.db, roundtable.id, participant.id)
        return Ballot(
            roundtable_id=roundtable.id,
            roundtable_name=roundtable.name,
            participant_name=participant.name,
            is_open=roundtable.status == RoundtableStatus.TOPIC_VOTING,
            required=self.settings.selection_size,
            topics=[TopicRead.model_validate(topic) for topic in roundtable.topics],
            selected_topic_ids=selected,
        )

    async def _registered_participant(self, roundtable: Roundtable, email: str) -> Participant:
        # Dropped participants may still vote; only the statistics leave them out.
        participant = await services.find_participant_by_email(self.db, roundtable.id, email)
        if participant is None:
            raise NotRegisteredError(
                "You are not registered for this roundtable",
                roundtable_id=roundtable.id,
                email=services.normalise_email(email),
            )
        return participant

