from __future__ import annotations

from datetime import datetime
from typing import Sequence

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from core import services
from core.config import Settings, get_settings
from core.logging import logger
from core.models import Client, Participant, Roundtable, Session, Topic, utcnow
from core.schemas import TopicDraft
from roundtable.core import SESSION_COUNT, TOPIC_COUNT
from roundtable.exceptions import InvalidInputError, PreconditionFailedError
from roundtable.models import ScheduleOptions
from roundtable.states import (
    ParticipantStatus,
    RoundtableStatus,
    SessionStatus,
    TERMINAL_ROUNDTABLE_STATUSES,
    UPCOMING_SESSION_STATUSES,
    calculate_progress,
    ensure_roundtable_transition,
    ensure_session_transition,
    next_roundtable_status,
)

from .notifications import CeleryNotifier, NotificationKind, Notifier, send_notification
from .schemas import FinalizationResult, OpenVotingResult, ScheduleResult, TopicResult
from .scheduling import SessionScheduler
from .voting import VotingEngine


class RoundtableLifecycle:
    """Entry point for every status change of a roundtable.

    Status is never written directly: each operation asks
    ``roundtable.states`` whether the move is legal, then persists it.
    """

    def __init__(
        self,
        db: AsyncSession,
        settings: Settings | None = None,
        notifier: Notifier | None = None,
        voting: VotingEngine | None = None,
        scheduler: SessionScheduler | None = None,
    ) -> None:
        self.db = db
        self.settings = settings or get_settings()
        self.notifier = notifier or CeleryNotifier()
        self.voting = voting or VotingEngine(db, self.settings, self.notifier)
        self.scheduler = scheduler or SessionScheduler(db, self.settings, self.notifier)

    async def create_client(self, name: str, company: str | None = None, email: str | None = None) -> Client:
        client = Client(name=name, company=company, email=email)
        self.db.add(client)
        await self.db.flush()
        return client

    async def delete_client(self, client_id: str) -> None:
        client = await services.get_client(self.db, client_id)
        roundtables = await services.list_roundtables(self.db, client.id)
        blocking = [rt.id for rt in roundtables if rt.status not in TERMINAL_ROUNDTABLE_STATUSES]
        if blocking:
            raise PreconditionFailedError(
                "Cannot delete a client with active roundtables",
                client_id=client.id,
                roundtable_ids=blocking,
            )
        await services.purge_roundtables(self.db, [rt.id for rt in roundtables])
        await self.db.execute(delete(Client).where(Client.id == client.id))
        logger.bind(event="client_deleted", client_id=client_id).info("Client {} deleted", client_id)

    async def create_roundtable(
        self,
        client_id: str,
        name: str,
        topics: Sequence[TopicDraft],
        max_participants: int,
        description: str | None = None,
        start_date: datetime | None = None,
        questions_min: int | None = None,
        questions_max: int | None = None,
    ) -> Roundtable:
        await services.get_client(self.db, client_id)
        if len(topics) != TOPIC_COUNT:
            raise InvalidInputError(
                f"A roundtable needs exactly {TOPIC_COUNT} topics", required=TOPIC_COUNT, submitted=len(topics)
            )
        if max_participants < 1:
            raise InvalidInputError("max_participants must be at least 1", max_participants=max_participants)
        minimum = questions_min if questions_min is not None else self.settings.questions_min_default
        maximum = questions_max if questions_max is not None else self.settings.questions_max_default
        if not 1 <= minimum <= maximum:
            raise InvalidInputError(
                "Question bounds must satisfy 1 <= min <= max", questions_min=minimum, questions_max=maximum
            )

        roundtable = Roundtable(
            client_id=client_id,
            name=name,
            description=description,
            max_participants=max_participants,
            start_date=start_date,
            questions_min=minimum,
            questions_max=maximum,
            status=RoundtableStatus.SETUP,
            topics=[
                Topic(title=draft.title.strip(), description=draft.description, position=position)
                for position, draft in enumerate(topics)
            ],
            sessions=[Session(session_number=number) for number in range(1, SESSION_COUNT + 1)],
        )
        self.db.add(roundtable)
        await self.db.flush()
        logger.bind(event="roundtable_created", roundtable_id=roundtable.id).info(
            "Roundtable {} created for client {}", roundtable.id, client_id
        )
        return roundtable

    async def add_participant(self, roundtable_id: str, name: str, email: str) -> Participant:
        roundtable = await services.get_roundtable(self.db, roundtable_id, for_update=True)
        if roundtable.status in TERMINAL_ROUNDTABLE_STATUSES:
            raise PreconditionFailedError(
                "Roundtable is no longer accepting participants",
                roundtable_id=roundtable.id,
                status=roundtable.status.value,
            )
        if await services.find_participant_by_email(self.db, roundtable.id, email):
            raise InvalidInputError(
                "Participant is already registered", email=services.normalise_email(email)
            )
        enrolled = await services.list_participants(self.db, roundtable.id, exclude_dropped=True)
        if len(enrolled) >= roundtable.max_participants:
            raise PreconditionFailedError(
                "Roundtable is full", roundtable_id=roundtable.id, max_participants=roundtable.max_participants
            )
        participant = Participant(
            roundtable_id=roundtable.id,
            name=name,
            email=services.normalise_email(email),
            status=ParticipantStatus.ACTIVE,
        )
        self.db.add(participant)
        await self.db.flush()
        return participant

    async def drop_participant(self, roundtable_id: str, participant_id: str) -> Participant:
        await services.get_roundtable(self.db, roundtable_id, for_update=True)
        participant = await services.get_participant(self.db, roundtable_id, participant_id)
        participant.status = ParticipantStatus.DROPPED_OUT
        await self.db.flush()
        logger.bind(event="participant_dropped", roundtable_id=roundtable_id).info(
            "Participant {} dropped out of roundtable {}", participant_id, roundtable_id
        )
        return participant

    async def open_voting(self, roundtable_id: str) -> OpenVotingResult:
        roundtable = await services.get_roundtable(self.db, roundtable_id, for_update=True)
        target = ensure_roundtable_transition(roundtable.status, RoundtableStatus.TOPIC_VOTING)
        participants = await services.list_active_participants(self.db, roundtable.id)
        if not participants:
            raise PreconditionFailedError("Cannot start voting without participants", roundtable_id=roundtable.id)

        roundtable.status = target
        roundtable.voting_opened_at = utcnow()
        await self.db.flush()
        logger.bind(event="voting_opened", roundtable_id=roundtable.id).info(
            "Voting opened for roundtable {} with {} participants", roundtable.id, len(participants)
        )

        sent = 0
        for participant in participants:
            sent += send_notification(
                self.notifier,
                NotificationKind.VOTING_INVITE,
                participant.email,
                {
                    "roundtable_id": roundtable.id,
                    "roundtable_name": roundtable.name,
                    "participant_name": participant.name,
                    "voting_url": self.voting.voting_link(roundtable.id, participant.email),
                },
            )
        return OpenVotingResult(
            roundtable_id=roundtable.id,
            status=roundtable.status,
            voting_url=self.settings.voting_url(roundtable.id),
            participant_count=len(participants),
            invitations_sent=sent,
        )

    async def finalize_voting(self, roundtable_id: str) -> FinalizationResult:
        roundtable = await services.get_roundtable(self.db, roundtable_id, for_update=True)
        target = ensure_roundtable_transition(roundtable.status, RoundtableStatus.SCHEDULED)
        results = await self.voting.get_results(roundtable.id)
        if self.settings.enforce_voting_quorum and not results.can_finalize:
            raise PreconditionFailedError(
                "Voting quorum has not been reached",
                voted=results.voted_participants,
                required=results.quorum,
            )

        selected_ids = {topic.topic_id for topic in results.top_topics}
        for topic in roundtable.topics:
            topic.is_selected = topic.id in selected_ids
        roundtable.status = target
        roundtable.finalized_at = utcnow()
        await self.db.flush()

        selected = [topic.model_copy(update={"is_selected": True}) for topic in results.top_topics]
        rejected = [
            topic.model_copy(update={"is_selected": False})
            for topic in results.topics
            if topic.topic_id not in selected_ids
        ]
        logger.bind(event="voting_finalized", roundtable_id=roundtable.id).info(
            "Roundtable {} finalized with topics {}", roundtable.id, [t.topic_id for t in selected]
        )
        return FinalizationResult(
            roundtable_id=roundtable.id,
            status=roundtable.status,
            selected=selected,
            rejected=rejected,
            quorum_reached=results.can_finalize,
        )

    async def schedule_sessions(self, roundtable_id: str, options: ScheduleOptions) -> ScheduleResult:
        return await self.scheduler.schedule(roundtable_id, options)

    async def start(self, roundtable_id: str) -> Roundtable:
        roundtable = await services.get_roundtable(self.db, roundtable_id, for_update=True)
        target = ensure_roundtable_transition(roundtable.status, RoundtableStatus.IN_PROGRESS)
        if any(session_obj.scheduled_at is None for session_obj in roundtable.sessions):
            raise PreconditionFailedError("Schedule the sessions before starting", roundtable_id=roundtable.id)
        await self._set_status(roundtable, target)
        return roundtable

    async def cancel(self, roundtable_id: str, reason: str | None = None) -> Roundtable:
        roundtable = await services.get_roundtable(self.db, roundtable_id, for_update=True)
        target = ensure_roundtable_transition(roundtable.status, RoundtableStatus.CANCELLED)
        for session_obj in roundtable.sessions:
            if session_obj.status in UPCOMING_SESSION_STATUSES or session_obj.status == SessionStatus.IN_PROGRESS:
                session_obj.status = SessionStatus.CANCELLED
        await self._set_status(roundtable, target, reason=reason)
        return roundtable

    async def update_session_status(self, session_id: str, status: SessionStatus) -> Session:
        session_obj = await services.get_roundtable_session(self.db, session_id)
        roundtable = await services.get_roundtable(self.db, session_obj.roundtable_id, for_update=True)
        if roundtable.status not in (RoundtableStatus.SCHEDULED, RoundtableStatus.IN_PROGRESS):
            raise PreconditionFailedError(
                "Session status can only change while the roundtable is running",
                roundtable_id=roundtable.id,
                status=roundtable.status.value,
            )
        if session_obj.scheduled_at is None:
            raise PreconditionFailedError("Session has not been scheduled", session_id=session_obj.id)
        session_obj.status = ensure_session_transition(session_obj.status, status)

        derived = next_roundtable_status(roundtable.status, [s.status for s in roundtable.sessions])
        if derived != roundtable.status:
            # Sessions may complete straight from SCHEDULED; walk through IN_PROGRESS.
            if roundtable.status == RoundtableStatus.SCHEDULED and derived == RoundtableStatus.COMPLETED:
                await self._set_status(roundtable, RoundtableStatus.IN_PROGRESS)
            await self._set_status(roundtable, ensure_roundtable_transition(roundtable.status, derived))
        else:
            await self.db.flush()
        return session_obj

    async def calculate_progress(self, roundtable_id: str) -> int:
        roundtable = await services.get_roundtable(self.db, roundtable_id)
        return calculate_progress([session_obj.status for session_obj in roundtable.sessions])

    async def _set_status(
        self, roundtable: Roundtable, status: RoundtableStatus, reason: str | None = None
    ) -> None:
        previous = roundtable.status
        roundtable.status = status
        await self.db.flush()
        logger.bind(event="roundtable_status", roundtable_id=roundtable.id, reason=reason).info(
            "Roundtable {} {} -> {}", roundtable.id, previous.value, status.value
        )
