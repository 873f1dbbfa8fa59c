from __future__ import annotations

from collections import defaultdict
from typing import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core import services
from core.config import Settings, get_settings
from core.logging import logger
from core.models import Question, Roundtable, Session, utcnow
from core.schemas import QuestionRead, ReviewDecision
from roundtable.exceptions import InvalidInputError, InvalidStateError, NotAssignedError, PreconditionFailedError
from roundtable.questions import normalise_questions, review_summary
from roundtable.states import (
    QuestionsStatus,
    QuestionStatus,
    TERMINAL_ROUNDTABLE_STATUSES,
    next_questions_status,
    questions_status_after_submission,
)

from .notifications import CeleryNotifier, NotificationKind, Notifier, send_notification
from .schemas import QuestionSet, ReviewSummary

REVIEWABLE_STATUSES = frozenset({QuestionsStatus.PENDING_APPROVAL, QuestionsStatus.REQUESTED_FROM_COORDINATOR})
DECISION_STATUSES = frozenset({QuestionStatus.APPROVED, QuestionStatus.NEEDS_REVISION, QuestionStatus.REJECTED})


class QuestionApprovalGate:
    """Holds trainer questions until a coordinator releases them."""

    def __init__(
        self,
        db: AsyncSession,
        settings: Settings | None = None,
        notifier: Notifier | None = None,
    ) -> None:
        self.db = db
        self.settings = settings or get_settings()
        self.notifier = notifier or CeleryNotifier()

    async def submit_questions(self, session_id: str, trainer_id: str, questions: Sequence[str]) -> QuestionSet:
        session_obj = await services.get_roundtable_session(self.db, session_id)
        roundtable = await services.get_roundtable(self.db, session_obj.roundtable_id, for_update=True)
        if roundtable.status in TERMINAL_ROUNDTABLE_STATUSES:
            raise PreconditionFailedError(
                "Roundtable is no longer active",
                roundtable_id=roundtable.id,
                status=roundtable.status.value,
            )
        if session_obj.trainer_id != trainer_id:
            raise NotAssignedError(
                "You are not assigned to this session",
                session_id=session_obj.id,
                trainer_id=trainer_id,
            )
        texts = normalise_questions(questions, roundtable.questions_min, roundtable.questions_max)
        status = questions_status_after_submission(session_obj.questions_status)

        # The whole set is replaced; delete-orphan removes the previous rows.
        session_obj.questions.clear()
        for position, text in enumerate(texts):
            session_obj.questions.append(Question(text=text, position=position))
        session_obj.questions_status = status
        await self.db.flush()

        logger.bind(event="questions_submitted", session_id=session_obj.id, trainer_id=trainer_id).info(
            "Trainer {} submitted {} questions for session {}", trainer_id, len(texts), session_obj.id
        )
        for recipient in self.settings.coordinator_email_list:
            send_notification(
                self.notifier,
                NotificationKind.QUESTIONS_REVIEW,
                recipient,
                {
                    "roundtable_id": roundtable.id,
                    "roundtable_name": roundtable.name,
                    "session_id": session_obj.id,
                    "session_number": session_obj.session_number,
                    "question_count": len(texts),
                },
            )
        return self._question_set(session_obj, roundtable)

    async def review_questions(
        self, decisions: Sequence[ReviewDecision], reviewer: str | None = None
    ) -> list[QuestionSet]:
        """Apply a batch of reviewer decisions and recompute each touched session."""

        if not decisions:
            raise InvalidInputError("At least one review decision is required")
        for decision in decisions:
            if decision.status not in DECISION_STATUSES:
                raise InvalidInputError(
                    "Review decision must approve, reject or request revision",
                    question_id=decision.question_id,
                    status=QuestionStatus(decision.status).value,
                )

        questions = await services.get_questions(self.db, [d.question_id for d in decisions])
        by_id = {question.id: question for question in questions}
        session_ids = sorted({question.session_id for question in questions})
        sessions = [await services.get_roundtable_session(self.db, sid) for sid in session_ids]
        roundtables: dict[str, Roundtable] = {}
        for roundtable_id in sorted({s.roundtable_id for s in sessions}):
            roundtables[roundtable_id] = await services.get_roundtable(self.db, roundtable_id, for_update=True)
        for session_obj in sessions:
            if session_obj.questions_status not in REVIEWABLE_STATUSES:
                raise InvalidStateError(
                    "Questions for this session are not awaiting review",
                    session_id=session_obj.id,
                    current=session_obj.questions_status.value,
                )

        reviewed_at = utcnow()
        flagged: dict[str, list[Question]] = defaultdict(list)
        for decision in decisions:
            question = by_id[decision.question_id]
            question.status = QuestionStatus(decision.status)
            question.review_notes = decision.notes
            question.rating = decision.rating
            question.reviewed_by = reviewer
            question.reviewed_at = reviewed_at
            if question.status != QuestionStatus.APPROVED:
                flagged[question.session_id].append(question)

        results = []
        for session_obj in sessions:
            roundtable = roundtables[session_obj.roundtable_id]
            previous = session_obj.questions_status
            session_obj.questions_status = next_questions_status(
                previous,
                [question.status for question in session_obj.questions],
                roundtable.questions_min,
            )
            if previous != session_obj.questions_status:
                logger.bind(event="questions_status", session_id=session_obj.id).info(
                    "Session {} questions {} -> {}",
                    session_obj.id,
                    previous.value,
                    session_obj.questions_status.value,
                )
            if flagged.get(session_obj.id) and session_obj.questions_status == QuestionsStatus.REQUESTED_FROM_COORDINATOR:
                await self._request_revision(session_obj, roundtable, flagged[session_obj.id])
            results.append(self._question_set(session_obj, roundtable))
        await self.db.flush()
        return results

    async def get_session_questions(self, session_id: str) -> QuestionSet:
        session_obj = await services.get_roundtable_session(self.db, session_id)
        roundtable = await services.get_roundtable(self.db, session_obj.roundtable_id)
        return self._question_set(session_obj, roundtable)

    async def get_pending_reviews(self) -> list[QuestionSet]:
        result = await self.db.execute(
            select(Session)
            .where(Session.questions_status == QuestionsStatus.PENDING_APPROVAL)
            .order_by(Session.scheduled_at, Session.session_number)
        )
        pending = []
        for session_obj in result.scalars():
            roundtable = await services.get_roundtable(self.db, session_obj.roundtable_id)
            pending.append(self._question_set(session_obj, roundtable))
        return pending

    async def _request_revision(self, session_obj: Session, roundtable: Roundtable, items: list[Question]) -> None:
        if not session_obj.trainer_id:
            return
        trainer = await services.get_trainer(self.db, session_obj.trainer_id)
        send_notification(
            self.notifier,
            NotificationKind.REVISION_NEEDED,
            trainer.email,
            {
                "roundtable_id": roundtable.id,
                "roundtable_name": roundtable.name,
                "session_id": session_obj.id,
                "session_number": session_obj.session_number,
                "items": [
                    {
                        "question_id": question.id,
                        "text": question.text,
                        "status": question.status.value,
                        "notes": question.review_notes,
                    }
                    for question in items
                ],
            },
        )

    def _question_set(self, session_obj: Session, roundtable: Roundtable) -> QuestionSet:
        statuses = [question.status for question in session_obj.questions]
        return QuestionSet(
            session_id=session_obj.id,
            roundtable_id=roundtable.id,
            session_number=session_obj.session_number,
            trainer_id=session_obj.trainer_id,
            questions_status=session_obj.questions_status,
            questions_min=roundtable.questions_min,
            questions_max=roundtable.questions_max,
            can_resubmit=session_obj.questions_status != QuestionsStatus.SENT_TO_PARTICIPANTS,
            questions=[QuestionRead.model_validate(question) for question in session_obj.questions],
            summary=ReviewSummary(**review_summary(statuses, roundtable.questions_min)),
        )
