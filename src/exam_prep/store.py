"""In-memory repository for all study data, persisted as a single JSON blob.

``AppStore`` owns every entity collection. Reads are filtered to the current
user; every write snapshots the state, applies the change and saves the whole
blob through a ``StateSlot``. If the save fails the in-memory state is rolled
back to the snapshot before the error propagates.
"""
import logging
import threading
import uuid
from collections import defaultdict
from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Callable

from exam_prep.db import StateSlot
from exam_prep.errors import (
    AuthenticationError, AuthenticationRequired, GenerationError, InsufficientFunds,
    NotFound, ValidationError,
)
from exam_prep.generator import ContentGenerator, TemplateGenerator
from exam_prep.models import (
    DIFFICULTIES, ITEM_TYPES, ChatMessage, CheatSheet, Flashcard, Progress, Question,
    QuizAnswer, QuizResult, StoreItem, StudySession, Subject, User, from_dict, to_dict,
)
from exam_prep.seed import load_sample_flashcards, load_store_catalog

logger = logging.getLogger(__name__)

DEMO_EMAIL = "demo@example.com"
DEMO_PASSWORD = "password"
DEMO_USER_ID = "1"
DEMO_STARTING_COINS = 500
SIGNUP_STARTING_COINS = 100

QUIZ_MAX_REWARD = 50
STUDY_BLOCK_MINUTES = 10
STUDY_BLOCK_REWARD = 5

EDITABLE_SUBJECT_FIELDS = ("name", "category", "difficulty")


def _check_difficulty(difficulty: str) -> None:
    if difficulty not in DIFFICULTIES:
        raise ValidationError(f"Difficulty must be one of {', '.join(DIFFICULTIES)}")


def _find(records: list, record_id: str):
    return next((r for r in records if r.id == record_id), None)


def score_answers(questions: list[Question], selected: list[int | None], time_spent: int = 0) -> QuizResult:
    """Grade a taken quiz. ``selected[i]`` is the option picked for ``questions[i]`` (None = skipped)."""
    answers = [
        QuizAnswer(question_id=q.id, selected_index=choice, correct=choice == q.correct_index)
        for q, choice in zip(questions, selected)
        if choice is not None
    ]
    return QuizResult(
        score=sum(1 for a in answers if a.correct),
        total_questions=len(questions),
        time_spent=time_spent,
        answers=answers,
    )


class AppStore:
    def __init__(
        self,
        slot: StateSlot,
        generator: ContentGenerator | None = None,
        clock: Callable[[], datetime] | None = None,
        id_factory: Callable[[], str] | None = None,
    ):
        self.slot = slot
        self.generator = generator or TemplateGenerator()
        self.clock = clock or datetime.now
        self.id_factory = id_factory or (lambda: uuid.uuid4().hex)
        self._lock = threading.RLock()
        self._restore(slot.load() or {})
        if not self.store_items:
            with self._mutation():
                self.store_items = load_store_catalog(self._now())

    # --- persistence ---

    def to_dict(self) -> dict:
        return {
            "current_user_id": self.current_user.id if self.current_user else None,
            "users": [to_dict(u) for u in self.users],
            "subjects": [to_dict(s) for s in self.subjects],
            "questions": [to_dict(q) for q in self.questions],
            "flashcards": [to_dict(f) for f in self.flashcards],
            "cheat_sheets": [to_dict(c) for c in self.cheat_sheets],
            "progress": [to_dict(p) for p in self.progress],
            "study_sessions": [to_dict(s) for s in self.study_sessions],
            "store_items": [to_dict(i) for i in self.store_items],
            "chat_messages": [to_dict(m) for m in self.chat_messages],
        }

    def _restore(self, data: dict) -> None:
        self.users = [from_dict(User, d) for d in data.get("users", [])]
        self.subjects = [from_dict(Subject, d) for d in data.get("subjects", [])]
        self.questions = [from_dict(Question, d) for d in data.get("questions", [])]
        self.flashcards = [from_dict(Flashcard, d) for d in data.get("flashcards", [])]
        self.cheat_sheets = [from_dict(CheatSheet, d) for d in data.get("cheat_sheets", [])]
        self.progress = [from_dict(Progress, d) for d in data.get("progress", [])]
        self.study_sessions = [from_dict(StudySession, d) for d in data.get("study_sessions", [])]
        self.store_items = [from_dict(StoreItem, d) for d in data.get("store_items", [])]
        self.chat_messages = [from_dict(ChatMessage, d) for d in data.get("chat_messages", [])]
        self.current_user = _find(self.users, data.get("current_user_id"))

    @contextmanager
    def _mutation(self):
        with self._lock:
            snapshot = self.to_dict()
            try:
                yield
                self.slot.save(self.to_dict())
            except Exception:
                logger.warning("Mutation failed, restoring previous state", exc_info=True)
                self._restore(snapshot)
                raise

    def _now(self) -> str:
        return self.clock().isoformat()

    # --- users ---

    def get_current_user(self) -> User | None:
        return self.current_user

    def _require_user(self) -> User:
        if self.current_user is None:
            raise AuthenticationRequired()
        return self.current_user

    def authenticate(self, email: str, password: str) -> User:
        """Log in. Only the demo account is accepted."""
        if email != DEMO_EMAIL or password != DEMO_PASSWORD:
            logger.info("Rejected login for %s", email)
            raise AuthenticationError()
        with self._mutation():
            user = _find(self.users, DEMO_USER_ID)
            if user is None:
                user = User(
                    id=DEMO_USER_ID, email=DEMO_EMAIL, name="Demo User",
                    coins=DEMO_STARTING_COINS, created_at=self._now(),
                )
                self.users.append(user)
            self.current_user = user
        logger.info("Logged in as %s", email)
        return user

    def register(self, email: str, password: str, name: str) -> User:
        email = (email or "").strip()
        name = (name or "").strip()
        if not email or not name:
            raise ValidationError("Email and name are required")
        with self._mutation():
            user = User(
                id=self.id_factory(), email=email, name=name,
                coins=SIGNUP_STARTING_COINS, created_at=self._now(),
            )
            self.users.append(user)
            self.current_user = user
        logger.info("Registered %s", email)
        return user

    def logout(self) -> None:
        with self._mutation():
            self.current_user = None

    def award_coins(self, amount: int, reason: str = "") -> User:
        user = self._require_user()
        if amount < 0:
            raise ValidationError("Coin awards cannot be negative")
        with self._mutation():
            user.coins += amount
        logger.info("Awarded %d coins to %s (%s)", amount, user.id, reason or "unspecified")
        return user

    # --- subjects ---

    def get_subjects(self) -> list[Subject]:
        if self.current_user is None:
            return []
        return [s for s in self.subjects if s.user_id == self.current_user.id]

    def get_subject(self, subject_id: str) -> Subject | None:
        return _find(self.get_subjects(), subject_id)

    def _require_subject(self, subject_id: str) -> Subject:
        self._require_user()
        subject = self.get_subject(subject_id)
        if subject is None:
            raise NotFound("Subject", subject_id)
        return subject

    def add_subject(self, name: str, category: str = "", difficulty: str = "medium") -> Subject:
        user = self._require_user()
        name = (name or "").strip()
        if not name:
            raise ValidationError("Subject name is required")
        _check_difficulty(difficulty)
        subject = Subject(
            id=self.id_factory(), user_id=user.id, name=name, category=(category or "").strip(),
            difficulty=difficulty, questions_count=0, created_at=self._now(),
        )
        with self._mutation():
            self.subjects.append(subject)
        return subject

    def update_subject(self, subject_id: str, **changes) -> Subject | None:
        self._require_user()
        unknown = set(changes) - set(EDITABLE_SUBJECT_FIELDS)
        if unknown:
            raise ValidationError(f"Cannot update subject fields: {', '.join(sorted(unknown))}")
        changes = {k: v.strip() if isinstance(v, str) else v for k, v in changes.items()}
        if "name" in changes and not changes["name"]:
            raise ValidationError("Subject name is required")
        if "difficulty" in changes:
            _check_difficulty(changes["difficulty"])
        subject = self.get_subject(subject_id)
        if subject is None:
            return None
        with self._mutation():
            for key, value in changes.items():
                setattr(subject, key, value)
        return subject

    def delete_subject(self, subject_id: str) -> bool:
        """Delete a subject with its questions, flashcards, cheat sheets and progress."""
        self._require_user()
        if self.get_subject(subject_id) is None:
            return False
        with self._mutation():
            self.subjects = [s for s in self.subjects if s.id != subject_id]
            self.questions = [q for q in self.questions if q.subject_id != subject_id]
            self.flashcards = [f for f in self.flashcards if f.subject_id != subject_id]
            self.cheat_sheets = [c for c in self.cheat_sheets if c.subject_id != subject_id]
            self.progress = [p for p in self.progress if p.subject_id != subject_id]
        logger.info("Deleted subject %s", subject_id)
        return True

    # --- questions ---

    def get_questions(self, subject_id: str | None = None) -> list[Question]:
        own = {s.id for s in self.get_subjects()}
        return [
            q for q in self.questions
            if q.subject_id in own and (subject_id is None or q.subject_id == subject_id)
        ]

    def _question_from_draft(self, subject_id: str, difficulty: str, draft: dict, created_at: str) -> Question:
        options = draft.get("options")
        index = draft.get("correct_index")
        if not draft.get("text") or not options:
            raise GenerationError("Generated question is missing its text or options")
        if not isinstance(index, int) or not 0 <= index < len(options):
            raise GenerationError(f"Correct option index {index!r} is out of range")
        return Question(
            id=self.id_factory(), subject_id=subject_id, text=draft["text"],
            options=list(options), correct_index=index,
            explanation=draft.get("explanation", ""), difficulty=difficulty,
            created_at=created_at,
        )

    def generate_quiz(self, subject_id: str, topic: str, difficulty: str, count: int) -> list[Question]:
        subject = self._require_subject(subject_id)
        _check_difficulty(difficulty)
        if count < 1:
            raise ValidationError("Question count must be at least 1")
        drafts = self.generator.generate_questions(subject_id, topic, difficulty, count)
        if len(drafts) != count:
            raise GenerationError(f"Expected {count} questions, got {len(drafts)}")
        created_at = self._now()
        questions = [self._question_from_draft(subject_id, difficulty, d, created_at) for d in drafts]
        with self._mutation():
            self.questions.extend(questions)
            subject.questions_count += len(questions)
        logger.info("Generated %d %s questions on %r for subject %s", count, difficulty, topic, subject_id)
        return questions

    def submit_quiz_result(self, subject_id: str, result: QuizResult) -> Progress:
        """Fold a quiz score into the subject's running accuracy and pay out coins."""
        user = self._require_user()
        self._require_subject(subject_id)
        if result.total_questions <= 0:
            raise ValidationError("A quiz result needs at least one question")
        if not 0 <= result.score <= result.total_questions:
            raise ValidationError("Score must be between 0 and the number of questions")
        percent = result.score * 100 / result.total_questions
        earned = result.score * QUIZ_MAX_REWARD // result.total_questions
        with self._mutation():
            record = self.get_progress_for(subject_id)
            if record is None:
                record = Progress(id=self.id_factory(), user_id=user.id, subject_id=subject_id)
                self.progress.append(record)
            completed = record.quizzes_completed
            record.accuracy = (record.accuracy * completed + percent) / (completed + 1)
            record.quizzes_completed = completed + 1
            record.updated_at = self._now()
            user.coins += earned
        logger.info("Quiz scored %d/%d on subject %s, %d coins", result.score, result.total_questions, subject_id, earned)
        return record

    # --- flashcards ---

    def get_flashcards(self, subject_id: str | None = None) -> list[Flashcard]:
        if self.current_user is None:
            return []
        return [
            f for f in self.flashcards
            if f.user_id == self.current_user.id and (subject_id is None or f.subject_id == subject_id)
        ]

    def _new_flashcard(self, user: User, front: str, back: str, subject_id: str | None) -> Flashcard:
        front, back = (front or "").strip(), (back or "").strip()
        if not front or not back:
            raise ValidationError("Both sides of a flashcard are required")
        return Flashcard(
            id=self.id_factory(), user_id=user.id, front=front, back=back,
            subject_id=subject_id, created_at=self._now(),
        )

    def add_flashcard(self, front: str, back: str, subject_id: str | None = None) -> Flashcard:
        user = self._require_user()
        if subject_id is not None:
            self._require_subject(subject_id)
        card = self._new_flashcard(user, front, back, subject_id)
        with self._mutation():
            self.flashcards.append(card)
        return card

    def add_sample_flashcards(self, subject_id: str) -> list[Flashcard]:
        user = self._require_user()
        self._require_subject(subject_id)
        cards = [self._new_flashcard(user, c["front"], c["back"], subject_id) for c in load_sample_flashcards()]
        with self._mutation():
            self.flashcards.extend(cards)
        return cards

    # --- cheat sheets ---

    def get_cheat_sheets(self, subject_id: str | None = None) -> list[CheatSheet]:
        if self.current_user is None:
            return []
        return [
            c for c in self.cheat_sheets
            if c.user_id == self.current_user.id and (subject_id is None or c.subject_id == subject_id)
        ]

    def generate_cheat_sheet(self, subject_id: str, topic: str) -> CheatSheet:
        user = self._require_user()
        self._require_subject(subject_id)
        topic = (topic or "").strip()
        if not topic:
            raise ValidationError("A topic is required")
        content = self.generator.generate_cheat_sheet_content(topic)
        if not isinstance(content, str) or not content.strip():
            raise GenerationError("Generated cheat sheet is empty")
        sheet = CheatSheet(
            id=self.id_factory(), user_id=user.id, subject_id=subject_id,
            title=f"{topic} - Study Guide", content=content, created_at=self._now(),
        )
        with self._mutation():
            self.cheat_sheets.append(sheet)
        return sheet

    # --- progress ---

    def get_progress(self) -> list[Progress]:
        if self.current_user is None:
            return []
        return [p for p in self.progress if p.user_id == self.current_user.id]

    def get_progress_for(self, subject_id: str) -> Progress | None:
        return next((p for p in self.get_progress() if p.subject_id == subject_id), None)

    def get_progress_summary(self) -> dict:
        """Subject names and accuracies, ready for charting."""
        subjects = self.get_subjects()
        scores = []
        for s in subjects:
            record = self.get_progress_for(s.id)
            scores.append(record.accuracy if record else 0)
        return {"labels": [s.name for s in subjects], "scores": scores}

    # --- study sessions ---

    def get_study_sessions(self) -> list[StudySession]:
        if self.current_user is None:
            return []
        return [s for s in self.study_sessions if s.user_id == self.current_user.id]

    def get_open_session(self) -> StudySession | None:
        open_sessions = [s for s in self.get_study_sessions() if s.is_open]
        return open_sessions[-1] if open_sessions else None

    def start_study_session(self, subject_id: str) -> StudySession:
        user = self._require_user()
        self._require_subject(subject_id)
        session = StudySession(
            id=self.id_factory(), user_id=user.id, subject_id=subject_id,
            start_time=self._now(), duration_minutes=0,
        )
        with self._mutation():
            self.study_sessions.append(session)
        return session

    def stop_study_session(self, session_id: str) -> StudySession | None:
        """Close an open session. Unknown or already closed sessions return None."""
        session = _find(self.study_sessions, session_id)
        if session is None or not session.is_open:
            return None
        end = self.clock()
        elapsed = end - datetime.fromisoformat(session.start_time)
        minutes = max(0, int(elapsed.total_seconds() // 60))
        earned = (minutes // STUDY_BLOCK_MINUTES) * STUDY_BLOCK_REWARD
        with self._mutation():
            session.end_time = end.isoformat()
            session.duration_minutes = minutes
            owner = _find(self.users, session.user_id)
            if owner is not None:
                owner.coins += earned
        logger.info("Closed session %s after %d minutes, %d coins", session_id, minutes, earned)
        return session

    def get_study_history(self, days: int = 7) -> list[dict]:
        """Daily study minutes for the last ``days`` days, oldest first, ending today."""
        today = self.clock().date()
        start = today - timedelta(days=days - 1)
        totals = defaultdict(int)
        for session in self.get_study_sessions():
            day = datetime.fromisoformat(session.start_time).date()
            if start <= day <= today:
                totals[day] += session.duration_minutes
        history = []
        for offset in range(max(days, 0)):
            day = start + timedelta(days=offset)
            history.append({"date": day.isoformat(), "minutes": totals[day]})
        return history

    # --- cosmetic store ---

    def get_store_items(self, item_type: str | None = None) -> list[StoreItem]:
        if item_type is None:
            return list(self.store_items)
        return [i for i in self.store_items if i.type == item_type]

    def get_store_item(self, item_id: str) -> StoreItem | None:
        return _find(self.store_items, item_id)

    def owns_item(self, item_id: str) -> bool:
        item = self.get_store_item(item_id)
        if item is None or self.current_user is None or item.type not in ITEM_TYPES:
            return False
        return getattr(self.current_user, item.type) == item.image_url

    def purchase_store_item(self, item_id: str) -> User:
        """Buy a cosmetic, replacing whatever currently occupies its slot."""
        with self._lock:
            user = self._require_user()
            item = self.get_store_item(item_id)
            if item is None:
                raise NotFound("Store item", item_id)
            if item.type not in ITEM_TYPES:
                raise ValidationError(f"Unknown item type: {item.type}")
            if user.coins < item.price:
                raise InsufficientFunds(item.price, user.coins)
            with self._mutation():
                user.coins -= item.price
                setattr(user, item.type, item.image_url)
        logger.info("User %s bought %s for %d coins", user.id, item.name, item.price)
        return user

    # --- chat ---

    def send_chat_message(self, text: str) -> str:
        text = (text or "").strip()
        if not text:
            raise ValidationError("Message is empty")
        response = self.generator.generate_chat_reply(text)
        if self.current_user is not None:
            message = ChatMessage(
                id=self.id_factory(), message=text, response=response,
                created_at=self._now(), user_id=self.current_user.id,
            )
            with self._mutation():
                self.chat_messages.append(message)
        return response

    def get_chat_history(self) -> list[ChatMessage]:
        if self.current_user is None:
            return []
        return [m for m in self.chat_messages if m.user_id == self.current_user.id]
