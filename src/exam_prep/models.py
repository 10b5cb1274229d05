"""Data classes for the study app domain model."""
from dataclasses import asdict, dataclass, field, fields
from typing import Optional

DIFFICULTIES = ("easy", "medium", "hard")
ITEM_TYPES = ("avatar", "banner", "badge")


@dataclass
class User:
    id: str
    email: str
    name: str
    coins: int = 0
    avatar: Optional[str] = None
    banner: Optional[str] = None
    badge: Optional[str] = None
    created_at: str = ""


@dataclass
class Subject:
    id: str
    user_id: str
    name: str
    category: str = ""
    difficulty: str = "medium"
    questions_count: int = 0
    created_at: str = ""


@dataclass
class Question:
    id: str
    subject_id: str
    text: str
    options: list[str] = field(default_factory=list)
    correct_index: int = 0
    explanation: str = ""
    difficulty: str = "medium"
    created_at: str = ""


@dataclass
class Flashcard:
    id: str
    user_id: str
    front: str
    back: str
    subject_id: Optional[str] = None
    created_at: str = ""


@dataclass
class CheatSheet:
    id: str
    user_id: str
    subject_id: str
    title: str
    content: str = ""
    created_at: str = ""


@dataclass
class Progress:
    id: str
    user_id: str
    subject_id: str
    quizzes_completed: int = 0
    accuracy: float = 0.0
    updated_at: str = ""


@dataclass
class StudySession:
    id: str
    user_id: str
    subject_id: str
    start_time: str
    end_time: Optional[str] = None
    duration_minutes: int = 0

    @property
    def is_open(self) -> bool:
        return self.end_time is None


@dataclass
class StoreItem:
    id: str
    name: str
    description: str
    price: int
    type: str
    image_url: str
    created_at: str = ""


@dataclass
class ChatMessage:
    id: str
    message: str
    response: str
    created_at: str = ""
    user_id: Optional[str] = None


@dataclass
class QuizAnswer:
    question_id: str
    selected_index: int
    correct: bool


@dataclass
class QuizResult:
    score: int
    total_questions: int
    time_spent: int = 0  # seconds
    answers: list[QuizAnswer] = field(default_factory=list)

    @property
    def fraction(self) -> float:
        return self.score / self.total_questions


def to_dict(record) -> dict:
    """Convert a record to a JSON-compatible dict."""
    return asdict(record)


def from_dict(cls, data: dict):
    """Build a record of type ``cls`` from a dict, ignoring unknown keys."""
    known = {f.name for f in fields(cls)}
    return cls(**{k: v for k, v in data.items() if k in known})
