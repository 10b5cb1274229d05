import pytest

from exam_prep.errors import AuthenticationRequired, GenerationError, NotFound, ValidationError
from exam_prep.models import QuizResult
from exam_prep.store import score_answers


class BrokenGenerator:
    def __init__(self, drafts):
        self.drafts = drafts

    def generate_questions(self, subject_id, topic, difficulty, count):
        return self.drafts


def test_generate_quiz(demo_store, subject):
    questions = demo_store.generate_quiz(subject.id, "Linear Equations", "easy", 5)
    assert len(questions) == 5
    for q in questions:
        assert len(q.options) == 4
        assert 0 <= q.correct_index <= 3
        assert q.difficulty == "easy"
        assert q.subject_id == subject.id
        assert "Linear Equations" in q.text
    assert subject.questions_count == 5
    assert demo_store.get_questions(subject.id) == questions


def test_generate_quiz_accumulates_question_count(demo_store, subject):
    demo_store.generate_quiz(subject.id, "A", "easy", 3)
    demo_store.generate_quiz(subject.id, "B", "hard", 2)
    assert subject.questions_count == 5
    assert len(demo_store.get_questions()) == 5


def test_generate_quiz_validates_input(demo_store, subject):
    with pytest.raises(ValidationError):
        demo_store.generate_quiz(subject.id, "A", "easy", 0)
    with pytest.raises(ValidationError):
        demo_store.generate_quiz(subject.id, "A", "brutal", 3)
    with pytest.raises(NotFound):
        demo_store.generate_quiz("missing", "A", "easy", 3)


def test_generate_quiz_requires_login(store):
    with pytest.raises(AuthenticationRequired):
        store.generate_quiz("any", "A", "easy", 3)


def test_generate_quiz_rejects_out_of_range_answer(demo_store, subject):
    demo_store.generator = BrokenGenerator([{"text": "Q", "options": ["a", "b"], "correct_index": 2}])
    with pytest.raises(GenerationError):
        demo_store.generate_quiz(subject.id, "A", "easy", 1)
    assert demo_store.get_questions() == []
    assert subject.questions_count == 0


def test_generate_quiz_rejects_wrong_count(demo_store, subject):
    demo_store.generator = BrokenGenerator([])
    with pytest.raises(GenerationError):
        demo_store.generate_quiz(subject.id, "A", "easy", 2)


def test_submit_two_results_averages(demo_store, subject):
    demo_store.submit_quiz_result(subject.id, QuizResult(score=4, total_questions=5))
    progress = demo_store.submit_quiz_result(subject.id, QuizResult(score=5, total_questions=5))
    assert progress.accuracy == pytest.approx(90.0)
    assert progress.quizzes_completed == 2
    assert len(demo_store.get_progress()) == 1
    # 40 + 50 coins
    assert demo_store.get_current_user().coins == 590


def test_running_accuracy_is_the_mean(demo_store, subject):
    scores = [(1, 4), (3, 4), (2, 2), (0, 3), (7, 10)]
    for score, total in scores:
        demo_store.submit_quiz_result(subject.id, QuizResult(score=score, total_questions=total))
    expected = sum(s / t * 100 for s, t in scores) / len(scores)
    progress = demo_store.get_progress_for(subject.id)
    assert progress.accuracy == pytest.approx(expected)
    assert progress.quizzes_completed == len(scores)


def test_quiz_coins_are_floored(demo_store, subject):
    demo_store.submit_quiz_result(subject.id, QuizResult(score=1, total_questions=3))
    assert demo_store.get_current_user().coins == 516  # floor(50 / 3)


def test_submit_validates_result(demo_store, subject):
    with pytest.raises(ValidationError):
        demo_store.submit_quiz_result(subject.id, QuizResult(score=0, total_questions=0))
    with pytest.raises(ValidationError):
        demo_store.submit_quiz_result(subject.id, QuizResult(score=6, total_questions=5))
    with pytest.raises(NotFound):
        demo_store.submit_quiz_result("missing", QuizResult(score=1, total_questions=1))
    assert demo_store.get_progress() == []


def test_score_answers(demo_store, subject):
    questions = demo_store.generate_quiz(subject.id, "Topic", "medium", 3)
    wrong = (questions[1].correct_index + 1) % 4
    result = score_answers(questions, [questions[0].correct_index, wrong, None], time_spent=42)
    assert result.score == 1
    assert result.total_questions == 3
    assert result.time_spent == 42
    assert [a.correct for a in result.answers] == [True, False]


def test_progress_summary(demo_store, subject):
    other = demo_store.add_subject("Biology")
    demo_store.submit_quiz_result(subject.id, QuizResult(score=3, total_questions=4))
    summary = demo_store.get_progress_summary()
    assert summary["labels"] == ["Algebra", "Biology"]
    assert summary["scores"] == [75.0, 0]
    assert demo_store.get_progress_for(other.id) is None
