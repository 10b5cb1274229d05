"""End-to-end test of the core workflow."""
from exam_prep.dashboard import get_overall_stats, get_weak_subjects
from exam_prep.db import SqliteSlot
from exam_prep.store import AppStore, score_answers
from exam_prep.timer import StudyTimer


def test_full_study_workflow(tmp_db, clock):
    """Sign up, study, quiz, shop, then reopen the database and check everything stuck."""
    store = AppStore(SqliteSlot(tmp_db), clock=clock)
    store.register("ada@example.com", "pw", "Ada")
    algebra = store.add_subject("Algebra", "Math", "medium")
    biology = store.add_subject("Biology", "Science", "easy")

    # Quiz: answer all but one correctly
    questions = store.generate_quiz(algebra.id, "Linear Equations", "easy", 5)
    selected = [q.correct_index for q in questions[:4]] + [(questions[4].correct_index + 1) % 4]
    store.submit_quiz_result(algebra.id, score_answers(questions, selected))

    # Biology goes badly
    questions = store.generate_quiz(biology.id, "Cells", "easy", 4)
    store.submit_quiz_result(biology.id, score_answers(questions, [None] * 4))

    # Pomodoro with a matching wall-clock study session
    timer = StudyTimer(store)
    timer.start(algebra.id)
    while timer.running:
        if timer.time_left == 1:
            clock.advance(minutes=25)
        timer.tick()

    store.add_sample_flashcards(biology.id)
    store.generate_cheat_sheet(biology.id, "Cells")

    # 100 start + 40 quiz + 0 quiz + 25 pomodoro + 10 session
    assert store.get_current_user().coins == 175
    store.purchase_store_item("3")
    assert store.get_current_user().coins == 25

    stats = get_overall_stats(store)
    assert stats["total_quizzes"] == 2
    assert stats["average_accuracy"] == 40
    assert stats["total_study_minutes"] == 25
    assert [w["name"] for w in get_weak_subjects(store)] == ["Biology"]

    reopened = AppStore(SqliteSlot(tmp_db), clock=clock)
    assert reopened.to_dict() == store.to_dict()
    assert reopened.get_current_user().avatar == "/avatars/genius.png"

    assert reopened.delete_subject(biology.id)
    assert reopened.get_flashcards() == []
    assert reopened.get_cheat_sheets() == []
    assert [p.subject_id for p in reopened.get_progress()] == [algebra.id]
