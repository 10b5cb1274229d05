from exam_prep.dashboard import (
    calc_study_streak, get_overall_stats, get_performance_color, get_performance_grade,
    get_performance_label, get_subject_scores, get_weak_subjects, get_weekly_chart,
)
from exam_prep.models import QuizResult


def _history(*minutes):
    return [{"date": f"2024-03-{10 + i:02d}", "minutes": m} for i, m in enumerate(minutes)]


def test_performance_label():
    assert get_performance_label(95) == "Excellent"
    assert get_performance_label(85) == "Good"
    assert get_performance_label(75) == "Average"
    assert get_performance_label(65) == "Below Average"
    assert get_performance_label(10) == "Needs Improvement"


def test_performance_grade_and_color():
    assert get_performance_grade(90) == "A+"
    assert get_performance_grade(59.9) == "D"
    assert get_performance_color(80) == "green"
    assert get_performance_color(0) == "red"


def test_streak_counts_back_from_today():
    assert calc_study_streak(_history(10, 0, 5, 20, 30)) == 3
    assert calc_study_streak(_history(10, 20, 0)) == 0
    assert calc_study_streak([]) == 0


def test_overall_stats_empty(demo_store):
    stats = get_overall_stats(demo_store)
    assert stats == {
        "total_quizzes": 0,
        "average_accuracy": 0,
        "total_study_minutes": 0,
        "study_streak": 0,
        "coins": 500,
    }


def test_overall_stats_with_data(demo_store, subject, clock):
    other = demo_store.add_subject("Biology")
    demo_store.submit_quiz_result(subject.id, QuizResult(score=1, total_questions=2))
    demo_store.submit_quiz_result(other.id, QuizResult(score=2, total_questions=2))
    session = demo_store.start_study_session(subject.id)
    clock.advance(minutes=25)
    demo_store.stop_study_session(session.id)

    stats = get_overall_stats(demo_store)
    assert stats["total_quizzes"] == 2
    assert stats["average_accuracy"] == 75
    assert stats["total_study_minutes"] == 25
    assert stats["study_streak"] == 1


def test_subject_scores_and_weak_subjects(demo_store, subject):
    bio = demo_store.add_subject("Biology")
    chem = demo_store.add_subject("Chemistry")
    demo_store.submit_quiz_result(subject.id, QuizResult(score=9, total_questions=10))
    demo_store.submit_quiz_result(bio.id, QuizResult(score=1, total_questions=2))
    scores = {s["name"]: s for s in get_subject_scores(demo_store)}
    assert scores["Algebra"]["grade"] == "A+"
    assert scores["Biology"]["label"] == "Needs Improvement"
    assert scores["Chemistry"]["quizzes_completed"] == 0

    weak = get_weak_subjects(demo_store)
    # subjects without quizzes are not flagged
    assert [w["subject_id"] for w in weak] == [bio.id]
    assert chem.id not in {w["subject_id"] for w in weak}


def test_weekly_chart():
    chart = get_weekly_chart(_history(99, 0, 30, 60, 15, 0, 45, 120))
    assert len(chart) == 7
    assert chart[0]["date"] == "2024-03-11"
    assert chart[-1]["percentage"] == 100
    assert chart[2]["percentage"] == 50


def test_weekly_chart_all_zero():
    chart = get_weekly_chart(_history(0, 0, 0))
    assert [d["percentage"] for d in chart] == [0, 0, 0]
