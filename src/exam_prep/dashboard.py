"""Progress dashboard scoring and statistics."""
from exam_prep.store import AppStore


def get_performance_label(accuracy: float) -> str:
    if accuracy >= 90:
        return "Excellent"
    elif accuracy >= 80:
        return "Good"
    elif accuracy >= 70:
        return "Average"
    elif accuracy >= 60:
        return "Below Average"
    return "Needs Improvement"


def get_performance_grade(accuracy: float) -> str:
    if accuracy >= 90:
        return "A+"
    elif accuracy >= 80:
        return "A"
    elif accuracy >= 70:
        return "B"
    elif accuracy >= 60:
        return "C"
    return "D"


def get_performance_color(accuracy: float) -> str:
    if accuracy >= 80:
        return "green"
    elif accuracy >= 70:
        return "yellow"
    elif accuracy >= 60:
        return "dark_orange"
    return "red"


def calc_study_streak(history: list[dict]) -> int:
    """Consecutive days with study time, counted back from the most recent day."""
    streak = 0
    for day in reversed(history):
        if day["minutes"] <= 0:
            break
        streak += 1
    return streak


def get_overall_stats(store: AppStore, days: int = 30) -> dict:
    progress = store.get_progress()
    history = store.get_study_history(days)
    user = store.get_current_user()
    average = round(sum(p.accuracy for p in progress) / len(progress)) if progress else 0
    return {
        "total_quizzes": sum(p.quizzes_completed for p in progress),
        "average_accuracy": average,
        "total_study_minutes": sum(d["minutes"] for d in history),
        "study_streak": calc_study_streak(history),
        "coins": user.coins if user else 0,
    }


def get_subject_scores(store: AppStore) -> list[dict]:
    results = []
    for subject in store.get_subjects():
        record = store.get_progress_for(subject.id)
        accuracy = record.accuracy if record else 0.0
        results.append({
            "subject_id": subject.id,
            "name": subject.name,
            "category": subject.category,
            "quizzes_completed": record.quizzes_completed if record else 0,
            "accuracy": round(accuracy, 1),
            "label": get_performance_label(accuracy),
            "grade": get_performance_grade(accuracy),
        })
    return results


def get_weak_subjects(store: AppStore, threshold: float = 70.0) -> list[dict]:
    """Subjects with at least one quiz whose accuracy is below threshold (worst first)."""
    weak = [s for s in get_subject_scores(store) if s["quizzes_completed"] and s["accuracy"] < threshold]
    return sorted(weak, key=lambda s: s["accuracy"])


def get_weekly_chart(history: list[dict]) -> list[dict]:
    """Last seven days with each day's share of the busiest day, as a percentage."""
    last_week = history[-7:]
    peak = max([d["minutes"] for d in last_week] + [1])
    return [
        {"date": d["date"], "minutes": d["minutes"], "percentage": round(d["minutes"] / peak * 100)}
        for d in last_week
    ]
