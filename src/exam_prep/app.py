"""Interactive CLI application."""
import logging
import time

from rich.console import Console
from rich.live import Live
from rich.markdown import Markdown
from rich.panel import Panel
from rich.prompt import Prompt, IntPrompt
from rich.table import Table

from exam_prep.config import STORAGE_BACKENDS, Settings, get_settings
from exam_prep.dashboard import (
    get_overall_stats, get_subject_scores, get_weak_subjects, get_weekly_chart,
    get_performance_color,
)
from exam_prep.db import JsonFileSlot, SqliteSlot, StateSlot
from exam_prep.errors import StoreError, ValidationError
from exam_prep.logging_config import init_logging
from exam_prep.models import DIFFICULTIES
from exam_prep.store import AppStore, score_answers
from exam_prep.timer import MODES, StudyTimer

logger = logging.getLogger(__name__)

console = Console()

COMMANDS = [
    ("login", "Log in (demo@example.com / password)"),
    ("signup", "Create an account"),
    ("subjects", "List, add, rename or delete subjects"),
    ("quiz", "Generate and take a quiz"),
    ("flashcards", "Create and drill flashcards"),
    ("cheatsheet", "Generate or read cheat sheets"),
    ("timer", "Pomodoro study timer"),
    ("progress", "Stats, subject scores and study history"),
    ("store", "Spend coins on cosmetics"),
    ("chat", "Ask the tutor"),
    ("logout", "Log out"),
    ("quit", "Exit"),
]


def show_welcome(store: AppStore):
    user = store.get_current_user()
    greeting = f"Welcome back, [bold]{user.name}[/bold]! ({user.coins} coins)" if user else "Not logged in"
    console.print(Panel(
        f"[bold]Smart Exam Prep[/bold]\n[dim]{greeting}[/dim]",
        title="Welcome", border_style="blue",
    ))


def show_menu():
    console.print("\n[bold]Commands:[/bold]")
    for cmd, desc in COMMANDS:
        console.print(f"  [cyan]{cmd:<14}[/cyan] {desc}")


def pick_subject(store: AppStore) -> str | None:
    subjects = store.get_subjects()
    if not subjects:
        console.print("[yellow]Create a subject first.[/yellow]")
        return None
    for i, s in enumerate(subjects, 1):
        console.print(f"  [cyan]{i}[/cyan]) {s.name} [dim]({s.category or 'uncategorized'}, {s.difficulty})[/dim]")
    choice = IntPrompt.ask("Select subject", choices=[str(i) for i in range(1, len(subjects) + 1)])
    return subjects[choice - 1].id


def cmd_login(store: AppStore):
    email = Prompt.ask("Email", default="demo@example.com")
    password = Prompt.ask("Password", password=True)
    user = store.authenticate(email, password)
    console.print(f"[green]Login successful. Hello, {user.name}![/green]")


def cmd_signup(store: AppStore):
    name = Prompt.ask("Name")
    email = Prompt.ask("Email")
    password = Prompt.ask("Password", password=True)
    user = store.register(email, password, name)
    console.print(f"[green]Account created. You start with {user.coins} coins.[/green]")


def cmd_logout(store: AppStore):
    store.logout()
    console.print("[dim]Logged out.[/dim]")


def show_subjects(store: AppStore):
    table = Table(title="Subjects")
    table.add_column("#", justify="right")
    table.add_column("Name", style="cyan")
    table.add_column("Category")
    table.add_column("Difficulty")
    table.add_column("Questions", justify="right")
    for i, s in enumerate(store.get_subjects(), 1):
        table.add_row(str(i), s.name, s.category, s.difficulty, str(s.questions_count))
    console.print(table)


def cmd_subjects(store: AppStore):
    show_subjects(store)
    action = Prompt.ask("Action", choices=["add", "rename", "delete", "back"], default="back")
    if action == "add":
        name = Prompt.ask("Name")
        category = Prompt.ask("Category", default="")
        difficulty = Prompt.ask("Difficulty", choices=list(DIFFICULTIES), default="medium")
        subject = store.add_subject(name, category, difficulty)
        console.print(f"[green]Added {subject.name}.[/green]")
    elif action == "rename":
        subject_id = pick_subject(store)
        if subject_id:
            store.update_subject(subject_id, name=Prompt.ask("New name"))
            console.print("[green]Renamed.[/green]")
    elif action == "delete":
        subject_id = pick_subject(store)
        if subject_id and Prompt.ask("Delete subject and all its material?", choices=["y", "n"], default="n") == "y":
            store.delete_subject(subject_id)
            console.print("[green]Deleted.[/green]")


def run_quiz_session(store: AppStore, subject_id: str, questions: list) -> tuple[int, int]:
    if not questions:
        console.print("[yellow]No questions available![/yellow]")
        return 0, 0
    letters = "abcdefgh"
    selected = []
    started = time.monotonic()
    console.print(f"\n[bold]Quiz[/bold] — {len(questions)} questions\n")
    for i, q in enumerate(questions, 1):
        console.print(f"[bold]Q{i}.[/bold] {q.text}\n")
        for letter, option in zip(letters, q.options):
            console.print(f"  [cyan]{letter})[/cyan] {option}")
        answer = Prompt.ask("\nYour answer", choices=list(letters[:len(q.options)]))
        choice = letters.index(answer)
        selected.append(choice)
        if choice == q.correct_index:
            console.print("[green]Correct![/green]")
        else:
            console.print(f"[red]Incorrect.[/red] Answer: [green]{letters[q.correct_index]}[/green]")
        if q.explanation:
            console.print(f"[dim]{q.explanation}[/dim]")
        console.print()
    result = score_answers(questions, selected, time_spent=int(time.monotonic() - started))
    store.submit_quiz_result(subject_id, result)
    console.print(f"[bold]Score: {result.score}/{result.total_questions} ({result.fraction * 100:.0f}%)[/bold]\n")
    return result.score, result.total_questions


def cmd_quiz(store: AppStore):
    console.print("\n[bold]Practice Quiz[/bold]")
    subject_id = pick_subject(store)
    if not subject_id:
        return
    mode = Prompt.ask("Quiz source", choices=["new", "saved"], default="new")
    if mode == "new":
        topic = Prompt.ask("Topic")
        difficulty = Prompt.ask("Difficulty", choices=list(DIFFICULTIES), default="medium")
        count = IntPrompt.ask("Number of questions", default=5)
        questions = store.generate_quiz(subject_id, topic, difficulty, count)
    else:
        questions = store.get_questions(subject_id)
    run_quiz_session(store, subject_id, questions)


def run_flashcard_session(cards: list) -> tuple[int, int]:
    if not cards:
        console.print("[yellow]No flashcards yet![/yellow]")
        return 0, 0
    known = 0
    console.print(f"\n[bold]Flashcard Session[/bold] — {len(cards)} cards\n")
    for i, card in enumerate(cards, 1):
        console.print(Panel(card.front, title=f"Card {i}/{len(cards)}", border_style="cyan"))
        Prompt.ask("[dim]Press Enter to reveal answer[/dim]", default="")
        console.print(Panel(card.back, border_style="green"))
        if Prompt.ask("Did you know it?", choices=["y", "n"], default="y") == "y":
            known += 1
        console.print()
    console.print(f"[bold]Known: {known}/{len(cards)} ({known / len(cards) * 100:.0f}%)[/bold]\n")
    return known, len(cards)


def cmd_flashcards(store: AppStore):
    action = Prompt.ask("Flashcards", choices=["study", "add", "samples"], default="study")
    if action == "study":
        run_flashcard_session(store.get_flashcards())
        return
    subject_id = pick_subject(store)
    if not subject_id:
        return
    if action == "add":
        store.add_flashcard(Prompt.ask("Front"), Prompt.ask("Back"), subject_id)
        console.print("[green]Card added.[/green]")
    else:
        cards = store.add_sample_flashcards(subject_id)
        console.print(f"[green]Created {len(cards)} sample flashcards.[/green]")


def cmd_cheatsheet(store: AppStore):
    action = Prompt.ask("Cheat sheets", choices=["generate", "read"], default="read")
    if action == "generate":
        subject_id = pick_subject(store)
        if not subject_id:
            return
        sheet = store.generate_cheat_sheet(subject_id, Prompt.ask("Topic"))
        console.print(Panel(Markdown(sheet.content), title=sheet.title))
        return
    sheets = store.get_cheat_sheets()
    if not sheets:
        console.print("[yellow]No cheat sheets yet.[/yellow]")
        return
    for i, sheet in enumerate(sheets, 1):
        console.print(f"  [cyan]{i}[/cyan]) {sheet.title}")
    choice = IntPrompt.ask("Open", choices=[str(i) for i in range(1, len(sheets) + 1)])
    sheet = sheets[choice - 1]
    console.print(Panel(Markdown(sheet.content), title=sheet.title))


def run_timer(timer: StudyTimer) -> str | None:
    """Tick once per second until the current phase ends or the user hits Ctrl-C."""
    event = None
    try:
        with Live(console=console, refresh_per_second=4) as live:
            while timer.running:
                label = "Break" if timer.is_break else "Focus"
                live.update(Panel(f"[bold]{timer.display}[/bold]", title=f"{label} ({timer.mode})"))
                time.sleep(1)
                event = timer.tick()
    except KeyboardInterrupt:
        timer.pause()
    return event


def cmd_timer(store: AppStore):
    mode = Prompt.ask("Mode", choices=list(MODES), default="pomodoro")
    minutes = IntPrompt.ask("Minutes", default=25) if mode == "custom" else 25
    subject_id = pick_subject(store)
    if not subject_id:
        return
    timer = StudyTimer(store, mode, minutes)
    timer.start(subject_id)
    while True:
        event = run_timer(timer)
        if event == "pomodoro_complete":
            console.print("[green]Pomodoro complete! Time for a break.[/green]")
        elif event == "break_complete":
            console.print("[green]Break complete! Ready for the next pomodoro?[/green]")
        elif event == "timer_complete":
            console.print("[green]Timer complete! Great study session.[/green]")
            break
        next_step = Prompt.ask("Next", choices=["continue", "stop"], default="continue")
        if next_step == "stop":
            break
        if event is None:
            timer.resume()
        else:
            timer.start(subject_id)
    session = timer.stop()
    if session:
        console.print(f"[green]You studied for {session.duration_minutes} minutes.[/green]")


def cmd_progress(store: AppStore):
    stats = get_overall_stats(store)
    console.print(Panel(
        f"Quizzes: [bold]{stats['total_quizzes']}[/bold]  |  "
        f"Avg accuracy: [bold]{stats['average_accuracy']}%[/bold]  |  "
        f"Study time (30d): [bold]{stats['total_study_minutes']} min[/bold]  |  "
        f"Streak: [bold]{stats['study_streak']} days[/bold]  |  "
        f"Coins: [bold]{stats['coins']}[/bold]",
        title="Progress", border_style="blue",
    ))

    table = Table(title="Subject Breakdown")
    table.add_column("Subject", style="cyan")
    table.add_column("Quizzes", justify="right")
    table.add_column("Accuracy", justify="right")
    table.add_column("Grade")
    for row in get_subject_scores(store):
        color = get_performance_color(row["accuracy"])
        table.add_row(
            row["name"], str(row["quizzes_completed"]), f"{row['accuracy']}%",
            f"[{color}]{row['grade']} {row['label']}[/{color}]",
        )
    console.print(table)

    console.print("\n[bold]This week:[/bold]")
    for day in get_weekly_chart(store.get_study_history(7)):
        bar = "█" * (day["percentage"] // 5)
        console.print(f"  {day['date']}  [cyan]{bar:<20}[/cyan] {day['minutes']} min")

    weak = get_weak_subjects(store)
    if weak:
        console.print(f"\n  [yellow]Recommendation: Focus on {weak[0]['name']}[/yellow]")


def cmd_store(store: AppStore):
    user = store.get_current_user()
    table = Table(title=f"Store — {user.coins if user else 0} coins")
    table.add_column("#", justify="right")
    table.add_column("Item", style="cyan")
    table.add_column("Type")
    table.add_column("Price", justify="right")
    table.add_column("")
    items = store.get_store_items()
    for i, item in enumerate(items, 1):
        owned = "[green]equipped[/green]" if store.owns_item(item.id) else ""
        table.add_row(str(i), f"{item.name}\n[dim]{item.description}[/dim]", item.type, str(item.price), owned)
    console.print(table)
    choice = Prompt.ask("Buy item # (Enter to go back)", default="")
    if not choice.isdigit() or not 1 <= int(choice) <= len(items):
        return
    user = store.purchase_store_item(items[int(choice) - 1].id)
    console.print(f"[green]Purchase successful! {user.coins} coins left.[/green]")


def cmd_chat(store: AppStore):
    for message in store.get_chat_history()[-5:]:
        console.print(f"[cyan]You:[/cyan] {message.message}")
        console.print(f"[green]Tutor:[/green] {message.response}\n")
    console.print("[dim]Empty line to leave the chat.[/dim]")
    while True:
        text = Prompt.ask("[cyan]You[/cyan]", default="")
        if not text.strip():
            break
        console.print(f"[green]Tutor:[/green] {store.send_chat_message(text)}\n")


HANDLERS = {
    "login": cmd_login,
    "signup": cmd_signup,
    "logout": cmd_logout,
    "subjects": cmd_subjects,
    "quiz": cmd_quiz,
    "flashcards": cmd_flashcards,
    "cheatsheet": cmd_cheatsheet,
    "timer": cmd_timer,
    "progress": cmd_progress,
    "store": cmd_store,
    "chat": cmd_chat,
}


def dispatch(store: AppStore, choice: str) -> bool:
    """Run one menu command. Returns False when the user asked to quit."""
    if choice in ("quit", "exit", "q"):
        console.print("[dim]Good luck on your exams![/dim]")
        return False
    handler = HANDLERS.get(choice)
    if handler is None:
        console.print("[red]Unknown command. Try again.[/red]")
        return True
    try:
        handler(store)
    except StoreError as e:
        console.print(f"[red]{e}[/red]")
    return True


def build_slot(settings: Settings) -> StateSlot:
    if settings.storage == "json":
        return JsonFileSlot(settings.json_path)
    if settings.storage == "sqlite":
        return SqliteSlot(settings.db_path, settings.state_key)
    raise ValidationError(f"Storage must be one of {', '.join(STORAGE_BACKENDS)}")


def main():
    settings = get_settings()
    init_logging(settings.log_level, settings.log_format)
    store = AppStore(build_slot(settings))

    show_welcome(store)

    while True:
        show_menu()
        default = "progress" if store.get_current_user() else "login"
        choice = Prompt.ask("\n[bold]>[/bold]", default=default).strip().lower()
        try:
            if not dispatch(store, choice):
                break
        except KeyboardInterrupt:
            console.print("\n[dim]Use 'quit' to exit.[/dim]")
        except Exception as e:
            logger.exception("Command %s failed", choice)
            console.print(f"[red]Error: {e}[/red]")


if __name__ == "__main__":
    main()
