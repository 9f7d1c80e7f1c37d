"""Interactive CLI application."""
import sqlite3
import sys
from datetime import date, datetime, timedelta

from loguru import logger
from rich.console import Console
from rich.panel import Panel
from rich.prompt import IntPrompt, Prompt
from rich.table import Table

from brevet_coach.analytics import (
    get_accuracy_color, get_accuracy_label, get_accuracy_stats, get_daily_study_stats,
    get_lesson_accuracy,
    get_study_stats, get_subject_progress, get_today_study_minutes,
)
from brevet_coach.db import DEFAULT_DB_PATH, init_db
from brevet_coach.exercises import get_exercises, get_options, record_attempt
from brevet_coach.models import InvalidReviewState
from brevet_coach.recommend import get_recommended_lessons
from brevet_coach.scheduler import LessonNotFound, get_lessons_for_review
from brevet_coach.seed import is_seeded, seed_all
from brevet_coach.study import (
    days_until_exam, get_lesson, get_lessons, get_settings, mark_lesson_complete,
    reset_all_progress, save_study_session, update_settings,
)

console = Console()

EXIT_WORDS = ("q", "menu")


class SessionExitRequested(Exception):
    """The user asked to leave the current activity and go back to the menu."""


def session_prompt(prompt: str, **kwargs) -> str:
    answer = Prompt.ask(prompt, **kwargs)
    if answer.strip().lower() in EXIT_WORDS:
        raise SessionExitRequested()
    return answer


def session_int_prompt(prompt: str, choices: list[str] | None = None, **kwargs) -> int:
    while True:
        answer = session_prompt(prompt, **kwargs).strip()
        if choices and answer not in choices:
            console.print(f"[red]Please choose one of: {', '.join(choices)}[/red]")
            continue
        try:
            return int(answer)
        except ValueError:
            console.print("[red]Please enter a number[/red]")


def show_welcome():
    console.print(Panel(
        "[bold]Brevet Coach[/bold]\n[dim]Spaced review and weak-lesson planner[/dim]",
        title="Welcome", border_style="blue",
    ))


def show_menu():
    console.print("\n[bold]Commands:[/bold]")
    commands = [
        ("today", "Due reviews + recommended lessons"),
        ("lessons", "List lessons"),
        ("complete", "Mark a lesson as studied"),
        ("session", "Log a focus session"),
        ("practice", "Practice a lesson's exercises"),
        ("progress", "Subject progress + accuracy"),
        ("settings", "Exam date and daily goal"),
        ("reset", "Erase all progress"),
        ("quit", "Exit"),
    ]
    for cmd, desc in commands:
        console.print(f"  [cyan]{cmd:<14}[/cyan] {desc}")


def ask_lesson_id(db_path: str) -> int:
    lessons = get_lessons(db_path)
    for lesson in lessons:
        mark = "[green]✓[/green]" if lesson.completed else " "
        console.print(f"  {mark} [cyan]{lesson.id:>3}[/cyan]) {lesson.title}")
    return session_int_prompt("Lesson", choices=[str(lesson.id) for lesson in lessons])


def cmd_today(db_path: str, today: date):
    remaining = days_until_exam(db_path, today)
    if remaining is not None:
        console.print(Panel(f"[bold]{remaining}[/bold] days until the exam", border_style="magenta"))

    due = get_lessons_for_review(db_path, today)
    table = Table(title=f"Due for review ({len(due)})")
    table.add_column("Lesson", style="cyan")
    table.add_column("Subject")
    table.add_column("Due", justify="right")
    table.add_column("Interval", justify="right")
    for lesson in due:
        overdue = (today - date.fromisoformat(lesson["next_review_date"])).days
        due_text = "today" if overdue == 0 else f"[red]{overdue}d late[/red]"
        table.add_row(lesson["title"], lesson["subject_name"], due_text, f"{lesson['interval_days']}d")
    if due:
        console.print(table)
    else:
        console.print("[green]Nothing due for review today.[/green]")

    recommended = get_recommended_lessons(db_path, today, limit=5)
    table = Table(title="Recommended")
    table.add_column("Lesson", style="cyan")
    table.add_column("Subject")
    table.add_column("Accuracy", justify="right")
    table.add_column("Last studied", justify="right")
    table.add_column("Priority", justify="right")
    for rec in recommended:
        color = get_accuracy_color(rec["accuracy"])
        last = "never" if rec["last_studied"] is None else f"{rec['days_since_review']:.0f}d ago"
        table.add_row(
            rec["lesson_title"], rec["subject_name"] or "-",
            f"[{color}]{rec['accuracy']:.0f}%[/{color}]", last, f"{rec['priority_score']:.1f}",
        )
    console.print(table)


def cmd_lessons(db_path: str):
    accuracy = get_lesson_accuracy(db_path)
    table = Table(title="Lessons")
    table.add_column("#", justify="right")
    table.add_column("Title", style="cyan")
    table.add_column("Done")
    table.add_column("Accuracy", justify="right")
    for lesson in get_lessons(db_path):
        acc = accuracy.get(lesson.id)
        acc_text = "-" if acc is None else f"[{get_accuracy_color(acc)}]{acc:.0f}% {get_accuracy_label(acc)}[/]"
        table.add_row(str(lesson.id), lesson.title, "✓" if lesson.completed else "", acc_text)
    console.print(table)


def cmd_complete(db_path: str, today: date):
    lesson_id = ask_lesson_id(db_path)
    state = mark_lesson_complete(db_path, lesson_id, today=today)
    console.print(f"[green]Marked complete.[/green] Next review on [bold]{state.next_review_date}[/bold]")


def cmd_session(db_path: str, now: datetime):
    lesson_id = ask_lesson_id(db_path)
    lesson = get_lesson(db_path, lesson_id)
    settings = get_settings(db_path)
    minutes = session_int_prompt("Minutes studied", default=str(settings.pomodoro_work))
    focus = session_int_prompt("Focus (1=distracted, 5=deep focus)", choices=["1", "2", "3", "4", "5"])
    notes = Prompt.ask("Notes", default="")
    save_study_session(
        db_path, lesson["subject_id"], lesson_id,
        start_time=now - timedelta(minutes=minutes), end_time=now,
        focus_rating=focus, notes=notes,
    )
    console.print(f"[green]Logged {minutes} minutes on {lesson['title']}.[/green]")
    console.print(f"[dim]Take a {settings.pomodoro_break}-minute break.[/dim]")


def run_practice(db_path: str, exercises: list) -> tuple[int, int]:
    if not exercises:
        console.print("[yellow]No exercises for this lesson yet.[/yellow]")
        return 0, 0
    correct = 0
    console.print(f"\n[bold]Practice[/bold] — {len(exercises)} exercises\n")
    for i, ex in enumerate(exercises, 1):
        options = get_options(ex)
        console.print(f"[bold]Q{i}.[/bold] {ex['question']}\n")
        for n, option in enumerate(options, 1):
            console.print(f"  [cyan]{n})[/cyan] {option}")
        started = datetime.now()
        choice = session_int_prompt("\nYour answer", choices=[str(n) for n in range(1, len(options) + 1)])
        spent = int((datetime.now() - started).total_seconds())
        if record_attempt(db_path, ex["id"], choice - 1, time_spent_seconds=spent):
            console.print("[green]Correct![/green]")
            correct += 1
        else:
            console.print(f"[red]Incorrect.[/red] Answer: [green]{options[ex['correct_index']]}[/green]")
        if ex["explanation"]:
            console.print(f"[dim]{ex['explanation']}[/dim]")
        console.print()
    console.print(f"[bold]Score: {correct}/{len(exercises)} ({correct/len(exercises)*100:.0f}%)[/bold]\n")
    return correct, len(exercises)


def cmd_practice(db_path: str):
    lesson_id = ask_lesson_id(db_path)
    run_practice(db_path, get_exercises(db_path, lesson_id=lesson_id))


def cmd_progress(db_path: str, today: date):
    stats = get_study_stats(db_path)
    goal = get_settings(db_path).daily_minutes_goal
    minutes_today = get_today_study_minutes(db_path, today)
    console.print(Panel(
        f"Today: [bold]{minutes_today}[/bold] / {goal} min  |  "
        f"Lessons: [bold]{stats['lessons_completed']}[/bold] / {stats['lessons_total']}  |  "
        f"Avg accuracy: [bold]{stats['avg_accuracy']}%[/bold]",
        title="Progress", border_style="blue",
    ))

    table = Table(title="Subjects")
    table.add_column("Subject", style="cyan")
    table.add_column("Completed", justify="right")
    table.add_column("Progress")
    for sp in get_subject_progress(db_path):
        filled = int(sp["progress_percent"] / 10)
        bar = f"{'█' * filled}{'░' * (10 - filled)} {sp['progress_percent']}%"
        table.add_row(sp["subject_name"], f"{sp['completed_lessons']}/{sp['total_lessons']}", bar)
    console.print(table)

    minutes = get_daily_study_stats(db_path, today)
    if minutes:
        table = Table(title="Minutes studied, last 7 days")
        table.add_column("Date")
        table.add_column("Minutes", justify="right")
        for day in minutes:
            table.add_row(day["date"], str(day["total_minutes"]))
        console.print(table)

    daily = get_accuracy_stats(db_path, today)
    if daily:
        table = Table(title="Accuracy, last 7 days")
        table.add_column("Date")
        table.add_column("Correct", justify="right")
        table.add_column("Wrong", justify="right")
        table.add_column("Accuracy", justify="right")
        for day in daily:
            color = get_accuracy_color(day["accuracy"])
            table.add_row(day["date"], str(day["correct"]), str(day["wrong"]), f"[{color}]{day['accuracy']:.0f}%[/{color}]")
        console.print(table)


def cmd_settings(db_path: str):
    settings = get_settings(db_path)
    exam_date = Prompt.ask("Exam date (YYYY-MM-DD)", default=settings.exam_date or "")
    if exam_date:
        date.fromisoformat(exam_date)
    goal = IntPrompt.ask("Daily goal (minutes)", default=settings.daily_minutes_goal)
    update_settings(db_path, exam_date=exam_date or None, daily_minutes_goal=goal, onboarding_complete=True)
    console.print("[green]Settings saved.[/green]")


def run_onboarding(db_path: str) -> bool:
    """Ask first-time users for their exam date and daily goal."""
    if get_settings(db_path).onboarding_complete:
        return False
    console.print(Panel("Let's set up your study plan.", title="First run", border_style="green"))
    cmd_settings(db_path)
    return True


def cmd_reset(db_path: str):
    confirm = Prompt.ask("Erase all progress? Type 'yes' to confirm", default="no")
    if confirm.strip().lower() == "yes":
        reset_all_progress(db_path)
        console.print("[yellow]Progress erased.[/yellow]")


def main():
    logger.remove()
    logger.add(sys.stderr, level="WARNING", format="<level>{message}</level>")

    db_path = DEFAULT_DB_PATH
    init_db(db_path)
    first_run = not is_seeded(db_path)
    if first_run:
        console.print("[dim]Setting up for first use...[/dim]")
    seed_all(db_path)
    if first_run:
        console.print("[green]Ready![/green]\n")

    show_welcome()
    try:
        run_onboarding(db_path)
    except ValueError as e:
        console.print(f"[red]{e}[/red] [dim]Use 'settings' to finish setup.[/dim]")

    while True:
        show_menu()
        choice = Prompt.ask("\n[bold]>[/bold]", default="today").strip().lower()
        now = datetime.now()
        try:
            if choice == "today":
                cmd_today(db_path, now.date())
            elif choice == "lessons":
                cmd_lessons(db_path)
            elif choice == "complete":
                cmd_complete(db_path, now.date())
            elif choice == "session":
                cmd_session(db_path, now)
            elif choice == "practice":
                cmd_practice(db_path)
            elif choice == "progress":
                cmd_progress(db_path, now.date())
            elif choice == "settings":
                cmd_settings(db_path)
            elif choice == "reset":
                cmd_reset(db_path)
            elif choice in ("quit", "exit"):
                console.print("[dim]Good luck on your exam![/dim]")
                break
            else:
                console.print("[red]Unknown command. Try again.[/red]")
        except SessionExitRequested:
            console.print("[dim]Back to menu.[/dim]")
        except KeyboardInterrupt:
            console.print("\n[dim]Use 'quit' to exit.[/dim]")
        except (LessonNotFound, InvalidReviewState, ValueError) as e:
            console.print(f"[red]{e}[/red]")
        except sqlite3.Error as e:
            logger.exception("Storage error")
            console.print(f"[red]Storage error: {e}[/red]")


if __name__ == "__main__":
    main()
