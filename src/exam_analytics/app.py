"""Interactive console front end over the analytics engine."""
import logging
import os
from dataclasses import replace
from datetime import date
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from exam_analytics.db import (
    DEFAULT_DB_PATH, init_db, list_flashcards, list_question_outcomes, list_syllabus_topics,
    list_test_attempts, load_topic_progress, save_topic_progress,
)
from exam_analytics.flashcards import deck_stats, generate_error_cards, get_due_cards, record_flashcard_result
from exam_analytics.importer import import_question_logs, import_reports
from exam_analytics.metrics import historical_accuracy
from exam_analytics.models import StrategyResult, SyllabusStatus, TopicProgress
from exam_analytics.retention import retention
from exam_analytics.review import next_best_action, rank_revision_topics
from exam_analytics.root_cause import (
    confidence_calibration, dependency_alerts, fatigue_curve, guess_stats, panic_events, speed_vs_accuracy,
)
from exam_analytics.seed import is_seeded, seed_syllabus
from exam_analytics.strategy import EXAM_PRESETS, default_plans, simulate
from exam_analytics.tiers import mastery_tiers
from exam_analytics.worker import ForecastRequest, ForecastTimeout, ForecastWorker

LOG_LEVEL = os.environ.get("EXAM_ANALYTICS_LOG_LEVEL", "WARNING").upper()
EXIT_WORDS = ("q", "menu")
RETENTION_STYLES = {"good": "green", "fresh": "green", "fading": "yellow", "critical": "red", "dormant": "dim"}

console = Console()


class SessionExitRequested(Exception):
    """The user asked to leave the current drill."""


def session_prompt(text: str, **kwargs) -> str:
    answer = Prompt.ask(text, **kwargs)
    if answer.strip().lower() in EXIT_WORDS:
        raise SessionExitRequested()
    return answer


def session_int_prompt(text: str, choices: list[str]) -> int:
    answer = session_prompt(text, choices=choices + list(EXIT_WORDS), show_choices=False)
    return int(answer)


def load_snapshot(db_path: str) -> dict:
    """Everything the engine reads, taken once per command."""
    return {
        "reports": list_test_attempts(db_path),
        "logs": list_question_outcomes(db_path),
        "progress": load_topic_progress(db_path),
        "topics": list_syllabus_topics(db_path),
    }


def show_menu():
    console.print("\n[bold]Commands:[/bold]")
    commands = [
        ("dashboard", "Scores, rank forecast and percentile"),
        ("syllabus", "Mastery tier and memory per topic"),
        ("revise", "What to revise next"),
        ("progress", "Update a topic's status, strength or revisions"),
        ("causes", "Panic runs, fatigue, guessing and weak foundations"),
        ("flashcards", "Drill due error cards"),
        ("strategy", "Simulate a paper strategy"),
        ("import", "Import reports or question logs"),
        ("quit", "Exit"),
    ]
    for cmd, desc in commands:
        console.print(f"  [cyan]{cmd:<14}[/cyan] {desc}")


def cmd_dashboard(db_path: str, worker: Optional[ForecastWorker] = None, seed: Optional[int] = None):
    snapshot = load_snapshot(db_path)
    if not snapshot["reports"]:
        console.print("[yellow]No test reports yet. Use 'import' to add some.[/yellow]")
        return
    own_worker = worker is None
    worker = worker or ForecastWorker()
    try:
        response = worker.compute(ForecastRequest(reports=snapshot["reports"], logs=snapshot["logs"], seed=seed))
    except ForecastTimeout as e:
        console.print(f"[red]{e}[/red]")
        return
    finally:
        if own_worker:
            worker.close()

    kpis = response.kpis
    trend_color = {"up": "green", "down": "red"}.get(kpis.score_trend, "white")
    lines = [
        f"Latest score: [bold]{kpis.latest_score:g}[/bold] [{trend_color}]({kpis.score_trend})[/{trend_color}]"
        f"   Latest rank: [bold]{kpis.latest_rank or 'n/a'}[/bold]",
        f"Average score: {kpis.avg_score:.1f}   Consistency: {kpis.consistency_score:.0f}%",
    ]
    if kpis.strongest_subject:
        lines.append(f"Strongest subject: [cyan]{kpis.strongest_subject.title()}[/cyan]")
    if kpis.zone:
        lines.append(f"Zone: {kpis.zone}   Sharpe: {kpis.sharpe_ratio}")
    console.print(Panel("\n".join(lines), title="Performance", border_style="blue"))

    rank = response.rank
    if rank is None:
        console.print("[dim]Rank forecast: not enough data (need 3 ranked tests with differing scores).[/dim]")
    else:
        table = Table(title="Rank Forecast")
        table.add_column("Best case", justify="right", style="green")
        table.add_column("Likely", justify="right", style="bold")
        table.add_column("Worst case", justify="right", style="red")
        table.add_column(f"P(rank <= {rank.target_rank})", justify="right")
        table.add_row(str(rank.best_case), str(rank.likely), str(rank.worst_case), f"{rank.goal_probability}%")
        console.print(table)

    percentile = response.percentile
    if percentile is not None:
        console.print(
            f"  Next test: score ~[bold]{percentile.predicted_score}[/bold], "
            f"percentile ~[bold]{percentile.predicted_percentile}[/bold]"
        )

    if response.panic:
        worst = response.panic[0]
        console.print(
            f"  [red]Worst panic run:[/red] {worst.test_name} Q{worst.start_question}-Q{worst.end_question}"
            f" ({worst.lost_marks:g} marks lost)"
        )


def cmd_syllabus(db_path: str, today: Optional[date] = None):
    snapshot = load_snapshot(db_path)
    tiers = mastery_tiers(snapshot["topics"], snapshot["logs"], snapshot["progress"], snapshot["reports"])
    table = Table(title="Syllabus Mastery")
    table.add_column("Topic", style="cyan")
    table.add_column("Subject")
    table.add_column("Rating", justify="right")
    table.add_column("Tier")
    table.add_column("Memory", justify="right")
    for topic in snapshot["topics"]:
        progress = snapshot["progress"].get(topic.name)
        if progress is None and not any(log.topic == topic.name for log in snapshot["logs"]):
            continue
        score, tier = tiers[topic.name]
        memory = retention(
            topic.name, snapshot["logs"], snapshot["reports"],
            revision_count=progress.revision_count if progress else 0,
            syllabus_status=progress.status if progress else None,
            today=today,
        )
        style = RETENTION_STYLES[memory.status]
        table.add_row(
            topic.name, topic.subject.title(), f"{score:g}",
            f"[{tier.style}]{tier.tier}[/{tier.style}]",
            f"[{style}]{memory.percentage}% {memory.status}[/{style}]",
        )
    if table.row_count == 0:
        console.print("[yellow]No syllabus activity yet.[/yellow]")
        return
    console.print(table)


def cmd_revise(db_path: str, today: Optional[date] = None):
    snapshot = load_snapshot(db_path)
    items = rank_revision_topics(
        snapshot["topics"], snapshot["logs"], snapshot["reports"], snapshot["progress"], today=today,
    )
    if not items:
        console.print("[green]Nothing urgent to revise.[/green]")
    else:
        table = Table(title="Revision Priorities")
        table.add_column("Topic", style="cyan")
        table.add_column("Weight", justify="right")
        table.add_column("Reason")
        for item in items:
            table.add_row(item.topic, f"{item.weight:g}", item.reason)
        console.print(table)

    action = next_best_action(snapshot["logs"])
    if action:
        console.print(
            f"\n  [yellow]Next best action: {action.topic}[/yellow] "
            f"({action.error_count} errors, mostly {action.dominant_reason}; up to +{action.potential_gain} marks)"
        )


def change_progress(progress: TopicProgress, action: str, value: str = "",
                    today: Optional[date] = None) -> TopicProgress:
    """Apply one edit to a topic's progress record.

    Moving a topic to Completed stamps the completion date the first time.
    """
    if action == "status":
        status = SyllabusStatus(value)
        updated = replace(progress, status=status)
        if status == SyllabusStatus.COMPLETED and progress.status != SyllabusStatus.COMPLETED:
            updated.completion_date = today or date.today()
        return updated
    if action == "strength":
        return replace(progress, strength=None if value == "none" else value)
    if action == "revision":
        step = -1 if value == "-1" else 1
        return replace(progress, revision_count=max(0, progress.revision_count + step))
    if action == "subtopic":
        subtopics = dict(progress.subtopics)
        subtopics[value] = not subtopics.get(value, False)
        return replace(progress, subtopics=subtopics)
    raise ValueError(f"Unknown progress action: {action}")


def cmd_progress(db_path: str, today: Optional[date] = None):
    topics = {t.name.lower(): t.name for t in list_syllabus_topics(db_path)}
    answer = Prompt.ask("Topic").strip()
    topic = topics.get(answer.lower())
    if topic is None:
        console.print(f"[red]Unknown topic: {answer}[/red]")
        return
    current = load_topic_progress(db_path).get(topic, TopicProgress())
    action = Prompt.ask("Change", choices=["status", "strength", "revision", "subtopic"], default="status")
    if action == "status":
        value = Prompt.ask("Status", choices=[s.value for s in SyllabusStatus], default=current.status.value)
    elif action == "strength":
        value = Prompt.ask("Mark as", choices=["strength", "weakness", "none"], default="none")
    elif action == "revision":
        value = Prompt.ask("Revisions", choices=["+1", "-1"], default="+1")
    else:
        value = Prompt.ask("Subtopic").strip()
        if not value:
            console.print("[red]Subtopic name required.[/red]")
            return
    updated = change_progress(current, action, value, today=today)
    save_topic_progress(db_path, topic, updated)
    console.print(
        f"[green]{topic}[/green]: {updated.status.value}, "
        f"{updated.revision_count} revision(s), {updated.strength or 'unmarked'}"
    )


def cmd_causes(db_path: str):
    snapshot = load_snapshot(db_path)
    logs = snapshot["logs"]
    if not logs:
        console.print("[yellow]No question logs yet. Use 'import' to add some.[/yellow]")
        return

    events = panic_events(logs, snapshot["reports"])
    if events:
        table = Table(title="Panic Cascades")
        table.add_column("Test", style="cyan")
        table.add_column("Questions")
        table.add_column("Run", justify="right")
        table.add_column("Marks lost", justify="right", style="red")
        for e in events:
            table.add_row(e.test_name, f"Q{e.start_question}-Q{e.end_question}", str(e.length), f"{e.lost_marks:g}")
        console.print(table)
    else:
        console.print("[green]No panic cascades found.[/green]")

    table = Table(title="Fatigue Curve")
    table.add_column("Questions")
    table.add_column("Attempts", justify="right")
    table.add_column("Error rate", justify="right")
    for bucket in fatigue_curve(logs):
        table.add_row(bucket["range"], str(bucket["attempts"]), f"{bucket['error_rate']:g}%")
    console.print(table)

    guesses = guess_stats(logs)
    if guesses.total_guesses:
        console.print(
            f"  Guesses: {guesses.correct_guesses}/{guesses.total_guesses} correct, "
            f"net {guesses.net_score_impact:+g} marks ({guesses.risky_misses} risky misses)"
        )

    for alert in dependency_alerts(logs)[:5]:
        console.print(
            f"  [yellow]{alert.topic}[/yellow] ({alert.error_count} errors) may stem from "
            f"[red]{alert.root_cause_topic}[/red]"
        )

    for row in confidence_calibration(logs):
        if row["label"] != "Calibrated":
            console.print(
                f"  {row['topic']}: {row['label']} "
                f"(confidence {row['avg_confidence']:g}%, accuracy {row['accuracy']:g}%)"
            )

    gaps = [row for row in speed_vs_accuracy(logs) if row["quadrant"] == "gap"]
    if gaps:
        console.print("  Slow and inaccurate: " + ", ".join(row["topic"] for row in gaps))


def run_flashcard_session(db_path: str, cards: list) -> int:
    """Drill cards in order; returns how many were rated."""
    if not cards:
        console.print("[yellow]No flashcards due right now![/yellow]")
        return 0
    console.print(f"\n[bold]Flashcard Session[/bold] - {len(cards)} cards (q to stop)\n")
    rated = 0
    for i, card in enumerate(cards, 1):
        console.print(Panel(card.front, title=f"Card {i}/{len(cards)} | {card.topic}", border_style="cyan"))
        session_prompt("[dim]Press Enter to reveal answer[/dim]", default="")
        console.print(Panel(card.back, border_style="green"))
        rating = session_int_prompt(
            "Rate yourself (0=forgot, 3=hard, 4=good, 5=easy)", choices=["0", "1", "2", "3", "4", "5"],
        )
        updated = record_flashcard_result(db_path, card.id, rating)
        console.print(f"[dim]Next review in {updated.interval} day(s)[/dim]\n")
        rated += 1
    return rated


def cmd_flashcards(db_path: str):
    generate_error_cards(db_path)
    cards = get_due_cards(db_path)
    try:
        run_flashcard_session(db_path, cards)
    except SessionExitRequested:
        console.print("[dim]Session stopped.[/dim]")


def render_strategy(result: StrategyResult, preset: str):
    table = Table(title=f"Paper Strategy ({preset})")
    table.add_column("Subject", style="cyan")
    table.add_column("Min/Q", justify="right")
    table.add_column("Panic", justify="right")
    table.add_column("Accuracy", justify="right")
    table.add_column("Score", justify="right")
    for o in result.per_subject:
        panic_drop = round((1 - o.panic_factor) * 100)
        panic = f"[red]-{panic_drop}%[/red]" if panic_drop > 0 else "[green]none[/green]"
        table.add_row(
            o.subject.title(), f"{o.time_per_question:.1f}", panic,
            f"{o.effective_accuracy * 100:.0f}%", f"{o.score:.0f}",
        )
    console.print(table)
    risk_color = "red" if result.risk_score > 50 else "yellow" if result.risk_score > 20 else "green"
    console.print(
        f"  Expected: [bold]{result.total_score:.0f}[/bold] / {result.max_potential:g}   "
        f"Risk: [{risk_color}]{result.risk_score:.0f}[/{risk_color}]"
    )


def cmd_strategy(db_path: str):
    preset = Prompt.ask("Exam", choices=list(EXAM_PRESETS), default="mains")
    confidence = float(Prompt.ask("Confidence (0-1)", default="0.5"))
    reports = list_test_attempts(db_path)
    plans = default_plans(preset, historical_accuracy(reports, ["physics", "chemistry", "maths"]))
    exam = EXAM_PRESETS[preset]
    render_strategy(simulate(plans, confidence, exam.scheme, exam.max_attempts), preset)


def cmd_import(db_path: str):
    kind = Prompt.ask("Import", choices=["reports", "logs"], default="reports")
    file_path = Prompt.ask("File path")
    if not Path(file_path).exists():
        console.print(f"[red]File not found: {file_path}[/red]")
        return
    if kind == "reports":
        result = import_reports(db_path, file_path)
        console.print(f"[green]Imported {result['reports']} reports from {result['filename']}[/green]")
    else:
        result = import_question_logs(db_path, file_path)
        added = generate_error_cards(db_path)
        console.print(
            f"[green]Imported {result['outcomes']} question outcomes from {result['filename']}"
            f" ({added} new error cards)[/green]"
        )
        stats = deck_stats(list_flashcards(db_path))
        console.print(f"[dim]{stats['due']} cards due now[/dim]")


def main():
    logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(name)s %(levelname)s %(message)s")
    db_path = DEFAULT_DB_PATH
    init_db(db_path)
    if not is_seeded(db_path):
        console.print("[dim]Setting up for first use...[/dim]")
        seed_syllabus(db_path)

    console.print(Panel("[bold]Exam Analytics[/bold]\n[dim]Forecasts, memory and revision triage[/dim]",
                        title="Welcome", border_style="blue"))

    while True:
        show_menu()
        choice = Prompt.ask("\n[bold]>[/bold]", default="dashboard").strip().lower()
        try:
            if choice == "dashboard":
                cmd_dashboard(db_path)
            elif choice == "syllabus":
                cmd_syllabus(db_path)
            elif choice == "revise":
                cmd_revise(db_path)
            elif choice == "progress":
                cmd_progress(db_path)
            elif choice == "causes":
                cmd_causes(db_path)
            elif choice == "flashcards":
                cmd_flashcards(db_path)
            elif choice == "strategy":
                cmd_strategy(db_path)
            elif choice == "import":
                cmd_import(db_path)
            elif choice in ("quit", "exit", "q"):
                console.print("[dim]Good luck on your exam![/dim]")
                break
            else:
                console.print("[red]Unknown command. Try again.[/red]")
        except KeyboardInterrupt:
            console.print("\n[dim]Use 'quit' to exit.[/dim]")
        except Exception as e:
            console.print(f"[red]Error: {e}[/red]")


if __name__ == "__main__":
    main()
