"""Interactive CLI for reviewing recitation tickets."""
import logging

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.prompt import Confirm, IntPrompt, Prompt
from rich.table import Table

from recitation_review import repository as repo
from recitation_review.catalog import WORKFLOW_STEP_LABELS, label_for
from recitation_review.config import load_settings
from recitation_review.db import get_connection, init_db
from recitation_review.errors import ReviewError
from recitation_review.models import Recency, TicketStatus
from recitation_review.mushaf import get_mistake_statistics, get_personal_mushaf, resolve_mistake
from recitation_review.ranges import resolve_range
from recitation_review.seed import is_seeded, seed_all
from recitation_review.statistics import MistakeFilters, mistake_color
from recitation_review.workflow import approve_ticket, reject_ticket

console = Console()


def setup_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def show_welcome():
    console.print(Panel(
        "[bold]Recitation Review[/bold]\n[dim]Tickets, assignments and Personal Mushaf[/dim]",
        title="Welcome", border_style="green",
    ))


def show_menu():
    console.print("\n[bold]Commands:[/bold]")
    commands = [
        ("tickets", "List pending tickets"),
        ("approve", "Approve a ticket"),
        ("reject", "Reject a ticket"),
        ("mushaf", "View a student's Personal Mushaf"),
        ("stats", "Mistake statistics for a student"),
        ("resolve", "Mark a mistake as resolved"),
        ("quit", "Exit"),
    ]
    for cmd, desc in commands:
        console.print(f"  [cyan]{cmd:<14}[/cyan] {desc}")


def ticket_summary(ticket) -> str:
    if ticket.sabq_entries:
        return "; ".join(resolve_range(e.recitation_range).display_text for e in ticket.sabq_entries)
    return resolve_range(ticket.recitation_range).display_text


def cmd_tickets(db_path: str):
    conn = get_connection(db_path)
    tickets = repo.list_tickets(conn, TicketStatus.PENDING)
    conn.close()
    if not tickets:
        console.print("[green]No tickets waiting for review.[/green]")
        return
    table = Table(title="Pending Tickets")
    table.add_column("ID", justify="right")
    table.add_column("Student", justify="right")
    table.add_column("Step")
    table.add_column("Range")
    table.add_column("Mistakes", justify="right")
    for t in tickets:
        table.add_row(
            str(t.id), str(t.student_id), WORKFLOW_STEP_LABELS[t.workflow_step],
            ticket_summary(t), str(len(t.collected_mistakes())),
        )
    console.print(table)


def cmd_approve(db_path: str, reviewer_id: int):
    ticket_id = IntPrompt.ask("Ticket id")
    notes = Prompt.ask("Review notes", default="")
    homework = None
    if Confirm.ask("Add homework instructions?", default=False):
        homework = {"instructions": Prompt.ask("Instructions")}
    result = approve_ticket(db_path, ticket_id, reviewer_id, notes or None, homework)
    report = result.merge_report
    console.print(f"[green]Ticket {ticket_id} approved.[/green] "
                  f"Mistakes: {report.added} new, {report.updated} repeated, {report.failed} skipped")
    if result.homework_assignment_id:
        console.print(f"[cyan]Created assignment {result.homework_assignment_id}[/cyan]")


def cmd_reject(db_path: str, reviewer_id: int):
    ticket_id = IntPrompt.ask("Ticket id")
    notes = Prompt.ask("Review notes")
    reject_ticket(db_path, ticket_id, reviewer_id, notes)
    console.print(f"[yellow]Ticket {ticket_id} rejected.[/yellow]")


def cmd_mushaf(db_path: str):
    student_id = IntPrompt.ask("Student id")
    step = Prompt.ask("Workflow step", choices=["all", "sabq", "sabqi", "manzil"], default="all")
    recency = Prompt.ask("Recency", choices=["any", "today", "recent", "historical"], default="any")
    filters = MistakeFilters(
        workflow_step=step,
        recency=None if recency == "any" else Recency(recency),
    )
    result = get_personal_mushaf(db_path, student_id, filters)
    table = Table(title=f"Personal Mushaf - student {student_id}")
    table.add_column("Mistake")
    table.add_column("Where")
    table.add_column("Step")
    table.add_column("Repeats", justify="right")
    table.add_column("Status")
    table.add_column("ID", style="dim")
    for m in result["mistakes"]:
        color = mistake_color(m["category"], Recency(m["recency"]))
        where = f"p.{m['page'] or '?'} S{m['surah'] or '?'}:{m['ayah'] or '?'}"
        status = "[green]resolved[/green]" if m["resolved"] else m["recency"]
        table.add_row(
            f"[{color}]{label_for(m['type'])}[/{color}]", where, m["workflow_step"],
            str(m["repeat_count"]), status, m["id"][:8],
        )
    console.print(table)
    stats = result["statistics"]
    console.print(f"\n  Total: [bold]{stats['total']}[/bold]  |  "
                  f"Resolved: [bold]{stats['resolved']}[/bold]  |  "
                  f"Unresolved: [bold]{stats['unresolved']}[/bold]")


def cmd_stats(db_path: str):
    student_id = IntPrompt.ask("Student id")
    stats = get_mistake_statistics(db_path, student_id)
    table = Table(title="Most Common Mistakes")
    table.add_column("Type")
    table.add_column("Count", justify="right")
    for row in stats["most_common_types"]:
        table.add_row(label_for(row["type"]), str(row["count"]))
    console.print(table)
    steps = ", ".join(f"{k}: {v}" for k, v in stats["by_workflow_step"].items())
    console.print(f"\n  By step: {steps}")
    console.print(f"  Repeat offenders: [bold]{stats['repeat_offenders']}[/bold]")
    if stats["trend"]:
        console.print("  Last 30 days: " + " ".join(f"{t['date'][5:]}={t['count']}" for t in stats["trend"]))


def cmd_resolve(db_path: str):
    student_id = IntPrompt.ask("Student id")
    prefix = Prompt.ask("Mistake id (or prefix)").strip()
    mistakes = get_personal_mushaf(db_path, student_id)["mistakes"]
    matches = [m for m in mistakes if m["id"].startswith(prefix)]
    if len(matches) != 1:
        console.print(f"[red]{len(matches)} mistakes match '{prefix}'.[/red]")
        return
    resolve_mistake(db_path, student_id, matches[0]["id"])
    console.print("[green]Marked as resolved.[/green]")


def main():
    settings = load_settings()
    setup_logging(settings.log_level)
    db_path = settings.db_path
    init_db(db_path)
    first_run = not is_seeded(db_path)
    if first_run:
        console.print("[dim]Setting up a demo academy...[/dim]")
    seed_all(db_path)

    show_welcome()
    reviewer_id = IntPrompt.ask("Your user id", default=1)

    while True:
        show_menu()
        choice = Prompt.ask("\n[bold]>[/bold]", default="tickets").strip().lower()
        try:
            if choice == "tickets":
                cmd_tickets(db_path)
            elif choice == "approve":
                cmd_approve(db_path, reviewer_id)
            elif choice == "reject":
                cmd_reject(db_path, reviewer_id)
            elif choice == "mushaf":
                cmd_mushaf(db_path)
            elif choice == "stats":
                cmd_stats(db_path)
            elif choice == "resolve":
                cmd_resolve(db_path)
            elif choice in ("quit", "exit", "q"):
                console.print("[dim]Goodbye.[/dim]")
                break
            else:
                console.print("[red]Unknown command. Try again.[/red]")
        except KeyboardInterrupt:
            console.print("\n[dim]Use 'quit' to exit.[/dim]")
        except ReviewError as e:
            console.print(f"[red]{e.message}[/red]")


if __name__ == "__main__":
    main()
