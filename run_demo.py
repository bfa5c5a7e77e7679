"""
End-to-end walkthrough of the dashboard core against an in-memory store.

This script exercises:
1. Configuration loading
2. Recording heart-rate readings across a month
3. Medication adherence (taken, pending, explicitly missed)
4. Emergency contact CRUD, including a delete of a missing id
5. Window summaries and the stats overview

Run with: uv run python run_demo.py
"""

from datetime import UTC, datetime, timedelta

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from health_tracker.config import get_config, print_config_summary
from health_tracker.domain.models import AuthState, MedicationRecord, TimeWindow
from health_tracker.observability import configure_logging
from health_tracker.services.dashboard import DashboardSession
from health_tracker.services.record_store import Collection, RecordStore
from health_tracker.services.repository import HealthRepository

console = Console()


class SteppingClock:
    """Clock the demo can move backwards to backfill history."""

    def __init__(self, start: datetime) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current


def seed_readings(session: DashboardSession, clock: SteppingClock, end: datetime) -> None:
    pattern = [58, 72, 88, 104, 67, 75, 81]
    for day_offset in range(28, -1, -1):
        for slot, hour in enumerate((8, 20)):
            clock.current = (end - timedelta(days=day_offset)).replace(hour=hour, minute=15)
            session.record_heart_rate(str(pattern[(day_offset + slot) % len(pattern)]))
    clock.current = end


def show_window(session: DashboardSession, window: TimeWindow) -> None:
    summary = session.window_summary(window)
    table = Table(title=f"{window.value.title()} chart")
    table.add_column("Label", style="cyan")
    table.add_column("BPM", style="green")
    table.add_column("Readings", style="yellow")
    for point in summary.series:
        table.add_row(point.label, str(point.bpm), str(point.count))
    console.print(table)

    history = Table(title="History")
    history.add_column("When", style="cyan")
    history.add_column("BPM", style="green")
    history.add_column("Category", style="magenta")
    for item in summary.history:
        history.add_row(
            f"{item.reading.date} {item.reading.time}",
            str(item.reading.bpm),
            item.classification.label,
        )
    console.print(history)
    if summary.needs_attention:
        console.print("Abnormal readings present in this window", style="yellow")


def run_demo() -> None:
    base = get_config()
    config = base.model_copy(update={"store": base.store.model_copy(update={"url": "sqlite://"})})
    configure_logging(config.logging)
    print_config_summary(console)

    end = datetime.now(UTC).replace(second=0, microsecond=0)
    clock = SteppingClock(end)
    store = RecordStore(config.store)
    repository = HealthRepository(store, config, clock=clock)
    session = DashboardSession(repository)
    session.sync_auth(AuthState(user_id="demo-user", is_authenticated=True))

    console.print(Panel("Recording heart rate history", style="blue"))
    seed_readings(session, clock, end)

    console.print(Panel("Medications", style="blue"))
    aspirin = session.add_medication(
        {"name": "Aspirin", "dose": "100mg", "time": "08:00", "timing": "before"}
    )
    session.add_medication(
        {"name": "Metformin", "dose": "500mg", "time": "19:00", "timing": "after"}
    )
    statin = session.add_medication(
        {"name": "Atorvastatin", "dose": "20mg", "time": "21:00", "timing": "after-meal"}
    )
    if aspirin is not None:
        session.take_medication(aspirin.id)
    if statin is not None:
        # An explicit not-taken entry, as an external import would record it
        today = repository.now().date()
        store.update(
            Collection.MEDICATIONS,
            statin.id,
            {"records": [MedicationRecord(date=today, taken=False).model_dump(mode="json")]},
        )
        session.reload()

    adherence = Table(title="Today's adherence")
    adherence.add_column("Medication", style="cyan")
    adherence.add_column("State", style="green")
    names = {m.id: m.name for m in session.data.medications} if session.data else {}
    for status in session.adherence():
        adherence.add_row(names.get(status.medication_id, "?"), status.state.value)
    console.print(adherence)

    console.print(Panel("Contacts", style="blue"))
    contact = session.add_contact({"name": "Dana", "relationship": "Sibling", "phone": "555-0101"})
    if contact is not None:
        session.update_contact(contact.id, {"phone": "555-0199"})
    session.delete_contact(9999)
    for c in session.data.contacts if session.data else []:
        console.print(f"{c.name} ({c.relationship}): {c.phone}")

    for window in TimeWindow:
        console.print(Panel(f"{window.value} window", style="blue"))
        show_window(session, window)

    overview = session.overview()
    category = overview.latest_category.value if overview.latest_category else "-"
    console.print(
        Panel(
            f"Latest: {overview.latest_bpm} BPM ({category})\n"
            f"Scheduled today: {overview.scheduled_today}\n"
            f"Taken today: {overview.taken_today}\n"
            f"Missed today: {overview.missed_today}",
            title="Overview",
            style="bold",
        )
    )

    session.sync_auth(AuthState(user_id=None, is_authenticated=False))
    console.print(f"After sign-out, session data: {session.data}")
    store.close()


if __name__ == "__main__":
    try:
        run_demo()
    except KeyboardInterrupt:
        console.print("\nDemo stopped by user", style="yellow")
