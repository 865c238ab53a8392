"""
Main CLI application using Typer.
"""

import asyncio
import logging
from pathlib import Path
from typing import Annotated, List, NoReturn, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from ..adapters.json_store import JsonBookingStore
from ..config import AppConfig, get_default_config_path
from ..domain.exceptions import VetSlotsError
from ..domain.slot_resolver import SlotResolver
from ..services.availability import AvailabilityService

app = typer.Typer(
    name="vetslots",
    help="Find and book veterinary consultation slots",
    add_completion=False
)

console = Console()
err_console = Console(stderr=True)


def _load_config(config_file: Optional[Path]) -> AppConfig:
    """Load an explicit config file, else the default one if it exists."""
    if config_file is not None:
        return AppConfig.load_from_yaml(config_file)

    default_path = get_default_config_path()
    if default_path.exists():
        return AppConfig.load_from_yaml(default_path)
    return AppConfig()


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def _build_service(ctx: typer.Context) -> AvailabilityService:
    """Create the service from the options captured by the app callback."""
    options = ctx.obj or {}
    config = _load_config(options.get("config_file"))
    _setup_logging("DEBUG" if options.get("verbose") else config.log_level)

    store = JsonBookingStore(config.data_file, timezone=config.timezone)
    return AvailabilityService(
        store=store,
        slot_resolver=SlotResolver(timezone=config.timezone),
        default_duration_minutes=config.defaults.duration_minutes,
    )


def _fail(error: Exception) -> NoReturn:
    console.print(f"[bold red]Error:[/bold red] {escape(str(error))}")
    raise typer.Exit(1)


def _parse_hours(value: str) -> dict:
    """Split ``09:00-17:00`` into its start and end."""
    start, sep, end = value.partition("-")
    if not sep:
        raise typer.BadParameter("Hours must look like 09:00-17:00", param_hint="--hours")
    return {"start": start.strip(), "end": end.strip()}


@app.callback()
def main(
    ctx: typer.Context,
    config_file: Annotated[Optional[Path], typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml")] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging.")] = False,
):
    """
    Veterinary consultation availability.
    """
    ctx.obj = {"config_file": config_file, "verbose": verbose}


@app.command()
def slots(
    ctx: typer.Context,
    provider_id: Annotated[int, typer.Argument(help="Provider (doctor) id")],
    date: Annotated[str, typer.Argument(help="Date (YYYY-MM-DD)")],
    duration: Annotated[Optional[int], typer.Option("--duration", "-d", help="Consultation length in minutes")] = None,
):
    """
    List bookable start times for a provider on one date.

    Examples:

        vetslots slots 1 2024-11-25
        vetslots slots 1 2024-11-25 --duration 45
    """
    try:
        service = _build_service(ctx)
        result = asyncio.run(
            service.find_slots(
                provider_id=provider_id,
                target_date=date,
                duration_minutes=duration,
            )
        )
    except (VetSlotsError, FileNotFoundError, ValueError) as e:
        _fail(e)

    console.print()
    if not result.slots:
        message = result.note or "No available slots found."
        console.print(f"[yellow]⚠ {escape(message)}[/yellow]\n")
        return

    console.print(f"[bold green]✓ {len(result)} available slot(s) on {date}:[/bold green]\n")
    for slot in result.slots:
        console.print(f"  {slot.format('HH:mm')}")
    console.print()


@app.command()
def providers(
    ctx: typer.Context,
    available: Annotated[bool, typer.Option("--available", help="Only show providers taking appointments.")] = False,
    specialization: Annotated[Optional[str], typer.Option("--specialization", "-s", help="Filter by specialization")] = None,
):
    """
    List configured providers and their schedules.
    """
    try:
        service = _build_service(ctx)
        found = asyncio.run(
            service.list_providers(available_only=available, specialization=specialization)
        )
    except (VetSlotsError, FileNotFoundError, ValueError) as e:
        _fail(e)

    if not found:
        console.print("[yellow]No providers found.[/yellow]")
        return

    table = Table(
        title="Providers",
        show_header=True,
        header_style="bold cyan"
    )
    table.add_column("ID", style="bold yellow")
    table.add_column("Name")
    table.add_column("Specialization", style="dim")
    table.add_column("Days")
    table.add_column("Hours")
    table.add_column("Available")

    for provider in found:
        table.add_row(
            str(provider.id),
            escape(provider.name),
            escape(provider.specialization),
            ", ".join(day[:3] for day in provider.available_days or []) or "-",
            str(provider.available_hours) if provider.available_hours else "-",
            "yes" if provider.available else "no",
        )

    console.print()
    console.print(table)
    console.print()


@app.command()
def book(
    ctx: typer.Context,
    provider_id: Annotated[int, typer.Argument(help="Provider (doctor) id")],
    start: Annotated[str, typer.Argument(help="Start time, e.g. 2024-11-25T09:30")],
    duration: Annotated[Optional[int], typer.Option("--duration", "-d", help="Consultation length in minutes")] = None,
    pet: Annotated[Optional[int], typer.Option("--pet", help="Pet id to attach")] = None,
):
    """
    Book a consultation if the start time is still free.
    """
    try:
        service = _build_service(ctx)
        booking = asyncio.run(
            service.book(
                provider_id=provider_id,
                start=start,
                duration_minutes=duration,
                pet_id=pet,
            )
        )
    except (VetSlotsError, FileNotFoundError, ValueError) as e:
        _fail(e)

    console.print(
        f"\n[bold green]✓ Booking #{booking.booking_id} created[/bold green] "
        f"{booking.start.format('YYYY-MM-DD HH:mm')} "
        f"({booking.effective_duration} min, {booking.status})\n"
    )


@app.command()
def bookings(
    ctx: typer.Context,
    provider_id: Annotated[int, typer.Argument(help="Provider (doctor) id")],
    status: Annotated[Optional[str], typer.Option("--status", help="Only show bookings with this status")] = None,
):
    """
    List a provider's consultations, newest first.
    """
    try:
        service = _build_service(ctx)
        found = asyncio.run(service.list_bookings(provider_id, status=status))
    except (VetSlotsError, FileNotFoundError, ValueError) as e:
        _fail(e)

    if not found:
        console.print("[yellow]No bookings found.[/yellow]")
        return

    table = Table(
        title=f"Bookings for provider {provider_id}",
        show_header=True,
        header_style="bold cyan"
    )
    table.add_column("ID", style="bold yellow")
    table.add_column("Start")
    table.add_column("Minutes", justify="right")
    table.add_column("Status")
    table.add_column("Pet", style="dim")

    for booking in found:
        table.add_row(
            str(booking.booking_id),
            booking.start.format("YYYY-MM-DD HH:mm"),
            str(booking.effective_duration),
            booking.status,
            str(booking.pet_id) if booking.pet_id is not None else "-",
        )

    console.print()
    console.print(table)
    console.print()


@app.command()
def cancel(
    ctx: typer.Context,
    booking_id: Annotated[int, typer.Argument(help="Booking id")],
):
    """
    Cancel a consultation, freeing its slot.
    """
    try:
        service = _build_service(ctx)
        booking = asyncio.run(service.cancel_booking(booking_id))
    except (VetSlotsError, FileNotFoundError, ValueError) as e:
        _fail(e)

    console.print(
        f"\n[green]✓ Booking #{booking.booking_id} cancelled[/green] "
        f"({booking.start.format('YYYY-MM-DD HH:mm')})\n"
    )


@app.command()
def availability(
    ctx: typer.Context,
    provider_id: Annotated[int, typer.Argument(help="Provider (doctor) id")],
    day: Annotated[Optional[List[str]], typer.Option("--day", help="Working weekday; repeat for several days.")] = None,
    hours: Annotated[Optional[str], typer.Option("--hours", help="Daily window, e.g. 09:00-17:00")] = None,
    leave: Annotated[Optional[List[str]], typer.Option("--leave", help="Leave date (YYYY-MM-DD); repeat for several.")] = None,
    available: Annotated[Optional[bool], typer.Option("--available/--unavailable", help="Switch bookings on or off.")] = None,
):
    """
    Update a provider's weekly schedule, hours, leave days or availability.
    """
    window = _parse_hours(hours) if hours else None

    try:
        service = _build_service(ctx)
        provider = asyncio.run(
            service.update_availability(
                provider_id,
                days=day or None,
                hours=window,
                available=available,
                leave_days=leave or None,
            )
        )
    except (VetSlotsError, FileNotFoundError, ValueError) as e:
        _fail(e)

    console.print(f"\n[green]✓ Availability updated for {escape(provider.name)}.[/green]")
    console.print(f"   Days: {', '.join(provider.available_days or []) or '-'}")
    console.print(f"   Hours: {provider.available_hours or '-'}")
    console.print(f"   Leave: {', '.join(provider.leave_days) or '-'}")
    console.print(f"   Available: {'yes' if provider.available else 'no'}\n")


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]vetslots[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
