"""
Display manager for Rich-based dashboard output and live updates.

Reads computed snapshots and renders them; never computes metrics itself.
"""

import logging
from datetime import datetime
from typing import Any, Iterable, Optional

from rich.console import Console, Group
from rich.live import Live
from rich.panel import Panel
from rich.table import Table

from .core import GRAVITY
from .models import EquipmentReading, FitnessState, TimelinePoint

logger = logging.getLogger(__name__)

SPARK_CHARS = " ▁▂▃▄▅▆▇█"
SENSOR_LABELS = ["T", "B", "E", "R"]
LEVEL_STYLES = {
    "Bronze": "dark_orange3",
    "Silver": "grey70",
    "Gold": "gold1",
    "Platinum": "bright_cyan",
    "Diamond": "bright_white",
}


class DisplayManager:
    """Manages console output with Rich library."""

    def __init__(self, console: Optional[Console] = None):
        """Initialize display manager.

        Args:
            console: Rich Console instance (creates one if None)
        """
        self.console = console or Console()
        self.live_enabled = False
        self._live: Optional[Live] = None
        self._snapshot: Any = None

    def print_banner(self) -> None:
        """Print startup banner."""
        panel = Panel(
            "[bold green]PowerGym - Energy Dashboard[/bold green]\n"
            f"[dim]{self.format_clock(datetime.now())}[/dim]\n"
            "[dim]Type 'help' for commands, 'quit' to exit[/dim]",
            expand=False,
        )
        self.console.print(panel)

    def print_status(self, snapshot: Any) -> None:
        """Display a one-time dashboard view.

        Args:
            snapshot: DashboardSnapshot, or None before the first tick
        """
        if snapshot is None:
            self.print_info("No data yet")
            return
        self.console.print(self.format_dashboard(snapshot))

    def print_error(self, message: str) -> None:
        self.console.print(f"[red]Error:[/red] {message}", highlight=False)

    def print_info(self, message: str) -> None:
        self.console.print(f"[cyan]Info:[/cyan] {message}", highlight=False)

    def print_success(self, message: str) -> None:
        self.console.print(f"[green]✓[/green] {message}", highlight=False)

    def print_help(self, commands: list) -> None:
        """Display command reference.

        Args:
            commands: List of Command objects
        """
        table = Table(title="Available Commands", show_header=True)
        table.add_column("Command", style="cyan")
        table.add_column("Aliases", style="magenta")
        table.add_column("Description", style="white")
        table.add_column("Usage", style="yellow")

        for cmd in commands:
            aliases = ", ".join(cmd.aliases) if cmd.aliases else "-"
            table.add_row(cmd.name, aliases, cmd.description, cmd.usage)

        self.console.print(table)
        self.console.print(
            "[dim]Keyboard shortcuts: Ctrl+C to interrupt, Ctrl+D to exit[/dim]"
        )

    def print_rewards(self, total_points: int, rewards: Iterable[Any]) -> None:
        """List the reward catalog with eligibility marks."""
        table = Table(title=f"Total Points: {total_points}", show_header=True)
        table.add_column("", width=2)
        table.add_column("Reward", style="white")
        table.add_column("Points", style="yellow", justify="right")

        for reward in rewards:
            mark = "[green]✅[/green]" if reward.eligible else "[red]❌[/red]"
            table.add_row(mark, reward.name, str(reward.points))

        self.console.print(table)
        self.console.print("[dim]Contact front desk to redeem![/dim]")

    def print_achievements(self, achievements: Iterable[Any]) -> None:
        table = Table(title="Achievements", show_header=False)
        table.add_column("Icon")
        table.add_column("Name", style="bold")
        table.add_column("Description", style="dim")
        for achievement in achievements:
            style = "" if achievement.earned else "dim strike"
            table.add_row(
                achievement.icon, achievement.name, achievement.description, style=style
            )
        self.console.print(table)

    def start_live(self) -> None:
        """Start live display refresh mode."""
        if self.live_enabled:
            return

        self.live_enabled = True
        self._live = Live(
            self._create_live_view(), console=self.console, refresh_per_second=2
        )
        self._live.start()
        self.console.print("[dim]Live display enabled ['live' to disable][/dim]")

    def stop_live(self) -> None:
        """Stop live display refresh mode."""
        if not self.live_enabled:
            return

        self.live_enabled = False
        if self._live is not None:
            self._live.stop()
            self._live = None

    def update_live(self, snapshot: Any) -> None:
        """Update live display with a new snapshot."""
        self._snapshot = snapshot
        if not self.live_enabled or self._live is None:
            return

        try:
            self._live.update(self._create_live_view())
        except Exception as e:
            logger.error(f"Live update error: {e}")

    def toggle_live(self) -> bool:
        """Toggle live display on/off.

        Returns:
            New live display state (True = on, False = off)
        """
        if self.live_enabled:
            self.stop_live()
        else:
            self.start_live()
        return self.live_enabled

    def _create_live_view(self) -> Any:
        if self._snapshot is None:
            return Panel("[dim]Waiting for data...[/dim]", title="PowerGym")
        return self.format_dashboard(self._snapshot)

    def format_dashboard(self, snapshot: Any) -> Group:
        """Compose the full dashboard for a snapshot."""
        batch = snapshot.batch
        return Group(
            self.format_summary_table(snapshot),
            self.format_equipment_table(batch.readings),
            Panel(
                self.format_power_chart(snapshot.timeline),
                title="Power Generation (Watts)",
                border_style="green",
            ),
            self.format_sensor_panel(batch.readings, batch.total_power_watts),
            self.format_rewards_panel(snapshot.fitness),
        )

    def format_summary_table(self, snapshot: Any) -> Table:
        batch = snapshot.batch
        metabolic = snapshot.metabolic
        active_count = len(batch.active_readings)

        table = Table(show_header=True, header_style="bold cyan")
        table.add_column("Metric", style="cyan")
        table.add_column("Value", style="yellow")

        table.add_row("Total Energy", self.format_energy(batch.total_energy_wh))
        table.add_row("Current Power", self.format_power(batch.total_power_watts))
        table.add_row("Active Equipment", str(active_count))
        table.add_row("Active Time", f"{snapshot.fitness.active_minutes} min")
        table.add_row("BMR", f"{metabolic.bmr:.0f} cal/day")
        table.add_row(
            "Calories",
            f"{metabolic.calories_burned} / {metabolic.target_calories} "
            f"({metabolic.calorie_progress:.0f}%)",
        )
        table.add_row("Heart Zone", metabolic.heart_rate_zone.value)
        table.add_row("Last Update", f"Last: {batch.received_at.strftime('%H:%M:%S')}")
        return table

    def format_equipment_table(self, readings: Iterable[EquipmentReading]) -> Table:
        table = Table(title="Equipment", show_header=True, header_style="bold cyan")
        table.add_column("Name", style="bold")
        table.add_column("Stats")
        table.add_column("Sensors", style="dim")
        table.add_column("Status")
        table.add_column("Watts", justify="right", style="yellow")

        for reading in readings:
            status = (
                "[bold green]ACTIVE[/bold green]" if reading.active else "[dim]IDLE[/dim]"
            )
            table.add_row(
                reading.name,
                self.format_equipment_stats(reading),
                self.format_sensor_details(reading),
                status,
                f"{reading.power_watts:.0f}W",
            )
        return table

    def format_sensor_panel(
        self, readings: Iterable[EquipmentReading], total_power: float
    ) -> Panel:
        return Panel(
            "\n".join(self.sensor_summary(list(readings), total_power)),
            title="Sensors",
            border_style="blue",
        )

    def format_rewards_panel(self, state: FitnessState) -> Panel:
        style = LEVEL_STYLES.get(state.level.value, "white")
        lines = [
            f"Fitness Points: {state.fitness_points}",
            f"Energy Points:  {state.energy_points}",
            f"Total Points:   {state.total_points}",
            f"Level: [{style}]{state.level.value}[/{style}]",
            f"Progress to {state.next_level.value}: "
            f"{state.total_points} / {state.next_threshold} "
            f"{self.format_progress_bar(state.progress)}",
        ]
        return Panel("\n".join(lines), title="Rewards", border_style=style)

    @staticmethod
    def format_power_chart(points: Iterable[TimelinePoint]) -> str:
        """Render the timeline as a sparkline with first/last labels."""
        points = list(points)
        if not points:
            return "[dim]No samples yet[/dim]"

        peak = max(p.total_power_watts for p in points)
        scale = len(SPARK_CHARS) - 1
        spark = "".join(
            SPARK_CHARS[round(p.total_power_watts / peak * scale)] if peak > 0 else SPARK_CHARS[0]
            for p in points
        )
        first = points[0].timestamp.strftime("%H:%M:%S")
        last = points[-1].timestamp.strftime("%H:%M:%S")
        return (
            f"[green]{spark}[/green]\n"
            f"{first} → {last}   peak {peak:.0f}W   now {points[-1].total_power_watts:.0f}W"
        )

    @staticmethod
    def sensor_summary(readings: list[EquipmentReading], total_power: float) -> list[str]:
        """Aggregated sensor lines: speed sensors, load cells, power measurement."""
        if not readings:
            return ["No sensor data"]

        speeds = "  ".join(
            f"{SENSOR_LABELS[i]}: {r.rpm:g} RPM"
            for i, r in enumerate(readings[: len(SENSOR_LABELS)])
        )
        avg_weight = sum(r.weight_kg for r in readings) / len(readings)
        voltage = sum(r.voltage for r in readings)
        current = sum(r.current for r in readings)
        return [
            speeds,
            f"Weight: {avg_weight:.1f} kg  Force: {avg_weight * GRAVITY:.1f} N",
            f"V: {voltage:.1f}V  I: {current:.2f}A  P: {total_power:.1f}W",
        ]

    @staticmethod
    def format_equipment_stats(reading: EquipmentReading) -> str:
        return (
            f"{reading.rpm:g}RPM • {reading.energy_wh:.1f}Wh • "
            f"{reading.power_watts:.0f}W"
        )

    @staticmethod
    def format_sensor_details(reading: EquipmentReading) -> str:
        return (
            f"Weight: {reading.weight_kg:.1f}kg | V: {reading.voltage:.1f}V | "
            f"I: {reading.current:.2f}A"
        )

    @staticmethod
    def format_progress_bar(percent: float, width: int = 20) -> str:
        filled = int(min(max(percent, 0.0), 100.0) / 100 * width)
        return f"[{'█' * filled}{'░' * (width - filled)}] {percent:.0f}%"

    @staticmethod
    def format_power(watts: float) -> str:
        return f"{watts:.0f} W"

    @staticmethod
    def format_energy(wh: float) -> str:
        return f"{wh:.1f} Wh"

    @staticmethod
    def format_uptime(milliseconds: int) -> str:
        """Convert monitor uptime to the largest two units.

        Args:
            milliseconds: Uptime in milliseconds

        Returns:
            Formatted uptime, e.g. "2d 3h", "4h 5m", "6m 7s", "8s"
        """
        seconds = int(milliseconds) // 1000
        minutes = seconds // 60
        hours = minutes // 60
        days = hours // 24

        if days > 0:
            return f"{days}d {hours % 24}h"
        if hours > 0:
            return f"{hours}h {minutes % 60}m"
        if minutes > 0:
            return f"{minutes}m {seconds % 60}s"
        return f"{seconds}s"

    @staticmethod
    def format_clock(moment: datetime) -> str:
        """Header clock, e.g. "Wed, Jan 15, 2025, 07:30 AM"."""
        return moment.strftime("%a, %b %d, %Y, %I:%M %p")
