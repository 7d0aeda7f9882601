"""
Main REPL application for the PowerGym dashboard.

Interactive command loop with async support, auto-completion,
and a live dashboard fed by the controller's refresh loop.
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from prompt_toolkit import PromptSession
from prompt_toolkit.formatted_text import FormattedText
from prompt_toolkit.history import InMemoryHistory

from . import metabolic
from .commands import COMMANDS, CommandCompleter, get_command
from .controller import DashboardController
from .display import DisplayManager
from .export import export_csv
from .hardware import HardwareMonitor
from .models import DEFAULT_PROFILE, UserProfile
from .rewards import can_redeem

logger = logging.getLogger(__name__)


def load_profile(path: Optional[str]) -> UserProfile:
    """Load a user profile from a JSON file, or return the default one.

    Raises:
        ValueError: If the file cannot be read or the profile is invalid
    """
    if not path:
        return DEFAULT_PROFILE
    try:
        with open(path, "r") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ValueError(f"Cannot read profile {path}: {e}") from e
    if not isinstance(data, dict):
        raise ValueError(f"Profile {path} must be a JSON object")
    return UserProfile.from_dict(data.get("user_profile", data))


def build_controller(
    simulate: bool,
    profile: UserProfile,
    address: Optional[str] = None,
) -> DashboardController:
    if simulate:
        return DashboardController.simulated(profile)
    return DashboardController.live(profile, candidates=[address] if address else None)


class PowerGymREPL:
    """Interactive REPL for the PowerGym dashboard."""

    def __init__(self, controller: DashboardController) -> None:
        self.controller = controller
        self.display = DisplayManager()
        self.running = False

        self.controller.set_on_disconnect(self._on_connection_lost)

        self.session: PromptSession = PromptSession(
            completer=CommandCompleter(),
            history=InMemoryHistory(),
            enable_history_search=True,
        )

        # Background tasks
        self._refresh_task: Optional[asyncio.Task] = None
        self._update_task: Optional[asyncio.Task] = None

    async def run(self) -> None:
        """Run the main REPL loop."""
        self.running = True
        self.display.print_banner()

        if self.controller.is_simulated:
            self.display.console.print("Running in simulation mode\n")
        else:
            self.display.console.print("🔍 Searching for ESP32...")
        await self._start_updates()

        try:
            while self.running:
                try:
                    text = await self.session.prompt_async(self._get_prompt())
                    if text.strip():
                        await self._handle_input(text.strip())
                except KeyboardInterrupt:
                    # Just show new prompt on Ctrl+C
                    self.display.console.print()
                    continue

        except EOFError:
            # End of input (Ctrl+D)
            await self.cmd_quit([])
        finally:
            self.running = False
            await self._stop_updates()
            await self.controller.aclose()

    async def _start_updates(self) -> None:
        if self.controller.is_running:
            return
        self._refresh_task = asyncio.create_task(self.controller.run())
        # Let the loop mark itself running before consuming updates
        await asyncio.sleep(0)
        self._update_task = asyncio.create_task(self._update_loop())

    async def _stop_updates(self) -> None:
        self.controller.stop()
        for task in (self._update_task, self._refresh_task):
            if task:
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._refresh_task = None
        self._update_task = None

    def _get_prompt(self) -> FormattedText:
        """Get dynamic prompt based on connection state.

        Returns:
            FormattedText for prompt_toolkit
        """
        if self.controller.is_simulated:
            return FormattedText([("class:prompt", "[simulated] > ")])
        source = self.controller.source
        if self.controller.is_connected and isinstance(source, HardwareMonitor):
            return FormattedText([("class:prompt", f"[{source.address}] > ")])
        return FormattedText([("class:prompt", "[disconnected] > ")])

    async def _handle_input(self, text: str) -> None:
        """Parse and dispatch command.

        Args:
            text: Raw user input text
        """
        parts = text.split(maxsplit=1)
        if not parts:
            return

        cmd_name = parts[0].lower()
        args = parts[1].split() if len(parts) > 1 else []

        cmd = get_command(cmd_name)
        if not cmd:
            self.display.print_error(
                f"Unknown command: {cmd_name}. Type 'help' for available commands."
            )
            return

        handler = getattr(self, cmd.handler, None)
        if handler is None:
            self.display.print_error(f"Handler not found: {cmd.handler}")
            return

        try:
            await handler(args)
        except Exception as e:
            self.display.print_error(f"Command failed: {e}")
            logger.exception("Command exception")

    async def _update_loop(self) -> None:
        """Background task feeding snapshots to the display."""
        try:
            async for snapshot in self.controller.get_updates():
                self.display.update_live(snapshot)
        except asyncio.CancelledError:
            pass
        except Exception as e:
            logger.error(f"Update loop error: {e}")

    def _on_connection_lost(self) -> None:
        self.display.print_info("🔴 Connection Lost, reconnecting...")

    # ========== Command Handlers ==========

    async def cmd_connect(self, args: list) -> None:
        """Connect to the hardware monitor."""
        if self.controller.is_connected:
            self.display.print_info("Already connected")
            return

        await self._stop_updates()
        self.display.print_info("Searching for ESP32...")
        if not await self.controller.connect():
            self.display.print_error(
                "ESP32 not found. Make sure it's powered on and on the same network."
            )
            return

        self.display.print_success("Hardware Connected")
        await self._start_updates()

    async def cmd_disconnect(self, args: list) -> None:
        if not self.controller.is_connected:
            self.display.print_info("Not connected")
            return

        if self.display.live_enabled:
            self.display.stop_live()

        await self._stop_updates()
        await self.controller.disconnect()
        self.display.print_info("Disconnected")

    async def cmd_status(self, args: list) -> None:
        self.display.print_status(self.controller.last_snapshot)

    async def cmd_live(self, args: list) -> None:
        """Toggle live display mode."""
        enabled = self.display.toggle_live()
        if enabled:
            self.display.update_live(self.controller.last_snapshot)
        else:
            self.display.print_info("Live display disabled")

    async def cmd_profile(self, args: list) -> None:
        profile = self.controller.profile
        bmr = metabolic.bmr(profile)
        self.display.console.print(f"[bold cyan]{profile.name or 'User'}[/bold cyan]")
        self.display.console.print(
            f"  Age: {profile.age}  Weight: {profile.weight_kg:g} kg  "
            f"Height: {profile.height_cm:g} cm  Gender: {profile.gender.value}"
        )
        self.display.console.print(f"  Goal: {profile.goal.value}")
        self.display.console.print(f"  BMR: {bmr:.0f} cal/day")
        self.display.console.print(f"  TDEE: {metabolic.tdee(profile):.0f} cal/day")
        self.display.console.print(
            f"  Target: {metabolic.target_calories(profile)} cal/day"
        )

    async def cmd_redeem(self, args: list) -> None:
        """Show the reward catalog if enough points were earned."""
        total = self.controller.fitness_state.total_points
        if not can_redeem(total):
            self.display.print_error(
                "You need at least 100 points to redeem rewards! "
                "Keep working out to earn more."
            )
            return
        self.display.print_rewards(total, self.controller.reward_catalog())

    async def cmd_achievements(self, args: list) -> None:
        self.display.print_achievements(self.controller.achievements())

    async def cmd_calibrate(self, args: list) -> None:
        """Recalibrate hardware sensors after confirmation."""
        source = self.controller.source
        if not isinstance(source, HardwareMonitor) or not source.is_connected:
            self.display.print_error("Please connect to ESP32 hardware first!")
            return

        answer = await self.session.prompt_async(
            "This will recalibrate all sensors. Make sure no equipment is in use. "
            "Continue? [y/N] "
        )
        if answer.strip().lower() not in ("y", "yes"):
            return

        if await source.calibrate():
            self.display.print_success(
                "Sensor calibration started. Please wait 30 seconds..."
            )
        else:
            self.display.print_error("Calibration failed. Check hardware connection.")

    async def cmd_reset(self, args: list) -> None:
        self.controller.reset()
        self.display.update_live(None)
        self.display.print_success("Energy data and fitness tracking reset!")

    async def cmd_export(self, args: list) -> None:
        """Export latest readings to CSV."""
        snapshot = self.controller.last_snapshot
        if snapshot is None:
            self.display.print_error("No readings to export yet")
            return
        directory = Path(args[0]) if args else Path(".")
        path = export_csv(snapshot.batch.readings, directory)
        self.display.print_success(f"Exported {len(snapshot.batch.readings)} readings to {path}")

    async def cmd_info(self, args: list) -> None:
        """Show hardware and debug information."""
        source = self.controller.source
        console = self.display.console

        console.print("[bold cyan]System Status[/bold cyan]")
        if isinstance(source, HardwareMonitor):
            console.print(f"  ESP32: {source.address or 'unknown'}")
            console.print(f"  Connected: {source.is_connected}")
            console.print(f"  Uptime: {self.display.format_uptime(source.uptime_ms)}")
        else:
            console.print("  Source: simulator")

        console.print()
        console.print("[bold cyan]Debug Information[/bold cyan]")
        console.print(f"  Update interval: {self.controller.interval}s")
        console.print(f"  Running: {self.controller.is_running}")
        console.print(f"  Live enabled: {self.display.live_enabled}")
        console.print(
            f"  Timeline: {len(self.controller.timeline)}/{self.controller.timeline.capacity}"
        )
        console.print(f"  Update queue size: {self.controller._update_queue.qsize()}")
        console.print(f"  Fitness state: {self.controller.fitness_state}")

    async def cmd_help(self, args: list) -> None:
        self.display.print_help(COMMANDS)

    async def cmd_quit(self, args: list) -> None:
        """Exit the REPL."""
        if self.display.live_enabled:
            self.display.stop_live()

        await self._stop_updates()
        if self.controller.is_connected:
            self.display.print_info("Disconnecting...")
        await self.controller.aclose()

        self.display.console.print("[green]Goodbye![/green]")
        self.running = False


async def run_cli_command(command: str, controller: DashboardController) -> None:
    """Run a single CLI command and exit."""
    display = DisplayManager()

    try:
        if command == "clear-cache":
            HardwareMonitor.clear_address_cache()
            display.print_info("Cleared cached device address")
            return

        display.print_info("Connecting...")
        if not await controller.connect():
            display.print_error("ESP32 Not Found")
            sys.exit(1)

        if command == "calibrate":
            source = controller.source
            if isinstance(source, HardwareMonitor) and await source.calibrate():
                display.print_success("Sensor calibration started")
            else:
                display.print_error("Calibration failed")
                sys.exit(1)
            return

        snapshot = await controller.refresh()
        if snapshot is None:
            display.print_error("Failed to read sensor data")
            sys.exit(1)

        if command == "status":
            display.print_status(snapshot)
        elif command == "export":
            path = export_csv(snapshot.batch.readings)
            display.print_success(f"Exported data to {path}")
        else:
            display.print_error(f"Unknown command: {command}")
            sys.exit(1)

    finally:
        await controller.aclose()


def main() -> None:
    """Entry point for the PowerGym dashboard."""
    parser = argparse.ArgumentParser(
        description="PowerGym energy dashboard",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  powergym                       # Start interactive dashboard (ESP32)
  powergym --simulate            # Start dashboard with simulated equipment
  powergym --status              # Print dashboard once (auto-connects)
  powergym --export              # Export current readings to CSV
  powergym --calibrate           # Recalibrate hardware sensors
  powergym --ip 192.168.1.50     # Use a specific ESP32 address
  powergym --profile me.json     # Use a custom user profile
  powergym --clear-cache         # Clear cached ESP32 address
        """,
    )

    parser.add_argument(
        "--simulate", action="store_true", help="Use simulated equipment"
    )
    parser.add_argument("--ip", help="ESP32 address to probe instead of the default list")
    parser.add_argument("--profile", help="User profile JSON file")
    parser.add_argument("--status", action="store_true", help="Show dashboard once")
    parser.add_argument(
        "--export", action="store_true", help="Export current readings to CSV"
    )
    parser.add_argument(
        "--calibrate", action="store_true", help="Recalibrate hardware sensors"
    )
    parser.add_argument(
        "--clear-cache", action="store_true", help="Clear cached ESP32 address"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(message)s",
    )

    commands = []
    if args.status:
        commands.append("status")
    if args.export:
        commands.append("export")
    if args.calibrate:
        commands.append("calibrate")
    if args.clear_cache:
        commands.append("clear-cache")

    if len(commands) > 1:
        print("Error: Only one command can be specified at a time", file=sys.stderr)
        sys.exit(1)

    try:
        profile = load_profile(args.profile)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    controller = build_controller(args.simulate, profile, args.ip)

    try:
        if commands:
            asyncio.run(run_cli_command(commands[0], controller))
        else:
            asyncio.run(PowerGymREPL(controller).run())
    except KeyboardInterrupt:
        print("\nInterrupted")
        sys.exit(0 if not commands else 1)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
