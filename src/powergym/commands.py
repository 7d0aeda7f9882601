"""
Command definitions and auto-completion for REPL.

Defines all available commands with metadata and provides a completer
for prompt_toolkit auto-completion.
"""

from dataclasses import dataclass
from typing import Any, List

from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.document import Document


@dataclass
class Command:
    """Command definition with metadata."""

    name: str
    aliases: List[str]
    description: str
    usage: str
    handler: str


COMMANDS = [
    Command(
        name="connect",
        aliases=["c"],
        description="Search for the ESP32 monitor and connect",
        usage="connect",
        handler="cmd_connect",
    ),
    Command(
        name="disconnect",
        aliases=["dc"],
        description="Stop updates and disconnect",
        usage="disconnect",
        handler="cmd_disconnect",
    ),
    Command(
        name="status",
        aliases=["st"],
        description="Show the dashboard once",
        usage="status",
        handler="cmd_status",
    ),
    Command(
        name="live",
        aliases=["l"],
        description="Toggle live dashboard",
        usage="live",
        handler="cmd_live",
    ),
    Command(
        name="profile",
        aliases=["pr"],
        description="Show user profile and calorie targets",
        usage="profile",
        handler="cmd_profile",
    ),
    Command(
        name="redeem",
        aliases=["rd"],
        description="Show rewards available for your points",
        usage="redeem",
        handler="cmd_redeem",
    ),
    Command(
        name="achievements",
        aliases=["a"],
        description="Show session achievements",
        usage="achievements",
        handler="cmd_achievements",
    ),
    Command(
        name="calibrate",
        aliases=["cal"],
        description="Recalibrate all hardware sensors",
        usage="calibrate",
        handler="cmd_calibrate",
    ),
    Command(
        name="reset",
        aliases=["r"],
        description="Reset energy chart and fitness tracking",
        usage="reset",
        handler="cmd_reset",
    ),
    Command(
        name="export",
        aliases=["e"],
        description="Export latest readings to CSV",
        usage="export [directory]",
        handler="cmd_export",
    ),
    Command(
        name="info",
        aliases=["i"],
        description="Show hardware and debug information",
        usage="info",
        handler="cmd_info",
    ),
    Command(
        name="help",
        aliases=["h", "?"],
        description="Show all available commands",
        usage="help",
        handler="cmd_help",
    ),
    Command(
        name="quit",
        aliases=["q", "exit"],
        description="Exit the REPL",
        usage="quit",
        handler="cmd_quit",
    ),
]


def get_command(name: str) -> Command | None:
    """Get command by name or alias.

    Args:
        name: Command name or alias

    Returns:
        Command object if found, None otherwise
    """
    for cmd in COMMANDS:
        if cmd.name == name or name in cmd.aliases:
            return cmd
    return None


class CommandCompleter(Completer):
    """Auto-completion for command names and aliases."""

    def __init__(self) -> None:
        self._command_names = set()
        self._command_aliases = set()

        for cmd in COMMANDS:
            self._command_names.add(cmd.name)
            self._command_aliases.update(cmd.aliases)

    def get_completions(self, document: Document, complete_event) -> Any:  # type: ignore[no-untyped-def]
        """Get completion suggestions for current input.

        Args:
            document: Current input document
            complete_event: Completion event

        Yields:
            Completion objects for matching commands
        """
        text = document.text_before_cursor.lstrip()
        parts = text.split()

        # If no text yet, suggest nothing (avoid spam)
        if not text or len(parts) > 1 or text.endswith(" "):
            return

        partial_cmd = parts[0].lower()
        for name in sorted(self._command_names | self._command_aliases):
            if name.startswith(partial_cmd):
                yield Completion(
                    name[len(partial_cmd) :],
                    start_position=0,
                    display=name,
                )
