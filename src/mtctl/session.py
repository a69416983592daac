"""Interactive remote-control session bound to one instance.

The session starts in a *selecting* state (pick an instance from the
registry) and moves to *connected* once an instance is chosen. While
connected it reads one command line at a time, runs it against the instance
and renders the result. Errors from a single command are printed and the
session carries on; only ``exit``/``quit``/``disconnect`` or the end of input
terminate it.
"""
from __future__ import annotations

from collections.abc import Callable, Mapping

from rich.console import Console
from rich.markup import escape

from .logging import StructuredLogger
from .prompting import LineReader, choose_instance
from .providers import ClientError, Envelope, RemoteControlClient
from .state import Instance, InstanceRegistry
from .validation import ValidationError

EXIT_COMMANDS = frozenset({"exit", "quit", "disconnect"})

HELP_LINES = (
    ("chat <message>", "Send a chat message to the server"),
    ("players, playerlist", "Get list of online players"),
    ("count, playercount", "Get number of online players"),
    ("banlist", "Get list of banned players"),
    ("kick <unique_id>", "Kick a player by unique ID"),
    ("ban <unique_id> [hours] [reason]", "Ban a player"),
    ("unban <unique_id>", "Unban a player by unique ID"),
    ("version", "Get server version"),
    ("housing", "Get housing list"),
    ("help", "Show this help message"),
    ("exit, quit, disconnect", "Close the session"),
)


class CommandError(RuntimeError):
    """Raised when a session command cannot be completed."""


class InteractiveSession:
    """Read-eval-print loop issuing administrative calls to one instance."""

    def __init__(
        self,
        registry: InstanceRegistry,
        client: RemoteControlClient,
        *,
        console: Console,
        read_line: LineReader,
        logger: StructuredLogger,
    ) -> None:
        self._registry = registry
        self._client = client
        self._console = console
        self._read_line = read_line
        self._logger = logger
        self._name: str | None = None
        self._instance: Instance | None = None
        self._handlers: dict[str, Callable[[list[str]], None]] = {
            "chat": self._chat,
            "players": self._player_list,
            "playerlist": self._player_list,
            "count": self._player_count,
            "playercount": self._player_count,
            "banlist": self._ban_list,
            "kick": self._kick,
            "ban": self._ban,
            "unban": self._unban,
            "version": self._version,
            "housing": self._housing,
        }

    @property
    def connected(self) -> bool:
        """Return whether the session is bound to an instance."""
        return self._instance is not None

    @property
    def instance_name(self) -> str | None:
        """Return the name of the bound instance."""
        return self._name

    # ------------------------------------------------------------------
    # State transitions
    # ------------------------------------------------------------------
    def select(self) -> str | None:
        """Let the operator pick an instance; return ``None`` when there is none.

        Raises :class:`ValidationError` when the selection is not a listed
        number. End of input while selecting returns ``None``.
        """
        if len(self._registry) == 0:
            self._console.print(
                "No instances configured. Use 'configure' command to add instances."
            )
            return None

        self._console.print("=== Available Instances ===")
        try:
            name = choose_instance(
                self._read_line,
                self._console,
                self._registry,
                "Select instance to connect to: ",
            )
        except EOFError:
            self._console.print()
            return None
        self.bind(name)
        return name

    def bind(self, name: str) -> Instance:
        """Bind the session to the registered instance *name*."""
        instance = self._registry.get(name)
        if instance is None:
            raise ValidationError(f"instance '{name}' is not configured")
        self._name = name
        self._instance = instance
        return instance

    def run(self) -> None:
        """Process commands until the operator leaves or input ends."""
        if self._instance is None or self._name is None:
            raise RuntimeError("session is not bound to an instance")

        self._console.print(
            f"Connected to instance '{escape(self._name)}' ({self._instance.endpoint})"
        )
        self._console.print("Type 'help' for available commands or 'exit' to disconnect.")
        self._console.print()

        while True:
            try:
                line = self._read_line(f"{self._name}> ")
            except EOFError:
                self._console.print()
                break
            if not self.execute(line):
                break

    def execute(self, line: str) -> bool:
        """Run one command line; return ``False`` once the session should end."""
        parts = line.split()
        if not parts:
            return True

        command = parts[0].lower()
        if command in EXIT_COMMANDS:
            self._console.print(f"Disconnected from instance '{escape(self._name or '')}'")
            return False
        if command == "help":
            self._show_help()
            return True

        handler = self._handlers.get(command)
        if handler is None:
            self._console.print(f"Unknown command: {escape(command)}")
            self._console.print("Type 'help' for available commands.")
            return True

        with self._logger.operation(
            f"session {command}",
            args={"argv": parts[1:]},
            target={"kind": "instance", "name": self._name},
        ) as op:
            try:
                handler(parts)
            except (CommandError, ValidationError) as exc:
                self._console.print(f"[red]Error:[/red] {escape(str(exc))}")
                op.error(str(exc))
            else:
                op.success(f"Executed '{command}'.")
        return True

    # ------------------------------------------------------------------
    # Command handlers
    # ------------------------------------------------------------------
    def _chat(self, parts: list[str]) -> None:
        if len(parts) < 2:
            raise CommandError("usage: chat <message>")
        message = " ".join(parts[1:])
        self._console.print(f"Sending message: {escape(message)}")
        envelope = self._call("send chat message", self._client.send_chat, message)
        self._success("Message sent successfully", envelope)

    def _player_list(self, parts: list[str]) -> None:
        envelope = self._call("get player list", self._client.player_list)
        self._render_players(envelope, heading="Online players", empty="No players online")

    def _ban_list(self, parts: list[str]) -> None:
        envelope = self._call("get ban list", self._client.ban_list)
        self._render_players(envelope, heading="Banned players", empty="No banned players")

    def _player_count(self, parts: list[str]) -> None:
        envelope = self._call("get player count", self._client.player_count)
        data = envelope.mapping()
        if data is None:
            raise CommandError("unexpected response format")
        value = data.get("num_players")
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise CommandError(f"unexpected player count format: {value!r}")
        self._console.print(f"Players online: {int(value)}")

    def _version(self, parts: list[str]) -> None:
        envelope = self._call("get version", self._client.version)
        data = envelope.mapping()
        if data is None:
            raise CommandError("unexpected response format")
        value = data.get("version")
        if not isinstance(value, str):
            raise CommandError(f"unexpected version format: {value!r}")
        self._console.print(f"Server version: {escape(value)}")

    def _housing(self, parts: list[str]) -> None:
        envelope = self._call("get housing list", self._client.housing_list)
        data = envelope.mapping()
        if not data:
            self._console.print("No housing data available")
            return
        self._console.print(f"Housing list ({len(data)} entries):")
        for house_name, house in data.items():
            if not isinstance(house, Mapping):
                continue
            owner = _field(house, "owner_unique_id")
            expires = _field(house, "expire_time")
            self._console.print(
                f"  - {escape(str(house_name))} "
                f"(Owner: {escape(owner)}, Expires: {escape(expires)})"
            )

    def _kick(self, parts: list[str]) -> None:
        if len(parts) < 2:
            raise CommandError("usage: kick <unique_id>")
        unique_id = parts[1]
        self._console.print(f"Kicking player with ID: {escape(unique_id)}")
        envelope = self._call("kick player", self._client.kick, unique_id)
        self._success("Player kicked successfully", envelope)

    def _ban(self, parts: list[str]) -> None:
        if len(parts) < 2:
            raise CommandError("usage: ban <unique_id> [hours] [reason]")
        unique_id = parts[1]
        hours = _parse_hours(parts[2]) if len(parts) > 2 else None
        reason = " ".join(parts[3:])

        summary = f"Banning player with ID: {escape(unique_id)}"
        if hours is not None and hours > 0:
            summary += f" for {hours} hours"
        if reason:
            summary += f" (reason: {escape(reason)})"
        self._console.print(summary)

        envelope = self._call(
            "ban player", self._client.ban, unique_id, hours=hours, reason=reason
        )
        self._success("Player banned successfully", envelope)

    def _unban(self, parts: list[str]) -> None:
        if len(parts) < 2:
            raise CommandError("usage: unban <unique_id>")
        unique_id = parts[1]
        self._console.print(f"Unbanning player with ID: {escape(unique_id)}")
        envelope = self._call("unban player", self._client.unban, unique_id)
        self._success("Player unbanned successfully", envelope)

    # Internal helpers -------------------------------------------------
    def _call(
        self,
        action: str,
        method: Callable[..., Envelope],
        *args: object,
        **kwargs: object,
    ) -> Envelope:
        try:
            return method(self._instance, *args, **kwargs)
        except (ClientError, ValidationError) as exc:
            raise CommandError(f"failed to {action}: {exc}") from exc

    def _success(self, summary: str, envelope: Envelope) -> None:
        self._console.print(f"[green]{summary}:[/green] {escape(envelope.message)}")

    def _render_players(self, envelope: Envelope, *, heading: str, empty: str) -> None:
        data = envelope.mapping()
        if not data:
            self._console.print(empty)
            return
        self._console.print(f"{heading} ({len(data)}):")
        for player in data.values():
            if not isinstance(player, Mapping):
                continue
            name = _field(player, "name")
            unique_id = _field(player, "unique_id")
            self._console.print(f"  - {escape(name)} (ID: {escape(unique_id)})")

    def _show_help(self) -> None:
        self._console.print("Available commands:")
        width = max(len(usage) for usage, _ in HELP_LINES)
        for usage, description in HELP_LINES:
            self._console.print(f"  {usage.ljust(width)}  {description}", markup=False)
        self._console.print()


def _parse_hours(raw: str) -> int | None:
    """Return *raw* as an integer hour count; non-numeric text means no hours."""
    try:
        return int(raw)
    except ValueError:
        return None


def _field(entry: Mapping[object, object], key: str) -> str:
    value = entry.get(key)
    if value is None:
        return "?"
    return str(value)


__all__ = ["CommandError", "EXIT_COMMANDS", "HELP_LINES", "InteractiveSession"]
