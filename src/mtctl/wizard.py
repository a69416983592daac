"""Menu-driven editor for the instance registry."""
from __future__ import annotations

from collections.abc import Callable

from rich.console import Console
from rich.markup import escape

from .logging import StructuredLogger
from .prompting import LineReader, choose_instance, prompt_with_retry
from .state import Instance, InstanceRegistry, RegistryIOError
from .validation import (
    ValidationError,
    mask_secret,
    validate_address,
    validate_instance_name,
    validate_port,
    validate_secret,
)

CHOICE_ADD = 1
CHOICE_EDIT = 2
CHOICE_DELETE = 3
CHOICE_EXIT = 0

CONFIRM_ANSWERS = frozenset({"y", "yes"})
_PAST_TENSE = {"add": "added", "edit": "updated", "delete": "deleted"}


class ConfigurationWizard:
    """Add, edit and delete registry entries interactively.

    Every successful mutation is saved straight away. A failed save is
    reported as a warning and the in-memory registry keeps the change.
    """

    def __init__(
        self,
        registry: InstanceRegistry,
        *,
        console: Console,
        read_line: LineReader,
        logger: StructuredLogger,
    ) -> None:
        self._registry = registry
        self._console = console
        self._read_line = read_line
        self._logger = logger

    def run(self) -> None:
        """Show the menu until the operator exits or input ends."""
        try:
            while self._step():
                pass
        except EOFError:
            self._console.print()

    def _step(self) -> bool:
        self._show_menu()
        raw = self._read_line("Enter your choice: ").strip()
        try:
            choice = int(raw)
        except ValueError:
            choice = -1

        if choice == CHOICE_EXIT:
            self._console.print("Goodbye!")
            return False
        if choice == CHOICE_ADD:
            self._mutate("add", "Error adding instance", self._add)
        elif choice == CHOICE_EDIT:
            if len(self._registry) == 0:
                self._console.print("No instances available to edit.")
            else:
                self._mutate("edit", "Error editing instance", self._edit)
        elif choice == CHOICE_DELETE:
            if len(self._registry) == 0:
                self._console.print("No instances available to delete.")
            else:
                self._mutate("delete", "Error deleting instance", self._delete)
        else:
            self._console.print("Invalid choice. Please try again.")
        self._console.print()
        return True

    def _show_menu(self) -> None:
        self._console.print("=== Motor Town Server Configuration ===")
        self._console.print()

        names = self._registry.sorted_names()
        if names:
            self._console.print("Instances:")
            for name in names:
                instance = self._registry.get(name)
                endpoint = instance.endpoint if instance is not None else "?"
                self._console.print(f"  - {escape(name)} ({endpoint})")
            self._console.print()

        self._console.print(f"[{CHOICE_ADD}] Add Instance")
        if names:
            self._console.print(f"[{CHOICE_EDIT}] Edit Instance")
            self._console.print(f"[{CHOICE_DELETE}] Delete Instance")
        self._console.print(f"[{CHOICE_EXIT}] Exit")
        self._console.print()

    def _mutate(
        self,
        action: str,
        failure_prefix: str,
        handler: Callable[[], str | None],
    ) -> None:
        """Run *handler*, persist on change, and log the outcome."""
        with self._logger.operation(
            f"configure {action}",
            target={"kind": "registry", "path": self._registry.path},
        ) as op:
            try:
                changed = handler()
            except ValidationError as exc:
                self._console.print(f"{failure_prefix}: {escape(str(exc))}")
                op.error(str(exc))
                return

            if changed is None:
                op.success("No changes made.", changed=0)
                return

            op.add_step(f"registry.{action}", detail=changed)
            try:
                self._registry.save()
            except RegistryIOError as exc:
                self._console.print(
                    f"[yellow]Warning:[/yellow] Failed to save configuration: {escape(str(exc))}"
                )
                op.warning("Registry changed in memory only.", warnings=[str(exc)], changed=1)
                return
            op.add_step("registry.save", detail=str(self._registry.path))
            op.success(f"Instance '{changed}' {_PAST_TENSE[action]}.", changed=1)

    # ------------------------------------------------------------------
    # Menu actions; each returns the affected name or None when cancelled
    # ------------------------------------------------------------------
    def _add(self) -> str | None:
        self._console.print()
        self._console.print("=== Add New Instance ===")

        name = prompt_with_retry(
            self._read_line, self._console, "Enter instance name", validate_instance_name
        )
        if name in self._registry:
            raise ValidationError(f"instance '{name}' already exists")

        instance = self._prompt_instance(None)
        self._registry.add_or_replace(name, instance)

        self._console.print(f"Instance '{escape(name)}' added successfully!")
        self._print_instance(instance)
        return name

    def _edit(self) -> str | None:
        self._console.print()
        self._console.print("=== Edit Instance ===")
        self._console.print("Available instances:")
        name = choose_instance(
            self._read_line, self._console, self._registry, "Enter instance number to edit: "
        )
        existing = self._registry.get(name)
        if existing is None:
            raise ValidationError(f"instance '{name}' is not configured")

        self._console.print()
        self._console.print(f"Editing instance '{escape(name)}'")
        self._console.print(f"Current: {existing.endpoint}")
        self._console.print("Enter new values (press Enter to keep current value):")

        instance = self._prompt_instance(existing)
        self._registry.add_or_replace(name, instance)

        self._console.print(f"Instance '{escape(name)}' updated successfully!")
        self._print_instance(instance)
        return name

    def _delete(self) -> str | None:
        self._console.print()
        self._console.print("=== Delete Instance ===")
        self._console.print("Available instances:")
        name = choose_instance(
            self._read_line, self._console, self._registry, "Enter instance number to delete: "
        )

        answer = self._read_line(
            f"Are you sure you want to delete instance '{name}'? (y/N): "
        ).strip().lower()
        if answer not in CONFIRM_ANSWERS:
            self._console.print("Deletion cancelled.")
            return None

        if not self._registry.delete(name):
            raise ValidationError(f"failed to delete instance '{name}'")
        self._console.print(f"Instance '{escape(name)}' deleted successfully!")
        return name

    # Internal helpers -------------------------------------------------
    def _prompt_instance(self, existing: Instance | None) -> Instance:
        """Prompt for every field; *existing* supplies defaults in edit mode."""
        address = prompt_with_retry(
            self._read_line,
            self._console,
            "Enter server address",
            validate_address,
            default=existing.address if existing else None,
        )
        port = prompt_with_retry(
            self._read_line,
            self._console,
            "Enter server port",
            validate_port,
            default=str(existing.port) if existing else None,
        )
        secret = prompt_with_retry(
            self._read_line,
            self._console,
            "Enter server secret",
            validate_secret,
            default=existing.secret if existing else None,
            default_display=mask_secret(existing.secret) if existing else None,
        )
        return Instance(address=address, port=port, secret=secret)

    def _print_instance(self, instance: Instance) -> None:
        self._console.print(f"  Address: {instance.address}")
        self._console.print(f"  Port: {instance.port}")
        self._console.print(f"  Secret: {escape(mask_secret(instance.secret))}")


__all__ = ["ConfigurationWizard"]
