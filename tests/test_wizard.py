"""Tests for the configuration wizard."""
from __future__ import annotations

import json
from pathlib import Path

import pytest
from conftest import ScriptedInput, output_of
from rich.console import Console

from mtctl.logging import StructuredLogger
from mtctl.state import Instance, InstanceRegistry, RegistryIOError
from mtctl.wizard import ConfigurationWizard


def _run(
    registry: InstanceRegistry,
    console: Console,
    logger: StructuredLogger,
    *lines: str,
) -> ScriptedInput:
    reader = ScriptedInput(*lines)
    ConfigurationWizard(registry, console=console, read_line=reader, logger=logger).run()
    return reader


@pytest.fixture
def empty_registry(tmp_path: Path) -> InstanceRegistry:
    """Return an empty registry backed by a temporary file."""
    return InstanceRegistry(path=tmp_path / "instances.yml")


def test_menu_hides_edit_and_delete_when_empty(
    empty_registry: InstanceRegistry,
    console: Console,
    logger: StructuredLogger,
) -> None:
    """Only add and exit are offered for an empty registry."""
    _run(empty_registry, console, logger, "0")

    output = output_of(console)
    assert "=== Motor Town Server Configuration ===" in output
    assert "[1] Add Instance" in output
    assert "[2] Edit Instance" not in output
    assert "[3] Delete Instance" not in output
    assert "[0] Exit" in output
    assert "Goodbye!" in output


def test_hidden_actions_on_empty_registry(
    empty_registry: InstanceRegistry,
    console: Console,
    logger: StructuredLogger,
) -> None:
    """Edit and delete are still understood when there is nothing to change."""
    _run(empty_registry, console, logger, "2", "3", "0")

    output = output_of(console)
    assert "No instances available to edit." in output
    assert "No instances available to delete." in output


def test_menu_lists_instances(
    registry: InstanceRegistry,
    console: Console,
    logger: StructuredLogger,
) -> None:
    """Registered instances and all actions are shown."""
    _run(registry, console, logger, "0")

    output = output_of(console)
    assert "  - main (10.0.0.5:8080)" in output
    assert "[2] Edit Instance" in output
    assert "[3] Delete Instance" in output


def test_add_instance_persists(
    empty_registry: InstanceRegistry,
    console: Console,
    logger: StructuredLogger,
) -> None:
    """Adding an instance saves the registry and masks the secret."""
    reader = _run(
        empty_registry, console, logger, "1", "main", "10.0.0.5", "8080", "s3cret", "0"
    )

    assert reader.prompts[1:5] == [
        "Enter instance name: ",
        "Enter server address: ",
        "Enter server port: ",
        "Enter server secret: ",
    ]
    reloaded = InstanceRegistry.load(empty_registry.path)
    assert reloaded.get("main") == Instance(address="10.0.0.5", port=8080, secret="s3cret")

    output = output_of(console)
    assert "Instance 'main' added successfully!" in output
    assert "  Address: 10.0.0.5" in output
    assert "  Port: 8080" in output
    assert "  Secret: s3****" in output
    assert "s3cret" not in output


def test_add_retries_invalid_fields(
    empty_registry: InstanceRegistry,
    console: Console,
    logger: StructuredLogger,
) -> None:
    """Invalid field values are retried within the attempt budget."""
    _run(
        empty_registry,
        console,
        logger,
        "1",
        "Bad Name",
        "main",
        "10.0.0.256",
        "10.0.0.5",
        "port",
        "8080",
        "s3cret",
        "0",
    )

    output = output_of(console)
    assert "Error: instance name can only contain lowercase letters" in output
    assert "Error: address part 4 must be between 0 and 255, got: 256" in output
    assert "Error: port must be a number: port" in output
    assert "main" in empty_registry


def test_add_gives_up_after_three_attempts(
    empty_registry: InstanceRegistry,
    console: Console,
    logger: StructuredLogger,
) -> None:
    """Three invalid names abort the add and return to the menu."""
    _run(empty_registry, console, logger, "1", "A", "B", "C", "0")

    output = output_of(console)
    assert "Error adding instance: maximum attempts reached (3/3)" in output
    assert len(empty_registry) == 0
    assert not empty_registry.path.exists()


def test_add_rejects_duplicate_name(
    registry: InstanceRegistry,
    console: Console,
    logger: StructuredLogger,
) -> None:
    """An existing name cannot be added twice."""
    reader = _run(registry, console, logger, "1", "main", "0")

    assert "Error adding instance: instance 'main' already exists" in output_of(console)
    assert "Enter server address: " not in reader.prompts


def test_edit_keeps_defaults_and_masks_secret(
    registry: InstanceRegistry,
    console: Console,
    logger: StructuredLogger,
) -> None:
    """Empty answers keep the current values; the secret default is masked."""
    reader = _run(registry, console, logger, "2", "1", "", "9090", "", "0")

    assert "Enter server address [10.0.0.5]: " in reader.prompts
    assert "Enter server port [8080]: " in reader.prompts
    assert "Enter server secret [s3****]: " in reader.prompts
    assert registry.get("main") == Instance(address="10.0.0.5", port=9090, secret="s3cret")
    assert InstanceRegistry.load(registry.path).get("main") == registry.get("main")
    assert "Instance 'main' updated successfully!" in output_of(console)


def test_edit_exhaustion_leaves_record_untouched(
    registry: InstanceRegistry,
    console: Console,
    logger: StructuredLogger,
) -> None:
    """Running out of attempts aborts the edit without mutation."""
    before = registry.get("main")

    _run(registry, console, logger, "2", "1", "", "x", "y", "z", "0")

    assert "Error editing instance: maximum attempts reached (3/3)" in output_of(console)
    assert registry.get("main") == before
    assert not registry.path.exists()


def test_edit_invalid_choice(
    registry: InstanceRegistry,
    console: Console,
    logger: StructuredLogger,
) -> None:
    """An unlisted instance number aborts the edit."""
    _run(registry, console, logger, "2", "5", "0")

    assert "Error editing instance: invalid choice: 5" in output_of(console)


def test_delete_requires_confirmation(
    registry: InstanceRegistry,
    console: Console,
    logger: StructuredLogger,
) -> None:
    """Anything but y/yes cancels the deletion."""
    reader = _run(registry, console, logger, "3", "1", "n", "0")

    assert "Are you sure you want to delete instance 'main'? (y/N): " in reader.prompts
    assert "Deletion cancelled." in output_of(console)
    assert "main" in registry
    assert not registry.path.exists()


@pytest.mark.parametrize("answer", ["y", "YES", " yes "])
def test_delete_confirmed(
    registry: InstanceRegistry,
    console: Console,
    logger: StructuredLogger,
    answer: str,
) -> None:
    """Confirmed deletions are saved."""
    _run(registry, console, logger, "3", "1", answer, "0")

    assert "Instance 'main' deleted successfully!" in output_of(console)
    assert len(InstanceRegistry.load(registry.path)) == 0


def test_invalid_menu_choice(
    registry: InstanceRegistry,
    console: Console,
    logger: StructuredLogger,
) -> None:
    """Unknown menu entries are reported and the menu is shown again."""
    _run(registry, console, logger, "9", "edit", "0")

    output = output_of(console)
    assert output.count("Invalid choice. Please try again.") == 2
    assert output.count("=== Motor Town Server Configuration ===") == 3


def test_end_of_input_exits_cleanly(
    registry: InstanceRegistry,
    console: Console,
    logger: StructuredLogger,
) -> None:
    """Running out of input, even mid-prompt, closes the wizard."""
    _run(registry, console, logger, "1", "second")

    assert "second" not in registry
    assert "Goodbye!" not in output_of(console)


def test_save_failure_is_a_warning(
    empty_registry: InstanceRegistry,
    console: Console,
    logger: StructuredLogger,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """A failed save warns and keeps the in-memory change."""

    def fail_save(self: InstanceRegistry) -> None:
        raise RegistryIOError("disk full")

    monkeypatch.setattr(InstanceRegistry, "save", fail_save)

    _run(empty_registry, console, logger, "1", "main", "10.0.0.5", "8080", "s3cret", "0")

    output = output_of(console)
    assert "Warning: Failed to save configuration: disk full" in output
    assert "main" in empty_registry


def test_mutations_are_logged_without_secrets(
    empty_registry: InstanceRegistry,
    console: Console,
    logger: StructuredLogger,
) -> None:
    """Each wizard action is recorded in the operations log."""
    _run(empty_registry, console, logger, "1", "main", "10.0.0.5", "8080", "s3cret", "0")

    text = logger._operations_log_path.read_text(encoding="utf-8")  # type: ignore[attr-defined]
    assert "s3cret" not in text
    (record,) = (json.loads(line) for line in text.splitlines())
    assert record["command"] == "configure add"
    assert record["result"]["status"] == "success"
    assert record["result"]["message"] == "Instance 'main' added."
    assert [step["name"] for step in record["steps"]] == ["registry.add", "registry.save"]
