"""
Command registry for automatic command discovery and registration.
"""

import importlib
import inspect

from .base import Command, CommandGroup

COMMAND_MODULES = ("stream", "transcript")


class CommandRegistry:
    """
    Registry for CLI commands.

    Command groups are registered manually or discovered from modules; their
    subcommands are registered by the groups themselves.
    """

    def __init__(self) -> None:
        self._commands: dict[str, Command] = {}
        self._command_groups: dict[str, CommandGroup] = {}

    def register_command(self, command: Command) -> None:
        """
        Register a single command instance under its name and aliases.

        Raises:
            TypeError: If ``command`` is not a Command
            ValueError: If a name or alias is already taken
        """
        if not isinstance(command, Command):
            raise TypeError(f"Expected Command instance, got {type(command)}")

        for name in command.get_all_names():
            if name in self._commands:
                raise ValueError(f"Command '{name}' is already registered")
            self._commands[name] = command

        if isinstance(command, CommandGroup):
            self._command_groups[command.name] = command

    def register_command_class(self, command_class: type[Command]) -> None:
        """Register a command class by instantiating it."""
        if not issubclass(command_class, Command):
            raise TypeError(f"Expected Command subclass, got {command_class}")
        self.register_command(command_class())

    def discover_commands_from_module(self, module_name: str) -> None:
        """
        Discover and register all command groups defined in a module.

        Args:
            module_name: Full module name (e.g., 'agentstream.cli.commands.stream')
        """
        try:
            module = importlib.import_module(module_name)
        except ImportError as e:
            raise ImportError(f"Could not import module '{module_name}': {e}") from e

        for _name, obj in inspect.getmembers(module):
            if (
                inspect.isclass(obj)
                and issubclass(obj, CommandGroup)
                and obj is not CommandGroup
                and obj.__module__ == module.__name__
                and not inspect.isabstract(obj)
                and obj.name not in self._commands
            ):
                self.register_command_class(obj)

    def auto_discover_commands(self, package_name: str = "agentstream.cli.commands") -> None:
        """Discover commands from the known command modules of a package."""
        for module in COMMAND_MODULES:
            try:
                self.discover_commands_from_module(f"{package_name}.{module}")
            except ImportError:
                continue

    def get_command(self, name: str) -> Command:
        """
        Get a registered command by name or alias.

        Raises:
            KeyError: If command is not found
        """
        if name not in self._commands:
            raise KeyError(f"Command '{name}' not found")
        return self._commands[name]

    def get_all_commands(self) -> dict[str, Command]:
        return self._commands.copy()

    def get_command_groups(self) -> dict[str, CommandGroup]:
        return self._command_groups.copy()

    def get_primary_commands(self) -> list[Command]:
        """Unique command instances, in registration order, without aliases."""
        seen: set[int] = set()
        primary: list[Command] = []
        for name, command in self._commands.items():
            if id(command) not in seen and name == command.name:
                seen.add(id(command))
                primary.append(command)
        return primary

    def has_command(self, name: str) -> bool:
        return name in self._commands

    def clear(self) -> None:
        """Clear all registered commands."""
        self._commands.clear()
        self._command_groups.clear()


registry = CommandRegistry()
