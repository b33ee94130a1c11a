"""Command registration for the Speaker Role bot."""

from .components import register_component_handlers
from .context_menu import register_context_menu_commands

__all__ = ["register_context_menu_commands", "register_component_handlers"]
