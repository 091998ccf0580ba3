"""HTTP control surface."""

from budget_pal.control.server import ControlServer, create_control_app, loop_caller

__all__ = ["ControlServer", "create_control_app", "loop_caller"]
