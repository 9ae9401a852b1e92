"""Pomoflow: pomodoro timer phases, templates, schedules and run insights."""

__version__ = "0.1.0"

__all__ = ["__version__"]
