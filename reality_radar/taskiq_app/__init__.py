"""Taskiq broker, scheduler and tasks."""
