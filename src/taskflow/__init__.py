"""Local-first personal task manager core: tasks, categories, query engine and streaming chat."""

__version__ = "0.1.0"
