"""gwt: manage git worktrees alongside their pull requests."""

__version__ = "0.1.0"
