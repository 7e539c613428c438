"""Daily task planner: task store with day rollover and key-value persistence."""

__version__ = "0.1.0"
