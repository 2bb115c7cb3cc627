"""TaskFlow: local task and project manager with list and calendar views."""

__version__ = "0.1.0"
