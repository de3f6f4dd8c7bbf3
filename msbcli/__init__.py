"""Argument parsers, terminal styles and input checks for managing sandboxes and microVMs."""

__version__ = "0.1.0"

__all__ = ["handlers", "msb_args", "msbrun_args", "runner", "styles"]