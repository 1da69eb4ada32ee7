"""Services used by the HTTP and CLI entry points."""
