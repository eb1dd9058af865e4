"""Adapters: inbound (CLI) and outbound (history, catalog files, console)."""
