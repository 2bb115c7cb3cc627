"""Command-line front end (bootstrap, slash commands, text rendering)."""
