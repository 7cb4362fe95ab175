# ABOUTME: Subcommands for the deadly CLI, one module per command or command group.
# ABOUTME: Each module exposes a Click command registered by deadly.cli.
