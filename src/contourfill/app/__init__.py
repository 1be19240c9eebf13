from .cli import build_parser, cli_main, main

__all__ = ["build_parser", "cli_main", "main"]
