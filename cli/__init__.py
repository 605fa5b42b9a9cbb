# CLI Interface

from .app import run_cli
