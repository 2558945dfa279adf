#!/usr/bin/env python3
"""
Setup helper for PropJournal.

Creates the database and checks the optional Telegram connection.
"""

import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import requests
import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel

from propjournal.core.config import Config
from propjournal.core.db import init_db

app = typer.Typer(help="PropJournal setup")
console = Console()


def test_telegram(bot_token: str, chat_id: str) -> bool:
    """Test Telegram bot connection."""
    try:
        response = requests.get(
            f"https://api.telegram.org/bot{bot_token}/getChat",
            params={"chat_id": chat_id},
            timeout=10,
        )
        response.raise_for_status()
        return bool(response.json().get("ok"))

    except requests.RequestException:
        return False


@app.command()
def init():
    """Create the database schema."""
    load_dotenv()
    config = Config.from_env()

    init_db(config)
    console.print(f"[green]Database ready at {config.database_path}[/green]")


@app.command()
def show():
    """Show current settings."""
    load_dotenv()
    config = Config.from_env()

    console.print(Panel(config.get_summary(), title="PropJournal"))

    if config.telegram_enabled:
        if test_telegram(config.telegram_bot_token, config.telegram_chat_id):
            console.print("[green]Telegram connection OK[/green]")
        else:
            console.print("[red]Telegram connection failed[/red]")


if __name__ == "__main__":
    app()
