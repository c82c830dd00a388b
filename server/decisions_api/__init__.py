"""Decisions API: voice-note upload and transcription backend.

Importing the package loads ``server/.env`` and then ``server/.env.local`` so
``decisions_api.config.Settings`` sees them before the first instance is built.
"""
from __future__ import annotations

from pathlib import Path

from dotenv import load_dotenv

SERVER_DIR = Path(__file__).resolve().parent.parent


def load_environment(server_dir: Path = SERVER_DIR) -> None:
    """Populate ``os.environ`` from the dotenv files in ``server_dir``."""

    load_dotenv(server_dir / ".env")
    # .env.local holds per-developer AssemblyAI/Supabase keys and wins over .env.
    load_dotenv(server_dir / ".env.local", override=True)


load_environment()
