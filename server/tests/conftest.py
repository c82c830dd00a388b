from __future__ import annotations

import os

# Keep the real transcription backend out of the test run unless a test opts in.
os.environ.setdefault("APP_ENV", "test")
