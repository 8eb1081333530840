"""Entry point for `python -m gkesa`.

Usage:
    python -m gkesa
    uv run python -m gkesa
"""

from __future__ import annotations

import asyncio

from gkesa.app import main

asyncio.run(main())
