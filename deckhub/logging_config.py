"""deckhub logging configuration.

deckhub uses the shared InstruktAI logging standard (`instrukt_ai_logging`).
Log files live under the standard per-app state directory
(`$XDG_STATE_HOME/instrukt-ai/deckhub/deckhub.log`). The console owns the
terminal, so nothing is written to stderr while the TUI runs.
"""

from __future__ import annotations

import os
from typing import Optional

from instrukt_ai_logging import configure_logging


def setup_logging(level: Optional[str] = None) -> None:
    """Configure deckhub logging.

    Args:
        level: Optional override for `DECKHUB_LOG_LEVEL`.
    """
    if level:
        os.environ["DECKHUB_LOG_LEVEL"] = level.upper()

    configure_logging("deckhub")
