"""
Meganote Backend - Append-Only Event Log Files
===============================================

What:  Writes one tab-separated line per event to files under LOG_DIR.
How:   aiofiles appends asynchronously so a slow disk never blocks the
       event loop. Files are chosen by name (reqLog.log, errLog.log, ...);
       there is no size- or time-based rotation.
Who:   RequestLoggingMiddleware (requests), the global error handler and the
       login rate limiter (errors).

Line format:
    yyyyMMdd<TAB>HH:mm:ss<TAB><correlation id><TAB><message>\n

    The correlation id is the request id of the current request when one is
    set, otherwise a fresh UUID.
"""

import logging
import uuid
from datetime import datetime
from pathlib import Path
from typing import Optional

import aiofiles
import aiofiles.os

from meganote.config import settings
from meganote.middleware.request_id import request_id_var

logger = logging.getLogger(__name__)

REQUEST_LOG = "reqLog.log"
ERROR_LOG = "errLog.log"


def format_log_line(message: str, correlation_id: str, at: Optional[datetime] = None) -> str:
    stamp = (at or datetime.now()).strftime("%Y%m%d\t%H:%M:%S")
    return f"{stamp}\t{correlation_id}\t{message}\n"


async def log_events(message: str, log_file_name: str) -> None:
    """
    Append a single event line to LOG_DIR/log_file_name.

    The directory is created on first use. I/O failures are reported to the
    process logger and swallowed: losing a log line must never fail a request.
    """
    correlation_id = request_id_var.get("") or str(uuid.uuid4())
    line = format_log_line(message, correlation_id)
    log_dir = Path(settings.log_dir)

    try:
        await aiofiles.os.makedirs(log_dir, exist_ok=True)
        async with aiofiles.open(log_dir / log_file_name, mode="a", encoding="utf-8") as f:
            await f.write(line)
    except OSError as e:
        logger.error("Could not append to %s: %s", log_file_name, e)
