"""Watch a document (or directory) and run a sync pass on every change.

Changes are detected by polling a snapshot of ``(mtime, size)`` per file.
Passes run one at a time; a failed pass is logged and watching continues.
"""

from __future__ import annotations

import logging
import os
import time
from pathlib import Path
from typing import Callable, Dict, Optional, Tuple

from .errors import AnkiTexError
from .sync import Synchronizer
from .templates import Framing

logger = logging.getLogger(__name__)

Snapshot = Dict[str, Tuple[float, int]]


def take_snapshot(path: Path) -> Optional[Snapshot]:
    """Modification state of ``path`` (recursively for directories); None if it is gone."""
    try:
        stat = path.stat()
    except FileNotFoundError:
        return None
    if not path.is_dir():
        return {str(path): (stat.st_mtime, stat.st_size)}
    snapshot: Snapshot = {}
    for root, _dirs, files in os.walk(path):
        for name in files:
            full = os.path.join(root, name)
            try:
                stat = os.stat(full)
            except FileNotFoundError:
                continue
            snapshot[full] = (stat.st_mtime, stat.st_size)
    return snapshot


def run_pass(synchronizer: Synchronizer, path: Path, framing: Framing) -> bool:
    try:
        synchronizer.update_change(path, framing)
    except AnkiTexError as e:
        logger.error("%s", e)
        return False
    return True


def watch(
    synchronizer: Synchronizer,
    path: Path,
    framing: Framing,
    interval: float = 0.5,
    max_events: Optional[int] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    """Run until interrupted; returns the number of change events handled."""
    run_pass(synchronizer, path, framing)
    last = take_snapshot(path)
    events = 0
    logger.info("watching %s. You can exit with Ctrl+C", path)
    try:
        while max_events is None or events < max_events:
            sleep(interval)
            current = take_snapshot(path)
            if current == last:
                continue
            last = current
            events += 1
            if current is None:
                logger.error("%s was removed", path)
                continue
            run_pass(synchronizer, path, framing)
    except KeyboardInterrupt:
        pass
    logger.info("Exiting")
    return events
