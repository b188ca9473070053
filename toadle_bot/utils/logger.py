"""Logging utilities for Toadle.

Configures standard library loggers and provides an async queue writer that
appends structured event dicts (transactions, referral claims, moderation
actions) to a JSONL archive without blocking the event loop.
"""
import logging
import asyncio
import json
import threading
import time
from pathlib import Path
from typing import Optional, Dict, Any

_queue: Optional[asyncio.Queue] = None
_queue_loop: Optional[asyncio.AbstractEventLoop] = None
_level: int = logging.INFO
ARCHIVE_PATH: Path = Path.cwd() / "data" / "logs.jsonl"
# held by the writer and by pruning so an append never lands in a file about to be replaced
_archive_lock = threading.Lock()


def configure(data_dir: Optional[Path] = None, level: str = "INFO") -> None:
    """Set the archive location and default level used by `get_logger`."""
    global ARCHIVE_PATH, _level
    if data_dir is not None:
        ARCHIVE_PATH = Path(data_dir) / "logs.jsonl"
    _level = getattr(logging, str(level).upper(), logging.INFO)
    logging.getLogger("toadle").setLevel(_level)


def get_logger(name: str = "toadle") -> logging.Logger:
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        fmt = logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        handler.setFormatter(fmt)
        logger.addHandler(handler)
        logger.setLevel(_level)
        # Bot.run installs a root handler; avoid printing every record twice
        logger.propagate = False
    return logger


def start_background_writer(loop: Optional[asyncio.AbstractEventLoop] = None) -> asyncio.Queue:
    """Start the queue and writer coroutine for archive writes.

    Returns the queue instance where callers can put dicts to be written
    asynchronously.
    """
    global _queue, _queue_loop
    if loop is None:
        loop = asyncio.get_running_loop()
    # a queue is bound to the loop its writer runs on
    if _queue is not None and _queue_loop is loop:
        return _queue

    _queue = asyncio.Queue()
    _queue_loop = loop
    queue = _queue

    async def _writer():
        logger = logging.getLogger("toadle.log_writer")
        while True:
            item = await queue.get()
            try:
                if isinstance(item, dict) and "ts" not in item:
                    item["ts"] = int(time.time())
                await asyncio.to_thread(append_archive_line, json.dumps(item, default=str, ensure_ascii=False))
            except Exception:
                logger.exception("Failed to append to log archive")
            finally:
                queue.task_done()

    loop.create_task(_writer())
    return _queue


def append_archive_line(line: str, archive_path: Optional[Path] = None) -> None:
    path = archive_path or ARCHIVE_PATH
    with _archive_lock:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("a", encoding="utf-8") as f:
            f.write(line + "\n")


def stop_background_writer() -> None:
    """Forget the current queue so a new event loop can start its own writer."""
    global _queue, _queue_loop
    _queue = None
    _queue_loop = None


def enqueue_log(item: object) -> None:
    """Enqueue a log item for asynchronous writing.

    Lazily starts the background writer. Outside a running loop (tests,
    shutdown) the item is dropped.
    """
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        return
    start_background_writer(loop).put_nowait(item)


def log_transaction(kind: str, user_id: str, amount: int, **details: Any) -> None:
    """Log a balance-affecting event and archive a structured copy."""
    logging.getLogger("toadle.transactions").info("%s user=%s amount=%s %s", kind, user_id, amount, details or "")
    record: Dict[str, Any] = {"type": "transaction", "kind": kind, "user_id": user_id, "amount": amount}
    record.update(details)
    enqueue_log(record)


def prune_jsonl_archive(days: int = 30, archive_path: Optional[Path] = None) -> int:
    """Prune entries older than `days` from the JSONL archive.

    Returns the number of kept entries. Synchronous; run it in a thread.
    Holds the archive lock for the whole rewrite, so the writer waits.
    """
    if archive_path is None:
        archive_path = ARCHIVE_PATH
    cutoff = int(time.time()) - int(days) * 24 * 60 * 60
    with _archive_lock:
        if not archive_path.exists():
            return 0
        with archive_path.open("r", encoding="utf-8") as f:
            kept = [line for line in f if _keep_line(line, cutoff)]
        tmp = archive_path.with_suffix(".tmp")
        with tmp.open("w", encoding="utf-8") as out:
            out.writelines(kept)
        tmp.replace(archive_path)
    return len(kept)


def _keep_line(line: str, cutoff: int) -> bool:
    try:
        obj = json.loads(line)
        ts = int(obj.get("ts") or 0)
    except (ValueError, TypeError, AttributeError):
        # preserve unknown-format lines
        return True
    return ts >= cutoff
