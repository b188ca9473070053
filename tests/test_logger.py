import json
import threading
import time

from toadle_bot.utils import logger as toadle_logger


def test_prune_keeps_recent_and_unknown_lines(tmp_path):
    archive = tmp_path / "logs.jsonl"
    now = int(time.time())
    lines = [
        json.dumps({"type": "transaction", "ts": now - 40 * 86400}),
        json.dumps({"type": "transaction", "ts": now}),
        "not json at all",
    ]
    archive.write_text("\n".join(lines) + "\n", encoding="utf-8")

    kept = toadle_logger.prune_jsonl_archive(30, archive)
    assert kept == 2
    remaining = archive.read_text(encoding="utf-8").splitlines()
    assert remaining[0] == lines[1]
    assert remaining[1] == "not json at all"


def test_prune_missing_archive(tmp_path):
    assert toadle_logger.prune_jsonl_archive(30, tmp_path / "absent.jsonl") == 0


def test_enqueue_outside_loop_is_dropped():
    # no running loop: nothing is queued and nothing raises
    toadle_logger.enqueue_log({"type": "noop"})
    toadle_logger.log_transaction("earn", "1", 5, guild_id="g")


def test_get_logger_attaches_one_handler():
    log = toadle_logger.get_logger("toadle.test-handlers")
    again = toadle_logger.get_logger("toadle.test-handlers")
    assert log is again
    assert len(log.handlers) == 1
    assert log.propagate is False


def test_append_during_prune_is_kept(tmp_path, monkeypatch):
    archive = tmp_path / "logs.jsonl"
    now = int(time.time())
    archive.write_text(json.dumps({"ts": now - 40 * 86400}) + "\n" + json.dumps({"ts": now}) + "\n", encoding="utf-8")
    late = json.dumps({"type": "transaction", "ts": now, "kind": "late"})

    real_keep = toadle_logger._keep_line
    writer = threading.Thread(target=toadle_logger.append_archive_line, args=(late, archive))

    def keep_and_append(line, cutoff):
        # the writer fires while pruning is between read and replace
        if not writer.is_alive() and writer.ident is None:
            writer.start()
            writer.join(0.2)
        return real_keep(line, cutoff)

    monkeypatch.setattr(toadle_logger, "_keep_line", keep_and_append)
    toadle_logger.prune_jsonl_archive(30, archive)
    writer.join(2)

    remaining = archive.read_text(encoding="utf-8").splitlines()
    assert remaining == [json.dumps({"ts": now}), late]
