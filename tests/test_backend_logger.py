import backend.logger as logger


def test_truncate_line_marks_truncated():
    out = logger.truncate_line("x" * 50, max_chars=10)
    assert "truncated" in out
    assert len(out) <= 50


def test_truncate_line_short_text_untouched():
    assert logger.truncate_line("abc", max_chars=10) == "abc"


def test_debug_ctx_noop_without_debug_mode(monkeypatch, capsys):
    monkeypatch.setattr(logger, "is_debug_mode", lambda: False)
    logger.debug_ctx("store", "hello")
    assert capsys.readouterr().out == ""


def test_debug_ctx_uses_progress_in_silent_debug(monkeypatch):
    seen: list[str] = []
    monkeypatch.setattr(logger, "is_debug_mode", lambda: True)
    monkeypatch.setattr(logger, "is_silent_mode", lambda: True)
    monkeypatch.setattr(logger, "progress", seen.append)

    logger.debug_ctx("resolver", "cache hit")

    assert seen == ["[RESOLVER][DEBUG] cache hit"]


def test_should_log_respects_silent(monkeypatch):
    monkeypatch.setattr(logger, "is_silent_mode", lambda: True)
    assert logger._should_log() is False
    assert logger._should_log(always=True) is True
