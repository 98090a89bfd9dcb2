"""Tests for the tree logger's file output."""

from levelboard.core.logger import MiniTreeLogger


def test_info_writes_tree_to_daily_log(tmp_path):
    log = MiniTreeLogger(base_dir=tmp_path)
    log.info("Dashboard Started", [("Port", 3000), ("Enrichment", "Enabled")])

    text = log.log_file.read_text(encoding="utf-8")
    assert "Dashboard Started" in text
    assert "├─ Port: 3000" in text
    assert "└─ Enrichment: Enabled" in text
    assert log.log_file.parent.name == log.current_date


def test_error_tree_also_goes_to_error_log(tmp_path):
    log = MiniTreeLogger(base_dir=tmp_path)
    log.error_tree("Leaderboard API Error", ValueError("bad row"), [("Server ID", "g1")])

    errors = log.error_file.read_text(encoding="utf-8")
    assert "Leaderboard API Error" in errors
    assert "Type: ValueError" in errors
    assert "└─ Server ID: g1" in errors


def test_old_log_folders_are_removed(tmp_path):
    stale = tmp_path / "2000-01-01"
    stale.mkdir()
    unrelated = tmp_path / "archive"
    unrelated.mkdir()

    MiniTreeLogger(base_dir=tmp_path)

    assert not stale.exists()
    assert unrelated.exists()
