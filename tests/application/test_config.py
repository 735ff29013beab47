from pathlib import Path

import pytest

from vocabloop.application.config import AppConfig, config_file_path, resolve_config
from vocabloop.domain.exceptions import InvalidSessionConfig
from vocabloop.domain.models import SessionMode


def test_defaults(mock_home):
    config = resolve_config()
    assert config.deck_path is None
    assert config.session_mode == "smart"
    assert config.target_cards == 20
    assert config.enable_confidence_recovery is True
    assert config.log_dir == mock_home / ".config/vocabloop/logs"


def test_config_file_path(mock_home):
    assert config_file_path() == mock_home / ".config/vocabloop/config.toml"


def test_env_overrides(mock_home, monkeypatch):
    monkeypatch.setenv("VOCABLOOP_TARGET_CARDS", "35")
    monkeypatch.setenv("VOCABLOOP_WEAK_THRESHOLD", "60")
    monkeypatch.setenv("VOCABLOOP_ENABLE_CONFIDENCE_RECOVERY", "false")

    config = resolve_config()

    assert config.target_cards == 35
    assert config.weak_threshold == 60
    assert config.enable_confidence_recovery is False


def test_toml_file_is_lowest_priority(mock_home, monkeypatch):
    config_dir = mock_home / ".config/vocabloop"
    config_dir.mkdir(parents=True)
    (config_dir / "config.toml").write_text(
        'session_mode = "due-only"\ntarget_cards = 12\nweight_new = 0.5\n'
    )
    monkeypatch.setenv("VOCABLOOP_TARGET_CARDS", "15")

    config = resolve_config({"weight_new": None})

    assert config.session_mode == "due-only"
    assert config.target_cards == 15
    assert config.weight_new == 0.5


def test_cli_overrides_win(mock_home, monkeypatch, tmp_path):
    monkeypatch.setenv("VOCABLOOP_TARGET_CARDS", "15")
    deck = tmp_path / "deck.yaml"

    config = resolve_config({"target_cards": 5, "deck_path": str(deck)})

    assert config.target_cards == 5
    assert config.deck_path == deck.resolve()


def test_deck_path_expands_user(mock_home):
    config = AppConfig(deck_path="~/decks/es.yaml")
    assert config.deck_path == Path(mock_home / "decks/es.yaml").resolve()


def test_tag_thresholds(mock_home):
    thresholds = AppConfig(weak_threshold=50, strong_min_cards=4).tag_thresholds()
    assert thresholds.weak_threshold == 50
    assert thresholds.weak_min_cards == 5
    assert thresholds.strong_min_cards == 4


def test_session_config_uses_defaults(mock_home):
    config = AppConfig(target_cards=8, weight_due=1, weight_weak_tag=1, weight_new=0)
    session = config.session_config()

    assert session.mode is SessionMode.SMART
    assert session.target_cards == 8
    assert session.weights.new == 0
    assert session.enable_confidence_recovery is True


def test_session_config_overrides(mock_home):
    session = AppConfig().session_config(
        mode="tag-focus", target_cards=3, tag_focus="verbs", enable_confidence_recovery=False
    )
    assert session.mode is SessionMode.TAG_FOCUS
    assert session.tag_focus == "verbs"
    assert session.target_cards == 3
    assert session.enable_confidence_recovery is False


def test_session_config_rejects_tag_focus_without_tag(mock_home):
    with pytest.raises(InvalidSessionConfig):
        AppConfig().session_config(mode="tag-focus")
