import json
import logging

from core.settings_manager import DEFAULT_SETTINGS, CertificateSettings, load_settings


def test_defaults_when_file_missing(tmp_path):
    settings = load_settings(tmp_path / "missing.json")

    assert settings.to_dict() == DEFAULT_SETTINGS
    assert settings.pacing_delay == 0.8
    assert settings.background_timeout == 3.0
    assert settings.name_min_font_size == 16


def test_file_values_override_defaults(tmp_path, caplog):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({
        "event_label": "City-10K-2026",
        "name_max_font_size": "40",
        "pacing_delay": "soon",
        "theme": "dark",
    }), encoding="utf-8")

    with caplog.at_level(logging.WARNING, logger="core.settings_manager"):
        settings = load_settings(path)

    assert settings.event_label == "City-10K-2026"
    assert settings.name_max_font_size == 40
    assert settings.pacing_delay == 0.8
    assert "Ignoring unknown setting 'theme'" in caplog.text
    assert "Invalid value 'soon'" in caplog.text


def test_non_object_file_is_ignored(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text("[1, 2, 3]", encoding="utf-8")

    assert load_settings(path).to_dict() == DEFAULT_SETTINGS


def test_unreadable_file_is_ignored(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text("{broken", encoding="utf-8")

    assert load_settings(path).to_dict() == DEFAULT_SETTINGS


def test_environment_overrides(tmp_path, monkeypatch):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"event_label": "From-File"}), encoding="utf-8")
    monkeypatch.setenv("CERT_EVENT_LABEL", "From-Env")
    monkeypatch.setenv("CERT_PACING_DELAY", "0.25")
    monkeypatch.setenv("CERT_PARTICIPANTS_SOURCE", "https://example.com/p.json")

    settings = load_settings(path)

    assert settings.event_label == "From-Env"
    assert settings.pacing_delay == 0.25
    assert settings.participants_source == "https://example.com/p.json"


def test_font_step_and_sizes_are_clamped(tmp_path, caplog):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({
        "name_font_step": 0,
        "name_max_font_size": 30,
        "name_min_font_size": 40,
    }), encoding="utf-8")

    with caplog.at_level(logging.WARNING, logger="core.settings_manager"):
        settings = load_settings(path)

    assert settings.name_font_step == 1
    assert settings.name_max_font_size == 30
    assert settings.name_min_font_size == 30
    assert "name_font_step=0 is out of range" in caplog.text


def test_negative_font_values_are_clamped():
    settings = CertificateSettings.from_mapping({
        "name_font_step": -2,
        "name_max_font_size": -5,
        "name_min_font_size": -1,
    })

    assert settings.name_font_step == 1
    assert settings.name_max_font_size == 1
    assert settings.name_min_font_size == 1
