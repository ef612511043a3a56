import json

from dateutil import tz

from lernkompass import config


def test_defaults_when_missing(tmp_path, monkeypatch):
    monkeypatch.setenv('HOME', str(tmp_path))
    cfg = config.load_config()
    assert cfg['timezone'] == 'Europe/Berlin'
    assert cfg['max_import_bytes'] == 5 * 1024 * 1024


def test_save_and_merge(tmp_path, monkeypatch):
    monkeypatch.setenv('HOME', str(tmp_path))
    config.save_config({'timezone': 'America/New_York'})
    cfg = config.load_config()
    assert cfg['timezone'] == 'America/New_York'
    assert cfg['log_level'] == 'INFO'


def test_broken_file_falls_back(tmp_path, monkeypatch):
    monkeypatch.setenv('HOME', str(tmp_path))
    path = tmp_path / '.lernkompass' / 'lernkompass_config.json'
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text('{kaputt', encoding='utf-8')
    assert config.load_config()['timezone'] == 'Europe/Berlin'
    path.write_text(json.dumps(['keine', 'map']), encoding='utf-8')
    assert config.load_config()['timezone'] == 'Europe/Berlin'


def test_resolve_timezone():
    assert config.resolve_timezone({'timezone': 'Europe/Berlin'}) == tz.gettz('Europe/Berlin')
    assert config.resolve_timezone({'timezone': 'Nirgendwo/Stadt'}) == tz.UTC
    assert config.resolve_timezone({}) == tz.UTC
