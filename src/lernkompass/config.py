import json
import os

from dateutil import tz

DEFAULTS = {
    'timezone': 'Europe/Berlin',
    'db_path': os.path.join(os.path.expanduser('~'), '.lernkompass', 'lernkompass.db'),
    'max_import_bytes': 5 * 1024 * 1024,
    'log_level': 'INFO',
}


def _config_path():
    base = os.path.join(os.path.expanduser('~'), '.lernkompass')
    os.makedirs(base, exist_ok=True)
    return os.path.join(base, 'lernkompass_config.json')


def load_config():
    path = _config_path()
    if not os.path.exists(path):
        # sensible defaults
        return dict(DEFAULTS)
    try:
        with open(path, 'r', encoding='utf-8') as f:
            stored = json.load(f)
    except (OSError, ValueError):
        return dict(DEFAULTS)
    cfg = dict(DEFAULTS)
    if isinstance(stored, dict):
        cfg.update(stored)
    return cfg


def save_config(cfg: dict):
    path = _config_path()
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(cfg, f, ensure_ascii=False, indent=2)


def resolve_timezone(cfg: dict):
    """tzinfo aus cfg['timezone']; fehlende oder unbekannte Namen -> UTC."""
    name = cfg.get('timezone')
    if not name:
        return tz.UTC
    return tz.gettz(name) or tz.UTC
