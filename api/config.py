"""
Configuration loading for the FastAPI API server.

"""

import os
import json
import logging
import shutil
import secrets

# --- CONFIG & JWT SECRET (single parse of album_config.json) ---
_CONFIG_PATH = os.environ.get(
    'ALBUM_CONFIG',
    os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'album_config.json'),
)


def _load_and_ensure_jwt_secret():
    """Load album_config.json once, ensure jwt_secret exists. Returns (config_dict, secret)."""
    try:
        with open(_CONFIG_PATH) as f:
            config = json.load(f)
    except FileNotFoundError:
        config = None
    except json.JSONDecodeError as e:
        logging.warning(f"Ignoring unreadable config {_CONFIG_PATH}: {e}")
        config = None

    if config is None:
        # No config file: secret lives for this process only
        return {}, secrets.token_hex(32)

    if not config.get('jwt_secret'):
        config['jwt_secret'] = secrets.token_hex(32)
        shutil.copy2(_CONFIG_PATH, f"{_CONFIG_PATH}.backup")
        with open(_CONFIG_PATH, 'w') as f:
            json.dump(config, f, indent=2)
    return config, config['jwt_secret']


_FULL_CONFIG, _jwt_secret = _load_and_ensure_jwt_secret()

JWT_SECRET = _jwt_secret
JWT_ALGORITHM = "HS256"
JWT_EXPIRY_HOURS = 48  # 2 days


# --- ALBUM CONFIG ---
def load_album_config(config=None):
    """Load album settings, merging defaults with config."""
    defaults = {
        'feed': {'page_size': 10, 'max_page_size': 100},
        'faces': {
            'padding_px': 25,
            'image_format': 'WEBP',
            'image_quality': 80,
            'detector': {'min_face_size': 20, 'scale_factor': 1.1, 'min_neighbors': 5},
        },
        'storage': {'album_dir': 'album'},
        'cors_origins': ['http://localhost:3000', 'http://localhost:8000'],
    }
    if config is None:
        try:
            with open(_CONFIG_PATH) as f:
                config = json.load(f)
        except (FileNotFoundError, json.JSONDecodeError):
            config = {}
    album = config.get('album', {})
    for key, value in defaults.items():
        if key not in album:
            album[key] = value
        elif isinstance(value, dict):
            for k, v in value.items():
                if k not in album[key]:
                    album[key][k] = v
    return album


ALBUM_CONFIG = load_album_config(_FULL_CONFIG)


def get_album_dir():
    """Directory uploaded files are written to (ALBUM_DIR env overrides config)."""
    return os.environ.get('ALBUM_DIR', ALBUM_CONFIG['storage']['album_dir'])
