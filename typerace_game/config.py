import json
import os
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

REPO_ROOT = Path(__file__).resolve().parents[1]
CONFIG_FILE_PATH = os.getenv('TYPERACE_CONFIG_PATH', str(REPO_ROOT / 'configs' / 'race_balance.json'))

def load_config(path=None):
    """
    Loads the race balance config file.
    Returns None when the file is missing or unreadable so callers fall back to defaults.
    """
    path = path or CONFIG_FILE_PATH
    try:
        with open(path, 'r') as f:
            config = json.load(f)
        return config
    except FileNotFoundError:
        print(f"[Config] Warning: Could not find config file at {path}; using built-in defaults.")
        return None
    except (OSError, ValueError) as e:
        print(f"[Config] Warning: Could not parse config file {path}: {e}")
        return None

# Load the config ONCE when the module is first imported
BALANCE_CONFIG = load_config()

def get_config(key_path, default=None):
    """
    Safely gets a value from the loaded config using a 'dot.path'.
    Example: get_config('lifecycle.grace_period_ms')
    """
    if not BALANCE_CONFIG:
        return default

    try:
        keys = key_path.split('.')
        value = BALANCE_CONFIG
        for key in keys:
            value = value[key]
        return value
    except (KeyError, TypeError):
        return default
