"""
Builder settings: defaults, an optional YAML file, then command-line overrides.

Example packager.yaml:

  item_bank_url: https://itembank.smarterbalanced.org
  namespace: itemreviewapp
  bank_key: 200
  attachment_db: "host=imrt-db dbname=imrt user=reader"
  audio_encode_path: /opt/packager/audio-encode.sh
  rename_audio: true
"""

from __future__ import annotations

import json
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from jsonschema import Draft202012Validator

from packager.common import load_yaml

SCHEMA_PATH = Path(__file__).resolve().parent / "schemas" / "config.schema.json"

DEFAULT_ITEM_BANK = "https://itembank.smarterbalanced.org"
DEFAULT_NAMESPACE = "itemreviewapp"
DEFAULT_BANK_KEY = 200


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class Settings:
    item_bank_url: str = DEFAULT_ITEM_BANK
    namespace: str = DEFAULT_NAMESPACE
    bank_key: int = DEFAULT_BANK_KEY
    attachment_db: Optional[str] = None
    audio_encode_path: Optional[str] = None
    include_tutorials: bool = True
    include_import_zip: bool = False
    rename_audio: bool = False
    include_manifest: bool = True
    file_type: Optional[str] = None
    strict_identity: bool = False

    def merged(self, overrides: Dict[str, Any]) -> "Settings":
        """Return a copy with every non-None override applied."""
        known = {f.name for f in fields(self)}
        return replace(self, **{k: v for k, v in overrides.items() if k in known and v is not None})


def load_schema(path: Path = SCHEMA_PATH) -> dict:
    return json.loads(path.read_text(encoding="utf-8"))


def validate_config(data: Any, schema: Optional[dict] = None) -> None:
    validator = Draft202012Validator(schema or load_schema())
    errors = sorted(validator.iter_errors(data), key=lambda e: (list(e.path), e.message))
    if errors:
        msg = "\n".join(f"  - {'.'.join(str(p) for p in e.path) or '(root)'}: {e.message}" for e in errors)
        raise ConfigError(f"Invalid configuration:\n{msg}")


def load_settings(path: Optional[Path] = None) -> Settings:
    if path is None:
        return Settings()
    try:
        data = load_yaml(path)
    except FileNotFoundError as e:
        raise ConfigError(f"Config file not found: {path}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"YAML parse error in {path}: {e}") from e
    if data is None:
        data = {}
    validate_config(data)
    return Settings().merged(data)
