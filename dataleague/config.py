"""Module for reading the config preferences.

   Preferences are primarily read from the corresponding system environment
   variables, then from an optional user override file, and from the
   shipped config.yml file as the final fallback.
   Note that the type of the config values is enforced by the YAML schema.
"""

from ast import literal_eval
import inspect
import os
from typing import Any, Optional

from strictyaml import (as_document, load, Bool, EmptyList, Int, Map,
                        Optional as OptionalKey, Seq, Str)


class PredicatedInt(Int):
    """StrictYAML Int validator, with optional predicates."""
    def __init__(self, predicates=None):
        self.predicates = predicates if predicates is not None else []

    def validate_scalar(self, chunk):
        val = super().validate_scalar(chunk)
        for pred in self.predicates:
            if not pred(val):
                chunk.expecting_but_found(str(inspect.getsourcelines(pred)[0]))
        return val


# The schema used for StrictYAML parsing.
YAML_CFG_SCHEMA = {
    "DLBOT_SERVER_HOST": Str(),
    "DLBOT_SERVER_PORT": PredicatedInt([lambda x: 0 < x < 65536]),
    "DLBOT_SERVER_SSL": Bool(),
    "DLBOT_SERVER_KEY": Str(),
    "DLBOT_ADMIN_CUSTOM_ID": Str(),
    "DLBOT_KEEPALIVE_SECS": PredicatedInt([lambda x: x > 0]),
    "DLBOT_CONNECT_TIMEOUT_SECS": PredicatedInt([lambda x: x > 0]),

    "DLBOT_SECRET_TOKEN": Str(),
    "DLBOT_CMD_PREFIX": Str(),
    "DLBOT_ADMIN_DISCORD_IDS": Seq(Str()) | EmptyList(),

    "DLBOT_LOG_LEVEL": Str(),
    "DLBOT_LOG_FILE": Str(),
    "DLBOT_DEBUG": Bool(),
}
CFG_PATH = os.path.join(os.path.dirname(os.path.realpath(__file__)),
                        "cfg", "config.yml")
assert os.path.isfile(CFG_PATH)
with open(file=CFG_PATH, mode="r", encoding="utf-8") as f_config:
    CFG = load(f_config.read(), Map(YAML_CFG_SCHEMA))
assert CFG is not None

# Values read from the user's override file, if any. Populated by
# load_overrides().
OVERRIDES: dict[str, Any] = {}


def default_override_path() -> Optional[str]:
    """Returns the path of the user override file to use when none is given
       explicitly, or None if there is no such file.
    """
    path = os.environ.get("DLBOT_CONFIG_FILE")
    if path:
        return path
    path = os.path.join(os.path.expanduser("~"), ".dataleague.yml")
    return path if os.path.isfile(path) else None


def load_overrides(path: Optional[str] = None) -> dict[str, Any]:
    """Reads the override file at path (or at the default location), and
       makes its values take precedence over the shipped config.yml.
       All keys of the override file are optional, but must match the types
       of the main schema.
    """
    if path is None:
        path = default_override_path()
    OVERRIDES.clear()
    if path is None:
        return OVERRIDES
    schema = Map({OptionalKey(k): v for k, v in YAML_CFG_SCHEMA.items()})
    with open(file=path, mode="r", encoding="utf-8") as f_override:
        OVERRIDES.update(load(f_override.read(), schema).data)
    return OVERRIDES


def cfg(key):
    """Returns a bot config value from environment variable, override file
       or config file, in that order. If using an env var, its format has to
       match the type determined by the config values' StrictYAML schema.
    """
    assert isinstance(key, str)
    if os.environ.get(key):
        expected_ret_type = YAML_CFG_SCHEMA[key]
        # Small placeholder schema used for validating just this type.
        # We don't want to use the main schema because then we'd need
        # to populate it entirely, even though we're only interested
        # in returning this particular var.
        mini_schema = {key: expected_ret_type}
        return as_document({key: literal_eval(os.environ.get(key))},
                           Map(mini_schema))[key].data
    if key in OVERRIDES:
        return OVERRIDES[key]
    return CFG[key].data
