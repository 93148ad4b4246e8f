import os
import sys
from datetime import datetime
from typing import Any, Callable

from loguru import logger


def recursive_update(d1: dict, d2: dict) -> dict:
    """
    Recursively updates d1 with values from d2. Nested dictionaries present in both
    are merged, any other value in d2 replaces the value in d1.
    """
    for key, value in d2.items():
        if isinstance(value, dict) and key in d1 and isinstance(d1[key], dict):
            recursive_update(d1[key], value)
        else:
            d1[key] = value
    return d1


def dget(data: dict, *path: str, default: Any = None) -> Any:
    """Returns the first non-None value found along any of the given dot paths."""
    if path is None or not data:
        return default

    for p in path:
        value = dotget(data, p)
        if value is not None:
            return value

    return default


def dotexists(data: dict, *paths: str) -> bool:
    for path in paths:
        if dotget(data, path, default="@@") != "@@":
            return True
    return False


def dotexpand(paths: str | list[str]) -> list[str]:
    """Expands paths with ',' and ':'."""
    if not paths:
        return []
    if not isinstance(paths, (str, list)):
        raise ValueError("dot path must be a string or list of strings")
    paths = paths if isinstance(paths, list) else [paths]
    expanded_paths: list[str] = []
    for p in paths:
        for q in p.replace(" ", "").split(","):
            if not q:
                continue
            if ":" in q:
                expanded_paths.extend([q.replace(":", "."), q.replace(":", "_")])
            else:
                expanded_paths.append(q)
    return expanded_paths


def dotget(data: dict, path: str, default: Any = None) -> Any:
    """Gets element from dict. Path can be x.y.y or x_y_y or x:y:y.
    if path is x:y:y then element is searched using both x.y.y and x_y_y."""

    for key in dotexpand(path):
        d: Any = data
        for attr in key.split("."):
            d = d.get(attr) if isinstance(d, dict) else None
            if d is None:
                break
        if d is not None:
            return d
    return default


def dotset(data: dict, path: str, value: Any) -> dict:
    """Sets element in dict using dot notation x.y.z or x:y:z"""

    d: dict = data
    attrs: list[str] = path.replace(":", ".").split(".")
    for attr in attrs[:-1]:
        if not attr:
            continue
        d = d.setdefault(attr, {})
    d[attrs[-1]] = value

    return data


def env2dict(prefix: str, data: dict[str, Any] | None = None, lower_key: bool = True) -> dict[str, Any]:
    """Loads environment variables starting with `prefix` into `data`.

    PROMPT_CLIENT_ENDPOINT_TOKEN=abc with prefix PROMPT_CLIENT ends up as data["endpoint"]["token"].
    """
    if data is None:
        data = {}
    if not prefix:
        return data
    if lower_key:
        prefix = prefix.lower()
    for key, value in os.environ.items():
        if lower_key:
            key = key.lower()
        if key.startswith(prefix + "_"):
            dotset(data, key[len(prefix) + 1 :].replace("_", ":"), value)
    return data


def replace_env_vars(data: dict[str, Any] | list[Any] | str) -> dict[str, Any] | list[Any] | str:
    """Recursively replaces string values of the form ${ENV_VAR} with os.getenv("ENV_VAR", "")"""
    if isinstance(data, dict):
        return {k: replace_env_vars(v) for k, v in data.items()}
    if isinstance(data, list):
        return [replace_env_vars(i) for i in data]
    if isinstance(data, str) and data.startswith("${") and data.endswith("}"):
        return os.getenv(data[2:-1], "")
    return data


def truncate(text: str | None, length: int = 500) -> str:
    if not text:
        return ""
    return text if len(text) <= length else f"{text[:length]}..."


def configure_logging(opts: dict[str, Any] | None = None) -> None:

    logger.remove()
    logger.add(
        sys.stdout,
        level=(opts or {}).get("level", "INFO"),
        format="{time:YYYY-MM-DD HH:mm:ss} | {level} | {message}",
    )
    if not opts:
        return

    if opts.get("handlers"):

        handlers: list[dict[str, Any]] = []
        for handler in opts["handlers"]:

            if not handler.get("sink"):
                continue

            handler = dict(handler)

            if handler["sink"] == "sys.stdout":
                handler["sink"] = sys.stdout

            elif handler["sink"] == "sys.stderr":
                handler["sink"] = sys.stderr

            elif isinstance(handler["sink"], str) and handler["sink"].endswith(".log"):
                handler["sink"] = os.path.join(
                    opts.get("folder", "logs"),
                    f"{datetime.now().strftime('%Y%m%d')}_{handler['sink']}",
                )

            handlers.append(handler)

        logger.configure(handlers=handlers)


def _ensure_key_property(cls):
    if not hasattr(cls, "key"):

        def key(self) -> str:
            return getattr(self, "_registry_key", "unknown")

        cls.key = property(key)
    return cls


class Registry:
    items: dict = {}

    @classmethod
    def get(cls, key: str) -> Any | None:
        if key not in cls.items:
            raise KeyError(f"{key} is not registered in {cls.__name__}")
        return cls.items.get(key)

    @classmethod
    def register(cls, **args) -> Callable[..., Any]:
        def decorator(fn_or_class):
            key: str = args.get("key") or fn_or_class.__name__
            if args.get("type") == "function":
                fn_or_class = fn_or_class()
            else:
                setattr(fn_or_class, "_registry_key", key)
                fn_or_class = _ensure_key_property(fn_or_class)

            cls.items[key] = fn_or_class
            return fn_or_class

        return decorator

    @classmethod
    def is_registered(cls, key: str) -> bool:
        return key in cls.items
