from __future__ import annotations

import argparse
import copy
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from platformdirs import user_cache_dir, user_config_dir

from subtwin.contracts import ProviderConfig, SessionTimings, Settings

LANGUAGE_CHOICES = ["auto", "en", "zh-CN", "zh-TW", "ja", "ko", "fr", "de", "es", "ru", "pt", "it", "ar", "hi", "th", "vi", "id"]

DEFAULTS: dict[str, Any] = {
    "enabled": True,
    "translator": "google",
    "api_key": "",
    "baidu_app_id": "",
    "api_endpoint": "",
    "ai_model": "",
    "source_lang": "auto",
    "target_lang": "zh-CN",
    "font_size": "1.8",
    "font_color": "#ffd700",
    "bg_opacity": "0.75",
    "prefetch_delay_sec": 0.3,
    "min_prefetch_chars": 8,
    "auto_hide_sec": 2.0,
    "error_clear_sec": 3.0,
    "cache_flush_sec": 1.0,
    "cache_max_entries": 5000,
    "request_timeout_sec": 10.0,
    "max_workers": 4,
    "print_console": True,
    "debug": False,
}
CONFIG_KEYS: tuple[str, ...] = tuple(DEFAULTS.keys())


@dataclass(frozen=True)
class AppPaths:
    config_dir: Path
    config_path: Path
    cache_path: Path


def app_paths() -> AppPaths:
    config_dir = Path(user_config_dir("SubTwin", "SubTwin"))
    cache_dir = Path(user_cache_dir("SubTwin", "SubTwin"))
    return AppPaths(
        config_dir=config_dir,
        config_path=config_dir / "config.json",
        cache_path=cache_dir / "translations.json",
    )


def _load_json_dict(path: Path) -> dict[str, Any]:
    # Accept UTF-8 with or without BOM for Windows-edited config files.
    with path.open("r", encoding="utf-8-sig") as f:
        loaded = json.load(f)
    if not isinstance(loaded, dict):
        raise ValueError(f"config must be a JSON object: {path}")
    return loaded


def _write_json_dict(path: Path, payload: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(payload, f, ensure_ascii=False, indent=2)
        f.write("\n")


def _known_only(payload: dict[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for key in CONFIG_KEYS:
        if key in payload:
            out[key] = payload[key]
    return out


def load_default_config() -> dict[str, Any]:
    return copy.deepcopy(DEFAULTS)


def load_user_config(config_path: str | None = None) -> tuple[dict[str, Any], Path]:
    defaults = load_default_config()
    if config_path:
        chosen = Path(config_path)
        if not chosen.exists():
            raise SystemExit(f"Config file not found: {chosen}")
    else:
        chosen = ensure_user_config_exists(defaults)
    merged = dict(defaults)
    merged.update(_known_only(_load_json_dict(chosen)))
    return merged, chosen


def save_user_config(values: dict[str, Any], config_path: str | None = None) -> Path:
    payload = _known_only(values)
    path = Path(config_path) if config_path else ensure_user_config_exists(load_default_config())
    existing = _known_only(_load_json_dict(path)) if path.exists() else {}
    merged = load_default_config()
    merged.update(existing)
    merged.update(payload)
    _write_json_dict(path, _known_only(merged))
    return path


def ensure_user_config_exists(defaults: dict[str, Any] | None = None) -> Path:
    paths = app_paths()
    if paths.config_path.exists():
        return paths.config_path
    _write_json_dict(paths.config_path, defaults or load_default_config())
    return paths.config_path


def resolve_defaults(config_path: str | None = None) -> tuple[dict[str, Any], Path]:
    return load_user_config(config_path=config_path)


def settings_from_config(values: Any) -> Settings:
    """Build a Settings snapshot from a config dict or argparse Namespace."""
    get = values.get if isinstance(values, dict) else (lambda k, d=None: getattr(values, k, d))
    return Settings(
        enabled=bool(get("enabled", True)),
        provider_id=str(get("translator", DEFAULTS["translator"]) or "").lower().strip(),
        source_lang=str(get("source_lang", DEFAULTS["source_lang"])),
        target_lang=str(get("target_lang", DEFAULTS["target_lang"])),
        provider_config=ProviderConfig(
            api_key=str(get("api_key", "") or ""),
            endpoint=str(get("api_endpoint", "") or ""),
            model=str(get("ai_model", "") or ""),
            app_id=str(get("baidu_app_id", "") or ""),
            timeout_sec=float(get("request_timeout_sec", DEFAULTS["request_timeout_sec"])),
        ),
        font_size=str(get("font_size", DEFAULTS["font_size"])),
        font_color=str(get("font_color", DEFAULTS["font_color"])),
        bg_opacity=str(get("bg_opacity", DEFAULTS["bg_opacity"])),
    )


def timings_from_config(values: Any) -> SessionTimings:
    get = values.get if isinstance(values, dict) else (lambda k, d=None: getattr(values, k, d))
    return SessionTimings(
        prefetch_delay_sec=max(0.0, float(get("prefetch_delay_sec", DEFAULTS["prefetch_delay_sec"]))),
        min_prefetch_chars=max(0, int(get("min_prefetch_chars", DEFAULTS["min_prefetch_chars"]))),
        auto_hide_sec=max(0.0, float(get("auto_hide_sec", DEFAULTS["auto_hide_sec"]))),
        error_clear_sec=max(0.0, float(get("error_clear_sec", DEFAULTS["error_clear_sec"]))),
        cache_flush_sec=max(0.0, float(get("cache_flush_sec", DEFAULTS["cache_flush_sec"]))),
    )


def parser_with_defaults(defaults: dict[str, Any]) -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="subtwin", description="Translate streaming captions as they settle.")
    p.add_argument("--config", default=None, help="JSON config path (CLI flags override config)")
    p.add_argument("--replay", default=None, help="caption observations to replay (JSON lines or text, - for stdin)")
    p.add_argument("--interval", type=float, default=0.5, help="seconds between plain-text replay lines")
    p.add_argument("--speed", type=float, default=1.0, help="1.0 = realtime, 2.0 = 2x faster")
    p.add_argument("--text", default=None, help="translate one caption and exit")
    p.add_argument("--list-providers", action="store_true", help="print translator ids and exit")
    p.add_argument("--no-cache-file", action="store_true", help="keep translations in memory only")
    p.add_argument(
        "--enabled",
        action=argparse.BooleanOptionalAction,
        default=defaults["enabled"],
        help="translate captions at all",
    )
    p.add_argument("--translator", default=defaults["translator"], help="translator id (see --list-providers)")
    p.add_argument("--api-key", default=defaults["api_key"], help="API key / secret for key-based providers")
    p.add_argument("--baidu-app-id", default=defaults["baidu_app_id"], help="Baidu App ID")
    p.add_argument("--api-endpoint", default=defaults["api_endpoint"], help="override provider endpoint URL")
    p.add_argument("--ai-model", default=defaults["ai_model"], help="chat model for AI providers")
    p.add_argument("--source-lang", default=defaults["source_lang"], choices=LANGUAGE_CHOICES, help="caption language")
    p.add_argument(
        "--target-lang",
        default=defaults["target_lang"],
        choices=[c for c in LANGUAGE_CHOICES if c != "auto"],
        help="translation language",
    )
    p.add_argument("--font-size", default=defaults["font_size"], help="overlay font size (em)")
    p.add_argument("--font-color", default=defaults["font_color"], help="overlay text color")
    p.add_argument("--bg-opacity", default=defaults["bg_opacity"], help="overlay background opacity (0-1)")
    p.add_argument(
        "--prefetch-delay-sec",
        type=float,
        default=defaults["prefetch_delay_sec"],
        help="quiet time before a growing caption is prefetched",
    )
    p.add_argument(
        "--min-prefetch-chars",
        type=int,
        default=defaults["min_prefetch_chars"],
        help="shorter captions are not prefetched",
    )
    p.add_argument("--auto-hide-sec", type=float, default=defaults["auto_hide_sec"], help="hide after captions clear")
    p.add_argument("--error-clear-sec", type=float, default=defaults["error_clear_sec"], help="error indicator lifetime")
    p.add_argument("--cache-flush-sec", type=float, default=defaults["cache_flush_sec"], help="cache write-back delay")
    p.add_argument(
        "--cache-max-entries",
        type=int,
        default=defaults["cache_max_entries"],
        help="translations kept in the cache file",
    )
    p.add_argument(
        "--request-timeout-sec",
        type=float,
        default=defaults["request_timeout_sec"],
        help="provider request timeout",
    )
    p.add_argument("--max-workers", type=int, default=defaults["max_workers"], help="concurrent provider calls")
    p.add_argument(
        "--print-console",
        action=argparse.BooleanOptionalAction,
        default=defaults["print_console"],
        help="print captions and translations to console",
    )
    p.add_argument("--debug", action="store_true", default=defaults["debug"], help="debug-level logging")
    return p


def resolve_args(argv: list[str] | None = None) -> argparse.Namespace:
    pre = argparse.ArgumentParser(add_help=False)
    pre.add_argument("--config", default=None)
    pre_args, _ = pre.parse_known_args(argv)
    defaults, _ = resolve_defaults(config_path=pre_args.config)
    parser = parser_with_defaults(defaults)
    return parser.parse_args(argv)
