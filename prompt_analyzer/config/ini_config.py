########## ini_config.py

import os
from configparser import ConfigParser
from dataclasses import dataclass
from pathlib import Path

INI_DEFAULT_NAME = "PromptAnalyzer.ini"

MATCHING_MODES = {"literal", "pattern"}


@dataclass(frozen=True)
class AppSettings:
    exports_base: Path

    # Provider (fixed per app, not per call)
    model: str
    max_output_tokens: int
    temperature: float
    api_key_env: str
    provider_timeout_seconds: int

    # Scheduler
    inter_call_delay_ms: int
    max_prompts: int
    max_batch_rows: int

    matching_mode: str

    flask_host: str
    flask_port: int
    flask_debug: bool

    log_level: str

    @property
    def inter_call_delay_seconds(self) -> float:
        return self.inter_call_delay_ms / 1000.0


class IniConfig:
    """
    Adapter around ConfigParser and filesystem resolution.
    Keeps INI handling out of your app/service code.
    """

    def __init__(self, ini_path: Path):
        self._ini_path = ini_path
        self._cfg = ConfigParser()
        read_ok = self._cfg.read(str(ini_path), encoding="utf-8-sig")
        if not read_ok:
            raise FileNotFoundError(f"INI file not found or unreadable: {ini_path}")

    @property
    def ini_path(self) -> Path:
        return self._ini_path

    @staticmethod
    def from_env_or_default() -> "IniConfig":
        ini_raw = (os.getenv("APP_INI") or "").strip()
        # If APP_INI is not set, default to repo-root-relative ini location
        ini_path = Path(ini_raw) if ini_raw else (Path(__file__).resolve().parents[2] / INI_DEFAULT_NAME)
        return IniConfig(ini_path)

    def _cfg_path(self, section: str, key: str, default: str = "") -> Path:
        """
        Reads a filesystem path from INI and resolves it.
        Tries [paths] and [path] interchangeably for convenience.
        Relative paths are taken relative to the INI file.
        """
        sections_to_try = [section]
        if section == "paths":
            sections_to_try.append("path")
        if section == "path":
            sections_to_try.append("paths")

        raw = ""
        for sec in sections_to_try:
            if not self._cfg.has_section(sec):
                continue
            raw = (self._cfg.get(sec, key, fallback="") or "").strip()
            if raw:
                break

        raw = raw or default
        if not raw:
            raise FileNotFoundError(f"Missing INI value for {key} in sections: {sections_to_try}")

        p = Path(os.path.expandvars(os.path.expanduser(raw)))
        if not p.is_absolute():
            p = self._ini_path.resolve().parent / p
        return p.resolve()

    def _positive_int(self, section: str, key: str, fallback: int, *, allow_zero: bool = False) -> int:
        value = self._cfg.getint(section, key, fallback=fallback)
        if value < 0 or (value == 0 and not allow_zero):
            raise ValueError(f"[{section}] {key} must be {'>= 0' if allow_zero else '> 0'}, got {value}")
        return value

    def load_settings(self) -> AppSettings:
        exports_base = self._cfg_path("paths", "exports_base", default="exports")

        # Provider
        model = (self._cfg.get("provider", "model", fallback="gpt-4o-mini") or "").strip() or "gpt-4o-mini"
        max_output_tokens = self._positive_int("provider", "max_output_tokens", 500)
        temperature = self._cfg.getfloat("provider", "temperature", fallback=0.7)
        api_key_env = (self._cfg.get("provider", "api_key_env", fallback="OPENAI_API_KEY") or "").strip() or "OPENAI_API_KEY"
        provider_timeout_seconds = self._positive_int("provider", "timeout_seconds", 60)

        # Scheduler
        inter_call_delay_ms = self._positive_int("scheduler", "inter_call_delay_ms", 1000, allow_zero=True)
        max_prompts = self._positive_int("scheduler", "max_prompts", 10)
        max_batch_rows = self._positive_int("scheduler", "max_batch_rows", 50)

        # Matching
        matching_mode = (self._cfg.get("matching", "mode", fallback="literal") or "").strip().lower() or "literal"

        # Flask
        flask_host = (self._cfg.get("flask", "host", fallback="127.0.0.1") or "").strip() or "127.0.0.1"
        flask_port = self._cfg.getint("flask", "port", fallback=5000)
        flask_debug = self._cfg.getboolean("flask", "debug", fallback=False)

        log_level = (self._cfg.get("logging", "level", fallback="INFO") or "").strip().upper() or "INFO"

        # Validate
        if not 0.0 < temperature <= 2.0:
            raise ValueError(f"[provider] temperature must be > 0 and <= 2, got {temperature}")
        if matching_mode not in MATCHING_MODES:
            raise ValueError(f"[matching] mode must be one of {sorted(MATCHING_MODES)}, got {matching_mode!r}")

        exports_base.mkdir(parents=True, exist_ok=True)

        return AppSettings(
            exports_base=exports_base,
            model=model,
            max_output_tokens=max_output_tokens,
            temperature=temperature,
            api_key_env=api_key_env,
            provider_timeout_seconds=provider_timeout_seconds,
            inter_call_delay_ms=inter_call_delay_ms,
            max_prompts=max_prompts,
            max_batch_rows=max_batch_rows,
            matching_mode=matching_mode,
            flask_host=flask_host,
            flask_port=flask_port,
            flask_debug=flask_debug,
            log_level=log_level,
        )
