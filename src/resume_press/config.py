"""Engine configuration and option merging.

``EngineConfig`` is built once at startup and passed explicitly to the
process manager and converter; nothing mutates it while requests run.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, fields
from typing import Any, Mapping, Optional

from resume_press.exceptions import RequestError

logger = logging.getLogger(__name__)

ENV_PREFIX = "RESUME_PRESS_"

# ── Defaults ─────────────────────────────────────────────────────────

# A4 at 96 DPI
A4_WIDTH_PX = 794
A4_HEIGHT_PX = 1123

DEFAULT_MARGINS = {
    "top": "0mm",
    "right": "0mm",
    "bottom": "0mm",
    "left": "0mm",
}

DEFAULT_PRINT_OPTIONS = {
    "format": "a4",
    "printBackground": True,
    "preferCSSPageSize": True,
    "margin": DEFAULT_MARGINS,
    "scale": 1,
}

DEFAULT_VIEWPORT = {
    "width": A4_WIDTH_PX,
    "height": A4_HEIGHT_PX,
    "deviceScaleFactor": 1.5,
}


def merge_options(
    default: Mapping[str, Any],
    override: Optional[Mapping[str, Any]] = None,
) -> dict:
    """Merge caller overrides onto defaults, one top-level key at a time.

    A key present in ``override`` replaces the default value wholesale,
    nested mappings included (``margin`` is never merged field by field).
    Neither argument is mutated.
    """
    if not isinstance(default, Mapping):
        raise RequestError(f"Default options must be a mapping, got {type(default).__name__}")
    if override is None:
        return dict(default)
    if not isinstance(override, Mapping):
        raise RequestError(f"Options must be an object, got {type(override).__name__}")
    merged = dict(default)
    merged.update(override)
    return merged


# ── Engine configuration ─────────────────────────────────────────────


@dataclass(frozen=True)
class EngineConfig:
    """Process-wide, read-only settings for launching and driving Chromium."""

    # Launch retries
    max_launch_attempts: int = 3
    busy_backoff: float = 1.0       # seconds, multiplied by the attempt number
    retry_backoff: float = 0.5      # seconds, for non-busy failures

    # Chromium flags
    no_sandbox: bool = True
    disable_setuid_sandbox: bool = True
    disable_gpu: bool = True
    disable_dev_shm_usage: bool = True
    single_process: bool = False
    font_render_hinting: str = "none"
    extra_args: tuple[str, ...] = field(default_factory=tuple)
    headless: bool = True
    executable_path: Optional[str] = None

    # Viewport
    viewport_width: int = A4_WIDTH_PX
    viewport_height: int = A4_HEIGHT_PX
    device_scale_factor: float = 1.5

    # Per-stage ceilings, in seconds
    launch_timeout: float = 30.0
    load_timeout: float = 30.0
    font_timeout: float = 5.0
    export_timeout: float = 60.0
    close_timeout: float = 10.0

    def __post_init__(self) -> None:
        if self.max_launch_attempts < 1:
            raise ValueError("max_launch_attempts must be at least 1")
        for name in ("launch_timeout", "load_timeout", "font_timeout", "export_timeout",
                     "close_timeout"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")

    def launch_args(self) -> list[str]:
        """Build the Chromium command-line flags for this configuration."""
        args = []
        if self.no_sandbox:
            args.append("--no-sandbox")
        if self.disable_setuid_sandbox:
            args.append("--disable-setuid-sandbox")
        if self.disable_dev_shm_usage:
            args.append("--disable-dev-shm-usage")
        if self.disable_gpu:
            args.append("--disable-gpu")
        if self.single_process:
            args.extend(["--single-process", "--no-zygote"])
        if self.font_render_hinting:
            args.append(f"--font-render-hinting={self.font_render_hinting}")
        args.extend(["--disable-extensions", "--disable-sync", "--no-first-run"])
        args.extend(self.extra_args)
        return args

    def default_viewport(self) -> dict:
        return {
            "width": self.viewport_width,
            "height": self.viewport_height,
            "deviceScaleFactor": self.device_scale_factor,
        }

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "EngineConfig":
        """Build a config from ``RESUME_PRESS_*`` variables (and ``.env``).

        Unset variables keep the dataclass defaults.
        """
        if environ is None:
            from dotenv import load_dotenv

            load_dotenv()
            environ = os.environ

        kwargs: dict[str, Any] = {}
        for f in fields(cls):
            if f.name == "extra_args":
                continue
            raw = environ.get(ENV_PREFIX + f.name.upper())
            if raw is None or raw == "":
                continue
            kwargs[f.name] = _coerce(f.name, f.type, raw)

        extra = environ.get(ENV_PREFIX + "EXTRA_ARGS")
        if extra:
            kwargs["extra_args"] = tuple(extra.split())

        logger.debug("Engine config overrides from environment: %s", sorted(kwargs))
        return cls(**kwargs)


def _coerce(name: str, annotation: str, raw: str) -> Any:
    """Convert an environment string to the field's declared type."""
    var = ENV_PREFIX + name.upper()
    if annotation == "bool":
        return raw.strip().lower() in ("1", "true", "yes", "on")
    try:
        if annotation == "int":
            return int(raw)
        if annotation == "float":
            return float(raw)
    except ValueError as exc:
        raise RequestError(f"{var} must be a number, got {raw!r}") from exc
    return raw
