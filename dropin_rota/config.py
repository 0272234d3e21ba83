from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from rota_core.criteria import Criterion, build_criteria
from rota_core.fairness import validate_target_frequency
from rota_core.scheduler import TieBreak
from rota_core.shifts import ShiftOverride

DEFAULT_PROFILE = "default"


@dataclass(frozen=True)
class RuntimeConfig:
    input_dir: Path | None
    profile_file: Path | None
    log_level: str
    http_host: str = "127.0.0.1"
    http_port: int | None = None
    api_key: str | None = None


@dataclass(frozen=True)
class RotaProfile:
    name: str = DEFAULT_PROFILE
    description: str = ""
    default_shift_size: int = 5
    target_frequency: float = 0.5
    max_allocation_frequency: int = 1
    tie_break: TieBreak = TieBreak.LARGEST_FIRST
    criteria: tuple[Criterion, ...] = ()
    overrides: tuple[ShiftOverride, ...] = ()

    @classmethod
    def from_dict(cls, name: str, raw: dict[str, Any]) -> "RotaProfile":
        size = int(raw.get("default_shift_size", 5))
        if size < 0:
            raise ValueError(f"Profile '{name}': default_shift_size must be non-negative, got {size}")
        cap = int(raw.get("max_allocation_frequency", 1))
        if cap < 0:
            raise ValueError(f"Profile '{name}': max_allocation_frequency must be non-negative, got {cap}")
        try:
            frequency = validate_target_frequency(raw.get("target_frequency", 0.5))
        except ValueError as exc:
            raise ValueError(f"Profile '{name}': {exc}") from exc
        return cls(
            name=name,
            description=str(raw.get("description", "")),
            default_shift_size=size,
            target_frequency=frequency,
            max_allocation_frequency=cap,
            tie_break=TieBreak.parse(raw.get("tie_break")),
            criteria=tuple(build_criteria(raw.get("criteria"))),
            overrides=tuple(ShiftOverride.from_dict(o) for o in raw.get("overrides", [])),
        )

    def summary(self) -> dict[str, Any]:
        return {
            "description": self.description,
            "default_shift_size": self.default_shift_size,
            "target_frequency": self.target_frequency,
            "max_allocation_frequency": self.max_allocation_frequency,
            "tie_break": self.tie_break.value,
            "criteria": [c.name for c in self.criteria],
            "override_count": len(self.overrides),
        }


def load_env(dotenv_path: str | Path | None = None) -> None:
    path = Path(dotenv_path) if dotenv_path else None
    if path and path.exists():
        load_dotenv(path)
        return
    load_dotenv()


def runtime_config() -> RuntimeConfig:
    input_dir = os.getenv("DROPIN_ROTA_INPUT_DIR", "").strip()
    profile_file = os.getenv("DROPIN_ROTA_PROFILE_FILE", "").strip()
    port = os.getenv("DROPIN_ROTA_PORT", "").strip()
    return RuntimeConfig(
        input_dir=Path(input_dir).expanduser().resolve() if input_dir else None,
        profile_file=Path(profile_file).expanduser().resolve() if profile_file else None,
        log_level=os.getenv("DROPIN_ROTA_LOG_LEVEL", "INFO").strip().upper() or "INFO",
        http_host=os.getenv("DROPIN_ROTA_HOST", "").strip() or "127.0.0.1",
        http_port=int(port) if port else None,
        api_key=os.getenv("DROPIN_ROTA_API_KEY", "").strip() or None,
    )


def default_profile_file() -> Path:
    return Path(__file__).resolve().parent.parent / "config" / "rota_profiles.json"


def load_rota_profiles(profile_file: Path | None = None) -> dict[str, Any]:
    if profile_file is None:
        profile_file = runtime_config().profile_file or default_profile_file()
    if not profile_file.exists():
        return {}
    with profile_file.open("r", encoding="utf-8") as fh:
        return json.load(fh)


def get_profile(name: str | None = None, profile_file: Path | None = None) -> RotaProfile:
    """Named profile. ``None`` or ``default`` gives the file's default, else built-in defaults."""
    profiles = load_rota_profiles(profile_file)
    if name is None or name == DEFAULT_PROFILE:
        if DEFAULT_PROFILE in profiles:
            return RotaProfile.from_dict(DEFAULT_PROFILE, profiles[DEFAULT_PROFILE])
        return RotaProfile()
    if name not in profiles:
        available = list(profiles.keys())
        raise ValueError(f"Profile '{name}' not found. Available: {available}")
    return RotaProfile.from_dict(name, profiles[name])
