"""App configuration loading helpers."""

from __future__ import annotations

from pathlib import Path

import tomllib

from pydantic import BaseModel, Field

CONFIG_FILE = Path.home() / ".config" / "navikit" / "config.toml"


class CoordinatorConfig(BaseModel):
    """Defaults applied to every request coordinator."""

    debounce_seconds: float = 0.5
    timeout_seconds: float = 10.0
    keep_stale_data: bool = True


class ChannelConfig(BaseModel):
    """Per-channel overrides, keyed by coordinator name in config.toml."""

    debounce_seconds: float | None = None
    timeout_seconds: float | None = None
    skip_unchanged: bool = False


class ResolvedChannel(BaseModel):
    """Effective settings for one coordinator."""

    debounce_seconds: float
    timeout_seconds: float
    keep_stale_data: bool
    skip_unchanged: bool


class DemoServiceConfig(BaseModel):
    """Knobs for the in-memory demo service."""

    latency_seconds: float = 0.8
    failure_rate: float = Field(default=0.1, ge=0.0, le=1.0)
    seed: int | None = None


class AppConfig(BaseModel):
    """Shape of the application configuration file."""

    theme: str = "dark"
    log_level: str = "INFO"
    log_file: str | None = None
    coordinator: CoordinatorConfig = Field(default_factory=CoordinatorConfig)
    channels: dict[str, ChannelConfig] = Field(default_factory=dict)
    demo: DemoServiceConfig = Field(default_factory=DemoServiceConfig)

    def channel(self, name: str) -> ResolvedChannel:
        """Resolve the settings for ``name`` against the coordinator defaults."""

        override = self.channels.get(name, ChannelConfig())
        defaults = self.coordinator
        return ResolvedChannel(
            debounce_seconds=(
                override.debounce_seconds
                if override.debounce_seconds is not None
                else defaults.debounce_seconds
            ),
            timeout_seconds=(
                override.timeout_seconds
                if override.timeout_seconds is not None
                else defaults.timeout_seconds
            ),
            keep_stale_data=defaults.keep_stale_data,
            skip_unchanged=override.skip_unchanged,
        )

    def with_channel(self, name: str, **updates: object) -> AppConfig:
        """Return a copy with one channel override changed."""

        channels = dict(self.channels)
        current = channels.get(name, ChannelConfig())
        channels[name] = current.model_copy(update=updates)
        return self.model_copy(update={"channels": channels})

    def with_theme(self, theme: str) -> AppConfig:
        """Return a copy with the theme updated."""

        return self.model_copy(update={"theme": theme})


def load_config() -> AppConfig:
    """Load configuration from disk; fall back to defaults if missing."""

    try:
        data = _read_config_file()
    except FileNotFoundError:
        return AppConfig()
    except (tomllib.TOMLDecodeError, OSError):
        return AppConfig()
    return AppConfig(**data)


def save_config(config: AppConfig) -> None:
    """Persist configuration to disk."""

    CONFIG_FILE.parent.mkdir(parents=True, exist_ok=True)
    lines: list[str] = [
        f'theme = "{config.theme}"',
        f'log_level = "{config.log_level}"',
    ]
    if config.log_file:
        lines.append(f'log_file = "{config.log_file}"')
    coordinator = config.coordinator
    lines.append("")
    lines.append("[coordinator]")
    lines.append(f"debounce_seconds = {coordinator.debounce_seconds}")
    lines.append(f"timeout_seconds = {coordinator.timeout_seconds}")
    lines.append(f"keep_stale_data = {str(coordinator.keep_stale_data).lower()}")
    demo = config.demo
    lines.append("")
    lines.append("[demo]")
    lines.append(f"latency_seconds = {demo.latency_seconds}")
    lines.append(f"failure_rate = {demo.failure_rate}")
    if demo.seed is not None:
        lines.append(f"seed = {demo.seed}")
    for name in sorted(config.channels):
        channel = config.channels[name]
        lines.append("")
        lines.append(f'[channels."{name}"]')
        if channel.debounce_seconds is not None:
            lines.append(f"debounce_seconds = {channel.debounce_seconds}")
        if channel.timeout_seconds is not None:
            lines.append(f"timeout_seconds = {channel.timeout_seconds}")
        lines.append(f"skip_unchanged = {str(channel.skip_unchanged).lower()}")
    CONFIG_FILE.write_text("\n".join(lines) + "\n")


def _read_config_file() -> dict[str, object]:
    with CONFIG_FILE.open("rb") as handle:
        raw = tomllib.load(handle)
    data: dict[str, object] = {}
    if not isinstance(raw, dict):
        return data
    for key in ("theme", "log_level", "log_file"):
        value = raw.get(key)
        if isinstance(value, str):
            data[key] = value
    coordinator = raw.get("coordinator")
    if isinstance(coordinator, dict):
        parsed: dict[str, object] = {}
        for key in ("debounce_seconds", "timeout_seconds"):
            value = coordinator.get(key)
            if _is_number(value) and value > 0:
                parsed[key] = float(value)
        keep = coordinator.get("keep_stale_data")
        if isinstance(keep, bool):
            parsed["keep_stale_data"] = keep
        data["coordinator"] = CoordinatorConfig(**parsed)
    demo = raw.get("demo")
    if isinstance(demo, dict):
        parsed_demo: dict[str, object] = {}
        latency = demo.get("latency_seconds")
        if _is_number(latency) and latency >= 0:
            parsed_demo["latency_seconds"] = float(latency)
        rate = demo.get("failure_rate")
        if _is_number(rate) and 0 <= rate <= 1:
            parsed_demo["failure_rate"] = float(rate)
        seed = demo.get("seed")
        if isinstance(seed, int) and not isinstance(seed, bool):
            parsed_demo["seed"] = seed
        data["demo"] = DemoServiceConfig(**parsed_demo)
    channels = raw.get("channels")
    if isinstance(channels, dict):
        parsed_channels: dict[str, ChannelConfig] = {}
        for name, entry in channels.items():
            if not isinstance(entry, dict):
                continue
            fields: dict[str, object] = {}
            for key in ("debounce_seconds", "timeout_seconds"):
                value = entry.get(key)
                if _is_number(value) and value > 0:
                    fields[key] = float(value)
            skip = entry.get("skip_unchanged")
            if isinstance(skip, bool):
                fields["skip_unchanged"] = skip
            parsed_channels[str(name)] = ChannelConfig(**fields)
        data["channels"] = parsed_channels
    return data


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


__all__ = [
    "AppConfig",
    "CONFIG_FILE",
    "ChannelConfig",
    "CoordinatorConfig",
    "DemoServiceConfig",
    "ResolvedChannel",
    "load_config",
    "save_config",
]
