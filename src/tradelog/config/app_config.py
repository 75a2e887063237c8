from __future__ import annotations

from dataclasses import dataclass
from datetime import tzinfo
from pathlib import Path
from typing import Any, Mapping
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

try:
    import tomllib
except ModuleNotFoundError:  # pragma: no cover - Python <3.11
    import tomli as tomllib

from tradelog.filters import WEEK_WINDOW_ROLLING, WEEK_WINDOWS
from tradelog.metrics.risk import R_EPSILON
from tradelog.metrics.summary import MIN_TRADES_PER_DAY, TRADING_DAYS_PER_MONTH
from tradelog.sessions import SESSION_ROLLOVER_HOUR

LOCAL_TIMEZONE = "local"


@dataclass(frozen=True)
class AppSettings:
    db_path: Path
    host: str
    port: int
    reload: bool


@dataclass(frozen=True)
class SessionSettings:
    timezone: str
    rollover_hour: int
    week_window: str

    @property
    def tzinfo(self) -> tzinfo | None:
        if self.timezone == LOCAL_TIMEZONE:
            return None
        return ZoneInfo(self.timezone)


@dataclass(frozen=True)
class AnalyticsSettings:
    trading_days_per_month: int
    min_trades_per_day: float
    r_epsilon: float
    projection_months: list[int]


@dataclass(frozen=True)
class AppConfig:
    app: AppSettings
    sessions: SessionSettings
    analytics: AnalyticsSettings


def load_app_config(path: Path | None = None) -> AppConfig:
    config_path = path or Path("config/app.toml")
    raw: Mapping[str, Any] = {}
    if config_path.exists():
        raw = tomllib.loads(config_path.read_text(encoding="utf-8"))

    app_raw = _section(raw, "app")
    sessions_raw = _section(raw, "sessions")
    analytics_raw = _section(raw, "analytics")

    app = AppSettings(
        db_path=Path(app_raw.get("db_path", "data/tradelog.sqlite")),
        host=str(app_raw.get("host", "127.0.0.1")),
        port=int(app_raw.get("port", 8000)),
        reload=bool(app_raw.get("reload", False)),
    )

    sessions = SessionSettings(
        timezone=_parse_timezone(sessions_raw.get("timezone", LOCAL_TIMEZONE)),
        rollover_hour=_parse_hour(sessions_raw.get("rollover_hour", SESSION_ROLLOVER_HOUR)),
        week_window=_parse_choice(
            sessions_raw.get("week_window", WEEK_WINDOW_ROLLING), WEEK_WINDOWS, "week_window"
        ),
    )

    analytics = AnalyticsSettings(
        trading_days_per_month=int(analytics_raw.get("trading_days_per_month", TRADING_DAYS_PER_MONTH)),
        min_trades_per_day=float(analytics_raw.get("min_trades_per_day", MIN_TRADES_PER_DAY)),
        r_epsilon=float(analytics_raw.get("r_epsilon", R_EPSILON)),
        projection_months=_int_list(analytics_raw.get("projection_months")) or [1, 3, 6],
    )

    return AppConfig(app=app, sessions=sessions, analytics=analytics)


def _section(raw: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = raw.get(key)
    if isinstance(value, Mapping):
        return value
    return {}


def _parse_timezone(value: Any) -> str:
    text = str(value or LOCAL_TIMEZONE).strip()
    if not text or text.lower() == LOCAL_TIMEZONE:
        return LOCAL_TIMEZONE
    try:
        ZoneInfo(text)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Unknown session timezone: {text!r}") from exc
    return text


def _parse_hour(value: Any) -> int:
    try:
        hour = int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid rollover_hour: {value!r}") from exc
    if hour < 0 or hour > 23:
        raise ValueError(f"Invalid rollover_hour: {value!r}")
    return hour


def _parse_choice(value: Any, choices: tuple[str, ...], name: str) -> str:
    text = str(value).strip().lower()
    if text not in choices:
        raise ValueError(f"Invalid {name}: {value!r} (expected one of {', '.join(choices)})")
    return text


def _int_list(value: Any) -> list[int]:
    if not isinstance(value, list):
        return []
    output: list[int] = []
    for item in value:
        try:
            output.append(int(item))
        except (TypeError, ValueError):
            continue
    return output
