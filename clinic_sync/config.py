import os
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from clinic_sync.errors import ConfigError

_ENV_RE = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")

DEFAULT_USER_AGENT = "clinic-sync"


def expand_env_value(v: Any) -> Any:
    if isinstance(v, str):
        return _ENV_RE.sub(lambda m: os.getenv(m.group(1), m.group(0)), v)
    if isinstance(v, dict):
        return {k: expand_env_value(vv) for k, vv in v.items()}
    if isinstance(v, list):
        return [expand_env_value(x) for x in v]
    return v


@dataclass(frozen=True)
class Config:
    """Read-only connection settings handed to every core call."""

    api_key: str
    base_url: str
    clinic_id: Optional[str] = None
    report_base_url: Optional[str] = None
    report_business_id: Optional[str] = None
    practitioner_ids: Tuple[str, ...] = ()
    timezone: str = "UTC"
    user_agent: str = DEFAULT_USER_AGENT


@dataclass(frozen=True)
class SyncJob:
    name: str
    endpoint: str
    sheet: str
    curated_columns: Tuple[str, ...] = ()
    params: Dict[str, Any] = field(default_factory=dict)
    date_field: Optional[str] = None
    days_back: int = 30
    days_forward: int = 30


def _opt_str(v: Any) -> Optional[str]:
    if v is None:
        return None
    s = str(v).strip()
    # an unexpanded ${VAR} means the variable was never exported
    if not s or _ENV_RE.search(s):
        return None
    return s


def as_id_list(v: Any) -> List[str]:
    """A YAML list or comma-separated string of ids as trimmed strings."""
    if v is None:
        return []
    if isinstance(v, (str, int)):
        v = str(v).split(",")
    return [str(p).strip() for p in v if _opt_str(p)]


def build_config(raw: Dict[str, Any]) -> Config:
    """Turn the ``api`` section of a loaded YAML document into a Config.

    ``api_key`` may be empty here; the HTTP client refuses to send a request
    without one, so a config without credentials can still be inspected.
    """
    api = expand_env_value((raw or {}).get("api") or {})
    if not isinstance(api, dict):
        raise ConfigError("'api' section must be a mapping")

    base_url = _opt_str(api.get("base_url"))
    if not base_url:
        raise ConfigError("api.base_url must be a non-empty URL")

    return Config(
        api_key=_opt_str(api.get("api_key")) or "",
        base_url=base_url.rstrip("/"),
        clinic_id=_opt_str(api.get("clinic_id")),
        report_base_url=_opt_str(api.get("report_base_url")),
        report_business_id=_opt_str(api.get("report_business_id")),
        practitioner_ids=tuple(as_id_list(api.get("practitioner_ids"))),
        timezone=_opt_str(api.get("timezone")) or "UTC",
        user_agent=_opt_str(api.get("user_agent")) or DEFAULT_USER_AGENT,
    )


def build_jobs(
    raw: Dict[str, Any], defaults: Optional[Dict[str, SyncJob]] = None
) -> List[SyncJob]:
    """Resolve the ``syncs`` section into SyncJob values.

    Entries named after a default job override only the keys they set; a
    bare ``name: true`` enables a default job unchanged and ``name: false``
    disables it.
    """
    defaults = defaults or {}
    syncs = expand_env_value((raw or {}).get("syncs"))
    if syncs is None:
        return list(defaults.values())
    if not isinstance(syncs, dict):
        raise ConfigError("'syncs' section must be a mapping of job name -> settings")

    jobs: List[SyncJob] = []
    for name, entry in syncs.items():
        if entry is False:
            continue
        base = defaults.get(name)
        if entry is True or entry is None:
            if base is None:
                raise ConfigError(f"sync '{name}' has no settings and no default")
            jobs.append(base)
            continue
        if not isinstance(entry, dict):
            raise ConfigError(f"sync '{name}' must be a mapping")

        endpoint = entry.get("endpoint", base.endpoint if base else None)
        if not endpoint:
            raise ConfigError(f"sync '{name}' must define an endpoint")
        window = entry.get("date_window") or {}
        jobs.append(
            SyncJob(
                name=name,
                endpoint=str(endpoint),
                sheet=str(entry.get("sheet") or (base.sheet if base else name)),
                curated_columns=tuple(
                    entry.get("curated_columns")
                    or (base.curated_columns if base else ())
                ),
                params={
                    **(base.params if base else {}),
                    **(entry.get("params") or {}),
                },
                date_field=window.get(
                    "field", base.date_field if base else None
                ),
                days_back=int(
                    window.get("days_back", base.days_back if base else 30)
                ),
                days_forward=int(
                    window.get(
                        "days_forward", base.days_forward if base else 30
                    )
                ),
            )
        )
    return jobs
