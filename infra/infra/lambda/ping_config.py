import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from ping_errors import ConfigError

TABLE_NAME = "shop_ping_log"  # TODO: read from the environment once the stack passes it in

SESSION_MODE_SHARED = "shared"
SESSION_MODE_EXPLICIT = "explicit"
_SESSION_MODES = (SESSION_MODE_SHARED, SESSION_MODE_EXPLICIT)


@dataclass(frozen=True)
class SessionOptions:
    """
    How the boto3 session discovers credentials and region.
    shared   -> env vars, ~/.aws/config, ~/.aws/credentials, optional profile
    explicit -> only the values given here, no env/file/profile lookups
    """
    mode: str = SESSION_MODE_SHARED
    region_name: Optional[str] = None
    profile_name: Optional[str] = None
    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None
    aws_session_token: Optional[str] = None

    @property
    def shared_config(self) -> bool:
        return self.mode == SESSION_MODE_SHARED


@dataclass(frozen=True)
class PingConfig:
    session_options: SessionOptions
    log_level: str = "INFO"


def load_config(environ: Optional[Mapping[str, str]] = None) -> PingConfig:
    env = os.environ if environ is None else environ

    mode = (env.get("AWS_SESSION_MODE") or SESSION_MODE_SHARED).strip().lower()
    if mode not in _SESSION_MODES:
        raise ConfigError(f"AWS_SESSION_MODE must be one of {_SESSION_MODES}, got {mode!r}")

    region = env.get("AWS_REGION") or env.get("AWS_DEFAULT_REGION") or None

    if mode == SESSION_MODE_SHARED:
        options = SessionOptions(
            mode=mode,
            region_name=region,
            profile_name=env.get("AWS_PROFILE") or None,
        )
    else:
        options = SessionOptions(
            mode=mode,
            region_name=region,
            aws_access_key_id=env.get("AWS_ACCESS_KEY_ID") or None,
            aws_secret_access_key=env.get("AWS_SECRET_ACCESS_KEY") or None,
            aws_session_token=env.get("AWS_SESSION_TOKEN") or None,
        )

    log_level = (env.get("LOG_LEVEL") or "INFO").strip().upper()
    if log_level not in logging.getLevelNamesMapping():
        raise ConfigError(f"LOG_LEVEL must be a logging level name, got {log_level!r}")

    return PingConfig(session_options=options, log_level=log_level)
