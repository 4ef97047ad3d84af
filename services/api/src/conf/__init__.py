from typing import Optional

from pydantic import BaseModel

from utils import env, log
from utils.env import EnvVarSpec

logger = log.get_logger(__name__)

#### Types ####

class HttpServerConf(BaseModel):
    host: str
    port: int
    autoreload: bool

class LifecycleConf(BaseModel):
    interval_seconds: int
    summary_interval_minutes: int

#### Env Vars ####

## Logging ##

LOG_LEVEL = EnvVarSpec(id="LOG_LEVEL", default="INFO")

## HTTP ##

HTTP_HOST = EnvVarSpec(id="HTTP_HOST", default="0.0.0.0")

HTTP_PORT = EnvVarSpec(
    id="HTTP_PORT",
    default="8000",
    parse=int,
    type=(int, ...),
)

HTTP_AUTORELOAD = EnvVarSpec(
    id="HTTP_AUTORELOAD",
    parse=lambda x: x.lower() == "true",
    default="false",
    type=(bool, ...),
)

HTTP_EXPOSE_ERRORS = EnvVarSpec(
    id="HTTP_EXPOSE_ERRORS",
    default="false",
    parse=lambda x: x.lower() == "true",
    type=(bool, ...),
)

## Auction lifecycle scheduler ##

LIFECYCLE_INTERVAL_SECONDS = EnvVarSpec(
    id="LIFECYCLE_INTERVAL_SECONDS",
    default="60",
    parse=int,
    type=(int, ...),
)

LIFECYCLE_SUMMARY_INTERVAL_MINUTES = EnvVarSpec(
    id="LIFECYCLE_SUMMARY_INTERVAL_MINUTES",
    default="5",
    parse=int,
    type=(int, ...),
)

## Internal endpoints ##

INTERNAL_API_KEY = EnvVarSpec(id="INTERNAL_API_KEY", is_optional=True, is_secret=True)

#### Validation ####
VALIDATED_ENV_VARS = [
    HTTP_AUTORELOAD,
    HTTP_EXPOSE_ERRORS,
    HTTP_PORT,
    LOG_LEVEL,
    LIFECYCLE_INTERVAL_SECONDS,
    LIFECYCLE_SUMMARY_INTERVAL_MINUTES,
    INTERNAL_API_KEY,
]

def validate() -> bool:
    return env.validate(VALIDATED_ENV_VARS)

#### Getters ####

def get_http_expose_errors() -> bool:
    return env.parse(HTTP_EXPOSE_ERRORS)

def get_log_level() -> str:
    return env.parse(LOG_LEVEL)

def get_internal_api_key() -> Optional[str]:
    return env.parse(INTERNAL_API_KEY)

def get_http_conf() -> HttpServerConf:
    return HttpServerConf(
        host=env.parse(HTTP_HOST),
        port=env.parse(HTTP_PORT),
        autoreload=env.parse(HTTP_AUTORELOAD),
    )

def get_lifecycle_conf() -> LifecycleConf:
    # Sweep at least once a minute.
    interval = max(1, min(60, env.parse(LIFECYCLE_INTERVAL_SECONDS)))
    summary = max(1, env.parse(LIFECYCLE_SUMMARY_INTERVAL_MINUTES))
    return LifecycleConf(interval_seconds=interval, summary_interval_minutes=summary)
