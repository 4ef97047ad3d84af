import os
from typing import Any, Callable, Iterable, Optional, Tuple

from pydantic import BaseModel, ConfigDict, ValidationError, create_model

from utils import log

logger = log.get_logger(__name__)


class EnvVarSpec(BaseModel):
    """Declaration of one environment variable: where to read it and how to parse it."""
    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    id: str
    default: Optional[str] = None
    parse: Callable[[str], Any] = str
    type: Tuple[Any, Any] = (str, ...)
    is_optional: bool = False
    is_secret: bool = False


def get_raw(spec: EnvVarSpec) -> Optional[str]:
    value = os.environ.get(spec.id)
    if value is None or value == "":
        return spec.default
    return value


def parse(spec: EnvVarSpec) -> Any:
    """Read and parse *spec*. Optional vars without a value parse to None."""
    raw = get_raw(spec)
    if raw is None:
        if spec.is_optional:
            return None
        raise ValueError(f"Missing required environment variable {spec.id}")
    return spec.parse(raw)


def validate(specs: Iterable[EnvVarSpec]) -> bool:
    """Parse every spec and type-check the results through a pydantic model.

    Logs each problem and returns False if anything is missing or malformed.
    """
    specs = list(specs)
    fields = {}
    values = {}
    ok = True
    for spec in specs:
        field_type, field_default = spec.type
        if spec.is_optional:
            fields[spec.id] = (Optional[field_type], None)
        else:
            fields[spec.id] = (field_type, field_default)
        try:
            values[spec.id] = parse(spec)
        except Exception as e:
            shown = "<secret>" if spec.is_secret else repr(get_raw(spec))
            logger.error(f"Invalid environment variable {spec.id}={shown}: {e}")
            ok = False

    if not ok:
        return False

    model = create_model("EnvConfig", **fields)
    try:
        model(**values)
    except ValidationError as e:
        for error in e.errors():
            logger.error(f"Invalid environment variable {error['loc'][0]}: {error['msg']}")
        return False
    return True
