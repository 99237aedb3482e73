"""
Config populator: untyped configuration maps to typed pydantic models.

Access configs (credentials) are populated as a whole and validated before a
deployer is constructed. Extended, provider-specific options are read one by
one through typed accessors that fall back to a default instead of failing.
"""

from collections.abc import Mapping
from typing import Annotated, Any, TypeVar

from pydantic import BaseModel, ConfigDict, StringConstraints, ValidationError
from pydantic.alias_generators import to_camel

from certdeploy.models.errors import ConfigurationError

# A string field that must be present and non-blank
RequiredStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]

ConfigT = TypeVar("ConfigT", bound=BaseModel)

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


class ProviderConfigModel(BaseModel):
    """
    Base model for access and provider configs.

    Keys may use the snake_case field name or its camelCase alias
    (``secret_id`` / ``secretId``); unknown keys are ignored.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        str_strip_whitespace=True,
    )


def populate(raw: Mapping[str, Any] | None, model_cls: type[ConfigT]) -> ConfigT:
    """
    Build a typed config from an untyped map.

    Args:
        raw: Untyped key/value map (None is treated as empty)
        model_cls: Pydantic model describing the typed config

    Returns:
        Validated model instance

    Raises:
        ConfigurationError: Naming every missing or invalid field
    """
    try:
        return model_cls.model_validate(dict(raw or {}))
    except ValidationError as e:
        fields: list[str] = []
        problems: list[str] = []
        for error in e.errors():
            location = ".".join(str(part) for part in error["loc"]) or "<root>"
            fields.append(location)
            problems.append(f"config `{location}` {error['msg'].lower()}")

        raise ConfigurationError(
            f"invalid {model_cls.__name__}: {'; '.join(problems)}",
            fields=fields,
        ) from e


def require(value: Any, key: str) -> None:
    """
    Validate a required extended option.

    Args:
        value: Value read through one of the accessors
        key: Option key reported in the error

    Raises:
        ConfigurationError: If the value is empty
    """
    if value is None or value == "" or value == []:
        raise ConfigurationError(f"config `{key}` is required", fields=[key])


def get_string(raw: Mapping[str, Any] | None, key: str, default: str = "") -> str:
    """
    Read a string option.

    Numbers and booleans are converted to text; None, absent keys and other
    types yield the default.
    """
    if not raw or key not in raw:
        return default

    value = raw[key]
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int | float):
        return str(value)
    return default


def get_bool(raw: Mapping[str, Any] | None, key: str, default: bool = False) -> bool:
    """Read a boolean option; accepts bools, numbers and "true"/"false" strings."""
    if not raw or key not in raw:
        return default

    value = raw[key]
    if isinstance(value, bool):
        return value
    if isinstance(value, int | float):
        return value != 0
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in _TRUE_VALUES:
            return True
        if normalized in _FALSE_VALUES:
            return False
    return default


def get_int(raw: Mapping[str, Any] | None, key: str, default: int = 0) -> int:
    """Read an integer option; accepts ints, integral floats and numeric strings."""
    if not raw or key not in raw:
        return default

    value = raw[key]
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return default
    return default


def get_string_list(
    raw: Mapping[str, Any] | None,
    key: str,
    default: list[str] | None = None,
) -> list[str]:
    """
    Read a list-of-strings option.

    Accepts a list/tuple of strings or one string separated by ``;``, ``,`` or
    newlines. Blank items are dropped; order is preserved.
    """
    fallback = list(default) if default is not None else []
    if not raw or key not in raw:
        return fallback

    value = raw[key]
    if isinstance(value, str):
        items = value.replace("\n", ";").replace(",", ";").split(";")
    elif isinstance(value, list | tuple):
        items = [item for item in value if isinstance(item, str)]
    else:
        return fallback

    return [item.strip() for item in items if item.strip()]
