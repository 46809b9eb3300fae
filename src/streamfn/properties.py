"""Configuration properties for the built-in functions.

Each model binds the properties under one prefix of the Environment:

    header.enricher.*    HeaderEnricherProperties
    header.filter.*      HeaderFilterProperties
    filter.function.*    FilterProperties
    transform.function.* TransformProperties
    counter.*            CounterProperties
    analytics.*          AnalyticsProperties
    log.*                LogProperties
    streamfn.*           AppProperties

Property names are accepted in kebab-case, camelCase or snake_case
(``delete-all``, ``deleteAll`` and ``delete_all`` are the same property).
"""

import logging
import re
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from streamfn.kv import parse_comma_delimited_key_value_pairs

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")

_LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "WARN", "INFO", "DEBUG", "TRACE")


def to_snake_case(key: str) -> str:
    """``deleteAll`` / ``delete-all`` / ``delete_all`` -> ``delete_all``."""
    return _CAMEL_BOUNDARY.sub("_", key).replace("-", "_").lower()


class FunctionProperties(BaseModel):
    """Base model with relaxed property-name binding."""

    @model_validator(mode="before")
    @classmethod
    def normalize_keys(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {to_snake_case(str(key)): value for key, value in data.items()}
        return data


def _split_list(value: Any) -> Any:
    if value is None:
        return []
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    if isinstance(value, (list, tuple)):
        return [str(item).strip() for item in value if str(item).strip()]
    return value


class HeaderEnricherProperties(FunctionProperties):
    headers: Optional[Union[str, Dict[str, Any]]] = Field(
        default=None,
        description="Header spec: 'name=expression' lines, or a name -> expression mapping",
    )
    overwrite: bool = Field(
        default=False,
        description="Replace headers already present on the incoming message",
    )


class HeaderFilterProperties(FunctionProperties):
    remove: List[str] = Field(
        default_factory=list,
        description="Header names to remove; '*' matches any characters",
    )
    delete_all: bool = Field(
        default=False,
        description="Remove every header except the read-only ones",
    )

    @field_validator("remove", mode="before")
    @classmethod
    def split_remove(cls, v: Any) -> Any:
        return _split_list(v)


class FilterProperties(FunctionProperties):
    expression: str = Field(
        default="true",
        description="Boolean expression; messages evaluating to false are dropped",
    )


class TransformProperties(FunctionProperties):
    expression: str = Field(
        default="payload",
        description="Expression whose result becomes the new payload",
    )


class MetricsTag(FunctionProperties):
    fixed: Dict[str, str] = Field(
        default_factory=dict,
        description="Tag name -> constant value",
    )
    expression: Dict[str, str] = Field(
        default_factory=dict,
        description="Tag name -> expression; collection results produce one sample per value",
    )

    @field_validator("fixed", "expression", mode="before")
    @classmethod
    def parse_shorthand(cls, v: Any) -> Any:
        if v is None:
            return {}
        if isinstance(v, str):
            return parse_comma_delimited_key_value_pairs(v)
        if isinstance(v, dict):
            return {str(key): "" if value is None else str(value) for key, value in v.items()}
        return v


class MeterProperties(FunctionProperties):
    name: Optional[str] = Field(
        default=None,
        description="Meter name; defaults to spring.application.name",
    )
    name_expression: Optional[str] = Field(
        default=None,
        description="Expression computing the meter name per message",
    )
    amount_expression: Optional[str] = Field(
        default=None,
        description="Expression computing the increment (default 1.0)",
    )
    tag: MetricsTag = Field(default_factory=MetricsTag)

    @field_validator("name", "name_expression", "amount_expression")
    @classmethod
    def blank_is_unset(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not str(v).strip():
            return None
        return str(v).strip()

    @model_validator(mode="after")
    def validate_name(self) -> "MeterProperties":
        if self.name is not None and self.name_expression is not None:
            raise ValueError("exactly one of 'name' and 'name-expression' may be set")
        return self


class CounterProperties(MeterProperties):
    message_counter_enabled: bool = Field(
        default=True,
        description="Also count messages under a 'message.' prefixed meter",
    )


class AnalyticsProperties(MeterProperties):
    meter_type: Literal["counter", "gauge"] = Field(
        default="counter",
        description="Meter kind: counter accumulates, gauge records the latest amount",
    )

    @field_validator("meter_type", mode="before")
    @classmethod
    def lower_meter_type(cls, v: Any) -> Any:
        return v.strip().lower() if isinstance(v, str) else v


class LogProperties(FunctionProperties):
    expression: str = Field(default="payload", description="Expression to log")
    level: str = Field(default="INFO", description="Log level")
    name: str = Field(default="log-consumer", description="Logger name")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"level must be one of {', '.join(_LOG_LEVELS)}")
        return level

    @property
    def level_number(self) -> int:
        if self.level == "TRACE":
            return logging.DEBUG
        if self.level == "WARN":
            return logging.WARNING
        return logging.getLevelName(self.level)


class LoggingProperties(FunctionProperties):
    level: str = "INFO"
    json_format: bool = False
    file: Optional[str] = None


class AppProperties(FunctionProperties):
    beans: Dict[str, Any] = Field(
        default_factory=dict,
        description="Bean references available to expressions as @name",
    )
    encode_output: bool = Field(
        default=True,
        description="Coerce results to bytes at the output binding",
    )
    logging: LoggingProperties = Field(default_factory=LoggingProperties)


__all__ = [
    "to_snake_case",
    "FunctionProperties",
    "HeaderEnricherProperties",
    "HeaderFilterProperties",
    "FilterProperties",
    "TransformProperties",
    "MetricsTag",
    "MeterProperties",
    "CounterProperties",
    "AnalyticsProperties",
    "LogProperties",
    "LoggingProperties",
    "AppProperties",
]
