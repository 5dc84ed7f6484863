"""Filter document loading.

Parses a YAML or JSON filter document into a FilterSpec. Example:

    aws_instance:
      tags:
        Environment: test
      name: "^ci-"
      created:
        before: 2024-06-01T00:00:00Z
    aws_vpc:
      ids: [vpc-0123]
    aws_sqs_queue:

A type with no body matches every resource of that type.
"""

from __future__ import annotations

import json
import logging
import re
from datetime import date, datetime, time, timezone
from pathlib import Path
from typing import Any, Union

import yaml

from ..errors import ConfigError
from ..models.filter_spec import (
    CreatedAfter,
    CreatedBefore,
    FilterSpec,
    IdIn,
    NameMatches,
    TagEquals,
    TypeFilter,
)
from .catalog import ResourceCatalog

logger = logging.getLogger(__name__)

PREDICATE_KEYS = ("tags", "name", "created", "ids")
CREATED_KEYS = ("before", "after")


def load(path: Union[str, Path], catalog: ResourceCatalog) -> FilterSpec:
    """Load and validate a filter document.

    Args:
        path: Path to a .yml/.yaml or .json document
        catalog: Catalog used to reject unregistered resource types

    Returns:
        FilterSpec in document order

    Raises:
        ConfigError: If the document cannot be read or parsed, names an
            unknown resource type, or contains an invalid predicate
    """
    path = Path(path)

    try:
        with open(path, "r") as f:
            text = f.read()
    except OSError as e:
        raise ConfigError(f"Cannot read filter document {path}: {e}") from e

    document = parse_document(text, json_format=path.suffix.lower() == ".json")
    spec = build_filter_spec(document, catalog)
    logger.debug(f"Loaded filter document {path} with {len(spec)} resource type(s)")
    return spec


def parse_document(text: str, json_format: bool = False) -> Any:
    """Parse document text as JSON or YAML.

    Raises:
        ConfigError: If the text is not valid
    """
    try:
        if json_format:
            return json.loads(text)
        return yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigError(f"Cannot parse filter document: {e}") from e


def build_filter_spec(document: Any, catalog: ResourceCatalog) -> FilterSpec:
    """Validate a parsed document and convert it to a FilterSpec.

    Raises:
        ConfigError: If the document is invalid
    """
    if document is None:
        raise ConfigError("Filter document is empty")

    if not isinstance(document, dict):
        raise ConfigError("Filter document must be a mapping of resource type to filters")

    unknown = [str(key) for key in document if key not in catalog]
    if unknown:
        raise ConfigError(
            f"Unknown resource type(s) in filter document: {', '.join(unknown)}. "
            f"Supported types: {', '.join(sorted(catalog.resource_types))}"
        )

    filters = [_build_type_filter(resource_type, body) for resource_type, body in document.items()]
    return FilterSpec(filters=tuple(filters))


def _build_type_filter(resource_type: str, body: Any) -> TypeFilter:
    if body is None:
        return TypeFilter(resource_type=resource_type)

    if not isinstance(body, dict):
        raise ConfigError(f"{resource_type}: filter must be a mapping, got {type(body).__name__}")

    unknown = [str(key) for key in body if key not in PREDICATE_KEYS]
    if unknown:
        raise ConfigError(
            f"{resource_type}: unknown filter key(s) {', '.join(unknown)} "
            f"(allowed: {', '.join(PREDICATE_KEYS)})"
        )

    predicates: list = []

    if "tags" in body:
        predicates.extend(_parse_tags(resource_type, body["tags"]))

    if "name" in body:
        predicates.append(_parse_name(resource_type, body["name"]))

    if "created" in body:
        predicates.extend(_parse_created(resource_type, body["created"]))

    if "ids" in body:
        predicates.append(_parse_ids(resource_type, body["ids"]))

    return TypeFilter(resource_type=resource_type, predicates=tuple(predicates))


def _parse_tags(resource_type: str, tags: Any) -> list[TagEquals]:
    if not isinstance(tags, dict):
        raise ConfigError(f"{resource_type}: tags must be a mapping of key to value")

    predicates = []
    for key, value in tags.items():
        if not isinstance(key, str) or isinstance(value, bool) or not isinstance(value, (str, int, float)):
            raise ConfigError(f"{resource_type}: tag {key!r} must map to a string value")
        predicates.append(TagEquals(key=key, value=str(value)))
    return predicates


def _parse_name(resource_type: str, pattern: Any) -> NameMatches:
    if not isinstance(pattern, str):
        raise ConfigError(f"{resource_type}: name must be a regular expression string")

    try:
        return NameMatches(pattern=re.compile(pattern))
    except re.error as e:
        raise ConfigError(f"{resource_type}: invalid name pattern {pattern!r}: {e}") from e


def _parse_created(resource_type: str, created: Any) -> list:
    if not isinstance(created, dict) or not created:
        raise ConfigError(f"{resource_type}: created must be a mapping with 'before' and/or 'after'")

    unknown = [str(key) for key in created if key not in CREATED_KEYS]
    if unknown:
        raise ConfigError(f"{resource_type}: unknown created key(s) {', '.join(unknown)}")

    predicates: list = []
    if "before" in created:
        predicates.append(CreatedBefore(timestamp=parse_timestamp(created["before"], resource_type)))
    if "after" in created:
        predicates.append(CreatedAfter(timestamp=parse_timestamp(created["after"], resource_type)))
    return predicates


def _parse_ids(resource_type: str, ids: Any) -> IdIn:
    if not isinstance(ids, list) or not all(isinstance(i, str) and i for i in ids):
        raise ConfigError(f"{resource_type}: ids must be a list of non-empty strings")
    return IdIn(ids=frozenset(ids))


def parse_timestamp(value: Any, resource_type: str = "") -> datetime:
    """Convert a document value to a timezone-aware datetime.

    Accepts datetimes and dates produced by the YAML parser as well as ISO
    8601 strings. Naive values are taken as UTC.

    Raises:
        ConfigError: If the value is not a valid timestamp
    """
    prefix = f"{resource_type}: " if resource_type else ""

    if isinstance(value, datetime):
        timestamp = value
    elif isinstance(value, date):
        timestamp = datetime.combine(value, time.min)
    elif isinstance(value, str):
        try:
            timestamp = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError as e:
            raise ConfigError(f"{prefix}invalid timestamp {value!r}: {e}") from e
    else:
        raise ConfigError(f"{prefix}invalid timestamp {value!r}")

    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    return timestamp
