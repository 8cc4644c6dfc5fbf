#!/usr/bin/env python3
"""
Generate model classes from a sample JSON payload.

Every nested object (or list of objects) in the payload becomes its own class,
named after the root class and the field that introduced it.

Usage:
  python json_to_class.py                      # Input/meta.json + Input/payload.json -> Output/
  echo '{"a": 1}' | python json_to_class.py
  python json_to_class.py -i payload.json -m meta.json -o models
  python json_to_class.py --language python --name Order --namespace models
"""

from __future__ import annotations

import argparse
import json
import keyword
import re
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple

import jinja2


DEFAULT_PAYLOAD = "Input/payload.json"
DEFAULT_META = "Input/meta.json"
DEFAULT_OUTPUT_DIR = "Output"
DEFAULT_LANGUAGE = "php"

UPPER_PREFIX_RE = re.compile(r"^[A-Z][A-Z].+$")
PYTHON_NAMESPACE_RE = re.compile(r"^[A-Za-z_]\w*(\.[A-Za-z_]\w*)*$")

# Names the generated Python module relies on inside the class body.
PYTHON_RESERVED = {"self", "dataclasses", "list", "Any", "Dict", "List", "Optional", "to_dict"}

NULLABLE = "nullable"
BOOLEAN = "boolean"
TEXT = "text"
INTEGER = "integer"
FLOAT = "float"
OBJECT = "object"
OBJECT_LIST = "object_list"
SCALAR_LIST = "scalar_list"

UNKNOWN = "unknown"


class GenerationError(Exception):
    """Base class for everything the generator refuses to do."""


class UnsupportedPayloadError(GenerationError):
    pass


class MissingConfigurationError(GenerationError):
    pass


class InferenceError(GenerationError):
    pass


class TypeNameCollisionError(GenerationError):
    pass


@dataclass(frozen=True)
class Meta:
    name: str
    namespace: str


@dataclass(frozen=True)
class TypeKind:
    tag: str
    ref: Optional[str] = None
    element: Optional[str] = None


@dataclass
class SchemaField:
    name: str
    identifier: str
    kind: TypeKind
    schema: Optional["TypeSchema"] = None


@dataclass
class TypeSchema:
    name: str
    meta: Meta
    fields: List[SchemaField] = field(default_factory=list)


@dataclass(frozen=True)
class Unit:
    type_name: str
    source: str


# ---------------------------------------------------------------------------
# Naming


def camel_case(text: str) -> str:
    words = text.replace("-", " ").replace("_", " ").split(" ")
    if len(words) == 1:
        return words[0]

    out = words[0].lower()
    for word in words[1:]:
        word = word.lower()
        out += word[:1].upper() + word[1:]
    return out


def field_identifier(field_name: str) -> str:
    """
    Identifier used for a field in generated code.

    'user_name' -> 'userName', 'Status' -> 'status', 'URLPath' stays 'URLPath'
    (names that start with two capitals are left alone).
    """
    camel = camel_case(field_name)
    if UPPER_PREFIX_RE.match(camel):
        return camel

    first = camel[:1]
    if "A" <= first <= "Z":
        return first.lower() + camel[1:]
    return camel


def upper_first(text: str) -> str:
    return text[:1].upper() + text[1:]


def nested_type_name(meta: Meta, identifier: str) -> str:
    # Always derived from the root name; siblings can collide on purpose.
    return camel_case(f"{meta.name}{upper_first(identifier)}")


def python_identifier(identifier: str) -> str:
    name = re.sub(r"\W", "_", identifier)
    if not name or name[0].isdigit():
        name = f"_{name}"
    if keyword.iskeyword(name) or name in PYTHON_RESERVED:
        name = f"{name}_"
    return name


# ---------------------------------------------------------------------------
# Inference


def validate_payload(payload: Any) -> Dict[str, Any]:
    if not isinstance(payload, dict) or any(not isinstance(k, str) for k in payload):
        raise UnsupportedPayloadError("payload must be a JSON object with string keys")
    return payload


def validate_meta(raw: Any) -> Meta:
    if not isinstance(raw, dict):
        raise MissingConfigurationError(
            'Missing configuration: expected an object with "name" and "namespace"'
        )
    missing = [
        key for key in ("name", "namespace")
        if not isinstance(raw.get(key), str) or not raw.get(key)
    ]
    if missing:
        keys = ", ".join(repr(key) for key in missing)
        raise MissingConfigurationError(f"Missing configuration: {keys} must be a non-empty string")
    return Meta(name=raw["name"], namespace=raw["namespace"])


def scalar_tag(value: Any) -> Optional[str]:
    """Tag for a scalar JSON value, None for lists and objects."""
    if value is None:
        return NULLABLE
    if isinstance(value, bool):
        return BOOLEAN
    if isinstance(value, str):
        return TEXT
    if isinstance(value, int):
        return INTEGER
    if isinstance(value, float):
        return FLOAT
    return None


def _is_object(value: Any) -> bool:
    return isinstance(value, dict) and bool(value) and all(isinstance(k, str) for k in value)


def _is_object_list(value: Any) -> bool:
    return (
        isinstance(value, list)
        and bool(value)
        and all(isinstance(item, (dict, list)) for item in value)
    )


def _element_source(field_name: str, first: Any) -> Dict[str, Any]:
    if isinstance(first, dict):
        return first
    if not first:
        return {}
    raise InferenceError(
        f"Cannot infer a type for {field_name!r}: first element is a list, expected an object"
    )


def infer_schema(payload: Dict[str, Any], meta: Meta, owner: Optional[str] = None) -> TypeSchema:
    """
    Infer the schema of one JSON object.

    `owner` is the identifier of the field that introduced this object; the root
    schema has none and takes the configured root name. Nested objects and lists
    of objects are inferred recursively and attached to their field.
    """
    name = meta.name if owner is None else nested_type_name(meta, owner)
    schema = TypeSchema(name=name, meta=meta)

    for field_name, value in payload.items():
        identifier = field_identifier(field_name)
        tag = scalar_tag(value)
        child: Optional[TypeSchema] = None

        if tag is not None:
            kind = TypeKind(tag)
        elif _is_object(value):
            child = infer_schema(value, meta, identifier)
            kind = TypeKind(OBJECT, ref=child.name)
        elif _is_object_list(value):
            # Only the first element is inspected.
            child = infer_schema(_element_source(field_name, value[0]), meta, identifier)
            kind = TypeKind(OBJECT_LIST, ref=child.name)
        elif isinstance(value, (list, dict)):
            kind = TypeKind(SCALAR_LIST, element=INTEGER if value else UNKNOWN)
        else:
            raise InferenceError(
                f"Unsupported value for {field_name!r}: {type(value).__name__}"
            )

        schema.fields.append(SchemaField(field_name, identifier, kind, child))

    return schema


def iter_schemas(schema: TypeSchema) -> Iterator[TypeSchema]:
    """Yield nested schemas depth-first, each before the schema that owns it."""
    for schema_field in schema.fields:
        if schema_field.schema is not None:
            yield from iter_schemas(schema_field.schema)
    yield schema


# ---------------------------------------------------------------------------
# Emission

# tag -> (declared type, default literal, doc type, conversion expression)
Policy = Dict[str, Tuple[str, Optional[str], Optional[str], str]]

PHP_POLICY: Policy = {
    NULLABLE: ("?string", "null", None, "$this->{id}"),
    BOOLEAN: ("bool", "false", None, "$this->{id}"),
    TEXT: ("string", "''", None, "$this->{id}"),
    INTEGER: ("int", "0", None, "$this->{id}"),
    FLOAT: ("float", "0.0", None, "$this->{id}"),
    OBJECT: ("{ref}", None, None, "$this->{id}->toArray()"),
    OBJECT_LIST: ("array", "[]", "list<{ref}>", "map($this->{id}, fn({ref} $i) => $i->toArray())"),
    SCALAR_LIST: ("array", "[]", "list<{element}>", "$this->{id}"),
}

PYTHON_POLICY: Policy = {
    NULLABLE: ("Optional[str]", "None", None, "self.{id}"),
    BOOLEAN: ("bool", "False", None, "self.{id}"),
    TEXT: ("str", '""', None, "self.{id}"),
    INTEGER: ("int", "0", None, "self.{id}"),
    FLOAT: ("float", "0.0", None, "self.{id}"),
    OBJECT: ("{ref}", None, None, "self.{id}.to_dict()"),
    OBJECT_LIST: (
        "List[{ref}]",
        "dataclasses.field(default_factory=list)",
        None,
        "[item.to_dict() for item in self.{id}]",
    ),
    SCALAR_LIST: ("List[{element}]", "dataclasses.field(default_factory=list)", None, "list(self.{id})"),
}

PHP_TEMPLATE = """\
<?php

declare(strict_types=1);

namespace {{ namespace }};

{% if uses_map %}
use function Functional\\map;

{% endif %}
final class {{ type_name }}
{
{% for f in fields %}
{% if f.doc_type %}

    /** @var {{ f.doc_type }} ${{ f.identifier }} */
{% endif %}
    public {{ f.declared }} ${{ f.identifier }}{{ f.assignment }};
{% endfor %}

    public function toArray(): array
    {
        return [
{% for f in fields %}
            {{ f.name|php_str }} => {{ f.conversion }},
{% endfor %}
        ];
    }
}
"""

PYTHON_TEMPLATE = """\
from __future__ import annotations

import dataclasses
from typing import {{ typing_imports|join(", ") }}
{% for ref in type_imports %}
{% if loop.first %}

{% endif %}
from {{ namespace }}.{{ ref }} import {{ ref }}
{% endfor %}


@dataclasses.dataclass(kw_only=True)
class {{ type_name }}:
{% for f in fields %}
    {{ f.identifier }}: {{ f.declared }}{{ f.assignment }}
{% endfor %}

    def to_dict(self) -> Dict[str, Any]:
        return {
{% for f in fields %}
            {{ f.name|py_str }}: {{ f.conversion }},
{% endfor %}
        }
"""


def php_string(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


def python_string(value: str) -> str:
    return json.dumps(value, ensure_ascii=False)


def _same(identifier: str) -> str:
    return identifier


@dataclass(frozen=True)
class Target:
    language: str
    extension: str
    template: str
    policy: Policy
    element_types: Dict[str, str]
    identifier: Callable[[str], str] = _same


TARGETS: Dict[str, Target] = {
    "php": Target(
        language="php",
        extension="php",
        template=PHP_TEMPLATE,
        policy=PHP_POLICY,
        element_types={INTEGER: "int", UNKNOWN: "mixed"},
    ),
    "python": Target(
        language="python",
        extension="py",
        template=PYTHON_TEMPLATE,
        policy=PYTHON_POLICY,
        element_types={INTEGER: "int", UNKNOWN: "Any"},
        identifier=python_identifier,
    ),
}

_env = jinja2.Environment(
    trim_blocks=True,
    lstrip_blocks=True,
    keep_trailing_newline=True,
    undefined=jinja2.StrictUndefined,
)
_env.filters["php_str"] = php_string
_env.filters["py_str"] = python_string


def get_target(language: str) -> Target:
    try:
        return TARGETS[language]
    except KeyError:
        raise GenerationError(
            f"Unknown language {language!r} (expected one of: {', '.join(sorted(TARGETS))})"
        ) from None


def _field_context(schema_field: SchemaField, target: Target) -> Dict[str, Any]:
    kind = schema_field.kind
    declared, default, doc_type, conversion = target.policy[kind.tag]
    values = {
        "id": target.identifier(schema_field.identifier),
        "ref": kind.ref or "",
        "element": target.element_types.get(kind.element or "", ""),
    }
    return {
        "name": schema_field.name,
        "identifier": values["id"],
        "declared": declared.format(**values),
        "assignment": "" if default is None else f" = {default}",
        "doc_type": doc_type.format(**values) if doc_type else None,
        "conversion": conversion.format(**values),
    }


def _typing_imports(tags: Sequence[str]) -> List[str]:
    names = ["Any", "Dict"]
    if OBJECT_LIST in tags or SCALAR_LIST in tags:
        names.append("List")
    if NULLABLE in tags:
        names.append("Optional")
    return names


def render_schema(schema: TypeSchema, language: str = DEFAULT_LANGUAGE) -> Unit:
    """Render a single schema; nested schemas are left to the caller."""
    target = get_target(language)
    tags = [f.kind.tag for f in schema.fields]

    type_imports: List[str] = []
    for schema_field in schema.fields:
        ref = schema_field.kind.ref
        if ref is not None and ref not in type_imports and ref != schema.name:
            type_imports.append(ref)

    source = _env.from_string(target.template).render(
        type_name=schema.name,
        namespace=schema.meta.namespace,
        fields=[_field_context(f, target) for f in schema.fields],
        uses_map=OBJECT_LIST in tags,
        typing_imports=_typing_imports(tags),
        type_imports=type_imports,
    )
    return Unit(type_name=schema.name, source=source)


def emit_units(schema: TypeSchema, language: str = DEFAULT_LANGUAGE) -> List[Unit]:
    return [render_schema(node, language) for node in iter_schemas(schema)]


def generate_units(payload: Any, meta: Meta, language: str = DEFAULT_LANGUAGE) -> List[Unit]:
    return emit_units(infer_schema(validate_payload(payload), meta), language)


def find_collisions(units: Sequence[Unit]) -> List[str]:
    counts: Dict[str, int] = {}
    for unit in units:
        counts[unit.type_name] = counts.get(unit.type_name, 0) + 1
    return sorted(name for name, count in counts.items() if count > 1)


def write_units(
    units: Sequence[Unit],
    output_dir: str,
    extension: str,
    *,
    strict: bool = False,
) -> List[Path]:
    """
    Write one file per unit. A later unit with the same type name overwrites
    the earlier file unless `strict` is set, in which case nothing is written.
    """
    if strict:
        collisions = find_collisions(units)
        if collisions:
            raise TypeNameCollisionError(
                f"Type names generated more than once: {', '.join(collisions)}"
            )

    out_dir = Path(output_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    written: List[Path] = []
    for unit in units:
        path = out_dir / f"{unit.type_name}.{extension}"
        path.write_text(unit.source, encoding="utf-8")
        written.append(path)
    return written


# ---------------------------------------------------------------------------
# CLI


def _reads_stdin(input_path: str) -> bool:
    return input_path == DEFAULT_PAYLOAD and not sys.stdin.isatty()


def load_input_json(parser: argparse.ArgumentParser, input_path: str) -> Any:
    try:
        if _reads_stdin(input_path):
            return json.load(sys.stdin)
        with open(input_path, "r", encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError:
        parser.error(f"Payload file not found: {input_path}")
    except json.JSONDecodeError as exc:
        source = "stdin" if _reads_stdin(input_path) else input_path
        parser.error(
            f"Invalid JSON in {source}: {exc.msg} (line {exc.lineno}, column {exc.colno})"
        )


def load_meta(
    parser: argparse.ArgumentParser,
    meta_path: str,
    *,
    name: Optional[str] = None,
    namespace: Optional[str] = None,
) -> Meta:
    raw: Any = {}
    try:
        with open(meta_path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except FileNotFoundError:
        if name is None or namespace is None:
            parser.error(
                f"Meta file not found: {meta_path} "
                '(create it with "name" and "namespace" settings and try again)'
            )
    except json.JSONDecodeError as exc:
        parser.error(
            f"Invalid JSON in meta file {meta_path}: {exc.msg} "
            f"(line {exc.lineno}, column {exc.colno})"
        )

    if isinstance(raw, dict):
        raw = dict(raw)
        if name is not None:
            raw["name"] = name
        if namespace is not None:
            raw["namespace"] = namespace

    try:
        return validate_meta(raw)
    except MissingConfigurationError as exc:
        parser.error(str(exc))


def main() -> None:
    parser = argparse.ArgumentParser(description="Generate model classes from a sample JSON payload")
    parser.add_argument(
        "-i",
        "--input",
        default=DEFAULT_PAYLOAD,
        help=f"Sample JSON payload (default: {DEFAULT_PAYLOAD}, or stdin when piped)",
    )
    parser.add_argument(
        "-m",
        "--meta",
        default=DEFAULT_META,
        help=f'JSON file with "name" and "namespace" (default: {DEFAULT_META})',
    )
    parser.add_argument("--name", default=None, help="Root class name (overrides the meta file)")
    parser.add_argument("--namespace", default=None, help="Namespace or package (overrides the meta file)")
    parser.add_argument(
        "-o",
        "--output-dir",
        default=DEFAULT_OUTPUT_DIR,
        help=f"Directory for generated files (default: {DEFAULT_OUTPUT_DIR})",
    )
    parser.add_argument(
        "--language",
        default=DEFAULT_LANGUAGE,
        choices=sorted(TARGETS),
        help=f"Language of the generated classes (default: {DEFAULT_LANGUAGE})",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Fail instead of overwriting when two nested types get the same name",
    )
    args = parser.parse_args()

    meta = load_meta(parser, args.meta, name=args.name, namespace=args.namespace)
    if args.language == "python" and not PYTHON_NAMESPACE_RE.match(meta.namespace):
        parser.error(
            f"Namespace {meta.namespace!r} is not a Python package path (expected e.g. app.models)"
        )
    payload = load_input_json(parser, args.input)

    try:
        validate_payload(payload)
    except UnsupportedPayloadError:
        print("Unsupported json!", file=sys.stderr)
        raise SystemExit(1)

    target = get_target(args.language)
    try:
        units = generate_units(payload, meta, target.language)
        written = write_units(units, args.output_dir, target.extension, strict=args.strict)
    except (GenerationError, OSError) as exc:
        print(f"Exception: {exc}", file=sys.stderr)
        raise SystemExit(1)

    for path in written:
        print(f"Wrote {path}")


if __name__ == "__main__":
    main()
