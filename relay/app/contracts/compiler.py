"""
Strict JSON Schema (Draft 2020-12) compilation.

Compilation is asynchronous because a schema may `$ref` documents at
other URLs; those are fetched through the DocumentFetcher (and so share
its cache) before a validator is built.

A schema compiles only if:
- it validates against the 2020-12 meta-schema
- every keyword in its tree is a known 2020-12 keyword
- every `format` it uses is one the validator can assert
- every `$ref` it (or any document it references) uses resolves

Anything else raises SchemaCompileError instead of being silently ignored.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterator, List, Optional, Set, Tuple
from urllib.parse import urldefrag, urljoin, urlsplit

from jsonschema import Draft202012Validator, FormatChecker
from jsonschema.exceptions import SchemaError, ValidationError
from referencing import Registry, Resource
from referencing.exceptions import Unresolvable
from referencing.jsonschema import DRAFT202012

from relay.app.contracts.documents import DocumentFetcher, to_http_url
from relay.app.errors import RelayStartupError, SchemaCompileError
from relay.app.schemas.contracts import ValidationIssue, ValidationResult

logger = logging.getLogger("relay.contracts.compiler")


DIALECT_2020_12 = "https://json-schema.org/draft/2020-12/schema"

# Keywords whose value is a single subschema
_SCHEMA_KEYWORDS = frozenset({
    "additionalProperties",
    "propertyNames",
    "contains",
    "not",
    "if",
    "then",
    "else",
    "items",
    "unevaluatedItems",
    "unevaluatedProperties",
    "contentSchema",
})

# Keywords whose value is an array of subschemas
_SCHEMA_ARRAY_KEYWORDS = frozenset({
    "prefixItems",
    "allOf",
    "anyOf",
    "oneOf",
})

# Keywords whose value maps names to subschemas
_SCHEMA_MAP_KEYWORDS = frozenset({
    "properties",
    "patternProperties",
    "dependentSchemas",
    "$defs",
    "definitions",
})

_VALUE_KEYWORDS = frozenset({
    # core
    "$schema", "$id", "$ref", "$anchor", "$dynamicRef", "$dynamicAnchor",
    "$vocabulary", "$comment",
    # validation
    "type", "const", "enum", "multipleOf", "maximum", "exclusiveMaximum",
    "minimum", "exclusiveMinimum", "maxLength", "minLength", "pattern",
    "maxItems", "minItems", "uniqueItems", "maxContains", "minContains",
    "maxProperties", "minProperties", "required", "dependentRequired",
    # meta-data
    "title", "description", "default", "deprecated", "readOnly",
    "writeOnly", "examples",
    # format / content
    "format", "contentEncoding", "contentMediaType",
})

KNOWN_KEYWORDS = (
    _VALUE_KEYWORDS
    | _SCHEMA_KEYWORDS
    | _SCHEMA_ARRAY_KEYWORDS
    | _SCHEMA_MAP_KEYWORDS
)

_FETCHABLE_SCHEMES = ("http", "https", "ipfs")


def _pointer(parts: Any) -> str:
    escaped = (str(p).replace("~", "~0").replace("/", "~1") for p in parts)
    return "".join(f"/{p}" for p in escaped)


def _subschemas(schema: Dict[str, Any], path: str) -> Iterator[Tuple[Any, str]]:
    for keyword, value in schema.items():
        if keyword in _SCHEMA_KEYWORDS:
            yield value, f"{path}/{keyword}"
        elif keyword in _SCHEMA_ARRAY_KEYWORDS and isinstance(value, list):
            for index, sub in enumerate(value):
                yield sub, f"{path}/{keyword}/{index}"
        elif keyword in _SCHEMA_MAP_KEYWORDS and isinstance(value, dict):
            for name, sub in value.items():
                yield sub, f"{path}/{keyword}/{_pointer([name])[1:]}"


# ----------------------------------------------------------------------
# Compiled validator
# ----------------------------------------------------------------------

class CompiledValidator:
    """
    Executable validator for one schema document.

    Calling it never raises for an invalid instance; it reports every
    violation (not just the first) in a ValidationResult.
    """

    def __init__(self, validator: Draft202012Validator, source: str) -> None:
        self._validator = validator
        self.source = source

    def __call__(self, instance: Any) -> ValidationResult:
        errors: List[ValidationError] = sorted(
            self._validator.iter_errors(instance),
            key=lambda e: (_pointer(e.absolute_path), _pointer(e.absolute_schema_path)),
        )
        return ValidationResult(
            valid=not errors,
            errors=[
                ValidationIssue(
                    instance_path=_pointer(e.absolute_path),
                    schema_path=f"#{_pointer(e.absolute_schema_path)}",
                    keyword=str(e.validator),
                    message=e.message,
                )
                for e in errors
            ],
        )

    def is_valid(self, instance: Any) -> bool:
        return self._validator.is_valid(instance)


# ----------------------------------------------------------------------
# Compiler
# ----------------------------------------------------------------------

class SchemaCompiler:
    """
    Turns schema documents into CompiledValidators.

    Referenced documents are fetched on demand through the shared
    DocumentFetcher and checked with the same strictness as the root.
    """

    def __init__(
        self,
        fetcher: DocumentFetcher,
        format_checker: Optional[FormatChecker] = None,
    ) -> None:
        self._fetcher = fetcher
        self._format_checker = format_checker or Draft202012Validator.FORMAT_CHECKER

    async def compile(
        self,
        schema: Any,
        *,
        base_uri: Optional[str] = None,
    ) -> CompiledValidator:
        source = base_uri or "<inline>"
        try:
            return await self._compile(schema, base_uri)
        except SchemaCompileError:
            logger.error("schema_compile_failed", extra={"source": source})
            raise
        except RelayStartupError as exc:
            logger.error("schema_reference_fetch_failed", extra={"source": source})
            raise SchemaCompileError(
                f"Failed to load schema referenced from {source}: {exc}"
            ) from exc

    async def _compile(
        self,
        schema: Any,
        base_uri: Optional[str],
    ) -> CompiledValidator:
        if isinstance(schema, dict) and "$id" not in schema and base_uri:
            schema = {"$id": base_uri, **schema}

        root_uri = self._check_document(schema, base_uri or "")

        root = Resource.from_contents(schema, default_specification=DRAFT202012)
        registry: Registry = Registry().with_resource(root_uri, root)

        references = list(self._references(schema, root_uri))
        known: Set[str] = {root_uri} | self._embedded_ids(schema, root_uri)
        pending = list(references)

        while pending:
            _, target = pending.pop()
            document_uri, _ = urldefrag(target)
            if not document_uri or document_uri in known:
                continue
            if urlsplit(document_uri).scheme not in _FETCHABLE_SCHEMES:
                continue

            known.add(document_uri)
            document = await self._fetcher.fetch(document_uri)

            # Relative refs inside ipfs documents resolve against the gateway form
            fetch_uri = to_http_url(document_uri)
            if isinstance(document, dict) and "$id" not in document:
                document = {"$id": fetch_uri, **document}

            doc_base = self._check_document(document, fetch_uri)
            resource = Resource.from_contents(document, default_specification=DRAFT202012)
            for uri in {document_uri, fetch_uri, doc_base}:
                registry = registry.with_resource(uri, resource)
                known.add(uri)

            known |= self._embedded_ids(document, doc_base)
            nested = list(self._references(document, doc_base))
            references.extend(nested)
            pending.extend(nested)

        registry = registry.crawl()
        resolver = registry.resolver(base_uri=root_uri)
        for origin, target in references:
            try:
                resolver.lookup(target)
            except Unresolvable as exc:
                raise SchemaCompileError(
                    f"Unresolvable $ref '{target}' (from {origin or '<root>'})"
                ) from exc

        validator = Draft202012Validator(
            schema,
            registry=registry,
            format_checker=self._format_checker,
        )

        logger.info(
            "schema_compiled",
            extra={"source": root_uri or "<inline>", "references": len(references)},
        )
        return CompiledValidator(validator, source=root_uri or "<inline>")

    # ------------------------------------------------------------------
    # Strictness checks
    # ------------------------------------------------------------------

    def _check_document(self, document: Any, uri: str) -> str:
        """Validate one document; returns its effective base URI."""
        if isinstance(document, bool):
            return uri
        if not isinstance(document, dict):
            raise SchemaCompileError(
                f"Schema at {uri or '<root>'} is not a JSON object"
            )

        dialect = document.get("$schema")
        if dialect is not None and (
            not isinstance(dialect, str)
            or dialect.rstrip("#") != DIALECT_2020_12
        ):
            raise SchemaCompileError(
                f"Unsupported schema dialect '{dialect}' at {uri or '<root>'}"
            )

        try:
            Draft202012Validator.check_schema(document)
        except SchemaError as exc:
            raise SchemaCompileError(
                f"Invalid schema at {uri or '<root>'}: {exc.message}"
            ) from exc

        self._check_keywords(document, "#")

        own_id = document.get("$id")
        return urljoin(uri, own_id) if own_id else uri

    def _check_keywords(self, schema: Any, path: str) -> None:
        if not isinstance(schema, dict):
            return

        for keyword in schema:
            if keyword not in KNOWN_KEYWORDS:
                raise SchemaCompileError(
                    f'strict mode: unknown keyword "{keyword}" at {path}'
                )

        fmt = schema.get("format")
        if fmt is not None and fmt not in self._format_checker.checkers:
            raise SchemaCompileError(
                f'unknown format "{fmt}" at {path}'
            )

        for sub, sub_path in _subschemas(schema, path):
            self._check_keywords(sub, sub_path)

    # ------------------------------------------------------------------
    # Reference discovery
    # ------------------------------------------------------------------

    def _references(self, schema: Any, base: str) -> Iterator[Tuple[str, str]]:
        """Yield (base, absolute target) for every `$ref` in the tree."""
        if not isinstance(schema, dict):
            return

        own_id = schema.get("$id")
        if isinstance(own_id, str):
            base = urljoin(base, own_id)

        ref = schema.get("$ref")
        if isinstance(ref, str):
            yield base, urljoin(base, ref)

        for sub, _ in _subschemas(schema, ""):
            yield from self._references(sub, base)

    def _embedded_ids(self, schema: Any, base: str) -> Set[str]:
        ids: Set[str] = set()
        if not isinstance(schema, dict):
            return ids

        own_id = schema.get("$id")
        if isinstance(own_id, str):
            base = urljoin(base, own_id)
            ids.add(urldefrag(base)[0])

        for sub, _ in _subschemas(schema, ""):
            ids |= self._embedded_ids(sub, base)
        return ids
