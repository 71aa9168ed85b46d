"""Load OpenAPI documents from files or text and check their version."""

import json
from pathlib import Path

import yaml

from oas_graphql.errors import TranslationError


def load_document(source: Path | str) -> dict:
    """Load an OpenAPI document from a file path or from YAML/JSON text."""
    if isinstance(source, str) and ("\n" in source or source.lstrip().startswith("{")):
        text = source
    else:
        text = Path(source).read_text(encoding="utf-8")

    # YAML is a superset of JSON, but fall back for JSON the YAML loader rejects
    try:
        doc = yaml.safe_load(text)
    except yaml.YAMLError:
        try:
            doc = json.loads(text)
        except (json.JSONDecodeError, ValueError) as exc:
            raise TranslationError(f"Could not parse document: {exc}") from exc

    if not isinstance(doc, dict):
        raise TranslationError("Invalid OpenAPI document provided")
    return doc


def detect_version(doc: dict) -> str | None:
    """Return '3' for OpenAPI 3.x, '2' for Swagger 2.0, or None."""
    if str(doc.get("openapi", "")).startswith("3"):
        return "3"
    if str(doc.get("swagger", "")) in ("2.0", "2"):
        return "2"
    return None


def check_document(doc: dict) -> dict:
    """Ensure ``doc`` is an OpenAPI 3 document that can be translated."""
    version = detect_version(doc)
    if version == "3":
        return doc
    if version == "2":
        raise TranslationError(
            "Swagger 2.0 documents are not supported. "
            "Convert the document to OpenAPI 3 first (e.g. with swagger2openapi)."
        )
    raise TranslationError("Invalid OpenAPI document provided")
