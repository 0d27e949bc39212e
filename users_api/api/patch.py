"""JSON Patch (RFC 6902) application with per-operation error reporting.

Operations are applied one at a time with :mod:`jsonpatch` so that a
failing operation is reported and skipped while the rest still run. Errors
use the same ``field -> [messages]`` shape as marshmallow validation, so a
client cannot tell which of the two steps rejected its document.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping, Sequence
from typing import Any

import jsonpatch
import jsonpointer

from users_api.core.errors import FieldErrors

#: Error key for operations whose path cannot name a field.
DOCUMENT_KEY = "$patch"


def _pointer_parts(path: Any) -> list[str] | None:
    if not isinstance(path, str):
        return None
    try:
        return jsonpointer.JsonPointer(path).parts
    except jsonpointer.JsonPointerException:
        return None


def _error_key(operation: Mapping[str, Any]) -> str:
    parts = _pointer_parts(operation.get("path"))
    return ".".join(parts) if parts else DOCUMENT_KEY


def _match_case(path: Any, document: Mapping[str, Any]) -> Any:
    """Rewrite the first pointer segment to the document's key, ignoring case."""
    parts = _pointer_parts(path)
    if not parts or parts[0] in document:
        return path
    lowered = {key.lower(): key for key in document}
    actual = lowered.get(parts[0].lower())
    if actual is None:
        return path
    return jsonpointer.JsonPointer.from_parts([actual, *parts[1:]]).path


def _normalize(operation: Mapping[str, Any], document: Mapping[str, Any]) -> dict[str, Any]:
    normalized = dict(operation)
    for member in ("path", "from"):
        if member in normalized:
            normalized[member] = _match_case(normalized[member], document)
    return normalized


def apply_patch(
    document: Mapping[str, Any],
    operations: Sequence[Any],
    *,
    case_insensitive: bool = True,
) -> tuple[dict[str, Any], FieldErrors]:
    """Apply ``operations`` to a copy of ``document``.

    :param document: JSON object to patch; never mutated.
    :param operations: Ordered ``{op, path, value, from}`` mappings.
    :param case_insensitive: Match top-level member names ignoring case
        (``/FirstName`` patches ``firstName``).
    :returns: The patched copy and the errors of the operations that failed.
        A failing operation leaves the document as it was before it.
    """
    patched: dict[str, Any] = copy.deepcopy(dict(document))
    errors: FieldErrors = {}
    for index, operation in enumerate(operations):
        if not isinstance(operation, Mapping):
            errors.setdefault(DOCUMENT_KEY, []).append(f"Operation {index} is not a JSON object.")
            continue
        if case_insensitive:
            operation = _normalize(operation, patched)
        key = _error_key(operation)
        name = operation.get("op", "?")
        try:
            result = jsonpatch.JsonPatch([operation]).apply(patched)
        except (jsonpatch.JsonPatchException, jsonpointer.JsonPointerException) as exc:
            errors.setdefault(key, []).append(f"Operation {index} ({name}) failed: {exc}")
            continue
        if not isinstance(result, dict):
            errors.setdefault(key, []).append(
                f"Operation {index} ({name}) failed: the document must remain a JSON object."
            )
            continue
        patched = result
    return patched, errors
