from __future__ import annotations

import copy
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any, Literal

import jsonpatch
import jsonpointer
from pydantic import BaseModel, ConfigDict, Field


PatchOp = Literal["add", "remove", "replace", "move", "copy", "test"]


class PatchOperation(BaseModel):
    """One RFC 6902 operation. ``from`` is exposed as ``from_`` in Python."""

    op: PatchOp
    path: str
    value: Any = None
    from_: str | None = Field(default=None, alias="from")

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_unset=True)


class PatchErrorCode(str, Enum):
    TEST_FAILED = "TEST_FAILED"
    CONFLICT = "CONFLICT"
    INVALID_PATH = "INVALID_PATH"
    INVALID_OPERATION = "INVALID_OPERATION"
    NOT_APPLIED = "NOT_APPLIED"


class PatchError(BaseModel):
    code: PatchErrorCode
    message: str
    operation_index: int
    op: str | None = None
    path: str | None = None

    model_config = ConfigDict(extra="forbid")


@dataclass
class PatchOutcome:
    document: Any
    results: list[PatchError | None]

    @property
    def first_error(self) -> PatchError | None:
        return next((result for result in self.results if result is not None), None)

    @property
    def ok(self) -> bool:
        return self.first_error is None


def to_wire(operation: PatchOperation | dict[str, Any]) -> dict[str, Any]:
    if isinstance(operation, PatchOperation):
        return operation.to_wire()
    return dict(operation)


def apply_operations(
    document: Any,
    operations: Sequence[PatchOperation | dict[str, Any]],
) -> PatchOutcome:
    """Apply ``operations`` in order to a deep clone of ``document``.

    Returns one result per operation: ``None`` when it applied, otherwise a
    ``PatchError``. The first failure aborts the batch and every later
    operation is reported as ``NOT_APPLIED``. Neither ``document`` nor the
    operation payloads are mutated.
    """
    working = copy.deepcopy(document)
    results: list[PatchError | None] = []
    failed = False

    for index, operation in enumerate(operations):
        wire = to_wire(operation)
        if failed:
            results.append(
                PatchError(
                    code=PatchErrorCode.NOT_APPLIED,
                    message="Skipped after an earlier operation failed.",
                    operation_index=index,
                    op=_str_or_none(wire.get("op")),
                    path=_str_or_none(wire.get("path")),
                ),
            )
            continue

        working, error = _apply_single(working, wire, index)
        results.append(error)
        failed = error is not None

    return PatchOutcome(document=working, results=results)


def _apply_single(working: Any, wire: dict[str, Any], index: int) -> tuple[Any, PatchError | None]:
    code: PatchErrorCode
    try:
        patch = jsonpatch.JsonPatch([copy.deepcopy(wire)])
        # a replace at the root pointer returns a new object instead of mutating
        return patch.apply(working, in_place=True), None
    except jsonpatch.JsonPatchTestFailed as exc:
        code, message = PatchErrorCode.TEST_FAILED, str(exc)
    except jsonpatch.JsonPatchConflict as exc:
        code, message = PatchErrorCode.CONFLICT, str(exc)
    except jsonpatch.InvalidJsonPatch as exc:
        code, message = PatchErrorCode.INVALID_OPERATION, str(exc)
    except jsonpointer.JsonPointerException as exc:
        code, message = PatchErrorCode.INVALID_PATH, str(exc)
    except (TypeError, KeyError, IndexError) as exc:
        code, message = PatchErrorCode.INVALID_OPERATION, f"{type(exc).__name__}: {exc}"

    error = PatchError(
        code=code,
        message=message,
        operation_index=index,
        op=_str_or_none(wire.get("op")),
        path=_str_or_none(wire.get("path")),
    )
    return working, error


def _str_or_none(value: Any) -> str | None:
    return value if isinstance(value, str) else None
