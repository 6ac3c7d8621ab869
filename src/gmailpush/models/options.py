"""Retrieval options and the per-call request context."""

from __future__ import annotations

from collections.abc import Collection, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from gmailpush.exceptions import ConfigurationError
from gmailpush.models.history import VALID_HISTORY_TYPES, HistoryType

REQUIRED_OPTIONS: tuple[str, ...] = ("notification", "token")


class RetrievalOptions(BaseModel):
    """Validated options for a message retrieval call.

    Keys may be given either in Gmail's camelCase (`historyTypes`) or in
    snake_case (`history_types`). Unknown keys are rejected.
    """

    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    notification: Any
    token: Any
    history_types: tuple[HistoryType, ...] = Field(
        default=VALID_HISTORY_TYPES, alias="historyTypes"
    )
    added_label_ids: tuple[str, ...] | None = Field(default=None, alias="addedLabelIds")
    removed_label_ids: tuple[str, ...] | None = Field(default=None, alias="removedLabelIds")
    with_label_ids: tuple[str, ...] | None = Field(default=None, alias="withLabelIds")
    without_label_ids: tuple[str, ...] | None = Field(default=None, alias="withoutLabelIds")

    @model_validator(mode="after")
    def _check_label_options(self) -> RetrievalOptions:
        if (
            self.added_label_ids
            and HistoryType.LABEL_ADDED not in self.history_types
        ):
            raise ValueError("addedLabelIds option should be used with labelAdded historyType")
        if (
            self.removed_label_ids
            and HistoryType.LABEL_REMOVED not in self.history_types
        ):
            raise ValueError(
                "removedLabelIds option should be used with labelRemoved historyType"
            )
        check_label_filters(self.with_label_ids, self.without_label_ids)
        return self

    @classmethod
    def from_options(cls, options: Mapping[str, Any] | None) -> RetrievalOptions:
        """Validate a raw option mapping.

        Raises:
            ConfigurationError: On unknown keys, missing required keys or
                conflicting values.
        """
        allowed = option_names()
        if options is None:
            raise ConfigurationError(f"Options must have {', '.join(REQUIRED_OPTIONS)}")
        if not isinstance(options, Mapping):
            raise ConfigurationError("Options must be a mapping")

        unexpected = [key for key in options if key not in allowed]
        if unexpected:
            raise ConfigurationError(
                f"Options may only contain the following: {', '.join(sorted(allowed))}"
            )

        omitted = [key for key in REQUIRED_OPTIONS if key not in options]
        if omitted:
            raise ConfigurationError(f"Options must have the following: {', '.join(omitted)}")

        try:
            return cls.model_validate(dict(options))
        except ValidationError as exc:
            raise ConfigurationError(_describe(exc)) from exc


class SyncContext(BaseModel):
    """Immutable context threaded through one retrieval call."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    start_history_id: int
    options: RetrievalOptions


def check_label_filters(
    with_label_ids: Collection[str] | None,
    without_label_ids: Collection[str] | None,
) -> None:
    """Reject include/exclude label sets that share a label id."""

    if with_label_ids and without_label_ids and set(with_label_ids) & set(without_label_ids):
        raise ConfigurationError(
            "withLabelIds and withoutLabelIds should not have the same labelId"
        )


def option_names() -> set[str]:
    names: set[str] = set()
    for name, field in RetrievalOptions.model_fields.items():
        names.add(name)
        if field.alias:
            names.add(field.alias)
    return names


def _describe(exc: ValidationError) -> str:
    for error in exc.errors():
        ctx_error = (error.get("ctx") or {}).get("error")
        if isinstance(ctx_error, ValueError):
            return str(ctx_error)
        if error.get("loc") and error["loc"][0] in ("historyTypes", "history_types"):
            valid = ", ".join(t.value for t in VALID_HISTORY_TYPES)
            return f"historyTypes option may only contain the following: {valid}"
    return str(exc)
