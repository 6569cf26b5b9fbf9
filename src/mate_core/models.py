"""Document request and response event models."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field

UUID_PREFIX = "uuid://"
STDIN_ARGUMENT = "-"


class PathSource(BaseModel):
    kind: Literal["path"] = "path"
    path: str


class StdinSource(BaseModel):
    kind: Literal["stdin"] = "stdin"


class UuidSource(BaseModel):
    kind: Literal["uuid"] = "uuid"
    uuid: str


DocumentSource = Annotated[Union[PathSource, StdinSource, UuidSource], Field(discriminator="kind")]


class DocumentRequest(BaseModel):
    """One document of the outbound batch.

    Tri-state flags use ``None`` for "unset"; the encoder resolves them.
    """

    source: DocumentSource
    display_name: str | None = None
    selection: str | None = None
    file_type: str | None = None
    project_uuid: str | None = None
    wait: bool | None = None
    reactivate: bool | None = None
    add_to_recents: bool | None = None
    change_directory: bool | None = None
    authorization: str | None = None


def parse_document_reference(text: str) -> PathSource | StdinSource | UuidSource:
    if text == STDIN_ARGUMENT:
        return StdinSource()
    if text.startswith(UUID_PREFIX):
        return UuidSource(uuid=text[len(UUID_PREFIX) :])
    return PathSource(path=text)


@dataclass(frozen=True, slots=True)
class CloseSignal:
    pass


@dataclass(frozen=True, slots=True)
class Argument:
    key: str
    value: str


@dataclass(frozen=True, slots=True)
class DataChunk:
    data: bytes


ResponseEvent = Union[CloseSignal, Argument, DataChunk]
