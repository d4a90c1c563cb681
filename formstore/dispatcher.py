"""Routing and body accumulation for the form-driven HTTP interface.

The dispatcher is transport-agnostic. A transport creates one
:class:`UploadState` per request and calls :meth:`RequestDispatcher.dispatch`
repeatedly: once with no body, then once per body chunk, then with an empty
chunk to signal the end of the body. ``None`` means "keep going"; the first
:class:`Response` returned is the only response for that request.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Dict, Optional, Protocol, Sequence, Union

from .codec import MAX_FORM_FIELDS, parse
from .errors import DispatchError, StoreError
from .schema import Entity, EntitySchema
from .store import EntityStore
from .utils.numbers import parse_identifier

logger = logging.getLogger(__name__)

NOT_FOUND_BODY = "<h1>404 Not Found</h1>"
REDIRECT_BODY = "<html><head><meta http-equiv='refresh' content='0;url={location}'></head></html>"
HTML_CONTENT_TYPE = "text/html"

OUTCOME_CREATED = "created"
OUTCOME_DELETED = "deleted"
OUTCOME_FAILED = "failed"


class UploadPhase(enum.Enum):
    START = "start"
    ACCUMULATING = "accumulating"
    COMPLETE = "complete"


@dataclass
class UploadState:
    """Per-request body accumulation state, owned by the transport."""

    phase: UploadPhase = UploadPhase.START
    buffer: bytearray = field(default_factory=bytearray)

    @property
    def complete(self) -> bool:
        return self.phase is UploadPhase.COMPLETE


@dataclass(frozen=True)
class Request:
    method: str
    path: str
    query_string: str = ""


@dataclass
class Response:
    status: int
    body: str = ""
    headers: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def redirect(cls, location: str) -> "Response":
        return cls(
            status=303,
            body=REDIRECT_BODY.format(location=location),
            headers={"Location": location, "Content-Type": HTML_CONTENT_TYPE},
        )

    @classmethod
    def html(cls, body: str, status: int = 200) -> "Response":
        return cls(status=status, body=body, headers={"Content-Type": HTML_CONTENT_TYPE})

    @classmethod
    def not_found(cls) -> "Response":
        return cls.html(NOT_FOUND_BODY, status=404)


class Renderer(Protocol):
    def __call__(self, entities: Sequence[Entity], schema: EntitySchema, outcome: str) -> str:
        ...


class RequestDispatcher:
    """Route requests for one entity kind onto its :class:`EntityStore`.

    Routes (method and path together, first match wins):

    ``POST <create_path>``
        accumulate the urlencoded body, create one entity, redirect to root
    ``GET <delete_path>...``
        delete the entity named by the ``id`` query argument, redirect to root
    ``GET <root_path>``
        render every entity
    anything else
        404
    """

    def __init__(
        self,
        store: EntityStore,
        renderer: Renderer,
        *,
        create_path: Optional[str] = None,
        delete_path: Optional[str] = None,
        root_path: str = "/",
        max_form_fields: int = MAX_FORM_FIELDS,
        redirect_outcome: bool = False,
    ) -> None:
        self.store = store
        self.renderer = renderer
        table = store.schema.table_name
        self.create_path = create_path or f"/{table}/create"
        self.delete_path = delete_path or f"/{table}/delete"
        self.root_path = root_path
        self.max_form_fields = max_form_fields
        self.redirect_outcome = redirect_outcome

    @property
    def schema(self) -> EntitySchema:
        return self.store.schema

    def dispatch(
        self, request: Request, state: UploadState, chunk: Union[bytes, bytearray] = b""
    ) -> Optional[Response]:
        if state.complete:
            raise DispatchError(f"{request.method} {request.path} already has a response")

        method = request.method.upper()
        if method == "POST" and request.path == self.create_path:
            return self._create(state, chunk)
        if chunk:
            raise DispatchError(f"{request.method} {request.path} does not accept a body")
        if method == "GET" and request.path.startswith(self.delete_path):
            return self._finish(state, self._delete(request))
        if method == "GET" and request.path == self.root_path:
            return self._finish(state, self._listing(request))
        return self._finish(state, Response.not_found())

    # ------------------------------------------------------------------
    # Routes
    # ------------------------------------------------------------------
    def _create(self, state: UploadState, chunk: Union[bytes, bytearray]) -> Optional[Response]:
        if state.phase is UploadPhase.START:
            if chunk:
                raise DispatchError("Body bytes arrived before the upload was set up")
            state.phase = UploadPhase.ACCUMULATING
            return None

        if chunk:
            state.buffer.extend(chunk)
            return None

        pairs = parse(bytes(state.buffer), limit=self.max_form_fields)
        values = self.schema.form_values(pairs)
        try:
            entity = self.store.create(values)
        except StoreError as exc:
            logger.warning("Create %s from form failed: %s", self.schema.kind, exc)
            outcome = OUTCOME_FAILED
        else:
            logger.info("Created %s id=%s", self.schema.kind, entity.id)
            outcome = OUTCOME_CREATED
        return self._finish(state, self._redirect(outcome))

    def _delete(self, request: Request) -> Response:
        query = dict(parse(request.query_string, limit=self.max_form_fields))
        identifier = parse_identifier(query.get("id"))
        if identifier is None:
            logger.debug("Ignoring delete without a valid id: %r", request.query_string)
            return self._redirect(None)

        if self.store.delete(identifier):
            return self._redirect(OUTCOME_DELETED)
        return self._redirect(OUTCOME_FAILED)

    def _listing(self, request: Request) -> Response:
        query = dict(parse(request.query_string, limit=self.max_form_fields))
        outcome = query.get("outcome", "")
        try:
            entities = self.store.list_all()
        except StoreError as exc:
            logger.warning("Listing %s failed: %s", self.schema.kind, exc)
            entities = []
            outcome = OUTCOME_FAILED
        return Response.html(self.renderer(entities, self.schema, outcome))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _redirect(self, outcome: Optional[str]) -> Response:
        location = self.root_path
        if self.redirect_outcome and outcome:
            location = f"{location}?outcome={outcome}"
        return Response.redirect(location)

    @staticmethod
    def _finish(state: UploadState, response: Response) -> Response:
        state.phase = UploadPhase.COMPLETE
        state.buffer.clear()
        return response
