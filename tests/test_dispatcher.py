from __future__ import annotations

from typing import List, Sequence, Tuple
from unittest import TestCase
from unittest.mock import MagicMock

from sqlalchemy import create_engine

from formstore.dispatcher import (
    NOT_FOUND_BODY,
    Request,
    RequestDispatcher,
    UploadPhase,
    UploadState,
)
from formstore.entities import TODO
from formstore.errors import DispatchError, StatementError
from formstore.schema import Entity, EntitySchema
from formstore.store import EntityStore


class _RecordingRenderer:
    def __init__(self) -> None:
        self.calls: List[Tuple[List[Entity], EntitySchema, str]] = []

    def __call__(self, entities: Sequence[Entity], schema: EntitySchema, outcome: str) -> str:
        self.calls.append((list(entities), schema, outcome))
        rows = "".join(f"<tr><td>{entity['title']}</td></tr>" for entity in entities)
        return f"<table>{rows}</table><p>{outcome}</p>"


def _drive(dispatcher: RequestDispatcher, request: Request, chunks: Sequence[bytes] = ()):
    """Call the dispatcher the way a transport does and count the invocations."""

    state = UploadState()
    calls = 1
    response = dispatcher.dispatch(request, state)
    pending = list(chunks) + [b""]
    while response is None:
        response = dispatcher.dispatch(request, state, pending.pop(0))
        calls += 1
    return response, state, calls


class DispatcherTestCase(TestCase):
    def setUp(self) -> None:
        self.engine = create_engine("sqlite://")
        self.addCleanup(self.engine.dispose)
        self.store = EntityStore(self.engine, TODO)
        self.store.create_table()
        self.renderer = _RecordingRenderer()
        self.dispatcher = RequestDispatcher(self.store, self.renderer)


class CreateStateMachineTests(DispatcherTestCase):
    def test_default_routes_follow_table_name(self) -> None:
        self.assertEqual("/todos/create", self.dispatcher.create_path)
        self.assertEqual("/todos/delete", self.dispatcher.delete_path)

    def test_first_call_only_sets_up_the_upload(self) -> None:
        state = UploadState()
        request = Request("POST", "/todos/create")

        self.assertIsNone(self.dispatcher.dispatch(request, state))
        self.assertIs(UploadPhase.ACCUMULATING, state.phase)
        self.assertEqual(b"", bytes(state.buffer))
        self.assertEqual(0, self.store.count())

    def test_body_is_parsed_only_after_the_empty_chunk(self) -> None:
        state = UploadState()
        request = Request("POST", "/todos/create")
        self.dispatcher.dispatch(request, state)

        self.assertIsNone(self.dispatcher.dispatch(request, state, b"title=Buy+mi"))
        self.assertIsNone(self.dispatcher.dispatch(request, state, b"lk&description=2%20"))
        self.assertIsNone(self.dispatcher.dispatch(request, state, b"litres&completed=on"))
        self.assertEqual(0, self.store.count())

        response = self.dispatcher.dispatch(request, state, b"")

        self.assertEqual(303, response.status)
        self.assertEqual("/", response.headers["Location"])
        self.assertIs(UploadPhase.COMPLETE, state.phase)
        [entity] = self.store.list_all()
        self.assertEqual("Buy milk", entity["title"])
        self.assertEqual("2 litres", entity["description"])
        self.assertEqual(1, entity["completed"])

    def test_escape_split_across_chunks(self) -> None:
        response, _, calls = _drive(
            self.dispatcher,
            Request("POST", "/todos/create"),
            [b"title=caf%C", b"3%A9&description=x"],
        )
        self.assertEqual(303, response.status)
        self.assertEqual(4, calls)
        self.assertEqual("café", self.store.list_all()[0]["title"])

    def test_empty_body_creates_defaults(self) -> None:
        response, _, _ = _drive(self.dispatcher, Request("POST", "/todos/create"))

        self.assertEqual(303, response.status)
        [entity] = self.store.list_all()
        self.assertEqual({"title": "", "description": "", "completed": 0}, entity.values)

    def test_exactly_one_response_per_request(self) -> None:
        request = Request("POST", "/todos/create")
        response, state, _ = _drive(self.dispatcher, request, [b"title=x&description=y"])

        self.assertIsNotNone(response)
        with self.assertRaises(DispatchError):
            self.dispatcher.dispatch(request, state, b"")
        self.assertEqual(1, self.store.count())

    def test_body_before_setup_is_rejected(self) -> None:
        with self.assertRaises(DispatchError):
            self.dispatcher.dispatch(Request("POST", "/todos/create"), UploadState(), b"title=x")

    def test_store_failure_still_redirects(self) -> None:
        failing_store = MagicMock(spec=EntityStore)
        failing_store.schema = TODO
        failing_store.create.side_effect = StatementError("create failed", table="todos")
        dispatcher = RequestDispatcher(failing_store, self.renderer)

        with self.assertLogs("formstore.dispatcher", level="WARNING"):
            response, _, _ = _drive(dispatcher, Request("POST", "/todos/create"), [b"title=x"])

        self.assertEqual(303, response.status)
        self.assertEqual("/", response.headers["Location"])
        failing_store.create.assert_called_once_with({"title": "x", "description": "", "completed": 0})

    def test_redirect_can_carry_outcome(self) -> None:
        dispatcher = RequestDispatcher(self.store, self.renderer, redirect_outcome=True)
        response, _, _ = _drive(dispatcher, Request("POST", "/todos/create"), [b"title=x&description=y"])
        self.assertEqual("/?outcome=created", response.headers["Location"])

    def test_form_field_cap_is_configurable(self) -> None:
        dispatcher = RequestDispatcher(self.store, self.renderer, max_form_fields=1)
        _drive(dispatcher, Request("POST", "/todos/create"), [b"title=x&description=y"])
        self.assertEqual("", self.store.list_all()[0]["description"])


class DeleteRouteTests(DispatcherTestCase):
    def test_delete_by_query_argument(self) -> None:
        keep = self.store.create({"title": "keep", "description": ""})
        drop = self.store.create({"title": "drop", "description": ""})

        response, _, calls = _drive(
            self.dispatcher, Request("GET", "/todos/delete", query_string=f"id={drop.id}")
        )

        self.assertEqual(1, calls)
        self.assertEqual(303, response.status)
        self.assertEqual("/", response.headers["Location"])
        self.assertEqual([keep], self.store.list_all())

    def test_delete_path_is_a_prefix(self) -> None:
        created = self.store.create({"title": "x", "description": ""})
        _drive(self.dispatcher, Request("GET", "/todos/delete/", query_string=f"id={created.id}"))
        self.assertIsNone(self.store.find(created.id))

    def test_invalid_or_missing_id_is_a_no_op(self) -> None:
        store = MagicMock(spec=EntityStore)
        store.schema = TODO
        dispatcher = RequestDispatcher(store, self.renderer)

        for query in ("", "id=", "id=abc", "id=1.5", "other=3"):
            response, _, _ = _drive(dispatcher, Request("GET", "/todos/delete", query_string=query))
            self.assertEqual(303, response.status)
        store.delete.assert_not_called()

    def test_delete_absent_identifier_redirects(self) -> None:
        self.store.create({"title": "x", "description": ""})
        response, _, _ = _drive(self.dispatcher, Request("GET", "/todos/delete", query_string="id=999"))
        self.assertEqual(303, response.status)
        self.assertEqual(1, self.store.count())


class ListingAndFallbackTests(DispatcherTestCase):
    def test_root_renders_every_entity(self) -> None:
        self.store.create({"title": "X", "description": "Y"})

        response, _, calls = _drive(self.dispatcher, Request("GET", "/", query_string="outcome=created"))

        self.assertEqual(1, calls)
        self.assertEqual(200, response.status)
        self.assertEqual("text/html", response.headers["Content-Type"])
        self.assertIn("<td>X</td>", response.body)
        entities, schema, outcome = self.renderer.calls[0]
        self.assertEqual(1, len(entities))
        self.assertIs(TODO, schema)
        self.assertEqual("created", outcome)

    def test_listing_failure_renders_empty_page(self) -> None:
        store = MagicMock(spec=EntityStore)
        store.schema = TODO
        store.list_all.side_effect = StatementError("list failed", table="todos")
        dispatcher = RequestDispatcher(store, self.renderer)

        response, _, _ = _drive(dispatcher, Request("GET", "/"))

        self.assertEqual(200, response.status)
        self.assertEqual(([], TODO, "failed"), self.renderer.calls[0])

    def test_unmatched_routes_are_404(self) -> None:
        cases = [
            Request("GET", "/missing"),
            Request("GET", "/todos/create"),
            Request("POST", "/"),
            Request("POST", "/todos/delete"),
            Request("PUT", "/todos/create"),
            Request("POST", "/todos/create/extra"),
        ]
        for request in cases:
            response, state, calls = _drive(self.dispatcher, request)
            self.assertEqual(404, response.status, request)
            self.assertEqual(NOT_FOUND_BODY, response.body)
            self.assertEqual(1, calls)
            self.assertTrue(state.complete)
        self.assertEqual(0, self.store.count())
