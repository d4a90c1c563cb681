from __future__ import annotations

import logging

from flask import Blueprint, Response, current_app, request

from .dispatcher import Request, RequestDispatcher, Response as DispatchResponse, UploadState

main_bp = Blueprint('main', __name__)

logger = logging.getLogger(__name__)

_METHODS = ['GET', 'POST', 'PUT', 'PATCH', 'DELETE']


def _to_flask(result: DispatchResponse) -> Response:
    return Response(result.body, status=result.status, headers=result.headers)


@main_bp.route('/', defaults={'path': ''}, methods=_METHODS)
@main_bp.route('/<path:path>', methods=_METHODS)
def dispatch(path: str) -> Response:
    """Feed the request, chunk by chunk, through the app's dispatcher.

    The upload state lives only for this request. The dispatcher is called
    once without a body, then with each chunk read from the input stream, and
    finally with an empty chunk; the first response it returns is sent.
    """

    dispatcher: RequestDispatcher = current_app.dispatcher
    chunk_size: int = current_app.config['FORMSTORE_CHUNK_SIZE']

    upload = UploadState()
    incoming = Request(
        method=request.method,
        path=request.path,
        query_string=request.query_string.decode('utf-8', errors='replace'),
    )

    result = dispatcher.dispatch(incoming, upload)
    chunks = 0
    while result is None:
        chunk = request.stream.read(chunk_size)
        chunks += 1
        result = dispatcher.dispatch(incoming, upload, chunk)

    logger.debug(
        '%s %s -> %s (%d chunk reads)', incoming.method, incoming.path, result.status, chunks
    )
    return _to_flask(result)
