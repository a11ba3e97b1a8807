
import json
import logging
import requests
from enum import Enum
from . import get_new_requests_session, merge_session_config, normalize_url, urlquote, format_exception, \
    DEFAULT_HEADERS

logger = logging.getLogger(__name__)

SUCCESS_SENTINEL = "success"


class ResponseMode (Enum):
    """How the body of a response is interpreted.

       TEXT: the literal text "success" signals success; anything else
         is a failure message, except a JSON object without an "error"
         field which is also accepted as success.
       JSON: the body must be a JSON value; an object carrying an "error"
         field is a failure, anything else is the result.
    """
    TEXT = "text"
    JSON = "json"


class CookieDBError (Exception):
    """Base class for all errors raised by the CookieDB client."""
    pass


class TransportError (CookieDBError):
    """The request could not be completed or its response could not be understood.

       Covers connection failures, timeouts, malformed response bodies and
       results of an unexpected shape.
    """
    def __init__(self, message, cause=None, response=None):
        super(TransportError, self).__init__(message)
        self.cause = cause
        self.response = response


class ServerError (CookieDBError):
    """The server reported a failure.

       The message is the server's text, verbatim. The server does not
       publish machine-readable error codes, so no finer classification
       (not found, conflict, unauthorized, ...) is attempted.
    """
    def __init__(self, message, status_code=None, response=None):
        super(ServerError, self).__init__(message)
        self.message = message
        self.status_code = status_code
        self.response = response


class CookieDBPathError (ValueError):
    pass


def _is_success_status(status_code):
    return 200 <= status_code < 300


def _error_message(error):
    return error if isinstance(error, str) else json.dumps(error)


def _http_error_message(r):
    return u'%s %s Error for url: [%s]' % (
        r.status_code,
        'Client' if r.status_code < 500 else 'Server',
        r.url,
    )


def parse_response(r, mode):
    """Interpret a response according to mode, raising on failure.

       Works on any response object exposing `status_code`, `text` and
       `url`, so it serves both the requests and the httpx bindings.
       At most one JSON parse of the body is attempted.

       Returns None in TEXT mode and the decoded JSON value in JSON mode.
    """
    text = r.text
    if mode is ResponseMode.TEXT:
        if text.strip() == SUCCESS_SENTINEL:
            return None
        if not text.strip():
            if _is_success_status(r.status_code):
                return None
            raise TransportError(_http_error_message(r), response=r)
        try:
            data = json.loads(text)
        except ValueError:
            logger.debug("Server error (HTTP %s): %s" % (r.status_code, text))
            raise ServerError(text, r.status_code, r)
        if isinstance(data, dict) and "error" in data:
            logger.debug("Server error (HTTP %s): %s" % (r.status_code, data["error"]))
            raise ServerError(_error_message(data["error"]), r.status_code, r)
        if data == SUCCESS_SENTINEL or (_is_success_status(r.status_code) and isinstance(data, dict)):
            return None
        raise ServerError(text, r.status_code, r)

    try:
        data = json.loads(text)
    except ValueError as e:
        raise TransportError("Malformed response (HTTP %s): expected JSON from [%s]" % (r.status_code, r.url),
                             cause=e, response=r)
    if isinstance(data, dict) and "error" in data:
        logger.debug("Server error (HTTP %s): %s" % (r.status_code, data["error"]))
        raise ServerError(_error_message(data["error"]), r.status_code, r)
    if not _is_success_status(r.status_code):
        raise ServerError(text, r.status_code, r)
    return data


class CookieDBBinding (object):
    """HTTP binding for a CookieDB server. This is a base-class for implementation purposes."""

    def __init__(self, url, token, session_config=None):
        """Create HTTP(S) server binding.

           Arguments:
             url: base URL of the server, e.g. 'http://localhost:8777'
             token: bearer token of the tenant or user
             session_config: optional overrides of DEFAULT_SESSION_CONFIG
               (timeouts and retry policy)

           No request is made and neither argument is validated here.
           The token is sent as 'Authorization: Bearer <token>' on every
           request.
        """
        self.url = url
        self.auth = 'Bearer {token}'.format(token=token)
        self._server_uri = normalize_url(url)

        self.session_config = merge_session_config(session_config)
        self._session = None
        self._get_new_session(self.session_config)

    def get_server_uri(self):
        return self._server_uri

    def _get_new_session(self, session_config=None):
        self._close_session()
        self._session = get_new_requests_session(self._server_uri + '/',
                                                 session_config if session_config else self.session_config)
        self._session.headers.update({'Authorization': self.auth})

    @staticmethod
    def check_path(path):
        if not path:
            raise CookieDBPathError("Path not specified")

        if not path.startswith("/"):
            raise CookieDBPathError("Malformed path error (not rooted with \"/\"): %s" % path)

    @staticmethod
    def build_path(operation, *segments):
        """Compose a request path from an operation name and URL-quoted segments."""
        for segment in segments:
            if segment is None or str(segment) == "":
                raise CookieDBPathError("Path segment not specified for '%s'" % operation)
        return "/".join(["", operation] + [urlquote(segment) for segment in segments])

    def post(self, path, json=None, headers=DEFAULT_HEADERS):
        """Perform POST request, returning response object.

           Arguments:
             path: the path within this bound server
             json: data to serialize as JSON content, no body when None
             headers: headers to set in request

           Raises TransportError when no response is received.
        """
        self.check_path(path)
        url = self._server_uri + path
        logger.debug("POST %s" % url)
        try:
            return self._session.post(url, json=json, headers=headers)
        except requests.RequestException as e:
            raise TransportError("Request to [%s] failed: %s" % (url, format_exception(e)), cause=e)

    def request(self, path, json=None, mode=ResponseMode.JSON, headers=DEFAULT_HEADERS):
        """Perform one POST request and interpret its response according to mode."""
        return parse_response(self.post(path, json=json, headers=headers), mode)

    def close(self):
        self._close_session()

    def _close_session(self):
        if getattr(self, '_session', None) is not None:
            self._session.close()
            self._session = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def __del__(self):
        self._close_session()
