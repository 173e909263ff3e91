"""
Explicit routing table for the single API entry point.

Routes are keyed by (method, path template). Templates use `{name}` segments,
which are URL-decoded and handed to handlers as `event["pathParameters"]`.
"""

from typing import Any, Callable, Dict, List, Optional, Tuple
from urllib.parse import parse_qsl, unquote

from .exceptions import MethodNotAllowedError, NotFoundError
from .responses import cors_headers, preflight_response

Handler = Callable[[Dict[str, Any], Any], Dict[str, Any]]


def get_method(event: Dict[str, Any]) -> str:
    http = (event.get("requestContext") or {}).get("http") or {}
    return str(http.get("method") or event.get("httpMethod") or "GET").upper()


def get_path(event: Dict[str, Any]) -> str:
    return event.get("rawPath") or event.get("path") or "/"


def query_params(event: Dict[str, Any]) -> Dict[str, str]:
    """Query string parameters from either API Gateway payload format."""
    params = event.get("queryStringParameters")
    if isinstance(params, dict):
        return {k: v for k, v in params.items() if v is not None}
    raw = event.get("rawQueryString") or ""
    return dict(parse_qsl(raw, keep_blank_values=True))


def _segments(path: str) -> List[str]:
    return [segment for segment in path.split("/") if segment]


class Router:
    """Maps (method, path template) pairs to handler functions."""

    def __init__(self) -> None:
        self._routes: List[Tuple[str, List[str], Handler]] = []

    def add(self, method: str, template: str, handler: Handler) -> None:
        self._routes.append((method.upper(), _segments(template), handler))

    def route(self, method: str, template: str) -> Callable[[Handler], Handler]:
        def decorator(handler: Handler) -> Handler:
            self.add(method, template, handler)
            return handler

        return decorator

    @staticmethod
    def _match(template: List[str], segments: List[str]) -> Optional[Dict[str, str]]:
        if len(template) != len(segments):
            return None
        params: Dict[str, str] = {}
        for expected, actual in zip(template, segments):
            if expected.startswith("{") and expected.endswith("}"):
                params[expected[1:-1]] = unquote(actual)
            elif expected.lower() != actual.lower():
                return None
        return params

    def _candidates(self, event: Dict[str, Any]) -> List[List[str]]:
        segments = _segments(get_path(event))
        candidates = [segments]
        # Non-default HTTP API stages prefix rawPath with the stage name.
        stage = (event.get("requestContext") or {}).get("stage")
        if stage and stage != "$default" and segments[:1] == [stage]:
            candidates.append(segments[1:])
        return candidates

    def resolve(
        self, event: Dict[str, Any]
    ) -> Tuple[Optional[Handler], Dict[str, str], List[str]]:
        """Return (handler or None, path params, methods allowed on the path)."""
        method = get_method(event)
        for segments in self._candidates(event):
            allowed: List[str] = []
            found: Optional[Tuple[Handler, Dict[str, str]]] = None
            for route_method, template, handler in self._routes:
                params = self._match(template, segments)
                if params is None:
                    continue
                allowed.append(route_method)
                if route_method == method and found is None:
                    found = (handler, params)
            if allowed:
                if found:
                    return found[0], found[1], allowed
                return None, {}, allowed
        return None, {}, []

    def dispatch(self, event: Dict[str, Any], context: Any) -> Dict[str, Any]:
        handler, params, allowed = self.resolve(event)

        if get_method(event) == "OPTIONS":
            return preflight_response(allowed or None)

        if not allowed:
            raise NotFoundError("Not found")
        if handler is None:
            raise MethodNotAllowedError("Method not allowed")

        event["pathParameters"] = {**(event.get("pathParameters") or {}), **params}
        response = handler(event, context)
        response.setdefault("headers", {}).update(cors_headers(allowed))
        return response


def int_param(
    params: Dict[str, str], name: str, default: int, low: int, high: int
) -> int:
    """Integer query parameter clamped to [low, high]; unparseable means default."""
    raw = params.get(name)
    try:
        value = int(float(str(raw).strip()))
    except (TypeError, ValueError, OverflowError):
        value = default
    return max(low, min(high, value))
