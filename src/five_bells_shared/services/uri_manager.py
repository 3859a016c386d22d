"""Parses and builds URIs with awareness of local resource types.

The manager knows the public base URI of the service and the route of each
resource type. It can tell whether an arbitrary URI points at this service
and, if so, which resource it identifies; it can also construct absolute
URIs from a type and its parameters.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Mapping
from urllib.parse import quote, unquote, urlsplit

from starlette.convertors import Convertor
from starlette.routing import compile_path

from five_bells_shared.application.exceptions import (
    AlreadyExistsError,
    InvalidUriError,
    InvalidUriParameterError,
)

# Express-style placeholders, e.g. "/foos/:id"
_COLON_PARAM = re.compile(r"(?<!\w):([a-zA-Z_][a-zA-Z0-9_]*)")


@dataclass(slots=True)
class ParsedUri:
    uri: str
    scheme: str
    netloc: str
    path: str
    query: str
    fragment: str
    local: bool = False
    type: str | None = None
    local_path: str | None = None
    params: dict[str, Any] = field(default_factory=dict)

    def __getattr__(self, name: str) -> Any:
        # Captured route parameters read as attributes, e.g. parsed.id
        if name == "params" or name.startswith("__"):
            raise AttributeError(name)
        try:
            return self.params[name]
        except KeyError:
            raise AttributeError(name) from None


@dataclass(frozen=True, slots=True)
class ResourceRoute:
    type: str
    template: str
    regex: re.Pattern[str]
    path_format: str
    convertors: dict[str, Convertor[Any]]

    @classmethod
    def compile(cls, type: str, template: str) -> ResourceRoute:
        if not template.startswith("/"):
            raise ValueError(f"Resource path must start with '/': {template!r}")
        regex, path_format, convertors = compile_path(_COLON_PARAM.sub(r"{\1}", template))
        return cls(type, template, regex, path_format, convertors)

    @property
    def param_names(self) -> list[str]:
        return list(self.convertors)

    def match(self, local_path: str) -> dict[str, Any] | None:
        match = self.regex.match(local_path)
        if match is None:
            return None
        return {
            name: self.convertors[name].convert(unquote(value))
            for name, value in match.groupdict().items()
        }

    def build(self, params: Mapping[str, Any]) -> str:
        path = self.path_format
        for name, convertor in self.convertors.items():
            value = params.get(name)
            if value is None:
                raise InvalidUriParameterError(f"Missing parameter {name!r} for {self.type}")
            if isinstance(value, str):
                value = quote(value, safe="")
            try:
                text = convertor.to_string(value)
            except (AssertionError, TypeError, ValueError) as exc:
                raise InvalidUriParameterError(
                    f"Invalid value for parameter {name!r} of {self.type}: {value!r}"
                ) from exc
            path = path.replace("{%s}" % name, text)
        return path


class UriManager:
    def __init__(self, base: str) -> None:
        """``base`` should be the public base URI of the service."""
        self.base = base.rstrip("/")
        self.base_path = urlsplit(self.base).path
        self.routes: list[ResourceRoute] = []
        self.types: dict[str, ResourceRoute] = {}

    def add_resource(self, type: str, path: str) -> None:
        """Register a resource type and its route, e.g. ``'/foos/:id'``.

        Routes are matched in the order they were added.
        """
        if type in self.types:
            raise AlreadyExistsError(f"Resource type already registered: {type}")
        route = ResourceRoute.compile(type, path)
        self.routes.append(route)
        self.types[type] = route

    def parse(self, uri: str, required_type: str | None = None) -> ParsedUri:
        """Describe ``uri``, identifying the local resource it points at, if any.

        Scheme and host are compared case-insensitively against the base,
        the path case-sensitively. If ``required_type`` is given, anything
        but a local URI of that type raises ``InvalidUriError``.
        """
        parts = urlsplit(uri)
        parsed = ParsedUri(
            uri=uri,
            scheme=parts.scheme,
            netloc=parts.netloc,
            path=parts.path,
            query=parts.query,
            fragment=parts.fragment,
        )
        parsed.local = self._is_local(uri, parts.path)

        local_path = uri[len(self.base):]
        if parsed.local and "?" not in local_path and "#" not in local_path:
            for route in self.routes:
                params = route.match(local_path)
                if params is not None:
                    parsed.type = route.type
                    parsed.local_path = local_path
                    parsed.params = params
                    break

        if required_type and (not parsed.local or parsed.type != required_type):
            raise InvalidUriError(f"URI is not a valid {required_type} URI: {uri}")

        return parsed

    def make(self, type: str, *params: Any) -> str:
        """Build an absolute URI from positional parameters in route order."""
        route = self._get_route(type)
        if len(params) != len(route.convertors):
            raise InvalidUriParameterError("Incorrect parameter count provided")
        return self.make_with_params(type, dict(zip(route.param_names, params)))

    def make_with_params(self, type: str, params: Mapping[str, Any]) -> str:
        route = self._get_route(type)
        return self.base + route.build(params)

    def _get_route(self, type: str) -> ResourceRoute:
        route = self.types.get(type)
        if route is None:
            raise InvalidUriError("Unknown resource type provided")
        return route

    def _is_local(self, uri: str, path: str) -> bool:
        if not uri.lower().startswith(self.base.lower()):
            return False
        if not path.startswith(self.base_path):
            return False
        # "/base" must not claim "/basement"
        rest = uri[len(self.base):]
        return rest == "" or rest[0] in "/?#"
