import logging
import re
from enum import Enum
from typing import Dict, Iterator, List, Optional, Tuple

from aws_cdk import aws_apigateway as apigw

logger = logging.getLogger(__name__)

_LITERAL = re.compile(r"^[A-Za-z0-9._~-]+$")
_PARAMETER = re.compile(r"^\{[A-Za-z_][A-Za-z0-9_]*\}$")


class AccessPolicy(Enum):
    PUBLIC = "public"
    PROTECTED = "protected"


class DuplicateRouteError(ValueError):
    pass


class MissingAuthorizerError(ValueError):
    pass


def split_path(path: str) -> List[str]:
    stripped = path.strip("/")
    segments = stripped.split("/") if stripped else []
    for segment in segments:
        if not (_LITERAL.match(segment) or _PARAMETER.match(segment)):
            raise ValueError(f"invalid path segment {segment!r} in {path!r}")
    return segments


class RouteNode:
    def __init__(self, segment: str = ""):
        self.segment = segment
        self.methods: Dict[str, AccessPolicy] = {}
        self.children: Dict[str, "RouteNode"] = {}

    @property
    def is_parameter(self) -> bool:
        return self.segment.startswith("{")

    def child(self, segment: str) -> "RouteNode":
        node = self.children.get(segment)
        if node is None:
            node = self.children[segment] = RouteNode(segment)
        return node

    def add_method(self, verb: str, policy: AccessPolicy) -> None:
        verb = verb.upper()
        if verb in self.methods:
            raise DuplicateRouteError(f"{verb} is already registered on {self.segment or '/'!r}")
        self.methods[verb] = policy

    def find(self, path: str) -> "RouteNode":
        node = self
        for segment in split_path(path):
            try:
                node = node.children[segment]
            except KeyError:
                raise KeyError(f"no route for {path!r}") from None
        return node

    def walk(self, prefix: str = "") -> Iterator[Tuple[str, "RouteNode"]]:
        path = f"{prefix}/{self.segment}" if self.segment else prefix
        yield path or "/", self
        for node in self.children.values():
            yield from node.walk(path)

    def __repr__(self):
        return f"RouteNode({self.segment!r}, methods={list(self.methods)}, children={list(self.children)})"


class RoutingComposer:
    def __init__(
        self,
        default_policy: AccessPolicy = AccessPolicy.PUBLIC,
        authorizer: Optional[apigw.IAuthorizer] = None,
    ) -> None:
        if default_policy is AccessPolicy.PROTECTED and authorizer is None:
            raise MissingAuthorizerError("PROTECTED default policy requires an authorizer")
        self.default_policy = default_policy
        self.authorizer = authorizer
        self.root = RouteNode()

    def add_route(self, path: str, verb: str, policy: Optional[AccessPolicy] = None) -> RouteNode:
        policy = policy or self.default_policy
        if policy is AccessPolicy.PROTECTED and self.authorizer is None:
            raise MissingAuthorizerError(f"{verb} {path} is PROTECTED but no authorizer exists")
        node = self.root
        for segment in split_path(path):
            node = node.child(segment)
        node.add_method(verb, policy)
        return node

    def policy_for(self, path: str, verb: str) -> AccessPolicy:
        node = self.root.find(path)
        try:
            return node.methods[verb.upper()]
        except KeyError:
            raise KeyError(f"{verb.upper()} is not registered on {path!r}") from None

    def bindings(self) -> List[Tuple[str, str, AccessPolicy]]:
        return [
            (path, verb, policy)
            for path, node in self.root.walk()
            for verb, policy in node.methods.items()
        ]

    def method_options(self, policy: AccessPolicy) -> dict:
        if policy is AccessPolicy.PROTECTED:
            return {
                "authorization_type": apigw.AuthorizationType.CUSTOM,
                "authorizer": self.authorizer,
            }
        return {"authorization_type": apigw.AuthorizationType.NONE}

    def bind(self, root: apigw.IResource, integration: apigw.Integration) -> None:
        self._bind_node(self.root, root, integration, "")

    def _bind_node(self, node: RouteNode, resource: apigw.IResource, integration, path: str) -> None:
        # Methods go on before the node's children are created.
        for verb, policy in node.methods.items():
            logger.debug("binding %s %s (%s)", verb, path or "/", policy.value)
            resource.add_method(verb, integration, **self.method_options(policy))
        for segment, child in node.children.items():
            self._bind_node(child, resource.add_resource(segment), integration, f"{path}/{segment}")
