# scalable_exporter/identity.py

"""
Resolves the two session-scoped identifiers the broker API is addressed
with: the person id and the portfolio id.

The person id is discovered by a depth-first search over the page's UI
state tree; the portfolio id comes from the page address. Both lookups sit
behind the IdentityProvider protocol so the pipeline can fall back to ids
supplied through configuration or the command line.
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, List, Optional, Protocol, Union
from urllib.parse import urlsplit, parse_qs

from .exceptions import MissingIdentifierError
from .logging_utils import log_event, log_error

# Attributes that hold child structures worth searching
CHILD_KEYS = ("children", "props", "security", "items")
FRAMEWORK_PROP_PREFIX = "__reactProps"
CHILD_NODE_ATTRS = ("childNodes", "child_nodes")


def _is_child_key(key: Any) -> bool:
    return isinstance(key, str) and (key in CHILD_KEYS or key.startswith(FRAMEWORK_PROP_PREFIX))


def _own_person_id(node: Any) -> Optional[str]:
    if isinstance(node, dict):
        value = node.get("personId")
    else:
        value = getattr(node, "personId", None)
    if value is None or value == "" or isinstance(value, (dict, list)):
        return None
    return str(value)


def _child_attribute_names(node: Any) -> List[str]:
    """Allow-listed attribute names of a UI-tree node, instance attributes first.

    Properties and __slots__ count too; neither shows up in __dict__.
    """
    names = [key for key in getattr(node, "__dict__", {}) if _is_child_key(key)]
    names.extend(key for key in CHILD_KEYS if key not in names)
    names.extend(key for key in dir(node) if key.startswith(FRAMEWORK_PROP_PREFIX) and key not in names)
    return names


def _children_of(node: Any) -> List[Any]:
    """Children of a node in the order they must be searched."""
    if isinstance(node, (list, tuple)):
        return list(node)

    children: List[Any] = []
    if isinstance(node, dict):
        children.extend(value for key, value in node.items() if _is_child_key(key))
        for attr in CHILD_NODE_ATTRS:
            rendered = node.get(attr)
            if isinstance(rendered, (list, tuple)):
                children.extend(rendered)
        return children

    for name in _child_attribute_names(node):
        value = getattr(node, name, None)
        if value is not None:
            children.append(value)
    for attr in CHILD_NODE_ATTRS:
        rendered = getattr(node, attr, None)
        if rendered is not None and not isinstance(rendered, (str, bytes, dict)):
            try:
                children.extend(rendered)
            except TypeError:
                continue
    return children


def find_person_id(root: Any) -> Optional[str]:
    """
    Depth-first search for the first node exposing a non-empty personId.

    Nodes may be lists, dicts or UI-tree node objects. Only the allow-listed
    child attributes and, for UI-tree nodes, the rendered child nodes are
    descended into. Every node is visited at most once.
    """
    stack = [root]
    visited = set()

    while stack:
        node = stack.pop()
        if node is None or isinstance(node, (str, bytes, int, float, bool)):
            continue
        if id(node) in visited:
            continue
        visited.add(id(node))

        if not isinstance(node, (list, tuple)):
            person_id = _own_person_id(node)
            if person_id:
                return person_id

        # Reversed so the first child is popped first
        stack.extend(reversed(_children_of(node)))

    return None


def get_portfolio_id(url: Optional[str]) -> Optional[str]:
    """Return the portfolioId query parameter of a page address."""
    if not url:
        return None
    values = parse_qs(urlsplit(url).query).get("portfolioId")
    if not values or not values[0]:
        return None
    return values[0]


def load_page_state(path: Union[str, Path]) -> Any:
    """Load a JSON dump of the page's UI state tree."""
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


# --- Providers ---

class IdentityProvider(Protocol):
    def get_person_id(self) -> Optional[str]:
        ...

    def get_portfolio_id(self) -> Optional[str]:
        ...


class PageStateIdentityProvider:
    """Reads the ids from the live page: state tree search and page address."""

    def __init__(self, page_state: Any = None, page_url: Optional[str] = None):
        self.page_state = page_state
        self.page_url = page_url

    def get_person_id(self) -> Optional[str]:
        if self.page_state is None:
            return None
        return find_person_id(self.page_state)

    def get_portfolio_id(self) -> Optional[str]:
        return get_portfolio_id(self.page_url)


class StaticIdentityProvider:
    """Ids supplied explicitly, e.g. from configuration or the command line."""

    def __init__(self, person_id: Optional[str] = None, portfolio_id: Optional[str] = None):
        self.person_id = person_id or None
        self.portfolio_id = portfolio_id or None

    def get_person_id(self) -> Optional[str]:
        return self.person_id

    def get_portfolio_id(self) -> Optional[str]:
        return self.portfolio_id


class ChainedIdentityProvider:
    """
    Tries providers in order; each id comes from the first provider that
    returns a non-empty value for it.
    """

    def __init__(self, *providers: IdentityProvider):
        self.providers: Iterable[IdentityProvider] = providers

    def get_person_id(self) -> Optional[str]:
        for provider in self.providers:
            value = provider.get_person_id()
            if value:
                return value
        return None

    def get_portfolio_id(self) -> Optional[str]:
        for provider in self.providers:
            value = provider.get_portfolio_id()
            if value:
                return value
        return None


@dataclass(frozen=True)
class SessionIdentity:
    person_id: str
    portfolio_id: str


def resolve_identity(provider: IdentityProvider) -> SessionIdentity:
    """Resolve both ids or raise MissingIdentifierError naming what is missing."""
    person_id = provider.get_person_id()
    portfolio_id = provider.get_portfolio_id()

    missing = []
    if not person_id:
        missing.append("personId")
    if not portfolio_id:
        missing.append("portfolioId")
    if missing:
        error = MissingIdentifierError(missing)
        log_error("Identity", "MissingIdentifier", str(error))
        raise error

    log_event("Identity", f"Found personId: {person_id}")
    log_event("Identity", f"Found portfolioId: {portfolio_id}")
    return SessionIdentity(person_id=person_id, portfolio_id=portfolio_id)
