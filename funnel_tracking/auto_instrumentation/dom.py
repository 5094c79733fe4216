"""
Minimal DOM model observed by auto-instrumentation.

Only what the heuristics read is modelled: tags, attributes, classes, text,
disabled state and the tree, plus a Document that delivers clicks to
listeners and child-list additions to mutation observers.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterator, List, Optional

logger = logging.getLogger(__name__)

TEXT_NODE_TAG = "#text"


class DomNode:
    """Element or text node."""

    def __init__(
        self,
        tag: str,
        text: str = "",
        attributes: Optional[dict] = None,
        classes: Optional[List[str]] = None,
        disabled: bool = False,
        children: Optional[List["DomNode"]] = None
    ):
        self.tag = tag.lower()
        self.text = text
        self.attributes = dict(attributes or {})
        self.class_list = set(classes or ())
        self.class_list.update(self.attributes.get("class", "").split())
        self.disabled = disabled
        self.parent: Optional["DomNode"] = None
        self.children: List["DomNode"] = []
        for child in children or []:
            self._adopt(child)

    @classmethod
    def text_node(cls, text: str) -> "DomNode":
        return cls(TEXT_NODE_TAG, text=text)

    def __repr__(self) -> str:
        return f"<{self.tag} {self.attributes!r}>"

    @property
    def is_element(self) -> bool:
        return self.tag != TEXT_NODE_TAG

    @property
    def text_content(self) -> str:
        """Own text followed by descendants' text, in document order."""
        return self.text + "".join(child.text_content for child in self.children)

    def _adopt(self, child: "DomNode") -> None:
        if child.parent is not None:
            child.parent.children.remove(child)
        child.parent = self
        self.children.append(child)

    def get_attribute(self, name: str) -> Optional[str]:
        return self.attributes.get(name)

    def has_attribute(self, name: str) -> bool:
        return name in self.attributes

    def ancestors_and_self(self) -> Iterator["DomNode"]:
        node: Optional[DomNode] = self
        while node is not None:
            yield node
            node = node.parent

    def descendants(self) -> Iterator["DomNode"]:
        for child in self.children:
            yield child
            yield from child.descendants()

    def closest(self, predicate: Callable[["DomNode"], bool]) -> Optional["DomNode"]:
        """Nearest of self and its ancestors matching ``predicate``."""
        for node in self.ancestors_and_self():
            if node.is_element and predicate(node):
                return node
        return None

    def closest_tag(self, tag: str) -> Optional["DomNode"]:
        tag = tag.lower()
        return self.closest(lambda node: node.tag == tag)

    def closest_with_attribute(self, name: str) -> Optional["DomNode"]:
        return self.closest(lambda node: node.has_attribute(name))

    def query(self, predicate: Callable[["DomNode"], bool]) -> Optional["DomNode"]:
        """First descendant element matching ``predicate``."""
        for node in self.descendants():
            if node.is_element and predicate(node):
                return node
        return None

    def contains(self, other: "DomNode") -> bool:
        return any(node is self for node in other.ancestors_and_self())


@dataclass
class ClickEvent:
    target: DomNode


@dataclass
class MutationRecord:
    target: DomNode
    added_nodes: List[DomNode] = field(default_factory=list)


class Document:
    """Page document delivering clicks and subtree additions."""

    def __init__(self, body: Optional[DomNode] = None):
        self.body = body or DomNode("body")
        self._click_listeners: List[Callable[[ClickEvent], None]] = []
        self._mutation_observers: List[Callable[[List[MutationRecord]], None]] = []

    def add_click_listener(self, listener: Callable[[ClickEvent], None]) -> None:
        self._click_listeners.append(listener)

    def observe_mutations(self, callback: Callable[[List[MutationRecord]], None]) -> None:
        """Observe child additions anywhere in the body subtree."""
        self._mutation_observers.append(callback)

    def click(self, target: DomNode) -> None:
        event = ClickEvent(target=target)
        for listener in list(self._click_listeners):
            try:
                listener(event)
            except Exception as e:
                # A failing listener must not stop the others
                logger.error(f"Click listener failed: {e}")

    def append_child(self, parent: DomNode, node: DomNode) -> None:
        """Insert ``node`` under ``parent`` and notify observers."""
        parent._adopt(node)
        if not self.body.contains(parent):
            return
        records = [MutationRecord(target=parent, added_nodes=[node])]
        for callback in list(self._mutation_observers):
            try:
                callback(records)
            except Exception as e:
                logger.error(f"Mutation observer failed: {e}")
