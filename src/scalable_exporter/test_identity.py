import json
import os
import tempfile
import unittest

from .exceptions import MissingIdentifierError
from .identity import (
    ChainedIdentityProvider,
    PageStateIdentityProvider,
    StaticIdentityProvider,
    find_person_id,
    get_portfolio_id,
    load_page_state,
    resolve_identity,
)


class FakeNode:
    """Stands in for a rendered UI node with child nodes and framework props."""

    def __init__(self, child_nodes=None, **attrs):
        self.childNodes = child_nodes or []
        for key, value in attrs.items():
            setattr(self, key, value)


class PropsNode:
    """UI node exposing its props through a property."""

    def __init__(self, props):
        self._props = props

    @property
    def props(self):
        return self._props


class SlottedNode:
    __slots__ = ("security", "childNodes")

    def __init__(self, security=None, child_nodes=()):
        self.security = security
        self.childNodes = list(child_nodes)


class TestFindPersonId(unittest.TestCase):

    def test_finds_id_in_nested_props(self):
        tree = {"props": {"children": [{"items": []}, {"security": {"personId": "p-1"}}]}}
        self.assertEqual(find_person_id(tree), "p-1")

    def test_first_match_in_depth_first_order(self):
        tree = [
            {"children": [{"props": {"personId": "deep-first"}}]},
            {"personId": "shallow-second"},
        ]
        self.assertEqual(find_person_id(tree), "deep-first")

    def test_ignores_keys_outside_allow_list(self):
        tree = {"state": {"personId": "hidden"}, "children": [{"name": "x"}]}
        self.assertIsNone(find_person_id(tree))

    def test_empty_person_id_is_not_a_match(self):
        tree = {"personId": "", "children": [{"personId": "p-2"}]}
        self.assertEqual(find_person_id(tree), "p-2")

    def test_ui_nodes_with_framework_props(self):
        leaf = FakeNode(**{"__reactProps$abc123": {"children": {"props": {"personId": "p-3"}}}})
        root = FakeNode(child_nodes=[FakeNode(), FakeNode(child_nodes=[leaf])])
        self.assertEqual(find_person_id(root), "p-3")

    def test_props_exposed_as_property(self):
        root = FakeNode(child_nodes=[PropsNode({"children": [{"personId": "p-4"}]})])
        self.assertEqual(find_person_id(root), "p-4")

    def test_slotted_nodes(self):
        leaf = SlottedNode(security={"personId": "p-5"})
        root = SlottedNode(child_nodes=[SlottedNode(), leaf])
        self.assertEqual(find_person_id(root), "p-5")

    def test_unset_slots_are_skipped(self):
        node = SlottedNode.__new__(SlottedNode)
        self.assertIsNone(find_person_id(node))

    def test_dict_dump_of_child_nodes(self):
        tree = {"childNodes": [{"childNodes": [{"__reactProps$x": {"personId": 1234}}]}]}
        self.assertEqual(find_person_id(tree), "1234")

    def test_terminates_on_shared_and_cyclic_references(self):
        shared = {"children": []}
        cyclic = {"children": [shared]}
        shared["children"].append(cyclic)
        self.assertIsNone(find_person_id({"items": [cyclic, shared]}))

    def test_deep_tree_does_not_hit_recursion_limit(self):
        node = {"personId": "bottom"}
        for _ in range(5000):
            node = {"children": [node]}
        self.assertEqual(find_person_id(node), "bottom")


class TestPortfolioId(unittest.TestCase):

    def test_from_query_parameters(self):
        url = "https://de.scalable.capital/broker/transactions?portfolioId=abc-123&tab=all"
        self.assertEqual(get_portfolio_id(url), "abc-123")

    def test_missing(self):
        self.assertIsNone(get_portfolio_id("https://de.scalable.capital/broker/transactions"))
        self.assertIsNone(get_portfolio_id("https://de.scalable.capital/?portfolioId="))
        self.assertIsNone(get_portfolio_id(None))


class TestProviders(unittest.TestCase):

    def test_chained_provider_falls_back_per_identifier(self):
        page = PageStateIdentityProvider({"props": {"personId": "from-page"}},
                                         "https://x/broker/transactions?portfolioId=pf-page")
        provider = ChainedIdentityProvider(StaticIdentityProvider(portfolio_id="pf-static"), page)
        self.assertEqual(provider.get_person_id(), "from-page")
        self.assertEqual(provider.get_portfolio_id(), "pf-static")

    def test_resolve_identity(self):
        identity = resolve_identity(StaticIdentityProvider("p", "pf"))
        self.assertEqual(identity.person_id, "p")
        self.assertEqual(identity.portfolio_id, "pf")

    def test_resolve_identity_names_missing_ids(self):
        with self.assertRaises(MissingIdentifierError) as ctx:
            resolve_identity(PageStateIdentityProvider(None, None))
        self.assertEqual(ctx.exception.missing, ["personId", "portfolioId"])

    def test_load_page_state(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "state.json")
            with open(path, "w", encoding="utf-8") as f:
                json.dump({"children": [{"personId": "p-file"}]}, f)
            self.assertEqual(find_person_id(load_page_state(path)), "p-file")


if __name__ == '__main__':
    unittest.main()
