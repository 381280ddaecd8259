"""Unit tests for reference resolution and write policies."""

import json

import pytest

from shopmigrate.core.index import DestinationIndex
from shopmigrate.core.relinker import FileIndex, FileRelinker
from shopmigrate.core.resolver import ReferenceResolver
from shopmigrate.models.references import (
    ArticleRef,
    FileRef,
    MetaobjectRef,
    ProductRef,
    UnresolvableRef,
    VariantRef,
)
from shopmigrate.observability.metrics import get_global_collector


@pytest.fixture
def index():
    """Index with one record of several kinds."""
    return DestinationIndex(
        products={"red-mug": "gid://shopify/Product/100", "blue-mug": "gid://shopify/Product/101"},
        articles={"news:hello": "gid://shopify/Article/200"},
        metaobjects={"faq:shipping": "gid://shopify/Metaobject/300"},
        variants={"red-mug:MUG-S": "gid://shopify/ProductVariant/400", "red-mug:pos2": "gid://shopify/ProductVariant/401"},
    )


@pytest.fixture
def resolver():
    return ReferenceResolver()


class TestResolve:
    """Test single reference resolution."""

    def test_handle_kinds(self, resolver, index):
        """Test handle, article and metaobject keys resolve."""
        assert resolver.resolve(ProductRef(gid="s", handle="red-mug"), index) == "gid://shopify/Product/100"
        assert (
            resolver.resolve(ArticleRef(gid="s", blogHandle="news", handle="hello"), index)
            == "gid://shopify/Article/200"
        )
        assert (
            resolver.resolve(MetaobjectRef(gid="s", type="faq", handle="shipping"), index)
            == "gid://shopify/Metaobject/300"
        )
        assert resolver.stats.resolved == 3

    def test_missing_target(self, resolver, index):
        """Test an absent key resolves to None and is counted."""
        assert resolver.resolve(ProductRef(gid="s", handle="green-mug"), index) is None
        assert resolver.resolve(ProductRef(gid="s"), index) is None
        assert resolver.stats.unresolved == 2

        counters = get_global_collector().get_summary()["counters"]
        assert counters["reference_resolution_total[kind=product,outcome=unresolved]"] == 2

    def test_variant_sku_first(self, resolver, index):
        """Test the sku key is tried before position."""
        ref = VariantRef(gid="s", productHandle="red-mug", sku="MUG-S", position=2)

        assert resolver.resolve(ref, index) == "gid://shopify/ProductVariant/400"

    def test_variant_position_fallback(self, resolver, index):
        """Test the position key is used when the sku is unknown."""
        ref = VariantRef(gid="s", productHandle="red-mug", sku="RENAMED", position=2)

        assert resolver.resolve(ref, index) == "gid://shopify/ProductVariant/401"

    def test_unresolvable_passes_through(self, resolver, index):
        """Test platform-wide GIDs are written raw."""
        ref = UnresolvableRef(gid="gid://shopify/TaxonomyValue/7", typeName="TaxonomyValue")

        assert resolver.resolve(ref, index) == "gid://shopify/TaxonomyValue/7"
        assert resolver.stats.passthrough == 1

    def test_file_via_relinker(self, index):
        """Test file refs resolve through the relinker's file index."""
        file_index = FileIndex()
        file_index.add("gid://shopify/MediaImage/1", "https://src/logo.png", "gid://shopify/MediaImage/900", None)
        resolver = ReferenceResolver(FileRelinker(file_index))

        assert resolver.resolve(FileRef(gid="gid://shopify/MediaImage/1"), index) == "gid://shopify/MediaImage/900"

    def test_file_without_relinker(self, resolver, index):
        """Test an unrelinked file is unresolved without a relinker."""
        assert resolver.resolve(FileRef(gid="gid://shopify/MediaImage/1"), index) is None
        assert resolver.resolve(FileRef(gid="g", destinationId="d"), index) == "d"

    def test_resolve_list_keeps_order(self, resolver, index):
        """Test unresolved entries are dropped and order is kept."""
        refs = [
            ProductRef(gid="a", handle="blue-mug"),
            ProductRef(gid="b", handle="gone"),
            ProductRef(gid="c", handle="red-mug"),
        ]

        assert resolver.resolve_list(refs, index) == [
            "gid://shopify/Product/101",
            "gid://shopify/Product/100",
        ]


class TestWritePolicies:
    """Test the field and metafield builders."""

    def test_non_reference_unchanged(self, resolver, index):
        """Test plain values pass through both builders."""
        entry = {"key": "k", "type": "number_integer", "value": "3"}

        assert resolver.build_field_value(entry, index) == "3"
        assert resolver.build_metafield_value(entry, index) == "3"

    def test_single_resolved(self, resolver, index):
        """Test an enriched single reference becomes the destination GID."""
        entry = {
            "type": "product_reference",
            "value": "gid://shopify/Product/1",
            "ref": {"kind": "product", "gid": "gid://shopify/Product/1", "handle": "red-mug"},
        }

        assert resolver.build_metafield_value(entry, index) == "gid://shopify/Product/100"

    def test_single_unresolved_skipped(self, resolver, index):
        """Test an unresolved single reference is not written."""
        entry = {
            "type": "product_reference",
            "value": "gid://shopify/Product/1",
            "ref": {"kind": "product", "gid": "gid://shopify/Product/1", "handle": "gone"},
        }

        assert resolver.build_field_value(entry, index) is None
        assert resolver.build_metafield_value(entry, index) is None

    def test_list_partially_resolved(self, resolver, index):
        """Test a list keeps its resolvable members."""
        entry = {
            "type": "list.product_reference",
            "value": "[]",
            "refs": [
                {"kind": "product", "gid": "a", "handle": "gone"},
                {"kind": "product", "gid": "b", "handle": "blue-mug"},
            ],
        }

        value = resolver.build_metafield_value(entry, index)

        assert json.loads(value) == ["gid://shopify/Product/101"]

    def test_list_fully_unresolved(self, resolver, index):
        """Test an empty resolved list is not written."""
        entry = {
            "type": "list.product_reference",
            "value": "[]",
            "refs": [{"kind": "product", "gid": "a", "handle": "gone"}],
        }

        assert resolver.build_field_value(entry, index) is None

    def test_unenriched_value_unresolved(self, resolver, index):
        """Test a raw source GID with no natural key does not resolve."""
        entry = {"type": "product_reference", "value": "gid://shopify/Product/1"}

        assert resolver.build_metafield_value(entry, index) is None

    def test_unparsable_value(self, resolver, index):
        """Test a broken reference value is not written."""
        entry = {"type": "list.product_reference", "value": "not json"}

        assert resolver.build_metafield_value(entry, index) is None


class TestHasUnresolved:
    """Test has_unresolved."""

    def test_all_resolved(self, resolver, index):
        """Test a fully resolvable entry reports False without counting."""
        entry = {
            "type": "product_reference",
            "value": "x",
            "ref": {"kind": "product", "gid": "x", "handle": "red-mug"},
        }

        assert not resolver.has_unresolved(entry, index)
        assert resolver.stats.resolved == 0

    def test_some_unresolved(self, resolver, index):
        """Test any missing member reports True."""
        entry = {
            "type": "list.metaobject_reference",
            "value": "[]",
            "refs": [
                {"kind": "metaobject", "gid": "a", "type": "faq", "handle": "shipping"},
                {"kind": "metaobject", "gid": "b", "type": "faq", "handle": "returns"},
            ],
        }

        assert resolver.has_unresolved(entry, index)

    def test_passthrough_not_unresolved(self, resolver, index):
        """Test unresolvable kinds never count as missing."""
        entry = {"type": "metaobject_reference", "value": "gid://shopify/TaxonomyValue/1"}

        assert not resolver.has_unresolved(entry, index)

    def test_plain_field(self, resolver, index):
        """Test non-reference fields report False."""
        assert not resolver.has_unresolved({"type": "boolean", "value": "true"}, index)
