"""Unit tests for tagged reference values."""

import pytest
from pydantic import ValidationError as PydanticValidationError

from shopmigrate.models.references import (
    ArticleRef,
    FileRef,
    MetaobjectRef,
    ProductRef,
    ReferenceKind,
    UnresolvableRef,
    VariantRef,
    bare_reference,
    dump_reference,
    entry_references,
    gid_type,
    is_list_type,
    is_reference_type,
    kind_for_gid,
    load_reference,
    parse_gid_list,
)


class TestGidHelpers:
    """Test GID parsing."""

    @pytest.mark.parametrize(
        "gid,expected",
        [
            ("gid://shopify/Product/1", "Product"),
            ("gid://shopify/ProductVariant/42", "ProductVariant"),
            ("gid://shopify/TaxonomyValue/7", "TaxonomyValue"),
            ("not-a-gid", ""),
            (None, ""),
            (12, ""),
        ],
    )
    def test_gid_type(self, gid, expected):
        """Test the type name is extracted from the GID."""
        assert gid_type(gid) == expected

    @pytest.mark.parametrize(
        "gid,kind",
        [
            ("gid://shopify/Collection/1", ReferenceKind.COLLECTION),
            ("gid://shopify/MediaImage/1", ReferenceKind.FILE),
            ("gid://shopify/GenericFile/1", ReferenceKind.FILE),
            ("gid://shopify/Video/1", ReferenceKind.FILE),
            ("gid://shopify/TaxonomyValue/1", ReferenceKind.UNRESOLVABLE),
        ],
    )
    def test_kind_for_gid(self, gid, kind):
        """Test GID types map to reference kinds."""
        assert kind_for_gid(gid) == kind

    def test_type_predicates(self):
        """Test reference and list detection by type name."""
        assert is_reference_type("product_reference")
        assert is_reference_type("list.metaobject_reference")
        assert not is_reference_type("single_line_text_field")
        assert not is_reference_type(None)
        assert is_list_type("list.file_reference")
        assert not is_list_type("file_reference")

    def test_parse_gid_list(self):
        """Test a JSON array value decodes to GIDs."""
        assert parse_gid_list('["gid://shopify/Page/1","gid://shopify/Page/2"]') == [
            "gid://shopify/Page/1",
            "gid://shopify/Page/2",
        ]

    @pytest.mark.parametrize("value", ["not json", '{"a": 1}', "[1, 2]", None])
    def test_parse_gid_list_rejects(self, value):
        """Test anything but a JSON array of strings is rejected."""
        with pytest.raises(ValueError):
            parse_gid_list(value)


class TestNaturalKeys:
    """Test natural keys of each variant."""

    def test_handle_ref(self):
        """Test handle refs key by handle."""
        assert ProductRef(gid="g", handle="red-mug").natural_key() == "red-mug"
        assert ProductRef(gid="g").natural_key() is None

    def test_article_ref(self):
        """Test articles key by blog and handle."""
        assert ArticleRef(gid="g", blogHandle="news", handle="hello").natural_key() == "news:hello"
        assert ArticleRef(gid="g", handle="hello").natural_key() is None

    def test_metaobject_ref(self):
        """Test metaobjects key by type and handle."""
        assert MetaobjectRef(gid="g", type="faq", handle="shipping").natural_key() == "faq:shipping"

    def test_variant_keys_sku_first(self):
        """Test variant candidates are sku then position."""
        ref = VariantRef(gid="g", productHandle="mug", sku="MUG-S", position=1)

        assert ref.natural_keys() == ["mug:MUG-S", "mug:pos1"]
        assert ref.natural_key() == "mug:MUG-S"

    def test_variant_blank_sku(self):
        """Test a blank sku only yields the position key."""
        ref = VariantRef(gid="g", productHandle="mug", sku="  ", position=3)

        assert ref.natural_keys() == ["mug:pos3"]

    def test_variant_without_product(self):
        """Test no product handle means no keys."""
        assert VariantRef(gid="g", sku="X").natural_keys() == []

    def test_file_ref(self):
        """Test files key by URL."""
        assert FileRef(gid="g", url="https://cdn/x.png").natural_key() == "https://cdn/x.png"


class TestSerialization:
    """Test the discriminated union wire format."""

    def test_round_trip(self):
        """Test a dumped ref validates back to the same variant."""
        ref = MetaobjectRef(gid="gid://shopify/Metaobject/1", type="faq", handle="a")

        loaded = load_reference(dump_reference(ref))

        assert isinstance(loaded, MetaobjectRef)
        assert loaded == ref

    def test_dump_excludes_none(self):
        """Test unset fields are not written."""
        assert dump_reference(FileRef(gid="g")) == {"kind": "file", "gid": "g"}

    def test_unknown_kind_rejected(self):
        """Test an unknown discriminator fails validation."""
        with pytest.raises(PydanticValidationError):
            load_reference({"kind": "menu", "gid": "g"})

    def test_bare_reference_known_kind(self):
        """Test a known kind with no record has empty keys."""
        ref = bare_reference("gid://shopify/Product/9")

        assert isinstance(ref, ProductRef)
        assert ref.natural_key() is None

    def test_bare_reference_unresolvable(self):
        """Test platform-wide GIDs become UnresolvableRef."""
        ref = bare_reference("gid://shopify/TaxonomyValue/5")

        assert isinstance(ref, UnresolvableRef)
        assert ref.typeName == "TaxonomyValue"


class TestEntryReferences:
    """Test reading references off entries."""

    def test_not_a_reference(self):
        """Test plain fields carry no references."""
        assert entry_references({"type": "number_integer", "value": "3"}) is None

    def test_enriched_single(self):
        """Test ``ref`` is used when present."""
        entry = {
            "type": "page_reference",
            "value": "gid://shopify/Page/1",
            "ref": {"kind": "page", "gid": "gid://shopify/Page/1", "handle": "about"},
        }

        refs = entry_references(entry)

        assert len(refs) == 1
        assert refs[0].natural_key() == "about"

    def test_enriched_list(self):
        """Test ``refs`` is used when present."""
        entry = {
            "type": "list.product_reference",
            "value": "[]",
            "refs": [
                {"kind": "product", "gid": "gid://shopify/Product/1", "handle": "a"},
                {"kind": "product", "gid": "gid://shopify/Product/2", "handle": "b"},
            ],
        }

        assert [r.handle for r in entry_references(entry)] == ["a", "b"]

    def test_unenriched_single(self):
        """Test a raw reference value is parsed at apply time."""
        refs = entry_references({"type": "product_reference", "value": "gid://shopify/Product/1"})

        assert isinstance(refs[0], ProductRef)
        assert refs[0].handle is None

    def test_unenriched_list(self):
        """Test a raw list value is parsed at apply time."""
        refs = entry_references(
            {"type": "list.page_reference", "value": '["gid://shopify/Page/1"]'}
        )

        assert refs[0].gid == "gid://shopify/Page/1"

    def test_unparsable_list(self):
        """Test a broken list value yields None."""
        assert entry_references({"type": "list.page_reference", "value": "oops"}) is None

    def test_empty_single(self):
        """Test an empty single value yields None."""
        assert entry_references({"type": "page_reference", "value": ""}) is None
