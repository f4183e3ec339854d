import json

from collectify.core.canonical.entities import CollectionRow
from collectify.core.collections.mapping import map_row_to_input, payload_to_input


def test_manual_row_maps_products_to_gids_in_fixed_key_order() -> None:
    row = CollectionRow(
        title="Shirts",
        type="manual",
        handle="shirts",
        description_html="<p>All shirts</p>",
        products="gid://shopify/Product/123, gid://shopify/Product/456,gid://shopify/Product/123",
        sort_order="best selling",
        image_url="https://cdn.example.com/shirts.jpg",
        image_alt="Shirts",
        seo_title="Shirts SEO",
        row_number=2,
    )

    mapped = map_row_to_input(row)

    assert mapped.warnings == []
    assert list(mapped.input) == ["title", "handle", "descriptionHtml", "sortOrder", "image", "seo", "products"]
    assert mapped.input["products"] == ["gid://shopify/Product/123", "gid://shopify/Product/456"]
    assert mapped.input["sortOrder"] == "BEST_SELLING"
    assert mapped.input["image"] == {"src": "https://cdn.example.com/shirts.jpg", "altText": "Shirts"}
    assert mapped.input["seo"] == {"title": "Shirts SEO"}


def test_optional_keys_are_omitted_when_empty() -> None:
    mapped = map_row_to_input(CollectionRow(title="Bare", products="gid://shopify/Product/1", row_number=2))

    assert mapped.input == {"title": "Bare", "products": ["gid://shopify/Product/1"]}


def test_mapping_is_idempotent() -> None:
    row = CollectionRow(
        title="Tagged",
        type="smart",
        rules='[{"column":"tag","relation":"equals","condition":"summer"}]',
        applied_disjunctively=True,
        row_number=2,
    )

    first = map_row_to_input(row)
    second = map_row_to_input(row)

    assert first.input == second.input
    assert json.dumps(first.input) == json.dumps(second.input)


def test_smart_row_maps_rule_set_with_normalized_tokens() -> None:
    row = CollectionRow(
        title="Cheap",
        type="smart",
        rules='{"column":"variant price","relation":"less-than","condition":100}',
        row_number=3,
    )

    mapped = map_row_to_input(row)

    assert mapped.input["ruleSet"] == {
        "appliedDisjunctively": False,
        "rules": [{"column": "VARIANT_PRICE", "relation": "LESS_THAN", "condition": "100"}],
    }


def test_invalid_product_ids_become_warnings() -> None:
    mapped = map_row_to_input(CollectionRow(title="Mixed", products="gid://shopify/Product/12,abc", row_number=4))

    assert mapped.input["products"] == ["gid://shopify/Product/12"]
    assert mapped.warnings == ["Row 4: Ignored invalid product id 'abc'"]


def test_manual_row_without_any_valid_product_is_created_empty_with_warning() -> None:
    mapped = map_row_to_input(CollectionRow(title="Empty", products="abc", row_number=2))

    assert "products" not in mapped.input
    assert mapped.warnings[-1] == "Row 2: No valid product ids found; collection will be created empty"


def test_unparseable_rules_drop_the_rule_set_with_warning() -> None:
    mapped = map_row_to_input(CollectionRow(title="Broken", type="smart", rules="[oops", row_number=5))

    assert "ruleSet" not in mapped.input
    assert len(mapped.warnings) == 1
    assert mapped.warnings[0].startswith("Row 5: Rule set omitted: rules are not valid JSON")


def test_create_payload_maps_to_sparse_input() -> None:
    data = payload_to_input(
        {
            "title": " Summer ",
            "sortOrder": "price-desc",
            "image": {"src": "https://cdn.example.com/s.jpg", "alt": "Sun"},
            "seo": {"title": "", "description": "Hot deals"},
            "ruleSet": {
                "appliedDisjunctively": True,
                "rules": [{"column": "TAG", "relation": "EQUALS", "condition": "summer"}],
            },
        }
    )

    assert data == {
        "title": "Summer",
        "sortOrder": "PRICE_DESC",
        "image": {"src": "https://cdn.example.com/s.jpg", "altText": "Sun"},
        "seo": {"description": "Hot deals"},
        "ruleSet": {
            "appliedDisjunctively": True,
            "rules": [{"column": "TAG", "relation": "EQUALS", "condition": "summer"}],
        },
    }


def test_bare_numeric_product_ids_are_not_promoted() -> None:
    mapped = map_row_to_input(CollectionRow(title="Numeric", products="123,gid://shopify/Product/7", row_number=3))

    assert mapped.input["products"] == ["gid://shopify/Product/7"]
    assert mapped.warnings == ["Row 3: Ignored invalid product id '123'"]
