import pytest

from collectify.core.collections.importer import (
    CREATED_MESSAGE,
    DRY_RUN_MESSAGE,
    ImportValidationError,
    import_collections,
    preview_import,
)
from collectify.core.shopify.client import ShopifyAPIError
from tests.helpers._fake_shopify import FakeAdminClient, created_collection, user_errors

THREE_ROWS = (
    "title,type,products,rules\n"
    "Shirts,manual,gid://shopify/Product/1,\n"
    'Tagged,smart,,"[{""column"":""TAG"",""relation"":""EQUALS"",""condition"":""summer""}]"\n'
    "Pants,manual,gid://shopify/Product/2,\n"
)


def test_partial_failure_keeps_earlier_successes_and_continues() -> None:
    client = FakeAdminClient(
        created_collection("Shirts", 1),
        user_errors("Handle has already been taken"),
        created_collection("Pants", 3),
    )

    result = import_collections(client, THREE_ROWS)

    assert result.created == 2
    assert result.errors == 1
    assert result.updated == 0
    assert result.success is False
    assert [row.status for row in result.results] == ["success", "error", "success"]
    assert result.results[0].message == CREATED_MESSAGE
    assert result.results[0].collection_id == "gid://shopify/Collection/1"
    assert result.results[1].message == "Handle has already been taken"
    assert len(client.calls) == 3


def test_rows_are_sent_in_file_order() -> None:
    client = FakeAdminClient().always(lambda _q, variables: created_collection(variables["input"]["title"]))

    import_collections(client, THREE_ROWS)

    assert [variables["input"]["title"] for _q, variables in client.calls] == ["Shirts", "Tagged", "Pants"]
    assert client.calls[1][1]["input"]["ruleSet"]["rules"][0]["column"] == "TAG"


def test_transport_errors_fail_only_that_row() -> None:
    client = FakeAdminClient(
        ShopifyAPIError("Shopify GraphQL request failed with HTTP 502", status_code=502),
        created_collection("Tagged", 2),
        created_collection("Pants", 3),
    )

    result = import_collections(client, THREE_ROWS)

    assert result.created == 2
    assert result.errors == 1
    assert result.results[0].message == "Shopify GraphQL request failed with HTTP 502"


def test_any_invalid_row_aborts_before_remote_calls() -> None:
    csv_text = (
        "title,type,products\n"
        "One,manual,gid://shopify/Product/1\n"
        "Two,manual,gid://shopify/Product/2\n"
        ",manual,gid://shopify/Product/3\n"
    )
    client = FakeAdminClient()

    with pytest.raises(ImportValidationError) as excinfo:
        import_collections(client, csv_text)

    assert client.calls == []
    body = excinfo.value.to_dict()
    assert body["success"] is False
    assert body["error"] == "Validation failed"
    assert body["errors"] == 1
    assert body["results"][0]["row"] == 4
    assert body["results"][0]["message"] == "Row 4: Title is required"


def test_dry_run_maps_every_row_without_remote_calls() -> None:
    result = import_collections(None, THREE_ROWS, dry_run=True)

    assert result.created == 3
    assert result.dry_run is True
    assert all(row.message == DRY_RUN_MESSAGE for row in result.results)
    assert result.to_dict()["dryRun"] is True


def test_warnings_flow_into_the_result() -> None:
    csv_text = "title,type,products\nMixed,manual,\"gid://shopify/Product/1,abc\"\nShort,manual\n"

    result = import_collections(None, csv_text, dry_run=True)

    assert result.warnings == [
        "Row 3: Column count mismatch (expected 3, got 2); row skipped",
        "Row 2: Ignored invalid product id 'abc'",
    ]
    assert result.results[0].warnings == ["Row 2: Ignored invalid product id 'abc'"]


def test_header_only_file_has_no_rows() -> None:
    with pytest.raises(ValueError, match="No valid rows found in CSV"):
        import_collections(None, "title,type,products\n", dry_run=True)


def test_client_is_required_for_real_imports() -> None:
    with pytest.raises(ValueError, match="Shopify client is required"):
        import_collections(None, THREE_ROWS)


def test_on_row_callback_sees_each_result() -> None:
    seen = []
    import_collections(None, THREE_ROWS, dry_run=True, on_row=lambda row: seen.append(row.row))

    assert seen == [2, 3, 4]


def test_preview_reports_rows_and_inputs() -> None:
    preview = preview_import(THREE_ROWS)

    assert preview["valid"] is True
    assert preview["totalRows"] == 3
    assert preview["validRows"] == 3
    assert preview["invalidRows"] == 0
    assert preview["rows"][0]["input"] == {"title": "Shirts", "products": ["gid://shopify/Product/1"]}
    assert preview["rows"][1]["type"] == "smart"


def test_id_and_published_columns_are_reported_per_row() -> None:
    client = FakeAdminClient(created_collection("Shirts", 11))
    csv_text = "id,title,type,products,published\ngid://shopify/Collection/4,Shirts,manual,gid://shopify/Product/1,false\n"

    result = import_collections(client, csv_text)
    preview = preview_import(csv_text)

    row = result.results[0].to_dict()
    assert row["sourceId"] == "gid://shopify/Collection/4"
    assert row["collectionId"] == "gid://shopify/Collection/11"
    assert row["published"] is False
    assert "id" not in client.calls[0][1]["input"]
    assert "published" not in client.calls[0][1]["input"]
    assert preview["rows"][0]["sourceId"] == "gid://shopify/Collection/4"
    assert preview["rows"][0]["published"] is False
