import json

import pytest
import requests

from collectify.core.collections.bulk import (
    BULK_MAX_ROWS,
    TooManyRowsError,
    bulk_operation_to_api,
    get_bulk_operation,
    start_bulk_import,
    summarize_bulk_results,
)
from collectify.core.collections.importer import ImportValidationError
from collectify.core.config import ShopifyConfig
from collectify.core.shopify.client import AdminClient, ShopifyUserError
from collectify.core.shopify.queries import BULK_COLLECTION_CREATE
from tests.helpers._fake_shopify import FakeAdminClient

STAGED_TARGET = {
    "stagedUploadsCreate": {
        "stagedTargets": [
            {
                "url": "https://shopify-staged-uploads.storage.googleapis.com/",
                "resourceUrl": None,
                "parameters": [
                    {"name": "Content-Type", "value": "text/jsonl"},
                    {"name": "success_action_status", "value": "201"},
                    {"name": "key", "value": "tmp/123/bulk/collections.jsonl"},
                    {"name": "policy", "value": "abc"},
                ],
            }
        ],
        "userErrors": [],
    }
}
RUN_OK = {
    "bulkOperationRunMutation": {
        "bulkOperation": {"id": "gid://shopify/BulkOperation/9", "status": "CREATED"},
        "userErrors": [],
    }
}
CSV_TEXT = (
    "title,type,products,rules\n"
    "Shirts,manual,\"gid://shopify/Product/1,gid://shopify/Product/2\",\n"
    'Tagged,smart,,"[{""column"":""TAG"",""relation"":""EQUALS"",""condition"":""summer""}]"\n'
)


def test_bulk_import_uploads_ndjson_and_starts_mutation() -> None:
    client = FakeAdminClient(STAGED_TARGET, RUN_OK)

    result = start_bulk_import(client, CSV_TEXT)

    assert result.bulk_operation_id == "gid://shopify/BulkOperation/9"
    assert result.collections_count == 2
    assert result.message == "Bulk import operation created successfully. Processing 2 collections."

    staged_variables = client.calls[0][1]["input"][0]
    assert staged_variables["resource"] == "BULK_MUTATION_VARIABLES"
    assert staged_variables["mimeType"] == "text/jsonl"
    assert staged_variables["httpMethod"] == "POST"
    assert staged_variables["filename"] == "collections_bulk_1770508800000.jsonl"

    upload = client.uploads[0]
    lines = upload["content"].decode("utf-8").splitlines()
    assert [json.loads(line) for line in lines] == [
        {"input": {"title": "Shirts", "products": ["gid://shopify/Product/1", "gid://shopify/Product/2"]}},
        {
            "input": {
                "title": "Tagged",
                "ruleSet": {
                    "appliedDisjunctively": False,
                    "rules": [{"column": "TAG", "relation": "EQUALS", "condition": "summer"}],
                },
            }
        },
    ]
    assert upload["mime_type"] == "text/jsonl"

    run_variables = client.calls[1][1]
    assert run_variables["stagedUploadPath"] == "tmp/123/bulk/collections.jsonl"
    assert run_variables["mutation"] == BULK_COLLECTION_CREATE


def test_more_than_max_rows_is_rejected_before_any_remote_call() -> None:
    rows = "".join(f"Collection {n},manual,gid://shopify/Product/{n}\n" for n in range(1, BULK_MAX_ROWS + 2))
    client = FakeAdminClient()

    with pytest.raises(TooManyRowsError, match="Maximum 1000 collections"):
        start_bulk_import(client, "title,type,products\n" + rows)

    assert client.calls == []
    assert client.uploads == []


def test_invalid_rows_are_rejected_before_any_remote_call() -> None:
    client = FakeAdminClient()

    with pytest.raises(ImportValidationError):
        start_bulk_import(client, "title,type,products\nNo products,manual,\n")

    assert client.calls == []


def test_run_mutation_user_errors_are_raised() -> None:
    client = FakeAdminClient(
        STAGED_TARGET,
        {
            "bulkOperationRunMutation": {
                "bulkOperation": None,
                "userErrors": [{"field": None, "message": "A bulk mutation is already running"}],
            }
        },
    )

    with pytest.raises(ShopifyUserError, match="already running"):
        start_bulk_import(client, CSV_TEXT)


class _RecordingSession:
    def __init__(self) -> None:
        self.posts: list[dict] = []

    def post(self, url, **kwargs):
        self.posts.append({"url": url, **kwargs})
        response = requests.Response()
        response.status_code = 201
        return response


def test_staged_upload_sends_parameters_in_order_with_file_last() -> None:
    session = _RecordingSession()
    client = AdminClient("test-shop.myshopify.com", "token", ShopifyConfig(), session=session)
    parameters = STAGED_TARGET["stagedUploadsCreate"]["stagedTargets"][0]["parameters"]

    client.upload_staged_file(
        "https://upload.example.com/",
        parameters,
        filename="collections.jsonl",
        content=b'{"input":{}}\n',
        mime_type="text/jsonl",
    )

    files = session.posts[0]["files"]
    assert [name for name, _part in files] == [
        "Content-Type",
        "success_action_status",
        "key",
        "policy",
        "file",
    ]
    assert files[2][1] == (None, "tmp/123/bulk/collections.jsonl")
    assert files[-1][1] == ("collections.jsonl", b'{"input":{}}\n', "text/jsonl")


def test_unknown_bulk_operation_is_none() -> None:
    client = FakeAdminClient({"node": None})

    assert get_bulk_operation(client, "gid://shopify/BulkOperation/404") is None


def test_bulk_operation_to_api_reports_status_message() -> None:
    body = bulk_operation_to_api({"id": "gid://shopify/BulkOperation/9", "status": "RUNNING", "objectCount": "4"})

    assert body["success"] is True
    assert body["message"] == "Bulk operation running"
    assert body["bulkOperation"]["objectCount"] == "4"


def test_summarize_bulk_results_counts_created_and_failed_lines() -> None:
    jsonl = "\n".join(
        [
            json.dumps({"data": {"collectionCreate": {"collection": {"id": "gid://shopify/Collection/1"}, "userErrors": []}}}),
            json.dumps({"data": {"collectionCreate": {"collection": None, "userErrors": [{"message": "Title can't be blank"}]}}}),
            "not json",
        ]
    )

    summary = summarize_bulk_results(jsonl)

    assert summary["created"] == 1
    assert summary["failed"] == 2
    assert summary["failures"][0] == {"line": 2, "errors": [{"message": "Title can't be blank"}]}
