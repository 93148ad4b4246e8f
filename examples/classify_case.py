"""
Example: classify a case and write the result back onto the record.

Runs offline against the mock transport and an in-memory record store, using
the same configuration layout as config.yml.
"""

import asyncio
import os
import sys

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from prompt_client import PromptInvocationClient
from prompt_client.configuration import Config, MockConfigProvider, set_config_provider
from prompt_client.errors import PromptClientError
from prompt_client.models import EndpointConfig
from prompt_client.records.memory import InMemoryRecordStore
from prompt_client.transport.mock import MockTransport

CONFIG = {
    "generation": {"num_generations": 1, "temperature": 0.0},
    "templates": {
        "Case_Classification": {
            "inputs": ["Input:Case"],
            "expected_keys": ["caseType", "reason", "summary"],
            "field_map": {"caseType": "Type", "reason": "Reason", "summary": "Quick_Summary__c"},
            "record_type": "Case",
            "prompt": "Classify case {{ inputs['Input:Case'].id }} and answer with JSON.",
            "mock_text": '{"caseType": "Mechanical", "reason": "Installation", "summary": "Pump fitted incorrectly"}',
        }
    },
}


async def preview_example(client: PromptInvocationClient) -> None:
    print("=== Preview ===")
    result = await client.invoke("Case_Classification", {"Input:Case": "500xx000000001"}, preview=True)
    print(f"Resolved prompt: {result.prompt}")


async def classify_example(client: PromptInvocationClient, store: InMemoryRecordStore) -> None:
    print("\n=== Classify and update ===")
    record = await client.generate_for_record("Case_Classification", "500xx000000001")
    print(f"Written fields: {record.changed_fields or 'persisted'}")
    print(f"Stored record: {store.records['500xx000000001']}")


async def failure_example(store: InMemoryRecordStore) -> None:
    print("\n=== Upstream failure leaves the record untouched ===")
    client = PromptInvocationClient(
        transport=MockTransport([(500, {"message": "internal failure"})]),
        endpoint=EndpointConfig(base_url="https://example.invalid/einstein", token="demo"),
        record_store=store,
    )
    try:
        await client.generate_for_record("Case_Classification", "500xx000000002")
    except PromptClientError as e:
        print(f"{type(e).__name__}: {e}")
    print(f"Stored record: {store.records['500xx000000002']}")


async def main() -> None:
    original_provider = set_config_provider(MockConfigProvider(Config(data=CONFIG)))
    try:
        store = InMemoryRecordStore(
            {
                "500xx000000001": {"Id": "500xx000000001", "Subject": "Pump leaking", "Type": None, "Reason": None},
                "500xx000000002": {"Id": "500xx000000002", "Subject": "Fuse blown", "Type": None, "Reason": None},
            },
            record_type="Case",
        )
        async with PromptInvocationClient(
            transport=MockTransport(),
            endpoint=EndpointConfig(base_url="https://example.invalid/einstein", token="demo"),
            record_store=store,
        ) as client:
            await preview_example(client)
            await classify_example(client, store)
        await failure_example(store)
    finally:
        set_config_provider(original_provider)


if __name__ == "__main__":
    asyncio.run(main())
