from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from brokerdoc.core.exceptions import (
    InvalidStatusTransition,
    PersistenceFailure,
    ResourceNotFound,
    StorageError,
    ValidationFailed,
)
from brokerdoc.services.generation.action_parser import DocumentRequest
from brokerdoc.services.generation.document_generation_service import (
    DocumentGenerationService,
    build_document_metadata,
)

USER_ID = "11111111-1111-1111-1111-111111111111"

OFFER_REPLY = """Here is your offer.

```json
{"action": "generate_document", "template": "Ontario Agreement of Purchase and Sale",
 "data": {"property_address": "123 Main St", "purchase_price": 800000, "deposit_amount": 40000}}
```"""


@pytest.fixture
def storage(flat_pdf_bytes):
    storage = MagicMock()
    storage.fetch_bytes = AsyncMock(return_value=flat_pdf_bytes)
    storage.upload_bytes = AsyncMock(return_value={"Key": "generated-documents/x.pdf"})
    storage.delete_object = AsyncMock()
    storage.get_public_url.side_effect = (
        lambda bucket, path: f"https://test.supabase.co/storage/v1/object/public/{bucket}/{path}"
    )
    return storage


@pytest.fixture
def repositories(conversation, ontario_template):
    conversation_repository = AsyncMock()
    conversation_repository.get_owned.return_value = conversation

    template_repository = AsyncMock()
    template_repository.find_active_by_type.return_value = ontario_template
    template_repository.get_active.return_value = ontario_template
    template_repository.get_by_id.return_value = ontario_template

    document_repository = AsyncMock()

    async def create_document(**kwargs):
        document = MagicMock()
        document.id = uuid4()
        document.version = 1
        for key, value in kwargs.items():
            setattr(document, key, value)
        document.document_metadata = kwargs["metadata"]
        return document

    document_repository.create_document.side_effect = create_document

    async def save(document, **changes):
        for key, value in changes.items():
            setattr(document, key, value)
        return document

    document_repository.save.side_effect = save

    return {
        "conversation_repository": conversation_repository,
        "template_repository": template_repository,
        "extraction_repository": AsyncMock(),
        "document_repository": document_repository,
    }


@pytest.fixture
def service(repositories, storage):
    return DocumentGenerationService(storage_service=storage, **repositories)


def test_metadata_uses_integral_transaction_value():
    metadata = build_document_metadata(
        {"purchase_price": "$800,000", "buyer_full_name": "Jane", "property_address": "123 Main St"},
        "Ontario Agreement of Purchase and Sale",
    )
    assert metadata["transaction_value"] == 800000
    assert isinstance(metadata["transaction_value"], int)
    assert metadata["parties_involved"] == ["Jane"]
    assert metadata["document_title"] == "Ontario Agreement of Purchase and Sale"


@pytest.mark.asyncio
async def test_offer_reply_generates_preview_document(service, repositories, storage, conversation):
    document, preview_url = await service.generate_from_message(
        USER_ID,
        conversation.id,
        "prepare an offer for 123 Main St at $800,000 with $40,000 deposit",
        OFFER_REPLY,
    )

    assert document.status == "preview"
    assert document.document_metadata["transaction_value"] == 800000
    assert document.pdf_url
    assert preview_url == document.pdf_url
    storage.upload_bytes.assert_awaited_once()
    uploaded_bytes = storage.upload_bytes.call_args.args[0]
    assert uploaded_bytes.startswith(b"%PDF")
    repositories["extraction_repository"].record_extraction.assert_awaited_once()


@pytest.mark.asyncio
async def test_reply_without_request_returns_none(service, storage, conversation):
    result = await service.generate_from_message(USER_ID, conversation.id, "hi", "Hello! How can I help?")
    assert result is None
    storage.upload_bytes.assert_not_called()


@pytest.mark.asyncio
async def test_malformed_request_raises_validation(service, conversation):
    with pytest.raises(ValidationFailed):
        await service.generate_from_message(
            USER_ID, conversation.id, "offer", '```json\n{"action": "generate_document", \n```'
        )


@pytest.mark.asyncio
async def test_generation_requires_owned_conversation(service, repositories, storage):
    repositories["conversation_repository"].get_owned.return_value = None
    request = DocumentRequest(template="purchase", data={"purchase_price": 1})

    with pytest.raises(ResourceNotFound):
        await service.generate_from_request(USER_ID, uuid4(), "offer", request)
    storage.upload_bytes.assert_not_called()


@pytest.mark.asyncio
async def test_missing_template_for_type(service, repositories):
    repositories["template_repository"].find_active_by_type.return_value = None
    request = DocumentRequest(template="Residential Lease", data={})

    with pytest.raises(ResourceNotFound, match="lease_agreement"):
        await service.generate_from_request(USER_ID, uuid4(), "lease", request)


@pytest.mark.asyncio
async def test_extraction_audit_failure_is_swallowed(service, repositories, conversation):
    repositories["extraction_repository"].record_extraction.side_effect = PersistenceFailure("db down")
    request = DocumentRequest(template="purchase", data={"purchase_price": 800000})

    document, _ = await service.generate_from_request(USER_ID, conversation.id, "offer", request)

    assert document.status == "preview"


@pytest.mark.asyncio
async def test_fill_template_validates_before_side_effects(service, storage):
    with pytest.raises(ValidationFailed):
        await service.fill_template(USER_ID, template_id=None, document_data={}, conversation_id=uuid4())
    storage.fetch_bytes.assert_not_called()


@pytest.mark.asyncio
async def test_fill_template_unknown_template(service, repositories, conversation):
    repositories["template_repository"].get_active.return_value = None

    with pytest.raises(ResourceNotFound, match="Template not found"):
        await service.fill_template(USER_ID, uuid4(), {"purchase_price": 1}, conversation.id)


@pytest.mark.asyncio
async def test_record_failure_removes_uploaded_pdf(service, repositories, storage, conversation, ontario_template):
    repositories["document_repository"].create_document.side_effect = PersistenceFailure("insert failed")

    with pytest.raises(PersistenceFailure):
        await service.fill_template(USER_ID, ontario_template.id, {"purchase_price": 800000}, conversation.id)

    uploaded_path = storage.upload_bytes.call_args.args[2]
    storage.delete_object.assert_awaited_once_with("generated-documents", uploaded_path)


@pytest.mark.asyncio
async def test_storage_failure_creates_no_record(service, repositories, storage, conversation, ontario_template):
    storage.upload_bytes.side_effect = StorageError("Upload failed: bucket missing")

    with pytest.raises(StorageError):
        await service.fill_template(USER_ID, ontario_template.id, {"purchase_price": 800000}, conversation.id)

    repositories["document_repository"].create_document.assert_not_called()


class TestStatusTransitions:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("current, target", [("draft", "preview"), ("preview", "finalized"), ("draft", "finalized")])
    async def test_forward_moves_are_saved(self, service, repositories, document_factory, current, target):
        document = document_factory(status=current)
        repositories["document_repository"].get_owned.return_value = document

        updated = await service.update_document_status(USER_ID, document.id, target)

        assert updated.status == target

    @pytest.mark.asyncio
    async def test_refinalizing_is_a_no_op(self, service, repositories, document_factory):
        document = document_factory(status="finalized")
        repositories["document_repository"].get_owned.return_value = document

        updated = await service.update_document_status(USER_ID, document.id, "finalized")

        assert updated is document
        repositories["document_repository"].save.assert_not_called()

    @pytest.mark.asyncio
    async def test_backward_move_is_rejected(self, service, repositories, document_factory):
        document = document_factory(status="finalized")
        repositories["document_repository"].get_owned.return_value = document

        with pytest.raises(InvalidStatusTransition):
            await service.update_document_status(USER_ID, document.id, "draft")

    @pytest.mark.asyncio
    async def test_unknown_status_is_invalid(self, service):
        with pytest.raises(ValidationFailed):
            await service.update_document_status(USER_ID, uuid4(), "archived")


class TestFieldEdits:
    @pytest.mark.asyncio
    async def test_edit_rerenders_and_bumps_version(self, service, repositories, storage, document_factory):
        document = document_factory(status="preview", version=1, document_data={"purchase_price": 800000})
        repositories["document_repository"].get_owned.return_value = document

        updated = await service.update_document_field(USER_ID, document.id, "purchase_price", 825000)

        assert updated.version == 2
        assert updated.document_data["purchase_price"] == 825000
        assert updated.document_metadata["transaction_value"] == 825000
        storage.upload_bytes.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_finalized_document_cannot_be_edited(self, service, repositories, storage, document_factory):
        document = document_factory(status="finalized")
        repositories["document_repository"].get_owned.return_value = document

        with pytest.raises(InvalidStatusTransition):
            await service.update_document_field(USER_ID, document.id, "purchase_price", 1)
        storage.upload_bytes.assert_not_called()

    @pytest.mark.asyncio
    async def test_document_of_another_user_is_not_found(self, service, repositories):
        repositories["document_repository"].get_owned.return_value = None

        with pytest.raises(ResourceNotFound):
            await service.get_document(USER_ID, uuid4())
