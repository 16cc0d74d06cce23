"""
@file: test_credentials_service.py
@description: Unit-тесты загрузки, проверки и сохранения учетных данных (webinar_sync/services/credentials_service.py)
@dependencies: pytest, unittest.mock
"""

from types import SimpleNamespace

import pytest

from tests.fakes import TEST_USER_ID, make_token_manager, oauth_transport, seed_credentials
from webinar_sync.exceptions import BadCredentials, CredentialsMissing, ValidationError
from webinar_sync.models import CREDENTIALS_TABLE
from webinar_sync.services.credentials_service import CredentialsResolver, CredentialsService

EMPTY_DEFAULTS = SimpleNamespace(account_id="", client_id="", client_secret="")
OPERATOR_DEFAULTS = SimpleNamespace(account_id="op-acc", client_id="op-client", client_secret="op-secret")


@pytest.mark.asyncio
async def test_resolver_prefers_user_credentials(storage):
    seed_credentials(storage, verified=True)
    resolver = CredentialsResolver(storage, zoom_settings=OPERATOR_DEFAULTS)

    credentials = await resolver.resolve(TEST_USER_ID)

    assert credentials.source == "user"
    assert credentials.account_id == "acc-1"
    assert credentials.is_verified is True


@pytest.mark.asyncio
async def test_resolver_falls_back_to_process_defaults(storage):
    resolver = CredentialsResolver(storage, zoom_settings=OPERATOR_DEFAULTS)

    credentials = await resolver.resolve(TEST_USER_ID)

    assert credentials.source == "default"
    assert credentials.client_id == "op-client"


@pytest.mark.asyncio
async def test_resolver_skips_incomplete_user_row(storage):
    seed_credentials(storage)
    storage.tables[CREDENTIALS_TABLE][0]["client_secret"] = ""
    resolver = CredentialsResolver(storage, zoom_settings=OPERATOR_DEFAULTS)

    credentials = await resolver.resolve(TEST_USER_ID)

    assert credentials.source == "default"


@pytest.mark.asyncio
async def test_resolver_raises_when_nothing_found(storage):
    resolver = CredentialsResolver(storage, zoom_settings=EMPTY_DEFAULTS)

    with pytest.raises(CredentialsMissing):
        await resolver.resolve(TEST_USER_ID)


@pytest.mark.asyncio
async def test_mark_verified_sets_flag_and_timestamp(storage):
    seed_credentials(storage)
    resolver = CredentialsResolver(storage, zoom_settings=EMPTY_DEFAULTS)

    await resolver.mark_verified(TEST_USER_ID)

    row = storage.tables[CREDENTIALS_TABLE][0]
    assert row["is_verified"] is True
    assert row["last_verified_at"] is not None
    assert await resolver.is_verified(TEST_USER_ID) is True


@pytest.mark.asyncio
async def test_save_credentials_requires_all_fields(storage, zoom):
    service = CredentialsService(storage, token_manager=make_token_manager(), client_factory=zoom.client)

    with pytest.raises(ValidationError):
        await service.save_credentials(TEST_USER_ID, {"account_id": "a", "client_id": "b", "client_secret": "  "})

    assert storage.tables[CREDENTIALS_TABLE] == []


@pytest.mark.asyncio
async def test_save_credentials_verifies_and_stores(storage, zoom):
    zoom.routes["/users/me"] = {"id": "me", "email": "owner@example.com", "account_id": "acc-9"}
    service = CredentialsService(storage, token_manager=make_token_manager(), client_factory=zoom.client)

    result = await service.save_credentials(
        TEST_USER_ID, {"account_id": " acc-9 ", "client_id": "cid", "client_secret": "sec"}
    )

    assert result["success"] is True
    assert result["user_email"] == "owner@example.com"
    row = storage.tables[CREDENTIALS_TABLE][0]
    assert row["account_id"] == "acc-9"
    assert row["is_verified"] is True


@pytest.mark.asyncio
async def test_save_credentials_reports_missing_scopes(storage, zoom):
    zoom.routes["/users/me"] = (400, {"code": 4711, "message": "Invalid access token, does not contain scopes"})
    service = CredentialsService(storage, token_manager=make_token_manager(), client_factory=zoom.client)

    with pytest.raises(ValidationError, match="scopes"):
        await service.save_credentials(TEST_USER_ID, {"account_id": "a", "client_id": "b", "client_secret": "c"})

    assert storage.tables[CREDENTIALS_TABLE] == []


@pytest.mark.asyncio
async def test_save_credentials_bad_client(storage, zoom):
    token_manager = make_token_manager(transport=oauth_transport(400, {"error": "invalid_client"}))
    service = CredentialsService(storage, token_manager=token_manager, client_factory=zoom.client)

    with pytest.raises(BadCredentials):
        await service.save_credentials(TEST_USER_ID, {"account_id": "a", "client_id": "b", "client_secret": "c"})

    assert zoom.requests == []


@pytest.mark.asyncio
async def test_verify_credentials_marks_user_row_verified(storage, zoom):
    seed_credentials(storage)
    zoom.routes["/users/me"] = {"email": "owner@example.com", "account_id": "acc-1"}
    service = CredentialsService(storage, token_manager=make_token_manager(), client_factory=zoom.client)

    result = await service.verify_credentials(TEST_USER_ID)

    assert result["success"] is True
    assert result["user"]["email"] == "owner@example.com"
    assert storage.tables[CREDENTIALS_TABLE][0]["is_verified"] is True


@pytest.mark.asyncio
async def test_check_status_uses_camel_case_keys(storage, zoom):
    service = CredentialsService(storage, token_manager=make_token_manager(), client_factory=zoom.client)

    assert await service.check_status(TEST_USER_ID) == {
        "hasCredentials": False,
        "isVerified": False,
        "lastVerified": None,
    }

    seed_credentials(storage, verified=True)
    status = await service.check_status(TEST_USER_ID)
    assert status["hasCredentials"] is True
    assert status["isVerified"] is True
