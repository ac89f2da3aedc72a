import hashlib

import pytest
from httpx import AsyncClient

from tests.utils.api_helpers import ADMIN_HEADERS, PASSWORD, bearer

DRS_TOKEN = "drs-action-token-of-alices-phone"


async def bind(client: AsyncClient, step: dict, bind_device: bool):
    return await client.post(
        "/auth/device/bind",
        json={
            "context_id": step["context_id"],
            "transaction_id": step["transaction_id"],
            "bind_device": bind_device,
        },
    )


@pytest.mark.asyncio
async def test_binding_a_device_skips_mfa_next_time(
    client: AsyncClient, create_user, login_with_otp
):
    """
    Given a login from a device with a risk token
    When MFA passes
    Then binding the device is offered
    When the subject binds it
    Then the next login from that device completes without MFA
    """
    await create_user("alice")

    step = await login_with_otp(drs_action_token=DRS_TOKEN)
    assert step["response_type_code"] == "DEVICE_BIND_REQUIRED"

    bound = await bind(client, step, True)
    assert bound.status_code == 200
    assert bound.json()["response_type_code"] == "SUCCESS"
    assert bound.json()["device_bound"] is True

    trusted = await client.post(
        "/auth/login",
        json={"username": "alice", "password": PASSWORD, "drs_action_token": DRS_TOKEN},
    )
    assert trusted.status_code == 200
    assert trusted.json()["response_type_code"] == "SUCCESS"
    assert trusted.json()["access_token"]

    # Another device still needs MFA
    other = await client.post(
        "/auth/login",
        json={"username": "alice", "password": PASSWORD, "drs_action_token": "another-device"},
    )
    assert other.json()["response_type_code"] == "MFA_REQUIRED"


@pytest.mark.asyncio
async def test_skipping_binding_completes_but_keeps_mfa(
    client: AsyncClient, create_user, login_with_otp
):
    await create_user("alice")
    step = await login_with_otp(drs_action_token=DRS_TOKEN)

    skipped = await bind(client, step, False)
    assert skipped.json()["response_type_code"] == "SUCCESS"
    assert skipped.json()["device_bound"] is False

    again = await client.post(
        "/auth/login",
        json={"username": "alice", "password": PASSWORD, "drs_action_token": DRS_TOKEN},
    )
    assert again.json()["response_type_code"] == "MFA_REQUIRED"


@pytest.mark.asyncio
async def test_no_binding_offer_without_device_token(
    client: AsyncClient, create_user, login_with_otp
):
    await create_user("alice")

    step = await login_with_otp()

    assert step["response_type_code"] == "SUCCESS"


@pytest.mark.asyncio
async def test_esign_comes_before_device_binding(
    client: AsyncClient, create_user, login_with_otp
):
    await create_user("alice")
    await client.post(
        "/admin/compliance/documents",
        json={"document_id": "tos", "title": "Terms", "applies_to_all": True},
        headers=ADMIN_HEADERS,
    )

    step = await login_with_otp(drs_action_token=DRS_TOKEN)
    assert step["response_type_code"] == "ESIGN_REQUIRED"

    accepted = await client.post(
        "/auth/esign/accept",
        json={
            "context_id": step["context_id"],
            "transaction_id": step["transaction_id"],
            "document_id": "tos",
        },
    )
    assert accepted.json()["response_type_code"] == "DEVICE_BIND_REQUIRED"

    done = await bind(client, accepted.json(), True)
    assert done.json()["response_type_code"] == "SUCCESS"


@pytest.mark.asyncio
async def test_list_and_revoke_trusted_devices(
    client: AsyncClient, create_user, login_with_otp
):
    await create_user("alice")
    step = await login_with_otp(drs_action_token=DRS_TOKEN)
    bound = await bind(client, step, True)
    headers = bearer(bound.json()["access_token"])
    fingerprint = hashlib.sha256(DRS_TOKEN.encode()).hexdigest()

    listed = await client.get("/devices", headers=headers)
    assert listed.status_code == 200
    assert [d["device_fingerprint"] for d in listed.json()["devices"]] == [fingerprint]

    revoked = await client.delete(f"/devices/{fingerprint}", headers=headers)
    assert revoked.status_code == 200
    assert revoked.json() == {"device_fingerprint": fingerprint, "revoked": True}

    missing = await client.delete(f"/devices/{fingerprint}", headers=headers)
    assert missing.status_code == 404
    assert missing.json()["error"]["code"] == "DEVICE_NOT_FOUND"

    relogin = await client.post(
        "/auth/login",
        json={"username": "alice", "password": PASSWORD, "drs_action_token": DRS_TOKEN},
    )
    assert relogin.json()["response_type_code"] == "MFA_REQUIRED"


@pytest.mark.asyncio
async def test_answering_binding_twice_is_rejected(
    client: AsyncClient, create_user, login_with_otp
):
    await create_user("alice")
    step = await login_with_otp(drs_action_token=DRS_TOKEN)

    first = await bind(client, step, True)
    second = await bind(client, step, True)

    assert first.status_code == 200
    assert second.status_code == 409
    assert second.json()["error"]["code"] == "CONTEXT_NOT_ACTIVE"
